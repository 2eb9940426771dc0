from datetime import date, datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from sis.core.enums import EnrollmentStatus


class EnrollmentCreate(BaseModel):
    student_id: UUID
    class_id: UUID
    academic_year_id: UUID
    enrollment_date: Optional[date] = Field(None, description="Defaults to today")
    admission_number: Optional[str] = Field(None, max_length=50)
    notes: Optional[str] = None


class EnrollmentStatusUpdate(BaseModel):
    status: EnrollmentStatus
    graduation_date: Optional[date] = Field(None, description="Used when status=graduated; defaults to today")


class PromotionRequest(BaseModel):
    from_academic_year_id: UUID
    to_academic_year_id: UUID
    from_class_id: UUID
    to_class_id: UUID


class PromotionResult(BaseModel):
    promoted: int


class RankRecomputeResult(BaseModel):
    ranked: int


class EnrollmentResponse(BaseModel):
    id: UUID
    student_id: UUID
    class_id: UUID
    academic_year_id: UUID
    status: str
    enrollment_date: date
    graduation_date: Optional[date] = None
    admission_number: Optional[str] = None
    class_rank: Optional[int] = None
    notes: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class EnrollmentStatistics(BaseModel):
    enrollment_id: UUID
    attendance_rate: float
    average_grade: Optional[float] = None
    total_attendances: int
    total_grades: int


class ClassEnrollmentStatistics(BaseModel):
    class_id: UUID
    total_students: int
    active_students: int
    graduated_students: int
    transferred_students: int
    suspended_students: int
    average_attendance_rate: float
    average_grade: Optional[float] = None

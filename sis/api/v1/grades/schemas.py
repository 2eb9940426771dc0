from datetime import date, datetime
from typing import Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from sis.core.enums import AssessmentType


class GradeCreate(BaseModel):
    enrollment_id: UUID
    subject_id: UUID
    teacher_id: UUID
    academic_year_id: UUID
    assessment_type: AssessmentType
    score: Optional[float] = Field(None, ge=0, le=100)
    weight: float = Field(1.0, ge=0, le=99.99)
    semester: int = Field(..., ge=1, le=2)
    assessment_date: date
    notes: Optional[str] = None


class GradeBulkCreate(BaseModel):
    grades: List[GradeCreate] = Field(..., min_length=1)


class GradeScoreUpdate(BaseModel):
    score: Optional[float] = Field(None, ge=0, le=100)


class GradeResponse(BaseModel):
    id: UUID
    enrollment_id: UUID
    subject_id: UUID
    teacher_id: UUID
    academic_year_id: UUID
    assessment_type: str
    score: Optional[float] = None
    letter_grade: Optional[str] = None
    predicate: Optional[str] = None
    weight: float
    weighted_score: Optional[float] = None
    semester: int
    assessment_date: date
    notes: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class GroupStatistics(BaseModel):
    count: int
    average: float
    max: float
    min: float


class SubjectStatistics(GroupStatistics):
    subject_id: UUID
    subject_name: str
    subject_code: str


class GradeStatistics(BaseModel):
    total_grades: int
    average_score: Optional[float] = None
    max_score: Optional[float] = None
    min_score: Optional[float] = None
    weighted_average: Optional[float] = None
    by_assessment_type: Dict[str, GroupStatistics]
    by_subject: Dict[UUID, SubjectStatistics]


class GradeDistribution(BaseModel):
    counts: Dict[str, int] = Field(..., description="Letter -> count, always A..E")
    labels: Dict[str, str]
    total: int


class GpaResponse(BaseModel):
    gpa: float

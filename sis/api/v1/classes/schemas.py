from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class ClassCreate(BaseModel):
    school_id: UUID
    academic_year_id: UUID
    name: str = Field(..., min_length=1, max_length=100)
    class_code: str = Field(..., min_length=1, max_length=50)
    level_id: Optional[UUID] = None
    homeroom_teacher_id: Optional[UUID] = None
    max_students: Optional[int] = Field(None, ge=1, description="Leave empty for no limit")
    order: Optional[int] = None


class ClassResponse(BaseModel):
    id: UUID
    school_id: UUID
    academic_year_id: UUID
    name: str
    class_code: str
    level_id: Optional[UUID] = None
    homeroom_teacher_id: Optional[UUID] = None
    max_students: Optional[int] = None
    order: Optional[int] = None
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class ClassCapacity(BaseModel):
    class_id: UUID
    current_student_count: int
    max_students: Optional[int] = None
    has_available_slots: bool

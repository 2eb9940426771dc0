from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel

from sis.core.enums import TeachingRole


class TeacherSubjectCreate(BaseModel):
    teacher_id: UUID
    subject_id: UUID
    class_id: UUID
    academic_year_id: UUID
    teaching_role: TeachingRole = TeachingRole.REGULAR
    notes: Optional[str] = None
    is_active: bool = True


class TeacherSubjectUpdate(BaseModel):
    teaching_role: Optional[TeachingRole] = None
    notes: Optional[str] = None


class TeacherSubjectResponse(BaseModel):
    id: UUID
    teacher_id: UUID
    subject_id: UUID
    class_id: UUID
    academic_year_id: UUID
    teaching_role: str
    notes: Optional[str] = None
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class TeacherLoad(BaseModel):
    """Distinct classes and subjects a teacher is assigned to."""

    teacher_id: UUID
    class_ids: List[UUID]
    subject_ids: List[UUID]


class TeacherSubjectStatistics(BaseModel):
    total_assignments: int
    active_assignments: int
    inactive_assignments: int

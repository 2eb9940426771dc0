from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field, model_validator

from sis.core.clock import to_naive_utc
from sis.core.enums import AssignmentType


class AssignmentCreate(BaseModel):
    academic_year_id: UUID
    class_id: UUID
    subject_id: UUID
    teacher_id: UUID
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    assignment_type: AssignmentType = AssignmentType.ASSIGNMENT
    due_date: datetime
    submission_start: Optional[datetime] = None
    submission_end: Optional[datetime] = None
    max_score: int = Field(100, ge=1)
    is_published: bool = False
    allow_late_submission: bool = False
    late_penalty_percent: int = Field(0, ge=0, le=100, description="Percent of max_score deducted per day late")

    @model_validator(mode="after")
    def window_is_ordered(self) -> "AssignmentCreate":
        start = to_naive_utc(self.submission_start)
        end = to_naive_utc(self.submission_end)
        if start and end and end < start:
            raise ValueError("submission_end must not be before submission_start")
        return self


class AssignmentPublish(BaseModel):
    is_published: bool = True


class AssignmentResponse(BaseModel):
    id: UUID
    academic_year_id: UUID
    class_id: UUID
    subject_id: UUID
    teacher_id: UUID
    title: str
    description: Optional[str] = None
    assignment_type: str
    due_date: datetime
    submission_start: Optional[datetime] = None
    submission_end: Optional[datetime] = None
    max_score: int
    is_published: bool
    allow_late_submission: bool
    late_penalty_percent: int
    accepting_submissions: bool
    created_at: datetime

    class Config:
        from_attributes = True

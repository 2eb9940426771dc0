from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field, model_validator

from sis.core.enums import SubmissionStatus


class SubmissionCreate(BaseModel):
    assignment_id: UUID
    student_id: UUID
    content: Optional[str] = None
    file_path: Optional[str] = Field(None, max_length=500)
    file_name: Optional[str] = Field(None, max_length=255)
    submitted_at: Optional[datetime] = Field(None, description="Defaults to now")

    @model_validator(mode="after")
    def has_work(self) -> "SubmissionCreate":
        if not self.content and not self.file_path:
            raise ValueError("Either content or file_path is required")
        return self


class SubmissionUpdate(BaseModel):
    content: Optional[str] = None
    file_path: Optional[str] = Field(None, max_length=500)
    file_name: Optional[str] = Field(None, max_length=255)
    status: Optional[SubmissionStatus] = None


class SubmissionGrade(BaseModel):
    score: float = Field(..., ge=0)
    grade: Optional[str] = Field(None, max_length=5)
    feedback: Optional[str] = None


class SubmissionResponse(BaseModel):
    id: UUID
    assignment_id: UUID
    student_id: UUID
    content: Optional[str] = None
    file_path: Optional[str] = None
    file_name: Optional[str] = None
    status: str
    submitted_at: Optional[datetime] = None
    is_late: bool
    days_late: int
    score: Optional[float] = None
    grade: Optional[str] = None
    feedback: Optional[str] = None
    graded_by: Optional[UUID] = None
    graded_at: Optional[datetime] = None
    late_penalty: float
    final_score: Optional[float] = None
    created_at: datetime

    class Config:
        from_attributes = True


class SubmissionStatistics(BaseModel):
    assignment_id: UUID
    total_submissions: int
    graded_submissions: int
    late_submissions: int
    average_score: Optional[float] = None
    submission_rate: float
    graded_rate: float

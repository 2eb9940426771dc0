from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from sis.core.enums import GuardianType


class ParentStudentCreate(BaseModel):
    parent_id: UUID
    student_id: UUID
    relationship: str = Field(..., min_length=1, max_length=50, description="e.g. father, mother, guardian")
    guardian_type: GuardianType = GuardianType.BIOLOGICAL
    is_primary: bool = False
    notes: Optional[str] = None


class ParentStudentUpdate(BaseModel):
    relationship: Optional[str] = Field(None, min_length=1, max_length=50)
    guardian_type: Optional[GuardianType] = None
    notes: Optional[str] = None


class ParentStudentResponse(BaseModel):
    id: UUID
    parent_id: UUID
    student_id: UUID
    relationship: str
    guardian_type: str
    is_primary: bool
    notes: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class ParentStudentStatistics(BaseModel):
    total_relationships: int
    primary_relationships: int
    non_primary_relationships: int

from datetime import date, datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class AcademicYearCreate(BaseModel):
    """Create academic year. year_code must be unique; the date range must not overlap another year of the school."""

    school_id: UUID
    name: str = Field(..., min_length=1, max_length=50, description="e.g. 2024/2025")
    year_code: str = Field(..., min_length=1, max_length=50)
    start_date: date = Field(..., description="Academic year start date")
    end_date: date = Field(..., description="Academic year end date (must be after start_date)")
    is_active: bool = True
    set_as_current: bool = Field(
        False,
        description="Set this year as current? If true, all other years of the school become non-current.",
    )
    description: Optional[str] = None


class AcademicYearUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=50)
    year_code: Optional[str] = Field(None, min_length=1, max_length=50)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    is_active: Optional[bool] = None
    description: Optional[str] = None


class AcademicYearResponse(BaseModel):
    id: UUID
    school_id: UUID
    name: str
    year_code: str
    start_date: date
    end_date: date
    is_active: bool
    is_current: bool
    description: Optional[str] = None
    label: str
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True

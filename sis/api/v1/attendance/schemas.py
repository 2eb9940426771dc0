from datetime import date, datetime, time
from typing import List, Optional, Union
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from sis.api.v1.schedules.schemas import parse_time_24
from sis.core.enums import AttendanceStatus, AttendanceType


class AttendanceCreate(BaseModel):
    enrollment_id: UUID
    teacher_id: Optional[UUID] = None
    attendance_date: date
    status: AttendanceStatus
    check_in_time: Optional[Union[str, time]] = None
    check_out_time: Optional[Union[str, time]] = None
    attendance_type: AttendanceType = AttendanceType.DAILY
    notes: Optional[str] = None

    @field_validator("check_in_time", "check_out_time", mode="before")
    @classmethod
    def parse_time(cls, v: Optional[Union[str, time]]) -> Optional[time]:
        if v is None:
            return None
        return parse_time_24(v)


class AttendanceBulkCreate(BaseModel):
    records: List[AttendanceCreate] = Field(..., min_length=1)


class AttendanceResponse(BaseModel):
    id: UUID
    enrollment_id: UUID
    teacher_id: Optional[UUID] = None
    attendance_date: date
    status: str
    check_in_time: Optional[time] = None
    check_out_time: Optional[time] = None
    attendance_type: str
    notes: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class AttendanceStatistics(BaseModel):
    total: int
    present: int
    absent: int
    late: int
    excuse: int
    sick: int
    attendance_rate: float

from datetime import date
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from sis.auth.dependencies import get_current_user
from sis.auth.schemas import CurrentUser
from sis.core.exceptions import ServiceError
from sis.db.session import get_db

from .schemas import AttendanceBulkCreate, AttendanceCreate, AttendanceResponse, AttendanceStatistics
from . import service

router = APIRouter(prefix="/api/v1/attendance", tags=["attendance"])


@router.post("", response_model=AttendanceResponse, status_code=status.HTTP_201_CREATED)
async def record_attendance(
    payload: AttendanceCreate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> AttendanceResponse:
    try:
        return await service.record_attendance(db, payload, actor_id=current_user.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("/bulk", response_model=List[AttendanceResponse], status_code=status.HTTP_201_CREATED)
async def bulk_record_attendance(
    payload: AttendanceBulkCreate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> List[AttendanceResponse]:
    """Record a roll call. All rows are saved or none."""
    try:
        return await service.bulk_record_attendance(db, payload.records, actor_id=current_user.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/student/{student_id}/statistics", response_model=AttendanceStatistics)
async def student_attendance_statistics(
    student_id: UUID,
    academic_year_id: Optional[UUID] = Query(None),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> AttendanceStatistics:
    return await service.student_attendance_statistics(db, student_id, academic_year_id=academic_year_id)


@router.get("/class/{class_id}/statistics", response_model=AttendanceStatistics)
async def class_attendance_statistics(
    class_id: UUID,
    academic_year_id: Optional[UUID] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> AttendanceStatistics:
    return await service.class_attendance_statistics(
        db,
        class_id,
        academic_year_id=academic_year_id,
        start_date=start_date,
        end_date=end_date,
    )

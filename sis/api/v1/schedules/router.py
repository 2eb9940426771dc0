from datetime import datetime
from typing import Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from sis.auth.dependencies import get_current_user
from sis.auth.schemas import CurrentUser
from sis.core.exceptions import ServiceError
from sis.db.session import get_db

from .schemas import NextScheduleResponse, ScheduleCreate, ScheduleResponse, ScheduleUpdate
from . import service

router = APIRouter(prefix="/api/v1/schedules", tags=["schedules"])


@router.post("", response_model=ScheduleResponse, status_code=status.HTTP_201_CREATED)
async def create_schedule(
    payload: ScheduleCreate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> ScheduleResponse:
    """Create a weekly slot. Rejected with 409 when it overlaps the class's or the teacher's timetable."""
    try:
        return await service.create_schedule(db, payload, actor_id=current_user.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/weekly", response_model=Dict[str, List[ScheduleResponse]])
async def weekly_schedule(
    class_id: Optional[UUID] = Query(None),
    teacher_id: Optional[UUID] = Query(None),
    academic_year_id: Optional[UUID] = Query(None),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> Dict[str, List[ScheduleResponse]]:
    return await service.weekly_schedule(
        db, class_id=class_id, teacher_id=teacher_id, academic_year_id=academic_year_id
    )


@router.get("/next", response_model=Optional[NextScheduleResponse])
async def next_schedule(
    class_id: Optional[UUID] = Query(None),
    teacher_id: Optional[UUID] = Query(None),
    at: Optional[datetime] = Query(None, description="Reference time, defaults to now"),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> Optional[NextScheduleResponse]:
    return await service.next_schedule(db, at or datetime.now(), class_id=class_id, teacher_id=teacher_id)


@router.get("/now", response_model=List[ScheduleResponse])
async def happening_now(
    class_id: Optional[UUID] = Query(None),
    teacher_id: Optional[UUID] = Query(None),
    at: Optional[datetime] = Query(None, description="Reference time, defaults to now"),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> List[ScheduleResponse]:
    return await service.happening_now(db, at or datetime.now(), class_id=class_id, teacher_id=teacher_id)


@router.get("/{schedule_id}", response_model=ScheduleResponse)
async def get_schedule(
    schedule_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> ScheduleResponse:
    try:
        return await service.get_schedule(db, schedule_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.put("/{schedule_id}", response_model=ScheduleResponse)
async def update_schedule(
    schedule_id: UUID,
    payload: ScheduleUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> ScheduleResponse:
    try:
        return await service.update_schedule(db, schedule_id, payload, actor_id=current_user.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("/{schedule_id}/toggle", response_model=ScheduleResponse)
async def toggle_schedule_status(
    schedule_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> ScheduleResponse:
    try:
        return await service.toggle_schedule_status(db, schedule_id, actor_id=current_user.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete("/{schedule_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_schedule(
    schedule_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> None:
    try:
        await service.delete_schedule(db, schedule_id, actor_id=current_user.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

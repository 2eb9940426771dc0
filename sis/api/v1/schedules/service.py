from datetime import date, datetime, time, timedelta
from typing import Dict, List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from sis.core.enums import DayOfWeek
from sis.core.exceptions import DuplicateError, ScheduleConflictError, ValidationError
from sis.core.logging import get_logger
from sis.core.models import AcademicYear, ClassGroup, Schedule
from sis.core.repository import get_live_or_404
from sis.db.transaction import atomic

from .schemas import NextScheduleResponse, ScheduleCreate, ScheduleResponse, ScheduleUpdate

logger = get_logger(__name__)

SLOT_TAKEN = "A schedule already exists for this class, day and time"


def times_overlap(existing_start: time, existing_end: time, new_start: time, new_end: time) -> bool:
    """Half-open overlap: back-to-back slots do not overlap."""
    return existing_start < new_end and existing_end > new_start


def duration_minutes(start_time: time, end_time: time) -> int:
    delta = datetime.combine(date.min, end_time) - datetime.combine(date.min, start_time)
    return int(delta.total_seconds() // 60)


def next_occurrence(day: DayOfWeek, start_time: time, reference: datetime) -> datetime:
    """First datetime >= reference falling on ``day`` at ``start_time``."""
    days_ahead = (day.weekday - reference.weekday()) % 7
    candidate = datetime.combine(reference.date() + timedelta(days=days_ahead), start_time)
    if reference.tzinfo is not None:
        candidate = candidate.replace(tzinfo=reference.tzinfo)
    if candidate < reference:
        candidate += timedelta(days=7)
    return candidate


def is_happening_now(day: DayOfWeek, start_time: time, end_time: time, reference: datetime) -> bool:
    if reference.weekday() != day.weekday:
        return False
    now = reference.time()
    return start_time <= now < end_time


def _to_response(s: Schedule) -> ScheduleResponse:
    return ScheduleResponse(
        id=s.id,
        academic_year_id=s.academic_year_id,
        class_id=s.class_id,
        subject_id=s.subject_id,
        teacher_id=s.teacher_id,
        day_of_week=DayOfWeek(s.day_of_week),
        start_time=s.start_time,
        end_time=s.end_time,
        duration_minutes=duration_minutes(s.start_time, s.end_time),
        room=s.room,
        notes=s.notes,
        is_active=s.is_active,
        created_at=s.created_at,
    )


async def check_conflict(
    db: AsyncSession,
    exclude_schedule_id: Optional[UUID],
    day: DayOfWeek,
    start_time: time,
    end_time: time,
    class_id: Optional[UUID] = None,
    teacher_id: Optional[UUID] = None,
) -> bool:
    """
    True if another active schedule on ``day`` overlaps [start_time, end_time).
    class_id and teacher_id narrow the candidates; both given means both must match.
    """
    stmt = select(Schedule.id).where(
        Schedule.day_of_week == day.value,
        Schedule.is_active.is_(True),
        Schedule.deleted_at.is_(None),
        Schedule.start_time < end_time,
        Schedule.end_time > start_time,
    )
    if exclude_schedule_id is not None:
        stmt = stmt.where(Schedule.id != exclude_schedule_id)
    if class_id is not None:
        stmt = stmt.where(Schedule.class_id == class_id)
    if teacher_id is not None:
        stmt = stmt.where(Schedule.teacher_id == teacher_id)
    result = await db.execute(stmt.limit(1))
    return result.first() is not None


async def _ensure_no_conflicts(
    db: AsyncSession,
    exclude_schedule_id: Optional[UUID],
    day: DayOfWeek,
    start_time: time,
    end_time: time,
    class_id: UUID,
    teacher_id: UUID,
) -> None:
    if await check_conflict(db, exclude_schedule_id, day, start_time, end_time, class_id=class_id):
        raise ScheduleConflictError("Schedule conflicts with an existing schedule for this class")
    if await check_conflict(db, exclude_schedule_id, day, start_time, end_time, teacher_id=teacher_id):
        raise ScheduleConflictError("Teacher already has a schedule at this time")


async def create_schedule(
    db: AsyncSession,
    payload: ScheduleCreate,
    actor_id: Optional[UUID] = None,
) -> ScheduleResponse:
    await get_live_or_404(db, AcademicYear, payload.academic_year_id, "Academic year")
    await get_live_or_404(db, ClassGroup, payload.class_id, "Class")
    if payload.end_time <= payload.start_time:
        raise ValidationError("end_time must be after start_time")
    if payload.is_active:
        await _ensure_no_conflicts(
            db,
            None,
            payload.day_of_week,
            payload.start_time,
            payload.end_time,
            payload.class_id,
            payload.teacher_id,
        )
    async with atomic(db, "create_schedule", DuplicateError(SLOT_TAKEN)):
        obj = Schedule(
            academic_year_id=payload.academic_year_id,
            class_id=payload.class_id,
            subject_id=payload.subject_id,
            teacher_id=payload.teacher_id,
            day_of_week=payload.day_of_week.value,
            start_time=payload.start_time,
            end_time=payload.end_time,
            room=payload.room,
            notes=payload.notes,
            is_active=payload.is_active,
            created_by=actor_id,
            updated_by=actor_id,
        )
        db.add(obj)
    logger.info(
        "schedule_created",
        schedule_id=str(obj.id),
        class_id=str(obj.class_id),
        day_of_week=obj.day_of_week,
    )
    return _to_response(obj)


async def get_schedule(db: AsyncSession, schedule_id: UUID) -> ScheduleResponse:
    obj = await get_live_or_404(db, Schedule, schedule_id, "Schedule")
    return _to_response(obj)


async def update_schedule(
    db: AsyncSession,
    schedule_id: UUID,
    payload: ScheduleUpdate,
    actor_id: Optional[UUID] = None,
) -> ScheduleResponse:
    obj = await get_live_or_404(db, Schedule, schedule_id, "Schedule")
    data = payload.model_dump(exclude_unset=True)

    # Resolve the new slot before touching the row so the conflict queries don't autoflush it.
    day = payload.day_of_week if payload.day_of_week is not None else DayOfWeek(obj.day_of_week)
    start_time = payload.start_time if payload.start_time is not None else obj.start_time
    end_time = payload.end_time if payload.end_time is not None else obj.end_time
    teacher_id = payload.teacher_id if payload.teacher_id is not None else obj.teacher_id
    if end_time <= start_time:
        raise ValidationError("end_time must be after start_time")
    if obj.is_active:
        await _ensure_no_conflicts(db, obj.id, day, start_time, end_time, obj.class_id, teacher_id)

    async with atomic(db, "update_schedule", DuplicateError(SLOT_TAKEN)):
        obj.day_of_week = day.value
        obj.start_time = start_time
        obj.end_time = end_time
        obj.teacher_id = teacher_id
        if data.get("subject_id") is not None:
            obj.subject_id = data["subject_id"]
        if "room" in data:
            obj.room = data["room"]
        if "notes" in data:
            obj.notes = data["notes"]
        obj.updated_by = actor_id
    logger.info("schedule_updated", schedule_id=str(schedule_id))
    return _to_response(obj)


async def toggle_schedule_status(
    db: AsyncSession,
    schedule_id: UUID,
    actor_id: Optional[UUID] = None,
) -> ScheduleResponse:
    """Flip is_active. Re-activating a slot must not collide with the current timetable."""
    obj = await get_live_or_404(db, Schedule, schedule_id, "Schedule")
    activate = not obj.is_active
    if activate:
        await _ensure_no_conflicts(
            db,
            obj.id,
            DayOfWeek(obj.day_of_week),
            obj.start_time,
            obj.end_time,
            obj.class_id,
            obj.teacher_id,
        )
    async with atomic(db, "toggle_schedule_status", DuplicateError(SLOT_TAKEN)):
        obj.is_active = activate
        obj.updated_by = actor_id
    logger.info("schedule_toggled", schedule_id=str(schedule_id), is_active=activate)
    return _to_response(obj)


async def delete_schedule(
    db: AsyncSession,
    schedule_id: UUID,
    actor_id: Optional[UUID] = None,
) -> bool:
    obj = await get_live_or_404(db, Schedule, schedule_id, "Schedule")
    async with atomic(db, "delete_schedule", DuplicateError(SLOT_TAKEN)):
        obj.deleted_at = datetime.utcnow()
        obj.updated_by = actor_id
    logger.info("schedule_deleted", schedule_id=str(schedule_id))
    return True


async def _active_schedules(
    db: AsyncSession,
    class_id: Optional[UUID] = None,
    teacher_id: Optional[UUID] = None,
    academic_year_id: Optional[UUID] = None,
) -> List[Schedule]:
    stmt = select(Schedule).where(
        Schedule.is_active.is_(True),
        Schedule.deleted_at.is_(None),
    )
    if class_id is not None:
        stmt = stmt.where(Schedule.class_id == class_id)
    if teacher_id is not None:
        stmt = stmt.where(Schedule.teacher_id == teacher_id)
    if academic_year_id is not None:
        stmt = stmt.where(Schedule.academic_year_id == academic_year_id)
    result = await db.execute(stmt.order_by(Schedule.start_time))
    return list(result.scalars().all())


async def weekly_schedule(
    db: AsyncSession,
    class_id: Optional[UUID] = None,
    teacher_id: Optional[UUID] = None,
    academic_year_id: Optional[UUID] = None,
) -> Dict[str, List[ScheduleResponse]]:
    """Active slots bucketed Monday..Sunday, each bucket ordered by start_time."""
    week: Dict[str, List[ScheduleResponse]] = {day.value: [] for day in DayOfWeek}
    for s in await _active_schedules(db, class_id, teacher_id, academic_year_id):
        week[s.day_of_week].append(_to_response(s))
    return week


async def next_schedule(
    db: AsyncSession,
    reference: datetime,
    class_id: Optional[UUID] = None,
    teacher_id: Optional[UUID] = None,
) -> Optional[NextScheduleResponse]:
    best: Optional[NextScheduleResponse] = None
    for s in await _active_schedules(db, class_id, teacher_id):
        starts_at = next_occurrence(DayOfWeek(s.day_of_week), s.start_time, reference)
        if best is None or starts_at < best.starts_at:
            best = NextScheduleResponse(schedule=_to_response(s), starts_at=starts_at)
    return best


async def happening_now(
    db: AsyncSession,
    reference: datetime,
    class_id: Optional[UUID] = None,
    teacher_id: Optional[UUID] = None,
) -> List[ScheduleResponse]:
    return [
        _to_response(s)
        for s in await _active_schedules(db, class_id, teacher_id)
        if is_happening_now(DayOfWeek(s.day_of_week), s.start_time, s.end_time, reference)
    ]

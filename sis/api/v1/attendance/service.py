from datetime import date
from typing import Iterable, List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from sis.api.v1.enrollments.service import attendance_rate
from sis.core.enums import AttendanceStatus
from sis.core.exceptions import DuplicateError, NotFoundError
from sis.core.logging import get_logger
from sis.core.models import Attendance, Enrollment
from sis.core.repository import get_live_or_404
from sis.db.transaction import atomic

from .schemas import AttendanceCreate, AttendanceResponse, AttendanceStatistics

logger = get_logger(__name__)

ALREADY_RECORDED = "Attendance already recorded for this student on this date"


def summarize_attendance(statuses: Iterable[str]) -> AttendanceStatistics:
    statuses = list(statuses)
    counts = {s.value: 0 for s in AttendanceStatus}
    for status_val in statuses:
        counts[status_val] = counts.get(status_val, 0) + 1
    return AttendanceStatistics(
        total=len(statuses),
        present=counts[AttendanceStatus.PRESENT.value],
        absent=counts[AttendanceStatus.ABSENT.value],
        late=counts[AttendanceStatus.LATE.value],
        excuse=counts[AttendanceStatus.EXCUSE.value],
        sick=counts[AttendanceStatus.SICK.value],
        attendance_rate=attendance_rate(statuses),
    )


def _to_response(a: Attendance) -> AttendanceResponse:
    return AttendanceResponse(
        id=a.id,
        enrollment_id=a.enrollment_id,
        teacher_id=a.teacher_id,
        attendance_date=a.attendance_date,
        status=a.status,
        check_in_time=a.check_in_time,
        check_out_time=a.check_out_time,
        attendance_type=a.attendance_type,
        notes=a.notes,
        created_at=a.created_at,
    )


def _build(payload: AttendanceCreate, actor_id: Optional[UUID]) -> Attendance:
    return Attendance(
        enrollment_id=payload.enrollment_id,
        teacher_id=payload.teacher_id,
        attendance_date=payload.attendance_date,
        status=payload.status.value,
        check_in_time=payload.check_in_time,
        check_out_time=payload.check_out_time,
        attendance_type=payload.attendance_type.value,
        notes=payload.notes,
        created_by=actor_id,
        updated_by=actor_id,
    )


async def record_attendance(
    db: AsyncSession,
    payload: AttendanceCreate,
    actor_id: Optional[UUID] = None,
) -> AttendanceResponse:
    await get_live_or_404(db, Enrollment, payload.enrollment_id, "Enrollment")
    async with atomic(db, "record_attendance", DuplicateError(ALREADY_RECORDED)):
        obj = _build(payload, actor_id)
        db.add(obj)
    logger.info(
        "attendance_recorded",
        attendance_id=str(obj.id),
        enrollment_id=str(obj.enrollment_id),
        status=obj.status,
    )
    return _to_response(obj)


async def bulk_record_attendance(
    db: AsyncSession,
    payloads: List[AttendanceCreate],
    actor_id: Optional[UUID] = None,
) -> List[AttendanceResponse]:
    """A whole roll call in one transaction. Any duplicate rejects the batch."""
    enrollment_ids = {p.enrollment_id for p in payloads}
    result = await db.execute(
        select(Enrollment.id).where(
            Enrollment.id.in_(enrollment_ids),
            Enrollment.deleted_at.is_(None),
        )
    )
    if enrollment_ids - set(result.scalars().all()):
        raise NotFoundError("One or more enrollments not found", resource_type="Enrollment")

    async with atomic(db, "bulk_record_attendance", DuplicateError(ALREADY_RECORDED)):
        objs = [_build(p, actor_id) for p in payloads]
        db.add_all(objs)
    logger.info("attendance_bulk_recorded", count=len(objs))
    return [_to_response(a) for a in objs]


async def student_attendance_statistics(
    db: AsyncSession,
    student_id: UUID,
    academic_year_id: Optional[UUID] = None,
) -> AttendanceStatistics:
    stmt = (
        select(Attendance.status)
        .join(Enrollment, Attendance.enrollment_id == Enrollment.id)
        .where(
            Enrollment.student_id == student_id,
            Attendance.deleted_at.is_(None),
        )
    )
    if academic_year_id is not None:
        stmt = stmt.where(Enrollment.academic_year_id == academic_year_id)
    return summarize_attendance((await db.execute(stmt)).scalars().all())


async def class_attendance_statistics(
    db: AsyncSession,
    class_id: UUID,
    academic_year_id: Optional[UUID] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> AttendanceStatistics:
    stmt = (
        select(Attendance.status)
        .join(Enrollment, Attendance.enrollment_id == Enrollment.id)
        .where(
            Enrollment.class_id == class_id,
            Attendance.deleted_at.is_(None),
        )
    )
    if academic_year_id is not None:
        stmt = stmt.where(Enrollment.academic_year_id == academic_year_id)
    if start_date is not None:
        stmt = stmt.where(Attendance.attendance_date >= start_date)
    if end_date is not None:
        stmt = stmt.where(Attendance.attendance_date <= end_date)
    return summarize_attendance((await db.execute(stmt)).scalars().all())

from datetime import date
from uuid import UUID, uuid4

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from sis.api.v1.attendance import service
from sis.api.v1.attendance.schemas import AttendanceCreate
from sis.core.enums import AttendanceStatus, EnrollmentStatus
from sis.core.exceptions import DuplicateError, NotFoundError
from sis.core.models import Attendance, Enrollment


@pytest.fixture()
async def enrollment(db_session: AsyncSession, make_student, class_id: UUID, year_id: UUID):
    async def _make():
        student = await make_student()
        e = Enrollment(
            student_id=student,
            class_id=class_id,
            academic_year_id=year_id,
            status=EnrollmentStatus.ACTIVE.value,
            enrollment_date=date(2024, 7, 1),
        )
        db_session.add(e)
        await db_session.commit()
        return e.id, student

    return _make


def _mark(enrollment_id: UUID, day: int, status: AttendanceStatus = AttendanceStatus.PRESENT) -> AttendanceCreate:
    return AttendanceCreate(enrollment_id=enrollment_id, attendance_date=date(2024, 9, day), status=status)


async def _row_count(db: AsyncSession) -> int:
    return (await db.execute(select(func.count(Attendance.id)))).scalar_one()


def test_summarize_attendance() -> None:
    stats = service.summarize_attendance(["present", "late", "absent", "present"])
    assert stats.total == 4
    assert stats.present == 2
    assert stats.late == 1
    assert stats.attendance_rate == 50.0
    assert service.summarize_attendance([]).attendance_rate == 0


@pytest.mark.asyncio
async def test_one_record_per_enrollment_per_day(db_session: AsyncSession, enrollment) -> None:
    enrollment_id, _ = await enrollment()
    record = await service.record_attendance(db_session, _mark(enrollment_id, 2))
    assert record.attendance_type == "daily"
    with pytest.raises(DuplicateError):
        await service.record_attendance(db_session, _mark(enrollment_id, 2, AttendanceStatus.ABSENT))


@pytest.mark.asyncio
async def test_bulk_attendance_is_all_or_nothing(db_session: AsyncSession, enrollment) -> None:
    first, _ = await enrollment()
    second, _ = await enrollment()
    await service.record_attendance(db_session, _mark(second, 3))

    with pytest.raises(DuplicateError):
        await service.bulk_record_attendance(db_session, [_mark(first, 3), _mark(second, 3)])
    assert await _row_count(db_session) == 1

    saved = await service.bulk_record_attendance(db_session, [_mark(first, 3), _mark(second, 4)])
    assert len(saved) == 2
    assert await _row_count(db_session) == 3


@pytest.mark.asyncio
async def test_bulk_attendance_unknown_enrollment(db_session: AsyncSession, enrollment) -> None:
    first, _ = await enrollment()
    with pytest.raises(NotFoundError):
        await service.bulk_record_attendance(db_session, [_mark(first, 3), _mark(uuid4(), 3)])
    assert await _row_count(db_session) == 0


@pytest.mark.asyncio
async def test_student_and_class_statistics(db_session: AsyncSession, enrollment, class_id: UUID) -> None:
    first, student = await enrollment()
    second, _ = await enrollment()
    await service.bulk_record_attendance(
        db_session,
        [
            _mark(first, 2),
            _mark(first, 3, AttendanceStatus.SICK),
            _mark(second, 2),
            _mark(second, 10, AttendanceStatus.ABSENT),
        ],
    )

    student_stats = await service.student_attendance_statistics(db_session, student)
    assert student_stats.total == 2
    assert student_stats.sick == 1
    assert student_stats.attendance_rate == 50.0

    class_stats = await service.class_attendance_statistics(db_session, class_id)
    assert class_stats.total == 4
    assert class_stats.present == 2

    first_week = await service.class_attendance_statistics(
        db_session, class_id, start_date=date(2024, 9, 1), end_date=date(2024, 9, 7)
    )
    assert first_week.total == 3
    assert first_week.attendance_rate == 66.67

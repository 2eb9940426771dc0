from datetime import date
from uuid import UUID, uuid4

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from sis.api.v1.enrollments import service
from sis.api.v1.enrollments.schemas import EnrollmentCreate, EnrollmentStatusUpdate, PromotionRequest
from sis.core.config import settings
from sis.core.enums import AttendanceStatus, EnrollmentStatus
from sis.core.exceptions import DuplicateError, InvalidTransitionError, NotFoundError, ValidationError
from sis.core.models import AcademicYear, Attendance, Enrollment, Grade


def _enroll(student_id: UUID, class_id: UUID, year_id: UUID, **kwargs) -> EnrollmentCreate:
    return EnrollmentCreate(student_id=student_id, class_id=class_id, academic_year_id=year_id, **kwargs)


@pytest.fixture()
async def next_year_id(db_session: AsyncSession, school_id: UUID) -> UUID:
    ay = AcademicYear(
        school_id=school_id,
        name="2025/2026",
        year_code="AY-2025",
        start_date=date(2025, 7, 1),
        end_date=date(2026, 6, 30),
    )
    db_session.add(ay)
    await db_session.commit()
    return ay.id


def test_attendance_rate_and_average_grade() -> None:
    assert service.attendance_rate([]) == 0
    assert service.attendance_rate(["present", "present", "absent"]) == 66.67
    assert service.average_grade([]) is None
    assert service.average_grade([None, 80, 90]) == 85.0


@pytest.mark.asyncio
async def test_enroll_twice_is_duplicate(
    db_session: AsyncSession, make_student, class_id: UUID, year_id: UUID
) -> None:
    student = await make_student()
    first = await service.enroll(db_session, _enroll(student, class_id, year_id))
    assert first.status == EnrollmentStatus.ACTIVE.value
    assert first.enrollment_date == date.today()

    with pytest.raises(DuplicateError):
        await service.enroll(db_session, _enroll(student, class_id, year_id))

    rows = (await db_session.execute(select(Enrollment).where(Enrollment.student_id == student))).scalars().all()
    assert len(rows) == 1


@pytest.mark.asyncio
async def test_duplicate_regardless_of_existing_status(
    db_session: AsyncSession, make_student, class_id: UUID, year_id: UUID
) -> None:
    student = await make_student()
    first = await service.enroll(db_session, _enroll(student, class_id, year_id))
    await service.update_enrollment_status(
        db_session, first.id, EnrollmentStatusUpdate(status=EnrollmentStatus.TRANSFERRED)
    )
    with pytest.raises(DuplicateError):
        await service.enroll(db_session, _enroll(student, class_id, year_id))


@pytest.mark.asyncio
async def test_enroll_unknown_class_or_year(
    db_session: AsyncSession, make_student, class_id: UUID, year_id: UUID
) -> None:
    student = await make_student()
    with pytest.raises(NotFoundError):
        await service.enroll(db_session, _enroll(student, uuid4(), year_id))
    with pytest.raises(NotFoundError):
        await service.enroll(db_session, _enroll(student, class_id, uuid4()))


@pytest.mark.asyncio
async def test_enroll_into_inactive_year_rejected(
    db_session: AsyncSession, make_student, class_id: UUID, school_id: UUID
) -> None:
    closed = AcademicYear(
        school_id=school_id,
        name="2019/2020",
        year_code="AY-2019",
        start_date=date(2019, 7, 1),
        end_date=date(2020, 6, 30),
        is_active=False,
    )
    db_session.add(closed)
    await db_session.commit()
    closed_id = closed.id
    with pytest.raises(ValidationError):
        await service.enroll(db_session, _enroll(await make_student(), class_id, closed_id))


@pytest.mark.asyncio
async def test_recompute_class_ranks_by_enrollment_date(
    db_session: AsyncSession, make_student, class_id: UUID, year_id: UUID
) -> None:
    late = await service.enroll(db_session, _enroll(await make_student(), class_id, year_id, enrollment_date=date(2024, 8, 3)))
    early = await service.enroll(db_session, _enroll(await make_student(), class_id, year_id, enrollment_date=date(2024, 7, 1)))
    middle = await service.enroll(db_session, _enroll(await make_student(), class_id, year_id, enrollment_date=date(2024, 7, 15)))
    suspended = await service.enroll(db_session, _enroll(await make_student(), class_id, year_id, enrollment_date=date(2024, 6, 1)))
    await service.update_enrollment_status(db_session, suspended.id, EnrollmentStatusUpdate(status=EnrollmentStatus.SUSPENDED))

    assert await service.recompute_class_ranks(db_session, class_id, year_id) == 3

    listed = await service.list_class_enrollments(db_session, class_id, academic_year_id=year_id)
    assert [e.id for e in listed] == [early.id, middle.id, late.id]
    assert [e.class_rank for e in listed] == [1, 2, 3]
    assert (await service.get_enrollment(db_session, suspended.id)).class_rank is None


@pytest.mark.asyncio
async def test_recompute_class_ranks_failure_keeps_previous_ranks(
    db_session: AsyncSession, make_student, class_id: UUID, year_id: UUID, monkeypatch: pytest.MonkeyPatch
) -> None:
    first = await service.enroll(db_session, _enroll(await make_student(), class_id, year_id, enrollment_date=date(2024, 7, 1)))
    second = await service.enroll(db_session, _enroll(await make_student(), class_id, year_id, enrollment_date=date(2024, 7, 2)))
    await service.recompute_class_ranks(db_session, class_id, year_id)
    earliest = await service.enroll(db_session, _enroll(await make_student(), class_id, year_id, enrollment_date=date(2024, 6, 1)))

    async def _flush_then_fail() -> None:
        await db_session.flush()
        raise RuntimeError("connection lost")

    # new ranks reach the database, then the commit fails
    monkeypatch.setattr(db_session, "commit", _flush_then_fail)
    with pytest.raises(RuntimeError):
        await service.recompute_class_ranks(db_session, class_id, year_id)
    monkeypatch.undo()

    rows = await db_session.execute(
        select(Enrollment.id, Enrollment.class_rank).where(Enrollment.class_id == class_id)
    )
    ranks = {row.id: row.class_rank for row in rows.all()}
    assert ranks == {first.id: 1, second.id: 2, earliest.id: None}


@pytest.mark.asyncio
async def test_promote_keeps_source_enrollment_active(
    db_session: AsyncSession, make_student, make_class, class_id: UUID, year_id: UUID, next_year_id: UUID
) -> None:
    student = await make_student("U1")
    await service.enroll(db_session, _enroll(student, class_id, year_id))
    destination = await make_class(next_year_id, "8A")

    promoted = await service.promote(
        db_session,
        PromotionRequest(
            from_academic_year_id=year_id,
            to_academic_year_id=next_year_id,
            from_class_id=class_id,
            to_class_id=destination,
        ),
    )
    assert promoted == 1

    rows = (
        await db_session.execute(select(Enrollment).where(Enrollment.student_id == student))
    ).scalars().all()
    by_class = {(r.class_id, r.academic_year_id): r for r in rows}
    assert len(rows) == 2
    assert by_class[(class_id, year_id)].status == EnrollmentStatus.ACTIVE.value
    assert by_class[(destination, next_year_id)].status == EnrollmentStatus.ACTIVE.value
    assert by_class[(destination, next_year_id)].notes == service.PROMOTION_NOTE


@pytest.mark.asyncio
async def test_promote_rolls_back_whole_batch_on_duplicate(
    db_session: AsyncSession, make_student, make_class, class_id: UUID, year_id: UUID, next_year_id: UUID
) -> None:
    destination = await make_class(next_year_id, "8A")
    already_there = await make_student("already")
    newcomer = await make_student("newcomer")
    await service.enroll(db_session, _enroll(already_there, class_id, year_id))
    await service.enroll(db_session, _enroll(newcomer, class_id, year_id))
    await service.enroll(db_session, _enroll(already_there, destination, next_year_id))

    with pytest.raises(DuplicateError):
        await service.promote(
            db_session,
            PromotionRequest(
                from_academic_year_id=year_id,
                to_academic_year_id=next_year_id,
                from_class_id=class_id,
                to_class_id=destination,
            ),
        )

    rows = (
        await db_session.execute(select(Enrollment.student_id).where(Enrollment.class_id == destination))
    ).scalars().all()
    assert rows == [already_there]


@pytest.mark.asyncio
async def test_status_transitions(
    db_session: AsyncSession, make_student, class_id: UUID, year_id: UUID, monkeypatch
) -> None:
    e = await service.enroll(db_session, _enroll(await make_student(), class_id, year_id))
    graduated = await service.update_enrollment_status(
        db_session, e.id, EnrollmentStatusUpdate(status=EnrollmentStatus.GRADUATED)
    )
    assert graduated.graduation_date == date.today()

    with pytest.raises(InvalidTransitionError):
        await service.update_enrollment_status(db_session, e.id, EnrollmentStatusUpdate(status=EnrollmentStatus.ACTIVE))

    monkeypatch.setattr(settings, "enforce_status_transitions", False)
    reopened = await service.update_enrollment_status(
        db_session, e.id, EnrollmentStatusUpdate(status=EnrollmentStatus.ACTIVE)
    )
    assert reopened.status == EnrollmentStatus.ACTIVE.value


@pytest.mark.asyncio
async def test_enrollment_and_class_statistics(
    db_session: AsyncSession,
    make_student,
    class_id: UUID,
    year_id: UUID,
    subject_id: UUID,
    teacher_id: UUID,
) -> None:
    a = await service.enroll(db_session, _enroll(await make_student(), class_id, year_id))
    b = await service.enroll(db_session, _enroll(await make_student(), class_id, year_id))
    gone = await service.enroll(db_session, _enroll(await make_student(), class_id, year_id))
    await service.update_enrollment_status(db_session, gone.id, EnrollmentStatusUpdate(status=EnrollmentStatus.TRANSFERRED))

    statuses = [AttendanceStatus.PRESENT, AttendanceStatus.PRESENT, AttendanceStatus.ABSENT, AttendanceStatus.SICK]
    for offset, st in enumerate(statuses):
        db_session.add(Attendance(enrollment_id=a.id, attendance_date=date(2024, 9, 1 + offset), status=st.value))
    db_session.add(Attendance(enrollment_id=b.id, attendance_date=date(2024, 9, 1), status=AttendanceStatus.PRESENT.value))
    for semester, score in ((1, 80.0), (2, 90.0)):
        db_session.add(
            Grade(
                enrollment_id=a.id,
                subject_id=subject_id,
                teacher_id=teacher_id,
                academic_year_id=year_id,
                assessment_type="quiz",
                score=score,
                semester=semester,
                assessment_date=date(2024, 9, 10),
            )
        )
    await db_session.commit()

    stats = await service.enrollment_statistics(db_session, a.id)
    assert stats.attendance_rate == 50.0
    assert stats.average_grade == 85.0
    assert stats.total_attendances == 4
    assert stats.total_grades == 2

    class_stats = await service.class_enrollment_statistics(db_session, class_id, academic_year_id=year_id)
    assert class_stats.total_students == 3
    assert class_stats.active_students == 2
    assert class_stats.transferred_students == 1
    assert class_stats.average_attendance_rate == 75.0
    assert class_stats.average_grade == 85.0

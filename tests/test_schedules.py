from datetime import datetime, time
from uuid import UUID, uuid4

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from sis.api.v1.schedules import service
from sis.api.v1.schedules.schemas import ScheduleCreate, ScheduleUpdate
from sis.core.enums import DayOfWeek
from sis.core.exceptions import DuplicateError, ScheduleConflictError, ValidationError


@pytest.fixture()
def slot(year_id: UUID, class_id: UUID, subject_id: UUID, teacher_id: UUID):
    def _slot(start: str, end: str, day: DayOfWeek = DayOfWeek.MONDAY, **overrides) -> ScheduleCreate:
        data = {
            "academic_year_id": year_id,
            "class_id": class_id,
            "subject_id": subject_id,
            "teacher_id": teacher_id,
            "day_of_week": day,
            "start_time": start,
            "end_time": end,
        }
        data.update(overrides)
        return ScheduleCreate(**data)

    return _slot


def test_overlap_is_half_open() -> None:
    assert service.times_overlap(time(8), time(9), time(8, 30), time(9, 30))
    assert service.times_overlap(time(8), time(10), time(8, 30), time(9))
    assert not service.times_overlap(time(8), time(9), time(9), time(10))
    assert not service.times_overlap(time(9), time(10), time(8), time(9))


def test_next_occurrence() -> None:
    # 2025-01-06 is a Monday
    monday_morning = datetime(2025, 1, 6, 7, 0)
    assert service.next_occurrence(DayOfWeek.MONDAY, time(8), monday_morning) == datetime(2025, 1, 6, 8, 0)
    assert service.next_occurrence(DayOfWeek.WEDNESDAY, time(8), monday_morning) == datetime(2025, 1, 8, 8, 0)

    # today's slot already started: next week
    monday_noon = datetime(2025, 1, 6, 12, 0)
    assert service.next_occurrence(DayOfWeek.MONDAY, time(8), monday_noon) == datetime(2025, 1, 13, 8, 0)
    assert service.next_occurrence(DayOfWeek.SUNDAY, time(8), monday_noon) == datetime(2025, 1, 12, 8, 0)


def test_is_happening_now_and_duration() -> None:
    monday = datetime(2025, 1, 6, 8, 30)
    assert service.is_happening_now(DayOfWeek.MONDAY, time(8), time(9), monday)
    assert not service.is_happening_now(DayOfWeek.MONDAY, time(8), time(9), monday.replace(hour=9, minute=0))
    assert not service.is_happening_now(DayOfWeek.TUESDAY, time(8), time(9), monday)
    assert service.duration_minutes(time(8), time(9, 45)) == 105


@pytest.mark.asyncio
async def test_back_to_back_slots_do_not_conflict(db_session: AsyncSession, slot, class_id: UUID) -> None:
    a = await service.create_schedule(db_session, slot("08:00", "09:00"))

    assert not await service.check_conflict(
        db_session, None, DayOfWeek.MONDAY, time(9), time(10), class_id=class_id
    )
    await service.create_schedule(db_session, slot("09:00", "10:00"))
    # a re-checked against b
    assert not await service.check_conflict(
        db_session, a.id, DayOfWeek.MONDAY, time(8), time(9), class_id=class_id
    )


@pytest.mark.asyncio
async def test_overlap_conflicts_in_both_directions(db_session: AsyncSession, slot, class_id: UUID) -> None:
    a = await service.create_schedule(db_session, slot("08:00", "09:00"))
    assert await service.check_conflict(db_session, None, DayOfWeek.MONDAY, time(8, 30), time(9, 30), class_id=class_id)

    b = await service.create_schedule(db_session, slot("08:30", "09:30", day=DayOfWeek.TUESDAY))
    # b moved onto Monday would overlap a, and a would overlap b
    assert await service.check_conflict(db_session, b.id, DayOfWeek.MONDAY, time(8, 30), time(9, 30), class_id=class_id)
    assert await service.check_conflict(db_session, a.id, DayOfWeek.TUESDAY, time(8), time(9), class_id=class_id)

    with pytest.raises(ScheduleConflictError):
        await service.create_schedule(db_session, slot("08:30", "09:30"))


@pytest.mark.asyncio
async def test_teacher_double_booking_across_classes(
    db_session: AsyncSession, slot, make_class, year_id: UUID, teacher_id: UUID
) -> None:
    await service.create_schedule(db_session, slot("10:00", "11:00"))
    other_class = await make_class(year_id, "7B")
    with pytest.raises(ScheduleConflictError) as exc:
        await service.create_schedule(db_session, slot("10:30", "11:30", class_id=other_class))
    assert "Teacher" in exc.value.message

    # different teacher, different class: fine
    ok = await service.create_schedule(
        db_session, slot("10:30", "11:30", class_id=other_class, teacher_id=uuid4())
    )
    assert ok.is_active


@pytest.mark.asyncio
async def test_inactive_and_deleted_slots_are_ignored(db_session: AsyncSession, slot, class_id: UUID) -> None:
    inactive = await service.create_schedule(db_session, slot("08:00", "09:00", is_active=False))
    assert not await service.check_conflict(db_session, None, DayOfWeek.MONDAY, time(8), time(9), class_id=class_id)

    active = await service.create_schedule(db_session, slot("08:15", "08:45"))
    # re-activating the overlapping slot is rejected
    with pytest.raises(ScheduleConflictError):
        await service.toggle_schedule_status(db_session, inactive.id)

    await service.delete_schedule(db_session, active.id)
    toggled = await service.toggle_schedule_status(db_session, inactive.id)
    assert toggled.is_active is True


@pytest.mark.asyncio
async def test_exact_duplicate_slot_hits_unique_index(db_session: AsyncSession, slot) -> None:
    await service.create_schedule(db_session, slot("08:00", "09:00", is_active=False))
    with pytest.raises(DuplicateError):
        await service.create_schedule(db_session, slot("08:00", "09:00", is_active=False))


@pytest.mark.asyncio
async def test_end_must_follow_start(db_session: AsyncSession, slot) -> None:
    with pytest.raises(ValidationError):
        await service.create_schedule(db_session, slot("09:00", "09:00"))


@pytest.mark.asyncio
async def test_update_checks_conflicts_excluding_itself(db_session: AsyncSession, slot) -> None:
    first = await service.create_schedule(db_session, slot("08:00", "09:00"))
    second = await service.create_schedule(db_session, slot("09:00", "10:00"))

    moved = await service.update_schedule(db_session, second.id, ScheduleUpdate(end_time="10:30"))
    assert moved.end_time == time(10, 30)

    with pytest.raises(ScheduleConflictError):
        await service.update_schedule(db_session, second.id, ScheduleUpdate(start_time="08:30"))

    unchanged = await service.get_schedule(db_session, second.id)
    assert unchanged.start_time == time(9)
    assert (await service.get_schedule(db_session, first.id)).end_time == time(9)


@pytest.mark.asyncio
async def test_weekly_and_next_schedule(db_session: AsyncSession, slot, class_id: UUID) -> None:
    await service.create_schedule(db_session, slot("10:00", "11:00"))
    await service.create_schedule(db_session, slot("08:00", "09:00"))
    wednesday = await service.create_schedule(db_session, slot("13:00", "14:00", day=DayOfWeek.WEDNESDAY))

    week = await service.weekly_schedule(db_session, class_id=class_id)
    assert list(week) == [d.value for d in DayOfWeek]
    assert [s.start_time for s in week["Monday"]] == [time(8), time(10)]
    assert len(week["Wednesday"]) == 1
    assert week["Sunday"] == []

    # Monday 2025-01-06 after the last Monday class
    upcoming = await service.next_schedule(db_session, datetime(2025, 1, 6, 11, 30), class_id=class_id)
    assert upcoming.schedule.id == wednesday.id
    assert upcoming.starts_at == datetime(2025, 1, 8, 13, 0)

    now = await service.happening_now(db_session, datetime(2025, 1, 6, 8, 15), class_id=class_id)
    assert [s.start_time for s in now] == [time(8)]


@pytest.mark.asyncio
async def test_conflicting_schedule_endpoint_returns_409(
    client: AsyncClient, auth_headers: dict, year_id: UUID, class_id: UUID, subject_id: UUID, teacher_id: UUID
) -> None:
    payload = {
        "academic_year_id": str(year_id),
        "class_id": str(class_id),
        "subject_id": str(subject_id),
        "teacher_id": str(teacher_id),
        "day_of_week": "Monday",
        "start_time": "08:00",
        "end_time": "09:00",
    }
    response = await client.post("/api/v1/schedules", json=payload, headers=auth_headers)
    assert response.status_code == 201
    assert response.json()["start_time"] == "08:00"
    assert response.json()["duration_minutes"] == 60

    payload.update(start_time="08:30", end_time="09:30")
    response = await client.post("/api/v1/schedules", json=payload, headers=auth_headers)
    assert response.status_code == 409

from datetime import date
from uuid import UUID, uuid4

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from sis.api.v1.academic_years import service
from sis.api.v1.academic_years.schemas import AcademicYearCreate, AcademicYearUpdate
from sis.core.exceptions import ConsistencyError, DuplicateError, NotFoundError, ValidationError
from sis.core.models import AcademicYear


def _payload(school_id: UUID, code: str, start: date, end: date, **kwargs) -> AcademicYearCreate:
    return AcademicYearCreate(
        school_id=school_id,
        name=kwargs.pop("name", code),
        year_code=code,
        start_date=start,
        end_date=end,
        **kwargs,
    )


async def _current_count(db: AsyncSession, school_id: UUID) -> int:
    result = await db.execute(
        select(func.count(AcademicYear.id)).where(
            AcademicYear.school_id == school_id,
            AcademicYear.is_current.is_(True),
        )
    )
    return result.scalar_one()


def test_label_and_overlap_helpers() -> None:
    assert service.academic_year_label(date(2024, 7, 1), date(2025, 6, 30)) == "2024/25"
    # shared boundary day counts as overlap
    assert service.ranges_overlap(date(2025, 6, 30), date(2026, 6, 30), date(2024, 7, 1), date(2025, 6, 30))
    assert not service.ranges_overlap(date(2025, 7, 1), date(2026, 6, 30), date(2024, 7, 1), date(2025, 6, 30))
    # enclosing range
    assert service.ranges_overlap(date(2020, 1, 1), date(2030, 1, 1), date(2024, 7, 1), date(2025, 6, 30))


@pytest.mark.asyncio
async def test_overlapping_year_detected_and_rejected(db_session: AsyncSession, school_id: UUID) -> None:
    await service.create_academic_year(db_session, _payload(school_id, "X", date(2024, 7, 1), date(2025, 6, 30)))

    assert await service.validate_non_overlapping(db_session, school_id, date(2025, 1, 1), date(2025, 12, 31))
    with pytest.raises(ValidationError):
        await service.create_academic_year(
            db_session, _payload(school_id, "Y", date(2025, 1, 1), date(2025, 12, 31))
        )


@pytest.mark.asyncio
async def test_overlap_is_scoped_to_school(db_session: AsyncSession, school_id: UUID) -> None:
    await service.create_academic_year(db_session, _payload(school_id, "X", date(2024, 7, 1), date(2025, 6, 30)))
    assert not await service.validate_non_overlapping(db_session, uuid4(), date(2025, 1, 1), date(2025, 12, 31))


@pytest.mark.asyncio
async def test_update_excludes_itself_from_overlap(db_session: AsyncSession, school_id: UUID) -> None:
    created = await service.create_academic_year(
        db_session, _payload(school_id, "X", date(2024, 7, 1), date(2025, 6, 30))
    )
    updated = await service.update_academic_year(
        db_session, created.id, AcademicYearUpdate(end_date=date(2025, 7, 15))
    )
    assert updated.end_date == date(2025, 7, 15)


@pytest.mark.asyncio
async def test_end_before_start_rejected(db_session: AsyncSession, school_id: UUID) -> None:
    with pytest.raises(ValidationError):
        await service.create_academic_year(db_session, _payload(school_id, "X", date(2025, 6, 30), date(2024, 7, 1)))


@pytest.mark.asyncio
async def test_year_code_is_globally_unique(db_session: AsyncSession, school_id: UUID) -> None:
    await service.create_academic_year(db_session, _payload(school_id, "AY-1", date(2024, 7, 1), date(2025, 6, 30)))
    assert await service.validate_unique_code(db_session, "AY-1")

    other_school = uuid4()
    with pytest.raises(DuplicateError):
        await service.create_academic_year(
            db_session, _payload(other_school, "AY-1", date(2024, 7, 1), date(2025, 6, 30))
        )


@pytest.mark.asyncio
async def test_set_current_leaves_exactly_one(db_session: AsyncSession, school_id: UUID) -> None:
    first = await service.create_academic_year(
        db_session,
        _payload(school_id, "A", date(2023, 7, 1), date(2024, 6, 30), set_as_current=True),
    )
    second = await service.create_academic_year(
        db_session, _payload(school_id, "B", date(2024, 7, 1), date(2025, 6, 30))
    )
    assert await _current_count(db_session, school_id) == 1

    result = await service.set_current(db_session, second.id)
    assert result.is_current is True
    assert await _current_count(db_session, school_id) == 1

    current = await service.get_current_academic_year(db_session, school_id)
    assert current.id == second.id

    # back again
    await service.set_current(db_session, first.id)
    assert await _current_count(db_session, school_id) == 1
    assert (await service.get_current_academic_year(db_session, school_id)).id == first.id


@pytest.mark.asyncio
async def test_create_as_current_clears_previous(db_session: AsyncSession, school_id: UUID) -> None:
    await service.create_academic_year(
        db_session, _payload(school_id, "A", date(2023, 7, 1), date(2024, 6, 30), set_as_current=True)
    )
    newer = await service.create_academic_year(
        db_session, _payload(school_id, "B", date(2024, 7, 1), date(2025, 6, 30), set_as_current=True)
    )
    assert await _current_count(db_session, school_id) == 1
    assert (await service.get_current_academic_year(db_session, school_id)).id == newer.id


@pytest.mark.asyncio
async def test_set_current_unknown_id(db_session: AsyncSession) -> None:
    with pytest.raises(NotFoundError):
        await service.set_current(db_session, uuid4())


@pytest.mark.asyncio
async def test_set_current_rejects_inactive_year(db_session: AsyncSession, school_id: UUID) -> None:
    closed = await service.create_academic_year(
        db_session, _payload(school_id, "A", date(2023, 7, 1), date(2024, 6, 30), is_active=False)
    )
    with pytest.raises(ValidationError):
        await service.set_current(db_session, closed.id)


@pytest.mark.asyncio
async def test_create_inactive_as_current_rejected(db_session: AsyncSession, school_id: UUID) -> None:
    with pytest.raises(ValidationError):
        await service.create_academic_year(
            db_session,
            _payload(school_id, "A", date(2023, 7, 1), date(2024, 6, 30), is_active=False, set_as_current=True),
        )
    assert await service.get_current_academic_year(db_session, school_id) is None


@pytest.mark.asyncio
async def test_set_current_race_surfaces_consistency_error(
    db_session: AsyncSession, school_id: UUID, monkeypatch: pytest.MonkeyPatch
) -> None:
    first = await service.create_academic_year(
        db_session, _payload(school_id, "A", date(2023, 7, 1), date(2024, 6, 30), set_as_current=True)
    )
    second = await service.create_academic_year(
        db_session, _payload(school_id, "B", date(2024, 7, 1), date(2025, 6, 30))
    )

    async def _other_caller_kept_current(db: AsyncSession, school_id: UUID) -> None:
        return None

    # first stays current as if another caller set it between the clear and the write
    monkeypatch.setattr(service, "_clear_current", _other_caller_kept_current)
    with pytest.raises(ConsistencyError):
        await service.set_current(db_session, second.id)

    assert await _current_count(db_session, school_id) == 1
    assert (await service.get_current_academic_year(db_session, school_id)).id == first.id


@pytest.mark.asyncio
async def test_deleted_year_is_hidden_and_not_current(db_session: AsyncSession, school_id: UUID) -> None:
    ay = await service.create_academic_year(
        db_session, _payload(school_id, "A", date(2023, 7, 1), date(2024, 6, 30), set_as_current=True)
    )
    await service.delete_academic_year(db_session, ay.id)

    assert await service.get_current_academic_year(db_session, school_id) is None
    assert await service.list_academic_years(db_session, school_id) == []
    with pytest.raises(NotFoundError):
        await service.get_academic_year(db_session, ay.id)


@pytest.mark.asyncio
async def test_set_current_endpoint(client: AsyncClient, auth_headers: dict, school_id: UUID) -> None:
    payload = {
        "school_id": str(school_id),
        "name": "2024/2025",
        "year_code": "HTTP-2024",
        "start_date": "2024-07-01",
        "end_date": "2025-06-30",
    }
    response = await client.post("/api/v1/academic-years", json=payload, headers=auth_headers)
    assert response.status_code == 201
    ay_id = response.json()["id"]
    assert response.json()["label"] == "2024/25"

    response = await client.post(f"/api/v1/academic-years/{ay_id}/set-current", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["is_current"] is True

    response = await client.get("/api/v1/academic-years/current", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["id"] == ay_id


@pytest.mark.asyncio
async def test_requests_without_token_are_rejected(client: AsyncClient) -> None:
    response = await client.get("/api/v1/academic-years")
    assert response.status_code == 401

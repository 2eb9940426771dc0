from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from sis.core.exceptions import ConsistencyError, DuplicateError, ValidationError
from sis.core.logging import get_logger
from sis.core.models import AcademicYear
from sis.core.repository import get_live_or_404
from sis.db.transaction import atomic

from .schemas import AcademicYearCreate, AcademicYearResponse, AcademicYearUpdate

logger = get_logger(__name__)


def academic_year_label(start_date: date, end_date: date) -> str:
    """e.g. 2024-07-01..2025-06-30 -> '2024/25'."""
    return f"{start_date:%Y}/{end_date:%y}"


def ranges_overlap(start_a: date, end_a: date, start_b: date, end_b: date) -> bool:
    """True if [start_a, end_a] touches [start_b, end_b]; inclusive on both ends."""
    return (
        start_b <= start_a <= end_b
        or start_b <= end_a <= end_b
        or (start_a <= start_b and end_a >= end_b)
    )


def _to_response(ay: AcademicYear) -> AcademicYearResponse:
    return AcademicYearResponse(
        id=ay.id,
        school_id=ay.school_id,
        name=ay.name,
        year_code=ay.year_code,
        start_date=ay.start_date,
        end_date=ay.end_date,
        is_active=ay.is_active,
        is_current=ay.is_current,
        description=ay.description,
        label=academic_year_label(ay.start_date, ay.end_date),
        created_at=ay.created_at,
        updated_at=ay.updated_at,
    )


def _validate_dates(start_date: date, end_date: date) -> None:
    if end_date <= start_date:
        raise ValidationError("end_date must be after start_date")


def _duplicate_code(year_code: str) -> DuplicateError:
    return DuplicateError(f"Academic year with code '{year_code}' already exists")


async def validate_non_overlapping(
    db: AsyncSession,
    school_id: UUID,
    start_date: date,
    end_date: date,
    exclude_id: Optional[UUID] = None,
) -> bool:
    """Return True if the proposed range overlaps another live academic year of the school."""
    stmt = select(AcademicYear.id).where(
        AcademicYear.school_id == school_id,
        AcademicYear.deleted_at.is_(None),
        or_(
            AcademicYear.start_date.between(start_date, end_date),
            AcademicYear.end_date.between(start_date, end_date),
            and_(AcademicYear.start_date <= start_date, AcademicYear.end_date >= end_date),
        ),
    )
    if exclude_id is not None:
        stmt = stmt.where(AcademicYear.id != exclude_id)
    result = await db.execute(stmt.limit(1))
    return result.scalar_one_or_none() is not None


async def validate_unique_code(
    db: AsyncSession,
    year_code: str,
    exclude_id: Optional[UUID] = None,
) -> bool:
    """Return True if year_code is already taken by any school (the constraint is global)."""
    stmt = select(AcademicYear.id).where(AcademicYear.year_code == year_code)
    if exclude_id is not None:
        stmt = stmt.where(AcademicYear.id != exclude_id)
    result = await db.execute(stmt.limit(1))
    return result.scalar_one_or_none() is not None


async def _clear_current(db: AsyncSession, school_id: UUID) -> None:
    await db.execute(
        update(AcademicYear)
        .where(AcademicYear.school_id == school_id, AcademicYear.is_current.is_(True))
        .values(is_current=False)
    )


async def _count_current(db: AsyncSession, school_id: UUID) -> int:
    result = await db.execute(
        select(func.count(AcademicYear.id)).where(
            AcademicYear.school_id == school_id,
            AcademicYear.is_current.is_(True),
            AcademicYear.deleted_at.is_(None),
        )
    )
    return result.scalar_one()


async def create_academic_year(
    db: AsyncSession,
    payload: AcademicYearCreate,
    actor_id: Optional[UUID] = None,
) -> AcademicYearResponse:
    """Create academic year. If set_as_current, unset current on the school's other years (same transaction)."""
    _validate_dates(payload.start_date, payload.end_date)
    if payload.set_as_current and not payload.is_active:
        raise ValidationError("Cannot set an inactive academic year as current")
    if await validate_non_overlapping(db, payload.school_id, payload.start_date, payload.end_date):
        raise ValidationError("Date range overlaps with an existing academic year")
    year_code = payload.year_code.strip()
    async with atomic(db, "create_academic_year", _duplicate_code(year_code)):
        if payload.set_as_current:
            await _clear_current(db, payload.school_id)
        ay = AcademicYear(
            school_id=payload.school_id,
            name=payload.name.strip(),
            year_code=year_code,
            start_date=payload.start_date,
            end_date=payload.end_date,
            is_active=payload.is_active,
            is_current=payload.set_as_current,
            description=payload.description,
            created_by=actor_id,
            updated_by=actor_id,
        )
        db.add(ay)
    logger.info("academic_year_created", academic_year_id=str(ay.id), school_id=str(ay.school_id))
    return _to_response(ay)


async def list_academic_years(
    db: AsyncSession,
    school_id: UUID,
    active: Optional[bool] = None,
) -> List[AcademicYearResponse]:
    """List live academic years for a school, newest first."""
    stmt = select(AcademicYear).where(
        AcademicYear.school_id == school_id,
        AcademicYear.deleted_at.is_(None),
    )
    if active is not None:
        stmt = stmt.where(AcademicYear.is_active.is_(active))
    stmt = stmt.order_by(AcademicYear.start_date.desc())
    result = await db.execute(stmt)
    return [_to_response(ay) for ay in result.scalars().all()]


async def get_academic_year(db: AsyncSession, academic_year_id: UUID) -> AcademicYearResponse:
    ay = await get_live_or_404(db, AcademicYear, academic_year_id, "Academic year")
    return _to_response(ay)


async def get_current_academic_year(db: AsyncSession, school_id: UUID) -> Optional[AcademicYearResponse]:
    """Read straight from storage on every call; the current year is never cached."""
    result = await db.execute(
        select(AcademicYear).where(
            AcademicYear.school_id == school_id,
            AcademicYear.is_current.is_(True),
            AcademicYear.deleted_at.is_(None),
        )
    )
    ay = result.scalar_one_or_none()
    return _to_response(ay) if ay else None


async def update_academic_year(
    db: AsyncSession,
    academic_year_id: UUID,
    payload: AcademicYearUpdate,
    actor_id: Optional[UUID] = None,
) -> AcademicYearResponse:
    ay = await get_live_or_404(db, AcademicYear, academic_year_id, "Academic year")
    start_date = payload.start_date if payload.start_date is not None else ay.start_date
    end_date = payload.end_date if payload.end_date is not None else ay.end_date
    if payload.start_date is not None or payload.end_date is not None:
        _validate_dates(start_date, end_date)
        if await validate_non_overlapping(db, ay.school_id, start_date, end_date, exclude_id=ay.id):
            raise ValidationError("Date range overlaps with an existing academic year")
    year_code = payload.year_code.strip() if payload.year_code is not None else ay.year_code
    async with atomic(db, "update_academic_year", _duplicate_code(year_code)):
        if payload.name is not None:
            ay.name = payload.name.strip()
        ay.year_code = year_code
        ay.start_date = start_date
        ay.end_date = end_date
        if payload.is_active is not None:
            ay.is_active = payload.is_active
        if payload.description is not None:
            ay.description = payload.description
        ay.updated_by = actor_id
    logger.info("academic_year_updated", academic_year_id=str(academic_year_id))
    return _to_response(ay)


async def set_current(
    db: AsyncSession,
    academic_year_id: UUID,
    actor_id: Optional[UUID] = None,
) -> AcademicYearResponse:
    """Make this the school's only current year: clear every other flag, then set, as one unit."""
    ay = await get_live_or_404(db, AcademicYear, academic_year_id, "Academic year")
    if not ay.is_active:
        raise ValidationError("Cannot set an inactive academic year as current")
    school_id = ay.school_id
    conflict = ConsistencyError("Another academic year became current concurrently; retry the operation")
    async with atomic(db, "set_current_academic_year", conflict):
        await _clear_current(db, school_id)
        ay.is_current = True
        ay.updated_by = actor_id
        await db.flush()
        current_count = await _count_current(db, school_id)
        if current_count != 1:
            raise ConsistencyError(f"School has {current_count} current academic years after update")
    logger.info("academic_year_set_current", academic_year_id=str(academic_year_id), school_id=str(school_id))
    return _to_response(ay)


async def delete_academic_year(
    db: AsyncSession,
    academic_year_id: UUID,
    actor_id: Optional[UUID] = None,
) -> bool:
    """Soft delete. A deleted year is never current."""
    ay = await get_live_or_404(db, AcademicYear, academic_year_id, "Academic year")
    async with atomic(db, "delete_academic_year", ConsistencyError("Academic year could not be deleted")):
        ay.is_current = False
        ay.deleted_at = datetime.utcnow()
        ay.updated_by = actor_id
    logger.info("academic_year_deleted", academic_year_id=str(academic_year_id))
    return True

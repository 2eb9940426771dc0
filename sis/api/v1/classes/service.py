from typing import Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from sis.core.enums import EnrollmentStatus
from sis.core.exceptions import DuplicateError
from sis.core.logging import get_logger
from sis.core.models import AcademicYear, ClassGroup, Enrollment
from sis.core.repository import get_live_or_404
from sis.db.transaction import atomic

from .schemas import ClassCapacity, ClassCreate, ClassResponse

logger = get_logger(__name__)


def has_available_slots(current_student_count: int, max_students: Optional[int]) -> bool:
    return max_students is None or current_student_count < max_students


def _to_response(c: ClassGroup) -> ClassResponse:
    return ClassResponse(
        id=c.id,
        school_id=c.school_id,
        academic_year_id=c.academic_year_id,
        name=c.name,
        class_code=c.class_code,
        level_id=c.level_id,
        homeroom_teacher_id=c.homeroom_teacher_id,
        max_students=c.max_students,
        order=c.order,
        is_active=c.is_active,
        created_at=c.created_at,
    )


async def create_class(
    db: AsyncSession,
    payload: ClassCreate,
    actor_id: Optional[UUID] = None,
) -> ClassResponse:
    await get_live_or_404(db, AcademicYear, payload.academic_year_id, "Academic year")
    conflict = DuplicateError(f"Class code '{payload.class_code}' already exists for this school and academic year")
    async with atomic(db, "create_class", conflict):
        obj = ClassGroup(
            school_id=payload.school_id,
            academic_year_id=payload.academic_year_id,
            name=payload.name.strip(),
            class_code=payload.class_code.strip(),
            level_id=payload.level_id,
            homeroom_teacher_id=payload.homeroom_teacher_id,
            max_students=payload.max_students,
            order=payload.order,
            created_by=actor_id,
            updated_by=actor_id,
        )
        db.add(obj)
    logger.info("class_created", class_id=str(obj.id), academic_year_id=str(obj.academic_year_id))
    return _to_response(obj)


async def get_class(db: AsyncSession, class_id: UUID) -> ClassResponse:
    obj = await get_live_or_404(db, ClassGroup, class_id, "Class")
    return _to_response(obj)


async def count_active_students(db: AsyncSession, class_id: UUID) -> int:
    result = await db.execute(
        select(func.count(Enrollment.id)).where(
            Enrollment.class_id == class_id,
            Enrollment.status == EnrollmentStatus.ACTIVE.value,
            Enrollment.deleted_at.is_(None),
        )
    )
    return result.scalar_one()


async def class_capacity(db: AsyncSession, class_id: UUID) -> ClassCapacity:
    obj = await get_live_or_404(db, ClassGroup, class_id, "Class")
    count = await count_active_students(db, class_id)
    return ClassCapacity(
        class_id=obj.id,
        current_student_count=count,
        max_students=obj.max_students,
        has_available_slots=has_available_slots(count, obj.max_students),
    )

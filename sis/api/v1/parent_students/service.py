from datetime import datetime
from typing import List, Optional
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from sis.core.enums import UserRole
from sis.core.exceptions import ConsistencyError, DuplicateError, ValidationError
from sis.core.logging import get_logger
from sis.core.models import ParentStudent, User
from sis.core.repository import get_live_or_404
from sis.db.transaction import atomic

from .schemas import ParentStudentCreate, ParentStudentResponse, ParentStudentStatistics, ParentStudentUpdate

logger = get_logger(__name__)

ALREADY_LINKED = "This parent-student relationship already exists"


def _to_response(ps: ParentStudent) -> ParentStudentResponse:
    return ParentStudentResponse(
        id=ps.id,
        parent_id=ps.parent_id,
        student_id=ps.student_id,
        relationship=ps.relationship,
        guardian_type=ps.guardian_type,
        is_primary=ps.is_primary,
        notes=ps.notes,
        created_at=ps.created_at,
    )


async def _require_user(db: AsyncSession, user_id: UUID, role: UserRole, label: str) -> User:
    user = await get_live_or_404(db, User, user_id, label)
    if user.role != role.value:
        raise ValidationError(f"{label} must have role {role.value}")
    return user


async def _clear_primary(db: AsyncSession, student_id: UUID) -> None:
    await db.execute(
        update(ParentStudent)
        .where(ParentStudent.student_id == student_id, ParentStudent.is_primary.is_(True))
        .values(is_primary=False)
    )


async def _count_primary(db: AsyncSession, student_id: UUID) -> int:
    result = await db.execute(
        select(func.count(ParentStudent.id)).where(
            ParentStudent.student_id == student_id,
            ParentStudent.is_primary.is_(True),
            ParentStudent.deleted_at.is_(None),
        )
    )
    return result.scalar_one()


async def check_existing_relationship(
    db: AsyncSession,
    parent_id: UUID,
    student_id: UUID,
    exclude_id: Optional[UUID] = None,
) -> bool:
    """Read only. Writes rely on the (parent_id, student_id) constraint instead."""
    stmt = select(ParentStudent.id).where(
        ParentStudent.parent_id == parent_id,
        ParentStudent.student_id == student_id,
    )
    if exclude_id is not None:
        stmt = stmt.where(ParentStudent.id != exclude_id)
    result = await db.execute(stmt.limit(1))
    return result.scalar_one_or_none() is not None


async def link_parent_student(
    db: AsyncSession,
    payload: ParentStudentCreate,
    actor_id: Optional[UUID] = None,
) -> ParentStudentResponse:
    """Link a parent to a student. is_primary demotes the student's current primary parent in the same transaction."""
    await _require_user(db, payload.parent_id, UserRole.PARENT, "Parent")
    await _require_user(db, payload.student_id, UserRole.STUDENT, "Student")
    async with atomic(db, "link_parent_student", DuplicateError(ALREADY_LINKED)):
        if payload.is_primary:
            await _clear_primary(db, payload.student_id)
        obj = ParentStudent(
            parent_id=payload.parent_id,
            student_id=payload.student_id,
            relationship=payload.relationship.strip(),
            guardian_type=payload.guardian_type.value,
            is_primary=payload.is_primary,
            notes=payload.notes,
            created_by=actor_id,
            updated_by=actor_id,
        )
        db.add(obj)
    logger.info(
        "parent_student_linked",
        parent_student_id=str(obj.id),
        parent_id=str(obj.parent_id),
        student_id=str(obj.student_id),
        is_primary=obj.is_primary,
    )
    return _to_response(obj)


async def get_parent_student(db: AsyncSession, parent_student_id: UUID) -> ParentStudentResponse:
    obj = await get_live_or_404(db, ParentStudent, parent_student_id, "Parent-student relationship")
    return _to_response(obj)


async def update_parent_student(
    db: AsyncSession,
    parent_student_id: UUID,
    payload: ParentStudentUpdate,
    actor_id: Optional[UUID] = None,
) -> ParentStudentResponse:
    obj = await get_live_or_404(db, ParentStudent, parent_student_id, "Parent-student relationship")
    async with atomic(db, "update_parent_student", DuplicateError(ALREADY_LINKED)):
        if payload.relationship is not None:
            obj.relationship = payload.relationship.strip()
        if payload.guardian_type is not None:
            obj.guardian_type = payload.guardian_type.value
        if payload.notes is not None:
            obj.notes = payload.notes
        obj.updated_by = actor_id
    logger.info("parent_student_updated", parent_student_id=str(parent_student_id))
    return _to_response(obj)


async def set_primary_parent(
    db: AsyncSession,
    parent_student_id: UUID,
    actor_id: Optional[UUID] = None,
) -> ParentStudentResponse:
    """Make this the student's only primary parent: clear every other flag, then set, as one unit."""
    obj = await get_live_or_404(db, ParentStudent, parent_student_id, "Parent-student relationship")
    student_id = obj.student_id
    conflict = ConsistencyError("Another parent became primary concurrently; retry the operation")
    async with atomic(db, "set_primary_parent", conflict):
        await _clear_primary(db, student_id)
        obj.is_primary = True
        obj.updated_by = actor_id
        await db.flush()
        primary_count = await _count_primary(db, student_id)
        if primary_count != 1:
            raise ConsistencyError(f"Student has {primary_count} primary parents after update")
    logger.info("primary_parent_set", parent_student_id=str(parent_student_id), student_id=str(student_id))
    return _to_response(obj)


async def delete_parent_student(
    db: AsyncSession,
    parent_student_id: UUID,
    actor_id: Optional[UUID] = None,
) -> bool:
    """Soft delete. A deleted link is never primary."""
    obj = await get_live_or_404(db, ParentStudent, parent_student_id, "Parent-student relationship")
    async with atomic(db, "delete_parent_student", ConsistencyError("Relationship could not be deleted")):
        obj.is_primary = False
        obj.deleted_at = datetime.utcnow()
        obj.updated_by = actor_id
    logger.info("parent_student_deleted", parent_student_id=str(parent_student_id))
    return True


def _live():
    return select(ParentStudent).where(ParentStudent.deleted_at.is_(None))


async def list_students_for_parent(db: AsyncSession, parent_id: UUID) -> List[ParentStudentResponse]:
    """Primary links first."""
    result = await db.execute(
        _live()
        .where(ParentStudent.parent_id == parent_id)
        .order_by(ParentStudent.is_primary.desc(), ParentStudent.created_at)
    )
    return [_to_response(ps) for ps in result.scalars().all()]


async def list_parents_for_student(db: AsyncSession, student_id: UUID) -> List[ParentStudentResponse]:
    result = await db.execute(
        _live()
        .where(ParentStudent.student_id == student_id)
        .order_by(ParentStudent.is_primary.desc(), ParentStudent.created_at)
    )
    return [_to_response(ps) for ps in result.scalars().all()]


async def get_primary_parent(db: AsyncSession, student_id: UUID) -> Optional[ParentStudentResponse]:
    result = await db.execute(
        _live().where(ParentStudent.student_id == student_id, ParentStudent.is_primary.is_(True))
    )
    obj = result.scalar_one_or_none()
    return _to_response(obj) if obj else None


async def parent_student_statistics(
    db: AsyncSession,
    parent_id: Optional[UUID] = None,
    student_id: Optional[UUID] = None,
) -> ParentStudentStatistics:
    stmt = select(ParentStudent.is_primary).where(ParentStudent.deleted_at.is_(None))
    if parent_id is not None:
        stmt = stmt.where(ParentStudent.parent_id == parent_id)
    if student_id is not None:
        stmt = stmt.where(ParentStudent.student_id == student_id)
    flags = (await db.execute(stmt)).scalars().all()
    primary = sum(1 for is_primary in flags if is_primary)
    return ParentStudentStatistics(
        total_relationships=len(flags),
        primary_relationships=primary,
        non_primary_relationships=len(flags) - primary,
    )

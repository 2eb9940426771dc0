from datetime import datetime
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from sis.core.enums import TeachingRole, UserRole
from sis.core.exceptions import DuplicateError, ValidationError
from sis.core.logging import get_logger
from sis.core.models import AcademicYear, ClassGroup, Subject, TeacherSubject, User
from sis.core.repository import get_live_or_404
from sis.db.transaction import atomic

from .schemas import (
    TeacherLoad,
    TeacherSubjectCreate,
    TeacherSubjectResponse,
    TeacherSubjectStatistics,
    TeacherSubjectUpdate,
)

logger = get_logger(__name__)

ALREADY_ASSIGNED = "This teacher is already assigned to the subject for this class and academic year"


def _to_response(t: TeacherSubject) -> TeacherSubjectResponse:
    return TeacherSubjectResponse(
        id=t.id,
        teacher_id=t.teacher_id,
        subject_id=t.subject_id,
        class_id=t.class_id,
        academic_year_id=t.academic_year_id,
        teaching_role=t.teaching_role,
        notes=t.notes,
        is_active=t.is_active,
        created_at=t.created_at,
    )


def _filtered(
    teacher_id: Optional[UUID] = None,
    subject_id: Optional[UUID] = None,
    class_id: Optional[UUID] = None,
    academic_year_id: Optional[UUID] = None,
):
    stmt = select(TeacherSubject).where(TeacherSubject.deleted_at.is_(None))
    if teacher_id is not None:
        stmt = stmt.where(TeacherSubject.teacher_id == teacher_id)
    if subject_id is not None:
        stmt = stmt.where(TeacherSubject.subject_id == subject_id)
    if class_id is not None:
        stmt = stmt.where(TeacherSubject.class_id == class_id)
    if academic_year_id is not None:
        stmt = stmt.where(TeacherSubject.academic_year_id == academic_year_id)
    return stmt


async def check_existing_teacher_subject(
    db: AsyncSession,
    teacher_id: UUID,
    subject_id: UUID,
    class_id: UUID,
    academic_year_id: UUID,
    exclude_id: Optional[UUID] = None,
) -> bool:
    stmt = select(TeacherSubject.id).where(
        TeacherSubject.teacher_id == teacher_id,
        TeacherSubject.subject_id == subject_id,
        TeacherSubject.class_id == class_id,
        TeacherSubject.academic_year_id == academic_year_id,
    )
    if exclude_id is not None:
        stmt = stmt.where(TeacherSubject.id != exclude_id)
    result = await db.execute(stmt.limit(1))
    return result.scalar_one_or_none() is not None


async def assign_teacher_subject(
    db: AsyncSession,
    payload: TeacherSubjectCreate,
    actor_id: Optional[UUID] = None,
) -> TeacherSubjectResponse:
    await get_live_or_404(db, AcademicYear, payload.academic_year_id, "Academic year")
    await get_live_or_404(db, ClassGroup, payload.class_id, "Class")
    await get_live_or_404(db, Subject, payload.subject_id, "Subject")
    teacher = await get_live_or_404(db, User, payload.teacher_id, "Teacher")
    if teacher.role != UserRole.TEACHER.value:
        raise ValidationError("Invalid teacher (user must have role TEACHER)")
    async with atomic(db, "assign_teacher_subject", DuplicateError(ALREADY_ASSIGNED)):
        obj = TeacherSubject(
            teacher_id=payload.teacher_id,
            subject_id=payload.subject_id,
            class_id=payload.class_id,
            academic_year_id=payload.academic_year_id,
            teaching_role=payload.teaching_role.value,
            notes=payload.notes,
            is_active=payload.is_active,
            created_by=actor_id,
            updated_by=actor_id,
        )
        db.add(obj)
    logger.info(
        "teacher_subject_assigned",
        teacher_subject_id=str(obj.id),
        teacher_id=str(obj.teacher_id),
        subject_id=str(obj.subject_id),
        class_id=str(obj.class_id),
    )
    return _to_response(obj)


async def get_teacher_subject(db: AsyncSession, teacher_subject_id: UUID) -> TeacherSubjectResponse:
    obj = await get_live_or_404(db, TeacherSubject, teacher_subject_id, "Teacher subject assignment")
    return _to_response(obj)


async def update_teacher_subject(
    db: AsyncSession,
    teacher_subject_id: UUID,
    payload: TeacherSubjectUpdate,
    actor_id: Optional[UUID] = None,
) -> TeacherSubjectResponse:
    obj = await get_live_or_404(db, TeacherSubject, teacher_subject_id, "Teacher subject assignment")
    async with atomic(db, "update_teacher_subject", DuplicateError(ALREADY_ASSIGNED)):
        if payload.teaching_role is not None:
            obj.teaching_role = payload.teaching_role.value
        if payload.notes is not None:
            obj.notes = payload.notes
        obj.updated_by = actor_id
    logger.info("teacher_subject_updated", teacher_subject_id=str(teacher_subject_id))
    return _to_response(obj)


async def toggle_teacher_subject_status(
    db: AsyncSession,
    teacher_subject_id: UUID,
    actor_id: Optional[UUID] = None,
) -> TeacherSubjectResponse:
    obj = await get_live_or_404(db, TeacherSubject, teacher_subject_id, "Teacher subject assignment")
    async with atomic(db, "toggle_teacher_subject_status", DuplicateError(ALREADY_ASSIGNED)):
        obj.is_active = not obj.is_active
        obj.updated_by = actor_id
    logger.info("teacher_subject_toggled", teacher_subject_id=str(teacher_subject_id), is_active=obj.is_active)
    return _to_response(obj)


async def delete_teacher_subject(
    db: AsyncSession,
    teacher_subject_id: UUID,
    actor_id: Optional[UUID] = None,
) -> bool:
    obj = await get_live_or_404(db, TeacherSubject, teacher_subject_id, "Teacher subject assignment")
    async with atomic(db, "delete_teacher_subject", DuplicateError(ALREADY_ASSIGNED)):
        obj.deleted_at = datetime.utcnow()
        obj.updated_by = actor_id
    logger.info("teacher_subject_deleted", teacher_subject_id=str(teacher_subject_id))
    return True


async def list_teacher_subjects(
    db: AsyncSession,
    teacher_id: Optional[UUID] = None,
    subject_id: Optional[UUID] = None,
    class_id: Optional[UUID] = None,
    academic_year_id: Optional[UUID] = None,
    teaching_role: Optional[TeachingRole] = None,
) -> List[TeacherSubjectResponse]:
    """Newest first. Covers the per-teacher, per-subject, per-class and per-role lookups."""
    stmt = _filtered(teacher_id, subject_id, class_id, academic_year_id)
    if teaching_role is not None:
        stmt = stmt.where(TeacherSubject.teaching_role == teaching_role.value)
    result = await db.execute(stmt.order_by(TeacherSubject.created_at.desc()))
    return [_to_response(t) for t in result.scalars().all()]


async def teacher_load(
    db: AsyncSession,
    teacher_id: UUID,
    academic_year_id: Optional[UUID] = None,
) -> TeacherLoad:
    """Distinct class and subject ids, in first-assigned order."""
    result = await db.execute(
        _filtered(teacher_id=teacher_id, academic_year_id=academic_year_id).order_by(TeacherSubject.created_at)
    )
    rows = result.scalars().all()
    return TeacherLoad(
        teacher_id=teacher_id,
        class_ids=list(dict.fromkeys(t.class_id for t in rows)),
        subject_ids=list(dict.fromkeys(t.subject_id for t in rows)),
    )


async def assigned_teacher_ids(
    db: AsyncSession,
    class_id: Optional[UUID] = None,
    subject_id: Optional[UUID] = None,
    academic_year_id: Optional[UUID] = None,
) -> List[UUID]:
    """Distinct teachers assigned to a class and/or subject."""
    result = await db.execute(
        _filtered(subject_id=subject_id, class_id=class_id, academic_year_id=academic_year_id).order_by(
            TeacherSubject.created_at
        )
    )
    return list(dict.fromkeys(t.teacher_id for t in result.scalars().all()))


async def teacher_subject_statistics(
    db: AsyncSession,
    teacher_id: Optional[UUID] = None,
    subject_id: Optional[UUID] = None,
    class_id: Optional[UUID] = None,
    academic_year_id: Optional[UUID] = None,
) -> TeacherSubjectStatistics:
    result = await db.execute(_filtered(teacher_id, subject_id, class_id, academic_year_id))
    flags = [t.is_active for t in result.scalars().all()]
    active = sum(1 for is_active in flags if is_active)
    return TeacherSubjectStatistics(
        total_assignments=len(flags),
        active_assignments=active,
        inactive_assignments=len(flags) - active,
    )

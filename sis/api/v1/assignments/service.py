from datetime import datetime
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from sis.core.clock import to_naive_utc, utcnow
from sis.core.exceptions import DuplicateError
from sis.core.logging import get_logger
from sis.core.models import AcademicYear, Assignment, ClassGroup
from sis.core.repository import get_live_or_404
from sis.db.transaction import atomic

from .schemas import AssignmentCreate, AssignmentResponse

logger = get_logger(__name__)


def accepts_submissions(
    is_published: bool,
    submission_start: Optional[datetime],
    submission_end: Optional[datetime],
    now: datetime,
) -> bool:
    """Published and inside [submission_start, submission_end]; a missing bound is open."""
    if not is_published:
        return False
    now = to_naive_utc(now)
    start = to_naive_utc(submission_start)
    end = to_naive_utc(submission_end)
    if start is not None and now < start:
        return False
    if end is not None and now > end:
        return False
    return True


def _to_response(a: Assignment, now: Optional[datetime] = None) -> AssignmentResponse:
    return AssignmentResponse(
        id=a.id,
        academic_year_id=a.academic_year_id,
        class_id=a.class_id,
        subject_id=a.subject_id,
        teacher_id=a.teacher_id,
        title=a.title,
        description=a.description,
        assignment_type=a.assignment_type,
        due_date=a.due_date,
        submission_start=a.submission_start,
        submission_end=a.submission_end,
        max_score=a.max_score,
        is_published=a.is_published,
        allow_late_submission=a.allow_late_submission,
        late_penalty_percent=a.late_penalty_percent,
        accepting_submissions=accepts_submissions(
            a.is_published, a.submission_start, a.submission_end, now or utcnow()
        ),
        created_at=a.created_at,
    )


async def create_assignment(
    db: AsyncSession,
    payload: AssignmentCreate,
    actor_id: Optional[UUID] = None,
) -> AssignmentResponse:
    await get_live_or_404(db, AcademicYear, payload.academic_year_id, "Academic year")
    await get_live_or_404(db, ClassGroup, payload.class_id, "Class")
    async with atomic(db, "create_assignment", DuplicateError("Assignment could not be created")):
        obj = Assignment(
            academic_year_id=payload.academic_year_id,
            class_id=payload.class_id,
            subject_id=payload.subject_id,
            teacher_id=payload.teacher_id,
            title=payload.title.strip(),
            description=payload.description,
            assignment_type=payload.assignment_type.value,
            due_date=to_naive_utc(payload.due_date),
            submission_start=to_naive_utc(payload.submission_start),
            submission_end=to_naive_utc(payload.submission_end),
            max_score=payload.max_score,
            is_published=payload.is_published,
            allow_late_submission=payload.allow_late_submission,
            late_penalty_percent=payload.late_penalty_percent,
            created_by=actor_id,
            updated_by=actor_id,
        )
        db.add(obj)
    logger.info("assignment_created", assignment_id=str(obj.id), class_id=str(obj.class_id))
    return _to_response(obj)


async def get_assignment(db: AsyncSession, assignment_id: UUID) -> AssignmentResponse:
    obj = await get_live_or_404(db, Assignment, assignment_id, "Assignment")
    return _to_response(obj)


async def list_class_assignments(
    db: AsyncSession,
    class_id: UUID,
    published_only: bool = False,
) -> List[AssignmentResponse]:
    stmt = select(Assignment).where(
        Assignment.class_id == class_id,
        Assignment.deleted_at.is_(None),
    )
    if published_only:
        stmt = stmt.where(Assignment.is_published.is_(True))
    result = await db.execute(stmt.order_by(Assignment.due_date))
    now = utcnow()
    return [_to_response(a, now) for a in result.scalars().all()]


async def publish_assignment(
    db: AsyncSession,
    assignment_id: UUID,
    is_published: bool = True,
    actor_id: Optional[UUID] = None,
) -> AssignmentResponse:
    obj = await get_live_or_404(db, Assignment, assignment_id, "Assignment")
    async with atomic(db, "publish_assignment", DuplicateError("Assignment could not be updated")):
        obj.is_published = is_published
        obj.updated_by = actor_id
    logger.info("assignment_publish_changed", assignment_id=str(assignment_id), is_published=is_published)
    return _to_response(obj)

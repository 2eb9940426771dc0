from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from sis.api.v1.assignments.service import accepts_submissions
from sis.api.v1.classes.service import count_active_students
from sis.core.clock import to_naive_utc, utcnow
from sis.core.enums import SubmissionStatus
from sis.core.exceptions import DuplicateError, ValidationError
from sis.core.logging import get_logger
from sis.core.models import Assignment, Submission
from sis.core.repository import get_live_or_404
from sis.core.transitions import SUBMISSION_TRANSITIONS, ensure_transition
from sis.db.transaction import atomic

from .penalties import calculated_late_penalty, days_late, final_score, is_late
from .schemas import (
    SubmissionCreate,
    SubmissionGrade,
    SubmissionResponse,
    SubmissionStatistics,
    SubmissionUpdate,
)

logger = get_logger(__name__)

ALREADY_SUBMITTED = "Student has already submitted this assignment"
# Returned work keeps its score
GRADED_STATUSES = (SubmissionStatus.GRADED.value, SubmissionStatus.RETURNED.value)


def late_penalty(s: Submission, a: Assignment) -> float:
    return calculated_late_penalty(
        a.max_score,
        a.late_penalty_percent,
        s.days_late,
        s.is_late,
        a.allow_late_submission,
    )


def _to_response(s: Submission, a: Assignment) -> SubmissionResponse:
    penalty = late_penalty(s, a)
    return SubmissionResponse(
        id=s.id,
        assignment_id=s.assignment_id,
        student_id=s.student_id,
        content=s.content,
        file_path=s.file_path,
        file_name=s.file_name,
        status=s.status,
        submitted_at=s.submitted_at,
        is_late=s.is_late,
        days_late=s.days_late,
        score=s.score,
        grade=s.grade,
        feedback=s.feedback,
        graded_by=s.graded_by,
        graded_at=s.graded_at,
        late_penalty=penalty,
        final_score=final_score(s.score, penalty),
        created_at=s.created_at,
    )


def _stamp_submitted(s: Submission, a: Assignment, submitted_at) -> None:
    s.status = SubmissionStatus.SUBMITTED.value
    s.submitted_at = submitted_at
    s.is_late = is_late(submitted_at, a.due_date)
    s.days_late = days_late(submitted_at, a.due_date)


async def submit(
    db: AsyncSession,
    payload: SubmissionCreate,
    actor_id: Optional[UUID] = None,
) -> SubmissionResponse:
    """
    Hand in work for an assignment. Late work is accepted and flagged; the
    penalty only applies when the assignment allows late submission.
    """
    assignment = await get_live_or_404(db, Assignment, payload.assignment_id, "Assignment")
    submitted_at = to_naive_utc(payload.submitted_at) or utcnow()
    if not accepts_submissions(
        assignment.is_published,
        assignment.submission_start,
        assignment.submission_end,
        submitted_at,
    ):
        raise ValidationError("Assignment is not accepting submissions")

    async with atomic(db, "submit", DuplicateError(ALREADY_SUBMITTED)):
        obj = Submission(
            assignment_id=payload.assignment_id,
            student_id=payload.student_id,
            content=payload.content,
            file_path=payload.file_path,
            file_name=payload.file_name,
            created_by=actor_id,
            updated_by=actor_id,
        )
        _stamp_submitted(obj, assignment, submitted_at)
        db.add(obj)
    logger.info(
        "submission_received",
        submission_id=str(obj.id),
        assignment_id=str(obj.assignment_id),
        is_late=obj.is_late,
        days_late=obj.days_late,
    )
    return _to_response(obj, assignment)


async def get_submission(db: AsyncSession, submission_id: UUID) -> SubmissionResponse:
    obj = await get_live_or_404(db, Submission, submission_id, "Submission")
    assignment = await db.get(Assignment, obj.assignment_id)
    return _to_response(obj, assignment)


async def update_submission(
    db: AsyncSession,
    submission_id: UUID,
    payload: SubmissionUpdate,
    actor_id: Optional[UUID] = None,
) -> SubmissionResponse:
    """
    Overwrite the submitted work (no history is kept). New content resubmits,
    restamping submitted_at and lateness. Status moves go through the transition table.
    """
    obj = await get_live_or_404(db, Submission, submission_id, "Submission")
    assignment = await db.get(Assignment, obj.assignment_id)
    data = payload.model_dump(exclude_unset=True, exclude={"status"})
    resubmitting = any(data.get(k) is not None for k in ("content", "file_path"))

    if payload.status is not None:
        target = payload.status.value
    elif resubmitting:
        target = SubmissionStatus.SUBMITTED.value
    else:
        target = obj.status
    ensure_transition("Submission", SUBMISSION_TRANSITIONS, obj.status, target)

    now = utcnow()
    if resubmitting and not accepts_submissions(
        assignment.is_published,
        assignment.submission_start,
        assignment.submission_end,
        now,
    ):
        raise ValidationError("Assignment is not accepting submissions")

    async with atomic(db, "update_submission", DuplicateError(ALREADY_SUBMITTED)):
        for key, value in data.items():
            setattr(obj, key, value)
        if resubmitting and target == SubmissionStatus.SUBMITTED.value:
            _stamp_submitted(obj, assignment, now)
        else:
            obj.status = target
        obj.updated_by = actor_id
    logger.info("submission_updated", submission_id=str(submission_id), status=obj.status)
    return _to_response(obj, assignment)


async def grade_submission(
    db: AsyncSession,
    submission_id: UUID,
    payload: SubmissionGrade,
    grader_id: UUID,
) -> SubmissionResponse:
    """Set score/grade/feedback and mark graded. Re-grading overwrites."""
    obj = await get_live_or_404(db, Submission, submission_id, "Submission")
    assignment = await db.get(Assignment, obj.assignment_id)
    if payload.score > assignment.max_score:
        raise ValidationError(f"Score cannot exceed the assignment max_score of {assignment.max_score}")
    ensure_transition("Submission", SUBMISSION_TRANSITIONS, obj.status, SubmissionStatus.GRADED.value)

    async with atomic(db, "grade_submission", DuplicateError(ALREADY_SUBMITTED)):
        obj.score = payload.score
        obj.grade = payload.grade
        obj.feedback = payload.feedback
        obj.status = SubmissionStatus.GRADED.value
        obj.graded_by = grader_id
        obj.graded_at = utcnow()
        obj.updated_by = grader_id
    logger.info("submission_graded", submission_id=str(submission_id), score=obj.score)
    return _to_response(obj, assignment)


async def submission_statistics(db: AsyncSession, assignment_id: UUID) -> SubmissionStatistics:
    assignment = await get_live_or_404(db, Assignment, assignment_id, "Assignment")
    result = await db.execute(
        select(Submission.status, Submission.is_late, Submission.score).where(
            Submission.assignment_id == assignment_id,
            Submission.deleted_at.is_(None),
        )
    )
    rows = result.all()
    total = len(rows)
    graded = sum(1 for r in rows if r.status in GRADED_STATUSES)
    late = sum(1 for r in rows if r.is_late)
    scores = [r.score for r in rows if r.score is not None]
    class_size = await count_active_students(db, assignment.class_id)
    return SubmissionStatistics(
        assignment_id=assignment_id,
        total_submissions=total,
        graded_submissions=graded,
        late_submissions=late,
        average_score=round(sum(scores) / len(scores), 2) if scores else None,
        submission_rate=round(total / class_size * 100, 2) if class_size else 0.0,
        graded_rate=round(graded / total * 100, 2) if total else 0.0,
    )

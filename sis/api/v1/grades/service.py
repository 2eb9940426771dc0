from datetime import datetime
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from sis.core.enums import AssessmentType
from sis.core.exceptions import DuplicateError, NotFoundError
from sis.core.logging import get_logger
from sis.core.models import Enrollment, Grade
from sis.core.repository import get_live_or_404, subject_info
from sis.db.transaction import atomic

from .grading import (
    DISTRIBUTION_LABELS,
    ScoreRow,
    aggregate_grade_statistics,
    grade_distribution_from_scores,
    letter_grade,
    predicate,
    weighted_score,
)
from .schemas import GradeCreate, GradeDistribution, GradeResponse, GradeStatistics

logger = get_logger(__name__)

GRADE_TAKEN = "A grade for this assessment already exists for the student, subject and semester"
GPA_ASSESSMENTS = (AssessmentType.MIDTERM.value, AssessmentType.FINAL.value)


def _to_response(g: Grade) -> GradeResponse:
    return GradeResponse(
        id=g.id,
        enrollment_id=g.enrollment_id,
        subject_id=g.subject_id,
        teacher_id=g.teacher_id,
        academic_year_id=g.academic_year_id,
        assessment_type=g.assessment_type,
        score=g.score,
        letter_grade=g.letter_grade,
        predicate=g.predicate,
        weight=g.weight,
        weighted_score=weighted_score(g.score, g.weight),
        semester=g.semester,
        assessment_date=g.assessment_date,
        notes=g.notes,
        created_at=g.created_at,
    )


def _build_grade(payload: GradeCreate, actor_id: Optional[UUID]) -> Grade:
    return Grade(
        enrollment_id=payload.enrollment_id,
        subject_id=payload.subject_id,
        teacher_id=payload.teacher_id,
        academic_year_id=payload.academic_year_id,
        assessment_type=payload.assessment_type.value,
        score=payload.score,
        letter_grade=letter_grade(payload.score),
        predicate=predicate(payload.score),
        weight=payload.weight,
        semester=payload.semester,
        assessment_date=payload.assessment_date,
        notes=payload.notes,
        created_by=actor_id,
        updated_by=actor_id,
    )


async def record_grade(
    db: AsyncSession,
    payload: GradeCreate,
    actor_id: Optional[UUID] = None,
) -> GradeResponse:
    await get_live_or_404(db, Enrollment, payload.enrollment_id, "Enrollment")
    async with atomic(db, "record_grade", DuplicateError(GRADE_TAKEN)):
        obj = _build_grade(payload, actor_id)
        db.add(obj)
    logger.info(
        "grade_recorded",
        grade_id=str(obj.id),
        enrollment_id=str(obj.enrollment_id),
        assessment_type=obj.assessment_type,
        letter_grade=obj.letter_grade,
    )
    return _to_response(obj)


async def bulk_record_grades(
    db: AsyncSession,
    payloads: List[GradeCreate],
    actor_id: Optional[UUID] = None,
) -> List[GradeResponse]:
    """Insert every grade or none of them."""
    enrollment_ids = {p.enrollment_id for p in payloads}
    result = await db.execute(
        select(Enrollment.id).where(
            Enrollment.id.in_(enrollment_ids),
            Enrollment.deleted_at.is_(None),
        )
    )
    missing = enrollment_ids - set(result.scalars().all())
    if missing:
        raise NotFoundError("One or more enrollments not found", resource_type="Enrollment")

    async with atomic(db, "bulk_record_grades", DuplicateError(GRADE_TAKEN)):
        objs = [_build_grade(p, actor_id) for p in payloads]
        db.add_all(objs)
    logger.info("grades_bulk_recorded", count=len(objs))
    return [_to_response(g) for g in objs]


async def get_grade(db: AsyncSession, grade_id: UUID) -> GradeResponse:
    obj = await get_live_or_404(db, Grade, grade_id, "Grade")
    return _to_response(obj)


async def update_grade_score(
    db: AsyncSession,
    grade_id: UUID,
    score: Optional[float],
    actor_id: Optional[UUID] = None,
) -> GradeResponse:
    obj = await get_live_or_404(db, Grade, grade_id, "Grade")
    async with atomic(db, "update_grade_score", DuplicateError(GRADE_TAKEN)):
        obj.score = score
        obj.letter_grade = letter_grade(score)
        obj.predicate = predicate(score)
        obj.updated_by = actor_id
    logger.info("grade_score_updated", grade_id=str(grade_id), letter_grade=obj.letter_grade)
    return _to_response(obj)


async def delete_grade(
    db: AsyncSession,
    grade_id: UUID,
    actor_id: Optional[UUID] = None,
) -> bool:
    obj = await get_live_or_404(db, Grade, grade_id, "Grade")
    async with atomic(db, "delete_grade", DuplicateError(GRADE_TAKEN)):
        obj.deleted_at = datetime.utcnow()
        obj.updated_by = actor_id
    return True


def _scored_grades():
    return (
        select(Grade.assessment_type, Grade.subject_id, Grade.score, Grade.weight)
        .join(Enrollment, Grade.enrollment_id == Enrollment.id)
        .where(
            Grade.score.is_not(None),
            Grade.deleted_at.is_(None),
            Enrollment.deleted_at.is_(None),
        )
    )


async def _statistics(db: AsyncSession, stmt) -> GradeStatistics:
    result = await db.execute(stmt)
    rows = [
        ScoreRow(assessment_type=r.assessment_type, subject_id=r.subject_id, score=r.score, weight=r.weight)
        for r in result.all()
    ]
    subjects = await subject_info(db, {r.subject_id for r in rows})
    return GradeStatistics.model_validate(aggregate_grade_statistics(rows, subjects))


async def class_statistics(
    db: AsyncSession,
    class_id: UUID,
    academic_year_id: Optional[UUID] = None,
) -> GradeStatistics:
    stmt = _scored_grades().where(Enrollment.class_id == class_id)
    if academic_year_id is not None:
        stmt = stmt.where(Grade.academic_year_id == academic_year_id)
    return await _statistics(db, stmt)


async def student_statistics(
    db: AsyncSession,
    student_id: UUID,
    academic_year_id: Optional[UUID] = None,
) -> GradeStatistics:
    stmt = _scored_grades().where(Enrollment.student_id == student_id)
    if academic_year_id is not None:
        stmt = stmt.where(Grade.academic_year_id == academic_year_id)
    return await _statistics(db, stmt)


async def grade_distribution(
    db: AsyncSession,
    class_id: Optional[UUID] = None,
    subject_id: Optional[UUID] = None,
    academic_year_id: Optional[UUID] = None,
) -> GradeDistribution:
    stmt = (
        select(Grade.score)
        .join(Enrollment, Grade.enrollment_id == Enrollment.id)
        .where(Grade.score.is_not(None), Grade.deleted_at.is_(None), Enrollment.deleted_at.is_(None))
    )
    if class_id is not None:
        stmt = stmt.where(Enrollment.class_id == class_id)
    if subject_id is not None:
        stmt = stmt.where(Grade.subject_id == subject_id)
    if academic_year_id is not None:
        stmt = stmt.where(Grade.academic_year_id == academic_year_id)
    scores = (await db.execute(stmt)).scalars().all()
    counts = grade_distribution_from_scores(scores)
    return GradeDistribution(counts=dict(counts), labels=dict(DISTRIBUTION_LABELS), total=len(scores))


async def _gpa(db: AsyncSession, stmt) -> float:
    scores = [s for s in (await db.execute(stmt)).scalars().all() if s is not None]
    if not scores:
        return 0.0
    return round(sum(scores) / len(scores), 2)


def _exam_scores(academic_year_id: Optional[UUID]):
    stmt = (
        select(Grade.score)
        .join(Enrollment, Grade.enrollment_id == Enrollment.id)
        .where(
            Grade.assessment_type.in_(GPA_ASSESSMENTS),
            Grade.deleted_at.is_(None),
            Enrollment.deleted_at.is_(None),
        )
    )
    if academic_year_id is not None:
        stmt = stmt.where(Grade.academic_year_id == academic_year_id)
    return stmt


async def calculate_student_gpa(
    db: AsyncSession,
    student_id: UUID,
    academic_year_id: Optional[UUID] = None,
) -> float:
    """Mean of the student's midterm and final scores; 0.0 when there are none."""
    return await _gpa(db, _exam_scores(academic_year_id).where(Enrollment.student_id == student_id))


async def calculate_class_gpa(
    db: AsyncSession,
    class_id: UUID,
    academic_year_id: Optional[UUID] = None,
) -> float:
    return await _gpa(db, _exam_scores(academic_year_id).where(Enrollment.class_id == class_id))

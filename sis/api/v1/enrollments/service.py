from collections import defaultdict
from datetime import date, datetime
from typing import Dict, Iterable, List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from sis.core.enums import AttendanceStatus, EnrollmentStatus
from sis.core.exceptions import DuplicateError, ValidationError
from sis.core.logging import get_logger
from sis.core.models import AcademicYear, Attendance, ClassGroup, Enrollment, Grade
from sis.core.repository import get_live_or_404
from sis.core.transitions import ENROLLMENT_TRANSITIONS, ensure_transition
from sis.db.transaction import atomic

from .schemas import (
    ClassEnrollmentStatistics,
    EnrollmentCreate,
    EnrollmentResponse,
    EnrollmentStatistics,
    EnrollmentStatusUpdate,
    PromotionRequest,
)

logger = get_logger(__name__)

PROMOTION_NOTE = "Auto-promoted from previous class"


def attendance_rate(statuses: Iterable[str]) -> float:
    """present / total x 100, rounded to 2 dp; 0 when there are no records."""
    statuses = list(statuses)
    if not statuses:
        return 0.0
    present = sum(1 for s in statuses if s == AttendanceStatus.PRESENT.value)
    return round(present / len(statuses) * 100, 2)


def average_grade(scores: Iterable[Optional[float]]) -> Optional[float]:
    """Mean of the non-null scores, or None when nothing has been scored."""
    values = [float(s) for s in scores if s is not None]
    if not values:
        return None
    return round(sum(values) / len(values), 2)


def _to_response(e: Enrollment) -> EnrollmentResponse:
    return EnrollmentResponse(
        id=e.id,
        student_id=e.student_id,
        class_id=e.class_id,
        academic_year_id=e.academic_year_id,
        status=e.status,
        enrollment_date=e.enrollment_date,
        graduation_date=e.graduation_date,
        admission_number=e.admission_number,
        class_rank=e.class_rank,
        notes=e.notes,
        created_at=e.created_at,
    )


async def _require_open_year(db: AsyncSession, academic_year_id: UUID) -> AcademicYear:
    ay = await get_live_or_404(db, AcademicYear, academic_year_id, "Academic year")
    if not ay.is_active:
        raise ValidationError("Cannot enroll students into an inactive academic year")
    return ay


async def enroll(
    db: AsyncSession,
    payload: EnrollmentCreate,
    actor_id: Optional[UUID] = None,
) -> EnrollmentResponse:
    """Create an active enrollment. The (student, class, academic_year) constraint decides duplicates."""
    await _require_open_year(db, payload.academic_year_id)
    await get_live_or_404(db, ClassGroup, payload.class_id, "Class")
    conflict = DuplicateError("Student is already enrolled in this class for the academic year")
    async with atomic(db, "enroll", conflict):
        obj = Enrollment(
            student_id=payload.student_id,
            class_id=payload.class_id,
            academic_year_id=payload.academic_year_id,
            status=EnrollmentStatus.ACTIVE.value,
            enrollment_date=payload.enrollment_date or date.today(),
            admission_number=payload.admission_number,
            notes=payload.notes,
            created_by=actor_id,
            updated_by=actor_id,
        )
        db.add(obj)
    logger.info(
        "student_enrolled",
        enrollment_id=str(obj.id),
        student_id=str(obj.student_id),
        class_id=str(obj.class_id),
    )
    return _to_response(obj)


async def get_enrollment(db: AsyncSession, enrollment_id: UUID) -> EnrollmentResponse:
    obj = await get_live_or_404(db, Enrollment, enrollment_id, "Enrollment")
    return _to_response(obj)


async def list_class_enrollments(
    db: AsyncSession,
    class_id: UUID,
    academic_year_id: Optional[UUID] = None,
) -> List[EnrollmentResponse]:
    """Active enrollments of a class in rank order (unranked last)."""
    stmt = select(Enrollment).where(
        Enrollment.class_id == class_id,
        Enrollment.status == EnrollmentStatus.ACTIVE.value,
        Enrollment.deleted_at.is_(None),
    )
    if academic_year_id is not None:
        stmt = stmt.where(Enrollment.academic_year_id == academic_year_id)
    stmt = stmt.order_by(Enrollment.class_rank.is_(None), Enrollment.class_rank, Enrollment.enrollment_date)
    result = await db.execute(stmt)
    return [_to_response(e) for e in result.scalars().all()]


async def update_enrollment_status(
    db: AsyncSession,
    enrollment_id: UUID,
    payload: EnrollmentStatusUpdate,
    actor_id: Optional[UUID] = None,
) -> EnrollmentResponse:
    obj = await get_live_or_404(db, Enrollment, enrollment_id, "Enrollment")
    target = payload.status.value
    ensure_transition("Enrollment", ENROLLMENT_TRANSITIONS, obj.status, target)
    async with atomic(db, "update_enrollment_status", DuplicateError("Enrollment update conflicts")):
        obj.status = target
        if target == EnrollmentStatus.GRADUATED.value:
            obj.graduation_date = payload.graduation_date or date.today()
        obj.updated_by = actor_id
    logger.info("enrollment_status_changed", enrollment_id=str(enrollment_id), status=target)
    return _to_response(obj)


async def recompute_class_ranks(
    db: AsyncSession,
    class_id: UUID,
    academic_year_id: UUID,
) -> int:
    """Rank active enrollments 1..N by enrollment_date. Full overwrite in one transaction."""
    async with atomic(db, "recompute_class_ranks", DuplicateError("Class ranks could not be saved")):
        result = await db.execute(
            select(Enrollment)
            .where(
                Enrollment.class_id == class_id,
                Enrollment.academic_year_id == academic_year_id,
                Enrollment.status == EnrollmentStatus.ACTIVE.value,
                Enrollment.deleted_at.is_(None),
            )
            .order_by(Enrollment.enrollment_date, Enrollment.created_at)
        )
        enrollments = result.scalars().all()
        for rank, enrollment in enumerate(enrollments, start=1):
            enrollment.class_rank = rank
    logger.info("class_ranks_recomputed", class_id=str(class_id), ranked=len(enrollments))
    return len(enrollments)


async def promote(
    db: AsyncSession,
    payload: PromotionRequest,
    actor_id: Optional[UUID] = None,
) -> int:
    """
    Copy every active enrollment of the source class/year into the destination
    class/year. Source enrollments stay active. All or nothing.
    """
    await _require_open_year(db, payload.to_academic_year_id)
    await get_live_or_404(db, ClassGroup, payload.to_class_id, "Class")
    conflict = DuplicateError("A student is already enrolled in the destination class for that academic year")
    async with atomic(db, "promote", conflict):
        result = await db.execute(
            select(Enrollment.student_id).where(
                Enrollment.class_id == payload.from_class_id,
                Enrollment.academic_year_id == payload.from_academic_year_id,
                Enrollment.status == EnrollmentStatus.ACTIVE.value,
                Enrollment.deleted_at.is_(None),
            )
        )
        student_ids = result.scalars().all()
        today = date.today()
        for student_id in student_ids:
            db.add(
                Enrollment(
                    student_id=student_id,
                    class_id=payload.to_class_id,
                    academic_year_id=payload.to_academic_year_id,
                    status=EnrollmentStatus.ACTIVE.value,
                    enrollment_date=today,
                    notes=PROMOTION_NOTE,
                    created_by=actor_id,
                    updated_by=actor_id,
                )
            )
    logger.info(
        "students_promoted",
        from_class_id=str(payload.from_class_id),
        to_class_id=str(payload.to_class_id),
        promoted=len(student_ids),
    )
    return len(student_ids)


async def delete_enrollment(
    db: AsyncSession,
    enrollment_id: UUID,
    actor_id: Optional[UUID] = None,
) -> bool:
    obj = await get_live_or_404(db, Enrollment, enrollment_id, "Enrollment")
    async with atomic(db, "delete_enrollment", DuplicateError("Enrollment could not be deleted")):
        obj.deleted_at = datetime.utcnow()
        obj.updated_by = actor_id
    return True


async def _attendance_by_enrollment(db: AsyncSession, enrollment_ids: List[UUID]) -> Dict[UUID, List[str]]:
    grouped: Dict[UUID, List[str]] = defaultdict(list)
    if not enrollment_ids:
        return grouped
    result = await db.execute(
        select(Attendance.enrollment_id, Attendance.status).where(
            Attendance.enrollment_id.in_(enrollment_ids),
            Attendance.deleted_at.is_(None),
        )
    )
    for enrollment_id, status_val in result.all():
        grouped[enrollment_id].append(status_val)
    return grouped


async def _scores_by_enrollment(db: AsyncSession, enrollment_ids: List[UUID]) -> Dict[UUID, List[float]]:
    grouped: Dict[UUID, List[float]] = defaultdict(list)
    if not enrollment_ids:
        return grouped
    result = await db.execute(
        select(Grade.enrollment_id, Grade.score).where(
            Grade.enrollment_id.in_(enrollment_ids),
            Grade.score.is_not(None),
            Grade.deleted_at.is_(None),
        )
    )
    for enrollment_id, score in result.all():
        grouped[enrollment_id].append(score)
    return grouped


async def enrollment_statistics(db: AsyncSession, enrollment_id: UUID) -> EnrollmentStatistics:
    obj = await get_live_or_404(db, Enrollment, enrollment_id, "Enrollment")
    statuses = (await _attendance_by_enrollment(db, [obj.id]))[obj.id]
    scores = (await _scores_by_enrollment(db, [obj.id]))[obj.id]
    return EnrollmentStatistics(
        enrollment_id=obj.id,
        attendance_rate=attendance_rate(statuses),
        average_grade=average_grade(scores),
        total_attendances=len(statuses),
        total_grades=len(scores),
    )


async def class_enrollment_statistics(
    db: AsyncSession,
    class_id: UUID,
    academic_year_id: Optional[UUID] = None,
) -> ClassEnrollmentStatistics:
    """Head counts per status; attendance and grade averages over active students."""
    await get_live_or_404(db, ClassGroup, class_id, "Class")
    stmt = select(Enrollment.id, Enrollment.status).where(
        Enrollment.class_id == class_id,
        Enrollment.deleted_at.is_(None),
    )
    if academic_year_id is not None:
        stmt = stmt.where(Enrollment.academic_year_id == academic_year_id)
    rows = (await db.execute(stmt)).all()

    counts = {s.value: 0 for s in EnrollmentStatus}
    for _, status_val in rows:
        counts[status_val] = counts.get(status_val, 0) + 1
    active_ids = [eid for eid, status_val in rows if status_val == EnrollmentStatus.ACTIVE.value]

    attendance = await _attendance_by_enrollment(db, active_ids)
    scores = await _scores_by_enrollment(db, active_ids)
    rates = [attendance_rate(attendance[eid]) for eid in active_ids]
    averages = [average_grade(scores[eid]) for eid in active_ids]

    return ClassEnrollmentStatistics(
        class_id=class_id,
        total_students=len(rows),
        active_students=counts[EnrollmentStatus.ACTIVE.value],
        graduated_students=counts[EnrollmentStatus.GRADUATED.value],
        transferred_students=counts[EnrollmentStatus.TRANSFERRED.value],
        suspended_students=counts[EnrollmentStatus.SUSPENDED.value],
        average_attendance_rate=round(sum(rates) / len(rates), 2) if rates else 0.0,
        average_grade=average_grade(averages),
    )

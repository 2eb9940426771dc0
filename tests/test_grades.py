from datetime import date
from uuid import UUID, uuid4

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from sis.api.v1.grades import grading, service
from sis.api.v1.grades.schemas import GradeCreate
from sis.core.enums import AssessmentType, EnrollmentStatus
from sis.core.exceptions import DuplicateError, NotFoundError
from sis.core.models import Enrollment, Grade
from sis.core.repository import SubjectInfo


@pytest.fixture()
async def make_enrollment(db_session: AsyncSession, make_student, year_id: UUID):
    async def _make(class_id: UUID) -> UUID:
        e = Enrollment(
            student_id=await make_student(),
            class_id=class_id,
            academic_year_id=year_id,
            status=EnrollmentStatus.ACTIVE.value,
            enrollment_date=date(2024, 7, 1),
        )
        db_session.add(e)
        await db_session.commit()
        return e.id

    return _make


@pytest.fixture()
def grade_payload(subject_id: UUID, teacher_id: UUID, year_id: UUID):
    def _payload(enrollment_id: UUID, score, assessment_type=AssessmentType.QUIZ, semester=1, **kwargs) -> GradeCreate:
        return GradeCreate(
            enrollment_id=enrollment_id,
            subject_id=kwargs.pop("subject_id", subject_id),
            teacher_id=teacher_id,
            academic_year_id=year_id,
            assessment_type=assessment_type,
            score=score,
            semester=semester,
            assessment_date=date(2024, 9, 15),
            **kwargs,
        )

    return _payload


@pytest.mark.parametrize(
    "score,letter",
    [(100, "A"), (90, "A"), (89.99, "B"), (80, "B"), (79.5, "C"), (70, "C"), (60, "D"), (59.99, "E"), (0, "E")],
)
def test_letter_grade_thresholds(score, letter) -> None:
    assert grading.letter_grade(score) == letter
    assert grading.letter_grade(score) == grading.letter_grade(score)


def test_predicate_and_weighting() -> None:
    assert grading.letter_grade(None) is None
    assert grading.predicate(95) == "Excellent"
    assert grading.predicate(42) == "Failing"
    assert grading.weighted_score(80, 1.5) == 120.0
    assert grading.weighted_score(None, 2) is None
    assert grading.weighted_average([(80, 1), (100, 3)]) == 95.0
    assert grading.weighted_average([]) is None


def test_distribution_from_scores() -> None:
    counts = grading.grade_distribution_from_scores([95, 85, 72, 58])
    assert dict(counts) == {"A": 1, "B": 1, "C": 1, "D": 0, "E": 1}
    assert list(counts) == ["A", "B", "C", "D", "E"]
    assert list(grading.grade_distribution_from_scores([None]).values()) == [0, 0, 0, 0, 0]


def test_aggregate_keeps_group_keys() -> None:
    math_id, art_id = uuid4(), uuid4()
    rows = [
        grading.ScoreRow("quiz", math_id, 80.0),
        grading.ScoreRow("quiz", art_id, 60.0),
        grading.ScoreRow("final", math_id, 100.0),
    ]
    subjects = {math_id: SubjectInfo(id=math_id, name="Mathematics", code="MATH")}
    stats = grading.aggregate_grade_statistics(rows, subjects)

    assert stats["total_grades"] == 3
    assert stats["average_score"] == 80.0
    assert set(stats["by_assessment_type"]) == {"quiz", "final"}
    assert stats["by_assessment_type"]["quiz"] == {"count": 2, "average": 70.0, "max": 80.0, "min": 60.0}
    assert stats["by_subject"][math_id]["subject_code"] == "MATH"
    assert stats["by_subject"][math_id]["average"] == 90.0
    assert stats["by_subject"][art_id]["subject_name"] == ""


def test_aggregate_of_nothing() -> None:
    stats = grading.aggregate_grade_statistics([], {})
    assert stats["total_grades"] == 0
    assert stats["average_score"] is None
    assert stats["by_subject"] == {}


@pytest.mark.asyncio
async def test_record_grade_stamps_letter_and_predicate(
    db_session: AsyncSession, make_enrollment, grade_payload, class_id: UUID
) -> None:
    enrollment_id = await make_enrollment(class_id)
    grade = await service.record_grade(db_session, grade_payload(enrollment_id, 84.5, weight=2.0))
    assert grade.letter_grade == "B"
    assert grade.predicate == "Good"
    assert grade.weighted_score == 169.0


@pytest.mark.asyncio
async def test_duplicate_grade_rejected(
    db_session: AsyncSession, make_enrollment, grade_payload, class_id: UUID
) -> None:
    enrollment_id = await make_enrollment(class_id)
    await service.record_grade(db_session, grade_payload(enrollment_id, 70))
    with pytest.raises(DuplicateError):
        await service.record_grade(db_session, grade_payload(enrollment_id, 75))
    # another semester is a different grade
    other = await service.record_grade(db_session, grade_payload(enrollment_id, 75, semester=2))
    assert other.semester == 2


@pytest.mark.asyncio
async def test_record_grade_unknown_enrollment(db_session: AsyncSession, grade_payload) -> None:
    with pytest.raises(NotFoundError):
        await service.record_grade(db_session, grade_payload(uuid4(), 70))


@pytest.mark.asyncio
async def test_bulk_record_is_all_or_nothing(
    db_session: AsyncSession, make_enrollment, grade_payload, class_id: UUID
) -> None:
    first = await make_enrollment(class_id)
    second = await make_enrollment(class_id)
    payloads = [grade_payload(first, 90), grade_payload(second, 80), grade_payload(first, 70)]
    with pytest.raises(DuplicateError):
        await service.bulk_record_grades(db_session, payloads)
    assert (await service.class_statistics(db_session, class_id)).total_grades == 0

    saved = await service.bulk_record_grades(db_session, payloads[:2])
    assert [g.letter_grade for g in saved] == ["A", "B"]


@pytest.mark.asyncio
async def test_update_grade_score_rederives_letter(
    db_session: AsyncSession, make_enrollment, grade_payload, class_id: UUID
) -> None:
    grade = await service.record_grade(db_session, grade_payload(await make_enrollment(class_id), 55))
    assert grade.letter_grade == "E"
    updated = await service.update_grade_score(db_session, grade.id, 91)
    assert updated.letter_grade == "A"
    assert updated.predicate == "Excellent"


@pytest.mark.asyncio
async def test_class_distribution_scenario(
    db_session: AsyncSession, make_enrollment, grade_payload, class_id: UUID, make_class, year_id: UUID
) -> None:
    for score in (95, 85, 72, 58):
        await service.record_grade(db_session, grade_payload(await make_enrollment(class_id), score))
    # ungraded and other-class grades are not counted
    await service.record_grade(
        db_session, grade_payload(await make_enrollment(class_id), None, assessment_type=AssessmentType.DAILY)
    )
    other_class = await make_class(year_id, "9C")
    await service.record_grade(db_session, grade_payload(await make_enrollment(other_class), 99))

    distribution = await service.grade_distribution(db_session, class_id=class_id)
    assert distribution.counts == {"A": 1, "B": 1, "C": 1, "D": 0, "E": 1}
    assert list(distribution.labels.values()) == ["A (90-100)", "B (80-89)", "C (70-79)", "D (60-69)", "E (<60)"]
    assert distribution.total == 4


@pytest.mark.asyncio
async def test_class_statistics_groups_and_is_repeatable(
    db_session: AsyncSession,
    make_enrollment,
    grade_payload,
    make_subject,
    class_id: UUID,
    subject_id: UUID,
) -> None:
    science = await make_subject("Science", "SCI")
    a = await make_enrollment(class_id)
    b = await make_enrollment(class_id)
    await service.record_grade(db_session, grade_payload(a, 80))
    await service.record_grade(db_session, grade_payload(b, 90))
    await service.record_grade(db_session, grade_payload(a, 70, assessment_type=AssessmentType.MIDTERM, subject_id=science))

    first = await service.class_statistics(db_session, class_id)
    second = await service.class_statistics(db_session, class_id)
    assert first == second

    assert first.total_grades == 3
    assert first.average_score == 80.0
    assert first.max_score == 90.0
    assert first.min_score == 70.0
    assert first.by_assessment_type["quiz"].count == 2
    assert first.by_assessment_type["midterm"].average == 70.0
    assert first.by_subject[subject_id].subject_name == "Mathematics"
    assert first.by_subject[science].subject_code == "SCI"
    assert first.by_subject[subject_id].average == 85.0


@pytest.mark.asyncio
async def test_gpa_uses_midterm_and_final_only(
    db_session: AsyncSession, make_enrollment, grade_payload, class_id: UUID
) -> None:
    enrollment_id = await make_enrollment(class_id)
    await service.record_grade(db_session, grade_payload(enrollment_id, 50))
    await service.record_grade(db_session, grade_payload(enrollment_id, 80, assessment_type=AssessmentType.MIDTERM))
    await service.record_grade(db_session, grade_payload(enrollment_id, 91, assessment_type=AssessmentType.FINAL))

    student_id = (await db_session.get(Enrollment, enrollment_id)).student_id
    assert await service.calculate_student_gpa(db_session, student_id) == 85.5
    assert await service.calculate_class_gpa(db_session, class_id) == 85.5
    assert await service.calculate_class_gpa(db_session, uuid4()) == 0.0

    stats = await service.student_statistics(db_session, student_id)
    assert stats.total_grades == 3


@pytest.mark.asyncio
async def test_deleted_grades_are_excluded(
    db_session: AsyncSession, make_enrollment, grade_payload, class_id: UUID
) -> None:
    grade = await service.record_grade(db_session, grade_payload(await make_enrollment(class_id), 88))
    await service.delete_grade(db_session, grade.id)
    assert (await service.class_statistics(db_session, class_id)).total_grades == 0
    assert (await db_session.get(Grade, grade.id)).deleted_at is not None

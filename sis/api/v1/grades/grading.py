"""Pure grading rules: letter grades, weighting and score aggregation. No I/O."""

from collections import OrderedDict, defaultdict
from typing import Dict, Iterable, List, NamedTuple, Optional, Tuple
from uuid import UUID

from sis.core.repository import SubjectInfo

# (floor, letter), checked top-down
LETTER_THRESHOLDS: Tuple[Tuple[float, str], ...] = (
    (90, "A"),
    (80, "B"),
    (70, "C"),
    (60, "D"),
)
FAILING_LETTER = "E"

PREDICATES: Dict[str, str] = {
    "A": "Excellent",
    "B": "Good",
    "C": "Satisfactory",
    "D": "Needs Improvement",
    "E": "Failing",
}

DISTRIBUTION_LABELS: "OrderedDict[str, str]" = OrderedDict(
    [
        ("A", "A (90-100)"),
        ("B", "B (80-89)"),
        ("C", "C (70-79)"),
        ("D", "D (60-69)"),
        ("E", "E (<60)"),
    ]
)


class ScoreRow(NamedTuple):
    assessment_type: str
    subject_id: UUID
    score: float
    weight: float = 1.0


def letter_grade(score: Optional[float]) -> Optional[str]:
    if score is None:
        return None
    for floor, letter in LETTER_THRESHOLDS:
        if score >= floor:
            return letter
    return FAILING_LETTER


def predicate(score: Optional[float]) -> Optional[str]:
    letter = letter_grade(score)
    return PREDICATES[letter] if letter else None


def weighted_score(score: Optional[float], weight: float) -> Optional[float]:
    if score is None:
        return None
    return round(score * weight, 2)


def weighted_average(pairs: Iterable[Tuple[float, float]]) -> Optional[float]:
    """sum(score x weight) / sum(weight) over (score, weight) pairs."""
    total = 0.0
    weights = 0.0
    for score, weight in pairs:
        total += score * weight
        weights += weight
    if weights == 0:
        return None
    return round(total / weights, 2)


def _summary(scores: List[float]) -> Dict[str, float]:
    return {
        "count": len(scores),
        "average": round(sum(scores) / len(scores), 2),
        "max": max(scores),
        "min": min(scores),
    }


def aggregate_grade_statistics(rows: List[ScoreRow], subjects: Dict[UUID, SubjectInfo]) -> dict:
    """
    Overall count/average/max/min plus the same per assessment_type and per subject_id.

    Group keys are kept exactly as stored. Subjects missing from ``subjects``
    are reported with empty name and code.
    """
    by_type: Dict[str, List[float]] = defaultdict(list)
    by_subject: Dict[UUID, List[float]] = defaultdict(list)
    for row in rows:
        by_type[row.assessment_type].append(row.score)
        by_subject[row.subject_id].append(row.score)

    scores = [row.score for row in rows]
    subject_stats = {}
    for subject_id, group in by_subject.items():
        info = subjects.get(subject_id)
        subject_stats[subject_id] = {
            "subject_id": subject_id,
            "subject_name": info.name if info else "",
            "subject_code": info.code if info else "",
            **_summary(group),
        }

    return {
        "total_grades": len(scores),
        "average_score": round(sum(scores) / len(scores), 2) if scores else None,
        "max_score": max(scores) if scores else None,
        "min_score": min(scores) if scores else None,
        "weighted_average": weighted_average((row.score, row.weight) for row in rows),
        "by_assessment_type": {key: _summary(group) for key, group in by_type.items()},
        "by_subject": subject_stats,
    }


def grade_distribution_from_scores(scores: Iterable[Optional[float]]) -> "OrderedDict[str, int]":
    """Counts per letter, always all five letters in A..E order. Null scores are skipped."""
    counts: "OrderedDict[str, int]" = OrderedDict((letter, 0) for letter in DISTRIBUTION_LABELS)
    for score in scores:
        letter = letter_grade(score)
        if letter is not None:
            counts[letter] += 1
    return counts

"""Late-submission arithmetic. Pure functions over timestamps and assignment settings."""

import math
from datetime import datetime
from typing import Optional

from sis.core.clock import to_naive_utc

SECONDS_PER_DAY = 86400


def is_late(submitted_at: Optional[datetime], due_date: datetime) -> bool:
    """Strictly after the due date. There is no grace period."""
    if submitted_at is None:
        return False
    return to_naive_utc(submitted_at) > to_naive_utc(due_date)


def days_late(submitted_at: Optional[datetime], due_date: datetime) -> int:
    """Started days past due: one second late counts as one day."""
    if not is_late(submitted_at, due_date):
        return 0
    delta = to_naive_utc(submitted_at) - to_naive_utc(due_date)
    return math.ceil(delta.total_seconds() / SECONDS_PER_DAY)


def calculated_late_penalty(
    max_score: int,
    late_penalty_percent: int,
    days_late_count: int,
    late: bool,
    allow_late_submission: bool,
) -> float:
    if not (late and allow_late_submission):
        return 0.0
    return round(max_score * late_penalty_percent / 100 * days_late_count, 2)


def final_score(score: Optional[float], penalty: float) -> Optional[float]:
    """score - penalty, clamped at 0. None while ungraded."""
    if score is None:
        return None
    return max(0.0, round(score - penalty, 2))

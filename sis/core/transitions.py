"""Status transition tables for Enrollment and Submission."""

from typing import Dict, FrozenSet

from sis.core.config import settings
from sis.core.enums import EnrollmentStatus, SubmissionStatus
from sis.core.exceptions import InvalidTransitionError

ENROLLMENT_TRANSITIONS: Dict[str, FrozenSet[str]] = {
    EnrollmentStatus.ACTIVE.value: frozenset(
        {EnrollmentStatus.GRADUATED.value, EnrollmentStatus.TRANSFERRED.value, EnrollmentStatus.SUSPENDED.value}
    ),
    # Reinstatement after suspension
    EnrollmentStatus.SUSPENDED.value: frozenset({EnrollmentStatus.ACTIVE.value, EnrollmentStatus.TRANSFERRED.value}),
    EnrollmentStatus.GRADUATED.value: frozenset(),
    EnrollmentStatus.TRANSFERRED.value: frozenset(),
}

# draft -> submitted -> graded -> returned; a returned submission may be resubmitted or regraded.
SUBMISSION_TRANSITIONS: Dict[str, FrozenSet[str]] = {
    SubmissionStatus.DRAFT.value: frozenset({SubmissionStatus.SUBMITTED.value}),
    SubmissionStatus.SUBMITTED.value: frozenset({SubmissionStatus.GRADED.value}),
    SubmissionStatus.GRADED.value: frozenset({SubmissionStatus.RETURNED.value}),
    SubmissionStatus.RETURNED.value: frozenset({SubmissionStatus.SUBMITTED.value, SubmissionStatus.GRADED.value}),
}


def can_transition(table: Dict[str, FrozenSet[str]], current: str, target: str) -> bool:
    """Staying in the same status is always allowed (re-grading, re-saving)."""
    if current == target:
        return True
    return target in table.get(current, frozenset())


def ensure_transition(entity: str, table: Dict[str, FrozenSet[str]], current: str, target: str) -> None:
    if not settings.enforce_status_transitions:
        return
    if not can_transition(table, current, target):
        raise InvalidTransitionError(entity, current, target)

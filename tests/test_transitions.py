from uuid import uuid4

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from sis.core.config import settings
from sis.core.enums import EnrollmentStatus, SubmissionStatus
from sis.core.exceptions import DuplicateError, InvalidTransitionError, ValidationError
from sis.core.models import School
from sis.core.transitions import (
    ENROLLMENT_TRANSITIONS,
    SUBMISSION_TRANSITIONS,
    can_transition,
    ensure_transition,
)
from sis.db.transaction import atomic


def test_enrollment_table() -> None:
    assert can_transition(ENROLLMENT_TRANSITIONS, "active", "suspended")
    assert can_transition(ENROLLMENT_TRANSITIONS, "suspended", "active")
    assert not can_transition(ENROLLMENT_TRANSITIONS, "graduated", "active")
    assert not can_transition(ENROLLMENT_TRANSITIONS, "transferred", "suspended")
    # terminal states may be re-saved
    assert can_transition(ENROLLMENT_TRANSITIONS, "graduated", "graduated")


def test_submission_table() -> None:
    assert can_transition(SUBMISSION_TRANSITIONS, "draft", "submitted")
    assert not can_transition(SUBMISSION_TRANSITIONS, "draft", "graded")
    assert can_transition(SUBMISSION_TRANSITIONS, "returned", "submitted")
    assert set(SUBMISSION_TRANSITIONS) == {s.value for s in SubmissionStatus}
    assert set(ENROLLMENT_TRANSITIONS) == {s.value for s in EnrollmentStatus}


def test_ensure_transition_respects_setting(monkeypatch) -> None:
    with pytest.raises(InvalidTransitionError) as exc:
        ensure_transition("Submission", SUBMISSION_TRANSITIONS, "draft", "returned")
    assert exc.value.status_code == 400
    assert "draft" in exc.value.message

    monkeypatch.setattr(settings, "enforce_status_transitions", False)
    ensure_transition("Submission", SUBMISSION_TRANSITIONS, "draft", "returned")


async def _school_count(db: AsyncSession) -> int:
    return (await db.execute(select(func.count(School.id)))).scalar_one()


@pytest.mark.asyncio
async def test_atomic_translates_unique_violation(db_session: AsyncSession) -> None:
    async with atomic(db_session, "seed", DuplicateError()):
        db_session.add(School(name="One", code="DUP"))

    with pytest.raises(DuplicateError):
        async with atomic(db_session, "dup", DuplicateError("School code taken")):
            db_session.add(School(name="Two", code="FRESH"))
            db_session.add(School(name="Three", code="DUP"))
    assert await _school_count(db_session) == 1


@pytest.mark.asyncio
async def test_atomic_rolls_back_on_service_error(db_session: AsyncSession) -> None:
    with pytest.raises(ValidationError):
        async with atomic(db_session, "reject", DuplicateError()):
            db_session.add(School(name="Half", code=f"H-{uuid4().hex[:6]}"))
            await db_session.flush()
            raise ValidationError("nope")
    assert await _school_count(db_session) == 0

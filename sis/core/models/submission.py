import uuid

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, Numeric, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID

from sis.core.models.mixins import AuditMixin
from sis.db.session import Base


class Submission(AuditMixin, Base):
    """One submission per (assignment, student). Resubmission overwrites; no versioning."""

    __tablename__ = "submissions"
    __table_args__ = (
        UniqueConstraint("assignment_id", "student_id", name="uq_submission_assignment_student"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    assignment_id = Column(UUID(as_uuid=True), ForeignKey("assignments.id", ondelete="CASCADE"), nullable=False)
    student_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    content = Column(Text, nullable=True)
    file_path = Column(String(500), nullable=True)
    file_name = Column(String(255), nullable=True)
    score = Column(Numeric(6, 2, asdecimal=False), nullable=True)
    grade = Column(String(5), nullable=True)
    feedback = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default="draft")  # draft | submitted | graded | returned
    submitted_at = Column(DateTime(timezone=True), nullable=True)
    is_late = Column(Boolean, nullable=False, default=False)
    days_late = Column(Integer, nullable=False, default=0)
    graded_by = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    graded_at = Column(DateTime(timezone=True), nullable=True)

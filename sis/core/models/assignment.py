import uuid

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.dialects.postgresql import UUID

from sis.core.models.mixins import AuditMixin
from sis.db.session import Base


class Assignment(AuditMixin, Base):
    """Work set for a class. Accepts submissions only while published and inside the optional window."""

    __tablename__ = "assignments"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    academic_year_id = Column(
        UUID(as_uuid=True),
        ForeignKey("academic_years.id", ondelete="CASCADE"),
        nullable=False,
    )
    class_id = Column(UUID(as_uuid=True), ForeignKey("classes.id", ondelete="CASCADE"), nullable=False)
    subject_id = Column(UUID(as_uuid=True), ForeignKey("subjects.id", ondelete="CASCADE"), nullable=False)
    teacher_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="RESTRICT"), nullable=False)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    assignment_type = Column(String(20), nullable=False, default="assignment")
    due_date = Column(DateTime(timezone=True), nullable=False)
    submission_start = Column(DateTime(timezone=True), nullable=True)  # NULL = open immediately
    submission_end = Column(DateTime(timezone=True), nullable=True)  # NULL = no closing bound
    max_score = Column(Integer, nullable=False, default=100)
    is_published = Column(Boolean, nullable=False, default=False)
    allow_late_submission = Column(Boolean, nullable=False, default=False)
    late_penalty_percent = Column(Integer, nullable=False, default=0)  # 0..100 per day late

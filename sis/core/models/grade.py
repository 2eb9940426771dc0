import uuid

from sqlalchemy import Column, Date, ForeignKey, Integer, Numeric, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID

from sis.core.models.mixins import AuditMixin
from sis.db.session import Base


class Grade(AuditMixin, Base):
    """Scored assessment. One per (enrollment, subject, assessment_type, semester, academic_year)."""

    __tablename__ = "grades"
    __table_args__ = (
        UniqueConstraint(
            "enrollment_id",
            "subject_id",
            "assessment_type",
            "semester",
            "academic_year_id",
            name="uq_grade_enrollment_subject_type_period",
        ),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    enrollment_id = Column(UUID(as_uuid=True), ForeignKey("enrollments.id", ondelete="CASCADE"), nullable=False)
    subject_id = Column(UUID(as_uuid=True), ForeignKey("subjects.id", ondelete="CASCADE"), nullable=False)
    teacher_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="RESTRICT"), nullable=False)
    academic_year_id = Column(
        UUID(as_uuid=True),
        ForeignKey("academic_years.id", ondelete="CASCADE"),
        nullable=False,
    )
    assessment_type = Column(String(20), nullable=False)  # daily | quiz | midterm | final | project | assignment
    score = Column(Numeric(5, 2, asdecimal=False), nullable=True)
    letter_grade = Column(String(2), nullable=True)
    predicate = Column(String(50), nullable=True)
    weight = Column(Numeric(4, 2, asdecimal=False), nullable=False, default=1.00)
    semester = Column(Integer, nullable=False)  # 1 | 2
    assessment_date = Column(Date, nullable=False)
    notes = Column(Text, nullable=True)

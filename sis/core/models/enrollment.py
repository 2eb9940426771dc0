import uuid

from sqlalchemy import Column, Date, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID

from sis.core.models.mixins import AuditMixin
from sis.db.session import Base


class Enrollment(AuditMixin, Base):
    """
    Student bound to one class in one academic year. One row per
    (student, class, academic_year) whatever its status.
    Promotion creates NEW rows; the source row keeps its status.
    class_rank is recomputed in batch, never maintained incrementally.
    """

    __tablename__ = "enrollments"
    __table_args__ = (
        UniqueConstraint("student_id", "class_id", "academic_year_id", name="uq_enrollment_student_class_year"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    student_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    class_id = Column(UUID(as_uuid=True), ForeignKey("classes.id", ondelete="CASCADE"), nullable=False)
    academic_year_id = Column(
        UUID(as_uuid=True),
        ForeignKey("academic_years.id", ondelete="CASCADE"),
        nullable=False,
    )
    status = Column(String(20), nullable=False, default="active")  # active | graduated | transferred | suspended
    enrollment_date = Column(Date, nullable=False)
    graduation_date = Column(Date, nullable=True)
    admission_number = Column(String(50), nullable=True)
    class_rank = Column(Integer, nullable=True)
    notes = Column(Text, nullable=True)

"""Class (homeroom group) model. Named ClassGroup to avoid the Python 'class' keyword."""
import uuid

from sqlalchemy import Boolean, Column, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID

from sis.core.models.mixins import AuditMixin
from sis.db.session import Base


class ClassGroup(AuditMixin, Base):
    """Class within a school and academic year. class_code unique per (school, academic_year)."""

    __tablename__ = "classes"
    __table_args__ = (
        UniqueConstraint("school_id", "academic_year_id", "class_code", name="uq_class_school_year_code"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    school_id = Column(UUID(as_uuid=True), ForeignKey("schools.id", ondelete="CASCADE"), nullable=False)
    academic_year_id = Column(
        UUID(as_uuid=True),
        ForeignKey("academic_years.id", ondelete="CASCADE"),
        nullable=False,
    )
    name = Column(String(100), nullable=False)
    class_code = Column(String(50), nullable=False)
    level_id = Column(UUID(as_uuid=True), nullable=True)  # school level (e.g. junior high)
    homeroom_teacher_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    max_students = Column(Integer, nullable=True)  # NULL = unlimited
    order = Column(Integer, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

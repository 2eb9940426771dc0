import uuid

from sqlalchemy import Boolean, Column, ForeignKey, Index, String, Text, UniqueConstraint, text
from sqlalchemy.dialects.postgresql import UUID

from sis.core.models.mixins import AuditMixin
from sis.db.session import Base


class ParentStudent(AuditMixin, Base):
    """
    Parent (or guardian) linked to a student. One row per (parent, student).
    At most one primary parent per student (partial unique index).
    """

    __tablename__ = "parent_students"
    __table_args__ = (
        UniqueConstraint("parent_id", "student_id", name="uq_parent_student"),
        Index(
            "uq_parent_student_primary_per_student",
            "student_id",
            unique=True,
            postgresql_where=text("is_primary"),
            sqlite_where=text("is_primary"),
        ),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    parent_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    student_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    relationship = Column(String(50), nullable=False)  # father, mother, guardian, uncle, ...
    guardian_type = Column(String(20), nullable=False)  # biological | adoptive | foster | other
    is_primary = Column(Boolean, nullable=False, default=False)
    notes = Column(Text, nullable=True)

import uuid

from sqlalchemy import Boolean, Column, Date, ForeignKey, Index, String, Text, text
from sqlalchemy.dialects.postgresql import UUID

from sis.core.models.mixins import AuditMixin
from sis.db.session import Base


class AcademicYear(AuditMixin, Base):
    """
    Academic year per school. Only one per school can be is_current = true
    (partial unique index). Date ranges of one school must not overlap; that
    rule is checked by the service, not the schema.
    """

    __tablename__ = "academic_years"
    __table_args__ = (
        Index(
            "uq_academic_year_current_per_school",
            "school_id",
            unique=True,
            postgresql_where=text("is_current"),
            sqlite_where=text("is_current"),
        ),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    school_id = Column(UUID(as_uuid=True), ForeignKey("schools.id", ondelete="CASCADE"), nullable=False)
    name = Column(String(50), nullable=False)  # e.g. "2024/2025"
    # Unique across all schools
    year_code = Column(String(50), nullable=False, unique=True)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    is_current = Column(Boolean, nullable=False, default=False)
    description = Column(Text, nullable=True)

import uuid

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, String, Text
from sqlalchemy.dialects.postgresql import UUID

from sis.core.models.mixins import AuditMixin
from sis.db.session import Base


class Announcement(AuditMixin, Base):
    """
    School announcement. audience_kind is the union tag; audience holds the
    serialized variant (see sis.api.v1.announcements.schemas.Audience).
    """

    __tablename__ = "announcements"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    school_id = Column(UUID(as_uuid=True), ForeignKey("schools.id", ondelete="CASCADE"), nullable=False)
    academic_year_id = Column(
        UUID(as_uuid=True),
        ForeignKey("academic_years.id", ondelete="CASCADE"),
        nullable=True,
    )
    sender_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    title = Column(String(255), nullable=False)
    content = Column(Text, nullable=False)
    priority = Column(String(10), nullable=False, default="normal")  # low | normal | high | urgent
    audience_kind = Column(String(20), nullable=False, default="all")  # all | school_level | class | specific
    audience = Column(JSON, nullable=False, default=dict)
    publish_at = Column(DateTime(timezone=True), nullable=True)
    expire_at = Column(DateTime(timezone=True), nullable=True)
    is_published = Column(Boolean, nullable=False, default=False)

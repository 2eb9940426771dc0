import uuid

from sqlalchemy import Column, Date, ForeignKey, String, Text, Time, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID

from sis.core.models.mixins import AuditMixin
from sis.db.session import Base


class Attendance(AuditMixin, Base):
    """One attendance row per enrollment per date."""

    __tablename__ = "attendances"
    __table_args__ = (
        UniqueConstraint("enrollment_id", "attendance_date", name="uq_attendance_enrollment_date"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    enrollment_id = Column(UUID(as_uuid=True), ForeignKey("enrollments.id", ondelete="CASCADE"), nullable=False)
    teacher_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    attendance_date = Column(Date, nullable=False)
    status = Column(String(20), nullable=False)  # present | absent | late | excuse | sick
    check_in_time = Column(Time, nullable=True)
    check_out_time = Column(Time, nullable=True)
    attendance_type = Column(String(20), nullable=False, default="daily")  # daily | weekly | monthly
    notes = Column(Text, nullable=True)

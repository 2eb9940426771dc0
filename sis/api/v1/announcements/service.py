from datetime import datetime
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from sis.core.clock import to_naive_utc, utcnow
from sis.core.enums import EnrollmentStatus
from sis.core.exceptions import DuplicateError, ValidationError
from sis.core.logging import get_logger
from sis.core.models import Announcement, ClassGroup, Enrollment, School, User
from sis.core.repository import get_live_or_404
from sis.db.transaction import atomic

from .schemas import (
    AllAudience,
    AnnouncementCreate,
    AnnouncementResponse,
    ClassAudience,
    SchoolLevelAudience,
    SpecificAudience,
    Viewer,
    audience_adapter,
)

logger = get_logger(__name__)


def is_visible_to(announcement: AnnouncementResponse, viewer: Viewer, now: datetime) -> bool:
    """Published, inside its publish/expire window, same school, and addressed to the viewer."""
    if not announcement.is_published or announcement.school_id != viewer.school_id:
        return False
    now = to_naive_utc(now)
    publish_at = to_naive_utc(announcement.publish_at)
    expire_at = to_naive_utc(announcement.expire_at)
    if publish_at is not None and publish_at > now:
        return False
    if expire_at is not None and expire_at <= now:
        return False

    audience = announcement.audience
    if isinstance(audience, AllAudience):
        return True
    if isinstance(audience, SchoolLevelAudience):
        return audience.school_level_id in viewer.school_level_ids
    if isinstance(audience, ClassAudience):
        return audience.class_id in viewer.class_ids
    if isinstance(audience, SpecificAudience):
        return viewer.user_id in audience.user_ids
    return False


def _to_response(a: Announcement) -> AnnouncementResponse:
    return AnnouncementResponse(
        id=a.id,
        school_id=a.school_id,
        academic_year_id=a.academic_year_id,
        sender_id=a.sender_id,
        title=a.title,
        content=a.content,
        priority=a.priority,
        audience=audience_adapter.validate_python(a.audience),
        publish_at=a.publish_at,
        expire_at=a.expire_at,
        is_published=a.is_published,
        created_at=a.created_at,
    )


async def create_announcement(
    db: AsyncSession,
    payload: AnnouncementCreate,
    sender_id: Optional[UUID] = None,
) -> AnnouncementResponse:
    await get_live_or_404(db, School, payload.school_id, "School")
    publish_at = to_naive_utc(payload.publish_at)
    expire_at = to_naive_utc(payload.expire_at)
    if publish_at and expire_at and expire_at <= publish_at:
        raise ValidationError("expire_at must be after publish_at")
    async with atomic(db, "create_announcement", DuplicateError("Announcement could not be created")):
        obj = Announcement(
            school_id=payload.school_id,
            academic_year_id=payload.academic_year_id,
            sender_id=sender_id,
            title=payload.title.strip(),
            content=payload.content,
            priority=payload.priority.value,
            audience_kind=payload.audience.kind,
            audience=payload.audience.model_dump(mode="json"),
            publish_at=publish_at,
            expire_at=expire_at,
            is_published=payload.is_published,
            created_by=sender_id,
            updated_by=sender_id,
        )
        db.add(obj)
    logger.info(
        "announcement_created",
        announcement_id=str(obj.id),
        audience_kind=obj.audience_kind,
        is_published=obj.is_published,
    )
    return _to_response(obj)


async def get_announcement(db: AsyncSession, announcement_id: UUID) -> AnnouncementResponse:
    obj = await get_live_or_404(db, Announcement, announcement_id, "Announcement")
    return _to_response(obj)


async def build_viewer(db: AsyncSession, user_id: UUID) -> Viewer:
    """Classes come from the user's active enrollments and the classes they are homeroom teacher of."""
    user = await get_live_or_404(db, User, user_id, "User")
    enrolled = select(Enrollment.class_id).where(
        Enrollment.student_id == user_id,
        Enrollment.status == EnrollmentStatus.ACTIVE.value,
        Enrollment.deleted_at.is_(None),
    )
    result = await db.execute(
        select(ClassGroup.id, ClassGroup.level_id).where(
            ClassGroup.deleted_at.is_(None),
            (ClassGroup.id.in_(enrolled)) | (ClassGroup.homeroom_teacher_id == user_id),
        )
    )
    rows = result.all()
    return Viewer(
        user_id=user.id,
        school_id=user.school_id,
        class_ids=frozenset(r.id for r in rows),
        school_level_ids=frozenset(r.level_id for r in rows if r.level_id is not None),
    )


async def list_visible_announcements(
    db: AsyncSession,
    viewer: Viewer,
    now: Optional[datetime] = None,
) -> List[AnnouncementResponse]:
    """Announcements the viewer may read right now, newest first."""
    now = now or utcnow()
    result = await db.execute(
        select(Announcement)
        .where(
            Announcement.school_id == viewer.school_id,
            Announcement.is_published.is_(True),
            Announcement.deleted_at.is_(None),
        )
        .order_by(Announcement.created_at.desc())
    )
    candidates = [_to_response(a) for a in result.scalars().all()]
    return [a for a in candidates if is_visible_to(a, viewer, now)]

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from sis.auth.dependencies import get_current_user
from sis.auth.schemas import CurrentUser
from sis.core.exceptions import ServiceError
from sis.db.session import get_db

from .schemas import AnnouncementCreate, AnnouncementResponse
from . import service

router = APIRouter(prefix="/api/v1/announcements", tags=["announcements"])


@router.post("", response_model=AnnouncementResponse, status_code=status.HTTP_201_CREATED)
async def create_announcement(
    payload: AnnouncementCreate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> AnnouncementResponse:
    """Audience is one of: {"kind": "all"}, {"kind": "school_level", "school_level_id"},
    {"kind": "class", "class_id"}, {"kind": "specific", "user_ids": [...]}."""
    try:
        return await service.create_announcement(db, payload, sender_id=current_user.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/mine", response_model=List[AnnouncementResponse])
async def list_my_announcements(
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> List[AnnouncementResponse]:
    """Announcements currently visible to the acting user."""
    try:
        viewer = await service.build_viewer(db, current_user.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return await service.list_visible_announcements(db, viewer)


@router.get("/{announcement_id}", response_model=AnnouncementResponse)
async def get_announcement(
    announcement_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> AnnouncementResponse:
    try:
        return await service.get_announcement(db, announcement_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from sis.auth.dependencies import get_current_user
from sis.auth.schemas import CurrentUser
from sis.core.exceptions import ServiceError
from sis.db.session import get_db

from .schemas import AssignmentCreate, AssignmentPublish, AssignmentResponse
from . import service

router = APIRouter(prefix="/api/v1/assignments", tags=["assignments"])


@router.post("", response_model=AssignmentResponse, status_code=status.HTTP_201_CREATED)
async def create_assignment(
    payload: AssignmentCreate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> AssignmentResponse:
    try:
        return await service.create_assignment(db, payload, actor_id=current_user.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/class/{class_id}", response_model=List[AssignmentResponse])
async def list_class_assignments(
    class_id: UUID,
    published_only: bool = Query(False),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> List[AssignmentResponse]:
    return await service.list_class_assignments(db, class_id, published_only=published_only)


@router.get("/{assignment_id}", response_model=AssignmentResponse)
async def get_assignment(
    assignment_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> AssignmentResponse:
    try:
        return await service.get_assignment(db, assignment_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("/{assignment_id}/publish", response_model=AssignmentResponse)
async def publish_assignment(
    assignment_id: UUID,
    payload: AssignmentPublish,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> AssignmentResponse:
    """Publish (or unpublish with is_published=false). Only published assignments accept submissions."""
    try:
        return await service.publish_assignment(
            db, assignment_id, is_published=payload.is_published, actor_id=current_user.id
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

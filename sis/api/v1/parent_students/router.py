from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from sis.auth.dependencies import get_current_user
from sis.auth.schemas import CurrentUser
from sis.core.exceptions import ServiceError
from sis.db.session import get_db

from .schemas import ParentStudentCreate, ParentStudentResponse, ParentStudentStatistics, ParentStudentUpdate
from . import service

router = APIRouter(prefix="/api/v1/parent-students", tags=["parent-students"])


@router.post("", response_model=ParentStudentResponse, status_code=status.HTTP_201_CREATED)
async def link_parent_student(
    payload: ParentStudentCreate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> ParentStudentResponse:
    """Link a parent to a student. is_primary=true replaces the student's current primary parent."""
    try:
        return await service.link_parent_student(db, payload, actor_id=current_user.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/statistics", response_model=ParentStudentStatistics)
async def parent_student_statistics(
    parent_id: Optional[UUID] = Query(None),
    student_id: Optional[UUID] = Query(None),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> ParentStudentStatistics:
    return await service.parent_student_statistics(db, parent_id=parent_id, student_id=student_id)


@router.get("/parent/{parent_id}", response_model=List[ParentStudentResponse])
async def list_students_for_parent(
    parent_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> List[ParentStudentResponse]:
    return await service.list_students_for_parent(db, parent_id)


@router.get("/student/{student_id}", response_model=List[ParentStudentResponse])
async def list_parents_for_student(
    student_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> List[ParentStudentResponse]:
    return await service.list_parents_for_student(db, student_id)


@router.get("/student/{student_id}/primary", response_model=Optional[ParentStudentResponse])
async def get_primary_parent(
    student_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> Optional[ParentStudentResponse]:
    return await service.get_primary_parent(db, student_id)


@router.get("/{parent_student_id}", response_model=ParentStudentResponse)
async def get_parent_student(
    parent_student_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> ParentStudentResponse:
    try:
        return await service.get_parent_student(db, parent_student_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.put("/{parent_student_id}", response_model=ParentStudentResponse)
async def update_parent_student(
    parent_student_id: UUID,
    payload: ParentStudentUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> ParentStudentResponse:
    try:
        return await service.update_parent_student(db, parent_student_id, payload, actor_id=current_user.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("/{parent_student_id}/set-primary", response_model=ParentStudentResponse)
async def set_primary_parent(
    parent_student_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> ParentStudentResponse:
    """Make this the student's primary parent. All other links of the student become non-primary."""
    try:
        return await service.set_primary_parent(db, parent_student_id, actor_id=current_user.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete("/{parent_student_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_parent_student(
    parent_student_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> None:
    try:
        await service.delete_parent_student(db, parent_student_id, actor_id=current_user.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

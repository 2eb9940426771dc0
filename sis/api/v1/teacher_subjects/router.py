from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from sis.auth.dependencies import get_current_user
from sis.auth.schemas import CurrentUser
from sis.core.enums import TeachingRole
from sis.core.exceptions import ServiceError
from sis.db.session import get_db

from .schemas import (
    TeacherLoad,
    TeacherSubjectCreate,
    TeacherSubjectResponse,
    TeacherSubjectStatistics,
    TeacherSubjectUpdate,
)
from . import service

router = APIRouter(prefix="/api/v1/teacher-subjects", tags=["teacher-subjects"])


@router.post("", response_model=TeacherSubjectResponse, status_code=status.HTTP_201_CREATED)
async def assign_teacher_subject(
    payload: TeacherSubjectCreate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> TeacherSubjectResponse:
    try:
        return await service.assign_teacher_subject(db, payload, actor_id=current_user.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("", response_model=List[TeacherSubjectResponse])
async def list_teacher_subjects(
    teacher_id: Optional[UUID] = Query(None),
    subject_id: Optional[UUID] = Query(None),
    class_id: Optional[UUID] = Query(None),
    academic_year_id: Optional[UUID] = Query(None),
    teaching_role: Optional[TeachingRole] = Query(None),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> List[TeacherSubjectResponse]:
    return await service.list_teacher_subjects(
        db,
        teacher_id=teacher_id,
        subject_id=subject_id,
        class_id=class_id,
        academic_year_id=academic_year_id,
        teaching_role=teaching_role,
    )


@router.get("/statistics", response_model=TeacherSubjectStatistics)
async def teacher_subject_statistics(
    teacher_id: Optional[UUID] = Query(None),
    subject_id: Optional[UUID] = Query(None),
    class_id: Optional[UUID] = Query(None),
    academic_year_id: Optional[UUID] = Query(None),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> TeacherSubjectStatistics:
    return await service.teacher_subject_statistics(db, teacher_id, subject_id, class_id, academic_year_id)


@router.get("/teachers", response_model=List[UUID])
async def assigned_teachers(
    class_id: Optional[UUID] = Query(None),
    subject_id: Optional[UUID] = Query(None),
    academic_year_id: Optional[UUID] = Query(None),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> List[UUID]:
    """Teacher ids assigned to a class and/or subject."""
    return await service.assigned_teacher_ids(
        db, class_id=class_id, subject_id=subject_id, academic_year_id=academic_year_id
    )


@router.get("/teacher/{teacher_id}/load", response_model=TeacherLoad)
async def teacher_load(
    teacher_id: UUID,
    academic_year_id: Optional[UUID] = Query(None),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> TeacherLoad:
    return await service.teacher_load(db, teacher_id, academic_year_id=academic_year_id)


@router.get("/{teacher_subject_id}", response_model=TeacherSubjectResponse)
async def get_teacher_subject(
    teacher_subject_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> TeacherSubjectResponse:
    try:
        return await service.get_teacher_subject(db, teacher_subject_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.put("/{teacher_subject_id}", response_model=TeacherSubjectResponse)
async def update_teacher_subject(
    teacher_subject_id: UUID,
    payload: TeacherSubjectUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> TeacherSubjectResponse:
    try:
        return await service.update_teacher_subject(db, teacher_subject_id, payload, actor_id=current_user.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("/{teacher_subject_id}/toggle", response_model=TeacherSubjectResponse)
async def toggle_teacher_subject_status(
    teacher_subject_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> TeacherSubjectResponse:
    try:
        return await service.toggle_teacher_subject_status(db, teacher_subject_id, actor_id=current_user.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete("/{teacher_subject_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_teacher_subject(
    teacher_subject_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> None:
    try:
        await service.delete_teacher_subject(db, teacher_subject_id, actor_id=current_user.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

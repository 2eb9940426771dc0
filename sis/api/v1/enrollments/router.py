from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from sis.auth.dependencies import get_current_user
from sis.auth.schemas import CurrentUser
from sis.core.exceptions import ServiceError
from sis.db.session import get_db

from .schemas import (
    ClassEnrollmentStatistics,
    EnrollmentCreate,
    EnrollmentResponse,
    EnrollmentStatistics,
    EnrollmentStatusUpdate,
    PromotionRequest,
    PromotionResult,
    RankRecomputeResult,
)
from . import service

router = APIRouter(prefix="/api/v1/enrollments", tags=["enrollments"])


@router.post("", response_model=EnrollmentResponse, status_code=status.HTTP_201_CREATED)
async def enroll_student(
    payload: EnrollmentCreate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> EnrollmentResponse:
    try:
        return await service.enroll(db, payload, actor_id=current_user.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("/promote", response_model=PromotionResult)
async def promote_students(
    payload: PromotionRequest,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> PromotionResult:
    """Copy all active enrollments of a class into the next class/year. All or nothing."""
    try:
        promoted = await service.promote(db, payload, actor_id=current_user.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return PromotionResult(promoted=promoted)


@router.get("/class/{class_id}", response_model=List[EnrollmentResponse])
async def list_class_enrollments(
    class_id: UUID,
    academic_year_id: Optional[UUID] = Query(None),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> List[EnrollmentResponse]:
    return await service.list_class_enrollments(db, class_id, academic_year_id=academic_year_id)


@router.post("/class/{class_id}/ranks", response_model=RankRecomputeResult)
async def recompute_class_ranks(
    class_id: UUID,
    academic_year_id: UUID = Query(...),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> RankRecomputeResult:
    try:
        ranked = await service.recompute_class_ranks(db, class_id, academic_year_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return RankRecomputeResult(ranked=ranked)


@router.get("/class/{class_id}/statistics", response_model=ClassEnrollmentStatistics)
async def class_enrollment_statistics(
    class_id: UUID,
    academic_year_id: Optional[UUID] = Query(None),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> ClassEnrollmentStatistics:
    try:
        return await service.class_enrollment_statistics(db, class_id, academic_year_id=academic_year_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/{enrollment_id}", response_model=EnrollmentResponse)
async def get_enrollment(
    enrollment_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> EnrollmentResponse:
    try:
        return await service.get_enrollment(db, enrollment_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.patch("/{enrollment_id}/status", response_model=EnrollmentResponse)
async def update_enrollment_status(
    enrollment_id: UUID,
    payload: EnrollmentStatusUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> EnrollmentResponse:
    try:
        return await service.update_enrollment_status(db, enrollment_id, payload, actor_id=current_user.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/{enrollment_id}/statistics", response_model=EnrollmentStatistics)
async def enrollment_statistics(
    enrollment_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> EnrollmentStatistics:
    try:
        return await service.enrollment_statistics(db, enrollment_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete("/{enrollment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_enrollment(
    enrollment_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> None:
    try:
        await service.delete_enrollment(db, enrollment_id, actor_id=current_user.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

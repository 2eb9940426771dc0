from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from sis.auth.dependencies import get_current_user
from sis.auth.schemas import CurrentUser
from sis.core.exceptions import ServiceError
from sis.db.session import get_db

from .schemas import (
    GpaResponse,
    GradeBulkCreate,
    GradeCreate,
    GradeDistribution,
    GradeResponse,
    GradeScoreUpdate,
    GradeStatistics,
)
from . import service

router = APIRouter(prefix="/api/v1/grades", tags=["grades"])


@router.post("", response_model=GradeResponse, status_code=status.HTTP_201_CREATED)
async def record_grade(
    payload: GradeCreate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> GradeResponse:
    """Record a grade. Letter grade and predicate are derived from the score."""
    try:
        return await service.record_grade(db, payload, actor_id=current_user.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("/bulk", response_model=List[GradeResponse], status_code=status.HTTP_201_CREATED)
async def bulk_record_grades(
    payload: GradeBulkCreate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> List[GradeResponse]:
    try:
        return await service.bulk_record_grades(db, payload.grades, actor_id=current_user.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/distribution", response_model=GradeDistribution)
async def grade_distribution(
    class_id: Optional[UUID] = Query(None),
    subject_id: Optional[UUID] = Query(None),
    academic_year_id: Optional[UUID] = Query(None),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> GradeDistribution:
    return await service.grade_distribution(
        db, class_id=class_id, subject_id=subject_id, academic_year_id=academic_year_id
    )


@router.get("/class/{class_id}/statistics", response_model=GradeStatistics)
async def class_statistics(
    class_id: UUID,
    academic_year_id: Optional[UUID] = Query(None),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> GradeStatistics:
    return await service.class_statistics(db, class_id, academic_year_id=academic_year_id)


@router.get("/class/{class_id}/gpa", response_model=GpaResponse)
async def class_gpa(
    class_id: UUID,
    academic_year_id: Optional[UUID] = Query(None),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> GpaResponse:
    return GpaResponse(gpa=await service.calculate_class_gpa(db, class_id, academic_year_id=academic_year_id))


@router.get("/student/{student_id}/statistics", response_model=GradeStatistics)
async def student_statistics(
    student_id: UUID,
    academic_year_id: Optional[UUID] = Query(None),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> GradeStatistics:
    return await service.student_statistics(db, student_id, academic_year_id=academic_year_id)


@router.get("/student/{student_id}/gpa", response_model=GpaResponse)
async def student_gpa(
    student_id: UUID,
    academic_year_id: Optional[UUID] = Query(None),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> GpaResponse:
    return GpaResponse(gpa=await service.calculate_student_gpa(db, student_id, academic_year_id=academic_year_id))


@router.get("/{grade_id}", response_model=GradeResponse)
async def get_grade(
    grade_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> GradeResponse:
    try:
        return await service.get_grade(db, grade_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.patch("/{grade_id}/score", response_model=GradeResponse)
async def update_grade_score(
    grade_id: UUID,
    payload: GradeScoreUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> GradeResponse:
    try:
        return await service.update_grade_score(db, grade_id, payload.score, actor_id=current_user.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete("/{grade_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_grade(
    grade_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> None:
    try:
        await service.delete_grade(db, grade_id, actor_id=current_user.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

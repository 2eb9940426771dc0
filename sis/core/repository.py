"""Read helpers shared by the services: live-row lookups and the subject info port."""

from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Type, TypeVar
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from sis.core.exceptions import NotFoundError
from sis.core.models import Subject

ModelT = TypeVar("ModelT")


async def get_live(db: AsyncSession, model: Type[ModelT], obj_id: UUID) -> Optional[ModelT]:
    """Row by id, or None if missing or soft-deleted."""
    result = await db.execute(
        select(model).where(
            model.id == obj_id,
            model.deleted_at.is_(None),
        )
    )
    return result.scalar_one_or_none()


async def get_live_or_404(db: AsyncSession, model: Type[ModelT], obj_id: UUID, label: str) -> ModelT:
    obj = await get_live(db, model, obj_id)
    if obj is None:
        raise NotFoundError(f"{label} not found", resource_type=label)
    return obj


@dataclass(frozen=True)
class SubjectInfo:
    id: UUID
    name: str
    code: str


async def subject_info(db: AsyncSession, subject_ids: Iterable[UUID]) -> Dict[UUID, SubjectInfo]:
    """Name/code for each subject id, including soft-deleted subjects so old grades still resolve."""
    ids = set(subject_ids)
    if not ids:
        return {}
    result = await db.execute(select(Subject.id, Subject.name, Subject.code).where(Subject.id.in_(ids)))
    return {row.id: SubjectInfo(id=row.id, name=row.name, code=row.code) for row in result.all()}

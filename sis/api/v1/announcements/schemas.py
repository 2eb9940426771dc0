from dataclasses import dataclass, field
from datetime import datetime
from typing import Annotated, FrozenSet, List, Literal, Optional, Union
from uuid import UUID

from pydantic import BaseModel, Field, TypeAdapter

from sis.core.enums import AnnouncementPriority


class AllAudience(BaseModel):
    kind: Literal["all"] = "all"


class SchoolLevelAudience(BaseModel):
    kind: Literal["school_level"] = "school_level"
    school_level_id: UUID


class ClassAudience(BaseModel):
    kind: Literal["class"] = "class"
    class_id: UUID


class SpecificAudience(BaseModel):
    kind: Literal["specific"] = "specific"
    user_ids: List[UUID] = Field(..., min_length=1)


Audience = Annotated[
    Union[AllAudience, SchoolLevelAudience, ClassAudience, SpecificAudience],
    Field(discriminator="kind"),
]
audience_adapter: TypeAdapter = TypeAdapter(Audience)


class AnnouncementCreate(BaseModel):
    school_id: UUID
    academic_year_id: Optional[UUID] = None
    title: str = Field(..., min_length=1, max_length=255)
    content: str = Field(..., min_length=1)
    priority: AnnouncementPriority = AnnouncementPriority.NORMAL
    audience: Audience = Field(default_factory=AllAudience)
    publish_at: Optional[datetime] = None
    expire_at: Optional[datetime] = None
    is_published: bool = False


class AnnouncementResponse(BaseModel):
    id: UUID
    school_id: UUID
    academic_year_id: Optional[UUID] = None
    sender_id: Optional[UUID] = None
    title: str
    content: str
    priority: str
    audience: Audience
    publish_at: Optional[datetime] = None
    expire_at: Optional[datetime] = None
    is_published: bool
    created_at: datetime

    class Config:
        from_attributes = True


@dataclass(frozen=True)
class Viewer:
    """What an announcement needs to know about the person reading it."""

    user_id: UUID
    school_id: UUID
    class_ids: FrozenSet[UUID] = field(default_factory=frozenset)
    school_level_ids: FrozenSet[UUID] = field(default_factory=frozenset)

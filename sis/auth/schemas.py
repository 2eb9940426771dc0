from uuid import UUID

from pydantic import BaseModel


class CurrentUser(BaseModel):
    """Acting user, used for created_by/updated_by stamping only."""

    id: UUID
    school_id: UUID
    role: str

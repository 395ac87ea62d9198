"""Member activity schemas."""

from datetime import date
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class MemberActivityUpsert(BaseModel):
    """Schema for recording a member's attendance on a day."""

    member_id: UUID
    date: date
    value: float
    override_value: float | None = None


class MemberActivityResponse(BaseModel):
    """Attendance of a member on a day, with any override already applied."""

    model_config = ConfigDict(from_attributes=True)

    member_id: UUID
    date: date
    value: float

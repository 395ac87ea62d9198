from datetime import date
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class MembershipCreate(BaseModel):
    member_id: UUID
    membership_start: date
    purchase_date: date | None = None  # defaults to membership_start
    price: Decimal = Field(default=Decimal("0"), ge=0)
    order_reference: str | None = Field(default=None, max_length=255)


class MembershipResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    member_id: UUID
    membership_start: date
    purchase_date: date
    price: Decimal
    order_reference: str | None = None

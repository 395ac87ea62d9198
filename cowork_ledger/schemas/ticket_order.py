from datetime import date
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class TicketOrderCreate(BaseModel):
    member_id: UUID
    purchase_date: date
    tickets_quantity: int = Field(..., gt=0)
    price: Decimal = Field(default=Decimal("0"), ge=0)
    order_reference: str | None = Field(default=None, max_length=255)


class TicketOrderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    member_id: UUID
    purchase_date: date
    tickets_quantity: int
    price: Decimal
    order_reference: str | None = None

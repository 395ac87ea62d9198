from datetime import date
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class SubscriptionCreate(BaseModel):
    member_id: UUID
    start_date: date
    purchase_date: date | None = None  # defaults to start_date
    price: Decimal = Field(default=Decimal("0"), ge=0)
    order_reference: str | None = Field(default=None, max_length=255)


class SubscriptionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    member_id: UUID
    start_date: date
    end_date: date
    purchase_date: date
    price: Decimal
    order_reference: str | None = None

    @property
    def duration_in_days(self) -> int:
        return (self.end_date - self.start_date).days + 1

    @property
    def daily_amount(self) -> float:
        return float(self.price) / self.duration_in_days

    def covers(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date

"""Coverage schemas: how a member's attendance on a day is paid for."""

from datetime import date
from enum import Enum
from uuid import UUID

from pydantic import BaseModel


class CoverageType(str, Enum):
    SUBSCRIPTION = "subscription"
    TICKET = "ticket"


class Debt(BaseModel):
    """Attendance value that the ticket balance could not cover."""

    value: float


class CoverageResult(BaseModel):
    date: date
    member_id: UUID
    type: CoverageType
    value: float
    amount: float
    debt: Debt | None = None
    subscription_id: UUID | None = None
    balance_before: float | None = None  # ticket balance before this day, ticket days only

    @property
    def debt_value(self) -> float:
        return self.debt.value if self.debt else 0.0

    @property
    def covered_value(self) -> float:
        return self.value - self.debt_value

"""Period statistics schemas."""

from datetime import date
from enum import Enum
from typing import TypeVar
from uuid import UUID

from pydantic import BaseModel, Field


class PeriodType(str, Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"


class StatsQuery(BaseModel):
    """Options for ``compute_periods_stats``.

    Missing bounds default to the first tracked day and today. Periods that
    are still in progress are left out unless ``includes_current`` is set.
    """

    from_date: date | None = None
    to_date: date | None = None
    includes_current: bool = False


class PresenceStats(BaseModel):
    coworkers_count: int = 0
    coworked_days_count: int = 0
    coworked_days_amount: float = 0.0
    new_coworkers_count: int = 0


class MemberUsage(BaseModel):
    """Usage accumulated by one member over a period."""

    member_id: UUID
    ticket_days: float = 0.0
    ticket_amount: float = 0.0
    debt_value: float = 0.0
    subscription_days: int = 0
    subscription_amount: float = 0.0
    attended_subscription_days: float = 0.0

    @property
    def usage_amount(self) -> float:
        return self.ticket_amount + self.subscription_amount

    def merge(self, other: "MemberUsage") -> "MemberUsage":
        if other.member_id != self.member_id:
            raise ValueError(f"Cannot merge usage of {other.member_id} into {self.member_id}")
        return MemberUsage(
            member_id=self.member_id,
            ticket_days=self.ticket_days + other.ticket_days,
            ticket_amount=self.ticket_amount + other.ticket_amount,
            debt_value=self.debt_value + other.debt_value,
            subscription_days=self.subscription_days + other.subscription_days,
            subscription_amount=self.subscription_amount + other.subscription_amount,
            attended_subscription_days=(
                self.attended_subscription_days + other.attended_subscription_days
            ),
        )


class UsageStats(BaseModel):
    used_tickets: float = 0.0
    days_abo: int = 0
    ticket_amount: float = 0.0
    subscription_amount: float = 0.0
    usage_amount: float = 0.0
    debt_value: float = 0.0
    charges_amount: float = 0.0
    members: list[MemberUsage] = Field(default_factory=list)


class IncomeStats(BaseModel):
    tickets_count: int = 0
    tickets_income: float = 0.0
    subscriptions_count: int = 0
    subscriptions_income: float = 0.0
    memberships_count: int = 0
    memberships_income: float = 0.0
    incomes: float = 0.0


class MemberAttendance(BaseModel):
    """Attendance of one member over a period, split by how it was paid."""

    member_id: UUID
    name: str | None = None
    email: str | None = None
    presence_days: int = 0
    presence_value: float = 0.0
    ticket_days: float = 0.0
    ticket_amount: float = 0.0
    subscription_days: float = 0.0
    subscription_amount: float = 0.0
    debt_value: float = 0.0

    def merge(self, other: "MemberAttendance") -> "MemberAttendance":
        if other.member_id != self.member_id:
            raise ValueError(
                f"Cannot merge attendance of {other.member_id} into {self.member_id}"
            )
        return MemberAttendance(
            member_id=self.member_id,
            name=self.name or other.name,
            email=self.email or other.email,
            presence_days=self.presence_days + other.presence_days,
            presence_value=self.presence_value + other.presence_value,
            ticket_days=self.ticket_days + other.ticket_days,
            ticket_amount=self.ticket_amount + other.ticket_amount,
            subscription_days=self.subscription_days + other.subscription_days,
            subscription_amount=self.subscription_amount + other.subscription_amount,
            debt_value=self.debt_value + other.debt_value,
        )


class AttendanceStats(BaseModel):
    members_count: int = 0
    presence_days: int = 0
    presence_value: float = 0.0
    ticket_days: float = 0.0
    subscription_days: float = 0.0
    ticket_amount: float = 0.0
    subscription_amount: float = 0.0
    debt_value: float = 0.0
    members: list[MemberAttendance] = Field(default_factory=list)


class PeriodSummary(BaseModel):
    date: date
    type: PeriodType
    current: bool = False


class PresencePeriodSummary(PeriodSummary):
    data: PresenceStats


class UsagePeriodSummary(PeriodSummary):
    data: UsageStats


class IncomePeriodSummary(PeriodSummary):
    data: IncomeStats


class AttendancePeriodSummary(PeriodSummary):
    data: AttendanceStats


class OverviewStats(BaseModel):
    yesterday: PresenceStats
    last_week: PresenceStats
    last_month: PresenceStats
    last_year: PresenceStats
    all_time: PresenceStats


class MemberPresences(BaseModel):
    member_id: UUID
    email: str | None = None
    name: str | None = None
    presences: float = 0.0
    dates: dict[date, float] = Field(default_factory=dict)


MemberRow = TypeVar("MemberRow", MemberUsage, MemberAttendance)


def merge_member_rows(
    left: dict[UUID, MemberRow], right: dict[UUID, MemberRow]
) -> dict[UUID, MemberRow]:
    """Merge two member-keyed accumulators into a new mapping."""
    merged = dict(left)
    for member_id, row in right.items():
        existing = merged.get(member_id)
        merged[member_id] = row if existing is None else existing.merge(row)
    return merged

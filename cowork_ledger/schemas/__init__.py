from cowork_ledger.schemas.coverage import CoverageResult, CoverageType, Debt
from cowork_ledger.schemas.member import MemberCreate, MemberResponse
from cowork_ledger.schemas.member_activity import MemberActivityResponse, MemberActivityUpsert
from cowork_ledger.schemas.membership import MembershipCreate, MembershipResponse
from cowork_ledger.schemas.stats import (
    AttendancePeriodSummary,
    AttendanceStats,
    IncomePeriodSummary,
    IncomeStats,
    MemberAttendance,
    MemberPresences,
    MemberUsage,
    OverviewStats,
    PeriodSummary,
    PeriodType,
    PresencePeriodSummary,
    PresenceStats,
    StatsQuery,
    UsagePeriodSummary,
    UsageStats,
    merge_member_rows,
)
from cowork_ledger.schemas.subscription import SubscriptionCreate, SubscriptionResponse
from cowork_ledger.schemas.ticket_order import TicketOrderCreate, TicketOrderResponse

__all__ = [
    "AttendancePeriodSummary",
    "AttendanceStats",
    "CoverageResult",
    "CoverageType",
    "Debt",
    "IncomePeriodSummary",
    "IncomeStats",
    "MemberActivityResponse",
    "MemberActivityUpsert",
    "MemberAttendance",
    "MemberCreate",
    "MemberPresences",
    "MemberResponse",
    "MemberUsage",
    "MembershipCreate",
    "MembershipResponse",
    "OverviewStats",
    "PeriodSummary",
    "PeriodType",
    "PresencePeriodSummary",
    "PresenceStats",
    "StatsQuery",
    "SubscriptionCreate",
    "SubscriptionResponse",
    "TicketOrderCreate",
    "TicketOrderResponse",
    "UsagePeriodSummary",
    "UsageStats",
    "merge_member_rows",
]

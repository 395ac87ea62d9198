"""Roll the ledgers up into day, week, month and year statistics."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import TypeVar
from uuid import UUID

from cowork_ledger.core.concurrency import gather_bounded
from cowork_ledger.core.config import settings
from cowork_ledger.schemas.coverage import CoverageType
from cowork_ledger.schemas.member import MemberResponse
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
from cowork_ledger.schemas.subscription import SubscriptionResponse
from cowork_ledger.services.charge_allocator import ChargeAllocator
from cowork_ledger.services.coverage_resolver import (
    CoverageResolver,
    select_subscription,
    ticket_unit_price_by_date,
)
from cowork_ledger.services.ledger_store import LedgerStore, ThrottledLedgerStore
from cowork_ledger.services.period_dates import (
    InvalidStatsQueryError,
    Period,
    all_time_range,
    get_days,
    get_periods,
    is_current_period,
    last_month_range,
    last_week_range,
    last_year_range,
    month_range,
    parse_period_type,
    yesterday_range,
)
from cowork_ledger.services.stats_cache import StatsStore

logger = logging.getLogger(__name__)

PRESENCE = "presence"
USAGE = "usage"
INCOME = "income"
ATTENDANCE = "attendance"

PRESENCE_SORTS = ("presences", "user", "member")

SummaryT = TypeVar("SummaryT", bound=PeriodSummary)
DataT = TypeVar("DataT")


class PeriodComputationError(RuntimeError):
    """One or more periods of a batch could not be computed.

    The other periods of the batch were computed completely (and cached when
    closed); they are available in ``completed``.
    """

    def __init__(
        self,
        kind: str,
        failures: dict[date, Exception],
        completed: list[PeriodSummary],
    ):
        self.kind = kind
        self.failures = failures
        self.completed = completed
        starts = ", ".join(d.isoformat() for d in sorted(failures))
        super().__init__(f"Failed to compute {kind} stats for periods starting {starts}")


def cache_key(kind: str, period_type: PeriodType, start: date) -> str:
    """Cache key of a closed period, e.g. ``month-2024-03-01``."""
    key = f"{period_type.value}-{start.isoformat()}"
    return key if kind == PRESENCE else f"{kind}-{key}"


def _display_name(profile: MemberResponse | None) -> str | None:
    if profile is None:
        return None
    return profile.display_name or None


@dataclass
class _Request:
    """Ledger access shared by every period of one request."""

    store: ThrottledLedgerStore
    resolver: CoverageResolver


class PeriodAggregator:
    """Computes presence, usage, income and attendance statistics per period.

    Closed periods are read from and written to ``cache`` when one is given;
    periods still in progress are always recomputed and never cached.
    """

    def __init__(
        self,
        store: LedgerStore,
        cache: StatsStore | None = None,
        charges: ChargeAllocator | None = None,
        concurrency: int = settings.STATS_CONCURRENCY,
        today: Callable[[], date] = date.today,
        ticket_price: Callable[[date], float] = ticket_unit_price_by_date,
    ):
        self.store = store
        self.cache = cache
        self.charges = charges or ChargeAllocator()
        self.concurrency = concurrency
        self._today = today
        self._ticket_price = ticket_price

    # --- Public operations ---

    async def compute_periods_stats(
        self,
        period_type: PeriodType | str,
        query: StatsQuery | None = None,
    ) -> list[PresencePeriodSummary]:
        """Presence statistics per period.

        Args:
            period_type: Day, week, month or year.
            query: Range and options; see ``StatsQuery`` for defaults.

        Returns:
            One summary per period, oldest first. Current periods are only
            included when ``query.includes_current`` is set.
        """
        query = query or StatsQuery()
        summaries = await self._compute_periods(
            PRESENCE,
            period_type,
            query.from_date,
            query.to_date,
            PresencePeriodSummary,
            self._presence_stats,
        )
        if query.includes_current:
            return summaries
        return [s for s in summaries if not s.current]

    async def compute_period_usage(
        self,
        period_type: PeriodType | str,
        from_date: date | None = None,
        to_date: date | None = None,
    ) -> list[UsagePeriodSummary]:
        """What the members consumed per period, and what it cost to run the place."""
        return await self._compute_periods(
            USAGE, period_type, from_date, to_date, UsagePeriodSummary, self._usage_stats
        )

    async def compute_period_income(
        self,
        period_type: PeriodType | str,
        from_date: date | None = None,
        to_date: date | None = None,
    ) -> list[IncomePeriodSummary]:
        """Cash received per period: orders grouped by purchase date."""
        return await self._compute_periods(
            INCOME, period_type, from_date, to_date, IncomePeriodSummary, self._income_stats
        )

    async def compute_period_attendance(
        self,
        period_type: PeriodType | str,
        from_date: date | None = None,
        to_date: date | None = None,
    ) -> list[AttendancePeriodSummary]:
        """Who attended per period, and whether tickets or subscriptions paid for it."""
        return await self._compute_periods(
            ATTENDANCE,
            period_type,
            from_date,
            to_date,
            AttendancePeriodSummary,
            self._attendance_stats,
        )

    async def compute_stats(self) -> OverviewStats:
        """Presence statistics for yesterday, last week, month, year and all time."""
        today = self._today()
        request = self._new_request()
        ranges = {
            "yesterday": yesterday_range(today),
            "last_week": last_week_range(today),
            "last_month": last_month_range(today),
            "last_year": last_year_range(today),
            "all_time": all_time_range(today),
        }
        results = await asyncio.gather(
            *(self._presence_stats(period, request) for period in ranges.values()),
            return_exceptions=True,
        )

        failures: dict[date, Exception] = {}
        for (name, period), result in zip(ranges.items(), results):
            if isinstance(result, Exception):
                logger.error("Failed to compute %s overview", name, exc_info=result)
                failures[period.start] = result
            elif isinstance(result, BaseException):
                raise result
        if failures:
            raise PeriodComputationError("overview", failures, [])
        return OverviewStats(**dict(zip(ranges, results)))

    async def compute_monthly_presences(
        self, year: int, month: int, sort: str = "presences"
    ) -> list[MemberPresences]:
        """Per-member presence of one calendar month.

        Args:
            year: Calendar year.
            month: Calendar month, 1 to 12.
            sort: ``"presences"`` (most present first) or ``"user"`` (by email);
                ``"member"`` is accepted for ``"user"``.

        Returns:
            Members with at least one presence in the month.
        """
        if sort not in PRESENCE_SORTS:
            raise InvalidStatsQueryError(f"Unknown sort: {sort!r}")
        period = month_range(year, month)
        request = self._new_request()
        try:
            activity = await self._activity_by_day(period, request)
        except Exception as e:
            logger.error("Failed to read presences of %04d-%02d", year, month, exc_info=e)
            raise PeriodComputationError("presences", {period.start: e}, []) from e

        by_member: dict[UUID, MemberPresences] = {}
        for day_records in activity:
            for record in day_records:
                if record.value <= 0:
                    continue
                row = by_member.setdefault(
                    record.member_id, MemberPresences(member_id=record.member_id)
                )
                row.presences += record.value
                row.dates[record.date] = record.value

        profiles = await self._profiles(list(by_member), request)
        for member_id, row in by_member.items():
            profile = profiles.get(member_id)
            row.email = profile.email if profile else None
            row.name = _display_name(profile)

        rows = list(by_member.values())
        if sort in ("user", "member"):
            rows.sort(key=lambda r: (r.email or "", str(r.member_id)))
        else:
            rows.sort(key=lambda r: (-r.presences, r.email or "", str(r.member_id)))
        return rows

    # --- Period driver ---

    def _new_request(self) -> _Request:
        store = ThrottledLedgerStore(self.store, self.concurrency)
        return _Request(store=store, resolver=CoverageResolver(store, self._ticket_price))

    async def _compute_periods(
        self,
        kind: str,
        period_type: PeriodType | str,
        from_date: date | None,
        to_date: date | None,
        summary_cls: type[SummaryT],
        compute: Callable[[Period, _Request], Awaitable[DataT]],
    ) -> list[SummaryT]:
        period_type = parse_period_type(period_type)
        if from_date and to_date and to_date < from_date:
            raise InvalidStatsQueryError("Dates are in an invalid order")

        today = self._today()
        periods = get_periods(period_type, from_date, to_date, today=today)
        request = self._new_request()
        logger.debug(
            "Computing %s stats for %d %s periods", kind, len(periods), period_type.value
        )

        async def run(period: Period) -> SummaryT:
            current = is_current_period(period, today)
            key = cache_key(kind, period_type, period.start)

            if not current and self.cache is not None and await self.cache.has(key):
                return summary_cls.model_validate(await self.cache.get(key))

            data = await compute(period, request)
            summary = summary_cls(
                date=period.start, type=period_type, current=current, data=data
            )
            if not current and self.cache is not None:
                await self.cache.set(key, summary.model_dump(mode="json"))
                logger.info("Computed %s stats for period %s", kind, key)
            return summary

        results = await gather_bounded(
            periods, run, concurrency=self.concurrency, return_exceptions=True
        )

        completed: list[SummaryT] = []
        failures: dict[date, Exception] = {}
        for period, result in zip(periods, results):
            if isinstance(result, Exception):
                logger.error(
                    "Failed to compute %s stats for %s period starting %s",
                    kind,
                    period_type.value,
                    period.start,
                    exc_info=result,
                )
                failures[period.start] = result
            elif isinstance(result, BaseException):
                raise result
            else:
                completed.append(result)

        if failures:
            raise PeriodComputationError(kind, failures, list(completed))
        return completed

    # --- Shared ledger reads ---

    async def _activity_by_day(self, period: Period, request: _Request) -> list[list]:
        return await gather_bounded(
            get_days(period.start, period.end),
            request.store.get_activity_by_date,
            concurrency=self.concurrency,
        )

    async def _profiles(
        self, member_ids: list[UUID], request: _Request
    ) -> dict[UUID, MemberResponse | None]:
        profiles = await gather_bounded(
            member_ids, request.store.get_user_by_id, concurrency=self.concurrency
        )
        return dict(zip(member_ids, profiles))

    # --- Presence ---

    async def _presence_stats(self, period: Period, request: _Request) -> PresenceStats:
        records = [
            record
            for day_records in await self._activity_by_day(period, request)
            for record in day_records
            if record.value > 0
        ]
        coworkers = sorted({r.member_id for r in records}, key=str)
        histories = await gather_bounded(
            coworkers, request.resolver.member_history, concurrency=self.concurrency
        )
        new_coworkers = [
            h
            for h in histories
            if h.first_activity_date is not None
            and period.start <= h.first_activity_date <= period.end
        ]
        return PresenceStats(
            coworkers_count=len(coworkers),
            coworked_days_count=len(records),
            coworked_days_amount=sum(r.value for r in records),
            new_coworkers_count=len(new_coworkers),
        )

    # --- Usage ---

    async def _usage_stats(self, period: Period, request: _Request) -> UsageStats:
        days = await gather_bounded(
            get_days(period.start, period.end),
            lambda day: self._usage_for_day(day, request),
            concurrency=self.concurrency,
        )

        members: dict[UUID, MemberUsage] = {}
        charges_amount = 0.0
        for day_members, day_charge in days:
            members = merge_member_rows(members, day_members)
            charges_amount += day_charge

        rows = sorted(members.values(), key=lambda m: str(m.member_id))
        ticket_amount = sum(m.ticket_amount for m in rows)
        subscription_amount = sum(m.subscription_amount for m in rows)
        return UsageStats(
            used_tickets=sum(m.ticket_days for m in rows),
            days_abo=sum(m.subscription_days for m in rows),
            ticket_amount=ticket_amount,
            subscription_amount=subscription_amount,
            usage_amount=ticket_amount + subscription_amount,
            debt_value=sum(m.debt_value for m in rows),
            charges_amount=charges_amount,
            members=rows,
        )

    async def _usage_for_day(
        self, day: date, request: _Request
    ) -> tuple[dict[UUID, MemberUsage], float]:
        activity, active_subscriptions = await asyncio.gather(
            request.store.get_activity_by_date(day),
            request.store.find_active_subscriptions_by_date(day),
        )
        coverages = await asyncio.gather(
            *(request.resolver.resolve(a.member_id, day) for a in activity if a.value > 0)
        )

        rows: dict[UUID, MemberUsage] = {}
        for coverage in coverages:
            if coverage is None:
                continue
            if coverage.type == CoverageType.TICKET:
                row = MemberUsage(
                    member_id=coverage.member_id,
                    ticket_days=coverage.value,
                    ticket_amount=coverage.amount,
                    debt_value=coverage.debt_value,
                )
            else:
                row = MemberUsage(
                    member_id=coverage.member_id,
                    attended_subscription_days=coverage.value,
                )
            rows = merge_member_rows(rows, {row.member_id: row})

        # Subscriptions cost a daily amount whether or not the member came.
        subscriptions_by_member: dict[UUID, list[SubscriptionResponse]] = {}
        for subscription in active_subscriptions:
            subscriptions_by_member.setdefault(subscription.member_id, []).append(subscription)
        for member_id, subscriptions in subscriptions_by_member.items():
            subscription = select_subscription(subscriptions, day)
            if subscription is None:
                continue
            row = MemberUsage(
                member_id=member_id,
                subscription_days=1,
                subscription_amount=subscription.daily_amount,
            )
            rows = merge_member_rows(rows, {member_id: row})

        return rows, self.charges.daily_charge(day) or 0.0

    # --- Income ---

    async def _income_stats(self, period: Period, request: _Request) -> IncomeStats:
        days = await gather_bounded(
            get_days(period.start, period.end),
            lambda day: self._income_for_day(day, request),
            concurrency=self.concurrency,
        )
        stats = IncomeStats(
            tickets_count=sum(d.tickets_count for d in days),
            tickets_income=sum(d.tickets_income for d in days),
            subscriptions_count=sum(d.subscriptions_count for d in days),
            subscriptions_income=sum(d.subscriptions_income for d in days),
            memberships_count=sum(d.memberships_count for d in days),
            memberships_income=sum(d.memberships_income for d in days),
        )
        stats.incomes = stats.tickets_income + stats.subscriptions_income + stats.memberships_income
        return stats

    async def _income_for_day(self, day: date, request: _Request) -> IncomeStats:
        ticket_orders, subscriptions, memberships = await asyncio.gather(
            request.store.get_ticket_orders_by_date(day),
            request.store.get_subscriptions_by_date(day),
            request.store.get_memberships_by_date(day),
        )
        return IncomeStats(
            tickets_count=sum(o.tickets_quantity for o in ticket_orders),
            tickets_income=float(sum((o.price for o in ticket_orders), Decimal(0))),
            subscriptions_count=len(subscriptions),
            subscriptions_income=float(sum((s.price for s in subscriptions), Decimal(0))),
            memberships_count=len(memberships),
            memberships_income=float(sum((m.price for m in memberships), Decimal(0))),
        )

    # --- Attendance ---

    async def _attendance_stats(self, period: Period, request: _Request) -> AttendanceStats:
        days = await gather_bounded(
            get_days(period.start, period.end),
            lambda day: self._attendance_for_day(day, request),
            concurrency=self.concurrency,
        )
        members: dict[UUID, MemberAttendance] = {}
        for day_members in days:
            members = merge_member_rows(members, day_members)

        profiles = await self._profiles(list(members), request)
        rows = []
        for member_id, row in members.items():
            profile = profiles.get(member_id)
            rows.append(
                row.model_copy(
                    update={
                        "name": _display_name(profile),
                        "email": profile.email if profile else None,
                    }
                )
            )
        rows.sort(key=lambda m: str(m.member_id))

        return AttendanceStats(
            members_count=len(rows),
            presence_days=sum(m.presence_days for m in rows),
            presence_value=sum(m.presence_value for m in rows),
            ticket_days=sum(m.ticket_days for m in rows),
            subscription_days=sum(m.subscription_days for m in rows),
            ticket_amount=sum(m.ticket_amount for m in rows),
            subscription_amount=sum(m.subscription_amount for m in rows),
            debt_value=sum(m.debt_value for m in rows),
            members=rows,
        )

    async def _attendance_for_day(
        self, day: date, request: _Request
    ) -> dict[UUID, MemberAttendance]:
        activity = await request.store.get_activity_by_date(day)
        coverages = await asyncio.gather(
            *(request.resolver.resolve(a.member_id, day) for a in activity if a.value > 0)
        )

        rows: dict[UUID, MemberAttendance] = {}
        for coverage in coverages:
            if coverage is None:
                continue
            row = MemberAttendance(
                member_id=coverage.member_id,
                presence_days=1,
                presence_value=coverage.value,
            )
            if coverage.type == CoverageType.TICKET:
                row.ticket_days = coverage.value
                row.ticket_amount = coverage.amount
                row.debt_value = coverage.debt_value
            else:
                row.subscription_days = coverage.value
                row.subscription_amount = coverage.amount
            rows = merge_member_rows(rows, {row.member_id: row})
        return rows

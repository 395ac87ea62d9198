"""Resolve how each attendance day of a member is paid for."""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field
from datetime import date
from typing import TypeVar
from uuid import UUID

from cowork_ledger.core.config import settings
from cowork_ledger.schemas.coverage import CoverageResult, CoverageType, Debt
from cowork_ledger.schemas.member_activity import MemberActivityResponse
from cowork_ledger.schemas.subscription import SubscriptionResponse
from cowork_ledger.schemas.ticket_order import TicketOrderResponse
from cowork_ledger.services.ledger_store import LedgerStore

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class MemberHistory:
    """Everything the ledgers know about one member's usage."""

    member_id: UUID
    activities: list[MemberActivityResponse] = field(default_factory=list)
    subscriptions: list[SubscriptionResponse] = field(default_factory=list)
    ticket_orders: list[TicketOrderResponse] = field(default_factory=list)

    @property
    def first_activity_date(self) -> date | None:
        days = [a.date for a in self.activities if a.value > 0]
        return min(days) if days else None


def ticket_unit_price_by_date(day: date) -> float:
    """Price of one ticket used on ``day``; tickets were free before pricing started."""
    if day > settings.TICKET_PRICING_START:
        return settings.TICKET_UNIT_PRICE
    return 0.0


def select_subscription(
    subscriptions: Iterable[SubscriptionResponse], day: date
) -> SubscriptionResponse | None:
    """Pick the subscription paying for ``day``.

    Overlapping windows (early renewals) never double the coverage: the most
    recently started subscription wins, then the most recently purchased,
    then the highest id.
    """
    covering = [s for s in subscriptions if s.covers(day)]
    if not covering:
        return None
    return max(covering, key=lambda s: (s.start_date, s.purchase_date, str(s.id)))


def compute_member_coverage(
    history: MemberHistory,
    ticket_price: Callable[[date], float] = ticket_unit_price_by_date,
) -> dict[date, CoverageResult]:
    """Walk a member's attendance chronologically and attribute every day.

    Days inside a subscription window are paid by the subscription. Other
    days consume tickets first in, first out: the balance on a day is every
    ticket bought up to that day minus every ticket-paid attendance before
    it. The part of a day the balance cannot cover is reported as debt and
    is never settled afterwards.

    Args:
        history: The member's activity, subscriptions and ticket orders.
        ticket_price: Unit price of a ticket used on a given day.

    Returns:
        Coverage per attended day. Days with no attendance have no entry.
    """
    orders = sorted(history.ticket_orders, key=lambda o: o.purchase_date)
    activities = sorted(history.activities, key=lambda a: a.date)

    purchased = 0.0
    consumed = 0.0
    next_order = 0
    coverage: dict[date, CoverageResult] = {}

    for activity in activities:
        if activity.value <= 0:
            continue
        day = activity.date

        while next_order < len(orders) and orders[next_order].purchase_date <= day:
            purchased += orders[next_order].tickets_quantity
            next_order += 1

        subscription = select_subscription(history.subscriptions, day)
        if subscription is not None:
            coverage[day] = CoverageResult(
                date=day,
                member_id=history.member_id,
                type=CoverageType.SUBSCRIPTION,
                value=activity.value,
                amount=subscription.daily_amount * activity.value,
                subscription_id=subscription.id,
            )
            continue

        balance = purchased - consumed
        uncovered = activity.value - min(max(balance, 0.0), activity.value)
        consumed += activity.value
        coverage[day] = CoverageResult(
            date=day,
            member_id=history.member_id,
            type=CoverageType.TICKET,
            value=activity.value,
            amount=activity.value * ticket_price(day),
            debt=Debt(value=uncovered) if uncovered > 0 else None,
            balance_before=balance,
        )

    return coverage


class CoverageResolver:
    """Answers "how was this member's day paid for" from the ledgers.

    Histories and coverage timelines are loaded once per member and shared by
    every caller of the same resolver, including concurrent ones. Create one
    resolver per request so each request sees fresh ledgers.
    """

    def __init__(
        self,
        store: LedgerStore,
        ticket_price: Callable[[date], float] = ticket_unit_price_by_date,
    ):
        self.store = store
        self._ticket_price = ticket_price
        self._histories: dict[UUID, asyncio.Future[MemberHistory]] = {}
        self._coverages: dict[UUID, asyncio.Future[dict[date, CoverageResult]]] = {}

    async def member_history(self, member_id: UUID) -> MemberHistory:
        return await self._shared(self._histories, member_id, self._load_history)

    async def member_coverage(self, member_id: UUID) -> dict[date, CoverageResult]:
        return await self._shared(self._coverages, member_id, self._compute_coverage)

    async def _shared(
        self,
        futures: dict[UUID, asyncio.Future[T]],
        member_id: UUID,
        load: Callable[[UUID], Awaitable[T]],
    ) -> T:
        """Await the in-flight or finished load of a member, starting it if needed.

        A failed load is forgotten so later callers read the ledgers again. The
        caller that started it gets the error; callers that only joined it
        retry with a load of their own.
        """
        while True:
            future = futures.get(member_id)
            started = future is None
            if started:
                future = asyncio.ensure_future(load(member_id))
                futures[member_id] = future
            try:
                return await asyncio.shield(future)
            except Exception:
                if futures.get(member_id) is future:
                    del futures[member_id]
                if started:
                    raise
                logger.warning("Shared load of member %s failed, reading again", member_id)

    async def resolve(self, member_id: UUID, day: date) -> CoverageResult | None:
        """Coverage of one member's day, or None when the member was absent."""
        coverage = await self.member_coverage(member_id)
        return coverage.get(day)

    async def _load_history(self, member_id: UUID) -> MemberHistory:
        activities, subscriptions, ticket_orders = await asyncio.gather(
            self.store.get_activity_by_member(member_id),
            self.store.get_subscriptions_by_member(member_id),
            self.store.get_ticket_orders_by_member(member_id),
        )
        logger.debug(
            "Loaded member %s: %d activity days, %d subscriptions, %d ticket orders",
            member_id,
            len(activities),
            len(subscriptions),
            len(ticket_orders),
        )
        return MemberHistory(
            member_id=member_id,
            activities=list(activities),
            subscriptions=list(subscriptions),
            ticket_orders=list(ticket_orders),
        )

    async def _compute_coverage(self, member_id: UUID) -> dict[date, CoverageResult]:
        history = await self.member_history(member_id)
        return compute_member_coverage(history, self._ticket_price)

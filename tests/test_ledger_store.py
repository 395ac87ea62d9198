"""Tests for the SQL-backed and throttled ledger stores."""

import asyncio
import uuid
from datetime import date
from unittest.mock import MagicMock

import pytest

from cowork_ledger.repositories import (
    MemberActivityRepository,
    MemberRepository,
    MembershipRepository,
    SubscriptionRepository,
    TicketOrderRepository,
)
from cowork_ledger.schemas.member import MemberCreate
from cowork_ledger.schemas.member_activity import MemberActivityUpsert
from cowork_ledger.schemas.membership import MembershipCreate
from cowork_ledger.schemas.subscription import SubscriptionCreate
from cowork_ledger.schemas.ticket_order import TicketOrderCreate
from cowork_ledger.services.ledger_store import SqlLedgerStore, ThrottledLedgerStore


@pytest.fixture
def seeded(db_session):
    """A member with activity, a ticket order, a subscription and a membership."""
    member = MemberRepository(db_session).create(
        MemberCreate(first_name="Ada", email="ada@example.com")
    )
    activities = MemberActivityRepository(db_session)
    activities.upsert(MemberActivityUpsert(member_id=member.id, date=date(2024, 3, 5), value=1))
    activities.upsert(
        MemberActivityUpsert(
            member_id=member.id, date=date(2024, 3, 4), value=1, override_value=0.5
        )
    )
    TicketOrderRepository(db_session).create(
        TicketOrderCreate(
            member_id=member.id, purchase_date=date(2024, 3, 1), tickets_quantity=5, price=30
        )
    )
    SubscriptionRepository(db_session).create(
        SubscriptionCreate(member_id=member.id, start_date=date(2024, 3, 10), price=310)
    )
    MembershipRepository(db_session).create(
        MembershipCreate(member_id=member.id, membership_start=date(2024, 1, 1), price=20)
    )
    return member.id


class TestSqlLedgerStore:
    @pytest.mark.asyncio
    async def test_activity_reads_apply_overrides(self, seeded):
        store = SqlLedgerStore()

        by_member = await store.get_activity_by_member(seeded)
        by_date = await store.get_activity_by_date(date(2024, 3, 4))

        assert [(a.date, a.value) for a in by_member] == [
            (date(2024, 3, 4), 0.5),
            (date(2024, 3, 5), 1.0),
        ]
        assert [a.value for a in by_date] == [0.5]

    @pytest.mark.asyncio
    async def test_purchase_reads(self, seeded):
        store = SqlLedgerStore()

        [order] = await store.get_ticket_orders_by_member(seeded)
        assert order.tickets_quantity == 5
        assert await store.get_ticket_orders_by_date(date(2024, 3, 1)) == [order]

        [subscription] = await store.get_subscriptions_by_member(seeded)
        assert subscription.end_date == date(2024, 4, 9)
        assert await store.get_subscriptions_by_date(date(2024, 3, 10)) == [subscription]
        assert await store.find_active_subscriptions_by_date(date(2024, 4, 1)) == [subscription]
        assert await store.find_active_subscriptions_by_date(date(2024, 4, 10)) == []

        [membership] = await store.get_memberships_by_date(date(2024, 1, 1))
        assert membership.price == 20

    @pytest.mark.asyncio
    async def test_get_user_by_id(self, seeded):
        store = SqlLedgerStore()
        member = await store.get_user_by_id(seeded)
        assert member.email == "ada@example.com"
        assert member.display_name == "Ada"

    @pytest.mark.asyncio
    async def test_unknown_user(self, seeded):
        assert await SqlLedgerStore().get_user_by_id(uuid.uuid4()) is None

    @pytest.mark.asyncio
    async def test_session_is_closed_after_each_read(self):
        session = MagicMock()
        session.query.return_value.filter.return_value.all.return_value = []
        store = SqlLedgerStore(session_factory=lambda: session)

        assert await store.get_memberships_by_date(date(2024, 1, 1)) == []
        session.close.assert_called_once()

    @pytest.mark.asyncio
    async def test_session_is_closed_when_read_fails(self):
        session = MagicMock()
        session.query.side_effect = RuntimeError("database unavailable")
        store = SqlLedgerStore(session_factory=lambda: session)

        with pytest.raises(RuntimeError, match="database unavailable"):
            await store.get_activity_by_date(date(2024, 1, 1))
        session.close.assert_called_once()


class _SlowStore:
    """Records the highest number of reads in flight."""

    def __init__(self):
        self.in_flight = 0
        self.max_in_flight = 0

    async def get_activity_by_date(self, day):
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        await asyncio.sleep(0.01)
        self.in_flight -= 1
        return []


class TestThrottledLedgerStore:
    @pytest.mark.asyncio
    async def test_limits_reads_in_flight(self):
        inner = _SlowStore()
        store = ThrottledLedgerStore(inner, concurrency=3)

        await asyncio.gather(*(store.get_activity_by_date(date(2024, 3, d)) for d in range(1, 21)))

        assert inner.max_in_flight == 3

    def test_rejects_invalid_concurrency(self):
        with pytest.raises(ValueError):
            ThrottledLedgerStore(_SlowStore(), concurrency=0)

"""Read access to the attendance, purchase and member ledgers."""

import asyncio
from collections.abc import Callable
from datetime import date
from typing import Protocol, TypeVar
from uuid import UUID

from sqlalchemy.orm import Session

from cowork_ledger.core import database
from cowork_ledger.models.member_activity import MemberActivity
from cowork_ledger.repositories.member_activity_repository import MemberActivityRepository
from cowork_ledger.repositories.member_repository import MemberRepository
from cowork_ledger.repositories.membership_repository import MembershipRepository
from cowork_ledger.repositories.subscription_repository import SubscriptionRepository
from cowork_ledger.repositories.ticket_order_repository import TicketOrderRepository
from cowork_ledger.schemas.member import MemberResponse
from cowork_ledger.schemas.member_activity import MemberActivityResponse
from cowork_ledger.schemas.membership import MembershipResponse
from cowork_ledger.schemas.subscription import SubscriptionResponse
from cowork_ledger.schemas.ticket_order import TicketOrderResponse

T = TypeVar("T")


class LedgerStore(Protocol):
    """Ledger queries the statistics engine depends on."""

    async def get_activity_by_date(self, day: date) -> list[MemberActivityResponse]: ...

    async def get_activity_by_member(self, member_id: UUID) -> list[MemberActivityResponse]: ...

    async def get_subscriptions_by_member(self, member_id: UUID) -> list[SubscriptionResponse]: ...

    async def find_active_subscriptions_by_date(self, day: date) -> list[SubscriptionResponse]: ...

    async def get_ticket_orders_by_member(self, member_id: UUID) -> list[TicketOrderResponse]: ...

    async def get_ticket_orders_by_date(self, day: date) -> list[TicketOrderResponse]: ...

    async def get_subscriptions_by_date(self, day: date) -> list[SubscriptionResponse]: ...

    async def get_memberships_by_date(self, day: date) -> list[MembershipResponse]: ...

    async def get_user_by_id(self, member_id: UUID) -> MemberResponse | None: ...


def _activity(record: MemberActivity) -> MemberActivityResponse:
    return MemberActivityResponse(
        member_id=record.member_id,  # type: ignore[arg-type]
        date=record.date,  # type: ignore[arg-type]
        value=record.effective_value,
    )


class SqlLedgerStore:
    """LedgerStore backed by the SQLAlchemy repositories.

    Each read runs in a worker thread with its own session, so concurrent
    reads never share a session.
    """

    def __init__(self, session_factory: Callable[[], Session] | None = None):
        self._session_factory = session_factory

    def _call(self, fn: Callable[[Session], T]) -> T:
        factory = self._session_factory or database.SessionLocal
        db = factory()
        try:
            return fn(db)
        finally:
            db.close()

    async def _run(self, fn: Callable[[Session], T]) -> T:
        return await asyncio.to_thread(self._call, fn)

    async def get_activity_by_date(self, day: date) -> list[MemberActivityResponse]:
        return await self._run(
            lambda db: [_activity(r) for r in MemberActivityRepository(db).get_by_date(day)]
        )

    async def get_activity_by_member(self, member_id: UUID) -> list[MemberActivityResponse]:
        return await self._run(
            lambda db: [
                _activity(r) for r in MemberActivityRepository(db).get_by_member(member_id)
            ]
        )

    async def get_subscriptions_by_member(self, member_id: UUID) -> list[SubscriptionResponse]:
        return await self._run(
            lambda db: [
                SubscriptionResponse.model_validate(s)
                for s in SubscriptionRepository(db).get_by_member(member_id)
            ]
        )

    async def find_active_subscriptions_by_date(self, day: date) -> list[SubscriptionResponse]:
        return await self._run(
            lambda db: [
                SubscriptionResponse.model_validate(s)
                for s in SubscriptionRepository(db).find_active_by_date(day)
            ]
        )

    async def get_ticket_orders_by_member(self, member_id: UUID) -> list[TicketOrderResponse]:
        return await self._run(
            lambda db: [
                TicketOrderResponse.model_validate(o)
                for o in TicketOrderRepository(db).get_by_member(member_id)
            ]
        )

    async def get_ticket_orders_by_date(self, day: date) -> list[TicketOrderResponse]:
        return await self._run(
            lambda db: [
                TicketOrderResponse.model_validate(o)
                for o in TicketOrderRepository(db).get_by_purchase_date(day)
            ]
        )

    async def get_subscriptions_by_date(self, day: date) -> list[SubscriptionResponse]:
        return await self._run(
            lambda db: [
                SubscriptionResponse.model_validate(s)
                for s in SubscriptionRepository(db).get_by_purchase_date(day)
            ]
        )

    async def get_memberships_by_date(self, day: date) -> list[MembershipResponse]:
        return await self._run(
            lambda db: [
                MembershipResponse.model_validate(m)
                for m in MembershipRepository(db).get_by_purchase_date(day)
            ]
        )

    async def get_user_by_id(self, member_id: UUID) -> MemberResponse | None:
        def query(db: Session) -> MemberResponse | None:
            member = MemberRepository(db).get_by_id(member_id)
            return MemberResponse.model_validate(member) if member else None

        return await self._run(query)


class ThrottledLedgerStore:
    """Wraps a LedgerStore so at most ``concurrency`` reads are in flight."""

    def __init__(self, store: LedgerStore, concurrency: int = 8):
        if concurrency < 1:
            raise ValueError(f"concurrency must be >= 1, got {concurrency}")
        self._store = store
        self._semaphore = asyncio.Semaphore(concurrency)

    async def get_activity_by_date(self, day: date) -> list[MemberActivityResponse]:
        async with self._semaphore:
            return await self._store.get_activity_by_date(day)

    async def get_activity_by_member(self, member_id: UUID) -> list[MemberActivityResponse]:
        async with self._semaphore:
            return await self._store.get_activity_by_member(member_id)

    async def get_subscriptions_by_member(self, member_id: UUID) -> list[SubscriptionResponse]:
        async with self._semaphore:
            return await self._store.get_subscriptions_by_member(member_id)

    async def find_active_subscriptions_by_date(self, day: date) -> list[SubscriptionResponse]:
        async with self._semaphore:
            return await self._store.find_active_subscriptions_by_date(day)

    async def get_ticket_orders_by_member(self, member_id: UUID) -> list[TicketOrderResponse]:
        async with self._semaphore:
            return await self._store.get_ticket_orders_by_member(member_id)

    async def get_ticket_orders_by_date(self, day: date) -> list[TicketOrderResponse]:
        async with self._semaphore:
            return await self._store.get_ticket_orders_by_date(day)

    async def get_subscriptions_by_date(self, day: date) -> list[SubscriptionResponse]:
        async with self._semaphore:
            return await self._store.get_subscriptions_by_date(day)

    async def get_memberships_by_date(self, day: date) -> list[MembershipResponse]:
        async with self._semaphore:
            return await self._store.get_memberships_by_date(day)

    async def get_user_by_id(self, member_id: UUID) -> MemberResponse | None:
        async with self._semaphore:
            return await self._store.get_user_by_id(member_id)

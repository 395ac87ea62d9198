"""Shared test fixtures for all test modules."""

import contextlib
import uuid
from collections import Counter
from datetime import date

import pytest
from sqlalchemy import create_engine, text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import cowork_ledger.models  # noqa: F401
from cowork_ledger.core import database as db_module
from cowork_ledger.core.database import Base
from cowork_ledger.schemas.member import MemberResponse
from cowork_ledger.schemas.member_activity import MemberActivityResponse
from cowork_ledger.schemas.membership import MembershipResponse
from cowork_ledger.schemas.subscription import SubscriptionResponse
from cowork_ledger.schemas.ticket_order import TicketOrderResponse
from cowork_ledger.services.period_dates import compute_subscription_end_date

# Create an in-memory SQLite engine with StaticPool so all connections
# share the same database state and there are no file-locking issues.
_test_engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
_TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=_test_engine)


@pytest.fixture(autouse=True)
def setup_database():
    """Create tables before each test and truncate all data after.

    Patches the module-level engine and SessionLocal so all application code
    uses the in-memory test database.
    """
    original_engine = db_module.engine
    original_session = db_module.SessionLocal
    db_module.engine = _test_engine
    db_module.SessionLocal = _TestSessionLocal

    Base.metadata.create_all(bind=_test_engine)

    yield
    with _test_engine.connect() as conn:
        conn.execute(text("PRAGMA foreign_keys = OFF"))
        for table in reversed(Base.metadata.sorted_tables):
            with contextlib.suppress(OperationalError):
                conn.execute(table.delete())
        conn.execute(text("PRAGMA foreign_keys = ON"))
        conn.commit()

    db_module.engine = original_engine
    db_module.SessionLocal = original_session


@pytest.fixture
def db_session():
    """Create a database session for testing."""
    session = _TestSessionLocal()
    try:
        yield session
    finally:
        session.close()


class FakeLedgerStore:
    """In-memory LedgerStore that counts calls per method.

    Methods listed in ``failing`` raise for the given arguments, e.g.
    ``failing["get_activity_by_date"] = {date(2024, 3, 5)}``. Entries of
    ``failing_once`` raise on their first call only.
    """

    def __init__(self):
        self.members: dict[uuid.UUID, MemberResponse] = {}
        self.activities: list[MemberActivityResponse] = []
        self.subscriptions: list[SubscriptionResponse] = []
        self.ticket_orders: list[TicketOrderResponse] = []
        self.memberships: list[MembershipResponse] = []
        self.calls: Counter[str] = Counter()
        self.failing: dict[str, set] = {}
        self.failing_once: dict[str, set] = {}

    # --- Builders ---

    def add_member(self, email: str | None = None, first_name: str | None = None) -> uuid.UUID:
        member_id = uuid.uuid4()
        self.members[member_id] = MemberResponse(
            id=member_id, email=email, first_name=first_name
        )
        return member_id

    def add_activity(self, member_id: uuid.UUID, day: date, value: float = 1.0) -> None:
        self.activities.append(MemberActivityResponse(member_id=member_id, date=day, value=value))

    def add_subscription(
        self,
        member_id: uuid.UUID,
        start_date: date,
        price: float = 0.0,
        purchase_date: date | None = None,
    ) -> SubscriptionResponse:
        subscription = SubscriptionResponse(
            id=uuid.uuid4(),
            member_id=member_id,
            start_date=start_date,
            end_date=compute_subscription_end_date(start_date),
            purchase_date=purchase_date or start_date,
            price=price,
        )
        self.subscriptions.append(subscription)
        return subscription

    def add_ticket_order(
        self, member_id: uuid.UUID, purchase_date: date, quantity: int, price: float = 0.0
    ) -> TicketOrderResponse:
        order = TicketOrderResponse(
            id=uuid.uuid4(),
            member_id=member_id,
            purchase_date=purchase_date,
            tickets_quantity=quantity,
            price=price,
        )
        self.ticket_orders.append(order)
        return order

    def add_membership(
        self, member_id: uuid.UUID, purchase_date: date, price: float = 0.0
    ) -> MembershipResponse:
        membership = MembershipResponse(
            id=uuid.uuid4(),
            member_id=member_id,
            membership_start=purchase_date,
            purchase_date=purchase_date,
            price=price,
        )
        self.memberships.append(membership)
        return membership

    # --- LedgerStore ---

    def _record(self, name: str, arg: object) -> None:
        self.calls[name] += 1
        if arg in self.failing.get(name, set()):
            raise ConnectionError(f"{name}({arg}) failed")
        if arg in self.failing_once.get(name, set()):
            self.failing_once[name].discard(arg)
            raise ConnectionError(f"{name}({arg}) failed")

    async def get_activity_by_date(self, day: date) -> list[MemberActivityResponse]:
        self._record("get_activity_by_date", day)
        return [a for a in self.activities if a.date == day and a.value > 0]

    async def get_activity_by_member(self, member_id: uuid.UUID) -> list[MemberActivityResponse]:
        self._record("get_activity_by_member", member_id)
        return sorted(
            (a for a in self.activities if a.member_id == member_id and a.value > 0),
            key=lambda a: a.date,
        )

    async def get_subscriptions_by_member(
        self, member_id: uuid.UUID
    ) -> list[SubscriptionResponse]:
        self._record("get_subscriptions_by_member", member_id)
        return [s for s in self.subscriptions if s.member_id == member_id]

    async def find_active_subscriptions_by_date(self, day: date) -> list[SubscriptionResponse]:
        self._record("find_active_subscriptions_by_date", day)
        return [s for s in self.subscriptions if s.covers(day)]

    async def get_ticket_orders_by_member(self, member_id: uuid.UUID) -> list[TicketOrderResponse]:
        self._record("get_ticket_orders_by_member", member_id)
        return [o for o in self.ticket_orders if o.member_id == member_id]

    async def get_ticket_orders_by_date(self, day: date) -> list[TicketOrderResponse]:
        self._record("get_ticket_orders_by_date", day)
        return [o for o in self.ticket_orders if o.purchase_date == day]

    async def get_subscriptions_by_date(self, day: date) -> list[SubscriptionResponse]:
        self._record("get_subscriptions_by_date", day)
        return [s for s in self.subscriptions if s.purchase_date == day]

    async def get_memberships_by_date(self, day: date) -> list[MembershipResponse]:
        self._record("get_memberships_by_date", day)
        return [m for m in self.memberships if m.purchase_date == day]

    async def get_user_by_id(self, member_id: uuid.UUID) -> MemberResponse | None:
        self._record("get_user_by_id", member_id)
        return self.members.get(member_id)


@pytest.fixture
def ledger():
    """An empty in-memory ledger store."""
    return FakeLedgerStore()

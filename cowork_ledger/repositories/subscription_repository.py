from datetime import date
from uuid import UUID

from sqlalchemy.orm import Session

from cowork_ledger.models.subscription import Subscription
from cowork_ledger.schemas.subscription import SubscriptionCreate
from cowork_ledger.services.period_dates import compute_subscription_end_date


class SubscriptionRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, subscription_id: UUID) -> Subscription | None:
        return self.db.query(Subscription).filter(Subscription.id == subscription_id).first()

    def get_by_member(self, member_id: UUID) -> list[Subscription]:
        return (
            self.db.query(Subscription)
            .filter(Subscription.member_id == member_id)
            .order_by(Subscription.start_date)
            .all()
        )

    def find_active_by_date(
        self, active_date: date, member_id: UUID | None = None
    ) -> list[Subscription]:
        """Subscriptions whose coverage window contains ``active_date``."""
        query = self.db.query(Subscription).filter(
            Subscription.start_date <= active_date,
            Subscription.end_date >= active_date,
        )
        if member_id is not None:
            query = query.filter(Subscription.member_id == member_id)
        return query.all()

    def get_by_purchase_date(self, purchase_date: date) -> list[Subscription]:
        return (
            self.db.query(Subscription)
            .filter(Subscription.purchase_date == purchase_date)
            .all()
        )

    def create(self, data: SubscriptionCreate) -> Subscription:
        subscription = Subscription(
            member_id=data.member_id,
            start_date=data.start_date,
            end_date=compute_subscription_end_date(data.start_date),
            purchase_date=data.purchase_date or data.start_date,
            price=data.price,
            order_reference=data.order_reference,
        )
        self.db.add(subscription)
        self.db.commit()
        self.db.refresh(subscription)
        return subscription

    def update_start_date(self, subscription_id: UUID, start_date: date) -> Subscription | None:
        """Move a subscription window, keeping its end date derived from the start."""
        subscription = self.get_by_id(subscription_id)
        if not subscription:
            return None
        subscription.start_date = start_date  # type: ignore[assignment]
        subscription.end_date = compute_subscription_end_date(start_date)  # type: ignore[assignment]
        self.db.commit()
        self.db.refresh(subscription)
        return subscription

from datetime import date
from uuid import UUID

from sqlalchemy.orm import Session

from cowork_ledger.models.membership import Membership
from cowork_ledger.schemas.membership import MembershipCreate


class MembershipRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_by_member(self, member_id: UUID) -> list[Membership]:
        return (
            self.db.query(Membership)
            .filter(Membership.member_id == member_id)
            .order_by(Membership.membership_start)
            .all()
        )

    def get_by_purchase_date(self, purchase_date: date) -> list[Membership]:
        return (
            self.db.query(Membership)
            .filter(Membership.purchase_date == purchase_date)
            .all()
        )

    def create(self, data: MembershipCreate) -> Membership:
        membership = Membership(
            member_id=data.member_id,
            membership_start=data.membership_start,
            purchase_date=data.purchase_date or data.membership_start,
            price=data.price,
            order_reference=data.order_reference,
        )
        self.db.add(membership)
        self.db.commit()
        self.db.refresh(membership)
        return membership

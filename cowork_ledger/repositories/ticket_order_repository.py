from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from cowork_ledger.models.ticket_order import TicketOrder
from cowork_ledger.schemas.ticket_order import TicketOrderCreate


class TicketOrderRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, order_id: UUID) -> TicketOrder | None:
        return self.db.query(TicketOrder).filter(TicketOrder.id == order_id).first()

    def get_by_member(self, member_id: UUID) -> list[TicketOrder]:
        return (
            self.db.query(TicketOrder)
            .filter(TicketOrder.member_id == member_id)
            .order_by(TicketOrder.purchase_date)
            .all()
        )

    def get_by_purchase_date(self, purchase_date: date) -> list[TicketOrder]:
        return (
            self.db.query(TicketOrder)
            .filter(TicketOrder.purchase_date == purchase_date)
            .all()
        )

    def create(self, data: TicketOrderCreate) -> TicketOrder:
        order = TicketOrder(
            member_id=data.member_id,
            purchase_date=data.purchase_date,
            tickets_quantity=data.tickets_quantity,
            price=data.price,
            order_reference=data.order_reference,
        )
        self.db.add(order)
        self.db.commit()
        self.db.refresh(order)
        return order

    def update_price(
        self, order_id: UUID, price: Decimal, order_reference: str | None = None
    ) -> TicketOrder | None:
        """Correct the price (and optionally the order reference) of an order.

        The purchase date and quantity are immutable.
        """
        order = self.get_by_id(order_id)
        if not order:
            return None
        order.price = price  # type: ignore[assignment]
        if order_reference is not None:
            order.order_reference = order_reference  # type: ignore[assignment]
        self.db.commit()
        self.db.refresh(order)
        return order

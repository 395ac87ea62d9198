from sqlalchemy import Column, Date, DateTime, Integer, Numeric, String, func
from sqlalchemy.schema import ForeignKey

from cowork_ledger.core.database import Base
from cowork_ledger.models.shared import UUIDType, generate_uuid


class TicketOrder(Base):
    """A batch of prepaid attendance units bought by a member."""

    __tablename__ = "ticket_orders"

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    member_id = Column(
        UUIDType,
        ForeignKey("members.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    purchase_date = Column(Date, nullable=False, index=True)
    tickets_quantity = Column(Integer, nullable=False)
    price = Column(Numeric(12, 2), nullable=False, default=0)
    order_reference = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

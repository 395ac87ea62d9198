from sqlalchemy import Column, Date, DateTime, Numeric, String, func
from sqlalchemy.schema import ForeignKey, Index

from cowork_ledger.core.database import Base
from cowork_ledger.models.shared import UUIDType, generate_uuid


class Subscription(Base):
    """A one-month coverage window, from start_date to end_date inclusive.

    end_date is always derived from start_date (start + 1 month - 1 day) and
    stored so active subscriptions can be found with a range query.
    """

    __tablename__ = "subscriptions"

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    member_id = Column(
        UUIDType,
        ForeignKey("members.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    purchase_date = Column(Date, nullable=False, index=True)
    price = Column(Numeric(12, 2), nullable=False, default=0)
    order_reference = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (Index("ix_subscriptions_start_end", "start_date", "end_date"),)

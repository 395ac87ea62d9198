from sqlalchemy import Column, Date, DateTime, Numeric, String, func
from sqlalchemy.schema import ForeignKey

from cowork_ledger.core.database import Base
from cowork_ledger.models.shared import UUIDType, generate_uuid


class Membership(Base):
    """Annual membership. Counted as income, never as usage."""

    __tablename__ = "memberships"

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    member_id = Column(
        UUIDType,
        ForeignKey("members.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    membership_start = Column(Date, nullable=False)
    purchase_date = Column(Date, nullable=False, index=True)
    price = Column(Numeric(12, 2), nullable=False, default=0)
    order_reference = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

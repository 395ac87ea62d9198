"""MemberActivity model: one attendance value per member and day."""

from sqlalchemy import Column, Date, DateTime, Float, UniqueConstraint, func
from sqlalchemy.schema import ForeignKey, Index

from cowork_ledger.core.database import Base
from cowork_ledger.models.shared import UUIDType, generate_uuid

ACTIVITY_VALUES = (0, 0.5, 1)


class MemberActivity(Base):
    """Attendance of a member on a day: 0.5 for a half day, 1 for a full day.

    ``override_value`` is set by an administrator and takes precedence over the
    value reported by presence tracking.
    """

    __tablename__ = "member_activities"

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    member_id = Column(
        UUIDType,
        ForeignKey("members.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    date = Column(Date, nullable=False, index=True)
    value = Column(Float, nullable=False, default=0)
    override_value = Column(Float, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint("member_id", "date", name="uq_member_activity_member_date"),
        Index("ix_member_activities_member_date", "member_id", "date"),
    )

    @property
    def effective_value(self) -> float:
        if self.override_value is not None:
            return float(self.override_value)
        return float(self.value)

"""Member activity repository for data access."""

from datetime import date
from uuid import UUID

from sqlalchemy import func as sa_func
from sqlalchemy.orm import Session

from cowork_ledger.models.member_activity import ACTIVITY_VALUES, MemberActivity
from cowork_ledger.schemas.member_activity import MemberActivityUpsert


class MemberActivityRepository:
    """Repository for MemberActivity model."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, member_id: UUID, activity_date: date) -> MemberActivity | None:
        return (
            self.db.query(MemberActivity)
            .filter(
                MemberActivity.member_id == member_id,
                MemberActivity.date == activity_date,
            )
            .first()
        )

    def get_by_date(self, activity_date: date) -> list[MemberActivity]:
        """Activity of every member on a day, ignoring zero values."""
        effective_value = sa_func.coalesce(MemberActivity.override_value, MemberActivity.value)
        return (
            self.db.query(MemberActivity)
            .filter(MemberActivity.date == activity_date, effective_value > 0)
            .all()
        )

    def get_by_member(self, member_id: UUID) -> list[MemberActivity]:
        """Activity of a member, oldest first, ignoring zero values."""
        effective_value = sa_func.coalesce(MemberActivity.override_value, MemberActivity.value)
        return (
            self.db.query(MemberActivity)
            .filter(MemberActivity.member_id == member_id, effective_value > 0)
            .order_by(MemberActivity.date)
            .all()
        )

    def upsert(self, data: MemberActivityUpsert) -> MemberActivity | None:
        """Record a member's attendance for a day.

        A value of 0 removes the record.

        Raises:
            ValueError: If a value is not one of 0, 0.5 or 1.
        """
        if data.value not in ACTIVITY_VALUES:
            raise ValueError(f"Invalid activity value: {data.value}")
        if data.override_value is not None and data.override_value not in ACTIVITY_VALUES:
            raise ValueError(f"Invalid activity override value: {data.override_value}")

        if data.value == 0:
            self.delete(data.member_id, data.date)
            return None

        existing = self.get(data.member_id, data.date)
        if existing:
            existing.value = data.value  # type: ignore[assignment]
            if data.override_value is not None:
                existing.override_value = data.override_value  # type: ignore[assignment]
            self.db.commit()
            self.db.refresh(existing)
            return existing

        record = MemberActivity(
            member_id=data.member_id,
            date=data.date,
            value=data.value,
            override_value=data.override_value,
        )
        self.db.add(record)
        self.db.commit()
        self.db.refresh(record)
        return record

    def delete(self, member_id: UUID, activity_date: date) -> bool:
        record = self.get(member_id, activity_date)
        if not record:
            return False
        self.db.delete(record)
        self.db.commit()
        return True

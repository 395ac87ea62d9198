"""Spread known operating costs evenly over the days they cover."""

import bisect
import logging
from collections.abc import Iterable
from datetime import date
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, model_validator

from cowork_ledger.core.config import settings

logger = logging.getLogger(__name__)


class PeriodicCharge(BaseModel):
    """Operating cost for the inclusive range ``[from_date, to_date]``."""

    model_config = ConfigDict(populate_by_name=True)

    from_date: date = Field(alias="from")
    to_date: date = Field(alias="to")
    amount: float

    @model_validator(mode="after")
    def _check_range(self) -> "PeriodicCharge":
        if self.to_date < self.from_date:
            raise ValueError(
                f"Charge range ends before it starts: {self.from_date} > {self.to_date}"
            )
        return self

    @property
    def days_count(self) -> int:
        return (self.to_date - self.from_date).days + 1

    @property
    def daily_amount(self) -> float:
        return self.amount / self.days_count


_charges_adapter = TypeAdapter(list[PeriodicCharge])


class ChargeAllocator:
    """Looks up the daily share of the charge covering a date."""

    def __init__(self, charges: Iterable[PeriodicCharge] = ()):
        self._charges = sorted(charges, key=lambda c: c.from_date)
        for previous, current in zip(self._charges, self._charges[1:]):
            if current.from_date <= previous.to_date:
                raise ValueError(
                    f"Overlapping charge ranges: {previous.from_date}..{previous.to_date} "
                    f"and {current.from_date}..{current.to_date}"
                )
        self._starts = [c.from_date for c in self._charges]

    @property
    def charges(self) -> list[PeriodicCharge]:
        return list(self._charges)

    def charge_for(self, day: date) -> PeriodicCharge | None:
        index = bisect.bisect_right(self._starts, day) - 1
        if index < 0:
            return None
        charge = self._charges[index]
        return charge if day <= charge.to_date else None

    def daily_charge(self, day: date) -> float | None:
        """Share of the operating cost attributed to ``day``, None outside every range."""
        charge = self.charge_for(day)
        return charge.daily_amount if charge else None


def load_periodic_charges(path: str | Path) -> list[PeriodicCharge]:
    """Read the charges table, a JSON list of ``{"from", "to", "amount"}``.

    A missing file means no known charges.
    """
    charges_path = Path(path)
    if not charges_path.is_file():
        logger.warning("Periodic charges file %s not found, no charges allocated", charges_path)
        return []
    return _charges_adapter.validate_json(charges_path.read_bytes())


def charge_allocator_from_settings() -> ChargeAllocator:
    """Allocator over ``settings.PERIODIC_CHARGES_PATH``; empty when it is unset."""
    if not settings.PERIODIC_CHARGES_PATH:
        return ChargeAllocator()
    return ChargeAllocator(load_periodic_charges(settings.PERIODIC_CHARGES_PATH))

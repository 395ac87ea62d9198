"""Calendar periods, subscription windows and date input parsing."""

import calendar as cal
import re
from datetime import date, timedelta
from typing import NamedTuple

from cowork_ledger.schemas.stats import PeriodType

# First day tracked by the ledgers; default lower bound of period requests.
BEGINNING = date(2014, 1, 1)
# Lower bound of the "all time" overview range.
ALL_TIME_START = date(2010, 1, 1)

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class InvalidStatsQueryError(ValueError):
    """Raised for malformed stats input, before any ledger is read."""


class Period(NamedTuple):
    start: date
    end: date  # inclusive


def _add_months(d: date, months: int) -> date:
    """Add months to a date, clamping to last day of month."""
    month = d.month - 1 + months
    year = d.year + month // 12
    month = month % 12 + 1
    max_day = cal.monthrange(year, month)[1]
    day = min(d.day, max_day)
    return d.replace(year=year, month=month, day=day)


def compute_subscription_end_date(start_date: date) -> date:
    """Last day covered by a subscription starting on ``start_date``.

    One month minus one day, so twelve consecutive subscriptions cover
    exactly one year.
    """
    return _add_months(start_date, 1) - timedelta(days=1)


def period_start(reference: date, period_type: PeriodType) -> date:
    """Get the start of the calendar period containing the reference date."""
    if period_type == PeriodType.DAY:
        return reference
    elif period_type == PeriodType.WEEK:
        # Week starts on Monday
        return reference - timedelta(days=reference.weekday())
    elif period_type == PeriodType.MONTH:
        return reference.replace(day=1)
    elif period_type == PeriodType.YEAR:
        return reference.replace(month=1, day=1)
    raise InvalidStatsQueryError(f"Unknown period type: {period_type}")


def period_end(start: date, period_type: PeriodType) -> date:
    """Get the last day of the period beginning at ``start``."""
    if period_type == PeriodType.DAY:
        return start
    elif period_type == PeriodType.WEEK:
        return start + timedelta(days=6)
    elif period_type == PeriodType.MONTH:
        return _add_months(start, 1) - timedelta(days=1)
    elif period_type == PeriodType.YEAR:
        return start.replace(month=12, day=31)
    raise InvalidStatsQueryError(f"Unknown period type: {period_type}")


def _next_period_start(start: date, period_type: PeriodType) -> date:
    return period_end(start, period_type) + timedelta(days=1)


def get_periods(
    period_type: PeriodType,
    from_date: date | None = None,
    to_date: date | None = None,
    today: date | None = None,
) -> list[Period]:
    """List the calendar periods overlapping ``[from_date, to_date]``, oldest first.

    The first period starts at the beginning of the period containing
    ``from_date``; the last one is the period containing ``to_date``.

    Args:
        period_type: Day, week (Monday based), month or year.
        from_date: First day of the range. Defaults to ``BEGINNING``.
        to_date: Last day of the range. Defaults to today.
        today: Reference date used when ``to_date`` is missing.

    Returns:
        Chronologically ordered periods.
    """
    from_date = from_date or BEGINNING
    to_date = to_date or today or date.today()
    if to_date < from_date:
        return []

    periods: list[Period] = []
    start = period_start(from_date, period_type)
    while start <= to_date:
        periods.append(Period(start, period_end(start, period_type)))
        start = _next_period_start(start, period_type)
    return periods


def get_days(start: date, end: date) -> list[date]:
    """Every day of ``[start, end]``."""
    return [start + timedelta(days=i) for i in range((end - start).days + 1)]


def is_current_period(period: Period, today: date) -> bool:
    """A period is current while today has not moved past its last day."""
    return today <= period.end


def yesterday_range(today: date) -> Period:
    yesterday = today - timedelta(days=1)
    return Period(yesterday, yesterday)


def last_week_range(today: date) -> Period:
    start = period_start(today, PeriodType.WEEK) - timedelta(weeks=1)
    return Period(start, period_end(start, PeriodType.WEEK))


def last_month_range(today: date) -> Period:
    start = _add_months(today.replace(day=1), -1)
    return Period(start, period_end(start, PeriodType.MONTH))


def last_year_range(today: date) -> Period:
    start = date(today.year - 1, 1, 1)
    return Period(start, period_end(start, PeriodType.YEAR))


def all_time_range(today: date) -> Period:
    return Period(ALL_TIME_START, today)


def month_range(year: int, month: int) -> Period:
    if not 1 <= month <= 12:
        raise InvalidStatsQueryError(f"Invalid month: {month}")
    if not 1 <= year <= 9999:
        raise InvalidStatsQueryError(f"Invalid year: {year}")
    start = date(year, month, 1)
    return Period(start, period_end(start, PeriodType.MONTH))


def format_date(d: date) -> str:
    return d.isoformat()


def parse_date(value: str) -> date:
    """Parse a strict ``YYYY-MM-DD`` date."""
    if not _DATE_RE.fullmatch(value):
        raise InvalidStatsQueryError(f"Invalid date format: {value!r}")
    try:
        return date.fromisoformat(value)
    except ValueError as e:
        raise InvalidStatsQueryError(f"Invalid date format: {value!r}") from e


def parse_from_to(
    from_value: str | None, to_value: str | None
) -> tuple[date | None, date | None]:
    """Validate optional ``from``/``to`` bounds of a stats request.

    Raises:
        InvalidStatsQueryError: If a bound is malformed or ``to`` is not
            after ``from``.
    """
    from_date = parse_date(from_value) if from_value else None
    to_date = parse_date(to_value) if to_value else None

    if from_date and to_date and to_date <= from_date:
        raise InvalidStatsQueryError("Dates are in an invalid order")

    return from_date, to_date


def parse_period_type(value: str) -> PeriodType:
    try:
        return PeriodType(value)
    except ValueError as e:
        raise InvalidStatsQueryError(f"Unknown period type: {value!r}") from e

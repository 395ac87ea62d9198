import logging
from collections.abc import Awaitable
from datetime import date
from functools import lru_cache
from typing import TypeVar

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from starlette.responses import Response

from cowork_ledger.schemas.stats import (
    AttendancePeriodSummary,
    IncomePeriodSummary,
    MemberPresences,
    OverviewStats,
    PeriodSummary,
    PeriodType,
    PresencePeriodSummary,
    StatsQuery,
    UsagePeriodSummary,
)
from cowork_ledger.services.charge_allocator import (
    ChargeAllocator,
    charge_allocator_from_settings,
)
from cowork_ledger.services.ledger_store import LedgerStore, SqlLedgerStore
from cowork_ledger.services.period_aggregator import PeriodAggregator, PeriodComputationError
from cowork_ledger.services.period_dates import (
    InvalidStatsQueryError,
    parse_from_to,
    parse_period_type,
)
from cowork_ledger.services.stats_cache import StatsStore
from cowork_ledger.services.stats_export import presences_to_csv, to_csv

logger = logging.getLogger(__name__)

router = APIRouter()

T = TypeVar("T")

_ERROR_RESPONSES = {
    400: {"description": "Malformed date, date order or month"},
    404: {"description": "Unknown period type"},
    503: {"description": "The ledgers could not be read"},
}


def get_ledger_store() -> LedgerStore:
    return SqlLedgerStore()


def get_stats_cache(request: Request) -> StatsStore | None:
    """The process-wide cache opened by the application lifespan, if any."""
    return getattr(request.app.state, "stats_cache", None)


@lru_cache
def get_charge_allocator() -> ChargeAllocator:
    return charge_allocator_from_settings()


def get_aggregator(
    store: LedgerStore = Depends(get_ledger_store),
    cache: StatsStore | None = Depends(get_stats_cache),
    charges: ChargeAllocator = Depends(get_charge_allocator),
) -> PeriodAggregator:
    return PeriodAggregator(store, cache=cache, charges=charges)


def _period_type(value: str) -> PeriodType:
    try:
        return parse_period_type(value)
    except InvalidStatsQueryError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e


def _date_range(from_value: str | None, to_value: str | None) -> tuple[date | None, date | None]:
    try:
        return parse_from_to(from_value, to_value)
    except InvalidStatsQueryError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e


async def _compute(call: Awaitable[T]) -> T:
    try:
        return await call
    except InvalidStatsQueryError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except PeriodComputationError as e:
        logger.warning("Stats request failed: %s", e)
        raise HTTPException(status_code=503, detail=str(e)) from e


def _csv_response(content: str, filename: str) -> Response:
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


def _render(
    summaries: list[T],
    summary_cls: type[PeriodSummary],
    output_format: str | None,
    filename: str,
) -> list[T] | Response:
    if output_format == "csv":
        return _csv_response(to_csv(summaries, summary_cls), filename)  # type: ignore[arg-type]
    return summaries


@router.get(
    "",
    response_model=OverviewStats,
    summary="Presence overview",
    responses={503: _ERROR_RESPONSES[503]},
)
async def get_overview(
    aggregator: PeriodAggregator = Depends(get_aggregator),
) -> OverviewStats:
    """Presence statistics for yesterday, last week, month, year and all time."""
    return await _compute(aggregator.compute_stats())


@router.get(
    "/usage/{period_type}",
    response_model=list[UsagePeriodSummary],
    summary="Usage per period",
    responses=_ERROR_RESPONSES,
)
async def get_usage(
    period_type: str,
    from_: str | None = Query(None, alias="from", description="First day (YYYY-MM-DD)"),
    to: str | None = Query(None, description="Last day (YYYY-MM-DD)"),
    output_format: str | None = Query(None, alias="format", description="'csv' for CSV"),
    aggregator: PeriodAggregator = Depends(get_aggregator),
) -> list[UsagePeriodSummary] | Response:
    """Ticket and subscription consumption, debt and operating costs per period."""
    pt = _period_type(period_type)
    from_date, to_date = _date_range(from_, to)
    summaries = await _compute(aggregator.compute_period_usage(pt, from_date, to_date))
    return _render(summaries, UsagePeriodSummary, output_format, f"usage-{pt.value}.csv")


@router.get(
    "/incomes/{period_type}",
    response_model=list[IncomePeriodSummary],
    summary="Income per period",
    responses=_ERROR_RESPONSES,
)
async def get_incomes(
    period_type: str,
    from_: str | None = Query(None, alias="from", description="First day (YYYY-MM-DD)"),
    to: str | None = Query(None, description="Last day (YYYY-MM-DD)"),
    output_format: str | None = Query(None, alias="format", description="'csv' for CSV"),
    aggregator: PeriodAggregator = Depends(get_aggregator),
) -> list[IncomePeriodSummary] | Response:
    """Ticket, subscription and membership sales per period, by purchase date."""
    pt = _period_type(period_type)
    from_date, to_date = _date_range(from_, to)
    summaries = await _compute(aggregator.compute_period_income(pt, from_date, to_date))
    return _render(summaries, IncomePeriodSummary, output_format, f"incomes-{pt.value}.csv")


@router.get(
    "/attendance/{period_type}",
    response_model=list[AttendancePeriodSummary],
    summary="Attendance per period",
    responses=_ERROR_RESPONSES,
)
async def get_attendance(
    period_type: str,
    from_: str | None = Query(None, alias="from", description="First day (YYYY-MM-DD)"),
    to: str | None = Query(None, description="Last day (YYYY-MM-DD)"),
    output_format: str | None = Query(None, alias="format", description="'csv' for CSV"),
    aggregator: PeriodAggregator = Depends(get_aggregator),
) -> list[AttendancePeriodSummary] | Response:
    """Per-member attendance per period, split by what paid for it."""
    pt = _period_type(period_type)
    from_date, to_date = _date_range(from_, to)
    summaries = await _compute(aggregator.compute_period_attendance(pt, from_date, to_date))
    return _render(
        summaries, AttendancePeriodSummary, output_format, f"attendance-{pt.value}.csv"
    )


@router.get(
    "/presences/month/{year}/{month}",
    response_model=list[MemberPresences],
    summary="Monthly presence report",
    responses=_ERROR_RESPONSES,
)
async def get_monthly_presences(
    year: int,
    month: int,
    sort: str = Query("presences", description="'presences' or 'user'"),
    output_format: str | None = Query(None, alias="format", description="'csv' for CSV"),
    aggregator: PeriodAggregator = Depends(get_aggregator),
) -> list[MemberPresences] | Response:
    """Presence of every member who came during the month."""
    rows = await _compute(aggregator.compute_monthly_presences(year, month, sort=sort))
    if output_format == "csv":
        return _csv_response(presences_to_csv(rows), f"presences-{year:04d}-{month:02d}.csv")
    return rows


@router.get(
    "/{period_type}",
    response_model=list[PresencePeriodSummary],
    summary="Presence per period",
    responses=_ERROR_RESPONSES,
)
async def get_presence_stats(
    period_type: str,
    from_: str | None = Query(None, alias="from", description="First day (YYYY-MM-DD)"),
    to: str | None = Query(None, description="Last day (YYYY-MM-DD)"),
    includes_current: str | None = Query(
        None, alias="includesCurrent", description="'1' to include periods in progress"
    ),
    output_format: str | None = Query(None, alias="format", description="'csv' for CSV"),
    aggregator: PeriodAggregator = Depends(get_aggregator),
) -> list[PresencePeriodSummary] | Response:
    """Coworkers, coworked days and newcomers per period."""
    pt = _period_type(period_type)
    from_date, to_date = _date_range(from_, to)
    query = StatsQuery(
        from_date=from_date, to_date=to_date, includes_current=includes_current == "1"
    )
    summaries = await _compute(aggregator.compute_periods_stats(pt, query))
    return _render(summaries, PresencePeriodSummary, output_format, f"stats-{pt.value}.csv")

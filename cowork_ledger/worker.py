import logging
from typing import Any

from arq import cron

from cowork_ledger.core.config import settings
from cowork_ledger.schemas.stats import PeriodType, StatsQuery
from cowork_ledger.services.charge_allocator import charge_allocator_from_settings
from cowork_ledger.services.ledger_store import SqlLedgerStore
from cowork_ledger.services.period_aggregator import PeriodAggregator, PeriodComputationError
from cowork_ledger.services.period_dates import parse_period_type
from cowork_ledger.services.stats_cache import JsonFileStatsCache
from cowork_ledger.tasks import redis_settings

logger = logging.getLogger(__name__)


async def startup(ctx: dict[str, Any]) -> None:
    ctx["stats_cache"] = JsonFileStatsCache(settings.STATS_CACHE_PATH)


async def shutdown(ctx: dict[str, Any]) -> None:
    cache = ctx.get("stats_cache")
    if cache is not None:
        await cache.close()


async def warm_stats_cache_task(
    ctx: dict[str, Any], period_types: list[str] | None = None
) -> int:
    """Background task: compute every closed period so requests hit the cache.

    Presence, usage, income and attendance stats are computed for each
    period type. A batch that fails partially still caches the periods
    that succeeded; the failure is logged and the next batch runs.

    Runs daily.

    Args:
        ctx: ARQ worker context.
        period_types: Period types to warm; all of them when omitted.

    Returns:
        Number of period summaries computed or read from the cache.
    """
    cache = ctx.get("stats_cache")
    if cache is None:
        cache = ctx["stats_cache"] = JsonFileStatsCache(settings.STATS_CACHE_PATH)

    aggregator = PeriodAggregator(
        SqlLedgerStore(), cache=cache, charges=charge_allocator_from_settings()
    )
    types = [parse_period_type(t) for t in period_types] if period_types else list(PeriodType)

    computations = [
        lambda pt: aggregator.compute_periods_stats(pt, StatsQuery()),
        aggregator.compute_period_usage,
        aggregator.compute_period_income,
        aggregator.compute_period_attendance,
    ]

    count = 0
    for period_type in types:
        for compute in computations:
            try:
                count += len(await compute(period_type))
            except PeriodComputationError as e:
                logger.warning("Stats cache warm-up incomplete: %s", e)
                count += len(e.completed)

    await cache.flush()
    logger.info("Warmed stats cache with %d period summaries", count)
    return count


class WorkerSettings:
    functions = [warm_stats_cache_task]
    cron_jobs = [
        cron(warm_stats_cache_task, hour=1, minute=0),  # daily, once yesterday is closed
    ]
    on_startup = startup
    on_shutdown = shutdown
    redis_settings = redis_settings

"""Tests for the stats cache warm-up worker and cron job registration."""

import json
import logging
from datetime import date
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from cowork_ledger.core.config import settings
from cowork_ledger.services.period_dates import InvalidStatsQueryError
from cowork_ledger.services.stats_cache import JsonFileStatsCache
from cowork_ledger.worker import WorkerSettings, shutdown, startup, warm_stats_cache_task
from tests.conftest import FakeLedgerStore


@pytest.fixture
def ledger():
    ledger = FakeLedgerStore()
    member = ledger.add_member(email="ada@example.com")
    ledger.add_ticket_order(member, date(2024, 3, 1), 5, price=30)
    ledger.add_activity(member, date(2024, 3, 4))
    ledger.add_activity(member, date(2025, 6, 2), 0.5)
    return ledger


def _years_tracked() -> int:
    return date.today().year - 2014 + 1


class TestWarmStatsCacheTask:
    @pytest.mark.asyncio
    async def test_caches_closed_periods(self, ledger, tmp_path):
        cache_path = tmp_path / "cache.json"
        ctx = {"stats_cache": JsonFileStatsCache(cache_path, flush_delay=60)}

        with patch("cowork_ledger.worker.SqlLedgerStore", return_value=ledger):
            count = await warm_stats_cache_task(ctx, ["year"])

        years = _years_tracked()
        # The current year is left out of presence stats and computed for the rest.
        assert count == (years - 1) + 3 * years

        cached = json.loads(cache_path.read_text())
        assert cached["year-2024-01-01"]["data"]["coworkers_count"] == 1
        assert cached["usage-year-2024-01-01"]["data"]["used_tickets"] == 1
        assert cached["income-year-2024-01-01"]["data"]["tickets_count"] == 5
        assert "attendance-year-2025-01-01" in cached
        assert f"year-{date.today().year}-01-01" not in cached

    @pytest.mark.asyncio
    async def test_partial_failure_is_logged_and_warm_up_continues(
        self, ledger, tmp_path, caplog
    ):
        ledger.failing["get_ticket_orders_by_date"] = {date(2024, 3, 1)}
        ctx = {"stats_cache": JsonFileStatsCache(tmp_path / "cache.json", flush_delay=60)}

        with patch("cowork_ledger.worker.SqlLedgerStore", return_value=ledger):
            with caplog.at_level(logging.WARNING):
                count = await warm_stats_cache_task(ctx, ["year"])

        assert count == _years_tracked() * 4 - 2
        assert "warm-up incomplete" in caplog.text
        assert not await ctx["stats_cache"].has("income-year-2024-01-01")
        assert await ctx["stats_cache"].has("income-year-2023-01-01")

    @pytest.mark.asyncio
    async def test_creates_cache_when_missing_from_context(self, ledger, tmp_path):
        ctx: dict = {}
        with patch.object(settings, "STATS_CACHE_PATH", str(tmp_path / "cache.json")):
            with patch("cowork_ledger.worker.SqlLedgerStore", return_value=ledger):
                await warm_stats_cache_task(ctx, ["year"])

        assert isinstance(ctx["stats_cache"], JsonFileStatsCache)
        assert (tmp_path / "cache.json").exists()

    @pytest.mark.asyncio
    async def test_rejects_unknown_period_type(self, ledger):
        with patch("cowork_ledger.worker.SqlLedgerStore", return_value=ledger):
            with pytest.raises(InvalidStatsQueryError):
                await warm_stats_cache_task({"stats_cache": MagicMock()}, ["fortnight"])


class TestWorkerLifecycle:
    @pytest.mark.asyncio
    async def test_startup_opens_cache(self, tmp_path):
        ctx: dict = {}
        with patch.object(settings, "STATS_CACHE_PATH", str(tmp_path / "cache.json")):
            await startup(ctx)
        assert ctx["stats_cache"].path == tmp_path / "cache.json"

    @pytest.mark.asyncio
    async def test_shutdown_closes_cache(self):
        cache = MagicMock()
        cache.close = AsyncMock()

        await shutdown({"stats_cache": cache})

        cache.close.assert_called_once()

    @pytest.mark.asyncio
    async def test_shutdown_without_cache(self):
        await shutdown({})


class TestWorkerSettings:
    """Tests for WorkerSettings configuration."""

    def test_functions_includes_warm_task(self):
        func_names = [f.__name__ for f in WorkerSettings.functions]
        assert "warm_stats_cache_task" in func_names

    def test_warm_cron_runs_daily(self):
        job = None
        for j in WorkerSettings.cron_jobs:
            if j.coroutine.__name__ == "warm_stats_cache_task":
                job = j
                break
        assert job is not None
        assert job.hour == 1
        assert job.minute == 0

    def test_lifecycle_hooks(self):
        assert WorkerSettings.on_startup is startup
        assert WorkerSettings.on_shutdown is shutdown

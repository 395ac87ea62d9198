"""Key/value cache for the statistics of closed periods.

Keys look like ``"month-2024-03-01"``. Values are JSON-compatible summaries.
Entries never expire: a cached period is served until its key is removed or
the cache is cleared.
"""

import asyncio
import json
import logging
import os
from pathlib import Path
from typing import Any, Protocol

from cowork_ledger.core.config import settings

logger = logging.getLogger(__name__)


class StatsStore(Protocol):
    async def has(self, key: str) -> bool: ...

    async def get(self, key: str) -> Any | None: ...

    async def set(self, key: str, value: Any) -> None: ...


class InMemoryStatsCache:
    """StatsStore kept for the lifetime of the process only."""

    def __init__(self, initial: dict[str, Any] | None = None):
        self._index: dict[str, Any] = dict(initial or {})

    async def has(self, key: str) -> bool:
        return key in self._index

    async def get(self, key: str) -> Any | None:
        return self._index.get(key)

    async def set(self, key: str, value: Any) -> None:
        self._index[key] = value

    async def remove(self, key: str) -> None:
        self._index.pop(key, None)

    async def clear(self) -> None:
        self._index = {}

    def __len__(self) -> int:
        return len(self._index)


class JsonFileStatsCache:
    """StatsStore persisted as a single JSON object on disk.

    The file is read once, on first access; concurrent first accesses share
    the same load. A file that is missing or unreadable gives an empty cache.

    Writes are debounced on the trailing edge: every ``set``, ``remove`` or
    ``clear`` pushes the pending write back to ``flush_delay`` seconds after
    the latest mutation, so a burst of mutations costs a single write. Call
    ``flush`` (or ``close``) to write immediately, e.g. on shutdown. A write
    that fails is logged and dropped; values stay correct in memory.
    """

    def __init__(
        self,
        path: str | Path,
        flush_delay: float = settings.STATS_CACHE_FLUSH_DELAY,
    ):
        self.path = Path(path)
        self.flush_delay = flush_delay
        self._index: dict[str, Any] = {}
        self._loading: asyncio.Future[None] | None = None
        self._flush_handle: asyncio.TimerHandle | None = None
        self._flush_task: asyncio.Task[None] | None = None
        self._write_lock = asyncio.Lock()
        self._dirty = False

    @property
    def pending_flush(self) -> bool:
        """Whether a debounced write is scheduled."""
        return self._flush_handle is not None

    async def load(self) -> None:
        if self._loading is None:
            self._loading = asyncio.ensure_future(self._read())
        await asyncio.shield(self._loading)

    async def has(self, key: str) -> bool:
        await self.load()
        return key in self._index

    async def get(self, key: str) -> Any | None:
        await self.load()
        return self._index.get(key)

    async def set(self, key: str, value: Any) -> None:
        await self.load()
        self._index[key] = value
        self._mark_dirty()

    async def remove(self, key: str) -> None:
        await self.load()
        self._index.pop(key, None)
        self._mark_dirty()

    async def clear(self) -> None:
        await self.load()
        self._index = {}
        self._mark_dirty()

    async def flush(self) -> None:
        """Write the index now, cancelling any scheduled write."""
        self._cancel_scheduled_flush()
        async with self._write_lock:
            if not self._dirty:
                return
            # Serialized on the event loop, so no mutation can interleave.
            snapshot = json.dumps(self._index)
            self._dirty = False
            try:
                await asyncio.to_thread(self._write, snapshot)
            except OSError:
                logger.exception("Failed to write stats cache to %s", self.path)
                return
        logger.debug("Stats cache written to %s", self.path)

    async def close(self) -> None:
        """Flush pending changes and wait for any write in progress."""
        await self.flush()
        if self._flush_task is not None and not self._flush_task.done():
            await self._flush_task

    def _mark_dirty(self) -> None:
        self._dirty = True
        self._cancel_scheduled_flush()
        loop = asyncio.get_running_loop()
        self._flush_handle = loop.call_later(self.flush_delay, self._start_scheduled_flush)

    def _cancel_scheduled_flush(self) -> None:
        if self._flush_handle is not None:
            self._flush_handle.cancel()
            self._flush_handle = None

    def _start_scheduled_flush(self) -> None:
        self._flush_handle = None
        self._flush_task = asyncio.get_running_loop().create_task(self.flush())

    async def _read(self) -> None:
        try:
            raw = await asyncio.to_thread(self.path.read_text, encoding="utf-8")
            index = json.loads(raw)
            if not isinstance(index, dict):
                raise ValueError("cache file does not hold a JSON object")
        except FileNotFoundError:
            logger.info("No stats cache at %s, starting empty", self.path)
            index = {}
        except (OSError, ValueError) as e:
            logger.warning("Could not read stats cache %s, starting empty: %s", self.path, e)
            index = {}
        self._index = index

    def _write(self, snapshot: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        tmp_path.write_text(snapshot, encoding="utf-8")
        os.replace(tmp_path, self.path)

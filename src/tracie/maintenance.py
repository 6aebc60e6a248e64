"""
Background maintenance.

:func:`startup` / :func:`shutdown` schedule and cancel one periodic
coroutine. :class:`MaintenanceScheduler` owns four such tasks:

* group refresh - full reconciliation of the groups domain while connected;
* statistics report - key counts, hit rate, and process memory;
* memory guard - emergency clear of every domain above a memory threshold;
* expiry sweep - physical removal of logically expired entries.

A failing tick is logged as :class:`~tracie.errors.MaintenanceTaskError`
and the schedule carries on.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import TYPE_CHECKING, Awaitable, Callable

import psutil

from tracie.config import cache as cache_cfg
from tracie.config import maintenance as maint_cfg
from tracie.context import BotContext
from tracie.errors import MaintenanceTaskError

if TYPE_CHECKING:
    from tracie.connection import ConnectionManager

logger = logging.getLogger(__name__)

_BYTES_PER_MB = 1024 * 1024


async def run_tick(name: str, task_fn: Callable[[], Awaitable[None] | None]) -> None:
    """Run one maintenance tick, wrapping any failure in ``MaintenanceTaskError``."""

    try:
        result = task_fn()
        if inspect.isawaitable(result):
            await result
    except asyncio.CancelledError:
        raise
    except Exception as exc:
        raise MaintenanceTaskError(f"{name} failed: {exc}") from exc


async def startup(
    task_fn: Callable[[], Awaitable[None] | None], interval: float, *, name: str = "maintenance"
) -> asyncio.Task:
    """
    Schedule ``task_fn`` to run periodically every ``interval`` seconds.

    The first run happens one ``interval`` after scheduling. Failures are
    logged and do not stop the periodic execution.

    Returns the created :class:`asyncio.Task` handle.
    """

    async def _periodic() -> None:
        await asyncio.sleep(interval)   # delay initial loop
        while True:
            try:
                await run_tick(name, task_fn)
            except MaintenanceTaskError as exc:
                logger.error("Maintenance cycle failed: %s", exc)
            await asyncio.sleep(interval)

    return asyncio.create_task(_periodic(), name=f"maintenance-{name}")


async def shutdown(task: asyncio.Task | None) -> None:
    """
    Cancel a maintenance task started with :func:`startup`.

    The function is tolerant of ``None`` and awaits task cancellation to finish
    silently.
    """

    if not task:
        return

    task.cancel()
    try:
        await task
    except asyncio.CancelledError:  # pragma: no cover - normal cancellation
        pass


def sample_memory_mb() -> float:
    """Resident memory of this process in megabytes."""

    return psutil.Process().memory_info().rss / _BYTES_PER_MB


class MaintenanceScheduler:
    def __init__(
        self,
        ctx: BotContext,
        connection: "ConnectionManager",
        *,
        memory_sampler: Callable[[], float] = sample_memory_mb,
        memory_threshold_mb: float | None = None,
        group_refresh_interval: float | None = None,
        stats_interval: float | None = None,
        memory_check_interval: float | None = None,
        sweep_interval: float | None = None,
    ) -> None:
        self.ctx = ctx
        self.connection = connection
        self._sample_memory = memory_sampler
        self.memory_threshold_mb = (
            maint_cfg.MEMORY_THRESHOLD_MB if memory_threshold_mb is None else memory_threshold_mb
        )
        self.intervals = {
            "group-refresh": maint_cfg.GROUP_REFRESH_INTERVAL if group_refresh_interval is None else group_refresh_interval,
            "stats": maint_cfg.STATS_INTERVAL if stats_interval is None else stats_interval,
            "memory-guard": maint_cfg.MEMORY_CHECK_INTERVAL if memory_check_interval is None else memory_check_interval,
            "sweep": cache_cfg.CHECK_PERIOD if sweep_interval is None else sweep_interval,
        }
        self._tasks: dict[str, asyncio.Task] = {}

    # ------------------------------------------------------------------ #
    # Ticks
    # ------------------------------------------------------------------ #

    async def refresh_groups(self) -> int:
        """Overwrite the groups domain with every group the session is in."""

        session = self.connection.session
        if not self.connection.is_connected or session is None:
            return 0

        groups = await session.fetch_all_groups()
        for group_id, metadata in groups.items():
            self.ctx.caches.cache_group(group_id, metadata)
        logger.info("Cached %d groups", len(groups))
        return len(groups)

    def report_stats(self) -> dict:
        summary = self.ctx.caches.summary()
        memory_mb = self._sample_memory()
        report = {
            "total_keys": summary.total_keys,
            "hits": summary.hits,
            "misses": summary.misses,
            "hit_rate": summary.hit_rate,
            "memory_mb": round(memory_mb),
            "domains": {name: vars(s) for name, s in self.ctx.caches.stats().items()},
        }
        logger.info(
            "Cache stats: keys=%d hit_rate=%d%% memory=%dMB",
            report["total_keys"],
            round(summary.hit_rate * 100),
            report["memory_mb"],
        )
        return report

    def check_memory(self) -> bool:
        """Emergency-clear every domain when memory exceeds the threshold."""

        memory_mb = self._sample_memory()
        if memory_mb <= self.memory_threshold_mb:
            return False
        logger.warning("High memory usage (%dMB) - cleaning cache", round(memory_mb))
        self.ctx.caches.emergency_clear("memory pressure")
        return True

    def sweep(self) -> int:
        removed = self.ctx.caches.prune_expired()
        if removed:
            logger.debug("Swept %d expired cache entries", removed)
        return removed

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    async def start(self) -> None:
        ticks = {
            "group-refresh": self.refresh_groups,
            "stats": self.report_stats,
            "memory-guard": self.check_memory,
            "sweep": self.sweep,
        }
        for name, fn in ticks.items():
            task = self._tasks.get(name)
            if task is None or task.done():
                self._tasks[name] = await startup(fn, self.intervals[name], name=name)
        logger.info(
            "Maintenance started (%s)",
            ", ".join(f"{name}={interval:g}s" for name, interval in self.intervals.items()),
        )

    async def stop(self) -> None:
        tasks, self._tasks = self._tasks, {}
        for task in tasks.values():
            await shutdown(task)

    @property
    def running(self) -> bool:
        return any(not t.done() for t in self._tasks.values())


__all__ = ["MaintenanceScheduler", "run_tick", "sample_memory_mb", "shutdown", "startup"]

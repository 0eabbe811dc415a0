import asyncio
import os
import time
from collections.abc import Callable
from typing import Optional

import psutil

from easysearch.core.index.store import IndexStore
from easysearch.core.models import SweepReport
from easysearch.core.settings import Settings, settings as global_settings
from easysearch.core.utils.logging import get_logger


def _process_rss_mb() -> Optional[float]:
    try:
        return round(psutil.Process(os.getpid()).memory_info().rss / (1024 ** 2), 1)
    except psutil.Error:
        return None


class MemoryJanitor:
    """
    Periodic eviction sweep over an IndexStore.

    Stale entries (older than ``STALE_AFTER_SEC``) go first; if the store is
    still above ``SOFT_TARGET_FILES`` the oldest-indexed entries are evicted
    until it is not. Access recency is not tracked, so this is FIFO by
    ``indexed_at``.
    """

    def __init__(
        self,
        store: IndexStore,
        cfg: Optional[Settings] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.settings = cfg or global_settings
        self.interval = float(self.settings.JANITOR_INTERVAL_SEC)
        self.stale_after = float(self.settings.STALE_AFTER_SEC)
        self.soft_target = max(0, int(self.settings.SOFT_TARGET_FILES))
        self._clock = clock
        self._task: Optional[asyncio.Task] = None
        self.on_evict: Optional[Callable[[SweepReport], None]] = None
        self._disposed = False
        self.last_report: Optional[SweepReport] = None
        self.logger = get_logger("easysearch.janitor")

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Schedule the recurring sweep on the running event loop."""
        if self._disposed or self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run(), name="easysearch-janitor")

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                self.sweep()
            except Exception as e:
                self.logger.error("janitor_sweep_failed", error=str(e))

    def sweep(self, now: Optional[float] = None) -> SweepReport:
        now = self._clock() if now is None else now
        entries = list(self.store.all_entries())
        cutoff = now - self.stale_after

        stale = [e for e in entries if e.indexed_at < cutoff]
        evicted_stale = self.store.evict(stale)

        evicted_over = 0
        excess = self.store.size() - self.soft_target
        if excess > 0:
            stale_ids = {e.identity for e in stale}
            survivors = [e for e in entries if e.identity not in stale_ids]
            survivors.sort(key=lambda e: e.indexed_at)
            evicted_over = self.store.evict(survivors[:excess])

        report = SweepReport(
            evicted_stale=evicted_stale,
            evicted_over_capacity=evicted_over,
            remaining=self.store.size(),
            rss_mb=_process_rss_mb(),
        )
        self.last_report = report
        if report.evicted:
            self.logger.info(
                "janitor_sweep",
                evicted_stale=evicted_stale,
                evicted_over_capacity=evicted_over,
                remaining=report.remaining,
                rss_mb=report.rss_mb,
            )
        else:
            self.logger.debug("janitor_sweep", remaining=report.remaining, rss_mb=report.rss_mb)
        if report.evicted:
            self._notify_evicted(report)
        return report

    def _notify_evicted(self, report: SweepReport) -> None:
        callback = self.on_evict
        if callback is None:
            return
        try:
            callback(report)
        except Exception as e:
            self.logger.warning("evict_callback_failed", error=str(e))

    def dispose(self) -> None:
        self._disposed = True
        task = self._task
        self._task = None
        if task is not None and not task.done():
            task.cancel()

import asyncio
import time
from collections.abc import Callable
from typing import List, Optional

from easysearch.core.cancellation import CancellationToken
from easysearch.core.constants import BINARY_SNIFF_BYTES
from easysearch.core.errors import IndexingPartialFailure, SearchCancelled
from easysearch.core.index.store import IndexStore
from easysearch.core.models import FileFailure, IndexedFile, IndexingReport, PutOutcome, SearchState
from easysearch.core.settings import Settings, settings as global_settings
from easysearch.core.utils.logging import get_logger
from easysearch.core.utils.patterns import ExcludeMatcher
from easysearch.core.workspace import FileLister, FileReader

ProgressCallback = Callable[[str, Optional[float]], None]


def _looks_binary(data: bytes) -> bool:
    return b"\x00" in data[:BINARY_SNIFF_BYTES]


class FileIndexer:
    """
    Populates an IndexStore from a workspace file listing.

    Candidates are processed in fixed-size batches; after every batch the
    indexer reports progress and yields to the event loop. Exactly one pass
    may run at a time.
    """

    def __init__(
        self,
        store: IndexStore,
        lister: FileLister,
        reader: FileReader,
        cfg: Optional[Settings] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.lister = lister
        self.reader = reader
        self.settings = cfg or global_settings
        self.batch_size = max(1, int(self.settings.BATCH_SIZE))
        self.max_file_size = int(self.settings.MAX_FILE_SIZE)
        self._clock = clock
        self._running = False
        self.last_report: Optional[IndexingReport] = None
        self.logger = get_logger("easysearch.indexer")

    @property
    def running(self) -> bool:
        return self._running

    async def run(
        self,
        state: SearchState,
        cancellation: Optional[CancellationToken] = None,
        progress: Optional[ProgressCallback] = None,
    ) -> IndexingReport:
        """Run one index pass. Raises ``SearchCancelled`` if cancelled between batches."""
        if self._running:
            raise RuntimeError("index pass already running")
        self._running = True
        try:
            return await self._run(state, cancellation, progress)
        finally:
            self._running = False

    async def _run(
        self,
        state: SearchState,
        cancellation: Optional[CancellationToken],
        progress: Optional[ProgressCallback],
    ) -> IndexingReport:
        started = time.perf_counter()
        excludes = ExcludeMatcher(state.active_exclude_patterns)
        # Denominator is fixed at scan start.
        candidates: List[str] = list(self.lister.list_files())
        report = IndexingReport(total_candidates=len(candidates))
        self.last_report = report
        self.logger.info(
            "index_pass_started",
            candidates=report.total_candidates,
            excludes=len(excludes.patterns),
            state_version=state.version,
        )

        for batch_start in range(0, len(candidates), self.batch_size):
            if cancellation is not None and cancellation.is_cancelled:
                report.cancelled = True
                report.duration_ms = int((time.perf_counter() - started) * 1000)
                self.logger.info(
                    "index_pass_cancelled",
                    processed=report.processed,
                    indexed=report.indexed,
                )
                raise SearchCancelled("Indexing cancelled")

            batch = candidates[batch_start:batch_start + self.batch_size]
            for identity in batch:
                try:
                    self._index_one(identity, excludes, report)
                except IndexingPartialFailure as e:
                    report.failures.append(FileFailure(identity=e.identity, reason=e.reason))
                    self.logger.debug("index_file_skipped", path=e.identity, reason=e.reason)
                report.processed += 1

            self._emit_progress(progress, report)
            await asyncio.sleep(0)

        report.duration_ms = int((time.perf_counter() - started) * 1000)
        self.logger.info(
            "index_pass_finished",
            processed=report.processed,
            indexed=report.indexed,
            excluded=report.skipped_excluded,
            too_large=report.skipped_too_large,
            binary=report.skipped_binary,
            capacity=report.skipped_capacity,
            errors=len(report.failures),
            duration_ms=report.duration_ms,
        )
        return report

    def _index_one(self, identity: str, excludes: ExcludeMatcher, report: IndexingReport) -> None:
        if excludes and excludes.matches(self.lister.relative_path(identity)):
            report.skipped_excluded += 1
            return

        # Full store admits replacements only; never read a file that cannot be stored.
        if self.store.is_full() and not self.store.contains(identity):
            report.skipped_capacity += 1
            return

        try:
            size = int(self.reader.file_size(identity))
        except OSError as e:
            raise IndexingPartialFailure(identity, str(e)) from e
        if size > self.max_file_size:
            report.skipped_too_large += 1
            return

        try:
            data = self.reader.read_bytes(identity)
        except OSError as e:
            raise IndexingPartialFailure(identity, str(e)) from e
        # File may have grown between stat and read.
        if len(data) > self.max_file_size:
            report.skipped_too_large += 1
            return
        if _looks_binary(data):
            report.skipped_binary += 1
            return

        entry = IndexedFile(
            identity=identity,
            content=data.decode("utf-8", errors="replace"),
            size_bytes=len(data),
            indexed_at=self._clock(),
        )
        outcome = self.store.put(identity, entry)
        if outcome == PutOutcome.CAPACITY_EXCEEDED:
            report.skipped_capacity += 1
        else:
            report.indexed += 1

    def _emit_progress(self, progress: Optional[ProgressCallback], report: IndexingReport) -> None:
        if progress is None:
            return
        total = report.total_candidates
        percent = 100.0 if total <= 0 else report.processed / total * 100.0
        percent = max(0.0, min(100.0, percent))
        message = f"Indexing files... {report.processed}/{total}"
        try:
            progress(message, percent)
        except Exception as e:
            self.logger.warning("progress_callback_failed", error=str(e))

import asyncio
import time
from collections.abc import Callable
from pathlib import Path
from typing import List, Optional, Sequence, Union

from easysearch.core.cancellation import CancellationToken
from easysearch.core.constants import KEY_CASE_SENSITIVE, KEY_EXCLUDE_ENABLED, KEY_EXCLUDE_PATTERNS
from easysearch.core.errors import EasySearchError, SearchCancelled, SearchFailure
from easysearch.core.index.indexer import FileIndexer, ProgressCallback
from easysearch.core.index.janitor import MemoryJanitor
from easysearch.core.index.store import IndexStore
from easysearch.core.models import (
    ExcludeSettings,
    IndexingReport,
    IndexStatus,
    SearchMatch,
    SearchOptions,
    SearchState,
    SweepReport,
    TextDocument,
)
from easysearch.core.query import QueryEngine, prepare_query
from easysearch.core.settings import Settings, settings as global_settings
from easysearch.core.settings_store import KeyValueStore
from easysearch.core.utils.logging import get_logger
from easysearch.core.workspace import DocumentProvider, FileLister, FileReader, LocalWorkspace

logger = get_logger("easysearch.engine")


class SearchEngine:
    """
    In-process text search over a workspace.

    Owns the IndexStore, the FileIndexer feeding it, the MemoryJanitor pruning
    it and the QueryEngine reading it. The index is built once on the first
    ``wait_for_ready``/``search`` and is not invalidated when files change on
    disk; call ``rebuild_index`` to refresh it. A janitor sweep that evicts
    entries drops readiness, so the next ``wait_for_ready`` re-indexes them.
    """

    def __init__(
        self,
        lister: FileLister,
        reader: Optional[FileReader] = None,
        documents: Optional[DocumentProvider] = None,
        *,
        state_store: Optional[KeyValueStore] = None,
        cfg: Optional[Settings] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.settings = cfg or global_settings
        self.lister = lister
        self.reader = reader if reader is not None else lister
        if documents is None and isinstance(lister, DocumentProvider):
            documents = lister
        self.documents = documents
        self.state_store = state_store

        self.store = IndexStore(self.settings.MAX_INDEXED_FILES)
        self.indexer = FileIndexer(self.store, self.lister, self.reader, self.settings, clock=clock)
        self.janitor = MemoryJanitor(self.store, self.settings, clock=clock)
        self.janitor.on_evict = self._on_evicted
        self.query_engine = QueryEngine(self.store, self.settings)

        self._state = self._load_state()
        self._progress_handler: Optional[ProgressCallback] = None
        self._lifetime = CancellationToken()
        self._pass_task: Optional[asyncio.Task] = None
        self._ready = False
        self._evicted_during_pass = False
        self._disposed = False

    @classmethod
    def for_directory(
        cls,
        root: Union[str, Path],
        *,
        state_store: Optional[KeyValueStore] = None,
        cfg: Optional[Settings] = None,
    ) -> "SearchEngine":
        return cls(LocalWorkspace(root, cfg), state_store=state_store, cfg=cfg)

    # --- State ---

    def _load_state(self) -> SearchState:
        patterns = list(self.settings.DEFAULT_EXCLUDE_PATTERNS)
        enabled = True
        case_sensitive = False
        if self.state_store is not None:
            case_sensitive = bool(self.state_store.get(KEY_CASE_SENSITIVE, False))
            stored = self.state_store.get(KEY_EXCLUDE_PATTERNS, None)
            if isinstance(stored, list):
                patterns = [str(p) for p in stored]
            enabled = bool(self.state_store.get(KEY_EXCLUDE_ENABLED, True))
        return SearchState(
            case_sensitive=case_sensitive,
            exclude_patterns=tuple(patterns),
            exclude_enabled=enabled,
        )

    def _persist(self, key: str, value: object) -> None:
        if self.state_store is None:
            return
        try:
            self.state_store.update(key, value)
        except OSError as e:
            logger.warning("state_persist_failed", key=key, error=str(e))

    @property
    def state(self) -> SearchState:
        return self._state

    def set_case_sensitive(self, case_sensitive: bool) -> None:
        value = bool(case_sensitive)
        if value == self._state.case_sensitive:
            return
        self._state = self._state.model_copy(update={
            "case_sensitive": value,
            "version": self._state.version + 1,
        })
        self._persist(KEY_CASE_SENSITIVE, value)

    def get_case_sensitive(self) -> bool:
        return self._state.case_sensitive

    def set_exclude_patterns(self, patterns: Sequence[str], enabled: bool) -> None:
        cleaned = tuple(p.strip() for p in patterns if p and p.strip())
        enabled = bool(enabled)
        if cleaned == self._state.exclude_patterns and enabled == self._state.exclude_enabled:
            return
        self._state = self._state.model_copy(update={
            "exclude_patterns": cleaned,
            "exclude_enabled": enabled,
            "version": self._state.version + 1,
        })
        self._persist(KEY_EXCLUDE_PATTERNS, list(cleaned))
        self._persist(KEY_EXCLUDE_ENABLED, enabled)

    def get_exclude_patterns(self) -> ExcludeSettings:
        return ExcludeSettings(
            patterns=list(self._state.exclude_patterns),
            enabled=self._state.exclude_enabled,
        )

    def on_progress(self, callback: Optional[ProgressCallback]) -> None:
        """Register the single progress handler; a later call replaces it."""
        self._progress_handler = callback

    def _emit_progress(self, message: str, percent: Optional[float] = None) -> None:
        handler = self._progress_handler
        if handler is not None:
            handler(message, percent)

    # --- Indexing ---

    def _ensure_open(self) -> None:
        if self._disposed:
            raise SearchCancelled("Search engine disposed")

    def _start_janitor(self) -> None:
        if not self._disposed and not self.janitor.running:
            self.janitor.start()

    def _start_pass(self) -> asyncio.Task:
        self._evicted_during_pass = False
        token = CancellationToken.linked(self._lifetime)
        task = asyncio.get_running_loop().create_task(self._run_pass(token), name="easysearch-index-pass")
        task.add_done_callback(self._on_pass_done)
        self._pass_task = task
        return task

    async def _run_pass(self, token: CancellationToken) -> IndexingReport:
        try:
            report = await self.indexer.run(self._state, token, self._emit_progress)
        finally:
            token.release()
        if not self._disposed:
            self._ready = not self._evicted_during_pass
        return report

    def _on_evicted(self, report: SweepReport) -> None:
        """Evicted files are only restored by another pass, so readiness is dropped."""
        if self._pass_task is not None and not self._pass_task.done():
            self._evicted_during_pass = True
        self._ready = False
        logger.info("index_invalidated_by_sweep", evicted=report.evicted, remaining=report.remaining)

    def _on_pass_done(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is None or isinstance(exc, SearchCancelled):
            return
        logger.error("index_pass_failed", error=str(exc))

    async def _await_pass(self, task: asyncio.Task, cancellation: Optional[CancellationToken]) -> None:
        if cancellation is None:
            await asyncio.shield(task)
            return
        cancellation.raise_if_cancelled()
        waiter = asyncio.ensure_future(cancellation.wait())
        try:
            done, _ = await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            if not waiter.done():
                waiter.cancel()
        if task not in done:
            raise SearchCancelled()
        if task.cancelled():
            raise SearchCancelled("Indexing cancelled")
        task.result()

    async def wait_for_ready(self, cancellation: Optional[CancellationToken] = None) -> None:
        """
        Complete once an index pass has finished.

        The first call starts the pass; concurrent callers share it. A caller's
        own cancellation ends its wait without stopping the shared pass.
        """
        self._ensure_open()
        self._start_janitor()
        if self._ready:
            return
        task = self._pass_task
        if task is None or task.done():
            task = self._start_pass()
        await self._await_pass(task, cancellation)

    async def rebuild_index(self, cancellation: Optional[CancellationToken] = None) -> Optional[IndexingReport]:
        """Discard the index and run a fresh pass with the current state."""
        self._ensure_open()
        self._start_janitor()
        task = self._pass_task
        if task is not None and not task.done():
            try:
                await self._await_pass(task, cancellation)
            except SearchCancelled:
                if cancellation is not None and cancellation.is_cancelled:
                    raise
        self._ensure_open()
        task = self._pass_task
        if task is None or task.done():
            self.store.clear()
            self._ready = False
            task = self._start_pass()
        await self._await_pass(task, cancellation)
        return self.indexer.last_report

    def status(self) -> IndexStatus:
        if self._disposed:
            state = "disposed"
        elif self._pass_task is not None and not self._pass_task.done():
            state = "indexing"
        elif self._ready:
            state = "ready"
        elif self.indexer.last_report is not None:
            state = "stale"
        else:
            state = "not_indexed"
        return IndexStatus(
            state=state,
            indexed_files=self.store.size(),
            last_report=self.indexer.last_report,
        )

    # --- Search ---

    def _resolve_document(self, document: Union[TextDocument, str]) -> TextDocument:
        if isinstance(document, TextDocument):
            return document
        if self.documents is None:
            raise SearchFailure(f"No document provider to open {document}", identity=document)
        try:
            return self.documents.open_document(document)
        except (OSError, UnicodeError) as e:
            raise SearchFailure(f"Failed to open {document}: {e}", identity=document) from e

    async def search(
        self,
        query: str,
        cancellation: Optional[CancellationToken] = None,
        options: Optional[SearchOptions] = None,
    ) -> List[SearchMatch]:
        self._ensure_open()
        options = options or SearchOptions()
        if not prepare_query(query, self.query_engine.min_query_length):
            return []

        state = self._state
        case_sensitive = state.case_sensitive if options.case_sensitive is None else bool(options.case_sensitive)
        if options.exclude_patterns is None:
            excludes = state.active_exclude_patterns
        else:
            excludes = tuple(options.exclude_patterns)

        token = CancellationToken.linked(cancellation, self._lifetime)
        started = time.perf_counter()
        try:
            if options.current_file_only and options.current_file_document is not None:
                document = self._resolve_document(options.current_file_document)
                matches = await self.query_engine.search_document(document, query, case_sensitive, token)
                scope = "document"
            else:
                await self.wait_for_ready(token)
                matches = await self.query_engine.search_index(
                    query,
                    case_sensitive,
                    token,
                    exclude_patterns=excludes,
                    relative_path=self.lister.relative_path,
                )
                scope = "index"
        except SearchCancelled:
            logger.debug("search_cancelled", state_version=state.version)
            raise
        except EasySearchError:
            raise
        except Exception as e:
            logger.error("search_failed", error=str(e))
            raise SearchFailure(f"Search failed: {e}") from e
        finally:
            token.release()

        logger.debug(
            "search_done",
            scope=scope,
            matches=len(matches),
            case_sensitive=case_sensitive,
            duration_ms=int((time.perf_counter() - started) * 1000),
        )
        return matches

    def dispose(self) -> None:
        """Cancel outstanding work, stop the janitor and drop all indexed content."""
        if self._disposed:
            return
        self._disposed = True
        self._lifetime.cancel()
        self.janitor.dispose()
        self.store.clear()
        self._progress_handler = None
        self._ready = False
        logger.info("engine_disposed")

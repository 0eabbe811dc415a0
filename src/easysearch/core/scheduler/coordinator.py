from typing import List, Optional, Sequence

from easysearch.core.cancellation import CancellationToken
from easysearch.core.engine import SearchEngine
from easysearch.core.errors import SearchCancelled, SearchFailure
from easysearch.core.models import ExcludeSettings, SearchOptions, SearchResponse
from easysearch.core.settings_store import SearchHistory
from easysearch.core.utils.logging import get_logger


class RequestCoordinator:
    """
    Latest-request-wins front for a SearchEngine.

    Every ``search`` mints a new request id and cancels the previous in-flight
    request instead of waiting for it. Only the latest id is ever answered:
    superseded calls return ``None`` whatever their outcome.
    """

    def __init__(self, engine: SearchEngine, history: Optional[SearchHistory] = None):
        self.engine = engine
        self.history_store = history
        self.logger = get_logger("easysearch.coordinator")
        self._last_request_id = 0
        self._inflight: Optional[CancellationToken] = None

    @property
    def last_request_id(self) -> int:
        return self._last_request_id

    def _is_latest(self, request_id: int) -> bool:
        return request_id == self._last_request_id

    async def search(self, query: str, options: Optional[SearchOptions] = None) -> Optional[SearchResponse]:
        previous = self._inflight
        if previous is not None:
            previous.cancel()

        self._last_request_id += 1
        request_id = self._last_request_id
        token = CancellationToken()
        self._inflight = token
        try:
            matches = await self.engine.search(query, token, options)
        except SearchCancelled:
            self.logger.debug("request_cancelled", request_id=request_id, latest=self._last_request_id)
            return None
        except SearchFailure as e:
            if not self._is_latest(request_id):
                self.logger.debug("stale_failure_discarded", request_id=request_id, error=str(e))
                return None
            raise
        finally:
            if self._inflight is token:
                self._inflight = None

        if not self._is_latest(request_id):
            self.logger.debug("stale_result_discarded", request_id=request_id, matches=len(matches))
            return None
        return SearchResponse(request_id=request_id, query=query, matches=matches)

    def cancel(self) -> None:
        """Abort the in-flight request, if any."""
        if self._inflight is not None:
            self._inflight.cancel()

    # --- Settings pass-through (never re-run the search) ---

    def get_case_sensitive(self) -> bool:
        return self.engine.get_case_sensitive()

    def set_case_sensitive(self, case_sensitive: bool) -> None:
        self.engine.set_case_sensitive(case_sensitive)

    def get_exclude_patterns(self) -> ExcludeSettings:
        return self.engine.get_exclude_patterns()

    def set_exclude_patterns(self, patterns: Sequence[str], enabled: bool) -> None:
        self.engine.set_exclude_patterns(patterns, enabled)

    # --- History ---

    def commit_history(self, query: str) -> List[str]:
        if self.history_store is None:
            return []
        return self.history_store.add(query)

    def history(self) -> List[str]:
        if self.history_store is None:
            return []
        return self.history_store.load()

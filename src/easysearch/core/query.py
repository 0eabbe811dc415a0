import asyncio
from collections.abc import Callable
from typing import Iterable, List, Optional

from easysearch.core.cancellation import CancellationToken
from easysearch.core.index.store import IndexStore
from easysearch.core.models import ColumnRange, IndexedFile, SearchMatch, TextDocument
from easysearch.core.settings import Settings, settings as global_settings
from easysearch.core.utils.logging import get_logger
from easysearch.core.utils.patterns import ExcludeMatcher
from easysearch.core.utils.text import (
    fold_case,
    is_multiline,
    line_starts,
    normalize_newlines,
    offset_to_position,
    split_lines,
)


def prepare_query(query: Optional[str], min_length: int) -> str:
    """Trimmed query, or "" when it is too short to run."""
    q = (query or "").strip()
    if is_multiline(q):
        q = normalize_newlines(q)
    if len(q) < min_length:
        return ""
    return q


def find_in_line(
    identity: str,
    line_no: int,
    line_text: str,
    needle: str,
    case_sensitive: bool,
) -> List[SearchMatch]:
    """All non-overlapping occurrences of ``needle`` in one physical line."""
    hay = line_text if case_sensitive else fold_case(line_text)
    matches: List[SearchMatch] = []
    step = max(1, len(needle))
    at = hay.find(needle)
    while at != -1:
        matches.append(SearchMatch(
            file_identity=identity,
            line_number=line_no,
            column_range=ColumnRange(start=at, end=at + len(needle)),
            line_text=line_text,
            end_line_number=line_no,
        ))
        at = hay.find(needle, at + step)
    return matches


def find_in_buffer(identity: str, content: str, needle: str, case_sensitive: bool) -> List[SearchMatch]:
    """Match a query containing line separators against the whole buffer."""
    text = normalize_newlines(content)
    hay = text if case_sensitive else fold_case(text)
    at = hay.find(needle)
    if at == -1:
        return []
    starts = line_starts(text)
    lines = split_lines(text)
    step = max(1, len(needle))
    matches: List[SearchMatch] = []
    while at != -1:
        line, col = offset_to_position(starts, at)
        end_line, end_col = offset_to_position(starts, at + len(needle))
        first = lines[line]
        end = len(first) if end_line > line else end_col
        matches.append(SearchMatch(
            file_identity=identity,
            line_number=line + 1,
            column_range=ColumnRange(start=col, end=end),
            line_text=first,
            end_line_number=end_line + 1,
        ))
        at = hay.find(needle, at + step)
    return matches


class QueryEngine:
    """
    Literal substring search over an IndexStore or a single document.

    Queries are never interpreted as patterns. Results keep file enumeration
    order, then ascending line/column within a file.
    """

    def __init__(self, store: IndexStore, cfg: Optional[Settings] = None):
        self.store = store
        self.settings = cfg or global_settings
        self.min_query_length = int(self.settings.MIN_QUERY_LENGTH)
        self.yield_every = max(1, int(self.settings.SEARCH_YIELD_EVERY))
        self.document_yield_every = max(1, int(self.settings.DOCUMENT_YIELD_EVERY_LINES))
        self.logger = get_logger("easysearch.query")

    async def search_index(
        self,
        query: str,
        case_sensitive: bool,
        cancellation: Optional[CancellationToken] = None,
        exclude_patterns: Iterable[str] = (),
        relative_path: Optional[Callable[[str], str]] = None,
    ) -> List[SearchMatch]:
        q = prepare_query(query, self.min_query_length)
        if not q:
            return []
        needle = q if case_sensitive else fold_case(q)
        multiline = is_multiline(needle)
        excludes = ExcludeMatcher(exclude_patterns)

        results: List[SearchMatch] = []
        scanned = 0
        for entry in self.store.all_entries():
            if cancellation is not None:
                cancellation.raise_if_cancelled()
            scanned += 1
            if excludes:
                path = relative_path(entry.identity) if relative_path else entry.identity
                if excludes.matches(path):
                    continue
            results.extend(self._search_entry(entry, needle, case_sensitive, multiline))
            if scanned % self.yield_every == 0:
                await asyncio.sleep(0)

        if cancellation is not None:
            cancellation.raise_if_cancelled()
        self.logger.debug("index_search_done", files=scanned, matches=len(results), multiline=multiline)
        return results

    def _search_entry(self, entry: IndexedFile, needle: str, case_sensitive: bool, multiline: bool) -> List[SearchMatch]:
        if multiline:
            return find_in_buffer(entry.identity, entry.content, needle, case_sensitive)
        # Cheap reject before splitting into lines.
        hay = entry.content if case_sensitive else fold_case(entry.content)
        if needle not in hay:
            return []
        matches: List[SearchMatch] = []
        for idx, line_text in enumerate(split_lines(entry.content), start=1):
            matches.extend(find_in_line(entry.identity, idx, line_text, needle, case_sensitive))
        return matches

    async def search_document(
        self,
        document: TextDocument,
        query: str,
        case_sensitive: bool,
        cancellation: Optional[CancellationToken] = None,
    ) -> List[SearchMatch]:
        q = prepare_query(query, self.min_query_length)
        if not q:
            return []
        needle = q if case_sensitive else fold_case(q)

        if is_multiline(needle):
            if cancellation is not None:
                cancellation.raise_if_cancelled()
            return find_in_buffer(document.identity, document.text, needle, case_sensitive)

        results: List[SearchMatch] = []
        for idx, line_text in enumerate(split_lines(document.text), start=1):
            if cancellation is not None:
                cancellation.raise_if_cancelled()
            results.extend(find_in_line(document.identity, idx, line_text, needle, case_sensitive))
            if idx % self.document_yield_every == 0:
                await asyncio.sleep(0)
        return results

import threading
from typing import Dict, Iterable, Iterator, Optional, Tuple

from easysearch.core.constants import MAX_INDEXED_FILES
from easysearch.core.models import IndexedFile, PutOutcome


class _EntriesView:
    """Restartable view: every iteration walks a fresh snapshot of the store."""

    def __init__(self, store: "IndexStore"):
        self._store = store

    def __iter__(self) -> Iterator[IndexedFile]:
        return iter(self._store._snapshot())

    def __len__(self) -> int:
        return self._store.size()


class IndexStore:
    """
    Bounded in-memory mapping from file identity to ``IndexedFile``.

    Entries are immutable and always replaced whole, under a lock, so a reader
    sees either the previous entry or the new one. Iteration order follows
    first insertion (replacing an entry keeps its position).
    """

    def __init__(self, capacity: int = MAX_INDEXED_FILES):
        self.capacity = max(0, int(capacity))
        self._lock = threading.Lock()
        self._entries: Dict[str, IndexedFile] = {}

    def put(self, identity: str, file: IndexedFile) -> PutOutcome:
        with self._lock:
            if identity in self._entries:
                self._entries[identity] = file
                return PutOutcome.REPLACED
            if len(self._entries) >= self.capacity:
                return PutOutcome.CAPACITY_EXCEEDED
            self._entries[identity] = file
            return PutOutcome.INSERTED

    def get(self, identity: str) -> Optional[IndexedFile]:
        return self._entries.get(identity)

    def remove(self, identity: str) -> Optional[IndexedFile]:
        with self._lock:
            return self._entries.pop(identity, None)

    def evict(self, entries: Iterable[IndexedFile]) -> int:
        """Remove entries only if the store still holds that exact object."""
        removed = 0
        with self._lock:
            for entry in entries:
                if self._entries.get(entry.identity) is entry:
                    del self._entries[entry.identity]
                    removed += 1
        return removed

    def all_entries(self) -> _EntriesView:
        return _EntriesView(self)

    def _snapshot(self) -> Tuple[IndexedFile, ...]:
        with self._lock:
            return tuple(self._entries.values())

    def contains(self, identity: str) -> bool:
        return identity in self._entries

    def __contains__(self, identity: object) -> bool:
        return identity in self._entries

    def is_full(self) -> bool:
        return len(self._entries) >= self.capacity

    def size(self) -> int:
        return len(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

import json
import os
import time
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Union, runtime_checkable

from filelock import FileLock

from easysearch.core.constants import HISTORY_LIMIT, KEY_HISTORY
from easysearch.core.utils.logging import get_logger

logger = get_logger("easysearch.settings_store")


@runtime_checkable
class KeyValueStore(Protocol):
    def get(self, key: str, default: Any = None) -> Any: ...
    def update(self, key: str, value: Any) -> None: ...


class MemoryStore:
    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._data: Dict[str, Any] = dict(initial or {})

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def update(self, key: str, value: Any) -> None:
        if value is None:
            self._data.pop(key, None)
        else:
            self._data[key] = value


class JsonFileStore:
    """
    Key-value store persisted as a single JSON object on disk.

    Every update re-reads the file under a ``FileLock`` and rewrites it
    atomically, so several processes sharing one state file do not lose each
    other's keys.
    """

    def __init__(self, path: Union[str, Path], lock_timeout: float = 10.0):
        self.path = Path(path)
        self.lock_timeout = lock_timeout
        self._lock: Optional[FileLock] = None
        self._data: Dict[str, Any] = self._load_unlocked()

    def _ensure_lock(self) -> FileLock:
        if self._lock is None:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._lock = FileLock(str(self.path.with_suffix(self.path.suffix + ".lock")), timeout=self.lock_timeout)
        return self._lock

    def _load_unlocked(self) -> Dict[str, Any]:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as e:
            logger.warning("state_load_failed", path=str(self.path), error=str(e))
            return {}
        if not isinstance(data, dict):
            return {}
        return data

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def update(self, key: str, value: Any) -> None:
        with self._ensure_lock():
            data = self._load_unlocked()
            if value is None:
                data.pop(key, None)
            else:
                data[key] = value
            self._atomic_write(data)
            self._data = data

    def _atomic_write(self, data: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.parent / f"{self.path.name}.tmp.{os.getpid()}.{int(time.time() * 1000)}"
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.path)
        except Exception:
            try:
                if tmp_path.exists():
                    tmp_path.unlink()
            except OSError:
                pass
            raise


class SearchHistory:
    """Most-recent-first query history, de-duplicated by exact text."""

    def __init__(self, store: KeyValueStore, key: str = KEY_HISTORY, limit: int = HISTORY_LIMIT):
        self.store = store
        self.key = key
        self.limit = max(1, int(limit))

    def load(self) -> List[str]:
        raw = self.store.get(self.key, [])
        if not isinstance(raw, list):
            return []
        return [str(x) for x in raw if isinstance(x, str)][:self.limit]

    def add(self, query: str) -> List[str]:
        q = (query or "").strip()
        if not q:
            return self.load()
        history = [q] + [x for x in self.load() if x != q]
        history = history[:self.limit]
        self.store.update(self.key, history)
        return history

    def clear(self) -> None:
        self.store.update(self.key, [])

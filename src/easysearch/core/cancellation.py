import asyncio
import threading
from collections.abc import Callable
from typing import List, Optional, Tuple

from easysearch.core.errors import SearchCancelled
from easysearch.core.utils.logging import get_logger

logger = get_logger("easysearch.cancellation")


class CancellationToken:
    """
    Cooperative cancellation flag passed into every long-running call.

    Loops poll ``is_cancelled`` / ``raise_if_cancelled`` at their checkpoints.
    ``linked`` builds a child token that follows its parents; call
    ``release`` on the child once the guarded operation is over so parents
    do not accumulate callbacks.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._event = threading.Event()
        self._callbacks: List[Callable[[], None]] = []
        self._links: List[Tuple["CancellationToken", Callable[[], None]]] = []

    @classmethod
    def linked(cls, *parents: Optional["CancellationToken"]) -> "CancellationToken":
        child = cls()
        for parent in parents:
            if parent is None:
                continue
            cb = child.cancel
            parent.add_callback(cb)
            child._links.append((parent, cb))
        return child

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        with self._lock:
            if self._event.is_set():
                return
            self._event.set()
            callbacks = list(self._callbacks)
            self._callbacks.clear()
        for cb in callbacks:
            try:
                cb()
            except Exception as e:
                logger.warning("cancel_callback_failed", error=str(e))

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise SearchCancelled()

    def add_callback(self, cb: Callable[[], None]) -> None:
        with self._lock:
            if not self._event.is_set():
                self._callbacks.append(cb)
                return
        cb()

    def remove_callback(self, cb: Callable[[], None]) -> None:
        with self._lock:
            try:
                self._callbacks.remove(cb)
            except ValueError:
                pass

    def release(self) -> None:
        links = self._links
        self._links = []
        for parent, cb in links:
            parent.remove_callback(cb)

    async def wait(self) -> None:
        if self.is_cancelled:
            return
        loop = asyncio.get_running_loop()
        fut: asyncio.Future = loop.create_future()

        def _resolve() -> None:
            if not fut.done():
                fut.set_result(None)

        def _wake() -> None:
            if not loop.is_closed():
                loop.call_soon_threadsafe(_resolve)

        self.add_callback(_wake)
        try:
            await fut
        finally:
            self.remove_callback(_wake)

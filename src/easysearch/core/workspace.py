"""
Collaborator interfaces the engine depends on, plus a local file-system
implementation of all of them.

The engine only ever talks to the protocols; hosts that have their own file
enumeration or open-document buffers provide their own implementations.
"""

import os
from pathlib import Path
from typing import Iterable, Iterator, Optional, Protocol, Set, Union, runtime_checkable

from easysearch.core.models import TextDocument
from easysearch.core.settings import Settings, settings as global_settings
from easysearch.core.utils.logging import get_logger

logger = get_logger("easysearch.workspace")


@runtime_checkable
class FileLister(Protocol):
    def list_files(self) -> Iterable[str]: ...
    def relative_path(self, identity: str) -> str: ...


@runtime_checkable
class FileReader(Protocol):
    def file_size(self, identity: str) -> int: ...
    def read_bytes(self, identity: str) -> bytes: ...


@runtime_checkable
class DocumentProvider(Protocol):
    def open_document(self, identity: str) -> TextDocument: ...


def normalize_path(path: Union[str, Path]) -> str:
    return os.path.abspath(os.path.expanduser(str(path))).replace("\\", "/")


class LocalWorkspace:
    """Lists, reads and opens files below a single root directory."""

    def __init__(self, root: Union[str, Path], cfg: Optional[Settings] = None):
        cfg = cfg or global_settings
        self.root = normalize_path(root)
        self.max_depth = cfg.MAX_DEPTH
        self.follow_symlinks = cfg.FOLLOW_SYMLINKS

    def list_files(self) -> Iterator[str]:
        yield from self._scan_recursive(Path(self.root), depth=0, visited=set())

    def _scan_recursive(self, current_dir: Path, depth: int, visited: Set[str]) -> Iterator[str]:
        if depth > self.max_depth:
            return

        # Cycle detection for symlinks (Directories)
        if self.follow_symlinks:
            try:
                real_path = str(current_dir.resolve())
            except OSError:
                return
            if real_path in visited:
                return
            visited.add(real_path)

        try:
            entries = sorted(os.scandir(current_dir), key=lambda e: e.name)
        except OSError as e:
            logger.debug("scandir_failed", path=str(current_dir), error=str(e))
            return

        files = []
        dirs = []
        for entry in entries:
            try:
                if entry.is_dir(follow_symlinks=self.follow_symlinks):
                    dirs.append(entry)
                elif entry.is_file(follow_symlinks=self.follow_symlinks):
                    files.append(entry)
            except OSError:
                continue

        for entry in files:
            yield entry.path.replace("\\", "/")
        for entry in dirs:
            yield from self._scan_recursive(Path(entry.path), depth + 1, visited)

    def relative_path(self, identity: str) -> str:
        path = normalize_path(identity)
        if path == self.root:
            return "."
        if path.startswith(self.root.rstrip("/") + "/"):
            return path[len(self.root.rstrip("/")) + 1:]
        return path

    def file_size(self, identity: str) -> int:
        return os.stat(identity).st_size

    def read_bytes(self, identity: str) -> bytes:
        with open(identity, "rb") as f:
            return f.read()

    def open_document(self, identity: str) -> TextDocument:
        with open(identity, "r", encoding="utf-8", errors="replace", newline="") as f:
            return TextDocument(identity=normalize_path(identity), text=f.read())

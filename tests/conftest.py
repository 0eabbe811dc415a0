import os
from typing import Dict, List, Optional

import pytest
import pytest_asyncio

from easysearch.core.engine import SearchEngine
from easysearch.core.models import TextDocument
from easysearch.core.settings import Settings
from easysearch.core.settings_store import MemoryStore


class InMemorySource:
    """FileLister/FileReader/DocumentProvider over a dict of relative path -> content."""

    def __init__(self, files: Optional[Dict[str, object]] = None, root: str = "/ws"):
        self.root = root
        self.files: Dict[str, bytes] = {}
        self.unreadable: set = set()
        self.reads: List[str] = []
        for rel, content in (files or {}).items():
            self.add(rel, content)

    def identity(self, rel: str) -> str:
        return f"{self.root}/{rel}"

    def add(self, rel: str, content) -> str:
        data = content.encode("utf-8") if isinstance(content, str) else bytes(content)
        ident = self.identity(rel)
        self.files[ident] = data
        return ident

    def list_files(self):
        return list(self.files.keys())

    def relative_path(self, identity: str) -> str:
        prefix = self.root + "/"
        return identity[len(prefix):] if identity.startswith(prefix) else identity

    def file_size(self, identity: str) -> int:
        if identity not in self.files:
            raise FileNotFoundError(identity)
        return len(self.files[identity])

    def read_bytes(self, identity: str) -> bytes:
        self.reads.append(identity)
        if identity in self.unreadable:
            raise PermissionError(f"Permission denied: {identity}")
        return self.files[identity]

    def open_document(self, identity: str) -> TextDocument:
        if identity not in self.files:
            raise FileNotFoundError(identity)
        return TextDocument(identity=identity, text=self.files[identity].decode("utf-8", errors="replace"))


def make_settings(**overrides) -> Settings:
    values = dict(
        LOG_JSON=False,
        DEFAULT_EXCLUDE_PATTERNS=["node_modules", ".git"],
        JANITOR_INTERVAL_SEC=3600.0,
    )
    values.update(overrides)
    return Settings(**values)


@pytest.fixture(autouse=True)
def easysearch_env(monkeypatch, tmp_path):
    monkeypatch.setenv("EASYSEARCH_LOG_JSON", "0")
    monkeypatch.setenv("EASYSEARCH_STATE_PATH", str(tmp_path / f"state_{os.getpid()}.json"))


@pytest.fixture
def source():
    return InMemorySource()


@pytest.fixture
def state_store():
    return MemoryStore()


@pytest_asyncio.fixture
async def make_engine(state_store):
    """Factory building engines over an InMemorySource; disposes them on teardown."""
    created: List[SearchEngine] = []

    def _make(files=None, src: Optional[InMemorySource] = None, store=None, clock=None, **overrides) -> SearchEngine:
        src = src if src is not None else InMemorySource(files)
        engine = SearchEngine(
            src,
            state_store=state_store if store is None else store,
            cfg=make_settings(**overrides),
            **({"clock": clock} if clock is not None else {}),
        )
        created.append(engine)
        return engine

    yield _make

    for engine in created:
        engine.dispose()

from .indexer import FileIndexer
from .janitor import MemoryJanitor
from .store import IndexStore

__all__ = ["FileIndexer", "IndexStore", "MemoryJanitor"]

from .cancellation import CancellationToken
from .engine import SearchEngine
from .errors import EasySearchError, IndexingPartialFailure, SearchCancelled, SearchFailure
from .models import SearchMatch, SearchOptions, SearchResponse, TextDocument
from .scheduler.coordinator import RequestCoordinator
from .settings import settings
from .workspace import LocalWorkspace

__all__ = [
    "CancellationToken",
    "EasySearchError",
    "IndexingPartialFailure",
    "LocalWorkspace",
    "RequestCoordinator",
    "SearchCancelled",
    "SearchEngine",
    "SearchFailure",
    "SearchMatch",
    "SearchOptions",
    "SearchResponse",
    "TextDocument",
    "settings",
]

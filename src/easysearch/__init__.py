from easysearch.version import __version__
from easysearch.core import (
    CancellationToken,
    RequestCoordinator,
    SearchCancelled,
    SearchEngine,
    SearchFailure,
    SearchMatch,
    SearchOptions,
    TextDocument,
)

__all__ = [
    "__version__",
    "CancellationToken",
    "RequestCoordinator",
    "SearchCancelled",
    "SearchEngine",
    "SearchFailure",
    "SearchMatch",
    "SearchOptions",
    "TextDocument",
]

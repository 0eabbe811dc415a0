"""
Error taxonomy for the search engine.

Only ``SearchCancelled`` and ``SearchFailure`` ever cross the engine boundary.
``IndexingPartialFailure`` is raised and recovered inside an index pass, and
capacity/size rejections are silent skips reported through ``PutOutcome`` and
``IndexingReport`` counters.
"""


class EasySearchError(Exception):
    """Base class for easysearch errors."""


class SearchCancelled(EasySearchError):
    """The operation was superseded or explicitly aborted."""

    def __init__(self, message: str = "Search cancelled"):
        super().__init__(message)


class SearchFailure(EasySearchError):
    """An unexpected fault prevented a result for the current request."""

    def __init__(self, message: str, *, identity: str = ""):
        super().__init__(message)
        self.identity = identity


class IndexingPartialFailure(EasySearchError):
    """A single file could not be read during an index pass."""

    def __init__(self, identity: str, reason: str):
        super().__init__(f"{identity}: {reason}")
        self.identity = identity
        self.reason = reason

from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field


class PutOutcome(str, Enum):
    INSERTED = "inserted"
    REPLACED = "replaced"
    CAPACITY_EXCEEDED = "capacity_exceeded"


class IndexedFile(BaseModel):
    """One indexed file. Content is kept as a single buffer."""
    model_config = ConfigDict(frozen=True)
    identity: str
    content: str
    size_bytes: int
    indexed_at: float


class TextDocument(BaseModel):
    model_config = ConfigDict(frozen=True)
    identity: str
    text: str


class ColumnRange(BaseModel):
    model_config = ConfigDict(frozen=True)
    start: int
    end: int


class SearchMatch(BaseModel):
    model_config = ConfigDict(frozen=True)
    file_identity: str
    line_number: int
    column_range: ColumnRange
    line_text: str
    end_line_number: int = 0

    def to_result_dict(self) -> Dict[str, Any]:
        return {
            "file": self.file_identity,
            "line": self.line_number,
            "start": self.column_range.start,
            "end": self.column_range.end,
            "end_line": self.end_line_number or self.line_number,
            "text": self.line_text,
        }


class ExcludeSettings(BaseModel):
    patterns: List[str] = Field(default_factory=list)
    enabled: bool = True


class SearchState(BaseModel):
    """Versioned, immutable snapshot of the per-engine search configuration."""
    model_config = ConfigDict(frozen=True)
    case_sensitive: bool = False
    exclude_patterns: Tuple[str, ...] = ()
    exclude_enabled: bool = True
    version: int = 0

    @property
    def active_exclude_patterns(self) -> Tuple[str, ...]:
        return self.exclude_patterns if self.exclude_enabled else ()


class SearchOptions(BaseModel):
    model_config = ConfigDict(frozen=True)
    case_sensitive: Optional[bool] = None
    exclude_patterns: Optional[List[str]] = None
    current_file_only: Optional[bool] = None
    current_file_document: Optional[Union[TextDocument, str]] = None


class FileFailure(BaseModel):
    model_config = ConfigDict(frozen=True)
    identity: str
    reason: str


class IndexingReport(BaseModel):
    total_candidates: int = 0
    processed: int = 0
    indexed: int = 0
    skipped_excluded: int = 0
    skipped_too_large: int = 0
    skipped_binary: int = 0
    skipped_capacity: int = 0
    failures: List[FileFailure] = Field(default_factory=list)
    cancelled: bool = False
    duration_ms: int = 0


class SweepReport(BaseModel):
    model_config = ConfigDict(frozen=True)
    evicted_stale: int = 0
    evicted_over_capacity: int = 0
    remaining: int = 0
    rss_mb: Optional[float] = None

    @property
    def evicted(self) -> int:
        return self.evicted_stale + self.evicted_over_capacity


class IndexStatus(BaseModel):
    model_config = ConfigDict(frozen=True)
    state: str
    indexed_files: int = 0
    last_report: Optional[IndexingReport] = None


class SearchResponse(BaseModel):
    model_config = ConfigDict(frozen=True)
    request_id: int
    query: str
    matches: List[SearchMatch] = Field(default_factory=list)

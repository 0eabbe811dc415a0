from pathlib import Path
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from easysearch.version import __version__
from easysearch.core import constants as C


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="EASYSEARCH_",
        case_sensitive=True,
        extra="ignore"
    )

    VERSION: str = __version__
    STATE_PATH: str = str(Path.home() / ".local" / "share" / "easysearch" / "state.json")
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = True

    # --- INDEX LIMITS ---
    MAX_FILE_SIZE: int = C.MAX_FILE_SIZE
    MAX_INDEXED_FILES: int = C.MAX_INDEXED_FILES
    BATCH_SIZE: int = C.INDEX_BATCH_SIZE
    MAX_DEPTH: int = 20
    FOLLOW_SYMLINKS: bool = False
    DEFAULT_EXCLUDE_PATTERNS: List[str] = Field(default_factory=lambda: list(C.DEFAULT_EXCLUDE_PATTERNS))

    # --- QUERY ---
    MIN_QUERY_LENGTH: int = C.MIN_QUERY_LENGTH
    SEARCH_YIELD_EVERY: int = C.SEARCH_YIELD_EVERY
    DOCUMENT_YIELD_EVERY_LINES: int = C.DOCUMENT_YIELD_EVERY_LINES

    # --- MEMORY JANITOR ---
    JANITOR_INTERVAL_SEC: float = C.JANITOR_INTERVAL_SEC
    STALE_AFTER_SEC: float = C.STALE_AFTER_SEC
    SOFT_TARGET_FILES: int = C.SOFT_TARGET_FILES

    # --- HISTORY ---
    HISTORY_LIMIT: int = C.HISTORY_LIMIT


settings = Settings()

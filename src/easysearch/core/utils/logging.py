import logging
import sys
from typing import Optional

import structlog

from easysearch.core.settings import Settings, settings as global_settings

ROOT_LOGGER = "easysearch"


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


class _StderrHandler(logging.StreamHandler):
    """Writes to whatever ``sys.stderr`` is at emit time."""

    def __init__(self, level: int = logging.NOTSET):
        logging.Handler.__init__(self, level)

    @property
    def stream(self):
        return sys.stderr


def _install_handler(level: int) -> None:
    """Route the ``easysearch`` stdlib namespace to stderr without touching the root logger."""
    base = logging.getLogger(ROOT_LOGGER)
    for handler in list(base.handlers):
        if isinstance(handler, _StderrHandler):
            base.removeHandler(handler)
    handler = _StderrHandler()
    handler.setFormatter(logging.Formatter("%(message)s"))
    base.addHandler(handler)
    base.setLevel(level)
    base.propagate = False


def configure_logging(cfg: Optional[Settings] = None) -> None:
    """
    Configure structlog on top of the ``easysearch`` stdlib logger.

    Safe to call repeatedly; each call replaces the handler installed by the
    previous one. Host applications keep control of their own root logger.
    """
    cfg = cfg or global_settings
    level = getattr(logging, str(cfg.LOG_LEVEL or "INFO").upper(), logging.INFO)
    _install_handler(level)

    renderer = structlog.processors.JSONRenderer() if cfg.LOG_JSON else structlog.dev.ConsoleRenderer(colors=False)
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

import logging

from conftest import make_settings
from easysearch.core.utils.logging import _StderrHandler, configure_logging


def test_configure_logging_scopes_level_to_package_namespace():
    root_level = logging.getLogger().level
    configure_logging(make_settings(LOG_LEVEL="DEBUG"))

    base = logging.getLogger("easysearch")
    assert base.level == logging.DEBUG
    assert base.propagate is False
    assert logging.getLogger("easysearch.engine").isEnabledFor(logging.DEBUG)
    assert logging.getLogger().level == root_level


def test_configure_logging_replaces_its_own_handler():
    configure_logging(make_settings(LOG_LEVEL="INFO"))
    configure_logging(make_settings(LOG_LEVEL="WARNING"))

    base = logging.getLogger("easysearch")
    ours = [h for h in base.handlers if isinstance(h, _StderrHandler)]
    assert len(ours) == 1
    assert base.level == logging.WARNING

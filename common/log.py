"""Shared logging utilities for the blog server."""

import logging
from collections.abc import Iterable

import common.settings

LOG_FORMAT = '%(levelname)s:     %(name)s - %(message)s'
QUIET_PATH_PREFIXES = ('/health', '/static/')


class QuietPathFilter(logging.Filter):
    """Drop uvicorn access log entries for health probes and static assets.

    uvicorn passes the request path as the third access log argument.
    """

    def __init__(self, prefixes: Iterable[str] = QUIET_PATH_PREFIXES) -> None:
        super().__init__()
        self.prefixes = tuple(prefixes)

    def filter(self, record: logging.LogRecord) -> bool:
        """Return False for requests under a quiet path prefix."""
        args = record.args
        if not isinstance(args, tuple) or len(args) < 3:
            return True
        return not str(args[2]).startswith(self.prefixes)


def configure_logging(level: str | int | None = None) -> None:
    """Configure application and uvicorn access logging.

    Quietens health and static asset entries in the access log and sends the
    ``blog`` logger to stderr at ``level``, defaulting to ``LOG_LEVEL`` from
    settings.
    """
    access = logging.getLogger('uvicorn.access')
    if not any(isinstance(f, QuietPathFilter) for f in access.filters):
        access.addFilter(QuietPathFilter())
    logger = logging.getLogger('blog')
    logger.setLevel(level or common.settings.LOG_LEVEL)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)

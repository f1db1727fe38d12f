"""
Centralized logging setup.

Scripts and the server call `setup_logging` once; modules only do
`logging.getLogger(__name__)`.

Logs go to stderr: the MCP stdio transport owns stdout.
"""

import logging
import sys
from typing import Final


_LOG_FORMAT: Final[str] = (
    "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
)

# Request-level chatter; also the loggers most likely to echo headers.
_QUIET_LOGGERS: Final[tuple[str, ...]] = (
    "httpx",
    "httpcore",
    "google.auth",
    "urllib3",
)


def setup_logging(level: str) -> None:
    """
    Configure root logging on stderr.

    Args:
        level: e.g. "DEBUG", "INFO", "WARNING"; unknown names fall back to INFO
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    logging.basicConfig(
        level=numeric_level,
        format=_LOG_FORMAT,
        stream=sys.stderr,
    )

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

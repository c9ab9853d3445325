"""Process-wide logging setup.

Modules obtain loggers with ``logging.getLogger(__name__)``; this module only
configures the root handler once at application start.
"""

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Configure the root logger with a timestamped format.

    Args:
        level: Log level name such as "DEBUG" or "INFO". Unknown names fall
            back to INFO.
    """
    resolved = logging.getLevelName(level.upper())
    if not isinstance(resolved, int):
        resolved = logging.INFO
    logging.basicConfig(level=resolved, format=LOG_FORMAT)
    logging.getLogger(__name__).debug("Logging configured at %s", level)

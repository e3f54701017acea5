"""
Application-wide logging setup.

Console logging with a uniform `timestamp | level | module | message` format.
Call `configure_logging()` once at startup; modules then use
`logging.getLogger(__name__)`.
"""

import logging

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
    )
    logging.getLogger(__name__).info("Logging initialized with level %s", level)

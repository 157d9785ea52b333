"""structlog configuration for command-line use.

Library modules only call structlog.get_logger(); configuring output is left
to the application. The CLI calls configure_logging() once at startup.
"""

from __future__ import annotations

import logging
import sys

import structlog


def configure_logging(verbose: bool = False) -> None:
    """Render log events to stderr, filtered by level.

    Args:
        verbose: If True, show debug events; otherwise warnings and above.
    """
    level = logging.DEBUG if verbose else logging.WARNING
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="%H:%M:%S"),
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )

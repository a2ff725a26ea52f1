"""structlog configuration shared by the API server and the scrape runner."""

import logging
import sys
from typing import TextIO

import structlog


def configure_logging(debug: bool = False, stream: TextIO = sys.stderr) -> None:
    """Configure structlog to render human-readable lines to ``stream``.

    The scrape runner must keep stdout free for the event stream, so the
    default target is stderr.
    """
    level = logging.DEBUG if debug else logging.INFO

    logging.basicConfig(
        level=level,
        stream=stream,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="%H:%M:%S"),
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=stream),
        cache_logger_on_first_use=False,
    )

"""
Structured Logging Setup

Every module logs through structlog; events are rendered as JSON lines via
the standard library's logging machinery, so the host application decides
where they end up.
"""

import logging

import structlog


def configure_logging(debug: bool = False) -> None:
    """
    Configure structlog for the engine.

    Safe to call more than once.
    """
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer()
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    if debug:
        logging.getLogger("nixbucks").setLevel(logging.DEBUG)

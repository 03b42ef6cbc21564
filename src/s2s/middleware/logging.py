"""One log pipeline for structlog services and stdlib gamification loggers.

Service modules log through structlog; the gamification core uses plain
``logging.getLogger(__name__)``. Both end in the same root handler, so an
achievement unlock and the request that caused it share a format and the
request-id context.
"""

import logging
import sys

import structlog

from s2s.config import Settings

# Per-request AI calls would otherwise log every chat-completion URL at INFO.
QUIET_LOGGERS = ("httpx", "httpcore")

_SHARED_PROCESSORS: list[structlog.types.Processor] = [
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_log_level,
    structlog.stdlib.add_logger_name,
    structlog.processors.TimeStamper(fmt="iso"),
]


def build_formatter(log_format: str) -> structlog.stdlib.ProcessorFormatter:
    """JSON lines for ``json``; anything else gets the coloured console renderer."""
    if log_format == "json":
        tail: list[structlog.types.Processor] = [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        tail = [structlog.dev.ConsoleRenderer()]
    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=_SHARED_PROCESSORS,
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, *tail],
    )


_handler: logging.Handler | None = None


def setup_logging(settings: Settings) -> logging.Handler:
    """Configure structlog and install the root handler, replacing any earlier one."""
    global _handler  # noqa: PLW0603
    structlog.configure(
        processors=[
            *_SHARED_PROCESSORS,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.UnicodeDecoder(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(build_formatter(settings.log_format))

    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    root = logging.getLogger()
    if _handler is not None:
        root.removeHandler(_handler)
    root.addHandler(handler)
    root.setLevel(level)
    _handler = handler
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
    return handler

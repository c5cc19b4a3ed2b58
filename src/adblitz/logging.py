"""Logging configuration for AdBlitz.

Provider drivers and the job runner log through stdlib ``logging`` with
dotted event names and ``extra=`` fields; the HTTP layer uses structlog.
Both end up as one JSON line per record. Fields bound with
:func:`batch_context` are attached to every record emitted while a batch
runs, including records from driver tasks spawned inside it.
"""

from __future__ import annotations

import logging
from contextlib import AbstractContextManager

import structlog

HANDLER_NAME = "adblitz"

_SHARED_PROCESSORS = [
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_logger_name,
    structlog.processors.add_log_level,
    structlog.processors.TimeStamper(fmt="iso"),
]


def configure_logging(level: int = logging.INFO) -> None:
    """Render stdlib and structlog records as JSON on stderr.

    Safe to call repeatedly: the handler installed by a previous call is
    replaced rather than duplicated.
    """

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=[*_SHARED_PROCESSORS, structlog.stdlib.ExtraAdder()],
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.JSONRenderer(),
        ],
    )
    handler = logging.StreamHandler()
    handler.set_name(HANDLER_NAME)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    for existing in list(root.handlers):
        if existing.get_name() == HANDLER_NAME:
            root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level)

    structlog.configure(
        processors=[*_SHARED_PROCESSORS, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def batch_context(batch_id: str) -> AbstractContextManager[None]:
    """Bind ``batch_id`` to every log record emitted inside the block."""
    return structlog.contextvars.bound_contextvars(batch_id=batch_id)

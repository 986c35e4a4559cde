"""Structured logging for the facilitator, built on structlog.

Development gets colored console output, every other environment gets one
JSON object per line. Two layers of context are merged into each entry:

    request_id   bound by RequestIDMiddleware for the whole HTTP request
    network, tx_id
                 bound by ``payment_context`` around a settlement, so decoder,
                 chain client and coordinator entries share the same keys

Usage:
    from tron_facilitator.logging_config import get_logger, payment_context

    logger = get_logger(__name__)
    with payment_context(network="tron:27Lqcw", tx_id="ab12..."):
        logger.info("settle.broadcast")
"""

from __future__ import annotations

import logging
import sys
from contextlib import contextmanager
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from collections.abc import Iterator

# httpx logs every TronGrid request at INFO; one settlement polls up to 30 times
QUIET_LOGGERS = ("uvicorn.access", "httpx", "httpcore")


def _processors() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]


def _renderer(json_logs: bool) -> structlog.types.Processor:
    if json_logs:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())


def setup_logging(log_level: str = "DEBUG", json_logs: bool = False) -> None:
    """Route structlog and stdlib logging through one stdout handler.

    Args:
        log_level: Root level name (DEBUG, INFO, ...). Unknown names fall back to DEBUG.
        json_logs: Render JSON lines instead of the console format.
    """
    structlog.configure(
        processors=[*_processors(), structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _renderer(json_logs),
            ],
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.DEBUG))

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


@contextmanager
def payment_context(*, network: str, tx_id: str) -> Iterator[None]:
    """Bind ``network`` and ``tx_id`` to every log entry inside the block.

    Previously bound values (e.g. from an outer settlement) are restored on exit.
    """
    with structlog.contextvars.bound_contextvars(network=network, tx_id=tx_id):
        yield


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)

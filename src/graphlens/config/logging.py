"""Logging setup: structlog layered over the stdlib ``logging`` tree.

All log output goes to stderr; stdout is reserved for command results.
By default lines are console-rendered; ``--log-json`` emits one JSON object
per line instead.

Engine modules log through ``structlog.get_logger(__name__)`` while service
and plugin modules use stdlib ``logging``. A single ``ProcessorFormatter``
renders both, so the two kinds of record come out with the same fields.
:func:`bind_graph_source` tags every following record with the graph file
being processed.
"""

from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from pathlib import Path

LOGGER_NAME = "graphlens"


def _shared_processors(log_json: bool) -> list[structlog.types.Processor]:
    """Processors applied to structlog and stdlib records alike."""
    if log_json:
        stamper = structlog.processors.TimeStamper(fmt="iso", utc=True)
    else:
        stamper = structlog.processors.TimeStamper(fmt="%H:%M:%S", utc=False)

    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        stamper,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]
    if log_json:
        processors.append(structlog.processors.format_exc_info)
    return processors


def _renderer(log_json: bool) -> structlog.types.Processor:
    if log_json:
        return structlog.processors.JSONRenderer(sort_keys=False)
    return structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())


def configure_logging(
    *,
    verbose: bool = False,
    log_json: bool = False,
) -> None:
    """Route structlog and stdlib logging to a single stderr handler.

    Args:
        verbose: Let ``graphlens.*`` loggers emit DEBUG. Otherwise only
            WARNING and above get through. Third-party loggers stay at
            WARNING either way.
        log_json: Render JSON lines instead of console lines.

    Safe to call more than once; the root handler is replaced, not stacked,
    and context bound by a previous run is dropped.
    """
    structlog.contextvars.clear_contextvars()
    shared = _shared_processors(log_json)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *shared,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _renderer(log_json),
            ],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(logging.WARNING)

    logging.getLogger(LOGGER_NAME).setLevel(logging.DEBUG if verbose else logging.WARNING)


def bind_graph_source(path: Path | str) -> None:
    """Attach ``source=<path>`` to every record logged from this context."""
    structlog.contextvars.bind_contextvars(source=str(path))

"""Logging setup for the ``folio`` logger tree.

Library modules log through plain ``logging.getLogger(__name__)``; this
module renders those records with structlog (console or JSON lines) and
optionally mirrors them to a file.  Nothing is configured on import.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Any

import structlog

ROOT_LOGGER = "folio"

# Chatty libraries held at WARNING regardless of the folio level
QUIET_LOGGERS = ("asyncio",)


def _shared_processors() -> list:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="%H:%M:%S", utc=False),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]


def _handlers(level: int, log_file: str | None) -> list[logging.Handler]:
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file is not None:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(str(path), encoding="utf-8"))
    for handler in handlers:
        handler.setLevel(level)
    return handlers


def setup_logging(
    level: str = "INFO",
    log_file: str | None = None,
    log_json: bool = False,
) -> None:
    """(Re)configure the ``folio`` logger.  Safe to call more than once.

    Args:
        level: Level name; unknown names fall back to INFO.
        log_file: Also write to this file, creating parent directories.
        log_json: One JSON object per line instead of console rendering.
    """
    numeric_level = getattr(logging, str(level).upper(), logging.INFO)
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO
    shared = _shared_processors()

    structlog.configure(
        processors=[*shared, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    renderer = (
        structlog.processors.JSONRenderer()
        if log_json
        else structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())
    )
    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared,
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
    )

    root = logging.getLogger(ROOT_LOGGER)
    for old in root.handlers:
        old.close()
    root.handlers.clear()
    for handler in _handlers(numeric_level, log_file):
        handler.setFormatter(formatter)
        root.addHandler(handler)
    root.setLevel(numeric_level)
    root.propagate = False

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def setup_logging_from_config(cfg: Any) -> None:
    """Apply the ``folio.system`` section (``log_level``, ``log_file``, ``log_json``)."""
    system = cfg.folio.system
    setup_logging(
        system.get("log_level", "INFO"),
        log_file=system.get("log_file"),
        log_json=bool(system.get("log_json", False)),
    )

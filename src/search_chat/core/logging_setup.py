from __future__ import annotations

import logging
import os
import sys
from typing import Any, Callable

import structlog


def setup_logging(level: str = "INFO", log_file: str | None = None) -> None:
    """Configure structlog for the client.

    The Textual UI owns the terminal while it runs, so pass `log_file` (or set
    SEARCH_CHAT_LOG_FILE) to keep log lines out of the chat screen. Set
    SEARCH_CHAT_LOG_FORMAT=json for one JSON object per line.
    """
    level = (level or "INFO").upper()
    py_level = getattr(logging, level, logging.INFO)

    if log_file:
        logging.basicConfig(level=py_level, format="%(message)s", filename=log_file, force=True)
    else:
        logging.basicConfig(level=py_level, format="%(message)s", stream=sys.stderr, force=True)

    log_format = (os.getenv("SEARCH_CHAT_LOG_FORMAT") or "human").strip().lower()
    if log_format not in {"human", "json"}:
        log_format = "human"

    processors: list[Callable[[Any, str, dict[str, Any]], Any]] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if log_format == "human":
        processors.append(structlog.dev.ConsoleRenderer(colors=not log_file))
    else:
        processors.append(structlog.processors.JSONRenderer())

    structlog.configure(
        processors=processors,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(py_level),
        cache_logger_on_first_use=True,
    )

    # httpx logs every request at INFO
    for noisy in ["httpx", "httpcore"]:
        logging.getLogger(noisy).setLevel(logging.WARNING)


def get_logger(name: str):
    return structlog.get_logger(name)

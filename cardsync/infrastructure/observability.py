"""Structured Logging — JSON log lines carrying card sync context.

Invariants:
    - Every line has timestamp, level, logger and message
    - Sync context passed through `extra=` (card_id, cache_key, attempt, error_code,
      operation, path, source, delay_ms) becomes top-level JSON keys when set
    - setup_logging() is idempotent: calling it again swaps the handler, never stacks one

Design Decisions:
    - JSONFormatter on stdlib logging, no logging dependency
    - Library modules only create module loggers; handlers are installed once, by the
      gateway lifespan or by an embedding application
    - httpx/httpcore/aiosqlite chatter is capped at WARNING: per-request debug lines
      drown the sync engine's own messages
"""

import json
import logging
from datetime import datetime, timezone

CONTEXT_FIELDS = (
    "card_id", "cache_key", "attempt", "error_code", "operation",
    "path", "source", "delay_ms",
)
_NOISY_LOGGERS = ("httpx", "httpcore", "aiosqlite")
_HANDLER_NAME = "cardsync"


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        log = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        log.update(
            (key, record.__dict__[key])
            for key in CONTEXT_FIELDS
            if record.__dict__.get(key) is not None
        )
        if record.exc_info:
            log["exception"] = self.formatException(record.exc_info)
        return json.dumps(log, ensure_ascii=False, default=str)


def setup_logging(level: str = "INFO", fmt: str = "json") -> None:
    """Install the cardsync handler on the root logger ("json" or "text" format)."""
    handler = logging.StreamHandler()
    handler.set_name(_HANDLER_NAME)
    if fmt == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)-8s %(name)s: %(message)s",
        ))

    root = logging.getLogger()
    for existing in [h for h in root.handlers if h.get_name() == _HANDLER_NAME]:
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

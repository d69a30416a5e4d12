"""Structured Logging — JSON formatter and setup for production observability.

Invariants:
    - All logs include timestamp, level, logger name, and message
    - Extra fields (identity_id, owner_id, bookmark_id, error_code) surfaced when present
    - Records logged while a request is in flight carry the gate-resolved
      identity_id, unless the call site passed its own
    - JSON format in production, human-readable in development

Design Decisions:
    - JSONFormatter on stdlib logging: no extra dependency
    - Identity bound in a ContextVar by the session gate, so it follows the
      request into route and service coroutines without being threaded through
    - setup_logging called once on startup via lifespan
"""

import logging
import json
from contextvars import ContextVar, Token
from datetime import datetime, timezone

_EXTRA_KEYS = (
    "identity_id", "owner_id", "bookmark_id", "error_code",
    "path", "event_kind", "reason",
)

_request_identity: ContextVar[str | None] = ContextVar(
    "request_identity", default=None,
)


def bind_identity(identity_id: str | None) -> Token:
    return _request_identity.set(identity_id)


def unbind_identity(token: Token) -> None:
    _request_identity.reset(token)


class IdentityContextFilter(logging.Filter):
    """Stamp the request's identity on records that do not name one."""

    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, "identity_id", None) is None:
            bound = _request_identity.get()
            if bound is not None:
                record.identity_id = bound
        return True


class JSONFormatter(logging.Formatter):
    """Format logs as JSON for structured logging in production."""

    def format(self, record: logging.LogRecord) -> str:
        log = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in _EXTRA_KEYS:
            val = record.__dict__.get(key)
            if val is not None:
                log[key] = val
        if record.exc_info:
            log["exception"] = self.formatException(record.exc_info)
        return json.dumps(log, ensure_ascii=False)


def setup_logging(level: str = "INFO", fmt: str = "json"):
    """Configure logging for the application."""
    handler = logging.StreamHandler()
    handler.addFilter(IdentityContextFilter())
    if fmt == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s %(message)s",
        ))
    logging.root.addHandler(handler)
    logging.root.setLevel(getattr(logging, level.upper(), logging.INFO))

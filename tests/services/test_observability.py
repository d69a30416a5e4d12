"""Structured logging — identity stamping and JSON output."""

import json
import logging

from smart_bookmark.infrastructure.observability import (
    IdentityContextFilter, JSONFormatter, bind_identity, unbind_identity,
)


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord(
        "smart_bookmark.test", logging.INFO, __file__, 1, "hello", None, None,
    )
    record.__dict__.update(extra)
    return record


def _emit(record: logging.LogRecord) -> dict:
    IdentityContextFilter().filter(record)
    return json.loads(JSONFormatter().format(record))


def test_bound_identity_is_stamped():
    token = bind_identity("id-123")
    try:
        line = _emit(_record(bookmark_id="bm-1"))
    finally:
        unbind_identity(token)
    assert line["identity_id"] == "id-123"
    assert line["bookmark_id"] == "bm-1"
    assert line["message"] == "hello"


def test_explicit_identity_wins_over_bound():
    token = bind_identity("id-123")
    try:
        line = _emit(_record(identity_id="id-explicit"))
    finally:
        unbind_identity(token)
    assert line["identity_id"] == "id-explicit"


def test_unbound_record_has_no_identity():
    line = _emit(_record(identity_id=None))
    assert "identity_id" not in line

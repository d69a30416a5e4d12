"""Session Policy — pure expiry, rotation, and credential digest rules.

Invariants:
    - Naive datetimes are interpreted as UTC (SQLite drops tzinfo)
    - A session is live iff not revoked and expires_at > now
    - Rotation happens only inside the refresh window, never after expiry
    - A superseded token keeps resolving for the grace period after rotation
    - Credentials are stored as SHA-256 hex digests, never in the clear
"""

import hashlib
import secrets
from datetime import datetime, timedelta, timezone

TOKEN_BYTES = 32


def as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def new_credential() -> str:
    """Opaque URL-safe credential for cookies and authorization codes."""
    return secrets.token_urlsafe(TOKEN_BYTES)


def digest_credential(credential: str) -> str:
    return hashlib.sha256(credential.encode("utf-8")).hexdigest()


def is_live(
    expires_at: datetime, revoked_at: datetime | None, now: datetime,
) -> bool:
    return revoked_at is None and as_utc(expires_at) > as_utc(now)


def needs_refresh(
    expires_at: datetime, now: datetime, refresh_window: timedelta,
) -> bool:
    """True when a live session is close enough to expiry to rotate."""
    remaining = as_utc(expires_at) - as_utc(now)
    return timedelta(0) < remaining <= refresh_window


def in_rotation_grace(
    rotated_at: datetime | None, now: datetime, grace: timedelta,
) -> bool:
    """True while a just-superseded token may still resolve its session."""
    if rotated_at is None:
        return False
    return as_utc(now) - as_utc(rotated_at) < grace

"""Domain Types — identities, bookmarks, change events, and cookie mutations.

Invariants:
    - IdentityId, BookmarkId wrap UUIDs — never use bare UUID in domain logic
    - Identity, Bookmark, ChangeEvent are frozen (shared between views safely)
    - A ChangeEvent always carries the owner id it is scoped to
    - CookieMutation with max_age == 0 deletes the cookie

Design Decisions:
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
    - str Enums: serialize to JSON without custom encoders (SSE payloads)
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import NewType
from uuid import UUID


# ─── Identity Types ──────────────────────────────────────────────

IdentityId = NewType("IdentityId", UUID)
BookmarkId = NewType("BookmarkId", UUID)


# ─── Routing Surface ─────────────────────────────────────────────

HOME_PATH = "/"
LOGIN_PATH = "/login"
AUTH_CALLBACK_PATH = "/auth/callback"
LOGIN_NAMESPACE = "/login"
AUTH_NAMESPACE = "/auth"

CODE_PARAM = "code"
ERROR_PARAM = "error"
AUTH_FAILED_REASON = "auth_failed"


# ─── Enums ───────────────────────────────────────────────────────

class ChangeKind(str, Enum):
    """Mutation kinds delivered by the change feed."""
    INSERT = "insert"
    DELETE = "delete"


class GateAction(str, Enum):
    """Routing decisions issued by the session gate."""
    ALLOW = "allow"
    REDIRECT = "redirect"


# ─── Entities ────────────────────────────────────────────────────

@dataclass(frozen=True)
class Identity:
    """Authenticated principal resolved from a session credential."""
    id: IdentityId
    email: str
    display_name: str | None = None
    avatar_url: str | None = None

    @property
    def label(self) -> str:
        return self.display_name or self.email

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "email": self.email,
            "display_name": self.display_name,
            "avatar_url": self.avatar_url,
        }


@dataclass(frozen=True)
class Bookmark:
    """Owner-scoped bookmark record."""
    id: BookmarkId
    title: str
    url: str
    owner_id: IdentityId
    created_at: datetime

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "title": self.title,
            "url": self.url,
            "owner_id": str(self.owner_id),
            "created_at": self.created_at.isoformat(),
        }


@dataclass(frozen=True)
class ChangeEvent:
    """Insert(Bookmark) | Delete(bookmark id), scoped to one owner."""
    kind: ChangeKind
    owner_id: IdentityId
    bookmark_id: BookmarkId
    bookmark: Bookmark | None = None

    @classmethod
    def insert(cls, bookmark: Bookmark) -> "ChangeEvent":
        return cls(
            kind=ChangeKind.INSERT, owner_id=bookmark.owner_id,
            bookmark_id=bookmark.id, bookmark=bookmark,
        )

    @classmethod
    def delete(cls, bookmark_id: BookmarkId, owner_id: IdentityId) -> "ChangeEvent":
        return cls(
            kind=ChangeKind.DELETE, owner_id=owner_id, bookmark_id=bookmark_id,
        )

    def to_sse_event(self) -> dict:
        if self.kind == ChangeKind.INSERT and self.bookmark is not None:
            return {"type": self.kind.value, "data": self.bookmark.to_dict()}
        return {"type": self.kind.value, "data": {"id": str(self.bookmark_id)}}


@dataclass(frozen=True)
class CookieMutation:
    """A Set-Cookie instruction produced by the session authority."""
    name: str
    value: str
    max_age: int
    path: str = "/"
    httponly: bool = True
    secure: bool = True
    samesite: str = "lax"

    @property
    def is_deletion(self) -> bool:
        return self.max_age == 0

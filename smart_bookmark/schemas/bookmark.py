"""Bookmark Schemas — Pydantic models with field-level validation for API boundaries.

Invariants:
    - BookmarkCreate only bounds lengths; stripping, blank checks, and url
      normalization happen in ListReconciler.local_insert (one validation point)
    - Response models mirror core entities (ids and timestamps as strings)
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from smart_bookmark.core.bookmark_input import (
    MAX_TITLE_LENGTH, MAX_URL_LENGTH, display_domain,
)
from smart_bookmark.core.domain_types import Bookmark, Identity


class BookmarkCreate(BaseModel):
    """Bookmark creation payload as typed by the user."""
    title: str = Field(max_length=MAX_TITLE_LENGTH)
    url: str = Field(max_length=MAX_URL_LENGTH)


class BookmarkResponse(BaseModel):
    """Bookmark response — public-facing bookmark data."""
    id: UUID
    title: str
    url: str
    domain: str
    owner_id: UUID
    created_at: datetime

    @classmethod
    def from_entity(cls, bookmark: Bookmark) -> "BookmarkResponse":
        return cls(
            id=bookmark.id,
            title=bookmark.title,
            url=bookmark.url,
            domain=display_domain(bookmark.url),
            owner_id=bookmark.owner_id,
            created_at=bookmark.created_at,
        )


class IdentityResponse(BaseModel):
    id: UUID
    email: str
    display_name: str | None = None
    avatar_url: str | None = None
    label: str

    @classmethod
    def from_entity(cls, identity: Identity) -> "IdentityResponse":
        return cls(
            id=identity.id,
            email=identity.email,
            display_name=identity.display_name,
            avatar_url=identity.avatar_url,
            label=identity.label,
        )


class HomeResponse(BaseModel):
    """Home page model — identity plus the server-fetched bookmark snapshot."""
    identity: IdentityResponse
    bookmarks: list[BookmarkResponse]
    count: int


class LoginResponse(BaseModel):
    """Login page model — carries the failure reason token, if any."""
    page: str = "login"
    error: str | None = None

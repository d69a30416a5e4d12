"""Boundary Protocols — contracts between core and shell.

Invariants:
    - Core NEVER imports from shell — dependency arrows point inward only
    - All IO operations accessed through Protocol types
    - Implementations provided by shell via dependency injection

Design Decisions:
    - Protocol over ABC: structural subtyping, test fakes need no inheritance
    - Async in Protocol: boundary methods are async because implementations do IO,
      while the reconciler's feed handlers stay synchronous
"""

from collections.abc import AsyncIterator, Mapping
from typing import Protocol

from smart_bookmark.core.domain_types import (
    Bookmark, BookmarkId, ChangeEvent, CookieMutation, Identity, IdentityId,
)


class SessionAuthority(Protocol):
    """Resolves identities from cookies and installs/revokes sessions."""
    async def get_identity(
        self, cookies: Mapping[str, str],
    ) -> tuple[Identity | None, list[CookieMutation]]: ...
    async def exchange_code(
        self, code: str,
    ) -> tuple[Identity, list[CookieMutation]]: ...
    async def sign_out(
        self, cookies: Mapping[str, str],
    ) -> list[CookieMutation]: ...


class RecordStore(Protocol):
    """Durable owner-scoped bookmark persistence."""
    async def insert(
        self, owner_id: IdentityId, title: str, url: str,
    ) -> Bookmark: ...
    async def delete(
        self, bookmark_id: BookmarkId, owner_id: IdentityId,
    ) -> None: ...
    async def list_by_owner(self, owner_id: IdentityId) -> list[Bookmark]: ...


class Subscription(Protocol):
    """Live owner-scoped event stream with idempotent close."""
    owner_id: IdentityId

    @property
    def closed(self) -> bool: ...
    def close(self) -> None: ...
    def __aiter__(self) -> AsyncIterator[ChangeEvent]: ...


class ChangeFeed(Protocol):
    """Push channel of Insert/Delete events filtered by owner."""
    def subscribe(self, owner_id: IdentityId) -> Subscription: ...
    def publish(self, event: ChangeEvent) -> int: ...

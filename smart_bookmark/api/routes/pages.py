"""Page Routes — home and login page models (JSON; rendering lives in the client).

Invariants:
    - / is only reached with an identity (gate), and returns the owner's snapshot
    - /login is only reached without an identity (gate)
"""

from fastapi import APIRouter, Depends, Query

from smart_bookmark.api.dependencies import get_current_identity, get_record_store
from smart_bookmark.core.domain_types import HOME_PATH, LOGIN_PATH, Identity
from smart_bookmark.infrastructure.record_store import SqlRecordStore
from smart_bookmark.schemas.bookmark import (
    BookmarkResponse, HomeResponse, IdentityResponse, LoginResponse,
)

router = APIRouter(tags=["pages"])


@router.get(HOME_PATH, response_model=HomeResponse)
async def home(
    identity: Identity = Depends(get_current_identity),
    store: SqlRecordStore = Depends(get_record_store),
):
    """Home page model: who is signed in and their bookmarks, newest first."""
    bookmarks = await store.list_by_owner(identity.id)
    return HomeResponse(
        identity=IdentityResponse.from_entity(identity),
        bookmarks=[BookmarkResponse.from_entity(b) for b in bookmarks],
        count=len(bookmarks),
    )


@router.get(LOGIN_PATH, response_model=LoginResponse)
async def login(error: str | None = Query(None)):
    """Login page model with an optional failure reason token."""
    return LoginResponse(error=error)

"""Request Dependencies — per-request identity, authority, and record store handles.

Invariants:
    - Handles are built per request from the request's DB session (no shared clients)
    - get_current_identity raises 401 when the gate resolved no identity
    - get_reconciler binds a ListReconciler to the identity and request store
"""

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from smart_bookmark.core.domain_types import Identity
from smart_bookmark.core.list_reconciler import ListReconciler
from smart_bookmark.infrastructure.change_feed import get_feed
from smart_bookmark.infrastructure.database import get_db
from smart_bookmark.infrastructure.record_store import SqlRecordStore
from smart_bookmark.infrastructure.session_authority import SqlSessionAuthority


def get_current_identity(request: Request) -> Identity:
    identity = getattr(request.state, "identity", None)
    if identity is None:
        raise HTTPException(
            status.HTTP_401_UNAUTHORIZED, detail="Not authenticated",
        )
    return identity


def get_record_store(db: AsyncSession = Depends(get_db)) -> SqlRecordStore:
    return SqlRecordStore(db, get_feed())


def get_session_authority(
    db: AsyncSession = Depends(get_db),
) -> SqlSessionAuthority:
    return SqlSessionAuthority(db)


def get_reconciler(
    identity: Identity = Depends(get_current_identity),
    store: SqlRecordStore = Depends(get_record_store),
) -> ListReconciler:
    """Request-scoped reconciler: validated local mutations for the identity."""
    return ListReconciler(identity.id, store)

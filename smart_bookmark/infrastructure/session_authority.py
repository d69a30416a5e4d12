"""SQL Session Authority — resolves identities from cookies, exchanges codes, signs out.

Invariants:
    - One instance per request/view, bound to that request's AsyncSession
    - get_identity never raises for a missing/expired/revoked session: it returns
      (None, [cookie deletion]) so stale cookies are cleared on the response
    - A live session within the refresh window is rotated exactly once: a
      conditional UPDATE on the current digest, so concurrent requests carrying
      the same cookie cannot both rotate
    - The superseded token still resolves (with no cookie mutation) for
      session_rotation_grace_seconds, so in-flight requests never clear the
      fresh cookie
    - exchange_code consumes a code atomically (UPDATE ... WHERE consumed_at IS NULL);
      a second exchange of the same code raises AuthCodeReusedError
    - Cookie mutations are returned, never written: the caller owns the response

Design Decisions:
    - Token digests in the DB: a leaked table does not leak live sessions
    - issue_code is the provider-facing hook; OAuth negotiation itself lives outside
"""

import logging
from collections.abc import Mapping
from contextlib import asynccontextmanager
from datetime import datetime, timedelta
from typing import AsyncGenerator

from sqlalchemy import or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from smart_bookmark.config import Settings, get_settings
from smart_bookmark.core.domain_types import CookieMutation, Identity
from smart_bookmark.core.errors import AuthCodeReusedError, AuthError
from smart_bookmark.core.session_policy import (
    as_utc, digest_credential, in_rotation_grace, is_live, needs_refresh,
    new_credential, utc_now,
)
from smart_bookmark.infrastructure import database
from smart_bookmark.models.auth_session import AuthCode, AuthSession
from smart_bookmark.models.identity import Identity as IdentityModel

logger = logging.getLogger(__name__)


class SqlSessionAuthority:
    """Session authority backed by the auth_sessions and auth_codes tables."""

    def __init__(self, db: AsyncSession, settings: Settings | None = None):
        self.db = db
        self.settings = settings or get_settings()

    # -- Cookie helpers ---------------------------------------------------------

    def _session_cookie(self, token: str) -> CookieMutation:
        return CookieMutation(
            name=self.settings.session_cookie_name,
            value=token,
            max_age=self.settings.session_ttl_seconds,
            secure=self.settings.cookie_secure,
            samesite=self.settings.cookie_samesite,
        )

    def _clear_cookie(self) -> CookieMutation:
        return CookieMutation(
            name=self.settings.session_cookie_name,
            value="",
            max_age=0,
            secure=self.settings.cookie_secure,
            samesite=self.settings.cookie_samesite,
        )

    async def _load_session(self, digest: str) -> AuthSession | None:
        result = await self.db.execute(
            select(AuthSession).where(
                or_(
                    AuthSession.token_hash == digest,
                    AuthSession.previous_token_hash == digest,
                ),
            ),
        )
        return result.scalar_one_or_none()

    async def _install_session(self, identity_id) -> str:
        token = new_credential()
        self.db.add(AuthSession(
            identity_id=identity_id,
            token_hash=digest_credential(token),
            expires_at=utc_now() + timedelta(seconds=self.settings.session_ttl_seconds),
        ))
        return token

    # -- SessionAuthority -------------------------------------------------------

    async def get_identity(
        self, cookies: Mapping[str, str],
    ) -> tuple[Identity | None, list[CookieMutation]]:
        token = cookies.get(self.settings.session_cookie_name)
        if not token:
            return None, []
        digest = digest_credential(token)
        record = await self._load_session(digest)
        now = utc_now()
        if record is None or not is_live(record.expires_at, record.revoked_at, now):
            return None, [self._clear_cookie()]

        superseded = record.token_hash != digest
        grace = timedelta(seconds=self.settings.session_rotation_grace_seconds)
        if superseded and not in_rotation_grace(record.rotated_at, now, grace):
            return None, [self._clear_cookie()]

        identity_row = await self.db.get(IdentityModel, record.identity_id)
        if identity_row is None:
            return None, [self._clear_cookie()]
        identity = identity_row.to_entity()
        if superseded:
            # The response carrying the fresh cookie is already on its way
            return identity, []
        window = timedelta(seconds=self.settings.session_refresh_window_seconds)
        if not needs_refresh(record.expires_at, now, window):
            return identity, []
        return identity, await self._rotate(record, digest, now, identity)

    async def _rotate(
        self, record: AuthSession, digest: str, now: datetime, identity: Identity,
    ) -> list[CookieMutation]:
        fresh = new_credential()
        rotated = await self.db.execute(
            update(AuthSession)
            .where(AuthSession.id == record.id, AuthSession.token_hash == digest)
            .values(
                token_hash=digest_credential(fresh),
                previous_token_hash=digest,
                rotated_at=now,
                expires_at=now + timedelta(seconds=self.settings.session_ttl_seconds),
            )
            .execution_options(synchronize_session=False),
        )
        await self.db.commit()
        self.db.expire(record)
        if rotated.rowcount != 1:
            # A concurrent request with the same cookie rotated first
            return []
        logger.info(
            "Session rotated near expiry",
            extra={"identity_id": str(identity.id)},
        )
        return [self._session_cookie(fresh)]

    async def exchange_code(
        self, code: str,
    ) -> tuple[Identity, list[CookieMutation]]:
        code_hash = digest_credential(code)
        now = utc_now()
        try:
            result = await self.db.execute(
                select(AuthCode).where(AuthCode.code_hash == code_hash),
            )
            auth_code = result.scalar_one_or_none()
            if auth_code is None:
                raise AuthError("Unknown authorization code")
            if auth_code.consumed_at is not None:
                raise AuthCodeReusedError()
            if as_utc(auth_code.expires_at) <= now:
                raise AuthError("Authorization code expired")

            claimed = await self.db.execute(
                update(AuthCode)
                .where(AuthCode.id == auth_code.id, AuthCode.consumed_at.is_(None))
                .values(consumed_at=now),
            )
            if claimed.rowcount != 1:
                # Lost the race to a concurrent exchange of the same code
                raise AuthCodeReusedError()

            identity_row = await self.db.get(IdentityModel, auth_code.identity_id)
            if identity_row is None:
                raise AuthError("Authorization code has no identity")
            token = await self._install_session(identity_row.id)
            await self.db.commit()
        except AuthError:
            await self.db.rollback()
            raise
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Code exchange failed in storage: {e}")
            raise AuthError("Authorization code exchange unavailable")
        return identity_row.to_entity(), [self._session_cookie(token)]

    async def sign_out(self, cookies: Mapping[str, str]) -> list[CookieMutation]:
        token = cookies.get(self.settings.session_cookie_name)
        if token:
            digest = digest_credential(token)
            await self.db.execute(
                update(AuthSession)
                .where(
                    or_(
                        AuthSession.token_hash == digest,
                        AuthSession.previous_token_hash == digest,
                    ),
                    AuthSession.revoked_at.is_(None),
                )
                .values(revoked_at=utc_now()),
            )
            await self.db.commit()
        return [self._clear_cookie()]

    # -- Provider hook ----------------------------------------------------------

    async def issue_code(
        self,
        email: str,
        display_name: str | None = None,
        avatar_url: str | None = None,
    ) -> str:
        """Upsert the identity and mint a one-time authorization code for it."""
        result = await self.db.execute(
            select(IdentityModel).where(IdentityModel.email == email),
        )
        identity = result.scalar_one_or_none()
        if identity is None:
            identity = IdentityModel(
                email=email, display_name=display_name, avatar_url=avatar_url,
            )
            self.db.add(identity)
            await self.db.flush()
        else:
            identity.display_name = display_name or identity.display_name
            identity.avatar_url = avatar_url or identity.avatar_url

        code = new_credential()
        self.db.add(AuthCode(
            identity_id=identity.id,
            code_hash=digest_credential(code),
            expires_at=utc_now() + timedelta(seconds=self.settings.auth_code_ttl_seconds),
        ))
        await self.db.commit()
        return code


@asynccontextmanager
async def session_authority_scope(
    settings: Settings | None = None,
) -> AsyncGenerator[SqlSessionAuthority, None]:
    """Scoped authority handle with its own DB session (used by the gate)."""
    async with database.get_db_manager().session() as db:
        yield SqlSessionAuthority(db, settings)

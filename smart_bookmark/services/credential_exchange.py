"""Credential Exchange — turns a one-time authorization code into a session.

Invariants:
    - Blank codes are rejected without touching the session authority
    - Every failure surfaces as AuthError (reason auth_failed); reuse of a consumed
      code is the distinct AuthCodeReusedError
    - Never retries: a failed exchange is final for that code
"""

import logging
from dataclasses import dataclass

from smart_bookmark.core.domain_types import CookieMutation, Identity
from smart_bookmark.core.errors import AuthError, DatabaseError
from smart_bookmark.core.repository_protocols import SessionAuthority

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExchangeResult:
    identity: Identity
    cookies: list[CookieMutation]


class CredentialExchange:
    """Presents authorization codes to the session authority."""

    def __init__(self, authority: SessionAuthority):
        self.authority = authority

    async def exchange(self, code: str | None) -> ExchangeResult:
        code = (code or "").strip()
        if not code:
            raise AuthError("Missing authorization code")
        try:
            identity, cookies = await self.authority.exchange_code(code)
        except AuthError as e:
            logger.warning(
                f"Code exchange rejected: {e.message}",
                extra={"error_code": e.code, "reason": e.reason},
            )
            raise
        except DatabaseError as e:
            logger.error(
                f"Code exchange failed: {e.message}", extra={"error_code": e.code},
            )
            raise AuthError("Authorization code exchange unavailable")
        logger.info("Session installed", extra={"identity_id": str(identity.id)})
        return ExchangeResult(identity=identity, cookies=cookies)

"""Auth Routes — authorization code callback and sign-out.

Invariants:
    - /auth/* is reachable without an identity (gate passes it through)
    - A successful exchange redirects to / with the code gone from the URL
    - Any AuthError redirects to /login?error=auth_failed; never retried
    - Sign-out revokes the session the gate resolved (post-rotation cookie) and
      deletes the cookie
"""

import logging
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import RedirectResponse

from smart_bookmark.api.dependencies import get_session_authority
from smart_bookmark.api.gate_middleware import apply_cookie_mutations
from smart_bookmark.core.domain_types import (
    AUTH_CALLBACK_PATH, CODE_PARAM, ERROR_PARAM, HOME_PATH, LOGIN_PATH,
)
from smart_bookmark.core.errors import AuthError
from smart_bookmark.infrastructure.session_authority import SqlSessionAuthority
from smart_bookmark.services.credential_exchange import CredentialExchange

logger = logging.getLogger(__name__)
router = APIRouter(tags=["auth"])


@router.get(AUTH_CALLBACK_PATH)
async def auth_callback(
    request: Request,
    authority: SqlSessionAuthority = Depends(get_session_authority),
):
    """Exchange the one-time code for a session, then land on home."""
    code = request.query_params.get(CODE_PARAM)
    if not code:
        return RedirectResponse(LOGIN_PATH, status_code=status.HTTP_303_SEE_OTHER)
    try:
        result = await CredentialExchange(authority).exchange(code)
    except AuthError as e:
        location = f"{LOGIN_PATH}?{urlencode({ERROR_PARAM: e.reason})}"
        return RedirectResponse(location, status_code=status.HTTP_303_SEE_OTHER)
    response = RedirectResponse(HOME_PATH, status_code=status.HTTP_303_SEE_OTHER)
    apply_cookie_mutations(response, result.cookies)
    return response


@router.post("/auth/signout")
async def sign_out(
    request: Request,
    authority: SqlSessionAuthority = Depends(get_session_authority),
):
    """Revoke the current session and return to the login page."""
    cookies = getattr(request.state, "session_cookies", None) or dict(request.cookies)
    mutations = await authority.sign_out(cookies)
    identity = getattr(request.state, "identity", None)
    if identity is not None:
        logger.info("Signed out", extra={"identity_id": str(identity.id)})
    response = RedirectResponse(LOGIN_PATH, status_code=status.HTTP_303_SEE_OTHER)
    apply_cookie_mutations(response, mutations)
    return response

"""Session Gate Middleware — resolves identity and enforces routing on every request.

Invariants:
    - Gate-exempt paths (static assets, probes) skip the gate entirely
    - An authorization code off the callback path is redirected before any
      session lookup
    - Identity resolution errors are treated as "no identity" (fail closed)
    - Cookie mutations from the session authority are applied on redirect and
      pass-through responses alike
    - A cookie the route itself set wins over the gate's mutation of the same name
    - request.state.identity and request.state.session_cookies are always set
      for requests that reach a route
    - The resolved identity is bound for logging while the route runs

Design Decisions:
    - Decisions delegated to core/session_gate.py; this module only does IO
    - Authority handle scoped per request (authority_scope factory), never shared
"""

import logging
from collections.abc import Callable, Iterable

from fastapi import Request
from fastapi.responses import RedirectResponse, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from smart_bookmark.config import Settings, get_settings
from smart_bookmark.core.domain_types import CookieMutation, Identity
from smart_bookmark.core.session_gate import (
    code_handoff, is_gate_exempt, route_for_identity,
)
from smart_bookmark.infrastructure.observability import bind_identity, unbind_identity
from smart_bookmark.infrastructure.session_authority import session_authority_scope

logger = logging.getLogger(__name__)


def _cookie_names_set(response: Response) -> set[str]:
    names = set()
    for header in response.headers.getlist("set-cookie"):
        names.add(header.split("=", 1)[0].strip())
    return names


def apply_cookie_mutations(
    response: Response, mutations: Iterable[CookieMutation],
) -> None:
    """Write cookie mutations onto a response, skipping names it already sets."""
    already_set = _cookie_names_set(response)
    for m in mutations:
        if m.name in already_set:
            continue
        if m.is_deletion:
            response.delete_cookie(
                m.name, path=m.path, secure=m.secure,
                httponly=m.httponly, samesite=m.samesite,
            )
        else:
            response.set_cookie(
                m.name, m.value, max_age=m.max_age, path=m.path,
                secure=m.secure, httponly=m.httponly, samesite=m.samesite,
            )


def effective_cookies(
    cookies: dict[str, str], mutations: Iterable[CookieMutation],
) -> dict[str, str]:
    """Request cookies as they will be after the mutations are applied."""
    merged = dict(cookies)
    for m in mutations:
        if m.is_deletion:
            merged.pop(m.name, None)
        else:
            merged[m.name] = m.value
    return merged


class SessionGateMiddleware(BaseHTTPMiddleware):
    """Session authority gate in front of every route."""

    def __init__(
        self,
        app: ASGIApp,
        authority_scope: Callable = session_authority_scope,
        settings: Settings | None = None,
    ):
        super().__init__(app)
        self.authority_scope = authority_scope
        self.settings = settings or get_settings()

    async def _resolve_identity(
        self, request: Request,
    ) -> tuple[Identity | None, list[CookieMutation]]:
        try:
            async with self.authority_scope(self.settings) as authority:
                return await authority.get_identity(request.cookies)
        except Exception as e:
            logger.warning(
                f"Identity resolution failed, treating as anonymous: {e}",
                extra={"path": request.url.path},
            )
            return None, []

    async def dispatch(self, request: Request, call_next) -> Response:
        path = request.url.path
        if is_gate_exempt(
            path,
            self.settings.gate_exempt_prefixes,
            self.settings.gate_exempt_suffixes,
        ):
            return await call_next(request)

        query = list(request.query_params.multi_items())
        handoff = code_handoff(path, query)
        if handoff is not None:
            return RedirectResponse(handoff.location, status_code=307)

        identity, mutations = await self._resolve_identity(request)
        request.state.identity = identity
        request.state.session_cookies = effective_cookies(
            dict(request.cookies), mutations,
        )

        bound = bind_identity(str(identity.id) if identity else None)
        try:
            decision = route_for_identity(path, query, identity is not None)
            if decision.is_redirect:
                logger.info(
                    f"Gate redirect to {decision.location}",
                    extra={"path": path, "reason": decision.reason},
                )
                response = RedirectResponse(decision.location, status_code=307)
            else:
                response = await call_next(request)
        finally:
            unbind_identity(bound)
        apply_cookie_mutations(response, mutations)
        return response

"""Session Gate Decisions — pure routing rules applied to every inbound request.

Invariants:
    - A request carrying `code` off the callback path is handed to the callback,
      before any session lookup
    - Unauthenticated requests outside /login* and /auth* go to /login, query stripped
    - Authenticated requests under /login* go to /
    - Everything else passes through
    - Namespace checks are prefix matches (/login-help is under /login)

Design Decisions:
    - Pure functions over a middleware method: the shell (api/gate_middleware.py)
      does the cookie and session IO around these decisions
    - Two entry points: code_handoff runs before identity lookup, route_for_identity after
"""

from dataclasses import dataclass
from urllib.parse import urlencode

from smart_bookmark.core.domain_types import (
    AUTH_CALLBACK_PATH,
    AUTH_NAMESPACE,
    CODE_PARAM,
    HOME_PATH,
    LOGIN_NAMESPACE,
    LOGIN_PATH,
    GateAction,
)


@dataclass(frozen=True)
class GateDecision:
    """Outcome of the gate for one request."""
    action: GateAction
    location: str | None = None
    reason: str = ""

    @property
    def is_redirect(self) -> bool:
        return self.action == GateAction.REDIRECT


ALLOW = GateDecision(GateAction.ALLOW, reason="pass_through")


def under_namespace(path: str, namespace: str) -> bool:
    """Prefix match on the raw path."""
    return path.startswith(namespace)


def is_public_path(path: str) -> bool:
    """Paths reachable without an identity."""
    return (
        under_namespace(path, LOGIN_NAMESPACE)
        or under_namespace(path, AUTH_NAMESPACE)
    )


def _with_query(path: str, query: list[tuple[str, str]]) -> str:
    if not query:
        return path
    return f"{path}?{urlencode(query)}"


def code_handoff(
    path: str, query: list[tuple[str, str]],
) -> GateDecision | None:
    """Redirect to the exchange path when an authorization code lands elsewhere.

    The full query is preserved so the code (and any provider state) survives.
    """
    has_code = any(key == CODE_PARAM and value for key, value in query)
    if not has_code or path == AUTH_CALLBACK_PATH:
        return None
    return GateDecision(
        GateAction.REDIRECT,
        location=_with_query(AUTH_CALLBACK_PATH, query),
        reason="code_handoff",
    )


def route_for_identity(
    path: str, query: list[tuple[str, str]], authenticated: bool,
) -> GateDecision:
    """Decide routing once identity resolution has completed."""
    if not authenticated and not is_public_path(path):
        return GateDecision(
            GateAction.REDIRECT, location=LOGIN_PATH, reason="unauthenticated",
        )
    if authenticated and under_namespace(path, LOGIN_NAMESPACE):
        return GateDecision(
            GateAction.REDIRECT,
            location=_with_query(HOME_PATH, query),
            reason="already_authenticated",
        )
    return ALLOW


def is_gate_exempt(
    path: str, prefixes: list[str], suffixes: list[str],
) -> bool:
    """Static assets and probes bypass the gate entirely."""
    if any(path.startswith(p) for p in prefixes):
        return True
    lowered = path.lower()
    return any(lowered.endswith(s) for s in suffixes)

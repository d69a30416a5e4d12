"""Error Hierarchy — typed, categorized exceptions for all Smart Bookmark failure modes.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Domain errors (400-level) are recoverable; infrastructure errors (500-level) are critical
    - to_response() produces REST envelope; to_sse_event() produces SSE envelope
    - No internal details leaked in user-facing messages

Design Decisions:
    - Single hierarchy with SmartBookmarkError base: FastAPI global handler catches all
    - ErrorContext as dataclass: rich observability without coupling to logging framework
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from datetime import datetime, timezone

from smart_bookmark.core.domain_types import AUTH_FAILED_REASON


class ErrorSeverity(str, Enum):
    """Error severity for observability and client handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    VALIDATION = "validation"
    AUTHENTICATION = "authentication"
    RESOURCE_NOT_FOUND = "resource_not_found"
    DATABASE = "database"
    STORE = "store"
    FEED = "feed"
    INTERNAL = "internal"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    identity_id: str | None = None
    bookmark_id: str | None = None
    user_message: str | None = None
    debug_info: dict[str, Any] | None = None


class SmartBookmarkError(Exception):
    """Base exception for all Smart Bookmark errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
        http_status: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.http_status = http_status

    def to_response(self) -> dict:
        """Convert to standardized REST error response."""
        return {
            "error": {
                "code": self.code,
                "message": self.context.user_message or self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "timestamp": self.context.timestamp.isoformat(),
                "context": {
                    "identity_id": self.context.identity_id,
                    "bookmark_id": self.context.bookmark_id,
                },
            }
        }

    def to_sse_event(self) -> dict:
        """Convert to SSE error event."""
        return {
            "type": "error",
            "data": {
                "code": self.code,
                "message": self.context.user_message or self.message,
                "severity": self.severity.value,
                "recoverable": self.severity in (
                    ErrorSeverity.INFO, ErrorSeverity.WARNING,
                ),
            },
        }


# ─── Domain Errors (400-level) ──────────────────────────────────

class BookmarkValidationError(SmartBookmarkError):
    """Bookmark input rejected before reaching the record store."""
    def __init__(self, message: str, field: str, context: ErrorContext | None = None):
        super().__init__(
            message, "VALIDATION_ERROR", ErrorCategory.VALIDATION,
            ErrorSeverity.WARNING, context, 400,
        )
        self.field = field

    def to_response(self) -> dict:
        """REST envelope plus the offending form field (title or url)."""
        response = super().to_response()
        response["error"]["field"] = self.field
        return response


class AuthError(SmartBookmarkError):
    """Authorization code exchange failed — caller routes to login with reason."""
    def __init__(
        self,
        message: str,
        code: str = "AUTH_FAILED",
        context: ErrorContext | None = None,
    ):
        super().__init__(
            message, code, ErrorCategory.AUTHENTICATION,
            ErrorSeverity.WARNING, context, 401,
        )
        self.reason = AUTH_FAILED_REASON


class AuthCodeReusedError(AuthError):
    """Authorization code was already consumed by an earlier exchange."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "Authorization code has already been used",
            "AUTH_CODE_REUSED", context,
        )


# ─── Collaborator Errors ─────────────────────────────────────────

class StoreError(SmartBookmarkError):
    """Record store insert/delete/list failed."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Bookmark {operation} failed: {message}",
            "STORE_ERROR", ErrorCategory.STORE,
            ErrorSeverity.ERROR, context, 503,
        )
        self.operation = operation


class BookmarkNotFoundError(StoreError):
    """Bookmark absent or not owned by the acting identity."""
    def __init__(self, bookmark_id: str, context: ErrorContext | None = None):
        super().__init__(
            f"bookmark '{bookmark_id}' not found", "delete",
            context or ErrorContext(bookmark_id=bookmark_id),
        )
        self.code = "BOOKMARK_NOT_FOUND"
        self.category = ErrorCategory.RESOURCE_NOT_FOUND
        self.http_status = 404


class FeedError(SmartBookmarkError):
    """Change feed misuse or delivery failure."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "FEED_ERROR", ErrorCategory.FEED,
            ErrorSeverity.WARNING, context, 500,
        )


# ─── Infrastructure Errors (500-level) ──────────────────────────

class DatabaseError(SmartBookmarkError):
    """Database operation failed."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Database {operation} failed: {message}",
            "DATABASE_ERROR", ErrorCategory.DATABASE,
            ErrorSeverity.CRITICAL, context, 503,
        )
        self.operation = operation

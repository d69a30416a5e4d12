"""Bookmark Input — pure validation and URL normalization before any store call.

Invariants:
    - Title and url are stripped; blank (empty or whitespace-only) values are rejected
    - A url without an http:// or https:// scheme (case-insensitive) gets https:// prepended
    - The normalized url must carry a host, otherwise it is rejected
    - No IO: callers run this before touching the record store
"""

import re
from urllib.parse import urlsplit

from smart_bookmark.core.errors import BookmarkValidationError

MAX_TITLE_LENGTH = 500
MAX_URL_LENGTH = 2048

_SCHEME_RE = re.compile(r"^https?://", re.IGNORECASE)


def normalize_url(url: str) -> str:
    """Prefix https:// when no http(s) scheme is present."""
    url = url.strip()
    if not _SCHEME_RE.match(url):
        url = "https://" + url
    return url


def clean_bookmark_input(title: str, url: str) -> tuple[str, str]:
    """Return (title, url) ready for the record store or raise BookmarkValidationError."""
    title = (title or "").strip()
    url = (url or "").strip()
    if not title:
        raise BookmarkValidationError("Title cannot be empty", "title")
    if not url:
        raise BookmarkValidationError("URL cannot be empty", "url")
    if len(title) > MAX_TITLE_LENGTH:
        raise BookmarkValidationError(
            f"Title exceeds {MAX_TITLE_LENGTH} characters", "title",
        )
    url = normalize_url(url)
    if len(url) > MAX_URL_LENGTH:
        raise BookmarkValidationError(
            f"URL exceeds {MAX_URL_LENGTH} characters", "url",
        )
    if not urlsplit(url).netloc:
        raise BookmarkValidationError("URL must include a host", "url")
    return title, url


def display_domain(url: str) -> str:
    """Hostname without a leading www., falling back to the raw url."""
    host = urlsplit(url).hostname
    if not host:
        return url
    return host.removeprefix("www.")

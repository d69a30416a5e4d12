"""ORM Models — identities, authorization codes, auth sessions, bookmarks."""

from smart_bookmark.models.identity import Identity  # noqa: F401
from smart_bookmark.models.auth_session import AuthSession, AuthCode  # noqa: F401
from smart_bookmark.models.bookmark import Bookmark  # noqa: F401

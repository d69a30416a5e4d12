"""Root conftest — shared test configuration."""

import os

# Tests run over plain http against an in-memory database
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("COOKIE_SECURE", "false")
os.environ.setdefault("LOG_FORMAT", "text")

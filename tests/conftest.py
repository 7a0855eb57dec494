"""Test-wide environment: local SQLite instead of PostgreSQL, test settings."""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("AUTO_CREATE_TABLES", "false")

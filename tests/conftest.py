"""Pytest configuration and shared fixtures.

DATABASE_URL defaults to in-memory SQLite so Settings() can initialize
without a bespoke .env file.
"""

from __future__ import annotations

import os

# Must be set before query_hub.config is imported anywhere
os.environ.setdefault("DATABASE_URL", "sqlite://")

from typing import Generator

import pytest
import sqlalchemy as sa

from query_hub.config.settings import get_settings
from query_hub.io.database import Database


@pytest.fixture
def clean_settings_cache() -> Generator[None, None, None]:
    """Clear the settings LRU cache before and after a test."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def sqlite_db() -> Generator[Database, None, None]:
    """In-memory SQLite database with a ``users`` table."""
    database = Database(sa.create_engine("sqlite://"), batch_size=2)
    database.run_raw(
        """
        CREATE TABLE users (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            username TEXT NOT NULL UNIQUE,
            email TEXT,
            age INTEGER,
            created_at TEXT,
            updated_at TEXT
        )
        """
    )
    yield database
    database.dispose()

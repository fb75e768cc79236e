"""
Shared pytest fixtures for shopkeep tests.

This module provides:
- An in-memory SQLite session with the ``shop`` table
- A session seeded from ``tests/fixtures/shop.csv`` (Pramod, Shubh)
- A ShopStore on the seeded session
- Settings cache isolation

Usage:
    Fixtures are auto-discovered by pytest; request them by name.

    def test_lookup(store):
        assert store.get(Shop(name="Pramod"))
"""

import os
from pathlib import Path
from typing import Generator

import pytest

from shopkeep.core.settings import get_settings
from shopkeep.store.models import Shop
from shopkeep.store.seeder import Seeder
from shopkeep.store.sessions import SQLiteSession
from shopkeep.store.shop import ShopStore

FIXTURES_DIR = Path(__file__).parent / "fixtures"

SHOP_DDL = """
CREATE TABLE IF NOT EXISTS shop (
    id INTEGER PRIMARY KEY,
    name TEXT NOT NULL DEFAULT '',
    location TEXT NOT NULL DEFAULT '',
    state TEXT NOT NULL DEFAULT ''
)
"""


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest.fixture
def session() -> Generator[SQLiteSession, None, None]:
    """Empty in-memory SQLite session with the shop table."""
    s = SQLiteSession(":memory:")
    s.execute(SHOP_DDL)
    yield s
    s.close()


@pytest.fixture
def seeded_session(session: SQLiteSession) -> SQLiteSession:
    """Session holding {1, Pramod, Gaya, Bihar} and {2, Shubh, HSR, Karnataka}."""
    Seeder(session, FIXTURES_DIR).refresh(Shop)
    return session


@pytest.fixture
def store(seeded_session: SQLiteSession) -> ShopStore:
    return ShopStore(seeded_session)


# =============================================================================
# Settings Isolation
# =============================================================================


@pytest.fixture
def clean_settings(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Generator[None, None, None]:
    """Clear SHOPKEEP_* env vars and the settings cache; run from an empty cwd."""
    for key in list(os.environ):
        if key.startswith("SHOPKEEP_"):
            monkeypatch.delenv(key)
    monkeypatch.chdir(tmp_path)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()

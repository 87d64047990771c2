"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest


# Make ``app`` importable without an editable install; it sits at the
# project root next to ``tests``.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


# Hashing cost used by tests; the production default is far higher.
TEST_HASH_ITERATIONS = 10_000


@pytest.fixture
def database_url(tmp_path) -> str:
    """Return a URL for a fresh SQLite database file under ``tmp_path``."""

    return f"sqlite+aiosqlite:///{tmp_path / 'tracker.db'}"

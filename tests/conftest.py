"""
tests/conftest.py -- Shared fixtures for session-auth tests.

This module provides:
  - db: an in-memory SQLite Database per test (fresh schema every time)
  - service: AuthService wired to db with both tables created
  - alice: a stored account with a known password

Design: plain sqlite:///:memory: is enough here because every test runs in a
single thread. SQLAlchemy keeps one connection per thread for in-memory
SQLite, so the schema created by the fixture is the one the test sees.

LOG_SECRETS must be off before any auth import so log lines are redacted the
way they would be in production. Tests that need other settings call
get_settings.cache_clear() themselves.
"""

from __future__ import annotations

import os
from collections.abc import Generator

os.environ["LOG_SECRETS"] = "false"

import pytest

from auth.models import Account
from auth.service import AuthService
from core.config import get_settings
from db.database import Database

ALICE_PASSWORD = "correct-horse"


@pytest.fixture(autouse=True)
def _fresh_settings() -> Generator[None, None, None]:
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def db() -> Generator[Database, None, None]:
    database = Database("sqlite:///:memory:")
    yield database
    database.close()


@pytest.fixture
def service(db: Database) -> AuthService:
    svc = AuthService.from_database(db)
    svc.create_users_table()
    svc.create_sessions_table()
    return svc


@pytest.fixture
def alice(service: AuthService) -> Account:
    return service.create_user("alice", ALICE_PASSWORD)

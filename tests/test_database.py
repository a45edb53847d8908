"""Unit tests for db/database.py -- the storage collaborator.

Covers:
- execute / query_one / query_all contract, plain SQL strings included
- constraint violations -> ConstraintError, other SQL failures -> StorageError
- foreign keys are enabled on SQLite connections
- tables() / drop() administrative helpers
- file databases persist across Database instances
"""

from __future__ import annotations

import pytest

from auth.service import AuthService
from core.errors import ConstraintError, StorageError
from db.database import Database


class TestStatementContract:
    def test_query_one_absent_returns_none(self, service: AuthService, db: Database) -> None:
        assert db.query_one("SELECT * FROM users WHERE username = :u", {"u": "nobody"}) is None

    def test_execute_returns_rowcount(self, service: AuthService, db: Database) -> None:
        service.create_user("bob", "password123")
        assert db.execute("UPDATE users SET updated_at = :t", {"t": "2024-01-01 00:00:00"}) == 1
        assert db.execute("DELETE FROM sessions WHERE id = :i", {"i": "none"}) == 0

    def test_query_all_returns_list(self, service: AuthService, db: Database) -> None:
        service.create_user("bob", "password123")
        service.create_user("carol", "password123")
        rows = db.query_all("SELECT username FROM users")
        assert isinstance(rows, list)
        assert sorted(r.username for r in rows) == ["bob", "carol"]

    def test_foreign_keys_enabled(self, db: Database) -> None:
        assert db.query_one("PRAGMA foreign_keys")[0] == 1


class TestErrorTranslation:
    def test_constraint_violation(self, service: AuthService, db: Database) -> None:
        insert = "INSERT INTO users VALUES (:i, 'bob', 'ab-cd', '2024-01-01 00:00:00', '2024-01-01 00:00:00')"
        db.execute(insert, {"i": "1"})
        with pytest.raises(ConstraintError):
            db.execute(insert, {"i": "2"})

    def test_bad_sql_is_storage_error(self, db: Database) -> None:
        with pytest.raises(StorageError):
            db.query_all("SELECT * FROM no_such_table")

    def test_constraint_error_is_a_storage_error(self) -> None:
        assert issubclass(ConstraintError, StorageError)


class TestAdministration:
    def test_tables_lists_schema(self, service: AuthService, db: Database) -> None:
        assert db.tables() == ["sessions", "users"]

    def test_drop_existing_and_missing(self, service: AuthService, db: Database) -> None:
        assert db.drop("sessions") is True
        assert db.drop("sessions") is False
        assert db.tables() == ["users"]

    def test_drop_rejects_injection(self, service: AuthService, db: Database) -> None:
        assert db.drop('users"; DROP TABLE sessions; --') is False
        assert db.tables() == ["sessions", "users"]

    def test_file_database_persists(self, tmp_path) -> None:
        url = f"sqlite:///{tmp_path / 'auth.db'}"
        first = Database(url)
        svc = AuthService.from_database(first)
        svc.create_sessions_table()
        account = svc.create_user("bob", "password123")
        first.close()

        second = Database(url)
        try:
            assert AuthService.from_database(second).get_user_by_id(account.id) == account
        finally:
            second.close()

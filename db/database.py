"""
db/database.py -- SQLAlchemy Core storage collaborator.

One Database value owns one Engine (and its connection pool). It is created
once by the caller and passed explicitly to every store -- there is no
module-level connection. Each call runs a single statement on a short-lived
connection inside its own transaction, so every operation the auth layer
issues is atomic at the single-statement level.

Contract consumed by auth/:
  execute(statement, params)   -> rowcount, effect only
  query_one(statement, params) -> Row | None
  query_all(statement, params) -> list[Row]

Errors: IntegrityError becomes ConstraintError, any other SQLAlchemyError
becomes StorageError. Nothing is retried here.

SQLite specifics:
  PRAGMA foreign_keys=ON is set per connection. SQLite leaves foreign keys
  off by default and PRAGMAs are not inherited by new pooled connections, so
  without it ON DELETE CASCADE on sessions.user_id would silently do nothing.
  PRAGMA journal_mode=WAL lets readers proceed while a writer is active.

Security: all queries use bound parameters. No f-strings in SQL except the
DROP TABLE helper, whose table name is checked against the database's own
table list first.

Layer rule: no imports from auth/.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, Optional

from sqlalchemy import MetaData, Table, create_engine, event, inspect, text
from sqlalchemy.engine import Engine, Row, make_url
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.sql.expression import Executable

from core.errors import ConstraintError, StorageError
from core.timing import timed

logger = logging.getLogger("sessionauth.db")

# Shared by every table definition so foreign keys between users and
# sessions resolve against the same schema.
metadata = MetaData()


# ---------------------------------------------------------------------------
# SQLite connection setup
# ---------------------------------------------------------------------------


def _set_sqlite_pragmas(dbapi_conn, connection_record) -> None:
    """Enable foreign keys and WAL journal mode on every new SQLite connection."""
    dbapi_conn.execute("PRAGMA foreign_keys=ON")
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


# ---------------------------------------------------------------------------
# Error translation
# ---------------------------------------------------------------------------


@contextmanager
def _storage_errors(action: str) -> Iterator[None]:
    try:
        yield
    except IntegrityError as exc:
        raise ConstraintError(f"{action} violated a constraint: {exc.orig}") from exc
    except SQLAlchemyError as exc:
        raise StorageError(f"{action} failed: {exc}") from exc


def _as_statement(statement: Executable | str) -> Executable:
    return text(statement) if isinstance(statement, str) else statement


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


class Database:
    """Store handle passed to AccountStore and SessionStore.

    Usage:
        db = Database("sqlite:///session_auth.db")
        row = db.query_one(users.select().where(users.c.username == "alice"))
        db.close()
    """

    def __init__(self, db_url: str, echo: bool = False) -> None:
        connect_args: dict = {}
        is_sqlite = db_url.startswith("sqlite")
        if is_sqlite:
            connect_args["check_same_thread"] = False
        with _storage_errors("connect"), timed("db:connect"):
            self.engine: Engine = create_engine(db_url, connect_args=connect_args, echo=echo)
        if is_sqlite:
            event.listen(self.engine, "connect", _set_sqlite_pragmas)
        self.url = make_url(db_url).render_as_string(hide_password=True)
        logger.debug("Database engine created for %s", self.url)

    # ------------------------------------------------------------------
    # Statement execution
    # ------------------------------------------------------------------

    def execute(self, statement: Executable | str, params: Optional[dict[str, Any]] = None) -> int:
        """Run a write statement and commit it. Returns the affected row count."""
        with _storage_errors("execute"), timed("db:run"), self.engine.begin() as conn:
            result = conn.execute(_as_statement(statement), params)
            return result.rowcount

    def query_one(self, statement: Executable | str, params: Optional[dict[str, Any]] = None) -> Optional[Row]:
        """Return the first matching row, or None when nothing matches."""
        with _storage_errors("query"), timed("db:run"), self.engine.connect() as conn:
            return conn.execute(_as_statement(statement), params).fetchone()

    def query_all(self, statement: Executable | str, params: Optional[dict[str, Any]] = None) -> list[Row]:
        """Return every matching row as a list (a snapshot, not a live cursor)."""
        with _storage_errors("query"), timed("db:run"), self.engine.connect() as conn:
            return list(conn.execute(_as_statement(statement), params).fetchall())

    # ------------------------------------------------------------------
    # Schema
    # ------------------------------------------------------------------

    def create(self, table: Table) -> None:
        """CREATE TABLE IF NOT EXISTS for one table definition. Idempotent."""
        with _storage_errors(f"create table {table.name}"):
            table.create(self.engine, checkfirst=True)
        logger.info("Table %s ready", table.name)

    def tables(self) -> list[str]:
        """Names of the tables currently present in the database."""
        with _storage_errors("list tables"):
            return sorted(inspect(self.engine).get_table_names())

    def drop(self, table_name: str) -> bool:
        """Drop a table by name. Returns False when no such table exists.

        The name is only interpolated after it has been matched against the
        database's own table list, so it can never carry arbitrary SQL.
        """
        if table_name not in self.tables():
            return False
        with _storage_errors(f"drop table {table_name}"), self.engine.begin() as conn:
            conn.execute(text(f'DROP TABLE IF EXISTS "{table_name}"'))  # noqa: S608
        logger.info("Table %s dropped", table_name)
        return True

    def close(self) -> None:
        self.engine.dispose()

"""
auth/sessions.py -- SQLAlchemy Core persistence for sessions.

Pattern: Repository + Data Mapper, same as auth/accounts.py.

Key rotation:
  Every successful authenticate() consumes the presented key and stores a
  new one before the account is resolved. A leaked key therefore works for at
  most one use before it goes stale. Rotation happens even for unbound
  sessions (user_id NULL).

  The rotating UPDATE matches on both id and the presented key. Lookup and
  rotation are two statements, so two callers can both find the same key;
  only the one whose UPDATE still sees that key wins, the other gets None.

Idempotence:
  refresh() and delete() on an id that does not exist are no-ops, not errors.
  Absence of a row is never a failure in this module.

Cascade:
  sessions.user_id REFERENCES users(id) ON DELETE CASCADE. Deleting an
  account removes its sessions inside the database; this module never does
  it by hand. db.Database turns foreign keys on for SQLite.

Security:
  all() exposes raw session keys. It is an administrative/debugging
  operation only. Keys are logged redacted unless LOG_SECRETS is on.
"""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import Column, ForeignKey, String, Table

from auth.accounts import AccountStore, users
from auth.crypto import fresh_id, new_session_key, now, redact
from auth.models import Account, Session
from db.database import Database, metadata

logger = logging.getLogger("sessionauth.auth.sessions")

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

sessions = Table(
    "sessions",
    metadata,
    Column("id", String(36), primary_key=True),  # UUID4
    Column("session_key", String(128), nullable=False, unique=True),
    Column("user_id", String(36), ForeignKey(users.c.id, ondelete="CASCADE")),  # NULL = unbound
    Column("created_at", String(19), nullable=False),
    Column("updated_at", String(19), nullable=False),
)


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class SessionStore:
    """Repository for Session entities.

    Usage:
        store = SessionStore(db, AccountStore(db))
        store.create_table()
        session = store.create(account.id)
        account = store.authenticate(session.session_key)   # rotates the key
    """

    def __init__(self, db: Database, accounts: AccountStore) -> None:
        self.db = db
        self.accounts = accounts

    def create_table(self) -> None:
        """Create the sessions table if it does not exist. Idempotent.

        The users table is created first when missing, since the foreign key
        on user_id references it.
        """
        self.accounts.create_table()
        self.db.create(sessions)

    def create(self, user_id: Optional[str]) -> Session:
        """Issue a new session for user_id (None for an unbound session).

        The returned Session carries the raw key; it is the caller's job to
        hand it to its own client.
        """
        timestamp = now()
        session = Session(
            id=fresh_id(),
            session_key=new_session_key(),
            user_id=user_id,
            created_at=timestamp,
            updated_at=timestamp,
        )
        self.db.execute(
            sessions.insert().values(
                id=session.id,
                session_key=session.session_key,
                user_id=session.user_id,
                created_at=session.created_at,
                updated_at=session.updated_at,
            )
        )
        logger.info(
            "Session created id=%s user_id=%s session_key=%s", session.id, user_id, redact(session.session_key)
        )
        return session

    def by_id(self, session_id: str) -> Optional[Session]:
        row = self.db.query_one(sessions.select().where(sessions.c.id == session_id))
        return _row_to_session(row) if row is not None else None

    def all(self) -> list[Session]:
        """Snapshot of every session, raw keys included. Privileged."""
        return [_row_to_session(r) for r in self.db.query_all(sessions.select())]

    def refresh(self, session_id: str) -> Optional[str]:
        """Rotate the key of session_id and stamp updated_at.

        Returns the new key, or None when no session has that id (no-op).
        """
        return self._rotate(sessions.c.id == session_id, session_id)

    def _rotate(self, condition, session_id: str) -> Optional[str]:
        key = new_session_key()
        updated = self.db.execute(sessions.update().where(condition).values(session_key=key, updated_at=now()))
        if not updated:
            logger.debug("Rotation of session id=%s matched no row", session_id)
            return None
        logger.debug("Session rotated id=%s session_key=%s", session_id, redact(key))
        return key

    def authenticate_and_rotate(self, session_key: str) -> tuple[Optional[Account], Optional[str]]:
        """Resolve session_key to its account, rotating the key on a hit.

        Returns (account, new_key). new_key is None when session_key matched
        nothing or was consumed by a concurrent caller; account is None in
        those cases, for an unbound session, or for an account that vanished
        between the reads.

        The rotation only succeeds while the row still holds session_key, so
        of two callers presenting the same key exactly one wins.
        """
        row = self.db.query_one(sessions.select().where(sessions.c.session_key == session_key))
        if row is None:
            return None, None

        session = _row_to_session(row)
        new_key = self._rotate((sessions.c.id == session.id) & (sessions.c.session_key == session_key), session.id)
        if new_key is None:
            return None, None
        if session.user_id is None:
            return None, new_key
        return self.accounts.by_id(session.user_id), new_key

    def authenticate(self, session_key: str) -> Optional[Account]:
        """Resolve session_key to its account (or None), rotating the key on a hit."""
        account, _new_key = self.authenticate_and_rotate(session_key)
        return account

    def delete(self, session_id: str) -> None:
        """Delete a session by id. Deleting an unknown id is a no-op."""
        deleted = self.db.execute(sessions.delete().where(sessions.c.id == session_id))
        if deleted:
            logger.info("Session deleted id=%s", session_id)


# ---------------------------------------------------------------------------
# Row mapper
# ---------------------------------------------------------------------------


def _row_to_session(row) -> Session:
    return Session(
        id=row.id,
        session_key=row.session_key,
        user_id=row.user_id,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )

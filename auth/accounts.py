"""
auth/accounts.py -- SQLAlchemy Core persistence for accounts.

Pattern: Repository + Data Mapper. AccountStore is the repository;
_row_to_account is the mapper. Callers never touch SQL directly.

Uniqueness:
  UNIQUE(username) is enforced by the database and is the source of truth.
  create() still runs username_exists() first, but only as an early exit with
  a friendlier message. Two concurrent creators can both pass the pre-check;
  the loser's INSERT then fails on the constraint and is reported as the same
  ConflictError.

Security:
  All queries use bound parameters. The plaintext password never reaches the
  database or the log (unless LOG_SECRETS is on).

Layer rule: no imports from auth/sessions.py or auth/service.py.
"""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import Column, String, Table, Text, select

from auth.crypto import fresh_id, hashed_password, now
from auth.models import Account
from core.errors import ConflictError, ConstraintError, ValidationError
from db.database import Database, metadata

logger = logging.getLogger("sessionauth.auth.accounts")

USERNAME_MIN = 2
USERNAME_MAX = 32
PASSWORD_MIN = 8
PASSWORD_MAX = 32

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

users = Table(
    "users",
    metadata,
    Column("id", String(36), primary_key=True),  # UUID4
    Column("username", String(USERNAME_MAX), nullable=False, unique=True),
    Column("password_secret", Text, nullable=False),  # "<saltHex>-<hashHex>"
    Column("created_at", String(19), nullable=False),
    Column("updated_at", String(19), nullable=False),
)


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def validate_credentials(username: str, password: str) -> None:
    """Raise ValidationError naming the first violated length bound."""
    if len(username) < USERNAME_MIN:
        raise ValidationError(f"Username must be at least {USERNAME_MIN} characters long")
    if len(username) > USERNAME_MAX:
        raise ValidationError(f"Username must be at most {USERNAME_MAX} characters long")
    if len(password) < PASSWORD_MIN:
        raise ValidationError(f"Password must be at least {PASSWORD_MIN} characters long")
    if len(password) > PASSWORD_MAX:
        raise ValidationError(f"Password must be at most {PASSWORD_MAX} characters long")


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class AccountStore:
    """Repository for Account entities.

    Usage:
        accounts = AccountStore(db)
        accounts.create_table()
        account = accounts.create("alice", "correct horse")
        accounts.by_username("alice")
    """

    def __init__(self, db: Database) -> None:
        self.db = db

    def create_table(self) -> None:
        """Create the users table if it does not exist. Idempotent."""
        self.db.create(users)

    def username_exists(self, username: str) -> bool:
        row = self.db.query_one(select(users.c.id).where(users.c.username == username))
        return row is not None

    def create(self, username: str, password: str) -> Account:
        """Validate, hash and insert a new account. Returns the stored record.

        Raises ValidationError on a length violation and ConflictError if the
        username is taken (by the pre-check or, under a race, the constraint).
        """
        validate_credentials(username, password)
        if self.username_exists(username):
            raise ConflictError(f"Username {username} already exists")

        timestamp = now()
        account = Account(
            id=fresh_id(),
            username=username,
            password_secret=hashed_password(password),
            created_at=timestamp,
            updated_at=timestamp,
        )
        try:
            self.db.execute(
                users.insert().values(
                    id=account.id,
                    username=account.username,
                    password_secret=account.password_secret,
                    created_at=account.created_at,
                    updated_at=account.updated_at,
                )
            )
        except ConstraintError as exc:
            raise ConflictError(f"Username {username} already exists") from exc
        logger.info("Account created id=%s username=%s", account.id, account.username)
        return account

    def by_id(self, account_id: str) -> Optional[Account]:
        """Look up an account by primary key. Returns None if not found."""
        row = self.db.query_one(users.select().where(users.c.id == account_id))
        return _row_to_account(row) if row is not None else None

    def by_username(self, username: str) -> Optional[Account]:
        """Look up an account by exact username (case-sensitive). Returns None if not found."""
        row = self.db.query_one(users.select().where(users.c.username == username))
        return _row_to_account(row) if row is not None else None

    def all(self) -> list[Account]:
        """Snapshot of every account at call time. Unordered."""
        return [_row_to_account(r) for r in self.db.query_all(users.select())]


# ---------------------------------------------------------------------------
# Row mapper
# ---------------------------------------------------------------------------


def _row_to_account(row) -> Account:
    return Account(
        id=row.id,
        username=row.username,
        password_secret=row.password_secret,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )

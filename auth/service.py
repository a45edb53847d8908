"""
auth/service.py -- Auth facade: the operations callers (the CLI) consume.

AuthService composes AccountStore, SessionStore and the crypto helpers.
Only sign_in() and sign_out() carry logic of their own; every other method
is a one-line delegation kept here so front ends have a single entry point.

sign_in() checks credentials and nothing else -- it does not issue a
session. Callers sequence sign_in() and create_session() explicitly:

    service = AuthService.from_database(db)
    if service.sign_in("alice", "correct horse"):
        session = service.create_session(service.get_user_by_username("alice").id)

Error asymmetry: an unknown username raises NotFoundError, a wrong password
returns False. Front ends that must not reveal which usernames exist should
collapse both into one message themselves.
"""

from __future__ import annotations

import logging
from typing import Optional

from auth.accounts import AccountStore
from auth.crypto import PasswordSecret, passwords_match
from auth.models import Account, Session
from auth.sessions import SessionStore
from core.errors import NotFoundError
from db.database import Database

logger = logging.getLogger("sessionauth.auth")


class AuthService:
    def __init__(self, accounts: AccountStore, sessions: SessionStore) -> None:
        self.account_store = accounts
        self.session_store = sessions

    @classmethod
    def from_database(cls, db: Database) -> "AuthService":
        accounts = AccountStore(db)
        return cls(accounts, SessionStore(db, accounts))

    # ------------------------------------------------------------------
    # Credentials
    # ------------------------------------------------------------------

    def sign_in(self, username: str, password: str) -> bool:
        """Check a username/password pair.

        Raises NotFoundError for an unknown username and CorruptDataError if
        the stored secret cannot be decoded. Returns False for a wrong password.
        """
        account = self.account_store.by_username(username)
        if account is None:
            raise NotFoundError("That username does not exist")

        secret = PasswordSecret.decode(account.password_secret)
        authenticated = passwords_match(password, secret.salt, secret.hash)
        logger.info("Sign-in for username=%s: %s", username, "ok" if authenticated else "rejected")
        return authenticated

    def sign_out(self, session_id: str) -> None:
        """Revoke a session. Signing out twice is not an error."""
        self.session_store.delete(session_id)

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------

    def create_users_table(self) -> None:
        self.account_store.create_table()

    def create_user(self, username: str, password: str) -> Account:
        return self.account_store.create(username, password)

    def users(self) -> list[Account]:
        return self.account_store.all()

    def username_exists(self, username: str) -> bool:
        return self.account_store.username_exists(username)

    def get_user_by_id(self, account_id: str) -> Optional[Account]:
        return self.account_store.by_id(account_id)

    def get_user_by_username(self, username: str) -> Optional[Account]:
        return self.account_store.by_username(username)

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    def create_sessions_table(self) -> None:
        self.session_store.create_table()

    def create_session(self, user_id: Optional[str]) -> Session:
        return self.session_store.create(user_id)

    def sessions(self) -> list[Session]:
        """All sessions with raw keys. Administrative use only."""
        return self.session_store.all()

    def authenticate_session(self, session_key: str) -> Optional[Account]:
        return self.session_store.authenticate(session_key)

    def refresh_session(self, session_id: str) -> Optional[str]:
        return self.session_store.refresh(session_id)

    def delete_session(self, session_id: str) -> None:
        self.session_store.delete(session_id)

"""
auth/models.py -- Domain dataclasses for accounts and sessions.

Pattern: Data class (pure data container). The stores map rows into these;
nothing here touches SQL.

Layer rule: no imports from db/.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Optional


@dataclass
class Account:
    """A username/password identity.

    password_secret is the encoded "<saltHex>-<hashHex>" form produced by
    auth.crypto.hashed_password(). The plaintext is never stored.
    created_at / updated_at use the fixed "YYYY-MM-DD HH:MM:SS" UTC format.
    """

    id: str
    username: str
    password_secret: str
    created_at: str
    updated_at: str

    def public_dict(self) -> dict:
        """Everything except the password secret."""
        data = asdict(self)
        del data["password_secret"]
        return data


@dataclass
class Session:
    """An authenticated session identified by an opaque bearer key.

    session_key is rotated on every successful authentication, so a key is
    good for one use. user_id is None for a session not yet bound to an
    account.
    """

    id: str
    session_key: str
    user_id: Optional[str]
    created_at: str
    updated_at: str

    def __repr__(self) -> str:
        """Safe representation without the key."""
        return f"Session(id={self.id!r}, user_id={self.user_id!r}, updated_at={self.updated_at!r})"

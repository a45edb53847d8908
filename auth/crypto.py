"""
auth/crypto.py -- Secret material: random tokens, password hashing, comparison.

Security design decisions:
  Randomness: every token (session keys and password salts) comes from the
       `secrets` CSPRNG. random.* is never used for secret material.

  Passwords: scrypt via the `cryptography` package (N=2**14, r=8, p=1,
       64-byte output). scrypt is memory hard, so brute-forcing a leaked hash
       on GPUs/ASICs costs memory as well as time. The salt is the 16-byte
       random salt's hex text, encoded as UTF-8 -- the same convention as the
       records written by the original Node tooling, so existing rows verify.

  Stored form: PasswordSecret(salt, hash) is the single encode/decode pair for
       the "<saltHex>-<hashHex>" column value. Both parts are hex, which cannot
       contain "-", so the delimiter is unambiguous.

  Comparison: passwords_match() compares byte strings with
       hmac.compare_digest(), whose running time does not depend on where the
       first mismatching byte is. A stored hash of the wrong length or that is
       not hex is a mismatch, not an exception.

  Logging: plaintext passwords, derived hashes and raw session keys are only
       logged when LOG_SECRETS=true (debugging aid). Otherwise use redact().

Layer rule: no imports from db/.
"""

from __future__ import annotations

import hmac
import logging
import re
import secrets
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone

from cryptography.hazmat.primitives.kdf.scrypt import Scrypt

from core.config import get_settings
from core.errors import CorruptDataError
from core.timing import timed

logger = logging.getLogger("sessionauth.auth.crypto")

# scrypt cost parameters. Matches Node's crypto.scryptSync defaults.
SCRYPT_N = 2**14
SCRYPT_R = 8
SCRYPT_P = 1
SECRET_LENGTH = 64  # bytes of derived output

SALT_BYTES = 16
SESSION_KEY_BYTES = 32

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

_DELIMITER = "-"
_HEX_RE = re.compile(r"^[0-9a-fA-F]+$")


# ---------------------------------------------------------------------------
# Random tokens
# ---------------------------------------------------------------------------


def random_token(byte_length: int) -> str:
    """Return byte_length CSPRNG bytes as a hex string (2 * byte_length chars)."""
    if byte_length < 1:
        raise ValueError("byte_length must be positive")
    with timed("random_token"):
        return secrets.token_hex(byte_length)


def new_session_key() -> str:
    """A fresh session key: 256 bits of entropy, infeasible to guess or enumerate."""
    return random_token(SESSION_KEY_BYTES)


def redact(secret: str) -> str:
    """Short, non-reversible stand-in for a secret in log lines."""
    if get_settings().log_secrets:
        return secret
    return f"{secret[:6]}..." if len(secret) > 6 else "***"


# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PasswordSecret:
    """The stored credential: salt and derived hash, both hex."""

    salt: str
    hash: str

    def encode(self) -> str:
        return f"{self.salt}{_DELIMITER}{self.hash}"

    @classmethod
    def decode(cls, raw: str) -> "PasswordSecret":
        """Parse the stored "<saltHex>-<hashHex>" value.

        Raises CorruptDataError if the value is not exactly two non-empty hex
        components, or if the hash has an odd number of digits.
        """
        parts = raw.split(_DELIMITER) if isinstance(raw, str) else []
        if len(parts) != 2:
            raise CorruptDataError("Stored password secret is not in <salt>-<hash> form")
        salt, hash_hex = parts
        if not _HEX_RE.match(salt) or not _HEX_RE.match(hash_hex):
            raise CorruptDataError("Stored password secret contains non-hex characters")
        if len(hash_hex) % 2:
            raise CorruptDataError("Stored password hash has an odd number of hex digits")
        return cls(salt=salt, hash=hash_hex)


def derive_password_secret(password: str, salt: str) -> str:
    """scrypt(password, salt) as 128 hex characters.

    Deterministic: the same (password, salt) always yields the same output.
    A new Scrypt instance is required per derivation -- cryptography's KDF
    objects are single use.
    """
    kdf = Scrypt(salt=salt.encode("utf-8"), length=SECRET_LENGTH, n=SCRYPT_N, r=SCRYPT_R, p=SCRYPT_P)
    with timed("scrypt"):
        return kdf.derive(password.encode("utf-8")).hex()


def hashed_password(password: str) -> str:
    """Hash a plaintext password with a fresh random salt, ready for storage."""
    salt = random_token(SALT_BYTES)
    secret = PasswordSecret(salt=salt, hash=derive_password_secret(password, salt))
    if get_settings().log_secrets:
        logger.debug("hashed password=%r salt=%s hash=%s", password, secret.salt, secret.hash)
    return secret.encode()


def passwords_match(proof: str, salt: str, hash: str) -> bool:
    """Return True if proof re-derives to hash under salt.

    Both sides are compared as raw bytes with hmac.compare_digest(). Lengths
    are checked first; a length mismatch only reveals that the stored hash is
    malformed, never anything about its content.
    """
    proof_bytes = bytes.fromhex(derive_password_secret(proof, salt))
    try:
        stored_bytes = bytes.fromhex(hash)
    except ValueError:
        return False
    if len(stored_bytes) != len(proof_bytes):
        return False
    return hmac.compare_digest(proof_bytes, stored_bytes)


# ---------------------------------------------------------------------------
# Identifiers and timestamps
# ---------------------------------------------------------------------------


def fresh_id() -> str:
    """A new random UUID4 string for primary keys."""
    return str(uuid.uuid4())


def now() -> str:
    """Current UTC time, second resolution, "YYYY-MM-DD HH:MM:SS"."""
    return datetime.now(timezone.utc).strftime(TIMESTAMP_FORMAT)

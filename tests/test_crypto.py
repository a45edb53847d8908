"""Unit tests for auth/crypto.py -- tokens, password hashing, comparison.

Covers:
- random_token() length and uniqueness
- hashed_password() stored form and salting
- passwords_match() accepts the right password, rejects any other
- passwords_match() timing does not depend on the mismatch position, both
  end to end and for the digest comparison alone
- PasswordSecret.decode() rejects malformed stored values
- now() timestamp format
"""

from __future__ import annotations

import hmac
import re
import statistics
import time

import pytest

from auth.crypto import (
    SALT_BYTES,
    SECRET_LENGTH,
    PasswordSecret,
    derive_password_secret,
    fresh_id,
    hashed_password,
    new_session_key,
    now,
    passwords_match,
    random_token,
)
from core.errors import CorruptDataError

# ---------------------------------------------------------------------------
# TestRandomToken
# ---------------------------------------------------------------------------


class TestRandomToken:
    def test_hex_length_is_twice_byte_length(self) -> None:
        token = random_token(16)
        assert len(token) == 32
        assert re.fullmatch(r"[0-9a-f]+", token)

    def test_tokens_do_not_repeat(self) -> None:
        tokens = {random_token(16) for _ in range(200)}
        assert len(tokens) == 200

    def test_rejects_non_positive_length(self) -> None:
        with pytest.raises(ValueError):
            random_token(0)

    def test_session_key_has_at_least_16_bytes_of_entropy(self) -> None:
        assert len(new_session_key()) >= 32


# ---------------------------------------------------------------------------
# TestHashedPassword
# ---------------------------------------------------------------------------


class TestHashedPassword:
    def test_stored_form_is_salt_dash_hash(self) -> None:
        stored = hashed_password("password123")
        salt, hash_hex = stored.split("-")
        assert len(salt) == SALT_BYTES * 2
        assert len(hash_hex) == SECRET_LENGTH * 2

    def test_stored_form_never_contains_plaintext(self) -> None:
        assert "password123" not in hashed_password("password123")

    def test_same_password_gets_different_salts(self) -> None:
        """Identical passwords must not produce linkable stored values."""
        assert hashed_password("password123") != hashed_password("password123")

    def test_derivation_is_deterministic(self) -> None:
        assert derive_password_secret("password123", "ab" * 16) == derive_password_secret("password123", "ab" * 16)

    def test_derivation_depends_on_salt(self) -> None:
        assert derive_password_secret("password123", "ab" * 16) != derive_password_secret("password123", "cd" * 16)


# ---------------------------------------------------------------------------
# TestPasswordsMatch
# ---------------------------------------------------------------------------


class TestPasswordsMatch:
    def test_right_password_matches(self) -> None:
        secret = PasswordSecret.decode(hashed_password("password123"))
        assert passwords_match("password123", secret.salt, secret.hash) is True

    @pytest.mark.parametrize("proof", ["password124", "Password123", "password12", ""])
    def test_other_passwords_do_not_match(self, proof: str) -> None:
        secret = PasswordSecret.decode(hashed_password("password123"))
        assert passwords_match(proof, secret.salt, secret.hash) is False

    def test_wrong_length_hash_is_a_mismatch_not_an_error(self) -> None:
        secret = PasswordSecret.decode(hashed_password("password123"))
        assert passwords_match("password123", secret.salt, secret.hash[:-2]) is False

    def test_non_hex_hash_is_a_mismatch_not_an_error(self) -> None:
        assert passwords_match("password123", "ab" * 16, "zz" * SECRET_LENGTH) is False

    def test_timing_does_not_depend_on_mismatch_position(self) -> None:
        """Statistical check: a first-byte and a last-byte mismatch take comparable time.

        Both runs do the same scrypt work and a constant-time compare, so the
        medians should be close. The bound is loose to stay stable on busy CI.
        """
        salt = "ab" * 16
        real = derive_password_secret("password123", salt)
        first_byte_off = ("00" if real[:2] != "00" else "ff") + real[2:]
        last_byte_off = real[:-2] + ("00" if real[-2:] != "00" else "ff")

        def median_seconds(candidate: str) -> float:
            samples = []
            for _ in range(5):
                start = time.perf_counter()
                assert passwords_match("password123", salt, candidate) is False
                samples.append(time.perf_counter() - start)
            return statistics.median(samples)

        early = median_seconds(first_byte_off)
        late = median_seconds(last_byte_off)
        ratio = early / late
        assert 0.5 < ratio < 2.0, f"first-byte {early:.4f}s vs last-byte {late:.4f}s"

    def test_digest_compare_does_not_depend_on_mismatch_position(self) -> None:
        """Times the byte comparison alone, without scrypt in the way.

        Each candidate is compared many times per round and the fastest round
        is kept, which filters scheduler noise out of a sub-microsecond step.
        """
        real = bytes.fromhex(derive_password_secret("password123", "ab" * 16))
        first_byte_off = bytes([real[0] ^ 0xFF]) + real[1:]
        last_byte_off = real[:-1] + bytes([real[-1] ^ 0xFF])

        def best_round_seconds(candidate: bytes) -> float:
            rounds = []
            for _ in range(7):
                start = time.perf_counter()
                for _ in range(20_000):
                    hmac.compare_digest(real, candidate)
                rounds.append(time.perf_counter() - start)
            return min(rounds)

        early = best_round_seconds(first_byte_off)
        late = best_round_seconds(last_byte_off)
        ratio = early / late
        assert 0.5 < ratio < 2.0, f"first-byte {early:.4f}s vs last-byte {late:.4f}s"


# ---------------------------------------------------------------------------
# TestPasswordSecretDecode
# ---------------------------------------------------------------------------


class TestPasswordSecretDecode:
    def test_encode_decode_pair(self) -> None:
        secret = PasswordSecret(salt="ab12", hash="cd34")
        assert secret.encode() == "ab12-cd34"
        assert PasswordSecret.decode("ab12-cd34") == secret

    @pytest.mark.parametrize(
        "raw",
        ["", "nodelimiter", "ab-cd-ef", "-cd34", "ab12-", "xy12-cd34", "ab12-cd3", "ab12-cd 4"],
    )
    def test_malformed_values_raise_corrupt_data(self, raw: str) -> None:
        with pytest.raises(CorruptDataError):
            PasswordSecret.decode(raw)


# ---------------------------------------------------------------------------
# TestIdsAndTimestamps
# ---------------------------------------------------------------------------


class TestIdsAndTimestamps:
    def test_now_format(self) -> None:
        assert re.fullmatch(r"\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}", now())

    def test_now_month_is_one_based(self) -> None:
        """January must print as 01, not 00."""
        month = int(now()[5:7])
        assert 1 <= month <= 12

    def test_fresh_ids_are_unique_uuid4(self) -> None:
        ids = {fresh_id() for _ in range(100)}
        assert len(ids) == 100
        assert all(re.fullmatch(r"[0-9a-f-]{36}", i) and i[14] == "4" for i in ids)

# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for password hashing utilities.

Tests the PasswordHasher class and convenience functions.
"""

import pytest

from fieldservice.domains.auth.password import (
    PasswordHasher,
    hash_password,
    verify_password,
)


@pytest.fixture
def hasher() -> PasswordHasher:
    """Hasher with the minimum bcrypt cost to keep tests fast."""
    return PasswordHasher(rounds=4)


class TestPasswordHasher:
    """Tests for PasswordHasher class."""

    def test_hash_password_returns_bcrypt_hash(self, hasher: PasswordHasher) -> None:
        """Test that hashing returns a bcrypt hash string."""
        hashed = hasher.hash("test_password_123")

        assert hashed.startswith("$2b$04$")
        assert len(hashed) == 60

    def test_hash_produces_different_hashes_for_same_password(
        self,
        hasher: PasswordHasher,
    ) -> None:
        """Test that hashing the same password produces different hashes (due to salt)."""
        assert hasher.hash("test_password_123") != hasher.hash("test_password_123")

    def test_verify_correct_password(self, hasher: PasswordHasher) -> None:
        hashed = hasher.hash("correct_password")

        assert hasher.verify("correct_password", hashed) is True

    def test_verify_incorrect_password(self, hasher: PasswordHasher) -> None:
        hashed = hasher.hash("correct_password")

        assert hasher.verify("wrong_password", hashed) is False

    def test_empty_password_cannot_be_hashed(self, hasher: PasswordHasher) -> None:
        with pytest.raises(ValueError):
            hasher.hash("")

    @pytest.mark.parametrize("stored", [None, "", "bm90LWEtYmNyeXB0LWhhc2g="])
    def test_verify_rejects_missing_or_foreign_hash(
        self,
        hasher: PasswordHasher,
        stored: str | None,
    ) -> None:
        """Test that rows without a bcrypt hash never verify."""
        assert hasher.verify("password", stored) is False

    def test_needs_rehash_for_cheaper_hash(self) -> None:
        """Test that a hash below the configured cost is flagged."""
        cheap = PasswordHasher(rounds=4).hash("password")

        assert PasswordHasher(rounds=5).needs_rehash(cheap) is True
        assert PasswordHasher(rounds=4).needs_rehash(cheap) is False

    def test_needs_rehash_for_malformed_hash(self, hasher: PasswordHasher) -> None:
        assert hasher.needs_rehash("plaintext") is True


class TestPasswordFunctions:
    """Tests for the module-level helpers."""

    def test_hash_and_verify(self) -> None:
        hashed = hash_password("s3cret-pass")

        assert verify_password("s3cret-pass", hashed) is True
        assert verify_password("other-pass", hashed) is False

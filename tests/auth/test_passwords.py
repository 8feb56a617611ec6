"""
Unit tests for password hashing and reset tokens
"""

import pytest

from sickfits.auth.passwords import generate_reset_token, hash_password, verify_password


class TestPasswordHashing:
    """Tests for bcrypt password helpers."""

    @pytest.mark.asyncio
    async def test_hash_is_not_plaintext(self):
        hashed = await hash_password("dogs")
        assert hashed != "dogs"
        assert hashed.startswith("$2")

    @pytest.mark.asyncio
    async def test_verify_matches_original_password(self):
        hashed = await hash_password("dogs")
        assert await verify_password("dogs", hashed) is True
        assert await verify_password("cats", hashed) is False

    @pytest.mark.asyncio
    async def test_same_password_hashes_differently(self):
        assert await hash_password("dogs") != await hash_password("dogs")

    @pytest.mark.asyncio
    async def test_verify_against_non_bcrypt_value(self):
        assert await verify_password("dogs", "plaintext") is False


class TestResetToken:
    """Tests for generate_reset_token."""

    def test_is_40_hex_characters(self):
        token = generate_reset_token()
        assert len(token) == 40
        int(token, 16)

    def test_tokens_are_unique(self):
        assert len({generate_reset_token() for _ in range(50)}) == 50

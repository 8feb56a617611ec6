"""Password hashing and reset-token generation."""

from __future__ import annotations

import asyncio
import secrets

import bcrypt

from ..config import settings

RESET_TOKEN_BYTES = 20


def _hash(password: str, rounds: int) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def _check(password: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Stored value is not a bcrypt hash
        return False


async def hash_password(password: str, rounds: int | None = None) -> str:
    """Hash a plaintext password with bcrypt.

    Hashing runs in a worker thread so the event loop is not blocked by the
    adaptive cost factor.
    """
    return await asyncio.to_thread(_hash, password, rounds or settings.bcrypt_rounds)


async def verify_password(password: str, hashed: str) -> bool:
    """Check a plaintext password against a stored bcrypt hash in constant time."""
    return await asyncio.to_thread(_check, password, hashed)


def generate_reset_token() -> str:
    """Return a random, hex-encoded password reset token."""
    return secrets.token_hex(RESET_TOKEN_BYTES)

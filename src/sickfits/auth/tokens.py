"""Signed session tokens carried in the session cookie."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from uuid import UUID

import jwt
from jwt.exceptions import InvalidTokenError

from ..config import settings
from ..errors import AuthError
from ..logging import get_logger

logger = get_logger(__name__)


class SessionTokenIssuer:
    """Issues and verifies HMAC-signed JWTs embedding the user id."""

    def __init__(
        self,
        secret_key: str,
        algorithm: str = "HS256",
        issuer: str = "sickfits",
        audience: str = "sickfits-api",
        lifetime_seconds: int = 60 * 60 * 24 * 365,
    ):
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.issuer = issuer
        self.audience = audience
        self.lifetime_seconds = lifetime_seconds

    def issue(self, user_id: UUID) -> str:
        """Sign a session token for the given user."""
        now = datetime.now(UTC)
        payload = {
            "iss": self.issuer,
            "aud": self.audience,
            "iat": now,
            "exp": now + timedelta(seconds=self.lifetime_seconds),
            "sub": str(user_id),
        }
        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

    def verify(self, token: str) -> UUID:
        """Verify a session token and return the embedded user id.

        Raises:
            AuthError: If the token is malformed, forged, or expired
        """
        try:
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                issuer=self.issuer,
                audience=self.audience,
                options={"verify_exp": True, "verify_iat": True},
            )
        except InvalidTokenError as e:
            logger.warning("Session token validation failed", error=str(e))
            raise AuthError("Invalid session token") from e

        subject = payload.get("sub")
        try:
            return UUID(subject)
        except (TypeError, ValueError) as e:
            raise AuthError("Invalid session token") from e


def get_token_issuer() -> SessionTokenIssuer:
    """Build an issuer from the current settings."""
    return SessionTokenIssuer(
        secret_key=settings.app_secret,
        algorithm=settings.jwt_algorithm,
        issuer=settings.jwt_issuer,
        audience=settings.jwt_audience,
        lifetime_seconds=settings.cookie_max_age,
    )


def issue_session_token(user_id: UUID) -> str:
    return get_token_issuer().issue(user_id)


def decode_session_token(token: str) -> UUID:
    return get_token_issuer().verify(token)


def read_session_user_id(token: str) -> UUID | None:
    """Like decode_session_token, but returns None for unusable tokens."""
    try:
        return decode_session_token(token)
    except AuthError:
        return None

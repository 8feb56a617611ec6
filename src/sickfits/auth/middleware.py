"""Resolve the caller's session from the incoming request."""

from __future__ import annotations

from fastapi import Request

from ..config import settings
from ..errors import AuthError
from ..logging import get_logger
from .context import ANONYMOUS, AuthContext
from .tokens import decode_session_token

logger = get_logger(__name__)


async def get_auth_context(request: Request) -> AuthContext:
    """
    Extract the authentication context from the session cookie.

    Requests without a cookie, or with a token that fails verification, are
    treated as anonymous; resolvers decide whether that is acceptable.
    """
    token = request.cookies.get(settings.cookie_name)
    if not token:
        return ANONYMOUS

    try:
        user_id = decode_session_token(token)
    except AuthError:
        logger.info("Ignoring invalid session cookie", path=request.url.path)
        return ANONYMOUS

    return AuthContext(user_id=user_id, token=token)

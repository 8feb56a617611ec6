"""Session cookie channel on the outgoing response."""

from __future__ import annotations

from uuid import UUID

from starlette.responses import Response

from ..config import settings
from .tokens import issue_session_token


def set_session_cookie(response: Response, token: str) -> None:
    """Attach the session token as an HTTP-only cookie."""
    response.set_cookie(
        key=settings.cookie_name,
        value=token,
        max_age=settings.cookie_max_age,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="lax",
    )


def clear_session_cookie(response: Response) -> None:
    """Expire the session cookie on the client."""
    response.delete_cookie(
        key=settings.cookie_name,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="lax",
    )


def start_session(response: Response, user_id: UUID) -> str:
    """Issue a session token for the user and send it back as a cookie."""
    token = issue_session_token(user_id)
    set_session_cookie(response, token)
    return token

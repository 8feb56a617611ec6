"""Session authentication for Sick Fits."""

from .context import ANONYMOUS, AuthContext
from .cookies import clear_session_cookie, set_session_cookie, start_session
from .middleware import get_auth_context
from .passwords import generate_reset_token, hash_password, verify_password
from .tokens import decode_session_token, issue_session_token

__all__ = [
    "ANONYMOUS",
    "AuthContext",
    "clear_session_cookie",
    "decode_session_token",
    "generate_reset_token",
    "get_auth_context",
    "hash_password",
    "issue_session_token",
    "set_session_cookie",
    "start_session",
    "verify_password",
]

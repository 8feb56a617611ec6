"""
Structured logging for the storefront API
"""

import logging
import secrets
import sys
from collections.abc import MutableMapping
from typing import Any

import structlog
from fastapi import Request

# Event keys whose values must never reach a log sink
REDACTED_FIELDS = frozenset(
    {"password", "confirm_password", "token", "reset_token", "app_secret", "authorization"}
)

# Chatty third-party loggers and the level they are capped at
_NOISY_LOGGERS = {
    "aiosmtplib": logging.WARNING,
    "httpx": logging.WARNING,
    "httpcore": logging.WARNING,
}


def redact_secrets(
    logger: Any, method_name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """Replace credential values in an event with a placeholder."""
    _ = logger, method_name

    for key in REDACTED_FIELDS.intersection(event_dict):
        event_dict[key] = "[REDACTED]"
    return event_dict


def configure_logging(debug: bool = False, log_level: str | None = None) -> None:
    """Route stdlib and structlog output through one processor chain.

    Args:
        debug: Pretty console output when True, one JSON object per line otherwise
        log_level: Explicit level name; defaults to DEBUG in debug mode, else INFO
    """
    level = logging.getLevelName(log_level.upper()) if log_level else None
    if not isinstance(level, int):
        level = logging.DEBUG if debug else logging.INFO

    logging.basicConfig(level=level, stream=sys.stdout, format="%(message)s", force=True)
    for name, cap in _NOISY_LOGGERS.items():
        logging.getLogger(name).setLevel(max(level, cap))

    renderer: Any = (
        structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())
        if debug
        else structlog.processors.JSONRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            redact_secrets,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def generate_request_id() -> str:
    """Short random id used to correlate the log lines of one request."""
    return secrets.token_urlsafe(9)


def set_request_context(request_id: str | None = None, user_id: str | None = None) -> str:
    """Bind the request id (and the caller, when known) to every log line of this task.

    Returns:
        The request id in effect
    """
    request_id = request_id or generate_request_id()
    structlog.contextvars.bind_contextvars(request_id=request_id)
    if user_id is not None:
        structlog.contextvars.bind_contextvars(user_id=user_id)
    return request_id


def clear_request_context() -> None:
    structlog.contextvars.clear_contextvars()


def get_request_id() -> str | None:
    return structlog.contextvars.get_contextvars().get("request_id")


def extract_user_id_from_request(request: Request) -> str | None:
    """User id from a valid session cookie, for tagging log lines only.

    Authorization never relies on this; resolvers use the auth context.
    """
    from .auth.tokens import read_session_user_id
    from .config import settings

    token = request.cookies.get(settings.cookie_name)
    if not token:
        return None

    user_id = read_session_user_id(token)
    return str(user_id) if user_id else None

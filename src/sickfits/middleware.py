"""
Request logging middleware
"""

import json
import re
import time
from collections.abc import Callable
from typing import Any

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from .logging import (
    clear_request_context,
    extract_user_id_from_request,
    get_logger,
    set_request_context,
)

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

# Substrings that mark a query parameter as sensitive
SENSITIVE_KEYS = ("password", "token", "secret", "auth", "key", "jwt", "session", "cookie")

# GraphQL payload fields that may carry credentials in variables or literals
GRAPHQL_PAYLOAD_KEYS = ("query", "variables", "extensions")

_OPERATION_RE = re.compile(r"\b(query|mutation)\s+(\w+)")


def sanitize_query_params(params: dict[str, Any], graphql: bool = False) -> dict[str, Any]:
    """Copy of ``params`` safe to log.

    Args:
        params: Query parameters of the request
        graphql: Also hide GraphQL payload fields (GET /graphql)
    """
    sanitized = {}
    for key, value in params.items():
        lowered = key.lower()
        hidden = any(s in lowered for s in SENSITIVE_KEYS) or (
            graphql and key in GRAPHQL_PAYLOAD_KEYS
        )
        sanitized[key] = "[REDACTED]" if hidden else value
    return sanitized


def _operation_from_document(document: Any) -> str | None:
    if not isinstance(document, str) or not document:
        return None
    if "__schema" in document or "IntrospectionQuery" in document:
        return "__introspection"

    match = _OPERATION_RE.search(document)
    if not match:
        return "unnamed_operation"
    kind, name = match.groups()
    return f"mutation:{name}" if kind == "mutation" else name


async def extract_graphql_operation_name(request: Request) -> str | None:
    """Operation name of a /graphql request, for log correlation.

    Prefers the explicit ``operationName`` and falls back to the first named
    operation in the document.
    """
    if request.url.path != "/graphql":
        return None

    if request.method == "GET":
        payload: Any = dict(request.query_params)
    elif request.method == "POST":
        body = await request.body()
        if not body:
            return None
        try:
            payload = json.loads(body)
        except (json.JSONDecodeError, UnicodeDecodeError):
            return None
    else:
        return None

    if not isinstance(payload, dict):
        return None

    name = payload.get("operationName")
    if isinstance(name, str) and name:
        return name
    return _operation_from_document(payload.get("query"))


class LoggingContextMiddleware(BaseHTTPMiddleware):
    """Tag every log line of a request and log its start, outcome and duration."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = set_request_context(
            request_id=request.headers.get(REQUEST_ID_HEADER),
            user_id=extract_user_id_from_request(request),
        )
        started = time.perf_counter()

        try:
            operation = await extract_graphql_operation_name(request)
            query_params = (
                sanitize_query_params(
                    dict(request.query_params), graphql=request.url.path == "/graphql"
                )
                if request.query_params
                else None
            )

            logger.info(
                "Request started",
                method=request.method,
                path=request.url.path,
                query_params=query_params,
                graphql_operation=operation,
                remote_addr=request.client.host if request.client else None,
            )

            response = await call_next(request)
            response.headers[REQUEST_ID_HEADER] = request_id

            logger.info(
                "Request completed",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                graphql_operation=operation,
                duration_ms=round((time.perf_counter() - started) * 1000, 1),
            )
            return response

        except Exception as e:
            logger.error(
                "Request failed",
                method=request.method,
                path=request.url.path,
                error=str(e),
                duration_ms=round((time.perf_counter() - started) * 1000, 1),
            )
            raise

        finally:
            clear_request_context()

"""
Shared access control logic for GraphQL resolvers
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING, Any
from uuid import UUID

import strawberry
from sqlalchemy.ext.asyncio import AsyncSession

from ..auth.context import ANONYMOUS, AuthContext
from ..dbmodels import Users
from ..errors import AuthError
from ..logging import get_logger
from .types.user import Permission

if TYPE_CHECKING:
    from starlette.responses import Response

    from ..mail import Mailer
    from ..payments import StripeGateway

logger = get_logger(__name__)


def get_auth_context_from_info(info: strawberry.Info) -> AuthContext:
    """
    Extract the caller's auth context from the GraphQL info object.

    Missing context is treated as an anonymous caller.
    """
    auth_context = info.context.get("auth")
    if auth_context is None:
        logger.error("Auth context not found in GraphQL context")
        return ANONYMOUS
    return auth_context


def get_response_from_info(info: strawberry.Info) -> Response:
    """Get the outgoing response used as the session cookie channel."""
    response = info.context.get("response")
    if response is None:
        raise RuntimeError("Response not found in GraphQL context")
    return response


def get_mailer_from_info(info: strawberry.Info) -> Mailer:
    mailer = info.context.get("mailer")
    if mailer is None:
        from ..mail import get_mailer

        mailer = get_mailer()
    return mailer


def get_payments_from_info(info: strawberry.Info) -> StripeGateway:
    payments = info.context.get("payments")
    if payments is None:
        from ..payments import get_payment_gateway

        payments = get_payment_gateway()
    return payments


def require_authenticated(
    auth_context: AuthContext | None, message: str = "You must be logged in to do that!"
) -> UUID:
    """Return the caller's user id, or raise AuthError for anonymous requests."""
    if not auth_context or not auth_context.is_authenticated or auth_context.user_id is None:
        raise AuthError(message)
    return auth_context.user_id


async def load_caller(session: AsyncSession, auth_context: AuthContext | None) -> Users:
    """Load the authenticated caller's user row.

    A valid token for a user that no longer exists counts as unauthenticated.
    """
    user_id = require_authenticated(auth_context)
    caller = await session.get(Users, user_id)
    if caller is None:
        logger.warning("Session refers to a missing user", user_id=str(user_id))
        raise AuthError("You must be logged in to do that!")
    return caller


def _labels(permissions: Iterable[Permission | str]) -> list[str]:
    return [p.value if isinstance(p, Permission) else str(p) for p in permissions]


def has_permission(user: Any, required_permissions: Iterable[Permission | str]) -> None:
    """
    Guard that the user holds at least one of the required permissions.

    Raises:
        AuthError: If the user's permission set does not intersect the required set
    """
    needed = _labels(required_permissions)
    held = list(user.permissions or [])

    if not set(needed) & set(held):
        raise AuthError(
            f"You do not have sufficient permissions: {', '.join(needed) or 'owner only'}. "
            f"You have: {', '.join(held) or 'none'}"
        )


def require_owner_or_permission(
    caller: Any,
    owner_id: UUID,
    required_permissions: Iterable[Permission | str] = (),
) -> None:
    """
    Allow the resource owner, or any caller holding one of the required permissions.

    With no required permissions only the owner passes.

    Raises:
        AuthError: If the caller is neither the owner nor sufficiently privileged
    """
    if caller.id == owner_id:
        return

    try:
        has_permission(caller, required_permissions)
    except AuthError as e:
        logger.info("Access denied", user_id=str(caller.id), owner_id=str(owner_id))
        raise AuthError("You don't have permission to do that!") from e

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID

import strawberry
from sqlalchemy import select

from ...database.connection import get_async_session
from ...dbmodels import Users
from ...errors import NotFoundError
from ...logging import get_logger
from ..access_control import get_auth_context_from_info, has_permission, load_caller
from ..types.user import Permission

if TYPE_CHECKING:
    from ..types.user import User

logger = get_logger(__name__)

USER_ADMIN_PERMISSIONS = [Permission.ADMIN, Permission.PERMISSIONUPDATE]


def to_user_type(user: Users) -> User:
    from ..types.user import User as UserType

    known = {p.value for p in Permission}
    return UserType(
        id=user.id,
        name=user.name,
        email=user.email,
        permissions=[Permission(p) for p in user.permissions or [] if p in known],
    )


# Query resolvers
async def resolve_users(info: strawberry.Info) -> list[User]:
    """
    List every user, for the permissions admin screen.

    Requires ADMIN or PERMISSIONUPDATE.
    """
    auth_context = get_auth_context_from_info(info)

    async with get_async_session() as session:
        caller = await load_caller(session, auth_context)
        has_permission(caller, USER_ADMIN_PERMISSIONS)

        result = await session.execute(select(Users).order_by(Users.created_at, Users.email))
        return [to_user_type(user) for user in result.scalars().all()]


# Mutation resolvers
async def update_permissions(
    info: strawberry.Info, user_id: UUID, permissions: list[Permission]
) -> User:
    """
    Replace a user's permission set.

    The caller must hold ADMIN or PERMISSIONUPDATE. The new list overwrites the
    old one; nothing is merged.
    """
    auth_context = get_auth_context_from_info(info)

    async with get_async_session() as session:
        caller = await load_caller(session, auth_context)
        has_permission(caller, USER_ADMIN_PERMISSIONS)

        target = await session.get(Users, user_id)
        if target is None:
            raise NotFoundError(f"No user found for id {user_id}")

        target.permissions = list(dict.fromkeys(p.value for p in permissions))
        await session.flush()

        logger.info(
            "Permissions updated",
            target_user_id=str(target.id),
            updated_by=str(caller.id),
            permissions=target.permissions,
        )

        return to_user_type(target)

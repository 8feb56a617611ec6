"""
User GraphQL type definitions
"""

from enum import Enum
from typing import TYPE_CHECKING, Annotated
from uuid import UUID

import strawberry

if TYPE_CHECKING:
    from .cart import CartItem


@strawberry.enum
class Permission(Enum):
    """Permission labels a user can hold."""

    ADMIN = "ADMIN"
    USER = "USER"
    ITEMCREATE = "ITEMCREATE"
    ITEMUPDATE = "ITEMUPDATE"
    ITEMDELETE = "ITEMDELETE"
    PERMISSIONUPDATE = "PERMISSIONUPDATE"


@strawberry.type
class User:
    """User type for GraphQL API."""

    id: UUID
    name: str
    email: str
    permissions: list[Permission]

    @strawberry.field
    async def cart(
        self, info: strawberry.Info
    ) -> list[Annotated["CartItem", strawberry.lazy(".cart")]]:
        """Get the cart lines of this user (only visible to the user themselves)."""
        from ..resolvers.cart import resolve_user_cart

        return await resolve_user_cart(self, info)

"""
Root GraphQL query definitions
"""

from uuid import UUID

import strawberry

from ..types.item import Item
from ..types.order import Order
from ..types.user import User


@strawberry.type
class Query:
    """Root GraphQL query type."""

    @strawberry.field
    async def me(self, info: strawberry.Info) -> User | None:
        """Get the current signed-in user."""
        from ..resolvers.auth import resolve_current_user

        return await resolve_current_user(info)

    @strawberry.field
    async def users(self, info: strawberry.Info) -> list[User]:
        """List all users (permission admins only)."""
        from ..resolvers.user import resolve_users

        return await resolve_users(info)

    @strawberry.field
    async def item(self, info: strawberry.Info, id: UUID) -> Item | None:
        """Get an item by ID."""
        from ..resolvers.item import resolve_item_by_id

        return await resolve_item_by_id(info, id)

    @strawberry.field
    async def items(
        self,
        info: strawberry.Info,
        limit: int | None = 50,
        offset: int | None = 0,
    ) -> list[Item]:
        """List items for sale."""
        from ..resolvers.item import resolve_items

        return await resolve_items(info, limit or 50, offset or 0)

    @strawberry.field
    async def order(self, info: strawberry.Info, id: UUID) -> Order:
        """Get one of the caller's orders."""
        from ..resolvers.order import resolve_order_by_id

        return await resolve_order_by_id(info, id)

    @strawberry.field
    async def orders(self, info: strawberry.Info) -> list[Order]:
        """List the caller's orders, newest first."""
        from ..resolvers.order import resolve_my_orders

        return await resolve_my_orders(info)

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID, uuid4

import strawberry
from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ...database.connection import get_async_session
from ...dbmodels import CartItems, Items
from ...errors import NotFoundError
from ...logging import get_logger
from ..access_control import (
    get_auth_context_from_info,
    load_caller,
    require_authenticated,
    require_owner_or_permission,
)
from .item import to_item_type

if TYPE_CHECKING:
    from ..types.cart import CartItem
    from ..types.user import User

logger = get_logger(__name__)

_INSERT_BY_DIALECT = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def to_cart_item_type(cart_item: CartItems, item: Items | None) -> CartItem:
    from ..types.cart import CartItem as CartItemType

    return CartItemType(
        id=cart_item.id,
        user_id=cart_item.user_id,
        quantity=cart_item.quantity,
        item=to_item_type(item) if item else None,
    )


async def upsert_cart_item(session: AsyncSession, user_id: UUID, item_id: UUID) -> UUID:
    """
    Add one unit of an item to a user's cart in a single statement.

    Inserts a new line with quantity 1, or bumps the quantity of the existing
    line through the (user_id, item_id) unique constraint, so concurrent adds
    can never create a second row for the same pair.

    Returns:
        The id of the inserted or updated cart line
    """
    dialect = session.get_bind().dialect.name
    insert = _INSERT_BY_DIALECT.get(dialect)
    if insert is None:
        raise RuntimeError(f"Cart upsert is not supported on the {dialect} dialect")

    stmt = insert(CartItems).values(id=uuid4(), user_id=user_id, item_id=item_id, quantity=1)
    stmt = stmt.on_conflict_do_update(
        index_elements=["user_id", "item_id"],
        set_={"quantity": CartItems.quantity + 1},
    ).returning(CartItems.id)

    result = await session.execute(stmt)
    return result.scalar_one()


# Field resolvers
async def resolve_user_cart(user: User, info: strawberry.Info) -> list[CartItem]:
    """Cart lines of a user. Other users' carts are never exposed."""
    auth_context = get_auth_context_from_info(info)
    if not auth_context.is_authenticated or auth_context.user_id != user.id:
        return []

    async with get_async_session() as session:
        stmt = (
            select(CartItems)
            .where(CartItems.user_id == user.id)
            .options(selectinload(CartItems.item))
            .order_by(CartItems.created_at, CartItems.id)
        )
        result = await session.execute(stmt)
        return [to_cart_item_type(line, line.item) for line in result.scalars().all()]


# Mutation resolvers
async def add_to_cart(info: strawberry.Info, id: UUID) -> CartItem:
    """Put one more unit of an item in the caller's cart."""
    auth_context = get_auth_context_from_info(info)
    user_id = require_authenticated(auth_context, "You must be signed in to add to your cart")

    async with get_async_session() as session:
        item = await session.get(Items, id)
        if item is None:
            raise NotFoundError("Item not found")

        cart_item_id = await upsert_cart_item(session, user_id, item.id)
        cart_item = await session.get(CartItems, cart_item_id, populate_existing=True)
        if cart_item is None:
            raise RuntimeError("Cart line disappeared after upsert")

        logger.info(
            "Cart item upserted",
            cart_item_id=str(cart_item.id),
            item_id=str(item.id),
            quantity=cart_item.quantity,
        )

        return to_cart_item_type(cart_item, item)


async def remove_from_cart(info: strawberry.Info, id: UUID) -> CartItem:
    """Remove a cart line owned by the caller and return it."""
    auth_context = get_auth_context_from_info(info)

    async with get_async_session() as session:
        caller = await load_caller(session, auth_context)

        stmt = select(CartItems).where(CartItems.id == id).options(selectinload(CartItems.item))
        result = await session.execute(stmt)
        cart_item = result.scalar_one_or_none()
        if cart_item is None:
            raise NotFoundError("No CartItem Found!")

        require_owner_or_permission(caller, cart_item.user_id)

        removed = to_cart_item_type(cart_item, cart_item.item)
        await session.delete(cart_item)
        await session.flush()

        logger.info("Cart item removed", cart_item_id=str(id), user_id=str(caller.id))

        return removed

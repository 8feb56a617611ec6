from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID

import strawberry
from sqlalchemy import select

from ...database.connection import get_async_session
from ...dbmodels import Items
from ...errors import NotFoundError, ValidationError
from ...logging import get_logger
from ..access_control import (
    get_auth_context_from_info,
    load_caller,
    require_owner_or_permission,
)
from ..types.user import Permission

if TYPE_CHECKING:
    from ..mutations.root import CreateItemInput, UpdateItemInput
    from ..types.item import Item

logger = get_logger(__name__)


def to_item_type(item: Items) -> Item:
    from ..types.item import Item as ItemType

    return ItemType(
        id=item.id,
        user_id=item.user_id,
        title=item.title,
        description=item.description,
        image=item.image,
        large_image=item.large_image,
        price=item.price,
        created_at=item.created_at,
        updated_at=item.updated_at,
    )


def _check_price(price: int | None) -> None:
    if price is not None and price < 0:
        raise ValidationError("Price cannot be negative")


# Query resolvers
async def resolve_item_by_id(info: strawberry.Info, id: UUID) -> Item | None:
    async with get_async_session() as session:
        item = await session.get(Items, id)
        return to_item_type(item) if item else None


async def resolve_items(info: strawberry.Info, limit: int, offset: int) -> list[Item]:
    """List the catalogue, newest first."""
    async with get_async_session() as session:
        stmt = (
            select(Items)
            .order_by(Items.created_at.desc(), Items.id)
            .limit(limit)
            .offset(offset)
        )
        result = await session.execute(stmt)
        return [to_item_type(item) for item in result.scalars().all()]


# Mutation resolvers
async def create_item(info: strawberry.Info, input: CreateItemInput) -> Item:
    """
    Create a new item.

    The authenticated user becomes the owner of the item.
    """
    auth_context = get_auth_context_from_info(info)
    _check_price(input.price)

    async with get_async_session() as session:
        caller = await load_caller(session, auth_context)

        new_item = Items(
            user_id=caller.id,
            title=input.title,
            description=input.description,
            image=input.image,
            large_image=input.large_image,
            price=input.price,
        )
        session.add(new_item)
        await session.flush()
        await session.refresh(new_item)

        logger.info(
            "Item created",
            item_id=str(new_item.id),
            user_id=str(caller.id),
            title=new_item.title,
        )

        return to_item_type(new_item)


async def update_item(info: strawberry.Info, input: UpdateItemInput) -> Item:
    """
    Update an existing item.

    Only the owner or a user with ADMIN or ITEMUPDATE can update it.
    """
    auth_context = get_auth_context_from_info(info)
    _check_price(input.price)

    async with get_async_session() as session:
        caller = await load_caller(session, auth_context)

        item = await session.get(Items, input.id)
        if item is None:
            raise NotFoundError("Item not found")

        require_owner_or_permission(
            caller, item.user_id, [Permission.ADMIN, Permission.ITEMUPDATE]
        )

        updates = {
            "title": input.title,
            "description": input.description,
            "price": input.price,
        }
        for field, value in updates.items():
            if value is not None:
                setattr(item, field, value)

        await session.flush()
        await session.refresh(item)

        logger.info(
            "Item updated",
            item_id=str(item.id),
            user_id=str(caller.id),
            updated_fields=[k for k, v in updates.items() if v is not None],
        )

        return to_item_type(item)


async def delete_item(info: strawberry.Info, id: UUID) -> Item:
    """
    Delete an item and return what was deleted.

    Only the owner or a user with ADMIN or ITEMDELETE can delete it.
    """
    auth_context = get_auth_context_from_info(info)

    async with get_async_session() as session:
        caller = await load_caller(session, auth_context)

        item = await session.get(Items, id)
        if item is None:
            raise NotFoundError("Item not found")

        require_owner_or_permission(
            caller, item.user_id, [Permission.ADMIN, Permission.ITEMDELETE]
        )

        deleted = to_item_type(item)
        await session.delete(item)
        await session.flush()

        logger.info("Item deleted", item_id=str(id), user_id=str(caller.id))

        return deleted

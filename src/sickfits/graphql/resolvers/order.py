from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING
from uuid import UUID

import strawberry
from sqlalchemy import delete, select
from sqlalchemy.orm import selectinload

from ...config import settings
from ...database.connection import get_async_session
from ...dbmodels import CartItems, OrderItems, Orders
from ...errors import NotFoundError, PaymentError, ValidationError
from ...logging import get_logger
from ..access_control import (
    get_auth_context_from_info,
    get_payments_from_info,
    load_caller,
    require_authenticated,
    require_owner_or_permission,
)
from ..types.user import Permission

if TYPE_CHECKING:
    from ..types.order import Order

logger = get_logger(__name__)


def to_order_type(order: Orders, items: Iterable[OrderItems]) -> Order:
    from ..types.order import Order as OrderType
    from ..types.order import OrderItem as OrderItemType

    return OrderType(
        id=order.id,
        user_id=order.user_id,
        total=order.total,
        charge=order.charge,
        created_at=order.created_at,
        items=[
            OrderItemType(
                id=line.id,
                title=line.title,
                description=line.description,
                image=line.image,
                large_image=line.large_image,
                price=line.price,
                quantity=line.quantity,
            )
            for line in items
        ],
    )


def calculate_order_total(cart: Iterable[CartItems]) -> int:
    """Sum of price times quantity over the cart lines, in cents."""
    return sum(line.item.price * line.quantity for line in cart)


# Query resolvers
async def resolve_order_by_id(info: strawberry.Info, id: UUID) -> Order:
    """An order, visible to the buyer or an ADMIN."""
    auth_context = get_auth_context_from_info(info)

    async with get_async_session() as session:
        caller = await load_caller(session, auth_context)

        stmt = select(Orders).where(Orders.id == id).options(selectinload(Orders.items))
        result = await session.execute(stmt)
        order = result.scalar_one_or_none()
        if order is None:
            raise NotFoundError("Order not found")

        require_owner_or_permission(caller, order.user_id, [Permission.ADMIN])

        return to_order_type(order, order.items)


async def resolve_my_orders(info: strawberry.Info) -> list[Order]:
    auth_context = get_auth_context_from_info(info)
    user_id = require_authenticated(auth_context)

    async with get_async_session() as session:
        stmt = (
            select(Orders)
            .where(Orders.user_id == user_id)
            .options(selectinload(Orders.items))
            .order_by(Orders.created_at.desc(), Orders.id)
        )
        result = await session.execute(stmt)
        return [to_order_type(order, order.items) for order in result.scalars().all()]


# Mutation resolvers
async def create_order(info: strawberry.Info, token: str) -> Order:
    """
    Check out the caller's cart.

    1. Recalculate the total from current item prices
    2. Charge the card token through the payment gateway
    3. Snapshot each cart line as an OrderItem, create the Order and clear
       the charged cart lines, all in one transaction

    If step 3 fails the charge is refunded before the error propagates. Step 3
    also fails when a charged line no longer matches the cart, for example
    because a parallel checkout already cleared it.
    """
    auth_context = get_auth_context_from_info(info)
    user_id = require_authenticated(
        auth_context, "You must be signed in to complete this order."
    )
    payments = get_payments_from_info(info)

    async with get_async_session() as session:
        stmt = (
            select(CartItems)
            .where(CartItems.user_id == user_id)
            .options(selectinload(CartItems.item))
            .order_by(CartItems.created_at, CartItems.id)
        )
        result = await session.execute(stmt)
        cart = list(result.scalars().all())

    if not cart:
        raise ValidationError("Your cart is empty")

    amount = calculate_order_total(cart)
    logger.info("Charging for order", user_id=str(user_id), amount=amount, lines=len(cart))

    charge = await payments.charge(amount, settings.payment_currency, token)

    try:
        async with get_async_session() as session:
            order_items = [
                OrderItems(
                    user_id=user_id,
                    title=line.item.title,
                    description=line.item.description,
                    image=line.item.image,
                    large_image=line.item.large_image,
                    price=line.item.price,
                    quantity=line.quantity,
                )
                for line in cart
            ]
            order = Orders(user_id=user_id, total=amount, charge=charge.id, items=order_items)
            session.add(order)

            # Each charged line must still be in the cart with the charged quantity
            cleared = 0
            for line in cart:
                deleted = await session.execute(
                    delete(CartItems).where(
                        CartItems.id == line.id,
                        CartItems.user_id == user_id,
                        CartItems.quantity == line.quantity,
                    )
                )
                cleared += deleted.rowcount
            if cleared != len(cart):
                raise ValidationError("Your cart changed during checkout")

            await session.flush()
            await session.refresh(order, attribute_names=["created_at"])
    except Exception as e:
        logger.error(
            "Order persistence failed after charge, refunding",
            user_id=str(user_id),
            charge_id=charge.id,
            error=str(e),
        )
        try:
            await payments.refund(charge.id)
        except PaymentError as refund_error:
            logger.error(
                "Refund failed, manual intervention required",
                charge_id=charge.id,
                error=str(refund_error),
            )
        raise

    logger.info(
        "Order created",
        order_id=str(order.id),
        user_id=str(user_id),
        total=amount,
        charge_id=charge.id,
    )

    return to_order_type(order, order_items)

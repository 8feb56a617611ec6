"""
Tests for checkout and order queries
"""

import uuid
from unittest.mock import patch

import pytest
from sqlalchemy import select

from sickfits.database.connection import get_async_session
from sickfits.dbmodels import CartItems, OrderItems, Orders
from sickfits.errors import AuthError, NotFoundError, PaymentError, ValidationError
from sickfits.graphql.resolvers.cart import add_to_cart
from sickfits.graphql.resolvers.item import delete_item
from sickfits.graphql.resolvers.order import (
    create_order,
    resolve_my_orders,
    resolve_order_by_id,
)
from sickfits.payments import Charge


@pytest.fixture
def filled_cart(make_info, create_user, make_item):
    """A shopper with 2 x 500 and 1 x 300 in their cart."""

    async def _fill():
        shopper = await create_user(email="shopper@example.com")
        shirt = await make_item(shopper, title="Shirt", price=500)
        hat = await make_item(shopper, title="Hat", price=300)
        await add_to_cart(make_info(shopper.id), shirt.id)
        await add_to_cart(make_info(shopper.id), shirt.id)
        await add_to_cart(make_info(shopper.id), hat.id)
        return shopper

    return _fill


async def _count(model, user_id):
    async with get_async_session() as session:
        result = await session.execute(select(model).where(model.user_id == user_id))
        return len(result.scalars().all())


class TestCreateOrder:
    """Tests for create_order mutation."""

    @pytest.mark.asyncio
    async def test_charges_total_and_snapshots_cart(self, db, make_info, filled_cart, payments):
        shopper = await filled_cart()

        order = await create_order(make_info(shopper.id), token="tok_visa")

        payments.charge.assert_awaited_once_with(1300, "USD", "tok_visa")
        assert order.total == 1300
        assert order.charge == "ch_test_123"
        assert order.user_id == shopper.id
        assert order.created_at is not None
        assert {(i.title, i.price, i.quantity) for i in order.items} == {
            ("Shirt", 500, 2),
            ("Hat", 300, 1),
        }

    @pytest.mark.asyncio
    async def test_cart_is_cleared(self, db, make_info, filled_cart):
        shopper = await filled_cart()

        await create_order(make_info(shopper.id), token="tok_visa")

        assert await _count(CartItems, shopper.id) == 0
        assert await _count(Orders, shopper.id) == 1
        assert await _count(OrderItems, shopper.id) == 2

    @pytest.mark.asyncio
    async def test_empty_cart_is_not_charged(self, db, make_info, create_user, payments):
        shopper = await create_user()

        with pytest.raises(ValidationError, match="Your cart is empty"):
            await create_order(make_info(shopper.id), token="tok_visa")

        payments.charge.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_anonymous_is_rejected(self, db, make_info, payments):
        with pytest.raises(AuthError, match="You must be signed in to complete this order."):
            await create_order(make_info(), token="tok_visa")
        payments.charge.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_declined_card_keeps_cart(self, db, make_info, filled_cart, payments):
        shopper = await filled_cart()
        payments.charge.side_effect = PaymentError("Payment failed: Your card was declined.")

        with pytest.raises(PaymentError, match="declined"):
            await create_order(make_info(shopper.id), token="tok_chargeDeclined")

        assert await _count(CartItems, shopper.id) == 2
        assert await _count(Orders, shopper.id) == 0
        payments.refund.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_persistence_failure_refunds_charge(self, db, make_info, filled_cart, payments):
        shopper = await filled_cart()

        with patch(
            "sickfits.graphql.resolvers.order.OrderItems",
            side_effect=RuntimeError("disk full"),
        ):
            with pytest.raises(RuntimeError, match="disk full"):
                await create_order(make_info(shopper.id), token="tok_visa")

        payments.refund.assert_awaited_once_with("ch_test_123")
        assert await _count(CartItems, shopper.id) == 2
        assert await _count(Orders, shopper.id) == 0

    @pytest.mark.asyncio
    async def test_failed_refund_still_reraises(self, db, make_info, filled_cart, payments):
        shopper = await filled_cart()
        payments.refund.side_effect = PaymentError("Payment gateway unreachable")

        with patch(
            "sickfits.graphql.resolvers.order.OrderItems",
            side_effect=RuntimeError("disk full"),
        ):
            with pytest.raises(RuntimeError, match="disk full"):
                await create_order(make_info(shopper.id), token="tok_visa")

        payments.refund.assert_awaited_once()


async def _cart_quantities(user_id):
    async with get_async_session() as session:
        result = await session.execute(select(CartItems).where(CartItems.user_id == user_id))
        return [line.quantity for line in result.scalars().all()]


def _charge(charge_id, amount, currency):
    return Charge(id=charge_id, amount=amount, currency=currency.lower(), status="succeeded")


class TestCheckoutWhileCartChanges:
    """Tests for carts that change between charging and recording the order."""

    @pytest.mark.asyncio
    async def test_unit_added_during_charge_is_refunded_and_kept(
        self, db, make_info, create_user, make_item, payments
    ):
        shopper = await create_user()
        shirt = await make_item(shopper, price=500)
        await add_to_cart(make_info(shopper.id), shirt.id)

        async def charge_while_adding(amount, currency, source):
            await add_to_cart(make_info(shopper.id), shirt.id)
            return _charge("ch_stale", amount, currency)

        payments.charge.side_effect = charge_while_adding

        with pytest.raises(ValidationError, match="Your cart changed during checkout"):
            await create_order(make_info(shopper.id), token="tok_visa")

        payments.charge.assert_awaited_once_with(500, "USD", "tok_visa")
        payments.refund.assert_awaited_once_with("ch_stale")
        assert await _cart_quantities(shopper.id) == [2]
        assert await _count(Orders, shopper.id) == 0

    @pytest.mark.asyncio
    async def test_parallel_checkout_of_same_cart_is_refunded(
        self, db, make_info, filled_cart, payments
    ):
        shopper = await filled_cart()
        amounts = []

        async def charge_with_parallel_checkout(amount, currency, source):
            amounts.append(amount)
            if len(amounts) == 1:
                await create_order(make_info(shopper.id), token="tok_visa")
                return _charge("ch_second", amount, currency)
            return _charge("ch_first", amount, currency)

        payments.charge.side_effect = charge_with_parallel_checkout

        with pytest.raises(ValidationError, match="Your cart changed during checkout"):
            await create_order(make_info(shopper.id), token="tok_visa")

        assert amounts == [1300, 1300]
        payments.refund.assert_awaited_once_with("ch_second")

        orders = await resolve_my_orders(make_info(shopper.id))
        assert [order.charge for order in orders] == ["ch_first"]
        assert await _cart_quantities(shopper.id) == []

    @pytest.mark.asyncio
    async def test_deleted_item_leaves_cart_and_total(
        self, db, make_info, create_user, make_item, payments
    ):
        shopper = await create_user()
        shirt = await make_item(shopper, title="Shirt", price=500)
        hat = await make_item(shopper, title="Hat", price=300)
        await add_to_cart(make_info(shopper.id), shirt.id)
        await add_to_cart(make_info(shopper.id), shirt.id)
        await add_to_cart(make_info(shopper.id), hat.id)

        await delete_item(make_info(shopper.id), hat.id)
        order = await create_order(make_info(shopper.id), token="tok_visa")

        payments.charge.assert_awaited_once_with(1000, "USD", "tok_visa")
        assert [(i.title, i.quantity) for i in order.items] == [("Shirt", 2)]


class TestOrderQueries:
    """Tests for order queries."""

    @pytest.mark.asyncio
    async def test_buyer_reads_order(self, db, make_info, filled_cart):
        shopper = await filled_cart()
        created = await create_order(make_info(shopper.id), token="tok_visa")

        order = await resolve_order_by_id(make_info(shopper.id), created.id)

        assert order.id == created.id
        assert len(order.items) == 2

    @pytest.mark.asyncio
    async def test_stranger_cannot_read_order(self, db, make_info, filled_cart, create_user):
        shopper = await filled_cart()
        stranger = await create_user(email="stranger@example.com")
        created = await create_order(make_info(shopper.id), token="tok_visa")

        with pytest.raises(AuthError):
            await resolve_order_by_id(make_info(stranger.id), created.id)

    @pytest.mark.asyncio
    async def test_admin_reads_any_order(self, db, make_info, filled_cart, create_user):
        shopper = await filled_cart()
        admin = await create_user(email="admin@example.com", permissions=["ADMIN"])
        created = await create_order(make_info(shopper.id), token="tok_visa")

        order = await resolve_order_by_id(make_info(admin.id), created.id)

        assert order.total == 1300

    @pytest.mark.asyncio
    async def test_missing_order(self, db, make_info, create_user):
        user = await create_user()
        with pytest.raises(NotFoundError):
            await resolve_order_by_id(make_info(user.id), uuid.uuid4())

    @pytest.mark.asyncio
    async def test_my_orders(self, db, make_info, filled_cart):
        shopper = await filled_cart()
        await create_order(make_info(shopper.id), token="tok_visa")

        orders = await resolve_my_orders(make_info(shopper.id))

        assert len(orders) == 1
        assert orders[0].total == 1300

"""
Tests for the Stripe payment gateway client
"""

import httpx
import pytest

from sickfits.config import settings
from sickfits.errors import PaymentError
from sickfits.payments import StripeGateway, get_payment_gateway


def _gateway(handler):
    return StripeGateway(
        secret_key="sk_test_123",
        api_base="https://stripe.test",
        transport=httpx.MockTransport(handler),
    )


class TestCharge:
    """Tests for StripeGateway.charge."""

    @pytest.mark.asyncio
    async def test_posts_charge_with_bearer_key(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["authorization"]
            seen["body"] = request.content.decode()
            return httpx.Response(
                200,
                json={"id": "ch_1", "amount": 1300, "currency": "usd", "status": "succeeded"},
            )

        charge = await _gateway(handler).charge(1300, "USD", "tok_visa")

        assert charge.id == "ch_1"
        assert charge.amount == 1300
        assert charge.currency == "usd"
        assert seen["url"] == "https://stripe.test/v1/charges"
        assert seen["auth"] == "Bearer sk_test_123"
        assert "amount=1300" in seen["body"]
        assert "currency=usd" in seen["body"]
        assert "source=tok_visa" in seen["body"]

    @pytest.mark.asyncio
    async def test_declined_card_raises_with_gateway_message(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                402, json={"error": {"message": "Your card was declined.", "type": "card_error"}}
            )

        with pytest.raises(PaymentError, match="Your card was declined."):
            await _gateway(handler).charge(1300, "USD", "tok_chargeDeclined")

    @pytest.mark.asyncio
    async def test_unreachable_gateway(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(PaymentError, match="unreachable"):
            await _gateway(handler).charge(1300, "USD", "tok_visa")

    @pytest.mark.asyncio
    async def test_non_positive_amount_is_rejected(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("gateway should not be called")

        with pytest.raises(PaymentError):
            await _gateway(handler).charge(0, "USD", "tok_visa")


class TestRefund:
    """Tests for StripeGateway.refund."""

    @pytest.mark.asyncio
    async def test_refunds_charge(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/v1/refunds"
            assert "charge=ch_1" in request.content.decode()
            return httpx.Response(200, json={"id": "re_1", "charge": "ch_1"})

        assert await _gateway(handler).refund("ch_1") == "re_1"


def test_gateway_requires_secret_key(monkeypatch):
    monkeypatch.setattr(settings, "stripe_secret_key", None)
    with pytest.raises(PaymentError, match="not configured"):
        get_payment_gateway()


def test_gateway_built_from_settings(monkeypatch):
    monkeypatch.setattr(settings, "stripe_secret_key", "sk_live_abc")
    gateway = get_payment_gateway()
    assert gateway.secret_key == "sk_live_abc"
    assert gateway.api_base == "https://api.stripe.com"

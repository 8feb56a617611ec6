"""
Card payments through the Stripe REST API
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import httpx

from .config import settings
from .errors import PaymentError
from .logging import get_logger

logger = get_logger(__name__)


@dataclass
class Charge:
    """A charge accepted by the gateway."""

    id: str
    amount: int
    currency: str
    status: str


class StripeGateway:
    """Minimal Stripe client covering charges and refunds.

    Amounts are integers in the currency's minor unit (cents for USD).
    """

    def __init__(
        self,
        secret_key: str,
        api_base: str = "https://api.stripe.com",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.secret_key = secret_key
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    async def _post(self, path: str, data: dict[str, Any]) -> dict[str, Any]:
        async with httpx.AsyncClient(
            base_url=self.api_base,
            timeout=self.timeout,
            transport=self.transport,
        ) as client:
            try:
                response = await client.post(
                    path,
                    data=data,
                    headers={"Authorization": f"Bearer {self.secret_key}"},
                )
            except httpx.HTTPError as e:
                raise PaymentError(f"Payment gateway unreachable: {e}") from e

        try:
            body = response.json()
        except ValueError:
            body = {}

        if response.status_code != 200:
            message = body.get("error", {}).get("message") or response.text
            logger.warning(
                "Payment gateway rejected request",
                path=path,
                status_code=response.status_code,
                error=message,
            )
            raise PaymentError(f"Payment failed: {message}")

        return body

    async def charge(self, amount: int, currency: str, source: str) -> Charge:
        """Charge a tokenized card for ``amount`` minor units."""
        if amount <= 0:
            raise PaymentError("Charge amount must be positive")

        body = await self._post(
            "/v1/charges",
            {"amount": amount, "currency": currency.lower(), "source": source},
        )
        charge = Charge(
            id=body["id"],
            amount=body.get("amount", amount),
            currency=body.get("currency", currency.lower()),
            status=body.get("status", "succeeded"),
        )
        logger.info("Charge created", charge_id=charge.id, amount=charge.amount)
        return charge

    async def refund(self, charge_id: str) -> str:
        """Refund a charge in full and return the refund id."""
        body = await self._post("/v1/refunds", {"charge": charge_id})
        logger.info("Charge refunded", charge_id=charge_id, refund_id=body.get("id"))
        return body["id"]


def get_payment_gateway() -> StripeGateway:
    """Build a gateway from the current settings."""
    if not settings.stripe_secret_key:
        raise PaymentError("Payments are not configured")

    return StripeGateway(
        secret_key=settings.stripe_secret_key,
        api_base=settings.stripe_api_base,
        timeout=settings.payment_timeout,
    )

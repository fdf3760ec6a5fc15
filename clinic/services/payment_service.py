from pydantic import BaseModel
from typing import Optional
import logging

import httpx

from ..core.config import settings

logger = logging.getLogger(__name__)


class PaymentError(Exception):
    """Raised when the payment provider cannot create an intent."""


class PaymentIntent(BaseModel):
    id: str
    client_secret: Optional[str] = None
    amount: int
    currency: str


def to_minor_units(amount: float) -> int:
    """Consultation fees are stored in major units; the provider wants cents."""
    return int(round((amount or 0) * 100))


class PaymentService:
    def __init__(self, secret_key: Optional[str], currency: str = "usd", api_base: str = "https://api.stripe.com/v1"):
        self.secret_key = secret_key
        self.currency = currency
        self.api_base = api_base.rstrip("/")

    async def create_payment_intent(self, amount: int) -> PaymentIntent:
        """Create a payment intent for ``amount`` in the smallest currency unit."""
        if not self.secret_key:
            raise PaymentError("Payment provider is not configured")

        async with httpx.AsyncClient(timeout=10.0) as client:
            try:
                response = await client.post(
                    f"{self.api_base}/payment_intents",
                    data={
                        "amount": amount,
                        "currency": self.currency,
                        "automatic_payment_methods[enabled]": "true",
                    },
                    auth=(self.secret_key, ""),
                )
            except httpx.HTTPError as exc:
                raise PaymentError(f"Payment provider unreachable: {exc}") from exc

        if response.status_code != 200:
            raise PaymentError(
                f"Payment provider rejected intent ({response.status_code}): {response.text[:200]}"
            )

        try:
            body = response.json()
            intent_id = body["id"]
        except (ValueError, KeyError, TypeError) as exc:
            raise PaymentError("Payment provider returned an unreadable reply") from exc

        return PaymentIntent(
            id=intent_id,
            client_secret=body.get("client_secret"),
            amount=body.get("amount", amount),
            currency=body.get("currency", self.currency),
        )


payment_service = PaymentService(
    secret_key=settings.PAYMENT_SECRET_KEY,
    currency=settings.PAYMENT_CURRENCY,
    api_base=settings.PAYMENT_API_BASE,
)


def get_payment_service() -> PaymentService:
    """Payment service dependency."""
    return payment_service

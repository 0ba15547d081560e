import hashlib
import hmac
import time
from dataclasses import dataclass

import stripe
import structlog

from storefront.errors import GatewayUnavailable

logger = structlog.get_logger(component="gateway")


def sign_payment(secret: str, gateway_order_id: str, gateway_payment_id: str) -> str:
    """HMAC-SHA256 hex digest over ``"<order id>|<payment id>"``."""
    message = f"{gateway_order_id}|{gateway_payment_id}".encode()
    return hmac.new(secret.encode(), message, hashlib.sha256).hexdigest()


def signature_matches(secret: str, gateway_order_id: str, gateway_payment_id: str, signature: str) -> bool:
    expected = sign_payment(secret, gateway_order_id, gateway_payment_id)
    return hmac.compare_digest(expected.encode(), (signature or "").encode())


@dataclass(frozen=True)
class GatewayOrder:
    id: str
    amount: int
    currency: str


@dataclass(frozen=True)
class GatewayPayment:
    id: str
    order_id: str
    status: str        # captured | authorized | refunded | pending | failed
    amount: int        # captured amount, smallest currency unit
    method: str | None


class StripeGateway:
    """Payment gateway backed by Stripe.

    A gateway order is a PaymentIntent, a gateway payment is one of its
    Charges. Calls go through a ``StripeClient`` whose HTTP client carries
    the ``timeout``, so a hung request fails on its own thread.
    """

    def __init__(self, api_key: str, timeout: float, client: stripe.StripeClient | None = None):
        self.api_key = api_key
        self.timeout = timeout
        self.client = client or stripe.StripeClient(
            api_key,
            http_client=stripe.RequestsClient(timeout=timeout),
            max_network_retries=0,
        )

    def create_order(self, amount: int, currency: str, notes: dict) -> GatewayOrder:
        params = {
            "amount": amount,
            "currency": currency,
            "automatic_payment_methods": {"enabled": True},
            "metadata": {**{k: str(v) for k, v in notes.items()}, "receipt": f"order_{int(time.time() * 1000)}"},
        }
        try:
            intent = self.client.payment_intents.create(params=params)
        except stripe.StripeError as exc:
            logger.warning("gateway_call_failed", call="payment_intents.create", error=str(exc))
            raise GatewayUnavailable(str(exc)) from exc
        return GatewayOrder(id=intent["id"], amount=intent["amount"], currency=intent["currency"])

    def fetch_payment(self, payment_id: str) -> GatewayPayment:
        try:
            charge = self.client.charges.retrieve(payment_id)
        except stripe.StripeError as exc:
            logger.warning("gateway_call_failed", call="charges.retrieve", payment_id=payment_id, error=str(exc))
            raise GatewayUnavailable(str(exc)) from exc

        # a refunded charge keeps captured=True
        if charge.get("refunded") or (charge.get("amount_refunded") or 0) > 0:
            status = "refunded"
        elif charge.get("captured"):
            status = "captured"
        elif charge.get("status") == "succeeded":
            status = "authorized"
        else:
            status = charge.get("status") or "pending"

        details = charge.get("payment_method_details") or {}
        return GatewayPayment(
            id=charge["id"],
            order_id=charge.get("payment_intent"),
            status=status,
            amount=charge.get("amount_captured") or 0,
            method=details.get("type"),
        )

from dataclasses import dataclass

import structlog

from storefront.errors import GatewayUnavailable, NotFoundError, PaymentRejected, RejectionReason
from storefront.gateway import GatewayPayment, signature_matches
from storefront.models import Product
from storefront.pricing import Totals, compute_totals

logger = structlog.get_logger(component="verification")


@dataclass(frozen=True)
class PaymentClaim:
    gateway_order_id: str
    gateway_payment_id: str
    signature: str


@dataclass(frozen=True)
class VerifiedPayment:
    claim: PaymentClaim
    payment: GatewayPayment
    product: Product
    totals: Totals


class PaymentVerifier:
    """Decides whether a client's payment claim is a genuine, captured payment
    for exactly the amount the order is worth.

    Checks run in a fixed order and the first failure wins, so a forged
    signature never reaches the gateway.
    """

    def __init__(self, gateway, signing_secret: str):
        self.gateway = gateway
        self.signing_secret = signing_secret

    def _reject(self, claim: PaymentClaim, reason: RejectionReason, message: str, **extra):
        logger.warning(
            "payment_rejected",
            reason=reason.value,
            gateway_order_id=claim.gateway_order_id,
            gateway_payment_id=claim.gateway_payment_id,
            **extra,
        )
        raise PaymentRejected(reason, message)

    def verify(self, session, claim: PaymentClaim, product_id: int, quantity: int, shipping_charge) -> VerifiedPayment:
        if not self.signing_secret or not signature_matches(
            self.signing_secret, claim.gateway_order_id, claim.gateway_payment_id, claim.signature
        ):
            self._reject(claim, RejectionReason.SIGNATURE_MISMATCH, "Invalid payment signature")

        try:
            payment = self.gateway.fetch_payment(claim.gateway_payment_id)
        except GatewayUnavailable as exc:
            self._reject(
                claim, RejectionReason.GATEWAY_UNREACHABLE,
                "Unable to verify payment with the payment gateway", error=str(exc),
            )

        if payment.status != "captured":
            self._reject(
                claim, RejectionReason.NOT_CAPTURED,
                f"Payment not completed. Status: {payment.status}", status=payment.status,
            )

        if payment.order_id != claim.gateway_order_id:
            self._reject(
                claim, RejectionReason.ORDER_MISMATCH,
                "Payment order ID mismatch", payment_order_id=payment.order_id,
            )

        product = session.get(Product, product_id)
        if product is None:
            raise NotFoundError("Product")

        totals = compute_totals(product, quantity, shipping_charge)
        if payment.amount != totals.amount_subunits:
            self._reject(
                claim, RejectionReason.AMOUNT_MISMATCH, "Payment amount mismatch",
                expected=totals.amount_subunits, captured=payment.amount,
            )

        return VerifiedPayment(claim=claim, payment=payment, product=product, totals=totals)

"""Exceptions raised by the order and payment services.

Everything deriving from ``ApiError`` is an expected failure and is turned
into a structured response by the handlers in ``storefront.main``.
"""

from enum import Enum


class ApiError(Exception):
    """Base exception for failures that map onto an HTTP response."""

    status_code = 500
    code = "internal_error"

    def __init__(self, message: str, status_code: int | None = None, code: str | None = None):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        if code is not None:
            self.code = code
        super().__init__(message)


class AuthError(ApiError):
    status_code = 401
    code = "unauthorized"


class NotFoundError(ApiError):
    status_code = 404
    code = "not_found"

    def __init__(self, what: str = "Order"):
        self.what = what
        super().__init__(f"{what} not found")


class RejectionReason(str, Enum):
    SIGNATURE_MISMATCH = "signature_mismatch"
    GATEWAY_UNREACHABLE = "gateway_unreachable"
    NOT_CAPTURED = "not_captured"
    ORDER_MISMATCH = "order_mismatch"
    AMOUNT_MISMATCH = "amount_mismatch"


class PaymentRejected(ApiError):
    """Raised when a payment claim fails verification.

    All reasons share one client-facing class (HTTP 400, ``payment_rejected``);
    ``reason`` keeps them apart in logs and tests.
    """

    status_code = 400
    code = "payment_rejected"

    def __init__(self, reason: RejectionReason, message: str):
        self.reason = reason
        super().__init__(message)


class InsufficientStock(ApiError):
    status_code = 400
    code = "insufficient_stock"

    def __init__(self, message: str = "Insufficient stock"):
        super().__init__(message)


class LifecycleViolation(ApiError):
    """Raised when an order cannot make the requested status change."""

    status_code = 400

    def __init__(self, code: str, message: str):
        super().__init__(message, code=code)


class GatewayUnavailable(Exception):
    """Raised by the gateway client when a call fails or times out."""


class NotificationError(Exception):
    """Raised when the transactional mail service rejects a message."""

from concurrent.futures import Future, ThreadPoolExecutor

import requests
import structlog

from storefront.errors import NotificationError

logger = structlog.get_logger(component="notifications")

BREVO_URL = "https://api.brevo.com/v3/smtp/email"


class BrevoEmailSender:
    """Sends order confirmations through Brevo's transactional email API."""

    def __init__(self, api_key: str, sender_email: str, sender_name: str, timeout: float = 10.0):
        self.api_key = api_key
        self.sender_email = sender_email
        self.sender_name = sender_name
        self.timeout = timeout

    def build_message(self, order) -> dict:
        lines = [
            f"<p>Hi {order.customer_name},</p>",
            f"<p>Your order <b>#{order.order_code}</b> has been confirmed.</p>",
            f"<p>{order.product_name} &times; {order.quantity}<br>",
            f"Total paid: {order.total_amount}</p>",
            f"<p>Shipping to: {order.shipping_address}, {order.shipping_city}, "
            f"{order.shipping_state} - {order.shipping_pincode}</p>",
        ]
        return {
            "sender": {"name": self.sender_name, "email": self.sender_email},
            "to": [{"email": order.customer_email, "name": order.customer_name}],
            "bcc": [{"email": self.sender_email, "name": f"{self.sender_name} Orders"}],
            "subject": f"Order Confirmed! #{order.order_code} - {self.sender_name}",
            "htmlContent": "\n".join(lines),
        }

    def deliver(self, message: dict):
        response = requests.post(
            BREVO_URL,
            json=message,
            headers={
                "accept": "application/json",
                "api-key": self.api_key,
            },
            timeout=self.timeout,
        )
        if not response.ok:
            raise NotificationError(f"Brevo rejected message ({response.status_code}): {response.text}")


class NotificationDispatcher:
    """Fire-and-forget delivery of order confirmations.

    ``dispatch`` hands the send to a worker thread and returns immediately.
    Callers must not wait on the returned future; it is exposed for tests.
    """

    def __init__(self, sender, executor: ThreadPoolExecutor):
        self.sender = sender
        self._executor = executor

    def dispatch(self, order) -> Future | None:
        # built on the caller's thread, the worker never touches the ORM object
        order_code = order.order_code
        email = order.customer_email
        try:
            message = self.sender.build_message(order)
            future = self._executor.submit(self.sender.deliver, message)
        except Exception as exc:
            logger.error("order_confirmation_failed", order_code=order_code, error=str(exc))
            return None

        def _log_outcome(done: Future):
            exc = done.exception()
            if exc is not None:
                logger.error("order_confirmation_failed", order_code=order_code, error=str(exc))
            else:
                logger.info("order_confirmation_sent", order_code=order_code, email=email)

        future.add_done_callback(_log_outcome)
        return future

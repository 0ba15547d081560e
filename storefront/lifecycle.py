from datetime import datetime, timezone

import structlog
from sqlalchemy import update

from storefront import inventory
from storefront.errors import LifecycleViolation, NotFoundError
from storefront.models import NON_CANCELLABLE, Order, OrderStatus

logger = structlog.get_logger(component="lifecycle")


class OrderLifecycle:
    """Status transitions for existing orders.

    Admin status updates accept any known status; only cancellation is
    restricted, and it is the one transition that touches stock.
    """

    def __init__(self, session):
        self.session = session

    def update_status(self, order_id: int, status: str, tracking_number: str | None = None) -> Order:
        status = OrderStatus(status).value
        order = self.session.get(Order, order_id)
        if order is None:
            raise NotFoundError("Order")

        previous = order.order_status
        order.order_status = status
        if tracking_number:
            order.tracking_number = tracking_number
        if status == OrderStatus.DELIVERED.value:
            order.delivered_at = datetime.now(timezone.utc)

        self.session.commit()
        self.session.refresh(order)
        logger.info("order_status_updated", order_code=order.order_code,
                    previous=previous, status=status)
        return order

    def cancel(self, order_id: int) -> Order:
        result = self.session.execute(
            update(Order)
            .where(Order.id == order_id, Order.order_status.not_in(NON_CANCELLABLE))
            .values(order_status=OrderStatus.CANCELLED.value)
            .execution_options(synchronize_session=False)
        )
        self.session.commit()

        if result.rowcount != 1:
            order = self.session.get(Order, order_id)
            if order is None:
                raise NotFoundError("Order")
            if order.order_status == OrderStatus.CANCELLED.value:
                raise LifecycleViolation("already_cancelled", "Order is already cancelled")
            raise LifecycleViolation(
                "not_cancellable", "Cannot cancel order that is shipped or delivered"
            )

        order = self.session.get(Order, order_id, populate_existing=True)
        inventory.release(self.session, order.product_id, order.quantity)
        logger.info("order_cancelled", order_code=order.order_code,
                    product_id=order.product_id, quantity=order.quantity)
        return order

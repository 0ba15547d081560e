import secrets
from datetime import datetime, timezone

import structlog
from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError

from storefront import inventory
from storefront.errors import InsufficientStock, NotFoundError
from storefront.models import Order, OrderStatus, PaymentStatus

logger = structlog.get_logger(component="ledger")


def new_order_code() -> str:
    stamp = datetime.now(timezone.utc).strftime("%Y%m%d")
    return f"ORD-{stamp}-{secrets.token_hex(3).upper()}"


class OrderLedger:
    def __init__(self, session):
        self.session = session

    # ---------- reads ----------

    def get(self, order_id: int) -> Order:
        order = self.session.get(Order, order_id)
        if order is None:
            raise NotFoundError("Order")
        return order

    def find_by_payment_id(self, gateway_payment_id: str):
        return self.session.scalars(
            select(Order).where(Order.gateway_payment_id == gateway_payment_id)
        ).first()

    def track(self, order_code: str) -> Order:
        order = self.session.scalars(select(Order).where(Order.order_code == order_code)).first()
        if order is None:
            raise NotFoundError("Order")
        return order

    def list_orders(self, status=None, payment_status=None, search=None,
                    start_date=None, end_date=None, page=1, limit=10):
        filters = []
        if status:
            filters.append(Order.order_status == status)
        if payment_status:
            filters.append(Order.payment_status == payment_status)
        if search:
            pattern = f"%{search}%"
            filters.append(or_(
                Order.order_code.ilike(pattern),
                Order.customer_name.ilike(pattern),
                Order.customer_email.ilike(pattern),
                Order.customer_phone.ilike(pattern),
            ))
        if start_date:
            filters.append(Order.created_at >= start_date)
        if end_date:
            filters.append(Order.created_at <= end_date)

        total = self.session.scalar(select(func.count(Order.id)).where(*filters))
        orders = self.session.scalars(
            select(Order)
            .where(*filters)
            .order_by(Order.created_at.desc(), Order.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        ).all()
        return orders, total

    # ---------- writes ----------

    def create(self, verified, customer, shipping_address, courier_name=None):
        """Create the order for a verified payment exactly once.

        Returns ``(order, created)``; ``created`` is False when an order for
        the same gateway payment id already exists.
        """
        claim = verified.claim
        existing = self.find_by_payment_id(claim.gateway_payment_id)
        if existing is not None:
            logger.info("order_replayed", order_code=existing.order_code,
                        gateway_payment_id=claim.gateway_payment_id)
            return existing, False

        product_id = verified.product.id
        quantity = verified.totals.quantity
        product = inventory.reserve(self.session, product_id, quantity)
        if product is None:
            raise InsufficientStock(
                "Insufficient stock - product may have been purchased by another customer"
            )

        totals = verified.totals
        try:
            order = Order(
                order_code=new_order_code(),
                customer_name=customer.name,
                customer_email=customer.email,
                customer_phone=customer.phone,
                shipping_address=shipping_address.address,
                shipping_city=shipping_address.city,
                shipping_state=shipping_address.state,
                shipping_pincode=shipping_address.pincode,
                product_id=product.id,
                product_name=product.name,
                product_price=totals.unit_price,
                quantity=quantity,
                product_image=product.image,
                gateway_order_id=claim.gateway_order_id,
                gateway_payment_id=claim.gateway_payment_id,
                gateway_signature=claim.signature,
                payment_method="gateway",
                payment_type=verified.payment.method or "other",
                payment_status=PaymentStatus.COMPLETED.value,
                subtotal=totals.subtotal,
                shipping_charge=totals.shipping_charge,
                tax=totals.tax,
                total_amount=totals.total_amount,
                order_status=OrderStatus.CONFIRMED.value,
                notes=f"Shipping via {courier_name}" if courier_name else "",
            )
            self._insert(order)
        except IntegrityError:
            self.session.rollback()
            self._compensate(product_id, quantity)
            # a concurrent request for the same payment won the unique constraint
            winner = self.find_by_payment_id(claim.gateway_payment_id)
            if winner is not None:
                logger.info("order_replayed", order_code=winner.order_code,
                            gateway_payment_id=claim.gateway_payment_id)
                return winner, False
            raise
        except Exception:
            self.session.rollback()
            self._compensate(product_id, quantity)
            raise

        logger.info("order_created", order_code=order.order_code, product_id=product_id,
                    quantity=quantity, total_amount=str(order.total_amount))
        return order, True

    def _insert(self, order: Order):
        self.session.add(order)
        self.session.commit()
        self.session.refresh(order)

    def _compensate(self, product_id: int, quantity: int):
        logger.error("order_persist_failed", product_id=product_id, quantity=quantity)
        inventory.release(self.session, product_id, quantity)

    def delete(self, order_id: int):
        order = self.get(order_id)
        self.session.delete(order)
        self.session.commit()
        logger.info("order_deleted", order_code=order.order_code)

from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import CheckConstraint, Column, DateTime, Integer, Numeric, String

from storefront.database import Base


def utcnow():
    return datetime.now(timezone.utc)


class OrderStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


# cancel() only succeeds from states outside this set
NON_CANCELLABLE = (OrderStatus.SHIPPED.value, OrderStatus.DELIVERED.value, OrderStatus.CANCELLED.value)


class Product(Base):
    __tablename__ = "products"
    __table_args__ = (CheckConstraint("stock >= 0", name="ck_products_stock_non_negative"),)

    id = Column(Integer, primary_key=True)
    name = Column(String(200), nullable=False)
    price = Column(Numeric(12, 2), nullable=False)
    discount_price = Column(Numeric(12, 2), nullable=True)
    stock = Column(Integer, nullable=False, default=0)
    image = Column(String(500), nullable=True)

    @property
    def unit_price(self):
        return self.discount_price or self.price


class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True)
    order_code = Column(String(32), unique=True, index=True, nullable=False)

    # customer snapshot
    customer_name = Column(String(100), nullable=False)
    customer_email = Column(String(254), nullable=False, index=True)
    customer_phone = Column(String(16), nullable=False, index=True)

    shipping_address = Column(String(500), nullable=False)
    shipping_city = Column(String(100), nullable=False)
    shipping_state = Column(String(100), nullable=False)
    shipping_pincode = Column(String(6), nullable=False)

    # product snapshot, priced at order time
    product_id = Column(Integer, nullable=False, index=True)
    product_name = Column(String(200), nullable=False)
    product_price = Column(Numeric(12, 2), nullable=False)
    quantity = Column(Integer, nullable=False)
    product_image = Column(String(500), nullable=True)

    gateway_order_id = Column(String(64), nullable=False)
    gateway_payment_id = Column(String(64), unique=True, index=True, nullable=False)  # idempotency key
    gateway_signature = Column(String(128), nullable=False)
    payment_method = Column(String(32), nullable=False, default="gateway")
    payment_type = Column(String(32), nullable=False, default="other")
    payment_status = Column(String(16), nullable=False, default=PaymentStatus.PENDING.value, index=True)

    subtotal = Column(Numeric(12, 2), nullable=False)
    shipping_charge = Column(Numeric(12, 2), nullable=False, default=0)
    tax = Column(Numeric(12, 2), nullable=False, default=0)
    total_amount = Column(Numeric(12, 2), nullable=False)

    order_status = Column(String(16), nullable=False, default=OrderStatus.PENDING.value, index=True)
    tracking_number = Column(String(64), nullable=True)
    notes = Column(String(500), nullable=True)
    delivered_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)

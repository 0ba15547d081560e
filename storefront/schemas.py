from datetime import datetime
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

OrderStatusValue = Literal["pending", "confirmed", "processing", "shipped", "delivered", "cancelled"]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, str_strip_whitespace=True)


class CreateIntentRequest(CamelModel):
    product_id: int = Field(gt=0)
    quantity: int = Field(1, ge=1)
    shipping_charge: Decimal = Field(Decimal("0"), ge=0)


class Customer(CamelModel):
    name: str = Field(min_length=1, max_length=100)
    email: EmailStr
    phone: str = Field(pattern=r"^[6-9]\d{9}$")

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.lower()


class ShippingAddress(CamelModel):
    address: str = Field(min_length=1, max_length=500)
    city: str = Field(min_length=1, max_length=100)
    state: str = Field(min_length=1, max_length=100)
    pincode: str = Field(pattern=r"^\d{6}$")


class VerifyPaymentRequest(CamelModel):
    gateway_order_id: str = Field(min_length=1)
    gateway_payment_id: str = Field(min_length=1)
    signature: str = Field(min_length=1)
    product_id: int = Field(gt=0)
    quantity: int = Field(1, ge=1)
    customer: Customer
    shipping_address: ShippingAddress
    shipping_charge: Decimal = Field(Decimal("0"), ge=0)
    courier_name: Optional[str] = None


class StatusUpdateRequest(CamelModel):
    order_status: OrderStatusValue
    tracking_number: Optional[str] = None


def money(value) -> float:
    return float(value or 0)


def timestamp(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def product_snapshot(order) -> dict:
    return {
        "productId": order.product_id,
        "name": order.product_name,
        "price": money(order.product_price),
        "quantity": order.quantity,
        "image": order.product_image,
    }


def shipping_snapshot(order) -> dict:
    return {
        "address": order.shipping_address,
        "city": order.shipping_city,
        "state": order.shipping_state,
        "pincode": order.shipping_pincode,
    }


def serialize_order(order) -> dict:
    return {
        "id": order.id,
        "orderId": order.order_code,
        "customer": {
            "name": order.customer_name,
            "email": order.customer_email,
            "phone": order.customer_phone,
        },
        "shippingAddress": shipping_snapshot(order),
        "product": product_snapshot(order),
        "payment": {
            "gatewayOrderId": order.gateway_order_id,
            "gatewayPaymentId": order.gateway_payment_id,
            "signature": order.gateway_signature,
            "method": order.payment_method,
            "type": order.payment_type,
            "status": order.payment_status,
        },
        "subtotal": money(order.subtotal),
        "shippingCharge": money(order.shipping_charge),
        "tax": money(order.tax),
        "totalAmount": money(order.total_amount),
        "orderStatus": order.order_status,
        "trackingNumber": order.tracking_number,
        "notes": order.notes,
        "deliveredAt": timestamp(order.delivered_at),
        "createdAt": timestamp(order.created_at),
    }


def serialize_tracking(order) -> dict:
    """Public view of an order, without customer contact or payment details."""
    return {
        "orderId": order.order_code,
        "orderStatus": order.order_status,
        "product": product_snapshot(order),
        "shippingAddress": shipping_snapshot(order),
        "trackingNumber": order.tracking_number,
        "createdAt": timestamp(order.created_at),
        "deliveredAt": timestamp(order.delivered_at),
    }


def envelope(data=None, message: Optional[str] = None, **extra) -> dict:
    body = {"success": True}
    if message:
        body["message"] = message
    if data is not None:
        body["data"] = data
    body.update(extra)
    return body

import itertools
from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from storefront.auth import verify_token
from storefront.config import Settings
from storefront.context import AppContext
from storefront.database import Base, build_engine, build_session_factory
from storefront.errors import GatewayUnavailable
from storefront.gateway import GatewayOrder, GatewayPayment, sign_payment
from storefront.main import create_app
from storefront.models import Order, Product
from storefront.notifications import NotificationDispatcher

SIGNING_SECRET = "test_signing_secret"


class FakeGateway:
    """In-memory stand-in for the payment gateway."""

    def __init__(self):
        self._ids = itertools.count(1)
        self.orders = {}
        self.payments = {}
        self.fetch_calls = []
        self.fetch_error = None

    def create_order(self, amount, currency, notes):
        order = GatewayOrder(id=f"pi_test_{next(self._ids)}", amount=amount, currency=currency)
        self.orders[order.id] = (order, notes)
        return order

    def settle(self, order_id, amount, status="captured", method="card", payment_id=None):
        payment_id = payment_id or f"ch_test_{next(self._ids)}"
        self.payments[payment_id] = GatewayPayment(
            id=payment_id, order_id=order_id, status=status, amount=amount, method=method,
        )
        return payment_id

    def fetch_payment(self, payment_id):
        self.fetch_calls.append(payment_id)
        if self.fetch_error is not None:
            raise self.fetch_error
        if payment_id not in self.payments:
            raise GatewayUnavailable(f"No such charge: {payment_id}")
        return self.payments[payment_id]


class RecordingSender:
    def __init__(self):
        self.delivered = []
        self.error = None

    def build_message(self, order):
        return {"to": order.customer_email, "orderId": order.order_code}

    def deliver(self, message):
        if self.error is not None:
            raise self.error
        self.delivered.append(message)


@pytest.fixture
def settings(tmp_path):
    return Settings(
        env="test",
        database_url=f"sqlite:///{tmp_path / 'test.db'}",
        jwt_secret="test_jwt_secret",
        stripe_publishable_key="pk_test_123",
        payment_signing_secret=SIGNING_SECRET,
        currency="inr",
    )


@pytest.fixture
def engine(settings):
    engine = build_engine(settings.database_url)
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def sender():
    return RecordingSender()


@pytest.fixture
def mail_pool():
    pool = ThreadPoolExecutor(max_workers=1)
    yield pool
    pool.shutdown(wait=True)


@pytest.fixture
def context(settings, session_factory, gateway, sender, mail_pool):
    return AppContext(
        settings=settings,
        session_factory=session_factory,
        gateway=gateway,
        dispatcher=NotificationDispatcher(sender, mail_pool),
    )


@pytest.fixture
def fastapi_app(context):
    return create_app(context)


@pytest.fixture
def client(fastapi_app):
    # Bypass auth verification for tests
    fastapi_app.dependency_overrides[verify_token] = lambda: {"sub": "admin"}
    with TestClient(fastapi_app) as c:
        yield c
    fastapi_app.dependency_overrides.clear()


@pytest.fixture
def make_product(db):
    def _make(stock=10, price="499.00", discount_price=None, name="Cold Pressed Coconut Oil"):
        product = Product(
            name=name,
            price=Decimal(price),
            discount_price=Decimal(discount_price) if discount_price else None,
            stock=stock,
            image="https://cdn.example.com/coconut-oil.jpg",
        )
        db.add(product)
        db.commit()
        db.refresh(product)
        return product

    return _make


@pytest.fixture
def stock_of(session_factory):
    def _stock(product_id):
        session = session_factory()
        try:
            return session.get(Product, product_id).stock
        finally:
            session.close()

    return _stock


@pytest.fixture
def make_order(db):
    counter = itertools.count(1)

    def _make(product, status="confirmed", quantity=1, **fields):
        n = next(counter)
        values = dict(
            order_code=f"ORD-20260101-{n:06X}",
            customer_name="Asha Verma",
            customer_email="asha@example.com",
            customer_phone="9876543210",
            shipping_address="12 MG Road",
            shipping_city="Bengaluru",
            shipping_state="Karnataka",
            shipping_pincode="560001",
            product_id=product.id,
            product_name=product.name,
            product_price=product.price,
            quantity=quantity,
            gateway_order_id=f"pi_seed_{n}",
            gateway_payment_id=f"ch_seed_{n}",
            gateway_signature="seed",
            payment_status="completed",
            subtotal=product.price * quantity,
            shipping_charge=Decimal("0"),
            tax=Decimal("0"),
            total_amount=product.price * quantity,
            order_status=status,
        )
        values.update(fields)
        order = Order(**values)
        db.add(order)
        db.commit()
        db.refresh(order)
        return order

    return _make


def sign(order_id, payment_id):
    return sign_payment(SIGNING_SECRET, order_id, payment_id)


@pytest.fixture
def checkout_body(gateway):
    """Settle a payment on the fake gateway and return a matching verify request body."""

    def _body(product, quantity=1, shipping_charge=0, amount=None, status="captured", payment_id=None):
        unit = product.discount_price or product.price
        if amount is None:
            amount = int((unit * quantity + Decimal(str(shipping_charge))) * 100)
        order = gateway.create_order(amount, "inr", {})
        pay_id = gateway.settle(order.id, amount, status=status, payment_id=payment_id)
        return {
            "gatewayOrderId": order.id,
            "gatewayPaymentId": pay_id,
            "signature": sign(order.id, pay_id),
            "productId": product.id,
            "quantity": quantity,
            "shippingCharge": shipping_charge,
            "customer": {"name": "Asha Verma", "email": "Asha@Example.com", "phone": "9876543210"},
            "shippingAddress": {
                "address": "12 MG Road",
                "city": "Bengaluru",
                "state": "Karnataka",
                "pincode": "560001",
            },
        }

    return _body

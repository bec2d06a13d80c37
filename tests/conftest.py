"""
Shared fixtures: an in-memory SQLite database, a recording mail sender and a
MoMo gateway backed by httpx.MockTransport.
"""
import os

# must be in place before sportshop reads its settings
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ADMIN_EMAIL"] = "admin@example.org"
os.environ["EMAIL_BACKEND"] = "console"
os.environ["ENABLE_EMAIL_NOTIFICATIONS"] = "1"
os.environ["MOMO_ACCESS_KEY"] = "test-access-key"
os.environ["MOMO_SECRET_KEY"] = "test-secret-key"
os.environ["MOMO_PARTNER_CODE"] = "MOMOTEST"
os.environ["MOMO_ENDPOINT"] = "https://momo.test/v2/gateway/api/create"
os.environ["MOMO_VERIFY_IPN"] = "1"

from typing import List, Optional

import httpx
import pytest
from fastapi.testclient import TestClient

from sportshop.dependencies import get_notifier, get_payment_gateway
from sportshop.main import app, create_tables
from sportshop.models.cart import Cart, CartItem
from sportshop.models.order import Order, OrderItem, OrderStatus, PayingStatus, RefundStatus
from sportshop.models.product import Product
from sportshop.models.user import Base, SessionLocal, User, engine
from sportshop.services.notifications import EmailNotifier
from sportshop.services.order_service import OrderService
from sportshop.services.payment_gateway import MomoGateway
from sportshop.utils.security import create_access_token, hash_password


class RecordingSender:
    """Stands in for send_email; remembers every message"""

    def __init__(self):
        self.sent = []
        self.result = True

    def __call__(self, to_email, subject, body):
        self.sent.append({"to": to_email, "subject": subject, "body": body})
        return self.result


class MomoStub:
    """MockTransport handler that answers like the MoMo create endpoint"""

    def __init__(self):
        self.requests = []
        self.response = {"resultCode": 0, "message": "Successful.", "payUrl": "https://pay.momo.test/checkout/abc"}
        self.error: Optional[Exception] = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if self.error is not None:
            raise self.error
        self.requests.append(request)
        return httpx.Response(200, json=self.response)


@pytest.fixture
def db():
    create_tables()
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def sender():
    return RecordingSender()


@pytest.fixture
def notifier(sender):
    return EmailNotifier(sender=sender, enabled=True)


@pytest.fixture
def momo():
    return MomoStub()


@pytest.fixture
def gateway(momo):
    return MomoGateway(
        endpoint="https://momo.test/v2/gateway/api/create",
        partner_code="MOMOTEST",
        access_key="test-access-key",
        secret_key="test-secret-key",
        redirect_url="http://shop.test/checkout/success/{order_id}",
        ipn_url="http://api.shop.test/api/payments/momo/ipn",
        client=httpx.Client(transport=httpx.MockTransport(momo)),
    )


@pytest.fixture
def service(db, notifier, gateway):
    return OrderService(db, notifier=notifier, gateway=gateway, utc_offset_hours=7)


@pytest.fixture
def customer(db):
    user = User(name="Minh Tran", email="minh@example.com", password_hash=hash_password("secret123"))
    db.add(user)
    db.commit()
    return user


@pytest.fixture
def admin(db):
    user = User(name="Shop Admin", email="ops@example.org", password_hash=hash_password("secret123"), role="admin")
    db.add(user)
    db.commit()
    return user


@pytest.fixture
def client(db, notifier, gateway):
    app.dependency_overrides[get_notifier] = lambda: notifier
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def auth_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token(subject=user.email)}"}


def make_product(db, name="Running Shoe", stock=10, category="Shoes", price=100.0) -> Product:
    product = Product(name=name, category=category, brand="Acme", price=price, stock=stock)
    db.add(product)
    db.commit()
    return product


def make_order(
    db,
    user: User,
    items: List[tuple],
    status: str = OrderStatus.PENDING.value,
    payment_method: str = "cod",
    paying_status: str = PayingStatus.UNPAID.value,
    refund_status: str = RefundStatus.NOT_INITIATED.value,
) -> Order:
    order = Order(
        user_id=user.id,
        shipping_address="12 Le Loi, District 1",
        payment_method=payment_method,
        total_price=100,
        status=status,
        paying_status=paying_status,
        refund_status=refund_status,
        items=[OrderItem(product_id=product.id, quantity=quantity) for product, quantity in items],
        history=[],
    )
    db.add(order)
    db.commit()
    return order


def add_to_cart(db, user: User, product: Product, quantity: int = 1):
    cart = db.query(Cart).filter(Cart.user_id == user.id).first()
    if not cart:
        cart = Cart(user_id=user.id)
        db.add(cart)
        db.flush()
    db.add(CartItem(cart_id=cart.id, product_id=product.id, quantity=quantity))
    db.commit()
    return cart

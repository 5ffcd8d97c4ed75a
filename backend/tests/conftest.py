import json

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from main import app
from database import Base, SessionStoreBase, get_db, get_session_db
import models.users, models.product, models.order, models.review  # noqa: F401
import models.notification, models.audit, models.cart, models.token  # noqa: F401
from models.users import User, PushToken
from models.product import Product
from utils.hashing import get_password_hash
from utils.push_client import ExpoPushClient, get_push_client
from utils.timeutil import utcnow

PASSWORD = "secret123"
DEVICE_TOKEN = "ExponentPushToken[abcdefghijklmnop]"


def _memory_engine():
    return create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )


@pytest.fixture()
def engines():
    doc_engine = _memory_engine()
    row_engine = _memory_engine()
    Base.metadata.create_all(bind=doc_engine)
    SessionStoreBase.metadata.create_all(bind=row_engine)
    yield doc_engine, row_engine
    doc_engine.dispose()
    row_engine.dispose()


@pytest.fixture()
def db(engines):
    session = sessionmaker(bind=engines[0], autoflush=False)()
    yield session
    session.close()


@pytest.fixture()
def session_db(engines):
    session = sessionmaker(bind=engines[1], autoflush=False)()
    yield session
    session.close()


class PushRecorder:
    """Stands in for the push gateway and keeps every message it received."""

    def __init__(self):
        self.messages = []
        self.fail = False
        # Body to answer with instead of one ok ticket per message
        self.reply = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        chunk = json.loads(request.content)
        self.messages.extend(chunk)
        if self.fail:
            return httpx.Response(500, text="gateway down")
        if self.reply is not None:
            return httpx.Response(200, json=self.reply)
        tickets = [{"status": "ok", "id": f"ticket-{len(self.messages)}-{i}"} for i, _ in enumerate(chunk)]
        return httpx.Response(200, json={"data": tickets})


@pytest.fixture()
def push_gateway():
    return PushRecorder()


@pytest.fixture()
def client(engines, push_gateway):
    DocSession = sessionmaker(bind=engines[0], autoflush=False)
    RowSession = sessionmaker(bind=engines[1], autoflush=False)

    def override_get_db():
        session = DocSession()
        try:
            yield session
        finally:
            session.close()

    def override_get_session_db():
        session = RowSession()
        try:
            yield session
        finally:
            session.close()

    push = ExpoPushClient(push_url="https://push.test/send", transport=httpx.MockTransport(push_gateway))

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_db] = override_get_session_db
    app.dependency_overrides[get_push_client] = lambda: push
    yield TestClient(app)
    app.dependency_overrides.clear()


def create_user(db, username, email, role="user", password=PASSWORD, push_token=None):
    user = User(username=username, email=email, password_hash=get_password_hash(password), role=role)
    db.add(user)
    db.commit()
    if push_token:
        db.add(PushToken(user_id=user.id, token=push_token, device="test", last_used=utcnow()))
        db.commit()
    db.refresh(user)
    return user


def login(client, email, password=PASSWORD):
    response = client.post("/api/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['token']}"}


@pytest.fixture()
def customer(db):
    return create_user(db, "alice", "alice@example.com")


@pytest.fixture()
def customer_headers(client, customer):
    return login(client, customer.email)


@pytest.fixture()
def admin(db):
    return create_user(db, "admin", "admin@example.com", role="admin")


@pytest.fixture()
def admin_headers(client, admin):
    return login(client, admin.email)


@pytest.fixture()
def make_product(db):
    def _make(name="Medieval Castle", price=7499.99, stock=3, category="Set", pieces=4514):
        product = Product(
            name=name,
            price=price,
            stock=stock,
            category=category,
            pieces=pieces,
            description=f"{name} description",
            image_urls=["https://placehold.co/400x400/DA291C/FFD700/png"],
        )
        db.add(product)
        db.commit()
        db.refresh(product)
        return product
    return _make


def order_payload(items, order_id="ORD-1001", total=150.0, **overrides):
    payload = {
        "orderId": order_id,
        "items": items,
        "shippingDetails": {
            "name": "Alice Builder",
            "email": "alice@example.com",
            "phone": "555-0100",
            "address": "1 Brick Lane",
            "city": "Billund",
            "postalCode": "7190",
        },
        "paymentMethod": "cod",
        "subtotal": 100.0,
        "shipping": 20.0,
        "tax": 12.0,
        "total": total,
    }
    payload.update(overrides)
    return payload

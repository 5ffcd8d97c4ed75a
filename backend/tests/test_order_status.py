import pytest

from conftest import DEVICE_TOKEN, create_user, login, order_payload
from models.notification import NotificationReceipt
from models.order import Order


@pytest.fixture()
def placed_order(client, db, make_product):
    buyer = create_user(db, "gina", "gina@example.com", push_token=DEVICE_TOKEN)
    headers = login(client, buyer.email)
    product = make_product(stock=10)
    item = {"productId": product.id, "productName": product.name, "price": product.price, "quantity": 1}
    response = client.post("/api/orders/create", json=order_payload([item], order_id="ORD-S1"), headers=headers)
    assert response.status_code == 201
    return {"buyer": buyer, "headers": headers, "product": product}


def _patch(client, headers, status, order_id="ORD-S1"):
    return client.patch(f"/api/orders/admin/status/{order_id}", json={"status": status}, headers=headers)


def test_status_update_pushes_and_writes_receipt(client, db, push_gateway, admin_headers, placed_order):
    push_gateway.messages.clear()

    response = _patch(client, admin_headers, "shipped")
    assert response.status_code == 200
    body = response.json()
    assert body["previousStatus"] == "pending"
    assert body["newStatus"] == "shipped"
    assert body["notificationSent"] is True
    assert body["notificationError"] is None
    assert body["notificationReceiptCreated"] is True
    assert body["forceShow"] is True
    assert body["data"]["status"] == "shipped"

    message = push_gateway.messages[0]
    assert message["title"] == "Order Update"
    assert message["body"] == "Your order #ORD-S1 has been shipped! Your package is on the way."
    assert message["data"]["previousStatus"] == "pending"

    receipt = db.query(NotificationReceipt).filter(
        NotificationReceipt.order_id == "ORD-S1", NotificationReceipt.type == "orderUpdate"
    ).one()
    assert receipt.previous_status == "pending"
    assert receipt.status == "shipped"


def test_delivered_at_is_first_write_wins(client, db, admin_headers, placed_order):
    first = _patch(client, admin_headers, "delivered").json()["data"]["deliveredAt"]
    assert first is not None

    _patch(client, admin_headers, "processing")
    second = _patch(client, admin_headers, "delivered").json()["data"]["deliveredAt"]
    assert second == first


def test_cancelled_sets_cancelled_at(client, admin_headers, placed_order):
    data = _patch(client, admin_headers, "cancelled").json()["data"]
    assert data["cancelledAt"] is not None
    assert data["deliveredAt"] is None


def test_any_status_can_follow_any_other(client, admin_headers, placed_order):
    assert _patch(client, admin_headers, "delivered").status_code == 200
    response = _patch(client, admin_headers, "pending")
    assert response.status_code == 200
    assert response.json()["previousStatus"] == "delivered"


def test_status_update_errors(client, admin_headers, placed_order):
    assert _patch(client, placed_order["headers"], "shipped").status_code == 403
    assert _patch(client, admin_headers, "lost").status_code == 400
    assert _patch(client, admin_headers, "shipped", order_id="ORD-NONE").status_code == 404


def test_owner_without_tokens_still_gets_status_change(client, db, admin_headers, customer_headers, make_product):
    product = make_product()
    item = {"productId": product.id, "productName": product.name, "price": product.price, "quantity": 1}
    client.post("/api/orders/create", json=order_payload([item], order_id="ORD-S2"), headers=customer_headers)

    body = _patch(client, admin_headers, "processing", order_id="ORD-S2").json()
    assert body["success"] is True
    assert body["notificationSent"] is False
    assert body["notificationError"] == "User does not have any valid push tokens configured"
    assert body["notificationReceiptCreated"] is True


def test_recent_status_updates_and_receipts_poll(client, db, admin_headers, placed_order):
    headers = placed_order["headers"]
    _patch(client, admin_headers, "processing")

    updates = client.get("/api/orders/recent-status-updates", headers=headers).json()
    assert [u["orderId"] for u in updates["data"]] == ["ORD-S1"]
    assert updates["data"][0]["status"] == "processing"
    assert isinstance(updates["timestamp"], int)

    later = client.get("/api/orders/recent-status-updates", params={"lastChecked": updates["timestamp"] + 60000},
                       headers=headers).json()
    assert later["data"] == []


def test_test_notification_sets_status(client, db, push_gateway, admin_headers, placed_order):
    push_gateway.messages.clear()
    response = client.post("/api/orders/test-notification/ORD-S1", json={"status": "shipped"},
                           headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["data"]["status"] == "success"
    assert len(push_gateway.messages) == 1

    db.expire_all()
    assert db.query(Order).filter(Order.order_id == "ORD-S1").one().status == "shipped"


def test_test_notification_requires_tokens(client, admin_headers, customer_headers, make_product):
    product = make_product()
    item = {"productId": product.id, "productName": product.name, "price": product.price, "quantity": 1}
    client.post("/api/orders/create", json=order_payload([item], order_id="ORD-S3"), headers=customer_headers)

    response = client.post("/api/orders/test-notification/ORD-S3", json={}, headers=admin_headers)
    assert response.status_code == 400


def _stored_status(db, order_id="ORD-S1"):
    db.expire_all()
    return db.query(Order).filter(Order.order_id == order_id).one().status


def test_gateway_outage_keeps_status_and_receipt(client, db, push_gateway, admin_headers, placed_order):
    push_gateway.fail = True

    response = _patch(client, admin_headers, "shipped")
    assert response.status_code == 200
    body = response.json()
    assert body["notificationSent"] is False
    assert body["notificationError"]
    assert body["notificationReceiptCreated"] is True
    assert _stored_status(db) == "shipped"
    assert db.query(NotificationReceipt).filter(
        NotificationReceipt.order_id == "ORD-S1", NotificationReceipt.status == "shipped"
    ).count() == 1


@pytest.mark.parametrize("reply", [{"data": None}, {"data": ["ok"]}, {"data": [{"status": "error"}]}])
def test_malformed_gateway_reply_keeps_status(client, db, push_gateway, admin_headers, placed_order, reply):
    push_gateway.reply = reply

    response = _patch(client, admin_headers, "delivered")
    assert response.status_code == 200
    assert response.json()["notificationSent"] is False
    assert response.json()["data"]["deliveredAt"] is not None
    assert _stored_status(db) == "delivered"

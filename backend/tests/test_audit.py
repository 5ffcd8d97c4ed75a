from sqlalchemy.exc import OperationalError

from conftest import order_payload
from models.product import Product
from models.review import Review


def _place(client, headers, product, order_id):
    item = {"productId": product.id, "productName": product.name, "price": product.price, "quantity": 1}
    response = client.post("/api/orders/create", json=order_payload([item], order_id=order_id), headers=headers)
    assert response.status_code == 201


def _patch(client, headers, order_id, status):
    response = client.patch(f"/api/orders/admin/status/{order_id}", json={"status": status}, headers=headers)
    assert response.status_code == 200


def test_entries_filter_by_order(client, admin_headers, customer_headers, make_product):
    product = make_product(stock=10)
    _place(client, customer_headers, product, "ORD-A1")
    _place(client, customer_headers, product, "ORD-A2")
    _patch(client, admin_headers, "ORD-A1", "processing")

    body = client.get("/api/logs", params={"orderId": "ORD-A1"}, headers=admin_headers).json()
    assert body["total"] == 2
    assert [e["action"] for e in body["items"]] == ["ORDER_STATUS_CHANGE", "ORDER_CREATE"]
    assert all(e["orderId"] == "ORD-A1" for e in body["items"])

    body = client.get("/api/logs", params={"action": "ORDER_CREATE"}, headers=admin_headers).json()
    assert {e["orderId"] for e in body["items"]} == {"ORD-A1", "ORD-A2"}


def test_entries_filter_by_product(client, admin_headers):
    form = {"name": "Space Rover", "price": "899.99", "description": "Moon buggy", "category": "Set"}
    product_id = client.post("/api/products", data=form, headers=admin_headers).json()["data"]["id"]
    client.put(f"/api/products/{product_id}", data={"stock": "5"}, headers=admin_headers)
    client.post("/api/products", data=dict(form, name="Moon Base"), headers=admin_headers)

    body = client.get("/api/logs", params={"productId": product_id}, headers=admin_headers).json()
    assert sorted(e["action"] for e in body["items"]) == ["PRODUCT_CREATE", "PRODUCT_UPDATE"]


def test_entries_pagination_and_validation(client, admin_headers, customer_headers):
    for _ in range(3):
        client.post("/api/login", json={"email": "alice@example.com", "password": "wrong"})

    body = client.get("/api/logs", params={"status": "fail", "pageSize": 2, "page": 2},
                      headers=admin_headers).json()
    assert body["total"] == 3
    assert body["pageSize"] == 2
    assert len(body["items"]) == 1

    assert client.get("/api/logs", params={"action": "SHOPLIFT"}, headers=admin_headers).status_code == 400
    assert client.get("/api/logs", params={"dateFrom": "yesterday"}, headers=admin_headers).status_code == 400
    assert client.get("/api/logs", headers=customer_headers).status_code == 403


def test_order_status_history(client, admin, admin_headers, customer_headers, make_product):
    product = make_product(stock=10)
    _place(client, customer_headers, product, "ORD-H1")
    for status in ("processing", "shipped", "delivered"):
        _patch(client, admin_headers, "ORD-H1", status)

    body = client.get("/api/logs/orders/ORD-H1/status-history", headers=admin_headers).json()
    assert body["orderId"] == "ORD-H1"
    assert [(c["previousStatus"], c["newStatus"]) for c in body["changes"]] == [
        ("pending", "processing"),
        ("processing", "shipped"),
        ("shipped", "delivered"),
    ]
    assert all(c["changedBy"] == admin.id for c in body["changes"])

    empty = client.get("/api/logs/orders/ORD-NONE/status-history", headers=admin_headers).json()
    assert empty["changes"] == []


def _broken_audit(*args, **kwargs):
    raise OperationalError("INSERT INTO audit_entries", {}, Exception("disk I/O error"))


def test_audit_failure_does_not_fail_committed_writes(client, db, monkeypatch, admin_headers, customer_headers,
                                                      make_product):
    product = make_product(stock=10)
    _place(client, customer_headers, product, "ORD-F1")
    _patch(client, admin_headers, "ORD-F1", "delivered")
    monkeypatch.setattr("utils.audit.write_log", _broken_audit)

    form = {"name": "Space Rover", "price": "899.99", "description": "Moon buggy", "category": "Set"}
    response = client.post("/api/products", data=form, headers=admin_headers)
    assert response.status_code == 201
    assert db.query(Product).filter(Product.name == "Space Rover").count() == 1

    response = client.post("/api/reviews/create", json={"productId": product.id, "rating": 5, "comment": "Fun"},
                           headers=customer_headers)
    assert response.status_code == 201
    review_id = response.json()["data"]["id"]

    response = client.put(f"/api/reviews/update/{review_id}", json={"rating": 4}, headers=customer_headers)
    assert response.status_code == 200
    db.expire_all()
    assert db.get(Review, review_id).rating == 4

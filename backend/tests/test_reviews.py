import pytest

from conftest import order_payload


@pytest.fixture()
def castle(make_product):
    return make_product(stock=10)


def _buy(client, headers, product, order_id="ORD-R1"):
    item = {"productId": product.id, "productName": product.name, "price": product.price, "quantity": 1}
    response = client.post("/api/orders/create", json=order_payload([item], order_id=order_id), headers=headers)
    assert response.status_code == 201


def _deliver(client, admin_headers, order_id="ORD-R1"):
    response = client.patch(f"/api/orders/admin/status/{order_id}", json={"status": "delivered"},
                            headers=admin_headers)
    assert response.status_code == 200


def _review(client, headers, product, rating=5, comment="Great build!"):
    return client.post("/api/reviews/create", json={"productId": product.id, "rating": rating, "comment": comment},
                       headers=headers)


def test_review_requires_a_delivered_purchase(client, customer_headers, admin_headers, castle):
    assert _review(client, customer_headers, castle).status_code == 403

    _buy(client, customer_headers, castle)
    assert _review(client, customer_headers, castle).status_code == 403

    _deliver(client, admin_headers)
    response = _review(client, customer_headers, castle, rating=4, comment="Towers are wobbly")
    assert response.status_code == 201
    data = response.json()["data"]
    assert data["Rating"] == 4
    assert data["Comment"] == "Towers are wobbly"
    assert data["Name"] == "alice"
    assert data["Productname"] == castle.name


def test_second_review_is_rejected(client, customer_headers, admin_headers, castle):
    _buy(client, customer_headers, castle)
    _deliver(client, admin_headers)
    assert _review(client, customer_headers, castle).status_code == 201
    assert _review(client, customer_headers, castle).status_code == 400


def test_review_validation(client, customer_headers, castle):
    assert _review(client, customer_headers, castle, rating=6).status_code == 400
    assert _review(client, customer_headers, castle, comment="").status_code == 400
    response = client.post("/api/reviews/create", json={"productId": 424242, "rating": 5, "comment": "?"},
                           headers=customer_headers)
    assert response.status_code == 404


def test_can_review_reports_eligibility(client, customer_headers, admin_headers, castle):
    body = client.get(f"/api/reviews/can-review/{castle.id}", headers=customer_headers).json()
    assert body["canReview"] is False
    assert body["hasPurchased"] is False

    _buy(client, customer_headers, castle)
    _deliver(client, admin_headers)
    body = client.get(f"/api/reviews/can-review/{castle.id}", headers=customer_headers).json()
    assert body["canReview"] is True
    assert body["hasReviewed"] is False

    review_id = _review(client, customer_headers, castle).json()["data"]["id"]
    body = client.get(f"/api/reviews/can-review/{castle.id}", headers=customer_headers).json()
    assert body["canReview"] is False
    assert body["hasReviewed"] is True
    assert body["existingReviewId"] == review_id


def test_update_review_only_by_author(client, customer_headers, admin_headers, castle):
    _buy(client, customer_headers, castle)
    _deliver(client, admin_headers)
    review_id = _review(client, customer_headers, castle).json()["data"]["id"]

    response = client.put(f"/api/reviews/update/{review_id}", json={"rating": 2}, headers=customer_headers)
    assert response.status_code == 200
    assert response.json()["data"]["Rating"] == 2
    assert response.json()["data"]["Comment"] == "Great build!"

    assert client.put(f"/api/reviews/update/{review_id}", json={"rating": 1},
                      headers=admin_headers).status_code == 403
    assert client.put("/api/reviews/update/9999", json={"rating": 1}, headers=customer_headers).status_code == 404


def test_product_reviews_and_rating(client, customer_headers, admin_headers, castle, make_product):
    empty = client.get(f"/api/reviews/product/{castle.id}/rating").json()
    assert empty == {"success": True, "averageRating": 0.0, "totalReviews": 0}

    _buy(client, customer_headers, castle)
    _deliver(client, admin_headers)
    _review(client, customer_headers, castle, rating=3)

    listing = client.get(f"/api/reviews/product/{castle.id}").json()
    assert listing["count"] == 1
    assert listing["reviews"][0]["ProductID"] == castle.id

    rating = client.get(f"/api/reviews/product/{castle.id}/rating").json()
    assert rating["averageRating"] == 3.0
    assert rating["totalReviews"] == 1

    assert client.get("/api/reviews").json()["count"] == 1

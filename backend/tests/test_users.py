from datetime import timedelta

import pytest

from config import settings
from conftest import DEVICE_TOKEN, PASSWORD, create_user, login
from models.users import PushToken
from utils.timeutil import utcnow


def test_profile_and_me(client, customer_headers):
    for path in ("/api/users/profile", "/api/users/me"):
        data = client.get(path, headers=customer_headers).json()["data"]
        assert data["username"] == "alice"
        assert data["role"] == "user"
        assert "passwordHash" not in data


def test_update_profile_fields_and_password(client, customer_headers):
    response = client.put("/api/users/profile", data={"username": "alice2", "email": "Alice2@Example.com"},
                          headers=customer_headers)
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["username"] == "alice2"
    assert data["email"] == "alice2@example.com"

    wrong = client.put("/api/users/profile", data={"currentPassword": "nope", "newPassword": "brick-42"},
                       headers=customer_headers)
    assert wrong.status_code == 400
    assert wrong.json()["detail"] == "Current password is incorrect"

    ok = client.put("/api/users/profile", data={"currentPassword": PASSWORD, "newPassword": "brick-42"},
                    headers=customer_headers)
    assert ok.status_code == 200
    login(client, "alice2@example.com", "brick-42")


def test_update_profile_conflicts_and_noop(client, admin, customer_headers):
    response = client.put("/api/users/profile", data={"email": admin.email}, headers=customer_headers)
    assert response.status_code == 400
    assert response.json()["detail"] == "Email already in use by another account"

    response = client.put("/api/users/profile", data={"username": "admin"}, headers=customer_headers)
    assert response.status_code == 400

    response = client.put("/api/users/profile", data={"username": "alice"}, headers=customer_headers)
    assert response.status_code == 400
    assert response.json()["detail"] == "No changes to update"


def test_update_profile_picture(client, customer_headers, tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "UPLOAD_DIR", str(tmp_path))
    files = {"profilePicture": ("me.png", b"\x89PNG\r\n\x1a\nfake", "image/png")}
    data = client.put("/api/users/profile", files=files, headers=customer_headers).json()["data"]
    assert data["profilePicture"].startswith("/uploads/")
    assert (tmp_path / data["profilePicture"].rsplit("/", 1)[1]).exists()


def test_register_push_token_refreshes_existing(client, db, customer, customer_headers):
    body = {"pushToken": DEVICE_TOKEN, "deviceInfo": "Pixel 8"}
    assert client.post("/api/users/register-push-token", json=body, headers=customer_headers).status_code == 200

    db.query(PushToken).update({PushToken.last_used: utcnow() - timedelta(days=5)})
    db.commit()
    assert client.post("/api/users/register-push-token", json=body, headers=customer_headers).status_code == 200

    db.expire_all()
    tokens = db.query(PushToken).filter(PushToken.user_id == customer.id).all()
    assert len(tokens) == 1
    assert tokens[0].device == "Pixel 8"
    assert tokens[0].last_used > utcnow() - timedelta(minutes=1)

    assert client.post("/api/users/register-push-token", json={}, headers=customer_headers).status_code == 400


def test_remove_push_token(client, db, customer, customer_headers):
    client.post("/api/users/register-push-token", json={"pushToken": DEVICE_TOKEN}, headers=customer_headers)

    response = client.request("DELETE", "/api/users/remove-push-token", json={"pushToken": DEVICE_TOKEN},
                              headers=customer_headers)
    assert response.status_code == 200
    assert response.json()["message"] == "1 push tokens removed successfully"
    assert db.query(PushToken).filter(PushToken.user_id == customer.id).count() == 0


def test_cleanup_removes_stale_push_tokens(client, db, customer, admin_headers, customer_headers):
    db.add(PushToken(user_id=customer.id, token="ExpoPushToken[stale]", last_used=utcnow() - timedelta(days=45)))
    db.add(PushToken(user_id=customer.id, token="ExpoPushToken[fresh]", last_used=utcnow()))
    db.commit()

    assert client.post("/api/users/cleanup-push-tokens", headers=customer_headers).status_code == 403
    response = client.post("/api/users/cleanup-push-tokens", headers=admin_headers)
    assert response.json()["message"] == "Removed 1 stale push tokens"
    assert [t.token for t in db.query(PushToken).all()] == ["ExpoPushToken[fresh]"]


def test_admin_user_management(client, db, admin, admin_headers, customer, customer_headers):
    assert client.get("/api/users", headers=customer_headers).status_code == 403

    users = client.get("/api/users", headers=admin_headers).json()
    assert {u["username"] for u in users} == {"alice", "admin"}

    response = client.post("/api/users", json={"username": "bob", "email": "bob@example.com",
                                                "password": "pw", "role": "admin"}, headers=admin_headers)
    assert response.status_code == 201
    assert client.post("/api/users", json={"username": "bob", "email": "other@example.com", "password": "pw"},
                       headers=admin_headers).status_code == 400

    updated = client.put(f"/api/users/{customer.id}", json={"role": "admin"}, headers=admin_headers).json()
    assert updated["role"] == "admin"
    assert client.get(f"/api/users/{customer.id}", headers=admin_headers).json()["username"] == "alice"

    assert client.delete(f"/api/users/{admin.id}", headers=admin_headers).status_code == 400
    assert client.delete(f"/api/users/{customer.id}", headers=admin_headers).status_code == 200
    assert client.get(f"/api/users/{customer.id}", headers=admin_headers).status_code == 404


@pytest.mark.parametrize("path", ["/api/users/profile", "/api/cart", "/api/orders"])
def test_token_of_deleted_user_is_rejected(client, db, path):
    user = create_user(db, "ghost", "ghost@example.com")
    headers = login(client, user.email)
    db.delete(user)
    db.commit()
    assert client.get(path, headers=headers).status_code == 401

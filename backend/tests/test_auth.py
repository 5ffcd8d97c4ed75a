from datetime import timedelta

from jose import jwt

from config import settings
from conftest import PASSWORD, create_user, login
from models.token import SessionToken
from utils.tokenJWT import (
    hash_token, issue_session_token, revoke_session_token, sweep_expired_tokens, verify_session_token,
)
from utils.timeutil import utcnow


def test_register_then_login_returns_token_role_and_user_id(client, db):
    response = client.post(
        "/api/register",
        json={"username": "bob", "email": "Bob@Example.com", "password": "hunter22"},
    )
    assert response.status_code == 201
    assert response.json()["message"] == "User registered successfully"

    response = client.post("/api/login", json={"email": "bob@example.com", "password": "hunter22"})
    assert response.status_code == 200
    body = response.json()
    assert body["role"] == "user"
    assert isinstance(body["userId"], int)

    claims = jwt.decode(body["token"], settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    assert claims["email"] == "bob@example.com"
    assert claims["role"] == "user"
    assert claims["id"] == str(body["userId"])


def test_register_cannot_self_assign_admin(client):
    response = client.post(
        "/api/register",
        json={"username": "mallory", "email": "m@example.com", "password": "pw123456", "role": "admin"},
    )
    assert response.status_code == 201
    body = client.post("/api/login", json={"email": "m@example.com", "password": "pw123456"}).json()
    assert body["role"] == "user"


def test_register_duplicate_email_is_rejected(client, customer):
    response = client.post(
        "/api/register",
        json={"username": "other", "email": customer.email, "password": "pw123456"},
    )
    assert response.status_code == 400


def test_register_missing_field_is_400(client):
    response = client.post("/api/register", json={"username": "nopass", "email": "np@example.com"})
    assert response.status_code == 400


def test_login_with_wrong_password_is_401(client, customer):
    response = client.post("/api/login", json={"email": customer.email, "password": "wrong"})
    assert response.status_code == 401


def test_missing_token_is_401_and_garbage_token_is_403(client):
    assert client.get("/api/users/profile").status_code == 401
    response = client.get("/api/users/profile", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 403


def test_logout_blacklists_the_token(client, customer_headers):
    assert client.get("/api/users/profile", headers=customer_headers).status_code == 200

    response = client.post("/api/logout", headers=customer_headers)
    assert response.status_code == 200
    assert response.json()["success"] is True

    assert client.get("/api/users/profile", headers=customer_headers).status_code == 403


def test_second_login_replaces_the_active_session_row(client, session_db, customer):
    login(client, customer.email)
    login(client, customer.email)

    active = session_db.query(SessionToken).filter(
        SessionToken.user_id == str(customer.id), SessionToken.blacklisted.is_(False)
    ).all()
    assert len(active) == 1


def test_token_without_ledger_row_is_accepted_on_signature(client, session_db, customer):
    headers = login(client, customer.email)
    session_db.query(SessionToken).delete()
    session_db.commit()

    assert client.get("/api/users/profile", headers=headers).status_code == 200


def test_revoke_unknown_token_synthesizes_blacklisted_row(session_db, db, customer):
    token = issue_session_token(session_db, customer)
    session_db.query(SessionToken).delete()
    session_db.commit()

    assert revoke_session_token(session_db, token) is True
    row = session_db.query(SessionToken).filter(SessionToken.token_hash == hash_token(token)).one()
    assert row.blacklisted is True
    assert row.user_id == str(customer.id)
    assert verify_session_token(session_db, token) is None


def test_expired_token_is_rejected(session_db, customer):
    token = issue_session_token(session_db, customer, expires_delta=timedelta(seconds=-5))
    assert verify_session_token(session_db, token) is None


def test_sweep_removes_only_expired_rows(session_db, db):
    first = create_user(db, "first", "first@example.com")
    second = create_user(db, "second", "second@example.com")
    issue_session_token(session_db, first)
    issue_session_token(session_db, second)

    row = session_db.query(SessionToken).filter(SessionToken.user_id == str(first.id)).one()
    row.expires_at = utcnow() - timedelta(minutes=1)
    session_db.commit()

    assert sweep_expired_tokens(session_db) == 1
    remaining = [r.user_id for r in session_db.query(SessionToken).all()]
    assert remaining == [str(second.id)]


def test_admin_only_routes_reject_regular_users(client, customer_headers):
    response = client.get("/api/orders/admin", headers=customer_headers)
    assert response.status_code == 403
    assert response.json()["detail"] == "Access denied. Admin privileges required."


def test_login_writes_audit_rows(client, admin_headers, customer):
    client.post("/api/login", json={"email": customer.email, "password": "bad"})
    client.post("/api/login", json={"email": customer.email, "password": PASSWORD})

    response = client.get("/api/logs", params={"action": "LOGIN", "userId": customer.id}, headers=admin_headers)
    assert response.status_code == 200
    statuses = sorted(item["status"] for item in response.json()["items"])
    assert statuses == ["FAIL", "SUCCESS"]

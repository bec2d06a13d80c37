from datetime import timedelta

from conftest import auth_headers
from sportshop.models.user import User
from sportshop.utils.security import create_access_token, hash_password, is_admin, pwd_context, verify_password


def test_password_hash_round_trip():
    stored = hash_password("secret123")
    assert stored != "secret123"
    assert verify_password("secret123", stored)
    assert not verify_password("wrong", stored)
    assert not verify_password("secret123", "not-a-hash")


def test_passwords_are_stored_as_bcrypt_hashes():
    stored = hash_password("secret123")
    assert stored.startswith("$2b$")
    assert pwd_context.identify(stored) == "bcrypt"
    assert hash_password("secret123") != stored
    assert not verify_password("secret123", "")


def test_registration_stores_a_bcrypt_hash(client, db):
    response = client.post("/api/auth/register", json={
        "name": "Hoa Tran", "email": "hoa@example.com", "password": "secret123",
    })
    assert response.status_code == 201
    user = db.query(User).filter(User.email == "hoa@example.com").one()
    assert pwd_context.identify(user.password_hash) == "bcrypt"
    assert verify_password("secret123", user.password_hash)


def test_register_login_me_logout(client):
    registered = client.post("/api/auth/register", json={
        "name": "Lan Pham", "email": "Lan@Example.com", "password": "secret123",
    })
    assert registered.status_code == 201

    login = client.post("/api/auth/login", json={"email": "lan@example.com", "password": "secret123"})
    assert login.status_code == 200
    token = login.json()["access_token"]
    assert login.json()["user"]["email"] == "lan@example.com"
    headers = {"Authorization": f"Bearer {token}"}

    me = client.get("/api/auth/me", headers=headers)
    assert me.json()["role"] == "customer"

    assert client.post("/api/auth/logout", headers=headers).status_code == 200
    revoked = client.get("/api/auth/me", headers=headers)
    assert revoked.status_code == 401
    assert revoked.json()["message"] == "Token revoked"


def test_duplicate_registration_is_rejected(client, customer):
    response = client.post("/api/auth/register", json={
        "name": "Someone", "email": "minh@example.com", "password": "secret123",
    })
    assert response.status_code == 400


def test_login_with_wrong_password(client, customer):
    response = client.post("/api/auth/login", json={"email": "minh@example.com", "password": "nope"})
    assert response.status_code == 401
    assert response.json()["code"] == "Unauthorized"


def test_expired_token_is_rejected(client, customer):
    token = create_access_token(subject=customer.email, expires_delta=timedelta(seconds=-5))
    response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401


def test_admin_by_role_or_configured_email(client, db, customer, admin):
    assert is_admin(admin)
    assert not is_admin(customer)
    customer.email = "admin@example.org"
    db.commit()
    assert is_admin(customer)
    assert client.get("/api/admin/orders/", headers=auth_headers(customer)).status_code == 200

"""Tests for registration, login and role checks."""

from conftest import auth_headers
from storefront.core.security import get_password_hash


class TestRegister:
    def test_register_customer(self, client, db):
        response = client.post(
            "/api/auth/register",
            json={"email": "Jane@Example.com", "password": "secret123", "full_name": "Jane", "phone": "0712345678"},
        )
        assert response.status_code == 201
        user = response.json()["user"]
        assert user["email"] == "jane@example.com"
        assert user["role"] == "customer"

    def test_duplicate_email(self, client, db):
        body = {"email": "jane@example.com", "password": "secret123"}
        client.post("/api/auth/register", json=body)
        response = client.post("/api/auth/register", json=body)
        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "Email already registered"}

    def test_short_password(self, client, db):
        response = client.post("/api/auth/register", json={"email": "a@b.co", "password": "123"})
        assert response.status_code == 422


class TestLogin:
    def test_token_for_valid_credentials(self, client, make_user, db):
        user = make_user(email="login@example.com")
        user.hashed_password = get_password_hash("secret123")
        db.commit()

        response = client.post("/api/auth/token", data={"username": "login@example.com", "password": "secret123"})
        assert response.status_code == 200
        token = response.json()["access_token"]
        cart = client.get("/api/cart", headers={"Authorization": f"Bearer {token}"})
        assert cart.status_code == 200

    def test_wrong_password(self, client, make_user, db):
        user = make_user(email="login@example.com")
        user.hashed_password = get_password_hash("secret123")
        db.commit()
        response = client.post("/api/auth/token", data={"username": "login@example.com", "password": "nope"})
        assert response.status_code == 400

    def test_invalid_token(self, client, db):
        response = client.get("/api/cart", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401

    def test_blacklisted_user(self, client, customer, db):
        customer.blacklisted = True
        db.commit()
        response = client.get("/api/cart", headers=auth_headers(customer))
        assert response.status_code == 403

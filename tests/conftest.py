"""Pytest fixtures for storefront tests."""

import os
import tempfile

# Настройки читаются при импорте storefront, поэтому окружение задаётся до него
_db_dir = tempfile.mkdtemp(prefix="storefront-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{_db_dir}/storefront.db"
os.environ["ENVIRONMENT"] = "test"
os.environ["MPESA_SIMULATE"] = "true"
os.environ["EMAIL_HOST"] = ""
os.environ["SMS_API_KEY"] = ""
os.environ["STRIPE_SECRET_KEY"] = "sk_test_123"
os.environ["STRIPE_WEBHOOK_SECRET"] = "whsec_test"

import pytest
from fastapi.testclient import TestClient

from storefront.core.security import create_access_token
from storefront.db.base import Base, import_models
from storefront.db.session import SessionLocal, engine
from storefront.models.product import Product, ProductVariant, slugify
from storefront.models.user import RoleEnum, User
from storefront.services.coupons import seed_default_coupons

import_models()

DEFAULT_ADDRESS = {
    "name": "Jane Wanjiru",
    "phone": "0712345678",
    "street": "Moi Avenue 12",
    "city": "Nairobi",
    "postal_code": "00100",
    "country": "Kenya",
}


@pytest.fixture
def db():
    """Fresh schema and a session per test."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    seed_default_coupons(session)
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db):
    # без контекстного менеджера: lifespan не нужен, схема уже создана фикстурой db
    from storefront.main import app

    return TestClient(app)


@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    def _make(role=RoleEnum.customer, email=None, phone=None):
        counter["n"] += 1
        user = User(
            email=email or f"user{counter['n']}@example.com",
            full_name=f"User {counter['n']}",
            phone=phone,
            role=role,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def customer(make_user):
    return make_user()


@pytest.fixture
def admin(make_user):
    return make_user(role=RoleEnum.admin, email="admin@example.com")


def auth_headers(user):
    return {"Authorization": f"Bearer {create_access_token(str(user.id))}"}


@pytest.fixture
def make_product(db):
    def _make(name="Signature Tee", price=1000.0, variants=(("TEE-M", 5),)):
        product = Product(
            name=name,
            slug=slugify(name),
            price=price,
            brand="Kibanda",
            images=["https://cdn.example.com/tee.jpg"],
            variants=[
                ProductVariant(sku=sku, size="M", color_name="Black", color_hex="#000000", stock=stock)
                for sku, stock in variants
            ],
        )
        db.add(product)
        db.commit()
        db.refresh(product)
        return product

    return _make


@pytest.fixture
def tee(make_product):
    return make_product()


def stock_of(db, sku):
    """Current stock straight from the database."""
    db.expire_all()
    return db.query(ProductVariant).filter(ProductVariant.sku == sku).one().stock


def add_to_cart(client, user, product, sku, quantity=1):
    return client.post(
        "/api/cart",
        json={"product_id": product.id, "variant": {"sku": sku}, "quantity": quantity},
        headers=auth_headers(user),
    )


def place_order(client, user, shipping_method="standard", payment_method="mpesa", **extra):
    body = {
        "shipping_address": DEFAULT_ADDRESS,
        "payment_method": payment_method,
        "shipping_method": shipping_method,
        **extra,
    }
    return client.post("/api/orders", json=body, headers=auth_headers(user))

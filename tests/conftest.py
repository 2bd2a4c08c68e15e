import os

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("RAZORPAY_KEY_ID", "rzp_test_key")
os.environ.setdefault("RAZORPAY_KEY_SECRET", "rzp_test_secret")
os.environ.setdefault("FUNCTIONS_BASE_URL", "")

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app import models  # noqa: F401
from app.core.security import create_access_token, get_password_hash
from app.database.connection import Base, get_db
from app.models.address import Address
from app.models.cart_item import CartItem
from app.models.product import Product
from app.models.promo_code import PromoCode
from app.models.user import User
from app.services.inventory_service import derive_availability_status

TEST_DB_URL = "sqlite:///:memory:"

engine = create_engine(
    TEST_DB_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(autouse=True)
def create_test_database():
    # fresh schema per test: checkout code commits and rolls back for real
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def db():
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def client(db):
    from app.main import app

    def _get_test_db():
        yield db

    app.dependency_overrides[get_db] = _get_test_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


# ---------- factories ----------

@pytest.fixture()
def user(db):
    u = User(email="buyer@example.com", hashed_password=get_password_hash("password123"))
    db.add(u)
    db.commit()
    db.refresh(u)
    return u


@pytest.fixture()
def other_user(db):
    u = User(email="someone-else@example.com", hashed_password=get_password_hash("password123"))
    db.add(u)
    db.commit()
    db.refresh(u)
    return u


@pytest.fixture()
def auth_headers(user):
    return {"Authorization": f"Bearer {create_access_token({'sub': user.id})}"}


def make_product(db, name="3D Printer Filament", price="1000.00", stock=20, gst=18):
    product = Product(
        name=name,
        price=Decimal(str(price)),
        stock_quantity=stock,
        availability_status=derive_availability_status(stock),
        gst_percentage=Decimal(str(gst)) if gst is not None else None,
    )
    db.add(product)
    db.commit()
    db.refresh(product)
    return product


def make_address(db, user, state="Maharashtra"):
    address = Address(
        user_id=user.id,
        full_name="Asha Kulkarni",
        phone="9876543210",
        address_line1="12 MG Road",
        address_line2="Near Station",
        city="Pune",
        state=state,
        postal_code="411001",
        country="India",
    )
    db.add(address)
    db.commit()
    db.refresh(address)
    return address


def add_to_cart(db, user, product, quantity):
    item = CartItem(user_id=user.id, product_id=product.id, quantity=quantity)
    db.add(item)
    db.commit()
    return item


def make_promo(db, **overrides):
    fields = dict(
        code="SAVE50",
        discount_type="percentage",
        discount_value=Decimal("50"),
        max_discount_amount=Decimal("100"),
        min_order_amount=None,
        max_uses=10,
        used_count=0,
        expires_at=None,
        is_active=True,
    )
    fields.update(overrides)
    promo = PromoCode(**fields)
    db.add(promo)
    db.commit()
    db.refresh(promo)
    return promo

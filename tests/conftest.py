import pytest

from orderflow import create_app
from orderflow.config import TestConfig
from orderflow.extensions import db
from orderflow.models import User, UserRole

SHIPPING_ADDRESS = {
    "street": "12 Nguyen Hue",
    "ward": "Ben Nghe",
    "district": "District 1",
    "province": "Ho Chi Minh City",
    "zip_code": "700000",
    "country": "Vietnam",
}

LINE_ITEMS = [
    {
        "product_variant_id": 11,
        "quantity": 2,
        "unit_price": 50,
        "total_price": 100,
        "discount_value": 10,
    },
    {
        "product_variant_id": 12,
        "quantity": 1,
        "unit_price": 50,
        "total_price": 50,
        "discount_value": 0,
    },
]


@pytest.fixture()
def app():
    app = create_app(TestConfig)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def session(app):
    return db.session


@pytest.fixture()
def client(app):
    return app.test_client()


def _make_user(session, email, role):
    user = User(email=email, role=role)
    session.add(user)
    session.commit()
    return user


@pytest.fixture()
def buyer(session):
    return _make_user(session, "buyer@example.com", UserRole.CUSTOMER)


@pytest.fixture()
def staff(session):
    return _make_user(session, "staff@example.com", UserRole.STAFF)


@pytest.fixture()
def checkout_body(buyer):
    """Build a checkout JSON body for ``buyer``; keyword args override keys."""
    buyer_id = buyer.id

    def _make(**overrides):
        body = {
            "user_id": buyer_id,
            "payment_method": "COD",
            "address": dict(SHIPPING_ADDRESS),
            "items": [dict(item) for item in LINE_ITEMS],
        }
        body.update(overrides)
        return body

    return _make

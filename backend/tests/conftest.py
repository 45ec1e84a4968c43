"""
Pytest fixtures for storefront backend tests.

Provides the app with an in-memory database, a test client, catalog and
shopper fixtures, and auth helpers.
"""

import pytest
from storefront import create_app
from storefront.extensions import db
from storefront.models import Product
from storefront.services import auth_service, session_service


VALID_SHIPPING = {
    "fullName": "Asha Rao",
    "address": "12 MG Road, Indiranagar",
    "city": "Bengaluru",
    "state": "Karnataka",
    "pincode": "560038",
    "phone": "9876543210",
}


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BCRYPT_ROUNDS': 4,
        'EVENT_STREAM_KEEPALIVE': 1,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def product_a(db_session):
    product = Product(
        name="Aurum Classic Lighter",
        description="Hand-polished brass lighter",
        price=10000,
        category="lighters",
        collection="premium",
        images=["/images/a.jpg"],
        features={"material": "brass"},
    )
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def product_b(db_session):
    product = Product(
        name="Premium Butane Refill",
        description="Refined butane canister",
        price=5000,
        category="refueling",
        images=[],
        features={},
    )
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def cheap_product(db_session):
    product = Product(
        name="Flint Pack",
        description="Replacement flints",
        price=1500,
        category="refueling",
        images=[],
        features={},
    )
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def shopper(db_session):
    return auth_service.create_user(
        username="asha",
        email="asha@example.com",
        password="Password123",
        first_name="Asha",
        last_name="Rao",
    )


@pytest.fixture(scope='function')
def other_shopper(db_session):
    return auth_service.create_user(
        username="vikram",
        email="vikram@example.com",
        password="Password123",
    )


@pytest.fixture(scope='function')
def shopper_token(shopper):
    _, token = session_service.create_session(shopper.id)
    return token


@pytest.fixture(scope='function')
def other_token(other_shopper):
    _, token = session_service.create_session(other_shopper.id)
    return token


def get_auth_token(client, username: str, password: str) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/login', json={
        'username': username,
        'password': password
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


def checkout_payload(*lines, shipping=None, total=None) -> dict:
    """Build a checkout body from (product, quantity) pairs."""
    payload = {
        "shipping": dict(shipping or VALID_SHIPPING),
        "items": [{"productId": product.id, "quantity": quantity} for product, quantity in lines],
    }
    if total is not None:
        payload["total"] = total
    return payload

"""
Pytest fixtures for SalesDesk backend tests.

Each test gets a fresh application bound to an in-memory SQLite database,
two users (one per role), auth headers for both, and a small catalog.
"""

from decimal import Decimal

import pytest
from salesdesk import create_app
from salesdesk.extensions import db
from salesdesk.models import Category, Customer
from salesdesk.permissions import ROLE_ADMIN, ROLE_SALES_REP
from salesdesk.services import auth_service, products_service
from salesdesk.services.session_service import Identity, issue_token


TEST_CONFIG = {
    'TESTING': True,
    'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
    'SQLALCHEMY_TRACK_MODIFICATIONS': False,
    'BCRYPT_ROUNDS': 4,
    'JWT_SECRET': 'test-jwt-secret',
    'DB_INIT_KEY': 'test-init-key',
}


@pytest.fixture(scope='function')
def app():
    """Create application for testing with a fresh schema."""
    app = create_app(TEST_CONFIG)

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    return db.session


@pytest.fixture(scope='function')
def admin_user(db_session):
    return auth_service.create_user(
        username="admin_user",
        email="admin@salesdesk.test",
        password="admin123",
        full_name="Admin User",
        role=ROLE_ADMIN,
    )


@pytest.fixture(scope='function')
def rep_user(db_session):
    return auth_service.create_user(
        username="rep_user",
        email="rep@salesdesk.test",
        password="sales123",
        full_name="Rep User",
        role=ROLE_SALES_REP,
    )


@pytest.fixture(scope='function')
def admin_identity(admin_user):
    return Identity(id=admin_user.id, username=admin_user.username, role=admin_user.role)


@pytest.fixture(scope='function')
def rep_identity(rep_user):
    return Identity(id=rep_user.id, username=rep_user.username, role=rep_user.role)


@pytest.fixture(scope='function')
def admin_headers(admin_user):
    return auth_headers(issue_token(admin_user))


@pytest.fixture(scope='function')
def rep_headers(rep_user):
    return auth_headers(issue_token(rep_user))


@pytest.fixture(scope='function')
def category(db_session):
    cat = Category(name="Electronics", description="Electronic devices")
    db_session.add(cat)
    db_session.commit()
    return cat


@pytest.fixture(scope='function')
def product_a(admin_user, category):
    """10.00 each, 20 in stock."""
    return products_service.create_product(
        patch={
            "name": "Product A",
            "sku": "PROD-A-001",
            "category_id": category.id,
            "cost_price": Decimal("6.00"),
            "selling_price": Decimal("10.00"),
            "stock_quantity": 20,
            "min_stock_level": 5,
        },
        actor_id=admin_user.id,
    )


@pytest.fixture(scope='function')
def product_b(admin_user, category):
    """5.00 each, 10 in stock."""
    return products_service.create_product(
        patch={
            "name": "Product B",
            "sku": "PROD-B-001",
            "category_id": category.id,
            "cost_price": Decimal("2.50"),
            "selling_price": Decimal("5.00"),
            "stock_quantity": 10,
            "min_stock_level": 2,
        },
        actor_id=admin_user.id,
    )


@pytest.fixture(scope='function')
def customer(db_session, admin_user):
    c = Customer(
        name="John Smith",
        email="john.smith@email.com",
        customer_type="individual",
        total_purchases=Decimal("0"),
        created_by=admin_user.id,
    )
    db_session.add(c)
    db_session.commit()
    return c


@pytest.fixture(scope='function')
def cart(product_a, product_b):
    """[{A, 2, 10.00}, {B, 1, 5.00}] -> subtotal 25.00."""
    return [
        {"product_id": product_a.id, "quantity": 2, "unit_price": 10.00},
        {"product_id": product_b.id, "quantity": 1, "unit_price": 5.00},
    ]


def get_auth_token(client, username: str, password: str) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/auth/login', json={
        'username': username,
        'password': password
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}

"""
Pytest fixtures for CafePOS backend tests.

Provides test database setup, users per role, auth headers and catalog/order
builders.
"""

from datetime import datetime

import pytest
from cafepos import create_app
from cafepos.extensions import db
from cafepos.models import Order, OrderItem, Product, User
from cafepos.services.auth_service import hash_password
from cafepos.services import session_service

TEST_PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BCRYPT_ROUNDS': 4,
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


def make_user(db_session, username: str, role: str) -> User:
    user = User(
        username=username,
        password_hash=hash_password(TEST_PASSWORD, rounds=4),
        role=role,
    )
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def admin(db_session):
    return make_user(db_session, "admin", "admin")


@pytest.fixture(scope='function')
def manager(db_session):
    return make_user(db_session, "manager", "manager")


@pytest.fixture(scope='function')
def cashier(db_session):
    return make_user(db_session, "cashier", "cashier")


@pytest.fixture(scope='function')
def other_cashier(db_session):
    return make_user(db_session, "sara", "cashier")


def headers_for(user: User) -> dict:
    """Issue a session token directly (no bcrypt round trip)."""
    _, token = session_service.create_session(user.id)
    return auth_headers(token)


@pytest.fixture(scope='function')
def admin_headers(admin):
    return headers_for(admin)


@pytest.fixture(scope='function')
def manager_headers(manager):
    return headers_for(manager)


@pytest.fixture(scope='function')
def cashier_headers(cashier):
    return headers_for(cashier)


@pytest.fixture(scope='function')
def other_cashier_headers(other_cashier):
    return headers_for(other_cashier)


def make_product(db_session, name: str, price_cents: int = 1000, stock: int = 10, category: str = "قهوة") -> Product:
    product = Product(name=name, price_cents=price_cents, stock=stock, category=category)
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def latte(db_session):
    return make_product(db_session, "Latte", price_cents=3500, stock=10)


@pytest.fixture(scope='function')
def croissant(db_session):
    return make_product(db_session, "Croissant", price_cents=1500, stock=5, category="معجنات")


def make_order(
    db_session,
    user: User,
    lines: list[tuple],
    created_at: datetime | None = None,
    status: str = "completed",
    total_cents: int | None = None,
) -> Order:
    """
    Insert a ledger row directly, bypassing stock reconciliation.

    lines: [(product_id | None, name, price_cents, quantity), ...]
    """
    items = [
        OrderItem(position=i, product_id=pid, name=name, price_cents=price, quantity=qty)
        for i, (pid, name, price, qty) in enumerate(lines)
    ]
    order = Order(
        ordered_by_user_id=user.id,
        status=status,
        total_amount_cents=total_cents if total_cents is not None else sum(i.subtotal_cents for i in items),
        items=items,
    )
    if created_at is not None:
        order.created_at = created_at
    db_session.add(order)
    db_session.commit()
    return order


def stock_of(db_session, product_id: int) -> int:
    """Read stock straight from the database (bypasses the identity map)."""
    return db_session.query(Product.stock).filter(Product.id == product_id).scalar()


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

"""
Concurrent order placement against a shared file database.

Two cashiers race for the last units of a product: exactly one order wins,
the other gets an insufficient stock error, and stock never goes negative.
"""

import threading

import pytest

from cafepos import create_app
from cafepos.errors import InsufficientStockError
from cafepos.extensions import db
from cafepos.models import Order, Product, User
from cafepos.services import order_service
from cafepos.validation import RequestedItem


@pytest.fixture
def file_app(tmp_path):
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': f"sqlite:///{tmp_path / 'race.db'}",
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BCRYPT_ROUNDS': 4,
    })
    with app.app_context():
        db.create_all()
        user = User(username="racer", password_hash="x", role="cashier", is_active=True)
        product = Product(name="Muffin", category="معجنات", price_cents=1200, stock=5)
        db.session.add_all([user, product])
        db.session.commit()
        app.config["RACE_IDS"] = (user.id, product.id)
    yield app
    with app.app_context():
        db.session.remove()
        db.engine.dispose()


def _place(app, barrier, results):
    user_id, product_id = app.config["RACE_IDS"]
    with app.app_context():
        barrier.wait()
        try:
            order = order_service.place_order([RequestedItem(product_id, 3)], None, user_id)
            results.append(("ok", order.id))
        except InsufficientStockError as exc:
            results.append(("short", exc.available))
        finally:
            db.session.remove()


def test_two_orders_cannot_oversell(file_app):
    barrier = threading.Barrier(2)
    results = []
    threads = [threading.Thread(target=_place, args=(file_app, barrier, results)) for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)

    outcomes = sorted(kind for kind, _ in results)
    assert outcomes == ["ok", "short"]
    assert [value for kind, value in results if kind == "short"] == [2]

    _, product_id = file_app.config["RACE_IDS"]
    with file_app.app_context():
        assert db.session.get(Product, product_id).stock == 2
        assert db.session.query(Order).count() == 1

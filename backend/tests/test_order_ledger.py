"""
Order ledger listing and lifecycle tests.

Verifies:
- date/month filters use half-open UTC windows
- status, cashier and search filters
- newest-first ordering
- status transition table
"""

from datetime import datetime

import pytest

from cafepos.errors import ValidationError
from cafepos.services import order_service

from conftest import make_order


def _ids(orders):
    return [o.id for o in orders]


@pytest.fixture
def day_orders(db_session, cashier, other_cashier):
    """Orders straddling 2024-05-01 by one millisecond either side."""
    before = make_order(db_session, cashier, [(None, "Tea", 500, 1)],
                        created_at=datetime(2024, 4, 30, 23, 59, 59, 999000))
    first = make_order(db_session, cashier, [(None, "Tea", 500, 1)],
                       created_at=datetime(2024, 5, 1, 0, 0, 0))
    last = make_order(db_session, other_cashier, [(None, "Tea", 500, 2)],
                      created_at=datetime(2024, 5, 1, 23, 59, 59, 999000), status="pending")
    after = make_order(db_session, other_cashier, [(None, "Tea", 500, 3)],
                       created_at=datetime(2024, 5, 2, 0, 0, 0))
    return before, first, last, after


class TestListFilters:

    def test_date_filter_is_exact_utc_day(self, db_session, day_orders):
        before, first, last, after = day_orders
        assert _ids(order_service.list_orders(date="2024-05-01")) == [last.id, first.id]

    def test_month_filter(self, db_session, day_orders):
        before, first, last, after = day_orders
        assert _ids(order_service.list_orders(month="2024-05")) == [after.id, last.id, first.id]
        assert _ids(order_service.list_orders(month="2024-04")) == [before.id]

    def test_december_month_window_rolls_into_next_year(self, db_session, cashier):
        dec = make_order(db_session, cashier, [(None, "Tea", 500, 1)], created_at=datetime(2023, 12, 31, 23, 0))
        make_order(db_session, cashier, [(None, "Tea", 500, 1)], created_at=datetime(2024, 1, 1, 0, 0))
        assert _ids(order_service.list_orders(month="2023-12")) == [dec.id]

    def test_status_filter_accepts_arabic_label(self, db_session, day_orders):
        before, first, last, after = day_orders
        assert _ids(order_service.list_orders(status="pending")) == [last.id]
        assert _ids(order_service.list_orders(status="قيد التنفيذ")) == [last.id]

    def test_cashier_filter(self, db_session, day_orders):
        before, first, last, after = day_orders
        assert _ids(order_service.list_orders(cashier="cashier")) == [first.id, before.id]

    def test_unknown_cashier_returns_empty_list(self, db_session, day_orders):
        assert order_service.list_orders(cashier="nobody") == []

    def test_search_by_order_id(self, db_session, day_orders):
        before, first, last, after = day_orders
        assert _ids(order_service.list_orders(search=str(last.id))) == [last.id]

    def test_search_by_username_substring(self, db_session, day_orders):
        before, first, last, after = day_orders
        assert _ids(order_service.list_orders(search="AR")) == [after.id, last.id]

    def test_search_without_match_returns_empty(self, db_session, day_orders):
        assert order_service.list_orders(search="zzz") == []

    def test_search_treats_like_wildcards_literally(self, db_session, day_orders):
        assert order_service.list_orders(search="_") == []
        assert order_service.list_orders(search="%") == []

    def test_search_with_oversized_number_matches_nothing(self, db_session, day_orders):
        assert order_service.list_orders(search="9" * 25) == []

    def test_filters_combine(self, db_session, day_orders):
        before, first, last, after = day_orders
        assert _ids(order_service.list_orders(date="2024-05-01", cashier="sara")) == [last.id]

    def test_newest_first_with_id_tiebreak(self, db_session, cashier):
        at = datetime(2024, 6, 1, 12, 0)
        a = make_order(db_session, cashier, [(None, "Tea", 500, 1)], created_at=at)
        b = make_order(db_session, cashier, [(None, "Tea", 500, 1)], created_at=at)
        assert _ids(order_service.list_orders()) == [b.id, a.id]

    @pytest.mark.parametrize("kwargs", [
        {"date": "2024-13-01"},
        {"date": "01/05/2024"},
        {"month": "2024-5-1"},
        {"status": "done"},
    ])
    def test_malformed_filters_raise_validation_error(self, db_session, kwargs):
        with pytest.raises(ValidationError):
            order_service.list_orders(**kwargs)


class TestListOrdersApi:

    def test_manager_lists_with_query_filters(self, client, db_session, day_orders, manager_headers):
        before, first, last, after = day_orders
        resp = client.get("/api/orders?date=2024-05-01", headers=manager_headers)
        assert resp.status_code == 200
        assert [o["id"] for o in resp.json] == [last.id, first.id]

    def test_unknown_cashier_is_empty_list_not_error(self, client, db_session, day_orders, manager_headers):
        resp = client.get("/api/orders?cashier=ghost", headers=manager_headers)
        assert resp.status_code == 200
        assert resp.json == []

    def test_bad_date_is_400(self, client, db_session, manager_headers):
        resp = client.get("/api/orders?date=yesterday", headers=manager_headers)
        assert resp.status_code == 400

    def test_oversized_search_is_empty_list(self, client, db_session, day_orders, manager_headers):
        resp = client.get("/api/orders?search=9999999999999999999999999", headers=manager_headers)
        assert resp.status_code == 200
        assert resp.json == []


class TestStatusTransitions:

    @pytest.mark.parametrize("current,new", [
        ("pending", "completed"),
        ("pending", "cancelled"),
        ("completed", "cancelled"),
        ("completed", "completed"),
        ("cancelled", "cancelled"),
    ])
    def test_allowed(self, db_session, cashier, current, new):
        order = make_order(db_session, cashier, [(None, "Tea", 500, 1)], status=current)
        updated = order_service.update_order(order.id, {"status": new})
        assert updated.status == new

    @pytest.mark.parametrize("current,new", [
        ("completed", "pending"),
        ("cancelled", "pending"),
        ("cancelled", "completed"),
    ])
    def test_rejected(self, db_session, cashier, current, new):
        order = make_order(db_session, cashier, [(None, "Tea", 500, 1)], status=current)
        with pytest.raises(ValidationError):
            order_service.update_order(order.id, {"status": new})

    def test_canceled_spelling_normalizes(self):
        assert order_service.normalize_status("Canceled") == "cancelled"
        assert order_service.normalize_status("مكتمل") == "completed"

"""
Authorization tests for CafePOS.

Verifies:
- Unauthenticated requests return 401
- Cashier role denied ledger administration and reports (403)
- Manager/admin roles can perform privileged operations
"""

import pytest

from cafepos.permissions import get_all_permission_codes, get_role_permissions, role_has_permission

from conftest import make_order


# =============================================================================
# UNAUTHENTICATED ACCESS: 401
# =============================================================================


class TestUnauthenticatedAccess:
    """All protected endpoints return 401 without a token."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/auth/me"),
            ("POST", "/api/auth/logout"),
            ("GET", "/api/users"),
            ("POST", "/api/users"),
            ("GET", "/api/products"),
            ("POST", "/api/products"),
            ("POST", "/api/products/1/stock"),
            ("GET", "/api/ingredients"),
            ("POST", "/api/orders"),
            ("GET", "/api/orders"),
            ("GET", "/api/orders/1"),
            ("PUT", "/api/orders/1"),
            ("DELETE", "/api/orders/1"),
            ("GET", "/api/reports/daily-sales"),
            ("GET", "/api/reports/product-sales"),
            ("GET", "/api/reports/employee-sales"),
            ("GET", "/api/reports/orders"),
        ],
    )
    def test_requires_auth(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"

    def test_garbage_token_is_401(self, client, db_session):
        resp = client.get("/api/orders", headers={"Authorization": "Bearer not-a-token"})
        assert resp.status_code == 401
        assert resp.json == {"error": "Invalid or expired token"}


# =============================================================================
# CASHIER DENIED PRIVILEGED OPERATIONS: 403
# =============================================================================


class TestCashierDenied:

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/orders"),
            ("GET", "/api/reports/daily-sales?date=2024-05-01"),
            ("GET", "/api/reports/product-sales"),
            ("GET", "/api/reports/employee-sales"),
            ("GET", "/api/reports/orders?date=2024-05-01"),
            ("GET", "/api/users"),
        ],
    )
    def test_cannot_read_ledger_or_reports(self, client, cashier_headers, method, path):
        resp = getattr(client, method.lower())(path, headers=cashier_headers)
        assert resp.status_code == 403
        assert resp.json["error"] == "Permission denied"

    def test_cannot_update_order(self, client, db_session, cashier, cashier_headers):
        order = make_order(db_session, cashier, [(None, "Tea", 500, 1)])
        resp = client.put(f"/api/orders/{order.id}", json={"status": "cancelled"}, headers=cashier_headers)
        assert resp.status_code == 403

    def test_cannot_delete_order(self, client, db_session, cashier, cashier_headers):
        order = make_order(db_session, cashier, [(None, "Tea", 500, 1)])
        resp = client.delete(f"/api/orders/{order.id}", headers=cashier_headers)
        assert resp.status_code == 403

    def test_cannot_manage_catalog(self, client, cashier_headers, latte):
        resp = client.post(f"/api/products/{latte.id}/stock", json={"delta": 5}, headers=cashier_headers)
        assert resp.status_code == 403

    def test_can_view_catalog_and_place_orders(self, client, cashier_headers, latte):
        assert client.get("/api/products", headers=cashier_headers).status_code == 200
        resp = client.post("/api/orders", json={"items": [{"productId": latte.id, "quantity": 1}]},
                           headers=cashier_headers)
        assert resp.status_code == 200


# =============================================================================
# MANAGER / ADMIN
# =============================================================================


class TestPrivilegedRoles:

    def test_manager_can_list_orders_but_not_create_users(self, client, manager_headers):
        assert client.get("/api/orders", headers=manager_headers).status_code == 200
        resp = client.post("/api/users", json={
            "username": "new", "password": "Password123!", "role": "cashier",
        }, headers=manager_headers)
        assert resp.status_code == 403

    def test_admin_creates_user(self, client, admin_headers):
        resp = client.post("/api/users", json={
            "username": "omar", "password": "Password123!", "role": "cashier",
        }, headers=admin_headers)
        assert resp.status_code == 201
        assert resp.json["username"] == "omar"
        assert resp.json["role"] == "cashier"

    def test_duplicate_username_is_409(self, client, admin, admin_headers):
        resp = client.post("/api/users", json={
            "username": "admin", "password": "Password123!", "role": "admin",
        }, headers=admin_headers)
        assert resp.status_code == 409

    def test_weak_password_is_400(self, client, admin_headers):
        resp = client.post("/api/users", json={
            "username": "weak", "password": "short", "role": "cashier",
        }, headers=admin_headers)
        assert resp.status_code == 400
        assert resp.json["errors"][0]["field"] == "password"


class TestRolePermissionMap:

    def test_cashier_permissions(self):
        assert get_role_permissions("cashier") == {"PLACE_ORDER", "VIEW_CATALOG"}

    def test_manager_lacks_only_user_management(self):
        assert get_role_permissions("admin") - get_role_permissions("manager") == {"MANAGE_USERS"}

    def test_unknown_role_has_nothing(self):
        assert not role_has_permission("barista", "PLACE_ORDER")

    def test_role_permissions_are_defined_codes(self):
        codes = set(get_all_permission_codes())
        for role in ("admin", "manager", "cashier"):
            assert get_role_permissions(role) <= codes

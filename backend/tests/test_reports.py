"""
Reporting engine tests.

Verifies:
- Daily sales include exactly the orders inside [D 00:00Z, D+1 00:00Z)
- Product sales quantities equal the sum of line item quantities
- Employee sales totals equal the sum of that employee's order totals
- Deleted products fall into the "unknown" bucket
- Orders of users that no longer exist are dropped from the employee report
"""

from datetime import datetime

from sqlalchemy import text

from cafepos.services import reporting_service

from conftest import make_order, make_product


class TestDailySales:

    def test_day_boundaries_are_exact(self, db_session, cashier, latte):
        make_order(db_session, cashier, [(latte.id, "Latte", 3500, 9)],
                   created_at=datetime(2024, 4, 30, 23, 59, 59, 999000))
        make_order(db_session, cashier, [(latte.id, "Latte", 3500, 1)],
                   created_at=datetime(2024, 5, 1, 0, 0, 0))
        make_order(db_session, cashier, [(latte.id, "Latte", 3500, 2)],
                   created_at=datetime(2024, 5, 1, 23, 59, 59, 999000))
        make_order(db_session, cashier, [(latte.id, "Latte", 3500, 7)],
                   created_at=datetime(2024, 5, 2, 0, 0, 0))

        report = reporting_service.daily_sales("2024-05-01")

        assert report["date"] == "2024-05-01"
        assert report["totalOrders"] == 2
        assert report["totalSalesCents"] == 3 * 3500
        assert report["totalSales"] == 105.0
        assert report["productsSold"] == [{
            "productId": latte.id,
            "name": "Latte",
            "quantity": 3,
            "totalPrice": 105.0,
            "totalPriceCents": 10500,
        }]

    def test_empty_day(self, db_session):
        report = reporting_service.daily_sales("2024-01-01")
        assert report["totalOrders"] == 0
        assert report["totalSales"] == 0
        assert report["productsSold"] == []

    def test_deleted_product_falls_into_unknown_bucket(self, db_session, cashier):
        scone = make_product(db_session, "Scone", price_cents=800, stock=5)
        at = datetime(2024, 5, 1, 9, 0)
        make_order(db_session, cashier, [(scone.id, "Scone", 800, 2)], created_at=at)
        db_session.delete(scone)
        db_session.commit()

        report = reporting_service.daily_sales("2024-05-01")
        assert report["productsSold"][0]["productId"] == "unknown"
        assert report["productsSold"][0]["name"] == "Scone"
        assert report["productsSold"][0]["quantity"] == 2


class TestProductSales:

    def test_quantities_match_line_items(self, db_session, cashier, manager, latte, croissant):
        make_order(db_session, cashier, [(latte.id, "Latte", 3500, 2), (croissant.id, "Croissant", 1500, 1)])
        make_order(db_session, manager, [(latte.id, "Latte", 3500, 1)])
        make_order(db_session, cashier, [(croissant.id, "Croissant", 1500, 4)])

        report = {row["productId"]: row for row in reporting_service.product_sales()}

        assert report[latte.id]["totalQuantitySold"] == 3
        assert report[latte.id]["totalSalesCents"] == 10500
        assert report[croissant.id]["totalQuantitySold"] == 5
        assert report[croissant.id]["totalSales"] == 75.0

    def test_sorted_by_revenue_desc(self, db_session, cashier, latte, croissant):
        make_order(db_session, cashier, [(latte.id, "Latte", 3500, 1), (croissant.id, "Croissant", 1500, 4)])

        report = reporting_service.product_sales()
        assert [row["productName"] for row in report] == ["Croissant", "Latte"]

    def test_uses_first_snapshot_name(self, db_session, cashier, latte):
        make_order(db_session, cashier, [(latte.id, "Latte", 3500, 1)], created_at=datetime(2024, 1, 1))
        make_order(db_session, cashier, [(latte.id, "Oat Latte", 4000, 1)], created_at=datetime(2024, 2, 1))

        report = reporting_service.product_sales()
        assert report == [{
            "productId": latte.id,
            "productName": "Latte",
            "totalQuantitySold": 2,
            "totalSales": 75.0,
            "totalSalesCents": 7500,
        }]


class TestEmployeeSales:

    def test_total_equals_sum_of_order_totals(self, db_session, cashier, manager):
        make_order(db_session, cashier, [(None, "Tea", 500, 1)], total_cents=500)
        make_order(db_session, cashier, [(None, "Tea", 500, 3)], total_cents=1500)
        make_order(db_session, manager, [(None, "Cake", 2500, 1)], total_cents=2500)

        report = reporting_service.employee_sales()

        assert report == [
            {
                "employeeId": manager.id,
                "employeeName": "manager",
                "employeeRole": "manager",
                "totalSales": 25.0,
                "totalSalesCents": 2500,
                "numberOfOrders": 1,
            },
            {
                "employeeId": cashier.id,
                "employeeName": "cashier",
                "employeeRole": "cashier",
                "totalSales": 20.0,
                "totalSalesCents": 2000,
                "numberOfOrders": 2,
            },
        ]

    def test_orders_of_removed_user_are_dropped(self, db_session, cashier, other_cashier):
        make_order(db_session, cashier, [(None, "Tea", 500, 1)])
        make_order(db_session, other_cashier, [(None, "Tea", 500, 4)])

        # Simulate a user removed outside the application (no FK enforcement)
        db_session.execute(text("DELETE FROM users WHERE id = :id"), {"id": other_cashier.id})
        db_session.commit()

        report = reporting_service.employee_sales()
        assert [row["employeeName"] for row in report] == ["cashier"]


class TestReportsApi:

    def test_daily_sales_requires_date(self, client, db_session, manager_headers):
        resp = client.get("/api/reports/daily-sales", headers=manager_headers)
        assert resp.status_code == 400

    def test_daily_sales_rejects_malformed_date(self, client, db_session, manager_headers):
        resp = client.get("/api/reports/daily-sales?date=2024-02-30", headers=manager_headers)
        assert resp.status_code == 400

    def test_reports_for_manager(self, client, db_session, cashier, manager_headers, latte):
        make_order(db_session, cashier, [(latte.id, "Latte", 3500, 2)], created_at=datetime(2024, 5, 1, 10))

        daily = client.get("/api/reports/daily-sales?date=2024-05-01", headers=manager_headers)
        products = client.get("/api/reports/product-sales", headers=manager_headers)
        employees = client.get("/api/reports/employee-sales", headers=manager_headers)
        orders = client.get("/api/reports/orders?date=2024-05-01", headers=manager_headers)

        assert daily.status_code == 200
        assert daily.json["totalSales"] == 70.0
        assert products.json[0]["productName"] == "Latte"
        assert employees.json[0]["employeeName"] == "cashier"
        assert len(orders.json) == 1

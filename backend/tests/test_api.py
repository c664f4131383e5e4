# Overview: Pytest coverage for the HTTP API; billing flow, work orders, bank accounts and dashboard.

from datetime import date, timedelta

import pytest

from backoffice.models import BankAccount
from conftest import auth_headers


@pytest.fixture
def headers(owner_a):
    return auth_headers(owner_a)


def _post(client, url, headers, **body):
    return client.post(url, json=body, headers=headers)


class TestBillingFlow:

    def test_create_items_bill_and_settle_dues(self, client, db_session, headers):
        item = _post(
            client, "/api/inventory/items", headers,
            item_type="generic", name="Cable", unit="pcs",
            mrp_cents=120, purchase_price_cents=60, sale_price_cents=100,
        )
        assert item.status_code == 201
        item_id = item.get_json()["item"]["id"]

        stock = _post(client, f"/api/inventory/items/{item_id}/stock", headers, qty=10)
        assert stock.status_code == 200

        service = _post(client, "/api/inventory/services", headers, name="Installation", price_cents=80)
        service_id = service.get_json()["service"]["id"]

        customer = _post(client, "/api/customers", headers, name="Ravi", phone="9000000001")
        assert customer.status_code == 201
        customer_id = customer.get_json()["customer"]["id"]

        bill_a = _post(
            client, "/api/bills", headers,
            customer_id=customer_id,
            lines=[{"line_type": "generic", "item_ref": item_id, "qty": 2}],
            initial_payment_cents=50,
        )
        assert bill_a.status_code == 201
        body = bill_a.get_json()["bill"]
        assert (body["total_cents"], body["due_cents"], body["status"]) == (200, 150, "partial")
        assert [p["amount_cents"] for p in body["payment_history"]] == [50]

        bill_b = _post(
            client, "/api/bills", headers,
            customer_id=customer_id,
            lines=[{"line_type": "service", "item_ref": service_id}],
        )
        assert bill_b.get_json()["bill"]["status"] == "pending"

        too_much = _post(client, f"/api/bills/customer/{customer_id}/pay-due", headers, amount_cents=500)
        assert too_much.status_code == 400
        assert too_much.get_json()["kind"] == "limit_exceeded"

        settled = _post(client, f"/api/bills/customer/{customer_id}/pay-due", headers, amount_cents=180)
        assert settled.status_code == 200
        assert [(b["status"], b["due_cents"]) for b in settled.get_json()["bills"]] == [("paid", 0), ("partial", 50)]

        listing = client.get("/api/customers", headers=headers).get_json()
        assert listing["customers"][0]["total_due_cents"] == 50

        detail = client.get(f"/api/bills/{bill_a.get_json()['bill']['id']}", headers=headers).get_json()["bill"]
        assert detail["customer"]["name"] == "Ravi"
        assert len(detail["lines"]) == 1

        stock_left = client.get(f"/api/inventory/items/{item_id}", headers=headers).get_json()["item"]
        assert stock_left["stock_qty"] == 8

    def test_insufficient_stock_answers_409(self, client, db_session, headers):
        item_id = _post(
            client, "/api/inventory/items", headers,
            item_type="generic", name="Cable", unit="pcs",
            mrp_cents=120, purchase_price_cents=60, sale_price_cents=100,
        ).get_json()["item"]["id"]
        customer_id = _post(client, "/api/customers", headers, name="Ravi", phone="1").get_json()["customer"]["id"]

        resp = _post(
            client, "/api/bills", headers,
            customer_id=customer_id,
            lines=[{"line_type": "generic", "item_ref": item_id, "qty": 1}],
        )

        assert resp.status_code == 409
        assert resp.get_json()["kind"] == "insufficient_stock"
        assert resp.get_json()["details"]["available"] == 0

    def test_serial_stock_and_check(self, client, db_session, headers):
        item_id = _post(
            client, "/api/inventory/items", headers,
            item_type="serialized", name="Router", unit="pcs",
            mrp_cents=2000, purchase_price_cents=1000, sale_price_cents=1500,
        ).get_json()["item"]["id"]

        added = _post(client, f"/api/inventory/items/{item_id}/stock", headers, serial_numbers=["SN/1", "SN/2"])
        assert added.status_code == 200

        check = client.get("/api/inventory/check-serial/SN/1", headers=headers).get_json()
        assert check["exists"] is True
        assert check["item_id"] == item_id

        duplicate = _post(client, f"/api/inventory/items/{item_id}/stock", headers, serial_numbers=["SN/2"])
        assert duplicate.status_code == 409

    def test_missing_customer_id(self, client, db_session, headers):
        resp = _post(client, "/api/bills", headers, lines=[])
        assert resp.status_code == 400

    def test_item_validation(self, client, db_session, headers):
        resp = _post(
            client, "/api/inventory/items", headers,
            item_type="bundle", name="Kit", unit="pcs",
            mrp_cents=1, purchase_price_cents=1, sale_price_cents=1,
        )
        assert resp.status_code == 400


class TestWorkOrderRoutes:

    def test_schedule_complete_and_list(self, client, db_session, headers):
        customer_id = _post(client, "/api/customers", headers, name="Ravi", phone="1").get_json()["customer"]["id"]
        tomorrow = (date.today() + timedelta(days=1)).isoformat()

        created = _post(
            client, "/api/work-orders", headers,
            customer_id=customer_id, note="Install", schedule_date=tomorrow, schedule_time="9:05",
        )
        assert created.status_code == 201
        work_order = created.get_json()["work_order"]
        assert work_order["schedule_time"] == "09:05"

        pending = client.get("/api/work-orders/pending", headers=headers).get_json()["work_orders"]
        assert [w["id"] for w in pending] == [work_order["id"]]

        done = _post(client, f"/api/work-orders/{work_order['id']}/complete", headers)
        assert done.status_code == 200
        again = _post(client, f"/api/work-orders/{work_order['id']}/complete", headers)
        assert again.status_code == 400

        completed = client.get("/api/work-orders/completed", headers=headers).get_json()["work_orders"]
        assert [w["id"] for w in completed] == [work_order["id"]]

    @pytest.mark.parametrize("body", [
        {"note": "x", "schedule_date": "2001-01-01"},
        {"note": "x", "schedule_date": "not-a-date"},
        {"note": "x", "schedule_date": "2099-01-01", "schedule_time": "25:00"},
        {"note": "", "schedule_date": "2099-01-01"},
    ])
    def test_invalid_schedule(self, client, db_session, headers, body):
        customer_id = _post(client, "/api/customers", headers, name="Ravi", phone="1").get_json()["customer"]["id"]
        resp = _post(client, "/api/work-orders", headers, customer_id=customer_id, **body)
        assert resp.status_code == 400


class TestBankAccountRoutes:

    ACCOUNT = {
        "bank_name": "State Bank",
        "account_number": "000111222",
        "ifsc_code": "sbin0000001",
        "account_holder_name": "Alice",
        "upi_id": "Alice@UPI",
    }

    def test_single_primary(self, client, db_session, headers, owner_a):
        first = _post(client, "/api/bank-accounts", headers, **self.ACCOUNT).get_json()["bank_account"]
        second = _post(client, "/api/bank-accounts", headers, **dict(self.ACCOUNT, account_number="999")).get_json()["bank_account"]

        assert first["is_primary"] is True
        assert second["is_primary"] is False
        assert first["ifsc_code"] == "SBIN0000001"
        assert first["upi_id"] == "alice@upi"

        _post(client, f"/api/bank-accounts/{second['id']}/primary", headers)
        primaries = db_session.query(BankAccount).filter_by(owner_id=owner_a.id, is_primary=True).all()
        assert [a.id for a in primaries] == [second["id"]]

        client.delete(f"/api/bank-accounts/{second['id']}", headers=headers)
        listing = client.get("/api/bank-accounts", headers=headers).get_json()["bank_accounts"]
        assert [(a["id"], a["is_primary"]) for a in listing] == [(first["id"], True)]


class TestDashboardRoute:

    def test_default_period(self, client, db_session, headers):
        resp = client.get("/api/dashboard/metrics", headers=headers)
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["filter_info"]["period"] == "1month"
        assert body["period_metrics"]["billed_amount_cents"] == 0
        assert body["available_months"] == []

    def test_month_year_requires_both(self, client, db_session, headers):
        resp = client.get("/api/dashboard/metrics?filter_type=monthYear&month=3", headers=headers)
        assert resp.status_code == 400

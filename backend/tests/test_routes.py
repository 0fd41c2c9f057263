"""
End-to-end API flows through the Flask test client.
"""

from datetime import timedelta
from decimal import Decimal

from lounge.extensions import db
from lounge.models import Device
from lounge.services import play_session_service
from lounge.time_utils import utcnow


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json["status"] == "healthy"


def test_cors_header_for_allowed_origin(client):
    resp = client.get("/health", headers={"Origin": "http://localhost:5173"})
    assert resp.headers["Access-Control-Allow-Origin"] == "http://localhost:5173"

    resp = client.get("/health", headers={"Origin": "http://evil.example"})
    assert "Access-Control-Allow-Origin" not in resp.headers


class TestDevices:
    def test_create_update_and_delete(self, client, admin_headers):
        resp = client.post("/api/devices", json={
            "name": "External 9",
            "type": "external",
            "hourly_rate": "1.5",
            "extra_controller_rate": 0.25,
            "location": "external",
        }, headers=admin_headers)
        assert resp.status_code == 201
        device = resp.json["device"]
        assert device["status"] == "available"
        assert Decimal(device["hourly_rate"]) == Decimal("1.5")

        resp = client.patch(f"/api/devices/{device['id']}", json={"hourly_rate": 2}, headers=admin_headers)
        assert resp.status_code == 200
        assert Decimal(resp.json["device"]["hourly_rate"]) == Decimal("2")

        resp = client.delete(f"/api/devices/{device['id']}", headers=admin_headers)
        assert resp.status_code == 200
        assert client.get(f"/api/devices/{device['id']}", headers=admin_headers).status_code == 404

    def test_create_rejects_bad_payloads(self, client, admin_headers):
        base = {"name": "X", "type": "external", "hourly_rate": 1, "location": "hall"}
        for bad in (
            {**base, "type": "arcade"},
            {**base, "hourly_rate": -1},
            {**base, "status": "occupied"},
            {k: v for k, v in base.items() if k != "name"},
        ):
            resp = client.post("/api/devices", json=bad, headers=admin_headers)
            assert resp.status_code == 400, bad

    def test_status_is_not_writable_through_patch(self, client, admin_headers, device):
        resp = client.patch(f"/api/devices/{device.id}", json={"status": "occupied"}, headers=admin_headers)
        assert resp.status_code == 400

    def test_maintenance_toggle(self, client, admin_headers, device):
        resp = client.post(f"/api/devices/{device.id}/maintenance", json={"maintenance": True}, headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json["device"]["status"] == "maintenance"

        resp = client.post("/api/sessions", json={"device_id": device.id}, headers=admin_headers)
        assert resp.status_code == 409

        resp = client.post(f"/api/devices/{device.id}/maintenance", json={"maintenance": False}, headers=admin_headers)
        assert resp.json["device"]["status"] == "available"

    def test_occupied_device_cannot_enter_maintenance_or_be_deleted(self, client, admin_headers, device):
        client.post("/api/sessions", json={"device_id": device.id}, headers=admin_headers)

        resp = client.post(f"/api/devices/{device.id}/maintenance", json={"maintenance": True}, headers=admin_headers)
        assert resp.status_code == 409

        resp = client.delete(f"/api/devices/{device.id}", headers=admin_headers)
        assert resp.status_code == 409

    def test_board_shows_running_session(self, client, user_headers, device, vip_device):
        client.post("/api/sessions", json={"device_id": device.id}, headers=user_headers)

        resp = client.get("/api/devices", headers=user_headers)
        assert resp.status_code == 200
        board = {d["id"]: d for d in resp.json["items"]}
        assert board[device.id]["status"] == "occupied"
        assert board[device.id]["session"]["status"] == "active"
        assert board[vip_device.id]["session"] is None


class TestSessions:
    def test_full_flow(self, client, user_headers, device):
        resp = client.post("/api/sessions", json={
            "device_id": device.id,
            "mode": "timed",
            "duration_minutes": 30,
            "customer_name": "  Sami  ",
        }, headers=user_headers)
        assert resp.status_code == 201
        session = resp.json["session"]
        assert session["billing_mode"] == "timed"
        assert session["customer_name"] == "Sami"
        assert session["remaining"] is not None

        resp = client.post(f"/api/sessions/{session['id']}/controllers", json={"delta": 1}, headers=user_headers)
        assert resp.status_code == 200
        assert resp.json["session"]["extra_controllers"] == 1

        resp = client.post("/api/sessions/tick", headers=user_headers)
        assert resp.status_code == 200
        assert "updated_session_ids" in resp.json

        resp = client.post(f"/api/sessions/{session['id']}/end", json={"discount_percent": 100}, headers=user_headers)
        assert resp.status_code == 200
        assert resp.json["session"]["status"] == "completed"
        assert resp.json["session"]["final_amount"] == "0.00"

        resp = client.get("/api/sessions?status=completed", headers=user_headers)
        assert resp.json["count"] == 1

    def test_start_validation(self, client, user_headers, device):
        assert client.post("/api/sessions", json={}, headers=user_headers).status_code == 400
        resp = client.post("/api/sessions", json={"device_id": device.id, "mode": "timed", "duration_minutes": 0},
                           headers=user_headers)
        assert resp.status_code == 400
        resp = client.post("/api/sessions", json={"device_id": 404}, headers=user_headers)
        assert resp.status_code == 404

    def test_end_with_bad_discount(self, client, user_headers, device):
        sid = client.post("/api/sessions", json={"device_id": device.id}, headers=user_headers).json["session"]["id"]
        resp = client.post(f"/api/sessions/{sid}/end", json={"discount_percent": -5}, headers=user_headers)
        assert resp.status_code == 400

    def test_controllers_need_count_or_delta(self, client, user_headers, device):
        sid = client.post("/api/sessions", json={"device_id": device.id}, headers=user_headers).json["session"]["id"]
        resp = client.post(f"/api/sessions/{sid}/controllers", json={}, headers=user_headers)
        assert resp.status_code == 400

    def test_list_by_date(self, client, user_headers, device):
        play_session_service.start_session(device.id, now=utcnow() - timedelta(days=3))

        today = utcnow().date().isoformat()
        resp = client.get(f"/api/sessions?date={today}", headers=user_headers)
        assert resp.json["count"] == 0

        assert client.get("/api/sessions?date=yesterday", headers=user_headers).status_code == 400


class TestTill:
    def test_product_crud_and_checkout(self, client, admin_headers):
        resp = client.post("/api/products", json={
            "name": "Tea", "price": "0.5", "stock": 3, "category": "coffee",
        }, headers=admin_headers)
        assert resp.status_code == 201
        product_id = resp.json["product"]["id"]

        resp = client.post("/api/sales/checkout", json={
            "lines": [{"product_id": product_id, "quantity": 2}],
            "discount_percent": 10,
        }, headers=admin_headers)
        assert resp.status_code == 201
        sale = resp.json["sales"][0]
        assert sale["product_name"] == "Tea"
        assert sale["final_amount"] == "0.90"

        resp = client.get("/api/products", headers=admin_headers)
        assert resp.json["items"][0]["stock"] == 1

        resp = client.post("/api/sales/checkout", json={
            "lines": [{"product_id": product_id, "quantity": 2}],
        }, headers=admin_headers)
        assert resp.status_code == 400
        assert resp.json["error"] == "Insufficient stock"

        resp = client.get("/api/products?in_stock=true", headers=admin_headers)
        assert resp.json["count"] == 1

        resp = client.patch(f"/api/sales/{sale['id']}", json={"quantity": 1}, headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json["sale"]["final_amount"] == "0.45"

        resp = client.delete(f"/api/sales/{sale['id']}", headers=admin_headers)
        assert resp.status_code == 200
        assert client.get("/api/sales", headers=admin_headers).json["count"] == 0

    def test_product_validation(self, client, admin_headers):
        resp = client.post("/api/products", json={"name": "Gum", "price": -1, "category": "market"},
                           headers=admin_headers)
        assert resp.status_code == 400
        resp = client.post("/api/products", json={"name": "Gum", "price": 1, "category": "toys"},
                           headers=admin_headers)
        assert resp.status_code == 400

    def test_unknown_product_patch(self, client, admin_headers):
        resp = client.patch("/api/products/999", json={"stock": 5}, headers=admin_headers)
        assert resp.status_code == 404


class TestBackOffice:
    def test_expense_rolls_into_todays_summary(self, client, admin_headers):
        resp = client.post("/api/expenses", json={
            "description": "Electricity bill", "amount": "35.5", "category": "electricity",
        }, headers=admin_headers)
        assert resp.status_code == 201
        expense = resp.json["expense"]
        assert expense["date"] == utcnow().date().isoformat()

        resp = client.get("/api/reports/summaries?period=daily", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json["totals"]["expenses_total"] == "35.50"
        assert resp.json["totals"]["net_income"] == "-35.50"

        resp = client.delete(f"/api/expenses/{expense['id']}", headers=admin_headers)
        assert resp.status_code == 200
        resp = client.get("/api/reports/summaries", headers=admin_headers)
        assert resp.json["totals"]["expenses_total"] == "0.00"

    def test_expense_validation(self, client, admin_headers):
        resp = client.post("/api/expenses", json={"description": "", "amount": 5, "category": "rent"},
                           headers=admin_headers)
        assert resp.status_code == 400
        resp = client.post("/api/expenses", json={"description": "x", "amount": 5, "category": "food"},
                           headers=admin_headers)
        assert resp.status_code == 400

    def test_debt_lifecycle(self, client, admin_headers):
        resp = client.post("/api/debts", json={"customer_name": "Omar", "amount": 4.5}, headers=admin_headers)
        assert resp.status_code == 201
        debt_id = resp.json["debt"]["id"]
        assert resp.json["debt"]["status"] == "pending"

        resp = client.get("/api/debts", headers=admin_headers)
        assert resp.json["outstanding_total"] == "4.50"

        resp = client.post(f"/api/debts/{debt_id}/pay", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json["debt"]["paid_at"] is not None

        assert client.post(f"/api/debts/{debt_id}/pay", headers=admin_headers).status_code == 409
        assert client.get("/api/debts", headers=admin_headers).json["outstanding_total"] == "0.00"

    def test_recompute_and_bad_period(self, client, admin_headers):
        resp = client.post("/api/reports/summaries/recompute",
                           json={"start": "2025-04-01", "end": "2025-04-03"}, headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json["recomputed"] == 3

        assert client.post("/api/reports/summaries/recompute", json={}, headers=admin_headers).status_code == 400
        assert client.get("/api/reports/summaries?period=yearly", headers=admin_headers).status_code == 400

    def test_dashboard(self, client, user_headers, device, vip_device):
        client.post("/api/sessions", json={"device_id": vip_device.id, "mode": "timed", "duration_minutes": 45},
                    headers=user_headers)
        vip = db.session.get(Device, vip_device.id)
        vip.status = "occupied"
        dev = db.session.get(Device, device.id)
        dev.status = "maintenance"
        db.session.commit()

        resp = client.get("/api/reports/dashboard", headers=user_headers)
        assert resp.status_code == 200
        data = resp.json
        assert data["devices"] == {"occupied": 1, "available": 0, "maintenance": 1, "total": 2}
        assert data["sessions_today"]["vip"] == 1
        assert data["sessions_today"]["total"] == 1
        assert data["next_ending_session"]["device_name"] == "VIP"
        assert data["outstanding_debts"] == "0.00"

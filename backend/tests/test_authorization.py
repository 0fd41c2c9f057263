"""
Authorization tests.

Verifies:
- Unauthenticated requests return 401
- Plain users are kept out of the sales, reports, and settings surfaces (403)
- Plain users can still run the device board and sessions
"""

import pytest

from conftest import auth_headers, get_auth_token


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
            ("GET", "/api/devices"),
            ("POST", "/api/devices"),
            ("GET", "/api/sessions"),
            ("POST", "/api/sessions"),
            ("POST", "/api/sessions/tick"),
            ("GET", "/api/products"),
            ("POST", "/api/sales/checkout"),
            ("GET", "/api/expenses"),
            ("GET", "/api/debts"),
            ("GET", "/api/reports/summaries"),
            ("GET", "/api/reports/dashboard"),
        ],
    )
    def test_requires_auth(self, client, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"

    def test_garbage_token_rejected(self, client):
        resp = client.get("/api/devices", headers=auth_headers("not-a-token"))
        assert resp.status_code == 401


# =============================================================================
# PLAIN USER DENIED ADMIN SURFACES: 403
# =============================================================================


class TestUserDeniedAdminSurfaces:
    @pytest.mark.parametrize(
        "method,path",
        [
            ("POST", "/api/devices"),
            ("PATCH", "/api/devices/1"),
            ("DELETE", "/api/devices/1"),
            ("POST", "/api/devices/1/maintenance"),
            ("GET", "/api/products"),
            ("POST", "/api/products"),
            ("POST", "/api/sales/checkout"),
            ("GET", "/api/sales"),
            ("GET", "/api/expenses"),
            ("POST", "/api/debts"),
            ("GET", "/api/reports/summaries"),
            ("POST", "/api/reports/summaries/recompute"),
        ],
    )
    def test_forbidden(self, client, user_headers, method, path):
        resp = getattr(client, method.lower())(path, json={}, headers=user_headers)
        assert resp.status_code == 403, f"{method} {path} returned {resp.status_code}"
        assert resp.json["required_role"] == "admin"


class TestUserAllowedOnBoard:
    def test_can_read_board_and_run_session(self, client, user_headers, device):
        resp = client.get("/api/devices", headers=user_headers)
        assert resp.status_code == 200

        resp = client.post("/api/sessions", json={"device_id": device.id}, headers=user_headers)
        assert resp.status_code == 201

        session_id = resp.json["session"]["id"]
        resp = client.post(f"/api/sessions/{session_id}/end", json={}, headers=user_headers)
        assert resp.status_code == 200

    def test_can_view_dashboard(self, client, user_headers):
        resp = client.get("/api/reports/dashboard", headers=user_headers)
        assert resp.status_code == 200


# =============================================================================
# ACCOUNTS
# =============================================================================


class TestAccounts:
    def test_register_always_creates_plain_user(self, client):
        resp = client.post("/api/auth/register", json={
            "email": "New@Lounge.test",
            "password": "abcdef",
            "confirm_password": "abcdef",
            "role": "admin",
        })
        assert resp.status_code == 201
        assert resp.json["user"]["email"] == "new@lounge.test"
        assert resp.json["user"]["role"] == "user"
        assert resp.json["token"]

    @pytest.mark.parametrize(
        "payload",
        [
            {"email": "a@b.co", "password": "abc", "confirm_password": "abc"},
            {"email": "a@b.co", "password": "abcdef", "confirm_password": "abcdeg"},
            {"email": "not-an-email", "password": "abcdef", "confirm_password": "abcdef"},
            {"email": "", "password": "abcdef", "confirm_password": "abcdef"},
        ],
    )
    def test_register_validation(self, client, payload):
        resp = client.post("/api/auth/register", json=payload)
        assert resp.status_code == 400

    def test_duplicate_email(self, client, plain_user):
        resp = client.post("/api/auth/register", json={
            "email": plain_user.email,
            "password": "abcdef",
            "confirm_password": "abcdef",
        })
        assert resp.status_code == 409

    def test_wrong_password(self, client, plain_user):
        assert get_auth_token(client, plain_user.email, "wrong-password") is None

    def test_logout_revokes_token(self, client, plain_user):
        token = get_auth_token(client, plain_user.email)
        headers = auth_headers(token)

        assert client.get("/api/auth/me", headers=headers).status_code == 200
        assert client.post("/api/auth/logout", headers=headers).status_code == 200
        assert client.get("/api/auth/me", headers=headers).status_code == 401

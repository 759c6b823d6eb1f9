"""Tests for authentication and user management endpoints."""

from __future__ import annotations

from datetime import timedelta

from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from backend.app.core.config import settings
from backend.app.core.security import (
    create_access_token,
    decode_access_token,
    is_token_revoked,
    revoke_token,
)
from backend.app.models.audit import AuditLog
from backend.app.models.user import User
from backend.tests.conftest import auth

LOGIN = "/api/v1/auth/login/access-token"


def _login(client: TestClient, username: str, password: str = "secret123"):
    return client.post(LOGIN, data={"username": username, "password": password})


class TestTokens:
    def test_round_trip_subject(self) -> None:
        assert decode_access_token(create_access_token("abc")) == "abc"

    def test_expired_token_is_rejected(self) -> None:
        token = create_access_token("abc", expires_delta=timedelta(seconds=-5))
        assert decode_access_token(token) is None

    def test_revoke_ignores_invalid_tokens(self) -> None:
        revoke_token("garbage")
        assert not is_token_revoked("garbage")


class TestLogin:
    def test_login_returns_token(self, client: TestClient, sales_user: User) -> None:
        resp = _login(client, "test_sales")
        assert resp.status_code == 200
        token = resp.json()["access_token"]
        me = client.get("/api/v1/auth/me", headers=auth(token)).json()
        assert me["username"] == "test_sales"
        assert "quote:write" in me["permissions"]
        assert "quote:delete" not in me["permissions"]

    def test_login_by_email(self, client: TestClient, sales_user: User) -> None:
        assert _login(client, "TEST_SALES@bhl.test").status_code == 200

    def test_wrong_password_is_401_and_audited(
        self, client: TestClient, sales_user: User, db: Session
    ) -> None:
        assert _login(client, "test_sales", "nope").status_code == 401
        assert db.query(AuditLog).filter(AuditLog.action == "LOGIN_FAILED").count() == 1

    def test_lockout_after_repeated_failures(
        self, client: TestClient, sales_user: User
    ) -> None:
        for _ in range(settings.MAX_LOGIN_ATTEMPTS):
            _login(client, "test_sales", "nope")
        assert _login(client, "test_sales").status_code == 423

    def test_inactive_user_cannot_login(
        self, client: TestClient, sales_user: User, db: Session
    ) -> None:
        sales_user.is_active = False
        db.commit()
        assert _login(client, "test_sales").status_code == 403

    def test_logout_revokes_token(self, client: TestClient, sales_user: User) -> None:
        token = _login(client, "test_sales").json()["access_token"]
        assert client.post("/api/v1/auth/logout", headers=auth(token)).status_code == 200
        assert client.get("/api/v1/auth/me", headers=auth(token)).status_code == 401

    def test_garbage_token_is_401(self, client: TestClient) -> None:
        assert client.get("/api/v1/auth/me", headers=auth("not-a-jwt")).status_code == 401


class TestUserAdmin:
    def _new_user(self, **overrides) -> dict:
        body = {
            "username": "vendedor1",
            "email": "vendedor1@bhl.test",
            "password": "secreto99",
            "first_name": "Ana",
            "last_name": "López",
            "role": "USER",
        }
        body.update(overrides)
        return body

    def test_admin_creates_user(self, client: TestClient, admin_token: str) -> None:
        resp = client.post("/api/v1/users", json=self._new_user(), headers=auth(admin_token))
        assert resp.status_code == 201
        assert resp.json()["role"] == "USER"
        assert _login(client, "vendedor1", "secreto99").status_code == 200

    def test_manager_cannot_manage_users(self, client: TestClient, manager_token: str) -> None:
        assert client.get("/api/v1/users", headers=auth(manager_token)).status_code == 403

    def test_duplicate_username_is_409(
        self, client: TestClient, admin_token: str, sales_user: User
    ) -> None:
        resp = client.post(
            "/api/v1/users",
            json=self._new_user(username="TEST_SALES"),
            headers=auth(admin_token),
        )
        assert resp.status_code == 409

    def test_short_password_is_422(self, client: TestClient, admin_token: str) -> None:
        resp = client.post(
            "/api/v1/users", json=self._new_user(password="123"), headers=auth(admin_token)
        )
        assert resp.status_code == 422

    def test_update_role(
        self, client: TestClient, admin_token: str, sales_user: User
    ) -> None:
        resp = client.put(
            f"/api/v1/users/{sales_user.id}",
            json={"role": "MANAGER", "position": "Gerente regional"},
            headers=auth(admin_token),
        )
        assert resp.status_code == 200
        assert resp.json()["role"] == "MANAGER"
        assert resp.json()["position"] == "Gerente regional"

    def test_deactivate(
        self, client: TestClient, admin_token: str, sales_user: User, sales_token: str
    ) -> None:
        resp = client.patch(
            f"/api/v1/users/{sales_user.id}/deactivate", headers=auth(admin_token)
        )
        assert resp.status_code == 200
        assert resp.json()["is_active"] is False
        assert client.get("/api/v1/auth/me", headers=auth(sales_token)).status_code == 403

    def test_cannot_deactivate_self(
        self, client: TestClient, admin_token: str, admin_user: User
    ) -> None:
        resp = client.patch(
            f"/api/v1/users/{admin_user.id}/deactivate", headers=auth(admin_token)
        )
        assert resp.status_code == 400

    def test_change_own_password(self, client: TestClient, sales_token: str) -> None:
        resp = client.post(
            "/api/v1/users/me/change-password",
            json={"current_password": "secret123", "new_password": "nuevo456"},
            headers=auth(sales_token),
        )
        assert resp.status_code == 200
        assert _login(client, "test_sales", "nuevo456").status_code == 200

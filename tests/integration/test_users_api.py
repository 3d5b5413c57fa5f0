# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Integration tests for user management and the activity log."""

from collections.abc import Callable
from typing import Any

import pytest
from fastapi.testclient import TestClient

pytestmark = pytest.mark.integration

TECHNICIAN = {
    "username": "tech1",
    "email": "tech1@acme.example.com",
    "fullName": "Terry Tech",
    "role": "Technician",
    "password": "tech-pass-123",
}


@pytest.fixture
def technician(client: TestClient, admin_headers: dict[str, str]) -> dict[str, Any]:
    """A technician created by the ACME admin."""
    response = client.post("/api/users", json=TECHNICIAN, headers=admin_headers)
    assert response.status_code == 201, response.text
    return response.json()


class TestUsers:
    """Tests for /api/users."""

    def test_create_user(self, technician: dict[str, Any]) -> None:
        assert technician["username"] == "tech1"
        assert technician["companyCode"] == "ACME"
        assert technician["isActive"] is True
        assert "password" not in technician
        assert "passwordHash" not in technician

    def test_list_users(
        self,
        client: TestClient,
        admin_headers: dict[str, str],
        technician: dict[str, Any],
    ) -> None:
        response = client.get("/api/users", headers=admin_headers)

        assert response.status_code == 200
        assert [u["fullName"] for u in response.json()] == ["Acme Admin", "Terry Tech"]

    def test_duplicate_username(
        self,
        client: TestClient,
        admin_headers: dict[str, str],
        technician: dict[str, Any],
    ) -> None:
        response = client.post(
            "/api/users",
            json={**TECHNICIAN, "email": "other@acme.example.com"},
            headers=admin_headers,
        )

        assert response.status_code == 409
        assert response.json()["code"] == "USER_EXISTS"
        assert response.json()["field"] == "username"

    def test_missing_fields(self, client: TestClient, admin_headers: dict[str, str]) -> None:
        response = client.post("/api/users", json={"username": "x"}, headers=admin_headers)

        assert response.status_code == 400
        assert response.json()["required"] == ["email", "fullName", "role"]

    def test_technician_can_log_in_but_not_manage_users(
        self,
        client: TestClient,
        technician: dict[str, Any],
        login: Callable[..., str],
        make_auth_headers: Callable[..., dict[str, str]],
    ) -> None:
        headers = make_auth_headers(login("ACME", "tech1", "tech-pass-123"))

        assert client.get("/api/users", headers=headers).status_code == 200

        response = client.post(
            "/api/users",
            json={**TECHNICIAN, "username": "tech2", "email": "tech2@acme.example.com"},
            headers=headers,
        )
        assert response.status_code == 403
        assert response.json()["code"] == "INSUFFICIENT_PERMISSIONS"

    def test_update_user(
        self,
        client: TestClient,
        admin_headers: dict[str, str],
        technician: dict[str, Any],
    ) -> None:
        response = client.put(
            f"/api/users/{technician['id']}",
            json={"fullName": "Terry Technician", "isActive": False},
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert response.json()["fullName"] == "Terry Technician"

        active = client.get("/api/users", headers=admin_headers).json()
        everyone = client.get("/api/users?includeInactive=true", headers=admin_headers).json()
        assert len(active) == 1
        assert len(everyone) == 2

    def test_delete_user(
        self,
        client: TestClient,
        admin_headers: dict[str, str],
        technician: dict[str, Any],
    ) -> None:
        response = client.delete(f"/api/users/{technician['id']}", headers=admin_headers)

        assert response.status_code == 200
        missing = client.get(f"/api/users/{technician['id']}", headers=admin_headers)
        assert missing.status_code == 404
        assert missing.json()["code"] == "USER_NOT_FOUND"

    def test_cannot_delete_self(
        self,
        client: TestClient,
        admin_headers: dict[str, str],
    ) -> None:
        me = client.get("/api/auth/me", headers=admin_headers).json()["user"]

        response = client.delete(f"/api/users/{me['id']}", headers=admin_headers)

        assert response.status_code == 400
        assert response.json()["code"] == "CANNOT_DELETE_SELF"

    def test_users_are_scoped_to_tenant(
        self,
        client: TestClient,
        admin_headers: dict[str, str],
        technician: dict[str, Any],
        register_company: Callable[[str], dict[str, Any]],
        login: Callable[..., str],
        make_auth_headers: Callable[..., dict[str, str]],
    ) -> None:
        """Test that a second company sharing the database sees only its users."""
        register_company("BETA")
        beta_headers = make_auth_headers(login("BETA"), "BETA")

        users = client.get("/api/users", headers=beta_headers).json()

        assert [u["companyCode"] for u in users] == ["BETA"]
        assert client.get(f"/api/users/{technician['id']}", headers=beta_headers).status_code == 404


class TestActivityLog:
    """Tests for /api/activity-log."""

    def test_login_and_user_creation_are_logged(
        self,
        client: TestClient,
        admin_headers: dict[str, str],
        technician: dict[str, Any],
    ) -> None:
        response = client.get("/api/activity-log", headers=admin_headers)

        assert response.status_code == 200
        actions = [entry["action"] for entry in response.json()]
        assert "User Login" in actions
        assert "User Created" in actions

    def test_filter_by_action(
        self,
        client: TestClient,
        admin_headers: dict[str, str],
        technician: dict[str, Any],
    ) -> None:
        response = client.get("/api/activity-log?action=User%20Created", headers=admin_headers)

        assert [entry["action"] for entry in response.json()] == ["User Created"]

    def test_requires_auth(self, client: TestClient, admin_headers: dict[str, str]) -> None:
        response = client.get("/api/activity-log", headers={"X-Tenant-Code": "ACME"})

        assert response.status_code == 401

    def test_filter_by_user_id(
        self,
        client: TestClient,
        admin_headers: dict[str, str],
        technician: dict[str, Any],
        login: Callable[..., str],
    ) -> None:
        """Test that userId narrows entries to one login name."""
        login("ACME", "tech1", "tech-pass-123")

        response = client.get("/api/activity-log?userId=tech1", headers=admin_headers)

        assert response.status_code == 200
        entries = response.json()
        assert [entry["action"] for entry in entries] == ["User Login"]
        assert {entry["username"] for entry in entries} == {"tech1"}

        others = client.get("/api/activity-log?userId=admin", headers=admin_headers).json()
        assert "tech1" not in {entry["username"] for entry in others}

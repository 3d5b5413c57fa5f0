# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Integration tests for plugin management and the built-in plugins."""

from collections.abc import Callable
from typing import Any

import pytest
from fastapi.testclient import TestClient

pytestmark = pytest.mark.integration


@pytest.fixture
def install(client: TestClient, admin_headers: dict[str, str]) -> Callable[[str], dict[str, Any]]:
    """Install a plugin for ACME as its admin."""

    def _install(name: str) -> dict[str, Any]:
        response = client.post(f"/api/plugins/{name}/install", headers=admin_headers)
        assert response.status_code == 200, response.text
        return response.json()

    return _install


class TestPluginCatalog:
    """Tests for the plugin catalog endpoints."""

    def test_catalog_lists_builtin_plugins(
        self,
        client: TestClient,
        admin_headers: dict[str, str],
    ) -> None:
        response = client.get("/api/plugins", headers=admin_headers)

        assert response.status_code == 200
        catalog = {p["name"]: p for p in response.json()}
        assert set(catalog) >= {"example-plugin", "time-clock"}
        assert catalog["time-clock"]["routePrefix"] == "/api/plugins/time-clock"
        assert catalog["time-clock"]["installed"] is False

    def test_catalog_reflects_installation(
        self,
        client: TestClient,
        admin_headers: dict[str, str],
        install: Callable[[str], dict[str, Any]],
    ) -> None:
        body = install("time-clock")

        assert body["installation"]["pluginName"] == "time-clock"
        assert body["installation"]["isEnabled"] is True
        assert body["installation"]["installedBy"] == "admin"

        catalog = {p["name"]: p for p in client.get("/api/plugins", headers=admin_headers).json()}
        assert catalog["time-clock"]["installed"] is True
        assert catalog["time-clock"]["isEnabled"] is True

        installed = client.get("/api/plugins/installed", headers=admin_headers).json()
        assert [i["pluginName"] for i in installed] == ["time-clock"]

    def test_unknown_plugin(self, client: TestClient, admin_headers: dict[str, str]) -> None:
        response = client.post("/api/plugins/no-such-plugin/install", headers=admin_headers)

        assert response.status_code == 404
        assert response.json()["code"] == "PLUGIN_NOT_FOUND"

    def test_enable_requires_installation(
        self,
        client: TestClient,
        admin_headers: dict[str, str],
    ) -> None:
        response = client.post("/api/plugins/time-clock/enable", headers=admin_headers)

        assert response.status_code == 400
        assert response.json()["code"] == "PLUGIN_NOT_INSTALLED"

    def test_admin_only(
        self,
        client: TestClient,
        admin_headers: dict[str, str],
        login: Callable[..., str],
        make_auth_headers: Callable[..., dict[str, str]],
    ) -> None:
        client.post(
            "/api/users",
            json={
                "username": "tech1",
                "email": "tech1@acme.example.com",
                "fullName": "Terry Tech",
                "role": "Technician",
                "password": "tech-pass-123",
            },
            headers=admin_headers,
        )
        tech = make_auth_headers(login("ACME", "tech1", "tech-pass-123"))

        response = client.post("/api/plugins/time-clock/install", headers=tech)

        assert response.status_code == 403
        assert response.json()["code"] == "INSUFFICIENT_PERMISSIONS"


class TestPluginContributions:
    """Tests for ticket tabs, report components and nav tabs."""

    def test_nothing_contributed_before_install(
        self,
        client: TestClient,
        admin_headers: dict[str, str],
    ) -> None:
        for path in ("ticket-tabs", "report-components", "nav-tabs"):
            response = client.get(f"/api/plugins/{path}", headers=admin_headers)
            assert response.status_code == 200
            assert response.json() == []

    def test_enabled_plugins_contribute(
        self,
        client: TestClient,
        admin_headers: dict[str, str],
        install: Callable[[str], dict[str, Any]],
    ) -> None:
        install("time-clock")
        install("example-plugin")

        tabs = client.get("/api/plugins/ticket-tabs", headers=admin_headers).json()
        reports = client.get("/api/plugins/report-components", headers=admin_headers).json()

        assert {(t["id"], t["pluginName"]) for t in tabs} == {
            ("timeclock", "time-clock"),
            ("example-tab", "example-plugin"),
        }
        assert {r["componentId"] for r in reports} == {
            "time-clock-report",
            "example-plugin-report",
        }

    def test_disabled_plugins_do_not_contribute(
        self,
        client: TestClient,
        admin_headers: dict[str, str],
        install: Callable[[str], dict[str, Any]],
    ) -> None:
        install("time-clock")

        response = client.post("/api/plugins/time-clock/disable", headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["installation"]["isEnabled"] is False

        assert client.get("/api/plugins/ticket-tabs", headers=admin_headers).json() == []

    def test_contributions_are_per_tenant(
        self,
        client: TestClient,
        install: Callable[[str], dict[str, Any]],
        register_company: Callable,
        login: Callable[..., str],
        make_auth_headers: Callable[..., dict[str, str]],
    ) -> None:
        install("time-clock")
        register_company("BETA")
        beta = make_auth_headers(login("BETA"), "BETA")

        assert client.get("/api/plugins/ticket-tabs", headers=beta).json() == []


class TestPluginRoutes:
    """Tests for routes mounted under /api/plugins/<name>."""

    def test_route_needs_enabled_plugin(
        self,
        client: TestClient,
        admin_headers: dict[str, str],
    ) -> None:
        response = client.get("/api/plugins/example-plugin/status", headers=admin_headers)

        assert response.status_code == 403
        body = response.json()
        assert body["code"] == "PLUGIN_NOT_ENABLED"
        assert body["plugin"] == "example-plugin"

    def test_route_after_install(
        self,
        client: TestClient,
        admin_headers: dict[str, str],
        install: Callable[[str], dict[str, Any]],
    ) -> None:
        install("example-plugin")

        status = client.get("/api/plugins/example-plugin/status", headers=admin_headers)
        empty = client.get("/api/plugins/example-plugin/data", headers=admin_headers)
        action = client.post(
            "/api/plugins/example-plugin/action",
            json={"action": "sync", "data": {"x": 1}},
            headers=admin_headers,
        )
        data = client.get("/api/plugins/example-plugin/data", headers=admin_headers)

        assert status.status_code == 200
        assert status.json()["status"] == "active"
        assert empty.json()["companyCode"] == "ACME"
        assert empty.json()["items"] == []
        assert action.json()["receivedData"] == {"x": 1}

        items = data.json()["items"]
        assert len(items) == 1
        assert items[0]["id"] == action.json()["itemId"]
        assert items[0]["name"] == "sync"
        assert items[0]["value"] == {"x": 1}
        assert items[0]["createdBy"] == "admin"

    def test_uninstall_clears_stored_actions(
        self,
        client: TestClient,
        admin_headers: dict[str, str],
        install: Callable[[str], dict[str, Any]],
    ) -> None:
        install("example-plugin")
        client.post(
            "/api/plugins/example-plugin/action",
            json={"action": "sync", "data": None},
            headers=admin_headers,
        )

        response = client.post("/api/plugins/example-plugin/uninstall", headers=admin_headers)
        assert response.status_code == 200
        install("example-plugin")

        data = client.get("/api/plugins/example-plugin/data", headers=admin_headers)
        assert data.json()["items"] == []

    def test_route_after_disable(
        self,
        client: TestClient,
        admin_headers: dict[str, str],
        install: Callable[[str], dict[str, Any]],
    ) -> None:
        install("example-plugin")
        client.post("/api/plugins/example-plugin/disable", headers=admin_headers)

        response = client.get("/api/plugins/example-plugin/status", headers=admin_headers)

        assert response.status_code == 403

    def test_route_needs_auth(
        self,
        client: TestClient,
        admin_headers: dict[str, str],
        install: Callable[[str], dict[str, Any]],
    ) -> None:
        install("example-plugin")

        response = client.get(
            "/api/plugins/example-plugin/status",
            headers={"X-Tenant-Code": "ACME"},
        )

        assert response.status_code == 401

    def test_configure(
        self,
        client: TestClient,
        admin_headers: dict[str, str],
        install: Callable[[str], dict[str, Any]],
    ) -> None:
        install("example-plugin")

        response = client.put(
            "/api/plugins/example-plugin/configure",
            json={"config": {"greeting": "hello"}},
            headers=admin_headers,
        )
        config = client.get("/api/plugins/example-plugin/config", headers=admin_headers)

        assert response.status_code == 200
        assert config.json() == {"greeting": "hello"}


class TestTimeClock:
    """Tests for the time clock plugin."""

    @pytest.fixture
    def ticket_id(
        self,
        client: TestClient,
        admin_headers: dict[str, str],
        install: Callable[[str], dict[str, Any]],
    ) -> str:
        install("time-clock")
        response = client.post(
            "/api/tickets",
            json={"title": "Rooftop unit service"},
            headers=admin_headers,
        )
        return response.json()["ticketId"]

    @pytest.fixture
    def admin_id(self, client: TestClient, admin_headers: dict[str, str]) -> str:
        return client.get("/api/auth/me", headers=admin_headers).json()["user"]["id"]

    def test_clock_in_and_out(
        self,
        client: TestClient,
        admin_headers: dict[str, str],
        ticket_id: str,
        admin_id: str,
    ) -> None:
        body = {"technicianId": admin_id, "ticketId": ticket_id}

        clock_in = client.post("/api/plugins/time-clock/clock-in", json=body, headers=admin_headers)
        assert clock_in.status_code == 201
        assert clock_in.json()["entry"]["technicianName"] == "Acme Admin"

        status = client.get(
            f"/api/plugins/time-clock/status/{admin_id}",
            params={"ticketId": ticket_id},
            headers=admin_headers,
        ).json()
        assert status["isClockedIn"] is True

        clock_out = client.post(
            "/api/plugins/time-clock/clock-out",
            json=body,
            headers=admin_headers,
        )
        assert clock_out.status_code == 200
        entry = clock_out.json()["entry"]
        assert entry["clockOutTime"] is not None
        assert entry["totalMinutes"] == 0

        ticket = client.get(f"/api/tickets/{ticket_id}", headers=admin_headers).json()
        assert ticket["notes"][-1]["note"].startswith("⏰ Time Summary for Acme Admin:")
        assert "Total Time: 0h 0m" in ticket["notes"][-1]["note"]

    def test_double_clock_in(
        self,
        client: TestClient,
        admin_headers: dict[str, str],
        ticket_id: str,
        admin_id: str,
    ) -> None:
        body = {"technicianId": admin_id, "ticketId": ticket_id}
        client.post("/api/plugins/time-clock/clock-in", json=body, headers=admin_headers)

        response = client.post("/api/plugins/time-clock/clock-in", json=body, headers=admin_headers)

        assert response.status_code == 409
        assert response.json()["code"] == "ALREADY_CLOCKED_IN"

    def test_clock_out_without_clock_in(
        self,
        client: TestClient,
        admin_headers: dict[str, str],
        ticket_id: str,
        admin_id: str,
    ) -> None:
        response = client.post(
            "/api/plugins/time-clock/clock-out",
            json={"technicianId": admin_id, "ticketId": ticket_id},
            headers=admin_headers,
        )

        assert response.status_code == 400
        assert response.json()["code"] == "NOT_CLOCKED_IN"

    def test_ticket_summary_and_report(
        self,
        client: TestClient,
        admin_headers: dict[str, str],
        ticket_id: str,
        admin_id: str,
    ) -> None:
        body = {"technicianId": admin_id, "ticketId": ticket_id}
        client.post("/api/plugins/time-clock/clock-in", json=body, headers=admin_headers)
        client.post("/api/plugins/time-clock/clock-out", json=body, headers=admin_headers)

        summary = client.get(
            f"/api/plugins/time-clock/ticket-summary/{ticket_id}",
            headers=admin_headers,
        ).json()
        report = client.get("/api/plugins/time-clock/report", headers=admin_headers).json()

        assert summary["ticketId"] == ticket_id
        assert len(summary["entries"]) == 1
        assert summary["breakdown"][0]["technicianName"] == "Acme Admin"
        assert report["days"] == 30
        assert report["technicians"][0]["entries"] == 1

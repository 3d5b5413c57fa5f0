# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Integration tests for the notification WebSocket and push endpoints."""

from typing import Any

import pytest
from fastapi.testclient import TestClient

pytestmark = pytest.mark.integration


def register(websocket: Any, user_id: str, company_code: str = "ACME") -> dict[str, Any]:
    websocket.send_json(
        {
            "type": "register",
            "userId": user_id,
            "userName": "Dana Dispatcher",
            "role": "Dispatcher",
            "companyCode": company_code,
        }
    )
    return websocket.receive_json()


class TestWebSocket:
    """Tests for /ws/notifications."""

    def test_register(self, client: TestClient) -> None:
        with client.websocket_connect("/ws/notifications") as websocket:
            reply = register(websocket, "user-1")

            assert reply["type"] == "registered"
            assert reply["userId"] == "user-1"
            assert reply["companyCode"] == "ACME"

            status = client.get("/api/notifications/status").json()
            assert status["connectedUsers"] == 1
            assert status["companies"] == {"ACME": 1}

    def test_ping(self, client: TestClient) -> None:
        with client.websocket_connect("/ws/notifications") as websocket:
            websocket.send_json({"type": "ping"})

            assert websocket.receive_json()["type"] == "pong"

    def test_invalid_json(self, client: TestClient) -> None:
        with client.websocket_connect("/ws/notifications") as websocket:
            websocket.send_text("{not json")

            reply = websocket.receive_json()
            assert reply == {"type": "error", "message": "Invalid JSON"}

    def test_register_requires_user_id(self, client: TestClient) -> None:
        with client.websocket_connect("/ws/notifications") as websocket:
            websocket.send_json({"type": "register"})

            assert websocket.receive_json()["message"] == "userId is required"

    def test_unknown_message_type(self, client: TestClient) -> None:
        with client.websocket_connect("/ws/notifications") as websocket:
            websocket.send_json({"type": "dance"})

            assert websocket.receive_json()["type"] == "error"

    def test_disconnect_unregisters(self, client: TestClient) -> None:
        with client.websocket_connect("/ws/notifications") as websocket:
            register(websocket, "user-1")

        assert client.get("/api/notifications/status").json()["connectedUsers"] == 0


class TestPushEndpoints:
    """Tests for the HTTP push endpoints."""

    def test_notify_user(self, client: TestClient, admin_headers: dict[str, str]) -> None:
        with client.websocket_connect("/ws/notifications") as websocket:
            register(websocket, "user-1")

            response = client.post(
                "/api/notifications/user",
                json={"targetUserId": "user-1", "title": "Ticket assigned", "message": "TKT-1"},
                headers={"Authorization": admin_headers["Authorization"]},
            )

            assert response.status_code == 200
            assert response.json()["delivered"] == 1

            message = websocket.receive_json()
            assert message["type"] == "notification"
            assert message["title"] == "Ticket assigned"
            assert message["icon"] == "🔔"

    def test_notify_user_not_connected(
        self,
        client: TestClient,
        admin_headers: dict[str, str],
    ) -> None:
        response = client.post(
            "/api/notifications/user",
            json={"targetUserId": "nobody", "title": "Hi", "message": "there"},
            headers={"Authorization": admin_headers["Authorization"]},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["delivered"] == 0
        assert body["message"] == "User not connected"

    def test_notify_user_requires_auth(self, client: TestClient) -> None:
        response = client.post(
            "/api/notifications/user",
            json={"targetUserId": "user-1", "title": "Hi", "message": "there"},
        )

        assert response.status_code == 401

    def test_notify_user_missing_fields(
        self,
        client: TestClient,
        admin_headers: dict[str, str],
    ) -> None:
        response = client.post(
            "/api/notifications/user",
            json={"targetUserId": "user-1"},
            headers={"Authorization": admin_headers["Authorization"]},
        )

        assert response.status_code == 400
        assert response.json()["code"] == "MISSING_FIELDS"

    def test_notify_company(self, client: TestClient, admin_headers: dict[str, str]) -> None:
        with (
            client.websocket_connect("/ws/notifications") as acme,
            client.websocket_connect("/ws/notifications") as beta,
        ):
            register(acme, "dispatcher-1", "ACME")
            register(beta, "dispatcher-2", "BETA")

            response = client.post(
                "/api/notifications/company",
                json={"title": "Storm warning", "message": "Expect delays"},
                headers=admin_headers,
            )

            assert response.status_code == 200
            assert response.json()["delivered"] == 1
            assert acme.receive_json()["title"] == "Storm warning"

    def test_service_request_notifies_company(
        self,
        client: TestClient,
        admin_headers: dict[str, str],
    ) -> None:
        with client.websocket_connect("/ws/notifications") as websocket:
            register(websocket, "dispatcher-1", "ACME")

            client.post(
                "/api/service-requests/submit",
                json={
                    "CustomerName": "Big Client",
                    "ContactEmail": "facilities@bigclient.example.com",
                    "IssueDescription": "No heat in building B",
                    "Priority": "Critical",
                    "CompanyCode": "ACME",
                },
            )

            message = websocket.receive_json()
            assert message["title"] == "New Service Request"
            assert message["priority"] == "high"
            assert message["message"] == "Big Client: No heat in building B"
            assert message["data"]["requestId"].startswith("SR-")

# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Integration tests for health, readiness and tenant status."""

import pytest
from fastapi.testclient import TestClient

from fieldservice import __version__

pytestmark = pytest.mark.integration


class TestHealth:
    """Tests for the liveness and readiness endpoints."""

    def test_health(self, client: TestClient) -> None:
        response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["version"] == __version__
        assert body["environment"] == "test"

    def test_health_needs_no_tenant(self, client: TestClient) -> None:
        """Test that health checks pass without a tenant header."""
        assert "X-Tenant-Code" not in client.get("/health").headers

    def test_ready(self, client: TestClient) -> None:
        response = client.get("/ready")

        assert response.status_code == 200
        body = response.json()
        assert body["ready"] is True
        assert body["checks"]["database"]["status"] == "healthy"


class TestTenantStatus:
    """Tests for GET /api/tenant/status."""

    def test_reports_pools_and_cache(
        self,
        client: TestClient,
        admin_headers: dict[str, str],
    ) -> None:
        response = client.get("/api/tenant/status")

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert "ACME" in [t["code"] for t in body["pools"]["tenants"]]
        assert "ACME" in body["cache"]["cached_tenants"]

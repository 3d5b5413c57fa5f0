# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pytest configuration and shared fixtures.

This module provides fixtures used across all test types:
- Unit tests
- Integration tests (full application against SQLite databases)
"""

from collections.abc import Callable, Generator
from pathlib import Path
from typing import Any

import pytest
from fastapi.testclient import TestClient

from fieldservice.api.middleware.rate_limit import limiter
from fieldservice.core.config import clear_settings_cache, get_settings
from fieldservice.domains.auth.jwt import JWTManager

ADMIN_USERNAME = "admin"
ADMIN_PASSWORD = "admin-pass-123"


# =============================================================================
# Environment Fixtures
# =============================================================================


@pytest.fixture
def test_environment(tmp_path: Path) -> dict[str, str]:
    """Provide test environment variables.

    Both databases are SQLite files in a per-test directory.

    Returns:
        Dictionary of environment variables for testing.
    """
    return {
        "ENVIRONMENT": "test",
        "DEBUG": "true",
        "LOG_LEVEL": "WARNING",
        "SEED_DEFAULT_TENANT": "true",
        "CENTRAL_DATABASE_URL": f"sqlite+aiosqlite:///{tmp_path / 'central.db'}",
        "TENANT_DATABASE_URL": f"sqlite+aiosqlite:///{tmp_path / 'tenants.db'}",
        "JWT_SECRET_KEY": "test-secret-key-for-jwt-testing",
        "JWT_CUSTOMER_SECRET_KEY": "test-customer-secret-key",
        "JWT_ALGORITHM": "HS256",
        "ACCESS_TOKEN_EXPIRE_MINUTES": "30",
        "NOTIFICATION_PING_INTERVAL": "3600",
    }


@pytest.fixture
def app_env(
    test_environment: dict[str, str],
    monkeypatch: pytest.MonkeyPatch,
) -> Generator[dict[str, str], None, None]:
    """Apply the test environment and reset cached settings around the test."""
    for key, value in test_environment.items():
        monkeypatch.setenv(key, value)
    monkeypatch.setattr(limiter, "enabled", False)
    clear_settings_cache()
    yield test_environment
    clear_settings_cache()


@pytest.fixture
def client(app_env: dict[str, str]) -> Generator[TestClient, None, None]:
    """Running application with startup and shutdown applied."""
    from fieldservice.api.app import create_app

    with TestClient(create_app()) as test_client:
        yield test_client


# =============================================================================
# Helper Fixtures
# =============================================================================


def company_payload(code: str = "ACME", **overrides: Any) -> dict[str, Any]:
    """Registration body for a company and its administrator."""
    payload = {
        "companyCode": code,
        "companyName": f"{code.title()} Services",
        "adminUsername": ADMIN_USERNAME,
        "adminPassword": ADMIN_PASSWORD,
        "adminEmail": f"admin@{code.lower()}.example.com",
        "adminFullName": f"{code.title()} Admin",
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def make_company_payload() -> Callable[..., dict[str, Any]]:
    """Build a company registration body."""
    return company_payload


@pytest.fixture
def register_company(client: TestClient) -> Callable[[str], dict[str, Any]]:
    """Register a company and return the response body."""

    def _register(code: str = "ACME") -> dict[str, Any]:
        response = client.post("/api/companies", json=company_payload(code))
        assert response.status_code == 201, response.text
        return response.json()

    return _register


@pytest.fixture
def login(client: TestClient) -> Callable[..., str]:
    """Log in and return the bearer token."""

    def _login(
        code: str = "ACME",
        username: str = ADMIN_USERNAME,
        password: str = ADMIN_PASSWORD,
    ) -> str:
        response = client.post(
            "/api/auth/login",
            json={"username": username, "password": password},
            headers={"X-Tenant-Code": code},
        )
        assert response.status_code == 200, response.text
        return response.json()["token"]

    return _login


def auth_headers(token: str, code: str = "ACME") -> dict[str, str]:
    """Headers for an authenticated tenant request."""
    return {"Authorization": f"Bearer {token}", "X-Tenant-Code": code}


@pytest.fixture
def make_auth_headers() -> Callable[..., dict[str, str]]:
    """Build authenticated tenant headers from a token."""
    return auth_headers


@pytest.fixture
def admin_headers(
    register_company: Callable[[str], dict[str, Any]],
    login: Callable[..., str],
) -> dict[str, str]:
    """Headers of the administrator of a freshly registered ACME company."""
    register_company("ACME")
    return auth_headers(login("ACME"))


@pytest.fixture
def system_admin_headers(client: TestClient) -> dict[str, str]:
    """Bearer header of a platform administrator bound to no company."""
    token = JWTManager(get_settings().jwt).create_access_token(
        "system-admin",
        "root",
        is_system_admin=True,
    )
    return {"Authorization": f"Bearer {token}"}


# =============================================================================
# Marker Configuration
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test (runs the full app)"
    )
    config.addinivalue_line(
        "markers", "slow: mark test as slow running"
    )

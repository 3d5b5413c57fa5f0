# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Integration tests for authentication and tenant middleware.

Tests the middleware components in isolation from the database.
"""

from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import Depends, FastAPI, Request
from fastapi.testclient import TestClient
from pydantic import BaseModel, SecretStr

from fieldservice.api.dependencies import require_admin, require_auth
from fieldservice.api.errors import ApiError, register_exception_handlers
from fieldservice.api.middleware.auth import AuthMiddleware, get_current_user
from fieldservice.api.middleware.rate_limit import FailedLookupTracker
from fieldservice.api.middleware.tenant import TenantMiddleware, get_tenant_from_request
from fieldservice.core.config.settings import TenantSettings
from fieldservice.domains.auth.jwt import JWTManager
from fieldservice.domains.tenant.registry import TenantContext
from fieldservice.infrastructure.database.tenant_manager import (
    TenantConnectionError,
    TenantNotFoundError,
)

ACME = TenantContext(id="t-acme", code="ACME", name="Acme", status="active")


@pytest.fixture
def jwt_settings() -> MagicMock:
    """Create mock JWT settings."""
    settings = MagicMock()
    settings.secret_key = SecretStr("test-secret-key-for-jwt-testing")
    settings.customer_secret_key = SecretStr("test-customer-secret-key")
    settings.algorithm = "HS256"
    settings.access_token_expire_minutes = 30
    return settings


@pytest.fixture
def jwt_manager(jwt_settings: MagicMock) -> JWTManager:
    """Create JWT manager with test settings."""
    return JWTManager(jwt_settings)


@pytest.fixture
def registry() -> MagicMock:
    """Registry knowing ACME (active) and SLEEPY (suspended)."""
    tenants = {
        "ACME": ACME,
        "SLEEPY": TenantContext(id="t-sleepy", code="SLEEPY", name="Sleepy", status="suspended"),
        "BROKEN": TenantContext(id="t-broken", code="BROKEN", name="Broken", status="active"),
    }

    async def get(code: str) -> TenantContext:
        if code not in tenants:
            raise TenantNotFoundError(code)
        return tenants[code]

    registry = MagicMock()
    registry.get = AsyncMock(side_effect=get)
    return registry


@pytest.fixture
def pools() -> MagicMock:
    """Pool manager that fails for BROKEN."""

    async def get_pool(info: Any) -> str:
        if info.tenant_code == "BROKEN":
            raise TenantConnectionError("BROKEN", "connection refused")
        return f"pool:{info.tenant_code}"

    pools = MagicMock()
    pools.get_pool = AsyncMock(side_effect=get_pool)
    return pools


def _build_app(
    registry: MagicMock,
    pools: MagicMock,
    jwt_manager: JWTManager,
    tenant_settings: TenantSettings | None = None,
    failures: FailedLookupTracker | None = None,
) -> FastAPI:
    app = FastAPI()
    register_exception_handlers(app)
    app.add_middleware(AuthMiddleware, jwt_manager=jwt_manager)
    app.add_middleware(
        TenantMiddleware,
        get_registry=lambda: registry,
        get_pools=lambda: pools,
        settings=tenant_settings or TenantSettings(),
        failures=failures,
    )

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/api/whoami")
    async def whoami(request: Request) -> dict[str, Any]:
        tenant = get_tenant_from_request(request)
        user = get_current_user(request)
        return {
            "tenant": tenant.code if tenant else None,
            "pool": request.state.tenant_db,
            "user": user.username if user else None,
        }

    @app.get("/api/private")
    async def private(user: Any = Depends(require_auth)) -> dict[str, str]:
        return {"user": user.username}

    @app.get("/api/admin")
    async def admin(user: Any = Depends(require_admin)) -> dict[str, str]:
        return {"user": user.username}

    return app


@pytest.fixture
def client(registry: MagicMock, pools: MagicMock, jwt_manager: JWTManager) -> TestClient:
    return TestClient(_build_app(registry, pools, jwt_manager))


class TestTenantMiddleware:
    """Tests for TenantMiddleware."""

    def test_public_path_needs_no_tenant(self, client: TestClient) -> None:
        assert client.get("/health").status_code == 200

    def test_missing_tenant_code(self, client: TestClient) -> None:
        response = client.get("/api/whoami")

        assert response.status_code == 400
        assert response.json() == {
            "success": False,
            "error": "Tenant code is required. Send it in the X-Tenant-Code header.",
            "code": "TENANT_CODE_MISSING",
        }

    def test_header_resolves_tenant_and_pool(self, client: TestClient) -> None:
        response = client.get("/api/whoami", headers={"X-Tenant-Code": "acme"})

        assert response.status_code == 200
        assert response.json()["tenant"] == "ACME"
        assert response.json()["pool"] == "pool:ACME"
        assert response.headers["X-Tenant-Code"] == "ACME"

    def test_legacy_header_and_query_parameter(self, client: TestClient) -> None:
        assert client.get("/api/whoami", headers={"X-Company-Code": "ACME"}).json()["tenant"] == "ACME"
        assert client.get("/api/whoami?company=acme").json()["tenant"] == "ACME"

    def test_subdomain(self, registry: MagicMock, pools: MagicMock, jwt_manager: JWTManager) -> None:
        app = _build_app(
            registry, pools, jwt_manager, TenantSettings(base_domain="fieldservice.io")
        )
        client = TestClient(app, base_url="http://acme.fieldservice.io")

        assert client.get("/api/whoami").json()["tenant"] == "ACME"

    def test_default_tenant_when_allowed(
        self,
        registry: MagicMock,
        pools: MagicMock,
        jwt_manager: JWTManager,
    ) -> None:
        settings = TenantSettings(allow_default=True, default_code="ACME")
        client = TestClient(_build_app(registry, pools, jwt_manager, settings))

        assert client.get("/api/whoami").json()["tenant"] == "ACME"

    def test_invalid_code_format(self, client: TestClient) -> None:
        response = client.get("/api/whoami", headers={"X-Tenant-Code": "a!"})

        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_TENANT_CODE_FORMAT"

    def test_unknown_tenant(self, client: TestClient) -> None:
        response = client.get("/api/whoami", headers={"X-Tenant-Code": "NOPE"})

        assert response.status_code == 404
        assert response.json()["code"] == "TENANT_NOT_FOUND"

    def test_inactive_tenant(self, client: TestClient) -> None:
        response = client.get("/api/whoami", headers={"X-Tenant-Code": "SLEEPY"})

        assert response.status_code == 403
        assert response.json()["code"] == "TENANT_INACTIVE"

    def test_unreachable_tenant_database(self, client: TestClient) -> None:
        response = client.get("/api/whoami", headers={"X-Tenant-Code": "BROKEN"})

        assert response.status_code == 503
        assert response.json()["code"] == "TENANT_CONNECTION_FAILED"

    def test_repeated_failed_lookups_are_blocked(
        self,
        registry: MagicMock,
        pools: MagicMock,
        jwt_manager: JWTManager,
    ) -> None:
        """Test that a client guessing tenant codes is rate limited."""
        failures = FailedLookupTracker(max_failures=2, window=60)
        client = TestClient(_build_app(registry, pools, jwt_manager, failures=failures))

        client.get("/api/whoami", headers={"X-Tenant-Code": "NOPE1"})
        client.get("/api/whoami", headers={"X-Tenant-Code": "NOPE2"})
        response = client.get("/api/whoami", headers={"X-Tenant-Code": "ACME"})

        assert response.status_code == 429
        assert response.json()["code"] == "RATE_LIMITED"
        assert int(response.headers["Retry-After"]) > 0


class TestAuthMiddleware:
    """Tests for AuthMiddleware and the auth dependencies."""

    def _token(self, jwt_manager: JWTManager, tenant_code: str = "ACME", role: str = "Technician") -> str:
        return jwt_manager.create_access_token(
            user_id="u1",
            username="tech",
            role=role,
            tenant_code=tenant_code,
        )

    def test_valid_token_sets_user(self, client: TestClient, jwt_manager: JWTManager) -> None:
        response = client.get(
            "/api/whoami",
            headers={
                "X-Tenant-Code": "ACME",
                "Authorization": f"Bearer {self._token(jwt_manager)}",
            },
        )

        assert response.json()["user"] == "tech"

    def test_missing_token(self, client: TestClient) -> None:
        response = client.get("/api/private", headers={"X-Tenant-Code": "ACME"})

        assert response.status_code == 401
        assert response.json()["code"] == "TOKEN_MISSING"

    def test_invalid_token(self, client: TestClient) -> None:
        response = client.get(
            "/api/private",
            headers={"X-Tenant-Code": "ACME", "Authorization": "Bearer garbage"},
        )

        assert response.status_code == 401
        assert response.json() == {"success": False, "error": "Invalid token", "code": "TOKEN_INVALID"}

    def test_token_for_another_tenant(self, client: TestClient, jwt_manager: JWTManager) -> None:
        response = client.get(
            "/api/private",
            headers={
                "X-Tenant-Code": "ACME",
                "Authorization": f"Bearer {self._token(jwt_manager, tenant_code='BETA')}",
            },
        )

        assert response.status_code == 403
        assert response.json()["code"] == "TENANT_TOKEN_MISMATCH"

    def test_admin_route_rejects_technician(self, client: TestClient, jwt_manager: JWTManager) -> None:
        response = client.get(
            "/api/admin",
            headers={
                "X-Tenant-Code": "ACME",
                "Authorization": f"Bearer {self._token(jwt_manager)}",
            },
        )

        assert response.status_code == 403
        assert response.json()["code"] == "INSUFFICIENT_PERMISSIONS"

    def test_admin_route_accepts_admin(self, client: TestClient, jwt_manager: JWTManager) -> None:
        response = client.get(
            "/api/admin",
            headers={
                "X-Tenant-Code": "ACME",
                "Authorization": f"Bearer {self._token(jwt_manager, role='Admin')}",
            },
        )

        assert response.status_code == 200


class Payload(BaseModel):
    count: int


class TestErrorEnvelope:
    """Tests for the JSON error envelope."""

    @pytest.fixture
    def client(self) -> TestClient:
        app = FastAPI()
        register_exception_handlers(app)

        @app.get("/api-error")
        async def api_error() -> None:
            raise ApiError(400, "Missing required fields", "MISSING_FIELDS", required=["title"])

        @app.post("/validate")
        async def validate(body: Payload) -> dict[str, int]:
            return {"count": body.count}

        @app.get("/crash")
        async def crash() -> None:
            raise RuntimeError("secret detail")

        return TestClient(app, raise_server_exceptions=False)

    def test_api_error_carries_extra_fields(self, client: TestClient) -> None:
        response = client.get("/api-error")

        assert response.status_code == 400
        assert response.json() == {
            "success": False,
            "error": "Missing required fields",
            "code": "MISSING_FIELDS",
            "required": ["title"],
        }

    def test_not_found_route(self, client: TestClient) -> None:
        response = client.get("/nowhere")

        assert response.status_code == 404
        assert response.json() == {"success": False, "error": "Not Found"}

    def test_validation_error_is_400(self, client: TestClient) -> None:
        response = client.post("/validate", json={"count": "many"})

        assert response.status_code == 400
        body = response.json()
        assert body["code"] == "VALIDATION_ERROR"
        assert body["details"][0]["field"] == "body.count"

    def test_unexpected_error_hides_details(self, client: TestClient) -> None:
        response = client.get("/crash")

        assert response.status_code == 500
        assert response.json() == {"success": False, "error": "Something went wrong!"}

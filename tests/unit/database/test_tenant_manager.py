# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the tenant pool manager."""

from collections.abc import AsyncIterator
from pathlib import Path

import pytest
from sqlalchemy import func, select

from fieldservice.core.config import Settings
from fieldservice.infrastructure.database.connection import engine_options
from fieldservice.infrastructure.database.models import User
from fieldservice.infrastructure.database.tenant_manager import (
    TenantConnectionError,
    TenantConnectionInfo,
    TenantPoolManager,
)


@pytest.fixture
def shared_url(tmp_path: Path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'tenants.db'}"


@pytest.fixture
async def pools(shared_url: str, monkeypatch: pytest.MonkeyPatch) -> AsyncIterator[TenantPoolManager]:
    """Pool manager whose default database is a SQLite file."""
    monkeypatch.setenv("TENANT_DATABASE_URL", shared_url)
    manager = TenantPoolManager(Settings())
    yield manager
    await manager.close_all()


class TestEngineOptions:
    """Tests for engine_options."""

    def test_sqlite_has_no_pool_sizing(self) -> None:
        options = engine_options("sqlite+aiosqlite:///x.db", pool_size=5, max_overflow=0)

        assert "pool_size" not in options
        assert options["pool_pre_ping"] is True

    def test_postgres_pool_sizing(self) -> None:
        options = engine_options(
            "postgresql+asyncpg://u:p@localhost/db", pool_size=5, max_overflow=2, pool_recycle=60
        )

        assert options["pool_size"] == 5
        assert options["max_overflow"] == 2
        assert options["pool_recycle"] == 60


class TestTenantPoolManager:
    """Tests for TenantPoolManager."""

    async def test_pool_is_created_once(self, pools: TenantPoolManager) -> None:
        info = TenantConnectionInfo(tenant_code="ACME")

        first = await pools.get_pool(info)
        second = await pools.get_pool(info)

        assert first is second
        assert pools.has_pool("ACME")

    async def test_schema_is_created(self, pools: TenantPoolManager) -> None:
        """Test that a new pool can query tenant tables straight away."""
        async with pools.get_session(TenantConnectionInfo(tenant_code="ACME")) as session:
            count = await session.scalar(select(func.count()).select_from(User))

        assert count == 0

    async def test_session_commits(self, pools: TenantPoolManager) -> None:
        info = TenantConnectionInfo(tenant_code="ACME")
        async with pools.get_session(info) as session:
            session.add(
                User(
                    company_code="ACME",
                    username="tech",
                    email="tech@acme.example.com",
                    full_name="Tech",
                    role="Technician",
                    password_hash="x",
                )
            )

        async with pools.get_session(info) as session:
            count = await session.scalar(select(func.count()).select_from(User))

        assert count == 1

    async def test_session_rolls_back_on_error(self, pools: TenantPoolManager) -> None:
        info = TenantConnectionInfo(tenant_code="ACME")
        with pytest.raises(RuntimeError):
            async with pools.get_session(info) as session:
                session.add(
                    User(
                        company_code="ACME",
                        username="tech",
                        email="tech@acme.example.com",
                        full_name="Tech",
                        role="Technician",
                        password_hash="x",
                    )
                )
                await session.flush()
                raise RuntimeError("abort")

        async with pools.get_session(info) as session:
            count = await session.scalar(select(func.count()).select_from(User))

        assert count == 0

    async def test_dedicated_database(self, pools: TenantPoolManager, tmp_path: Path) -> None:
        dedicated = f"sqlite+aiosqlite:///{tmp_path / 'beta.db'}"

        await pools.get_pool(TenantConnectionInfo(tenant_code="ACME"))
        await pools.get_pool(TenantConnectionInfo(tenant_code="BETA", database_url=dedicated))

        status = pools.get_status()

        assert status["active_pools"] == 2
        assert [t["shared"] for t in status["tenants"]] == [True, False]
        assert (tmp_path / "beta.db").exists()

    async def test_bad_url_raises_connection_error(self, pools: TenantPoolManager) -> None:
        info = TenantConnectionInfo(tenant_code="BAD", database_url="nosuchdriver://host/db")

        with pytest.raises(TenantConnectionError) as exc_info:
            await pools.get_pool(info)

        assert exc_info.value.tenant_code == "BAD"
        assert not pools.has_pool("BAD")

    async def test_check_connection(self, pools: TenantPoolManager) -> None:
        assert await pools.check_connection(TenantConnectionInfo(tenant_code="ACME")) is True
        assert (
            await pools.check_connection(
                TenantConnectionInfo(tenant_code="BAD", database_url="nosuchdriver://host/db")
            )
            is False
        )

    async def test_close_tenant(self, pools: TenantPoolManager) -> None:
        await pools.get_pool(TenantConnectionInfo(tenant_code="ACME"))

        await pools.close_tenant("ACME")

        assert not pools.has_pool("ACME")
        assert pools.get_status() == {"active_pools": 0, "tenants": []}

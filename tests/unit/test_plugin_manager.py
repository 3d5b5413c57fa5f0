# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for PluginManager against SQLite databases."""

from collections.abc import AsyncIterator, Callable
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from pathlib import Path
from typing import Any

import pytest
from sqlalchemy import inspect
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from fieldservice.core.config import Settings
from fieldservice.domains.tenant.registry import TenantContext
from fieldservice.infrastructure.database.models import CentralBase
from fieldservice.infrastructure.database.tenant_manager import TenantPoolManager
from fieldservice.plugins.base import EventHook, NavTab, Plugin, PluginHooks
from fieldservice.plugins.manager import (
    PluginHookError,
    PluginManager,
    PluginNotInstalledError,
)
from fieldservice.plugins.registry import PluginNotFoundError

ACME = TenantContext(id="t-acme", code="ACME", name="Acme", status="active")
BETA = TenantContext(id="t-beta", code="BETA", name="Beta", status="active")


@pytest.fixture
async def central_db(tmp_path: Path) -> AsyncIterator[Callable[[], AbstractAsyncContextManager[AsyncSession]]]:
    """Committing session factory over a fresh central database."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'central.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(CentralBase.metadata.create_all)
    sessionmaker = async_sessionmaker(engine, expire_on_commit=False)

    @asynccontextmanager
    async def session() -> AsyncIterator[AsyncSession]:
        async with sessionmaker() as s:
            try:
                yield s
                await s.commit()
            except Exception:
                await s.rollback()
                raise

    yield session
    await engine.dispose()


@pytest.fixture
async def pools(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> AsyncIterator[TenantPoolManager]:
    """Pool manager sharing one SQLite tenant database."""
    monkeypatch.setenv("TENANT_DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'tenants.db'}")
    manager = TenantPoolManager(Settings())
    yield manager
    await manager.close_all()


@pytest.fixture
def manager(central_db: Any, pools: TenantPoolManager) -> PluginManager:
    """Manager with the built-in plugins loaded."""
    manager = PluginManager(Settings().plugins, pools, central_db)
    manager.load_configured()
    return manager


class TestLoading:
    """Tests for loading plugins."""

    def test_load_configured_skips_broken_modules(self, manager: PluginManager) -> None:
        loaded = manager.load_configured(
            ["fieldservice.plugins.builtin.example", "fieldservice.plugins.builtin.missing"]
        )

        # example is already registered; missing does not import
        assert loaded == []
        assert manager.registry.list_names() == ["example-plugin", "time-clock"]

    async def test_sync_catalog(self, manager: PluginManager) -> None:
        await manager.sync_catalog()
        await manager.sync_catalog()

        catalog = await manager.list_catalog("ACME")

        assert [entry.name for entry in catalog] == ["example-plugin", "time-clock"]
        assert not any(entry.installed for entry in catalog)


class TestTenantState:
    """Tests for install, enable, disable and uninstall per tenant."""

    async def test_install_enables_for_that_tenant_only(self, manager: PluginManager) -> None:
        installation = await manager.install(ACME, "example-plugin", installed_by="admin")

        assert installation.is_enabled
        assert installation.installed_by == "admin"
        assert await manager.is_enabled("ACME", "example-plugin")
        assert not await manager.is_enabled("BETA", "example-plugin")

    async def test_install_runs_lifecycle_hooks(
        self,
        manager: PluginManager,
        pools: TenantPoolManager,
    ) -> None:
        """Test that on_install receives a working tenant pool."""
        await manager.install(ACME, "example-plugin")

        pool = await pools.get_pool(ACME.connection_info)
        async with pool() as session:
            conn = await session.connection()
            tables = await conn.run_sync(lambda c: inspect(c).get_table_names())

        assert "example_plugin_data" in tables

    async def test_disable_and_enable(self, manager: PluginManager) -> None:
        await manager.install(ACME, "time-clock")

        disabled = await manager.disable(ACME, "time-clock")
        assert disabled.is_enabled is False
        assert not await manager.is_enabled("ACME", "time-clock")

        enabled = await manager.enable(ACME, "time-clock")
        assert enabled.is_enabled is True
        assert await manager.is_enabled("ACME", "time-clock")

    async def test_enable_requires_install(self, manager: PluginManager) -> None:
        with pytest.raises(PluginNotInstalledError):
            await manager.enable(ACME, "time-clock")

    async def test_unknown_plugin(self, manager: PluginManager) -> None:
        with pytest.raises(PluginNotFoundError):
            await manager.install(ACME, "billing")

        assert not await manager.is_enabled("ACME", "billing")

    async def test_uninstall(self, manager: PluginManager) -> None:
        await manager.install(ACME, "example-plugin")

        await manager.uninstall(ACME, "example-plugin")

        assert await manager.list_installed("ACME") == []
        with pytest.raises(PluginNotInstalledError):
            await manager.uninstall(ACME, "example-plugin")

    async def test_configure(self, manager: PluginManager) -> None:
        await manager.install(ACME, "time-clock", config={"roundTo": 15})

        assert await manager.get_config("ACME", "time-clock") == {"roundTo": 15}

        await manager.configure("ACME", "time-clock", {"roundTo": 5})

        assert await manager.get_config("ACME", "time-clock") == {"roundTo": 5}
        assert await manager.get_config("BETA", "time-clock") == {}

    async def test_failing_lifecycle_hook(self, manager: PluginManager) -> None:
        async def broken(tenant_code: str, pool: Any) -> None:
            raise RuntimeError("disk full")

        manager.registry.register(Plugin(name="broken", hooks=PluginHooks(on_install=broken)))

        with pytest.raises(PluginHookError, match="disk full"):
            await manager.install(ACME, "broken")


class TestContributions:
    """Tests for UI contributions and event hooks."""

    async def test_ticket_tabs_follow_enabled_state(self, manager: PluginManager) -> None:
        assert await manager.get_ticket_tabs("ACME") == []

        await manager.install(ACME, "example-plugin")
        tabs = await manager.get_ticket_tabs("ACME")

        assert [(t.id, t.plugin_name) for t in tabs] == [("example-tab", "example-plugin")]

        await manager.disable(ACME, "example-plugin")

        assert await manager.get_ticket_tabs("ACME") == []

    async def test_report_components_and_nav_tabs(self, manager: PluginManager) -> None:
        manager.registry.register(
            Plugin(name="schedule", nav_tabs=[NavTab("calendar", "Calendar", "schedule-calendar")])
        )
        await manager.install(ACME, "time-clock")
        await manager.install(ACME, "schedule")

        reports = await manager.get_report_components("ACME")
        nav_tabs = await manager.get_nav_tabs("ACME")

        assert [(r.component_id, r.plugin_name) for r in reports] == [
            ("time-clock-report", "time-clock")
        ]
        assert [(n.id, n.plugin_name) for n in nav_tabs] == [("calendar", "schedule")]

    async def test_execute_hook_orders_by_priority(self, manager: PluginManager) -> None:
        """Test that handlers chain in priority order and None keeps the payload."""
        calls: list[str] = []

        def handler(name: str, result: dict[str, Any] | None) -> Any:
            async def _handle(data: dict[str, Any]) -> dict[str, Any] | None:
                calls.append(name)
                return result

            return _handle

        manager.registry.register(
            Plugin(name="late", event_hooks={"ticket.created": EventHook(handler("late", None), 500)})
        )
        manager.registry.register(
            Plugin(
                name="early",
                event_hooks={"ticket.created": EventHook(handler("early", {"step": "early"}), 1)},
            )
        )
        manager.registry.register(
            Plugin(name="default", event_hooks={"ticket.created": handler("default", {"step": "default"})})
        )
        for name in ("late", "early", "default"):
            await manager.install(ACME, name)

        result = await manager.execute_hook("ticket.created", {"step": "start"}, "ACME")

        assert calls == ["early", "default", "late"]
        assert result == {"step": "default"}

    async def test_failing_event_handler_is_skipped(self, manager: PluginManager) -> None:
        async def broken(data: dict[str, Any]) -> dict[str, Any]:
            raise RuntimeError("boom")

        manager.registry.register(Plugin(name="broken", event_hooks={"ticket.updated": broken}))
        await manager.install(ACME, "broken")

        result = await manager.execute_hook("ticket.updated", {"id": "1"}, "ACME")

        assert result == {"id": "1"}

    async def test_hooks_of_disabled_plugins_do_not_run(self, manager: PluginManager) -> None:
        async def rewrite(data: dict[str, Any]) -> dict[str, Any]:
            return {"rewritten": True}

        manager.registry.register(Plugin(name="rewriter", event_hooks={"ticket.updated": rewrite}))

        assert await manager.execute_hook("ticket.updated", {"id": "1"}, "ACME") == {"id": "1"}

        await manager.install(BETA, "rewriter")

        assert await manager.execute_hook("ticket.updated", {"id": "1"}, "ACME") == {"id": "1"}
        assert await manager.execute_hook("ticket.updated", {"id": "1"}, "BETA") == {"rewritten": True}

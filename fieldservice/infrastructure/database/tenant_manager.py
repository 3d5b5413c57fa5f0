# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Tenant database connection management.

Each tenant gets its own async engine and sessionmaker (its "pool"), created
lazily on first access and cached for the life of the process. A tenant is
either hosted on a dedicated database (``database_url`` in the registry) or
shares the default tenant database with other tenants.

Example:
    from fieldservice.infrastructure.database import TenantPoolManager

    manager = TenantPoolManager(settings)
    info = TenantConnectionInfo(tenant_code="ACME", database_url=None)

    async with manager.get_session(info) as session:
        result = await session.execute(select(User))
        users = result.scalars().all()

    # Cleanup on shutdown
    await manager.close_all()
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, AsyncIterator

from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError, SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from fieldservice.infrastructure.database.connection import engine_options
from fieldservice.infrastructure.database.models.base import TenantBase

if TYPE_CHECKING:
    from fieldservice.core.config.settings import Settings

logger = logging.getLogger(__name__)


class TenantNotFoundError(Exception):
    """Raised when a tenant code has no registry entry.

    Attributes:
        tenant_code: The tenant code that was not found.
    """

    def __init__(self, tenant_code: str) -> None:
        super().__init__(f"No tenant configuration found for: {tenant_code}")
        self.tenant_code = tenant_code


class TenantConnectionError(Exception):
    """Raised when a tenant pool cannot be created or reached.

    Attributes:
        tenant_code: The tenant whose database failed.
        reason: The reason for the failure.
    """

    def __init__(self, tenant_code: str, reason: str) -> None:
        super().__init__(f"Failed to connect tenant {tenant_code}: {reason}")
        self.tenant_code = tenant_code
        self.reason = reason


@dataclass(frozen=True)
class TenantConnectionInfo:
    """Connection parameters for one tenant.

    Attributes:
        tenant_code: Unique identifier for the tenant.
        database_url: Dedicated database URL, or None for the shared database.
    """

    tenant_code: str
    database_url: str | None = None


class TenantPoolManager:
    """Caches one connection pool per tenant code.

    Pools are never evicted while the process runs; they are dropped only
    through close_tenant (tenant deactivated) or close_all (shutdown).

    Attributes:
        settings: Application settings containing database configuration.
    """

    def __init__(self, settings: "Settings") -> None:
        """Initialize the pool manager.

        Args:
            settings: Application settings containing database configuration.
        """
        self._settings = settings
        self._engines: dict[str, AsyncEngine] = {}
        self._sessionmakers: dict[str, async_sessionmaker[AsyncSession]] = {}
        self._urls: dict[str, str] = {}
        self._schema_ready: set[str] = set()
        self._lock = asyncio.Lock()

    def _resolve_url(self, info: TenantConnectionInfo) -> str:
        return info.database_url or self._settings.tenant_db.default_url

    def _create_engine(self, tenant_code: str, url: str) -> AsyncEngine:
        db = self._settings.tenant_db
        try:
            return create_async_engine(
                url,
                **engine_options(
                    url,
                    pool_size=db.pool_size,
                    max_overflow=db.max_overflow,
                    pool_recycle=db.pool_recycle,
                    echo=db.echo,
                ),
            )
        except (ArgumentError, ImportError, SQLAlchemyError) as e:
            raise TenantConnectionError(tenant_code, str(e)) from e

    async def _ensure_schema(self, tenant_code: str, engine: AsyncEngine, url: str) -> None:
        # Tenants sharing a database only need the DDL once per URL
        if url in self._schema_ready:
            return
        try:
            async with engine.begin() as conn:
                await conn.run_sync(TenantBase.metadata.create_all)
        except SQLAlchemyError as e:
            raise TenantConnectionError(tenant_code, str(e)) from e
        self._schema_ready.add(url)

    async def get_pool(self, info: TenantConnectionInfo) -> async_sessionmaker[AsyncSession]:
        """Get or lazily create the pool for a tenant.

        Args:
            info: Tenant connection parameters.

        Returns:
            async_sessionmaker bound to the tenant's engine.

        Raises:
            TenantConnectionError: If the engine or schema cannot be created.
        """
        code = info.tenant_code
        cached = self._sessionmakers.get(code)
        if cached is not None:
            return cached

        async with self._lock:
            cached = self._sessionmakers.get(code)
            if cached is not None:
                return cached

            url = self._resolve_url(info)
            engine = self._create_engine(code, url)
            if self._settings.tenant_db.auto_create_schema:
                try:
                    await self._ensure_schema(code, engine, url)
                except TenantConnectionError:
                    await engine.dispose()
                    raise

            self._engines[code] = engine
            self._urls[code] = url
            self._sessionmakers[code] = async_sessionmaker(
                bind=engine,
                class_=AsyncSession,
                expire_on_commit=False,
                autoflush=False,
            )
            logger.info("Created connection pool for tenant %s", code)
            return self._sessionmakers[code]

    @asynccontextmanager
    async def get_session(self, info: TenantConnectionInfo) -> AsyncIterator[AsyncSession]:
        """Get an async session for a tenant database.

        The session is committed on success and rolled back on exception.

        Args:
            info: Tenant connection parameters.

        Yields:
            AsyncSession for database operations.

        Raises:
            TenantConnectionError: If the pool cannot be created.
            SQLAlchemyError: If a database operation fails.
        """
        sessionmaker = await self.get_pool(info)

        async with sessionmaker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    def has_pool(self, tenant_code: str) -> bool:
        """Check whether a pool is cached for a tenant."""
        return tenant_code in self._sessionmakers

    async def check_connection(self, info: TenantConnectionInfo) -> bool:
        """Check if a tenant database is reachable.

        Args:
            info: Tenant connection parameters.

        Returns:
            True if the database is reachable, False otherwise.
        """
        try:
            await self.get_pool(info)
            async with self._engines[info.tenant_code].connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except (SQLAlchemyError, TenantConnectionError, OSError):
            return False

    async def close_tenant(self, tenant_code: str) -> None:
        """Close and forget the pool for a tenant.

        Args:
            tenant_code: Unique identifier for the tenant.
        """
        engine = self._engines.pop(tenant_code, None)
        self._sessionmakers.pop(tenant_code, None)
        self._urls.pop(tenant_code, None)
        if engine is not None:
            await engine.dispose()
            logger.info("Closed connection pool for tenant %s", tenant_code)

    async def close_all(self) -> None:
        """Close all tenant pools. Called at application shutdown."""
        for tenant_code in list(self._engines.keys()):
            await self.close_tenant(tenant_code)
        self._schema_ready.clear()

    def get_status(self) -> dict[str, Any]:
        """Summarize cached pools.

        Returns:
            Dictionary with the pool count and per-tenant database names.
        """
        return {
            "active_pools": len(self._engines),
            "tenants": [
                {
                    "code": code,
                    "database": make_url(url).database,
                    "shared": url == self._settings.tenant_db.default_url,
                }
                for code, url in sorted(self._urls.items())
            ],
        }

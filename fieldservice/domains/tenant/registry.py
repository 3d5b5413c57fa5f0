# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Tenant registry lookups with a short-lived config cache.

The registry maps a tenant code to its registry entry in the central
database. Lookups are cached for a configurable TTL so that every request
does not hit the central database; deactivating or editing a tenant clears
its entry explicitly.

Example:
    >>> registry = TenantRegistry(get_central_session, cache_ttl=300)
    >>> tenant = await registry.get("acme")
    >>> tenant.code
    'ACME'
"""

import logging
import re
import time
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass, field
from typing import Any, Callable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fieldservice.infrastructure.database.models.central import Tenant
from fieldservice.infrastructure.database.tenant_manager import (
    TenantConnectionInfo,
    TenantNotFoundError,
)

logger = logging.getLogger(__name__)

TENANT_CODE_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_-]{2,49}$")


def normalize_tenant_code(code: str) -> str:
    """Strip and upper-case a tenant code."""
    return code.strip().upper()


def is_valid_tenant_code(code: str) -> bool:
    """Check a tenant code against the allowed format.

    Codes are 3 to 50 characters: letters, digits, underscore and hyphen,
    starting with a letter or digit.
    """
    return bool(TENANT_CODE_PATTERN.match(code))


@dataclass(frozen=True)
class TenantContext:
    """Tenant resolved for a request.

    Attributes:
        id: Tenant identifier.
        code: Upper-case tenant code.
        name: Tenant display name.
        status: Tenant status.
        tier: Subscription tier.
        allow_service_requests: Whether public service requests are accepted.
        features: Enabled feature flags.
        database_url: Dedicated database URL, None for the shared database.
    """

    id: str
    code: str
    name: str
    status: str
    tier: str = "standard"
    allow_service_requests: bool = True
    features: tuple[str, ...] = field(default_factory=tuple)
    database_url: str | None = None

    @property
    def is_active(self) -> bool:
        """Check if tenant is active."""
        return self.status == "active"

    @property
    def connection_info(self) -> TenantConnectionInfo:
        """Connection parameters for the tenant pool."""
        return TenantConnectionInfo(tenant_code=self.code, database_url=self.database_url)

    def has_feature(self, name: str) -> bool:
        """Check whether a feature flag is enabled for the tenant."""
        return name in self.features

    @classmethod
    def from_model(cls, tenant: Tenant) -> "TenantContext":
        """Build a context from a registry row."""
        return cls(
            id=tenant.id,
            code=tenant.code,
            name=tenant.name,
            status=tenant.status,
            tier=tenant.subscription_tier,
            allow_service_requests=tenant.allow_service_requests,
            features=tuple(tenant.features or ()),
            database_url=tenant.db_url,
        )


class TenantRegistry:
    """Looks up tenants in the central database with a TTL cache.

    Attributes:
        _get_central_db: Callable returning a central session context manager.
        _cache_ttl: Seconds a lookup stays cached.
        _cache: Tenant code to (expiry, context).
    """

    def __init__(
        self,
        get_central_db: Callable[[], AbstractAsyncContextManager[AsyncSession]],
        cache_ttl: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._get_central_db = get_central_db
        self._cache_ttl = cache_ttl
        self._clock = clock
        self._cache: dict[str, tuple[float, TenantContext]] = {}

    async def get(self, code: str) -> TenantContext:
        """Get the registry entry for a tenant code.

        Args:
            code: Tenant code, any case.

        Returns:
            TenantContext for the tenant (any status).

        Raises:
            TenantNotFoundError: If no tenant has this code.
        """
        code = normalize_tenant_code(code)
        now = self._clock()

        cached = self._cache.get(code)
        if cached is not None:
            expires_at, tenant = cached
            if now < expires_at:
                return tenant
            del self._cache[code]

        async with self._get_central_db() as db:
            result = await db.execute(select(Tenant).where(Tenant.code == code))
            row = result.scalar_one_or_none()

        if row is None:
            raise TenantNotFoundError(code)

        tenant = TenantContext.from_model(row)
        self._cache[code] = (now + self._cache_ttl, tenant)
        logger.debug("Cached tenant config for %s", code)
        return tenant

    def clear_cache(self, code: str | None = None) -> None:
        """Drop one cached entry, or all of them.

        Args:
            code: Tenant code to drop; None clears the whole cache.
        """
        if code is None:
            self._cache.clear()
            logger.info("Cleared all tenant config cache entries")
        else:
            self._cache.pop(normalize_tenant_code(code), None)
            logger.info("Cleared tenant config cache for %s", code)

    def get_status(self) -> dict[str, Any]:
        """Summarize the config cache."""
        now = self._clock()
        live = sorted(code for code, (expires_at, _) in self._cache.items() if now < expires_at)
        return {"cached_configs": len(live), "cached_tenants": live}

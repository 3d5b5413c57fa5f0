# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Central database seed data.

Creates the default tenant registry entry used by single-company
deployments that run with ``TENANT_ALLOW_DEFAULT=true``.
"""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fieldservice.infrastructure.database.models.central import Tenant

logger = logging.getLogger(__name__)


async def seed_default_tenant(
    session: AsyncSession,
    code: str,
    name: str = "Default Company",
) -> Tenant | None:
    """Create the default tenant if it does not exist.

    Args:
        session: Central database session.
        code: Tenant code of the default company.
        name: Display name used when creating it.

    Returns:
        The created tenant, or None if it already existed.
    """
    code = code.upper()
    result = await session.execute(select(Tenant).where(Tenant.code == code))
    if result.scalar_one_or_none() is not None:
        logger.info("Default tenant %s already exists, skipping seed", code)
        return None

    tenant = Tenant(code=code, name=name, status="active")
    session.add(tenant)
    await session.flush()
    logger.info("Seeded default tenant %s", code)
    return tenant

# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Central database models.

- Tenant: registry entry mapping a company code to its database
- Plugin: global plugin catalog
- TenantPluginInstallation: per-tenant install and enable state
"""

from datetime import datetime
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from fieldservice.infrastructure.database.models.base import (
    CentralBase,
    TimestampMixin,
    UUIDPrimaryKeyMixin,
)
from fieldservice.utils.datetime import utc_now


class Tenant(UUIDPrimaryKeyMixin, TimestampMixin, CentralBase):
    """A company using the platform.

    ``db_url`` is set for tenants hosted on a dedicated database. Tenants
    without one share the default tenant database and are partitioned by
    ``company_code`` on every tenant table.
    """

    __tablename__ = "tenants"
    __table_args__ = (
        CheckConstraint(
            "status IN ('active', 'inactive', 'suspended')",
            name="valid_tenant_status",
        ),
    )

    code: Mapped[str] = mapped_column(String(50), unique=True, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active")
    db_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    subscription_tier: Mapped[str] = mapped_column(String(20), nullable=False, default="standard")
    allow_service_requests: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    features: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    contact_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    contact_phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)
    settings: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    deactivated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    @property
    def is_active(self) -> bool:
        """Check if tenant is active."""
        return self.status == "active"


class Plugin(UUIDPrimaryKeyMixin, CentralBase):
    """Global plugin catalog entry, synced from loaded plugin modules."""

    __tablename__ = "plugins"

    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    display_name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    version: Mapped[str] = mapped_column(String(50), nullable=False, default="1.0.0")
    module_path: Mapped[str] = mapped_column(String(255), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
    )


class TenantPluginInstallation(UUIDPrimaryKeyMixin, CentralBase):
    """A plugin installed for one tenant."""

    __tablename__ = "tenant_plugin_installations"
    __table_args__ = (
        UniqueConstraint("tenant_code", "plugin_name", name="uq_tenant_plugin"),
    )

    tenant_code: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    plugin_name: Mapped[str] = mapped_column(String(100), nullable=False)
    is_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    config: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    installed_version: Mapped[str | None] = mapped_column(String(50), nullable=True)
    installed_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    installed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
    )
    last_activated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    last_deactivated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Tenant database models.

Every table carries ``company_code`` so that several tenants can share one
physical database. Services always filter on it, even when the tenant has a
dedicated database.
"""

from datetime import datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fieldservice.infrastructure.database.models.base import (
    TenantBase,
    TimestampMixin,
    UUIDPrimaryKeyMixin,
)
from fieldservice.utils.datetime import utc_now


class User(UUIDPrimaryKeyMixin, TimestampMixin, TenantBase):
    """Staff user of a tenant (admins, coordinators, technicians)."""

    __tablename__ = "users"
    __table_args__ = (
        UniqueConstraint("company_code", "username", name="uq_user_username"),
        UniqueConstraint("company_code", "email", name="uq_user_email"),
    )

    company_code: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    username: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(50), nullable=False, default="Technician")
    vendor: Mapped[str | None] = mapped_column(String(255), nullable=True)
    password_hash: Mapped[str | None] = mapped_column(String(255), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_system_admin: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_tenant_admin: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    last_login_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    @property
    def is_admin(self) -> bool:
        """Admin role or tenant admin flag."""
        return self.is_tenant_admin or self.is_system_admin or self.role == "Admin"


class Customer(UUIDPrimaryKeyMixin, TimestampMixin, TenantBase):
    """Customer organization served by the tenant."""

    __tablename__ = "customers"

    company_code: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    contact: Mapped[str | None] = mapped_column(String(255), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)


class Site(UUIDPrimaryKeyMixin, TimestampMixin, TenantBase):
    """Customer location where work is performed."""

    __tablename__ = "sites"

    company_code: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    customer: Mapped[str] = mapped_column(String(255), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)
    contact: Mapped[str | None] = mapped_column(String(255), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)


class Ticket(TimestampMixin, TenantBase):
    """Service ticket."""

    __tablename__ = "tickets"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    company_code: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    status: Mapped[str] = mapped_column(String(50), nullable=False, default="New")
    priority: Mapped[str] = mapped_column(String(20), nullable=False, default="Normal")
    customer: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    site: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    asset_ids: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    category: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    scheduled_start: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    scheduled_end: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    assigned_to: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    owner: Mapped[str] = mapped_column(String(255), nullable=False, default="Operations Coordinator")
    sla_due: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    resolution: Mapped[str] = mapped_column(Text, nullable=False, default="")
    closed_by: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    closed_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    geo_location: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    tags: Mapped[str] = mapped_column(String(500), nullable=False, default="")

    notes: Mapped[list["TicketNote"]] = relationship(
        back_populates="ticket",
        cascade="all, delete-orphan",
        order_by="TicketNote.created_at",
        lazy="selectin",
    )


class TicketNote(UUIDPrimaryKeyMixin, TenantBase):
    """Coordinator note attached to a ticket."""

    __tablename__ = "ticket_notes"

    ticket_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("tickets.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    note: Mapped[str] = mapped_column(Text, nullable=False)
    created_by: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
    )

    ticket: Mapped[Ticket] = relationship(back_populates="notes")


class ServiceRequest(TenantBase):
    """Public service request submitted by a customer."""

    __tablename__ = "service_requests"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    company_code: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    customer_name: Mapped[str] = mapped_column(String(255), nullable=False)
    contact_email: Mapped[str] = mapped_column(String(255), nullable=False)
    contact_phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    site_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)
    issue_description: Mapped[str] = mapped_column(Text, nullable=False)
    priority: Mapped[str] = mapped_column(String(20), nullable=False, default="Medium")
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="New")
    ticket_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    processed_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    processed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    processed_note: Mapped[str | None] = mapped_column(String(255), nullable=True)
    submitted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
    )


class ActivityLog(UUIDPrimaryKeyMixin, TenantBase):
    """Audit trail of user actions."""

    __tablename__ = "activity_log"

    company_code: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    user_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    username: Mapped[str] = mapped_column(String(255), nullable=False)
    action: Mapped[str] = mapped_column(String(255), nullable=False)
    details: Mapped[str] = mapped_column(Text, nullable=False, default="")
    ip_address: Mapped[str | None] = mapped_column(String(64), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(String(500), nullable=True)
    user_timezone: Mapped[str | None] = mapped_column(String(64), nullable=True)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
        index=True,
    )


class CustomerAccount(UUIDPrimaryKeyMixin, TimestampMixin, TenantBase):
    """Customer portal login."""

    __tablename__ = "customer_accounts"
    __table_args__ = (
        UniqueConstraint("company_code", "username", name="uq_customer_account_username"),
    )

    company_code: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    customer_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("customers.id", ondelete="CASCADE"),
        nullable=False,
    )
    username: Mapped[str] = mapped_column(String(100), nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    last_login_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    customer: Mapped[Customer] = relationship(lazy="selectin")


class TimeClockEntry(UUIDPrimaryKeyMixin, TenantBase):
    """Technician time spent on a ticket."""

    __tablename__ = "time_clock_entries"

    company_code: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    technician_id: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    technician_name: Mapped[str] = mapped_column(String(255), nullable=False)
    ticket_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    clock_in_time: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
    )
    clock_out_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    total_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

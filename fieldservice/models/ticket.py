# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Service ticket models."""

from datetime import datetime

from fieldservice.models.common import CamelModel

# Fields a client may set through PUT /api/tickets/{id}
UPDATABLE_TICKET_FIELDS = (
    "title",
    "status",
    "priority",
    "customer",
    "site",
    "asset_ids",
    "category",
    "description",
    "scheduled_start",
    "scheduled_end",
    "assigned_to",
    "owner",
    "sla_due",
    "resolution",
    "closed_by",
    "closed_date",
    "geo_location",
    "tags",
)


class TicketCreateRequest(CamelModel):
    """Create a ticket."""

    title: str = ""
    status: str = "New"
    priority: str = "Normal"
    customer: str = ""
    site: str = ""
    asset_ids: str = ""
    category: str = ""
    description: str = ""
    scheduled_start: datetime | None = None
    scheduled_end: datetime | None = None
    assigned_to: str = ""
    owner: str = "Operations Coordinator"
    sla_due: datetime | None = None
    geo_location: str = ""
    tags: str = ""


class TicketUpdateRequest(CamelModel):
    """Partial ticket update. Only fields present in the body are applied."""

    title: str | None = None
    status: str | None = None
    priority: str | None = None
    customer: str | None = None
    site: str | None = None
    asset_ids: str | None = None
    category: str | None = None
    description: str | None = None
    scheduled_start: datetime | None = None
    scheduled_end: datetime | None = None
    assigned_to: str | None = None
    owner: str | None = None
    sla_due: datetime | None = None
    resolution: str | None = None
    closed_by: str | None = None
    closed_date: datetime | None = None
    geo_location: str | None = None
    tags: str | None = None
    updated_by: str | None = None


class TicketNoteResponse(CamelModel):
    """Coordinator note."""

    id: str
    note: str
    created_by: str
    created_at: datetime


class TicketNoteCreateRequest(CamelModel):
    """Add a coordinator note."""

    note: str | None = None


class TicketResponse(CamelModel):
    """Ticket with notes."""

    id: str
    company_code: str
    title: str
    status: str
    priority: str
    customer: str
    site: str
    asset_ids: str
    category: str
    description: str
    scheduled_start: datetime | None = None
    scheduled_end: datetime | None = None
    assigned_to: str
    owner: str
    sla_due: datetime | None = None
    resolution: str
    closed_by: str
    closed_date: datetime | None = None
    geo_location: str
    tags: str
    created_at: datetime
    updated_at: datetime
    notes: list[TicketNoteResponse] = []


class TicketCreateResponse(CamelModel):
    """Result of ticket creation."""

    success: bool = True
    message: str = "Ticket created successfully"
    ticket_id: str

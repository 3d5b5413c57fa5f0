# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Ticket API endpoints.

This module provides endpoints for the tenant's work orders:
- GET /tickets - List tickets
- GET /tickets/{ticket_id} - Get a ticket with its notes
- POST /tickets - Create a ticket
- PUT /tickets/{ticket_id} - Update a ticket
- POST /tickets/{ticket_id}/notes - Add a note

Creating and updating a ticket runs the ticket.created and ticket.updated
hooks of the tenant's enabled plugins.
"""

import logging

from fastapi import APIRouter, Depends, status

from fieldservice.api.dependencies import (
    Activity,
    AuthUser,
    Origin,
    Plugins,
    Tenant,
    TenantDB,
)
from fieldservice.api.errors import ApiError
from fieldservice.domains.ticket.service import (
    EmptyNoteError,
    NoValidFieldsError,
    TicketNotFoundError,
    TicketService,
)
from fieldservice.models.ticket import (
    TicketCreateRequest,
    TicketCreateResponse,
    TicketNoteCreateRequest,
    TicketResponse,
    TicketUpdateRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_ticket_service(db: TenantDB, tenant: Tenant, plugins: Plugins) -> TicketService:
    async def run_hook(hook: str, data: dict) -> dict:
        return await plugins.execute_hook(hook, data, tenant.code)

    return TicketService(db, tenant.code, run_hook=run_hook)


def _ticket_not_found(ticket_id: str) -> ApiError:
    return ApiError(status.HTTP_404_NOT_FOUND, f"Ticket not found: {ticket_id}", "TICKET_NOT_FOUND")


@router.get("", response_model=list[TicketResponse], summary="List tickets")
async def list_tickets(
    current_user: AuthUser,
    service: TicketService = Depends(_get_ticket_service),
) -> list[TicketResponse]:
    return await service.list_tickets()


@router.get("/{ticket_id}", response_model=TicketResponse, summary="Get ticket")
async def get_ticket(
    ticket_id: str,
    current_user: AuthUser,
    service: TicketService = Depends(_get_ticket_service),
) -> TicketResponse:
    try:
        return await service.get_ticket(ticket_id)
    except TicketNotFoundError:
        raise _ticket_not_found(ticket_id)


@router.post(
    "",
    response_model=TicketCreateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create ticket",
    description="Create a ticket with the next id of the month (TKT-<code>-YYYY-MM-NNN).",
)
async def create_ticket(
    data: TicketCreateRequest,
    current_user: AuthUser,
    db: TenantDB,
    activity: Activity,
    origin: Origin,
    service: TicketService = Depends(_get_ticket_service),
) -> TicketCreateResponse:
    ticket = await service.create_ticket(data, created_by=current_user.display_name)

    await activity.log(
        "Ticket Created",
        f"Created ticket {ticket.id}: {ticket.title}",
        username=current_user.username,
        user_id=current_user.id,
        origin=origin,
    )
    await db.commit()
    return TicketCreateResponse(ticket_id=ticket.id)


@router.put("/{ticket_id}", response_model=TicketResponse, summary="Update ticket")
async def update_ticket(
    ticket_id: str,
    data: TicketUpdateRequest,
    current_user: AuthUser,
    db: TenantDB,
    activity: Activity,
    origin: Origin,
    service: TicketService = Depends(_get_ticket_service),
) -> TicketResponse:
    if data.updated_by is None:
        data.updated_by = current_user.display_name

    try:
        ticket, fields = await service.update_ticket(ticket_id, data)
    except NoValidFieldsError as e:
        raise ApiError(status.HTTP_400_BAD_REQUEST, str(e), "NO_VALID_FIELDS")
    except TicketNotFoundError:
        raise _ticket_not_found(ticket_id)

    await activity.log(
        "Ticket Updated",
        f"Updated ticket {ticket_id}: {', '.join(fields)}",
        username=current_user.username,
        user_id=current_user.id,
        origin=origin,
    )
    await db.commit()
    return ticket


@router.post(
    "/{ticket_id}/notes",
    response_model=TicketResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add note",
)
async def add_note(
    ticket_id: str,
    data: TicketNoteCreateRequest,
    current_user: AuthUser,
    db: TenantDB,
    activity: Activity,
    origin: Origin,
    service: TicketService = Depends(_get_ticket_service),
) -> TicketResponse:
    try:
        ticket = await service.add_note(ticket_id, data.note or "", current_user.display_name)
    except EmptyNoteError as e:
        raise ApiError(status.HTTP_400_BAD_REQUEST, str(e), "MISSING_FIELDS")
    except TicketNotFoundError:
        raise _ticket_not_found(ticket_id)

    await activity.log(
        "Note Added",
        f"Added a note to ticket {ticket_id}",
        username=current_user.username,
        user_id=current_user.id,
        origin=origin,
    )
    await db.commit()
    return ticket

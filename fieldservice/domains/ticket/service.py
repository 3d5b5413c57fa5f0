# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Service ticket management.

Ticket ids are sequential per company and month, e.g. ``TKT-ACME-2025-03-007``.
Creating or updating a ticket runs the ``ticket.created`` / ``ticket.updated``
plugin hooks when a hook runner is supplied.
"""

import logging
from typing import Any, Awaitable, Callable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fieldservice.infrastructure.database.models.tenant import Ticket, TicketNote
from fieldservice.models.ticket import (
    UPDATABLE_TICKET_FIELDS,
    TicketCreateRequest,
    TicketResponse,
    TicketUpdateRequest,
)
from fieldservice.utils.datetime import utc_now

logger = logging.getLogger(__name__)

HookRunner = Callable[[str, dict[str, Any]], Awaitable[dict[str, Any]]]


class TicketError(Exception):
    """Base exception for ticket errors."""

    pass


class TicketNotFoundError(TicketError):
    """Raised when a ticket does not exist in the tenant."""

    pass


class NoValidFieldsError(TicketError):
    """Raised when an update carries no updatable field."""

    pass


class EmptyNoteError(TicketError):
    """Raised when a note has no text."""

    pass


def ticket_id_prefix(company_code: str, year: int, month: int) -> str:
    """Prefix shared by a company's tickets for one month."""
    return f"TKT-{company_code}-{year:04d}-{month:02d}-"


class TicketService:
    """Ticket CRUD for one tenant.

    Attributes:
        _db: Tenant database session.
        _company_code: Tenant partition key.
        _run_hook: Optional plugin hook runner.
    """

    def __init__(
        self,
        db: AsyncSession,
        company_code: str,
        run_hook: HookRunner | None = None,
    ) -> None:
        self._db = db
        self._company_code = company_code
        self._run_hook = run_hook

    async def _get(self, ticket_id: str) -> Ticket:
        result = await self._db.execute(
            select(Ticket).where(
                Ticket.company_code == self._company_code,
                Ticket.id == ticket_id,
            )
        )
        ticket = result.scalar_one_or_none()
        if ticket is None:
            raise TicketNotFoundError(f"Ticket not found: {ticket_id}")
        return ticket

    async def _emit(self, hook: str, ticket: Ticket, **extra: Any) -> None:
        if self._run_hook is None:
            return
        payload = {
            "ticket": TicketResponse.model_validate(ticket).model_dump(mode="json"),
            "company_code": self._company_code,
            **extra,
        }
        await self._run_hook(hook, payload)

    async def next_ticket_id(self) -> str:
        """Allocate the next ticket id for the current month."""
        now = utc_now()
        prefix = ticket_id_prefix(self._company_code, now.year, now.month)
        result = await self._db.execute(
            select(Ticket.id).where(
                Ticket.company_code == self._company_code,
                Ticket.id.like(f"{prefix}%"),
            )
        )
        sequence = 0
        for (existing,) in result.all():
            suffix = existing[len(prefix):]
            if suffix.isdigit():
                sequence = max(sequence, int(suffix))
        return f"{prefix}{sequence + 1:03d}"

    async def list_tickets(self) -> list[TicketResponse]:
        """List the tenant's tickets, newest first."""
        result = await self._db.execute(
            select(Ticket)
            .where(Ticket.company_code == self._company_code)
            .order_by(Ticket.created_at.desc(), Ticket.id.desc())
        )
        return [TicketResponse.model_validate(t) for t in result.scalars().all()]

    async def get_ticket(self, ticket_id: str) -> TicketResponse:
        """Get one ticket with its notes.

        Raises:
            TicketNotFoundError: If the ticket does not exist in the tenant.
        """
        return TicketResponse.model_validate(await self._get(ticket_id))

    async def create_ticket(
        self,
        request: TicketCreateRequest,
        created_by: str | None = None,
        tags: str | None = None,
    ) -> TicketResponse:
        """Create a ticket with the next sequential id.

        Args:
            request: Ticket fields; unset fields take their defaults.
            created_by: User name passed to plugin hooks.
            tags: Overrides the request's tags.

        Returns:
            The created ticket.
        """
        ticket_id = await self.next_ticket_id()
        values = request.model_dump()
        if tags is not None:
            values["tags"] = tags

        ticket = Ticket(id=ticket_id, company_code=self._company_code, **values)
        self._db.add(ticket)
        await self._db.flush()
        await self._db.refresh(ticket)

        logger.info("Created ticket %s", ticket_id)
        await self._emit("ticket.created", ticket, user=created_by)
        return TicketResponse.model_validate(ticket)

    async def update_ticket(
        self,
        ticket_id: str,
        request: TicketUpdateRequest,
    ) -> tuple[TicketResponse, list[str]]:
        """Apply the updatable fields present in the request.

        Returns:
            The updated ticket and the names of the changed fields.

        Raises:
            NoValidFieldsError: If no updatable field was sent.
            TicketNotFoundError: If the ticket does not exist in the tenant.
        """
        changes = {
            k: v
            for k, v in request.model_dump(exclude_unset=True).items()
            if k in UPDATABLE_TICKET_FIELDS
        }
        if not changes:
            raise NoValidFieldsError("No valid fields to update")

        ticket = await self._get(ticket_id)
        for field, value in changes.items():
            setattr(ticket, field, value)
        ticket.updated_at = utc_now()
        await self._db.flush()
        await self._db.refresh(ticket)

        fields = sorted(changes)
        logger.info("Updated ticket %s: %s", ticket_id, fields)
        await self._emit("ticket.updated", ticket, user=request.updated_by, changes=fields)
        return TicketResponse.model_validate(ticket), fields

    async def add_note(self, ticket_id: str, note: str, created_by: str) -> TicketResponse:
        """Attach a coordinator note.

        Raises:
            EmptyNoteError: If the note is blank.
            TicketNotFoundError: If the ticket does not exist in the tenant.
        """
        if not (note or "").strip():
            raise EmptyNoteError("Note text is required")

        ticket = await self._get(ticket_id)
        self._db.add(TicketNote(ticket_id=ticket.id, note=note.strip(), created_by=created_by))
        await self._db.flush()
        await self._db.refresh(ticket, attribute_names=["notes"])
        return TicketResponse.model_validate(ticket)

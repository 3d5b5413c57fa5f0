# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Public service requests.

Customers submit requests through a public form; tenant staff later either
convert a request into a ticket or dismiss it.
"""

import logging
import secrets
import string
import time

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from fieldservice.domains.ticket.service import TicketService
from fieldservice.infrastructure.database.models.tenant import ServiceRequest
from fieldservice.models.service_request import ServiceRequestResponse, ServiceRequestSubmit
from fieldservice.models.ticket import TicketCreateRequest
from fieldservice.utils.datetime import utc_now

logger = logging.getLogger(__name__)

REQUIRED_SUBMIT_FIELDS = ("CustomerName", "ContactEmail", "IssueDescription", "CompanyCode")

TICKET_PRIORITIES = ("Low", "Normal", "High", "Critical")

# Path segment accepted by GET /count/{status}
STATUS_ALIASES = {
    "new": "New",
    "pending": "Pending",
    "processed": "Processed",
    "completed": "Completed",
    "dismissed": "Dismissed",
}

_BASE36 = string.digits + string.ascii_uppercase


class ServiceRequestError(Exception):
    """Base exception for service request errors."""

    pass


class MissingSubmitFieldsError(ServiceRequestError):
    """Raised when the public form lacks required fields."""

    def __init__(self) -> None:
        super().__init__("Missing required fields")
        self.required = list(REQUIRED_SUBMIT_FIELDS)


class ServiceRequestNotFoundError(ServiceRequestError):
    """Raised when a request does not exist in the tenant."""

    pass


def to_base36(value: int) -> str:
    """Encode a non-negative integer in upper-case base 36."""
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def generate_request_id() -> str:
    """Build an id like ``SR-M1ABC2DE-X7Q9``."""
    timestamp = to_base36(int(time.time() * 1000))
    suffix = "".join(secrets.choice(_BASE36) for _ in range(4))
    return f"SR-{timestamp}-{suffix}"


def ticket_priority(priority: str | None) -> str:
    """Map a request priority onto the ticket priority scale."""
    if priority == "Medium" or priority not in TICKET_PRIORITIES:
        return "Normal"
    return priority


def check_submission(form: ServiceRequestSubmit) -> None:
    """Validate the public form.

    Raises:
        MissingSubmitFieldsError: If any required field is empty.
    """
    values = (form.customer_name, form.contact_email, form.issue_description, form.company_code)
    if not all(v and v.strip() for v in values):
        raise MissingSubmitFieldsError()


class ServiceRequestService:
    """Service requests of one tenant."""

    def __init__(self, db: AsyncSession, company_code: str) -> None:
        self._db = db
        self._company_code = company_code

    async def _get(self, request_id: str) -> ServiceRequest:
        result = await self._db.execute(
            select(ServiceRequest).where(
                ServiceRequest.company_code == self._company_code,
                ServiceRequest.id == request_id,
            )
        )
        sr = result.scalar_one_or_none()
        if sr is None:
            raise ServiceRequestNotFoundError("Service request not found")
        return sr

    async def submit(self, form: ServiceRequestSubmit) -> ServiceRequestResponse:
        """Store a public submission.

        Raises:
            MissingSubmitFieldsError: If required fields are empty.
        """
        check_submission(form)

        sr = ServiceRequest(
            id=generate_request_id(),
            company_code=self._company_code,
            customer_name=form.customer_name.strip(),
            contact_email=form.contact_email.strip(),
            contact_phone=form.contact_phone or None,
            site_name=form.site_name or None,
            address=form.address or None,
            issue_description=form.issue_description,
            priority=form.priority or "Medium",
            status="New",
        )
        self._db.add(sr)
        await self._db.flush()

        logger.info("Service request %s submitted for %s", sr.id, self._company_code)
        return ServiceRequestResponse.model_validate(sr)

    async def list_requests(self, status: str | None = None) -> list[ServiceRequestResponse]:
        """List requests, newest first, optionally filtered by status."""
        stmt = select(ServiceRequest).where(ServiceRequest.company_code == self._company_code)
        if status:
            stmt = stmt.where(ServiceRequest.status == status)
        result = await self._db.execute(stmt.order_by(ServiceRequest.submitted_at.desc()))
        return [ServiceRequestResponse.model_validate(sr) for sr in result.scalars().all()]

    async def count(self, status: str) -> int:
        """Count requests in a status. Unknown aliases count as New."""
        resolved = STATUS_ALIASES.get(status.lower(), "New")
        result = await self._db.execute(
            select(func.count())
            .select_from(ServiceRequest)
            .where(
                ServiceRequest.company_code == self._company_code,
                ServiceRequest.status == resolved,
            )
        )
        return result.scalar_one()

    async def create_ticket(
        self,
        request_id: str,
        tickets: TicketService,
        processed_by: str = "System",
    ) -> tuple[ServiceRequestResponse, str]:
        """Convert a request into a ticket and mark it Processed.

        Returns:
            The updated request and the new ticket id.

        Raises:
            ServiceRequestNotFoundError: If the request does not exist.
        """
        sr = await self._get(request_id)

        description = (
            f"Customer: {sr.customer_name}\n"
            f"Email: {sr.contact_email}\n"
            f"Phone: {sr.contact_phone or ''}\n"
            f"Site: {sr.site_name or ''}\n"
            f"Address: {sr.address or ''}\n"
            f"\nIssue:\n{sr.issue_description}"
        )
        ticket = await tickets.create_ticket(
            TicketCreateRequest(
                title=f"Service Request: {sr.customer_name}",
                customer=sr.customer_name,
                site=sr.site_name or "",
                description=description,
                priority=ticket_priority(sr.priority),
                category="General",
                owner="System",
            ),
            created_by=processed_by,
        )

        sr.status = "Processed"
        sr.ticket_id = ticket.id
        sr.processed_by = processed_by
        sr.processed_at = utc_now()
        sr.processed_note = "Converted to ticket"
        await self._db.flush()

        logger.info("Service request %s converted to ticket %s", sr.id, ticket.id)
        return ServiceRequestResponse.model_validate(sr), ticket.id

    async def dismiss(self, request_id: str, dismissed_by: str = "System") -> ServiceRequestResponse:
        """Mark a request Dismissed.

        Raises:
            ServiceRequestNotFoundError: If the request does not exist.
        """
        sr = await self._get(request_id)
        sr.status = "Dismissed"
        sr.processed_by = dismissed_by
        sr.processed_at = utc_now()
        sr.processed_note = "Request dismissed"
        await self._db.flush()

        logger.info("Service request %s dismissed by %s", sr.id, dismissed_by)
        return ServiceRequestResponse.model_validate(sr)

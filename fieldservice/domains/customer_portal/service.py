# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Customer portal service.

Customers log in with portal accounts (separate from staff users), raise
service requests that become tickets, and follow their own tickets.
"""

import logging
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fieldservice.domains.auth.jwt import CustomerTokenPayload, JWTManager
from fieldservice.domains.auth.password import PasswordHasher
from fieldservice.domains.ticket.service import TicketService
from fieldservice.infrastructure.database.models.tenant import CustomerAccount, Site, Ticket
from fieldservice.models.customer_portal import (
    CustomerLoginData,
    PortalServiceRequest,
    PortalTicketSummary,
)
from fieldservice.models.ticket import TicketCreateRequest, TicketResponse
from fieldservice.utils.datetime import days_from_now, utc_now

logger = logging.getLogger(__name__)

PORTAL_TAG = "CustomerPortal"

SLA_DAYS = {"Critical": 1, "High": 2}
DEFAULT_SLA_DAYS = 5


class CustomerPortalError(Exception):
    """Base exception for customer portal errors."""

    pass


class InvalidCustomerCredentialsError(CustomerPortalError):
    """Raised when portal login fails."""

    pass


class MissingPortalFieldsError(CustomerPortalError):
    """Raised when a portal request lacks title, description or site."""

    pass


def sla_due_for(priority: str) -> datetime:
    """SLA deadline for a portal request of the given priority."""
    return days_from_now(SLA_DAYS.get(priority, DEFAULT_SLA_DAYS))


class CustomerPortalService:
    """Portal operations for one tenant."""

    def __init__(
        self,
        db: AsyncSession,
        company_code: str,
        jwt_manager: JWTManager,
        hasher: PasswordHasher | None = None,
    ) -> None:
        self._db = db
        self._company_code = company_code
        self._jwt_manager = jwt_manager
        self._hasher = hasher or PasswordHasher()

    async def list_sites(self, customer_name: str) -> list[str]:
        """Distinct site names of a customer, sorted."""
        result = await self._db.execute(
            select(Site.name)
            .where(
                Site.company_code == self._company_code,
                Site.customer == customer_name,
            )
            .distinct()
            .order_by(Site.name)
        )
        return list(result.scalars().all())

    async def login(self, username: str, password: str) -> CustomerLoginData:
        """Authenticate a portal account.

        Raises:
            InvalidCustomerCredentialsError: Unknown or inactive account, or
                wrong password.
        """
        result = await self._db.execute(
            select(CustomerAccount).where(
                CustomerAccount.company_code == self._company_code,
                CustomerAccount.username == username,
            )
        )
        account = result.scalar_one_or_none()
        if account is None or not account.is_active:
            raise InvalidCustomerCredentialsError("Invalid username or password")
        if not self._hasher.verify(password, account.password_hash):
            raise InvalidCustomerCredentialsError("Invalid username or password")

        customer = account.customer
        account.last_login_at = utc_now()
        await self._db.flush()

        token = self._jwt_manager.create_customer_token(
            account_id=account.id,
            username=account.username,
            customer_id=customer.id,
            customer_name=customer.name,
            tenant_code=self._company_code,
        )
        logger.info("Customer portal login for %s (%s)", account.username, customer.name)
        return CustomerLoginData(
            customer_name=customer.name,
            sites=await self.list_sites(customer.name),
            token=token,
        )

    async def submit_request(
        self,
        customer: CustomerTokenPayload,
        request: PortalServiceRequest,
        tickets: TicketService,
    ) -> TicketResponse:
        """Create a ticket on behalf of a portal customer.

        Raises:
            MissingPortalFieldsError: If title, description or site is empty.
        """
        if not (request.title and request.description and request.site):
            raise MissingPortalFieldsError("Title, description, and site are required")

        ticket = await tickets.create_ticket(
            TicketCreateRequest(
                title=request.title,
                status="New",
                priority=request.priority,
                customer=customer.customer_name,
                site=request.site,
                category=request.category,
                description=request.description,
                assigned_to="Unassigned",
                owner="Auto-Assignment",
                sla_due=sla_due_for(request.priority),
            ),
            created_by=customer.username,
            tags=PORTAL_TAG,
        )
        logger.info("Customer portal request %s from %s", ticket.id, customer.customer_name)
        return ticket

    async def list_requests(self, customer_name: str) -> list[PortalTicketSummary]:
        """Tickets of a customer, newest first."""
        result = await self._db.execute(
            select(Ticket)
            .where(
                Ticket.company_code == self._company_code,
                Ticket.customer == customer_name,
            )
            .order_by(Ticket.created_at.desc())
        )
        return [PortalTicketSummary.model_validate(t) for t in result.scalars().all()]

# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Customer portal models.

Portal responses keep the ``{success, data}`` envelope the portal client
expects.
"""

from datetime import datetime

from fieldservice.models.common import CamelModel


class CustomerLoginRequest(CamelModel):
    """Customer portal login."""

    username: str | None = None
    password: str | None = None


class CustomerLoginData(CamelModel):
    """Login payload."""

    customer_name: str
    sites: list[str]
    token: str


class CustomerLoginResponse(CamelModel):
    success: bool = True
    data: CustomerLoginData


class CustomerValidateData(CamelModel):
    valid: bool = True
    customer: str
    username: str


class CustomerValidateResponse(CamelModel):
    success: bool = True
    data: CustomerValidateData


class PortalServiceRequest(CamelModel):
    """Service request raised by a logged-in customer."""

    title: str | None = None
    description: str | None = None
    site: str | None = None
    priority: str = "Normal"
    category: str = "General Service Request"


class PortalServiceRequestData(CamelModel):
    ticket_id: str
    message: str


class PortalServiceRequestResponse(CamelModel):
    success: bool = True
    data: PortalServiceRequestData


class PortalTicketSummary(CamelModel):
    """Ticket as shown to the customer."""

    id: str
    title: str
    status: str
    priority: str
    site: str
    category: str
    sla_due: datetime | None = None
    created_at: datetime
    updated_at: datetime


class PortalRequestsResponse(CamelModel):
    success: bool = True
    data: list[PortalTicketSummary]

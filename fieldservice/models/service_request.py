# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Public service request models.

The public submission form posts PascalCase field names, so the submit model
declares explicit aliases instead of the camelCase generator.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from fieldservice.models.common import CamelModel


class ServiceRequestSubmit(BaseModel):
    """Public service request form."""

    model_config = ConfigDict(populate_by_name=True)

    customer_name: str | None = Field(default=None, alias="CustomerName")
    contact_email: str | None = Field(default=None, alias="ContactEmail")
    contact_phone: str | None = Field(default=None, alias="ContactPhone")
    site_name: str | None = Field(default=None, alias="SiteName")
    address: str | None = Field(default=None, alias="Address")
    issue_description: str | None = Field(default=None, alias="IssueDescription")
    priority: str | None = Field(default=None, alias="Priority")
    company_code: str | None = Field(default=None, alias="CompanyCode")


class ServiceRequestSubmitResponse(CamelModel):
    """Acknowledgement of a public submission."""

    success: bool = True
    request_id: str
    message: str


class ServiceRequestResponse(CamelModel):
    """Service request as seen by tenant staff."""

    id: str
    company_code: str
    customer_name: str
    contact_email: str
    contact_phone: str | None = None
    site_name: str | None = None
    address: str | None = None
    issue_description: str
    priority: str
    status: str
    ticket_id: str | None = None
    processed_by: str | None = None
    processed_at: datetime | None = None
    processed_note: str | None = None
    submitted_at: datetime


class DismissRequest(CamelModel):
    """Who dismissed the request."""

    username: str | None = None
    full_name: str | None = None


class CountResponse(CamelModel):
    """Count of service requests in a status."""

    count: int


class CreateTicketResponse(CamelModel):
    """Result of converting a service request to a ticket."""

    success: bool = True
    ticket_id: str

# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Service request API endpoints.

- POST /service-requests/submit - Public form submission, no login
- GET /service-requests - List requests of the tenant
- GET /service-requests/count/{status} - Count requests in a status
- POST /service-requests/{request_id}/create-ticket - Convert to a ticket
- POST /service-requests/{request_id}/dismiss - Dismiss a request

The public submission names its company in the form body (CompanyCode)
instead of the tenant header, so it resolves the tenant itself.
"""

import logging

from fastapi import APIRouter, Depends, Query, Request, status

from fieldservice.api.dependencies import (
    Activity,
    AuthUser,
    Hub,
    Origin,
    Plugins,
    Pools,
    Registry,
    Tenant,
    TenantDB,
)
from fieldservice.api.errors import ApiError
from fieldservice.api.middleware.rate_limit import get_ip_only, limiter, public_limit
from fieldservice.domains.service_request.service import (
    MissingSubmitFieldsError,
    ServiceRequestNotFoundError,
    ServiceRequestService,
    check_submission,
)
from fieldservice.domains.tenant.registry import normalize_tenant_code
from fieldservice.domains.ticket.service import TicketService
from fieldservice.infrastructure.database.tenant_manager import (
    TenantConnectionError,
    TenantNotFoundError,
)
from fieldservice.infrastructure.notifications import build_notification
from fieldservice.models.service_request import (
    CountResponse,
    CreateTicketResponse,
    DismissRequest,
    ServiceRequestResponse,
    ServiceRequestSubmit,
    ServiceRequestSubmitResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_service(db: TenantDB, tenant: Tenant) -> ServiceRequestService:
    return ServiceRequestService(db, tenant.code)


def _request_not_found() -> ApiError:
    return ApiError(
        status.HTTP_404_NOT_FOUND,
        "Service request not found",
        "SERVICE_REQUEST_NOT_FOUND",
    )


@router.post(
    "/submit",
    response_model=ServiceRequestSubmitResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Submit service request",
    description="Public endpoint. The company is taken from the CompanyCode field.",
)
@limiter.limit(public_limit, key_func=get_ip_only)
async def submit_service_request(
    request: Request,
    form: ServiceRequestSubmit,
    registry: Registry,
    pools: Pools,
    hub: Hub,
) -> ServiceRequestSubmitResponse:
    """Accept a public service request.

    Raises:
        ApiError: 400 on missing fields, 404 for an unknown company, 403 when
            the company does not accept requests, 503 when its database is down.
    """
    try:
        check_submission(form)
    except MissingSubmitFieldsError as e:
        raise ApiError(status.HTTP_400_BAD_REQUEST, str(e), "MISSING_FIELDS", required=e.required)

    code = normalize_tenant_code(form.company_code)
    try:
        tenant = await registry.get(code)
    except TenantNotFoundError:
        raise ApiError(status.HTTP_404_NOT_FOUND, f"Company not found: {code}", "COMPANY_NOT_FOUND")

    if not tenant.is_active or not tenant.allow_service_requests:
        raise ApiError(
            status.HTTP_403_FORBIDDEN,
            "This company is not accepting service requests",
            "SERVICE_REQUESTS_DISABLED",
        )

    try:
        async with pools.get_session(tenant.connection_info) as session:
            submitted = await ServiceRequestService(session, tenant.code).submit(form)
    except TenantConnectionError as e:
        logger.error("Service request for %s failed: %s", e.tenant_code, e.reason)
        raise ApiError(
            status.HTTP_503_SERVICE_UNAVAILABLE,
            "Company database unavailable",
            "TENANT_CONNECTION_FAILED",
        )

    await hub.send_to_company(
        tenant.code,
        build_notification(
            title="New Service Request",
            message=f"{submitted.customer_name}: {submitted.issue_description[:100]}",
            icon="📋",
            url="/service-requests",
            priority="high" if submitted.priority in ("High", "Critical") else "normal",
            data={"requestId": submitted.id},
        ),
    )

    return ServiceRequestSubmitResponse(
        request_id=submitted.id,
        message="Service request submitted successfully",
    )


@router.get("", response_model=list[ServiceRequestResponse], summary="List service requests")
async def list_service_requests(
    current_user: AuthUser,
    status_filter: str | None = Query(default=None, alias="status"),
    service: ServiceRequestService = Depends(_get_service),
) -> list[ServiceRequestResponse]:
    return await service.list_requests(status_filter)


@router.get(
    "/count/{request_status}",
    response_model=CountResponse,
    summary="Count service requests",
    description="Count requests in a status; unknown status names count New requests.",
)
async def count_service_requests(
    request_status: str,
    current_user: AuthUser,
    service: ServiceRequestService = Depends(_get_service),
) -> CountResponse:
    return CountResponse(count=await service.count(request_status))


@router.post(
    "/{request_id}/create-ticket",
    response_model=CreateTicketResponse,
    summary="Convert to ticket",
)
async def create_ticket_from_request(
    request_id: str,
    current_user: AuthUser,
    db: TenantDB,
    tenant: Tenant,
    plugins: Plugins,
    activity: Activity,
    origin: Origin,
    service: ServiceRequestService = Depends(_get_service),
) -> CreateTicketResponse:
    async def run_hook(hook: str, data: dict) -> dict:
        return await plugins.execute_hook(hook, data, tenant.code)

    tickets = TicketService(db, tenant.code, run_hook=run_hook)
    try:
        _, ticket_id = await service.create_ticket(
            request_id,
            tickets,
            processed_by=current_user.display_name,
        )
    except ServiceRequestNotFoundError:
        raise _request_not_found()

    await activity.log(
        "Service Request Converted",
        f"Service request {request_id} converted to ticket {ticket_id}",
        username=current_user.username,
        user_id=current_user.id,
        origin=origin,
    )
    await db.commit()
    return CreateTicketResponse(ticket_id=ticket_id)


@router.post(
    "/{request_id}/dismiss",
    response_model=ServiceRequestResponse,
    summary="Dismiss service request",
)
async def dismiss_service_request(
    request_id: str,
    current_user: AuthUser,
    db: TenantDB,
    activity: Activity,
    origin: Origin,
    data: DismissRequest | None = None,
    service: ServiceRequestService = Depends(_get_service),
) -> ServiceRequestResponse:
    dismissed_by = (data and (data.full_name or data.username)) or current_user.display_name
    try:
        request = await service.dismiss(request_id, dismissed_by=dismissed_by)
    except ServiceRequestNotFoundError:
        raise _request_not_found()

    await activity.log(
        "Service Request Dismissed",
        f"Service request {request_id} dismissed",
        username=current_user.username,
        user_id=current_user.id,
        origin=origin,
    )
    await db.commit()
    return request

# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Customer portal endpoints.

Customers log in with portal accounts of the tenant and receive a token
signed with the customer secret, separate from staff tokens.

- POST /customer-portal/login
- GET /customer-portal/validate
- POST /customer-portal/service-request
- GET /customer-portal/my-requests
"""

import logging

from fastapi import APIRouter, Depends, Request, status

from fieldservice.api.dependencies import Jwt, Plugins, Tenant, TenantDB
from fieldservice.api.errors import ApiError
from fieldservice.api.middleware.auth import extract_bearer_token
from fieldservice.api.middleware.rate_limit import auth_limit, get_ip_only, limiter
from fieldservice.domains.auth.jwt import CustomerTokenPayload, JWTError, TokenExpiredError
from fieldservice.domains.customer_portal.service import (
    CustomerPortalService,
    InvalidCustomerCredentialsError,
    MissingPortalFieldsError,
)
from fieldservice.domains.ticket.service import TicketService
from fieldservice.models.customer_portal import (
    CustomerLoginRequest,
    CustomerLoginResponse,
    CustomerValidateData,
    CustomerValidateResponse,
    PortalRequestsResponse,
    PortalServiceRequest,
    PortalServiceRequestData,
    PortalServiceRequestResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_portal_service(db: TenantDB, tenant: Tenant, jwt_manager: Jwt) -> CustomerPortalService:
    return CustomerPortalService(db, tenant.code, jwt_manager)


def require_customer(request: Request, tenant: Tenant, jwt_manager: Jwt) -> CustomerTokenPayload:
    """Decode the customer token of the request.

    Raises:
        ApiError: 401 when the token is missing, invalid, expired, or was
            issued for another tenant.
    """
    token = extract_bearer_token(request)
    if token is None:
        raise ApiError(status.HTTP_401_UNAUTHORIZED, "Access token required", "TOKEN_MISSING")

    try:
        customer = jwt_manager.decode_customer_token(token)
    except TokenExpiredError:
        raise ApiError(status.HTTP_401_UNAUTHORIZED, "Token has expired", "TOKEN_INVALID")
    except JWTError:
        raise ApiError(status.HTTP_401_UNAUTHORIZED, "Invalid or expired token", "TOKEN_INVALID")

    if customer.tenant_code != tenant.code:
        raise ApiError(status.HTTP_401_UNAUTHORIZED, "Invalid or expired token", "TOKEN_INVALID")
    return customer


@router.post("/login", response_model=CustomerLoginResponse, summary="Customer login")
@limiter.limit(auth_limit, key_func=get_ip_only)
async def customer_login(
    request: Request,
    data: CustomerLoginRequest,
    db: TenantDB,
    service: CustomerPortalService = Depends(_get_portal_service),
) -> CustomerLoginResponse:
    if not data.username or not data.password:
        raise ApiError(
            status.HTTP_400_BAD_REQUEST,
            "Username and password are required",
            "MISSING_CREDENTIALS",
        )

    try:
        login = await service.login(data.username, data.password)
    except InvalidCustomerCredentialsError as e:
        raise ApiError(status.HTTP_401_UNAUTHORIZED, str(e), "INVALID_CREDENTIALS")

    await db.commit()
    return CustomerLoginResponse(data=login)


@router.get("/validate", response_model=CustomerValidateResponse, summary="Validate token")
async def validate_customer_token(
    customer: CustomerTokenPayload = Depends(require_customer),
) -> CustomerValidateResponse:
    return CustomerValidateResponse(
        data=CustomerValidateData(customer=customer.customer_name, username=customer.username)
    )


@router.post(
    "/service-request",
    response_model=PortalServiceRequestResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Submit portal request",
    description="Creates a ticket tagged CustomerPortal with an SLA due date from its priority.",
)
async def submit_portal_request(
    data: PortalServiceRequest,
    db: TenantDB,
    tenant: Tenant,
    plugins: Plugins,
    customer: CustomerTokenPayload = Depends(require_customer),
    service: CustomerPortalService = Depends(_get_portal_service),
) -> PortalServiceRequestResponse:
    async def run_hook(hook: str, payload: dict) -> dict:
        return await plugins.execute_hook(hook, payload, tenant.code)

    try:
        ticket = await service.submit_request(
            customer,
            data,
            TicketService(db, tenant.code, run_hook=run_hook),
        )
    except MissingPortalFieldsError as e:
        raise ApiError(status.HTTP_400_BAD_REQUEST, str(e), "MISSING_FIELDS")

    await db.commit()
    return PortalServiceRequestResponse(
        data=PortalServiceRequestData(
            ticket_id=ticket.id,
            message="Service request submitted successfully",
        )
    )


@router.get("/my-requests", response_model=PortalRequestsResponse, summary="Customer's requests")
async def list_my_requests(
    customer: CustomerTokenPayload = Depends(require_customer),
    service: CustomerPortalService = Depends(_get_portal_service),
) -> PortalRequestsResponse:
    return PortalRequestsResponse(data=await service.list_requests(customer.customer_name))

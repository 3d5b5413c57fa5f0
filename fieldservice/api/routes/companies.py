# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Company (tenant) registration endpoints.

These endpoints work on the central registry and need no tenant context:
- GET /companies - All companies
- GET /companies/active - Companies accepting service requests
- GET /companies/{code} - One company
- POST /companies - Register a company and its administrator
- PUT /companies/{code} - Update a company (company admin)
- DELETE /companies/{code} - Deactivate a company (company admin)

Changes to an existing company need a token from that company's admin or a
system admin.
"""

import logging

from fastapi import APIRouter, Depends, status

from fieldservice.api.dependencies import CentralDB, CompanyAdmin, Pools, Registry
from fieldservice.api.errors import ApiError
from fieldservice.core.config import get_settings
from fieldservice.domains.tenant.service import (
    AdminUserAlreadyExistsError,
    CompanyAlreadyExistsError,
    CompanyNotFoundError,
    CompanyService,
    DefaultCompanyProtectedError,
    InvalidCompanyCodeError,
    InvalidCompanyStatusError,
    MissingCompanyFieldsError,
)
from fieldservice.infrastructure.database.tenant_manager import TenantConnectionError
from fieldservice.models.common import CamelModel
from fieldservice.models.tenant import (
    CompanyCreateRequest,
    CompanyCreateResponse,
    CompanyResponse,
    CompanyUpdateRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter()


class CompanyListResponse(CamelModel):
    success: bool = True
    companies: list[CompanyResponse]


class CompanyDetailResponse(CamelModel):
    success: bool = True
    company: CompanyResponse


def _get_company_service(db: CentralDB, pools: Pools, registry: Registry) -> CompanyService:
    return CompanyService(
        db,
        pools,
        registry=registry,
        default_code=get_settings().tenant.default_code,
    )


def _not_found(code: str) -> ApiError:
    return ApiError(status.HTTP_404_NOT_FOUND, f"Company not found: {code}", "COMPANY_NOT_FOUND")


@router.get("", response_model=CompanyListResponse, summary="List companies")
async def list_companies(
    service: CompanyService = Depends(_get_company_service),
) -> CompanyListResponse:
    return CompanyListResponse(companies=await service.list_companies())


@router.get(
    "/active",
    response_model=CompanyListResponse,
    summary="List active companies",
    description="Companies that are active and accept public service requests.",
)
async def list_active_companies(
    service: CompanyService = Depends(_get_company_service),
) -> CompanyListResponse:
    return CompanyListResponse(companies=await service.list_active_companies())


@router.get("/{code}", response_model=CompanyDetailResponse, summary="Get company")
async def get_company(
    code: str,
    service: CompanyService = Depends(_get_company_service),
) -> CompanyDetailResponse:
    try:
        return CompanyDetailResponse(company=await service.get_company(code))
    except CompanyNotFoundError:
        raise _not_found(code)


@router.post(
    "",
    response_model=CompanyCreateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register company",
    description="Create a tenant, provision its database and create its administrator.",
)
async def create_company(
    data: CompanyCreateRequest,
    db: CentralDB,
    service: CompanyService = Depends(_get_company_service),
) -> CompanyCreateResponse:
    """Register a company.

    Raises:
        ApiError: 400 on missing fields or a bad code, 409 when the code or
            admin username is taken, 503 when the database cannot be reached.
    """
    try:
        result = await service.create_company(data)
    except MissingCompanyFieldsError as e:
        raise ApiError(
            status.HTTP_400_BAD_REQUEST,
            str(e),
            "MISSING_FIELDS",
            required=e.fields,
        )
    except InvalidCompanyCodeError as e:
        raise ApiError(status.HTTP_400_BAD_REQUEST, str(e), "INVALID_TENANT_CODE_FORMAT")
    except CompanyAlreadyExistsError as e:
        raise ApiError(status.HTTP_409_CONFLICT, str(e), "COMPANY_EXISTS")
    except AdminUserAlreadyExistsError as e:
        raise ApiError(status.HTTP_409_CONFLICT, str(e), "ADMIN_USERNAME_EXISTS")
    except TenantConnectionError as e:
        logger.error("Could not provision tenant %s: %s", e.tenant_code, e.reason)
        raise ApiError(
            status.HTTP_503_SERVICE_UNAVAILABLE,
            "Could not provision the company database",
            "TENANT_CONNECTION_FAILED",
        )

    await db.commit()
    return result


@router.put("/{code}", response_model=CompanyDetailResponse, summary="Update company")
async def update_company(
    code: str,
    data: CompanyUpdateRequest,
    db: CentralDB,
    current_user: CompanyAdmin,
    service: CompanyService = Depends(_get_company_service),
) -> CompanyDetailResponse:
    try:
        company = await service.update_company(code, data)
    except CompanyNotFoundError:
        raise _not_found(code)
    except InvalidCompanyStatusError as e:
        raise ApiError(status.HTTP_400_BAD_REQUEST, str(e), "INVALID_STATUS")

    await db.commit()
    return CompanyDetailResponse(company=company)


@router.delete(
    "/{code}",
    response_model=CompanyDetailResponse,
    summary="Deactivate company",
    description="Marks the company inactive. The default company cannot be removed.",
)
async def delete_company(
    code: str,
    db: CentralDB,
    current_user: CompanyAdmin,
    service: CompanyService = Depends(_get_company_service),
) -> CompanyDetailResponse:
    try:
        company = await service.deactivate_company(code)
    except DefaultCompanyProtectedError as e:
        raise ApiError(status.HTTP_403_FORBIDDEN, str(e), "DEFAULT_COMPANY_PROTECTED")
    except CompanyNotFoundError:
        raise _not_found(code)

    await db.commit()
    return CompanyDetailResponse(company=company)

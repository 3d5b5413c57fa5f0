# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Company (tenant) registration and management.

Registering a company writes its registry entry to the central database,
provisions the tenant pool (creating the tenant schema when configured) and
creates the company's first administrator in the tenant database.

Example:
    >>> service = CompanyService(central_db, pool_manager, registry)
    >>> result = await service.create_company(request)
    >>> result.company.company_code
    'ACME'
"""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fieldservice.domains.auth.password import PasswordHasher
from fieldservice.domains.tenant.registry import (
    TenantRegistry,
    is_valid_tenant_code,
    normalize_tenant_code,
)
from fieldservice.infrastructure.database.models.central import Tenant
from fieldservice.infrastructure.database.models.tenant import User
from fieldservice.infrastructure.database.tenant_manager import (
    TenantConnectionInfo,
    TenantPoolManager,
)
from fieldservice.models.tenant import (
    AdminUserResponse,
    CompanyCreateRequest,
    CompanyCreateResponse,
    CompanyResponse,
    CompanyUpdateRequest,
)
from fieldservice.utils.datetime import utc_now

logger = logging.getLogger(__name__)

REQUIRED_COMPANY_FIELDS = (
    ("company_code", "companyCode"),
    ("company_name", "companyName"),
    ("admin_username", "adminUsername"),
    ("admin_password", "adminPassword"),
    ("admin_email", "adminEmail"),
    ("admin_full_name", "adminFullName"),
)

VALID_STATUSES = ("active", "inactive", "suspended")


class CompanyError(Exception):
    """Base exception for company management errors."""

    pass


class MissingCompanyFieldsError(CompanyError):
    """Raised when registration is missing required fields.

    Attributes:
        fields: camelCase names of the missing fields.
    """

    def __init__(self, fields: list[str]) -> None:
        super().__init__(f"Missing required fields: {', '.join(fields)}")
        self.fields = fields


class InvalidCompanyCodeError(CompanyError):
    """Raised when a company code does not match the tenant code format."""

    pass


class CompanyAlreadyExistsError(CompanyError):
    """Raised when the company code is already registered."""

    pass


class AdminUserAlreadyExistsError(CompanyError):
    """Raised when the admin username already exists in the tenant database."""

    pass


class CompanyNotFoundError(CompanyError):
    """Raised when no company has the given code."""

    pass


class DefaultCompanyProtectedError(CompanyError):
    """Raised when trying to deactivate the default company."""

    pass


class InvalidCompanyStatusError(CompanyError):
    """Raised when an update sets an unknown status."""

    pass


def company_response(tenant: Tenant) -> CompanyResponse:
    """Convert a registry row to its public representation."""
    return CompanyResponse(
        id=tenant.id,
        company_code=tenant.code,
        company_name=tenant.name,
        status=tenant.status,
        subscription_tier=tenant.subscription_tier,
        allow_service_requests=tenant.allow_service_requests,
        features=list(tenant.features or []),
        contact_email=tenant.contact_email,
        contact_phone=tenant.contact_phone,
        address=tenant.address,
        created_at=tenant.created_at,
        updated_at=tenant.updated_at,
    )


class CompanyService:
    """Manages the company registry.

    Attributes:
        _db: Central database session.
        _pools: Tenant pool manager used to provision tenant databases.
        _registry: Tenant registry whose cache is cleared on changes.
        _default_code: Code of the default company, which cannot be removed.
    """

    def __init__(
        self,
        db: AsyncSession,
        pools: TenantPoolManager,
        registry: TenantRegistry | None = None,
        default_code: str = "DCPSP",
        hasher: PasswordHasher | None = None,
    ) -> None:
        self._db = db
        self._pools = pools
        self._registry = registry
        self._default_code = normalize_tenant_code(default_code)
        self._hasher = hasher or PasswordHasher()

    async def _get_tenant(self, code: str) -> Tenant | None:
        result = await self._db.execute(
            select(Tenant).where(Tenant.code == normalize_tenant_code(code))
        )
        return result.scalar_one_or_none()

    async def _require_tenant(self, code: str) -> Tenant:
        tenant = await self._get_tenant(code)
        if tenant is None:
            raise CompanyNotFoundError(f"Company not found: {code}")
        return tenant

    async def list_companies(self) -> list[CompanyResponse]:
        """List every registered company, ordered by name."""
        result = await self._db.execute(select(Tenant).order_by(Tenant.name))
        return [company_response(t) for t in result.scalars().all()]

    async def list_active_companies(self) -> list[CompanyResponse]:
        """List companies that are active and accept service requests."""
        result = await self._db.execute(
            select(Tenant)
            .where(
                Tenant.status == "active",
                Tenant.allow_service_requests.is_(True),
            )
            .order_by(Tenant.name)
        )
        return [company_response(t) for t in result.scalars().all()]

    async def get_company(self, code: str) -> CompanyResponse:
        """Get one company.

        Raises:
            CompanyNotFoundError: If the code is unknown.
        """
        return company_response(await self._require_tenant(code))

    async def create_company(
        self,
        request: CompanyCreateRequest,
    ) -> CompanyCreateResponse:
        """Register a company and its first administrator.

        Args:
            request: Registration data.

        Returns:
            The created company and admin user.

        Raises:
            MissingCompanyFieldsError: If required fields are empty.
            InvalidCompanyCodeError: If the code format is invalid.
            CompanyAlreadyExistsError: If the code is already registered.
            AdminUserAlreadyExistsError: If the admin username is taken.
            TenantConnectionError: If the tenant database cannot be provisioned.
        """
        missing = [
            alias
            for attr, alias in REQUIRED_COMPANY_FIELDS
            if not (getattr(request, attr) or "").strip()
        ]
        if missing:
            raise MissingCompanyFieldsError(missing)

        raw_code = request.company_code.strip()
        if not is_valid_tenant_code(raw_code):
            raise InvalidCompanyCodeError(
                "Company code must be 3-50 characters: letters, digits, '_' or '-'"
            )
        code = normalize_tenant_code(raw_code)

        if await self._get_tenant(code) is not None:
            raise CompanyAlreadyExistsError("Company code already exists")

        tenant = Tenant(
            code=code,
            name=request.company_name.strip(),
            status="active",
            db_url=request.database_url or None,
            subscription_tier=request.subscription_tier or "standard",
            allow_service_requests=True,
            features=[],
            contact_email=request.contact_email,
            contact_phone=request.contact_phone,
            address=request.address,
            settings={},
        )
        self._db.add(tenant)
        await self._db.flush()

        info = TenantConnectionInfo(tenant_code=code, database_url=tenant.db_url)
        username = request.admin_username.strip()

        async with self._pools.get_session(info) as tenant_db:
            existing = await tenant_db.execute(
                select(User.id).where(
                    User.company_code == code,
                    User.username == username,
                )
            )
            if existing.scalar_one_or_none() is not None:
                raise AdminUserAlreadyExistsError("Admin username already exists")

            admin = User(
                company_code=code,
                username=username,
                email=request.admin_email.strip(),
                full_name=request.admin_full_name.strip(),
                role="Admin",
                password_hash=self._hasher.hash(request.admin_password),
                is_active=True,
                is_tenant_admin=True,
            )
            tenant_db.add(admin)
            await tenant_db.flush()
            admin_response = AdminUserResponse.model_validate(admin)

        logger.info("Registered company %s with admin user %s", code, username)
        return CompanyCreateResponse(
            company=company_response(tenant),
            admin_user=admin_response,
        )

    async def update_company(
        self,
        code: str,
        request: CompanyUpdateRequest,
    ) -> CompanyResponse:
        """Update mutable company fields.

        Raises:
            CompanyNotFoundError: If the code is unknown.
            InvalidCompanyStatusError: If the status is not recognized.
        """
        tenant = await self._require_tenant(code)
        changes = request.model_dump(exclude_unset=True)

        if "status" in changes and changes["status"] not in VALID_STATUSES:
            raise InvalidCompanyStatusError(f"Invalid status: {changes['status']}")

        if changes.get("company_name"):
            tenant.name = changes["company_name"].strip()
        for field in (
            "contact_email",
            "contact_phone",
            "address",
            "subscription_tier",
            "allow_service_requests",
            "features",
            "status",
        ):
            if field in changes and changes[field] is not None:
                setattr(tenant, field, changes[field])

        await self._db.flush()
        await self._db.refresh(tenant)

        if self._registry is not None:
            self._registry.clear_cache(tenant.code)
        if tenant.status != "active":
            await self._pools.close_tenant(tenant.code)

        logger.info("Updated company %s: %s", tenant.code, sorted(changes))
        return company_response(tenant)

    async def deactivate_company(self, code: str) -> CompanyResponse:
        """Soft-delete a company by marking it inactive.

        Raises:
            DefaultCompanyProtectedError: For the default company.
            CompanyNotFoundError: If the code is unknown.
        """
        if normalize_tenant_code(code) == self._default_code:
            raise DefaultCompanyProtectedError("Cannot delete the default company")

        tenant = await self._require_tenant(code)
        tenant.status = "inactive"
        tenant.deactivated_at = utc_now()
        await self._db.flush()
        await self._db.refresh(tenant)

        if self._registry is not None:
            self._registry.clear_cache(tenant.code)
        await self._pools.close_tenant(tenant.code)

        logger.info("Deactivated company %s", tenant.code)
        return company_response(tenant)

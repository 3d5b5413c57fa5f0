# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Authentication API endpoints.

This module provides endpoints for staff authentication:
- POST /login - Username/password login, returns a JWT
- GET /me - Current user profile
- POST /change-password - Change own password
- POST /reset-password - Set a password (admin, or self)
- POST /logout - Logout acknowledgement
- GET /tenant-info - Resolved tenant summary

Every endpoint is tenant-scoped: the tenant comes from the X-Tenant-Code
header and users are looked up within that tenant only.

Example:
    POST /api/auth/login
    Headers:
        X-Tenant-Code: DCPSP
    Body:
        {"username": "dispatcher", "password": "s3cret-pass"}
"""

import logging

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from fieldservice.api.dependencies import (
    get_activity_log,
    get_jwt_manager,
    get_request_origin,
    get_tenant_db,
    require_auth,
    require_tenant,
)
from fieldservice.api.errors import ApiError
from fieldservice.api.middleware.auth import CurrentUser
from fieldservice.api.middleware.rate_limit import auth_limit, get_ip_only, limiter
from fieldservice.domains.activity.service import ActivityLogService, RequestOrigin
from fieldservice.domains.auth.jwt import JWTManager
from fieldservice.domains.auth.service import (
    AuthService,
    InvalidCredentialsError,
    InvalidCurrentPasswordError,
    PasswordTooShortError,
    UserNotFoundError,
    tenant_summary,
)
from fieldservice.domains.tenant.registry import TenantContext, normalize_tenant_code
from fieldservice.models.auth import (
    AuthenticatedUser,
    ChangePasswordRequest,
    LoginRequest,
    LoginResponse,
    ResetPasswordRequest,
    TenantSummary,
)
from fieldservice.models.common import CamelModel, SuccessResponse

logger = logging.getLogger(__name__)

router = APIRouter()


class MeResponse(CamelModel):
    success: bool = True
    user: AuthenticatedUser
    tenant: TenantSummary


class TenantInfoResponse(CamelModel):
    success: bool = True
    tenant: TenantSummary


def _password_error(e: PasswordTooShortError | InvalidCurrentPasswordError) -> ApiError:
    if isinstance(e, PasswordTooShortError):
        return ApiError(status.HTTP_400_BAD_REQUEST, str(e), "PASSWORD_TOO_SHORT")
    return ApiError(status.HTTP_400_BAD_REQUEST, str(e), "INVALID_CURRENT_PASSWORD")


@router.post(
    "/login",
    response_model=LoginResponse,
    summary="Login",
    description="Authenticate with username and password within the resolved tenant.",
)
@limiter.limit(auth_limit, key_func=get_ip_only)
async def login(
    request: Request,
    data: LoginRequest,
    tenant: TenantContext = Depends(require_tenant),
    db: AsyncSession = Depends(get_tenant_db),
    jwt_manager: JWTManager = Depends(get_jwt_manager),
    activity: ActivityLogService = Depends(get_activity_log),
    origin: RequestOrigin = Depends(get_request_origin),
) -> LoginResponse:
    """Log a user in.

    Raises:
        ApiError: 400 on missing fields or a tenant mismatch, 401 on bad
            credentials.
    """
    if not (data.username or "").strip() or not data.password:
        raise ApiError(
            status.HTTP_400_BAD_REQUEST,
            "Username and password are required",
            "MISSING_CREDENTIALS",
        )

    if data.tenant_code and normalize_tenant_code(data.tenant_code) != tenant.code:
        raise ApiError(
            status.HTTP_400_BAD_REQUEST,
            "Tenant code does not match the request tenant",
            "TENANT_MISMATCH",
        )

    service = AuthService(db, jwt_manager, tenant)
    try:
        result = await service.login(data.username.strip(), data.password)
    except InvalidCredentialsError as e:
        raise ApiError(status.HTTP_401_UNAUTHORIZED, str(e), "INVALID_CREDENTIALS")

    await activity.log(
        "User Login",
        f"{result.user.full_name or result.user.username} logged in",
        username=result.user.username,
        user_id=result.user.id,
        origin=origin,
    )
    await db.commit()

    return LoginResponse(
        token=result.token,
        expires_in=result.expires_in,
        user=result.user,
        tenant=result.tenant,
    )


@router.get(
    "/me",
    response_model=MeResponse,
    summary="Current user",
)
async def get_me(
    current_user: CurrentUser = Depends(require_auth),
    tenant: TenantContext = Depends(require_tenant),
    db: AsyncSession = Depends(get_tenant_db),
    jwt_manager: JWTManager = Depends(get_jwt_manager),
) -> MeResponse:
    service = AuthService(db, jwt_manager, tenant)
    try:
        user = await service.get_user(current_user.id)
    except UserNotFoundError:
        raise ApiError(status.HTTP_404_NOT_FOUND, "User not found", "USER_NOT_FOUND")
    return MeResponse(user=user, tenant=tenant_summary(tenant))


@router.post(
    "/change-password",
    response_model=SuccessResponse,
    summary="Change own password",
)
async def change_password(
    data: ChangePasswordRequest,
    current_user: CurrentUser = Depends(require_auth),
    tenant: TenantContext = Depends(require_tenant),
    db: AsyncSession = Depends(get_tenant_db),
    jwt_manager: JWTManager = Depends(get_jwt_manager),
    activity: ActivityLogService = Depends(get_activity_log),
    origin: RequestOrigin = Depends(get_request_origin),
) -> SuccessResponse:
    if not data.current_password or not data.new_password:
        raise ApiError(
            status.HTTP_400_BAD_REQUEST,
            "Current password and new password are required",
            "MISSING_FIELDS",
        )

    service = AuthService(db, jwt_manager, tenant)
    try:
        await service.change_password(current_user.id, data.current_password, data.new_password)
    except (PasswordTooShortError, InvalidCurrentPasswordError) as e:
        raise _password_error(e)
    except UserNotFoundError:
        raise ApiError(status.HTTP_404_NOT_FOUND, "User not found", "USER_NOT_FOUND")

    await activity.log(
        "Password Changed",
        f"{current_user.display_name} changed their password",
        username=current_user.username,
        user_id=current_user.id,
        origin=origin,
    )
    await db.commit()
    return SuccessResponse(message="Password changed successfully")


@router.post(
    "/reset-password",
    response_model=SuccessResponse,
    summary="Reset a password",
    description="Admins may reset any user's password; other users only their own.",
)
async def reset_password(
    data: ResetPasswordRequest,
    current_user: CurrentUser = Depends(require_auth),
    tenant: TenantContext = Depends(require_tenant),
    db: AsyncSession = Depends(get_tenant_db),
    jwt_manager: JWTManager = Depends(get_jwt_manager),
    activity: ActivityLogService = Depends(get_activity_log),
    origin: RequestOrigin = Depends(get_request_origin),
) -> SuccessResponse:
    if not data.new_password:
        raise ApiError(status.HTTP_400_BAD_REQUEST, "New password is required", "MISSING_FIELDS")

    target_id = data.user_id or current_user.id
    if target_id != current_user.id and not current_user.is_admin:
        raise ApiError(
            status.HTTP_403_FORBIDDEN,
            "You can only reset your own password",
            "INSUFFICIENT_PERMISSIONS",
        )

    service = AuthService(db, jwt_manager, tenant)
    try:
        target = await service.reset_password(target_id, data.new_password)
    except PasswordTooShortError as e:
        raise _password_error(e)
    except UserNotFoundError:
        raise ApiError(status.HTTP_404_NOT_FOUND, "Target user not found", "TARGET_USER_NOT_FOUND")

    await activity.log(
        "Password Reset",
        f"{current_user.display_name} reset the password of {target.username}",
        username=current_user.username,
        user_id=current_user.id,
        origin=origin,
    )
    await db.commit()
    return SuccessResponse(message="Password reset successfully")


@router.post(
    "/logout",
    response_model=SuccessResponse,
    summary="Logout",
    description="Tokens are stateless; the client discards its token.",
)
async def logout(
    current_user: CurrentUser = Depends(require_auth),
    db: AsyncSession = Depends(get_tenant_db),
    activity: ActivityLogService = Depends(get_activity_log),
    origin: RequestOrigin = Depends(get_request_origin),
) -> SuccessResponse:
    await activity.log(
        "User Logout",
        f"{current_user.display_name} logged out",
        username=current_user.username,
        user_id=current_user.id,
        origin=origin,
    )
    await db.commit()
    return SuccessResponse(message="Logged out successfully")


@router.get(
    "/tenant-info",
    response_model=TenantInfoResponse,
    summary="Tenant info",
)
async def get_tenant_info(
    tenant: TenantContext = Depends(require_tenant),
) -> TenantInfoResponse:
    return TenantInfoResponse(tenant=tenant_summary(tenant))

# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""User management API endpoints.

This module provides endpoints for the resolved tenant's users:
- GET /users - List users
- GET /users/{user_id} - Get one user
- POST /users - Create a user (admin)
- PUT /users/{user_id} - Update a user (admin)
- DELETE /users/{user_id} - Delete a user (admin)

Example:
    POST /api/users
    {
        "username": "tech1",
        "email": "tech1@example.com",
        "fullName": "Field Tech",
        "role": "Technician"
    }
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from fieldservice.api.dependencies import (
    get_activity_log,
    get_request_origin,
    get_tenant_db,
    require_admin,
    require_auth,
    require_tenant,
)
from fieldservice.api.errors import ApiError
from fieldservice.api.middleware.auth import CurrentUser
from fieldservice.domains.activity.service import ActivityLogService, RequestOrigin
from fieldservice.domains.tenant.registry import TenantContext
from fieldservice.domains.user.service import (
    MissingUserFieldsError,
    UserAlreadyExistsError,
    UserNotFoundError,
    UserService,
)
from fieldservice.models.user import UserCreateRequest, UserResponse, UserUpdateRequest

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_user_service(
    db: AsyncSession = Depends(get_tenant_db),
    tenant: TenantContext = Depends(require_tenant),
) -> UserService:
    return UserService(db, tenant.code)


def _user_not_found() -> ApiError:
    return ApiError(status.HTTP_404_NOT_FOUND, "User not found", "USER_NOT_FOUND")


@router.get(
    "",
    response_model=list[UserResponse],
    summary="List users",
)
async def list_users(
    include_inactive: Annotated[bool, Query(alias="includeInactive")] = False,
    current_user: CurrentUser = Depends(require_auth),
    service: UserService = Depends(_get_user_service),
) -> list[UserResponse]:
    return await service.list_users(include_inactive=include_inactive)


@router.get(
    "/{user_id}",
    response_model=UserResponse,
    summary="Get user",
)
async def get_user(
    user_id: str,
    current_user: CurrentUser = Depends(require_auth),
    service: UserService = Depends(_get_user_service),
) -> UserResponse:
    try:
        return await service.get_user(user_id)
    except UserNotFoundError:
        raise _user_not_found()


@router.post(
    "",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create user",
    description="Create a user in the tenant. Requires admin access.",
)
async def create_user(
    data: UserCreateRequest,
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_tenant_db),
    service: UserService = Depends(_get_user_service),
    activity: ActivityLogService = Depends(get_activity_log),
    origin: RequestOrigin = Depends(get_request_origin),
) -> UserResponse:
    """Create a user.

    Raises:
        ApiError: 400 on missing fields, 409 on a duplicate username or email.
    """
    try:
        user = await service.create_user(data)
    except MissingUserFieldsError as e:
        raise ApiError(status.HTTP_400_BAD_REQUEST, str(e), "MISSING_FIELDS", required=e.fields)
    except UserAlreadyExistsError as e:
        raise ApiError(status.HTTP_409_CONFLICT, str(e), "USER_EXISTS", field=e.field)

    await activity.log(
        "User Created",
        f"Created user {user.username} ({user.role})",
        username=current_user.username,
        user_id=current_user.id,
        origin=origin,
    )
    await db.commit()
    return user


@router.put(
    "/{user_id}",
    response_model=UserResponse,
    summary="Update user",
)
async def update_user(
    user_id: str,
    data: UserUpdateRequest,
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_tenant_db),
    service: UserService = Depends(_get_user_service),
    activity: ActivityLogService = Depends(get_activity_log),
    origin: RequestOrigin = Depends(get_request_origin),
) -> UserResponse:
    try:
        user = await service.update_user(user_id, data)
    except UserNotFoundError:
        raise _user_not_found()
    except UserAlreadyExistsError as e:
        raise ApiError(status.HTTP_409_CONFLICT, str(e), "USER_EXISTS", field=e.field)

    await activity.log(
        "User Updated",
        f"Updated user {user.username}",
        username=current_user.username,
        user_id=current_user.id,
        origin=origin,
    )
    await db.commit()
    return user


@router.delete(
    "/{user_id}",
    response_model=UserResponse,
    summary="Delete user",
)
async def delete_user(
    user_id: str,
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_tenant_db),
    service: UserService = Depends(_get_user_service),
    activity: ActivityLogService = Depends(get_activity_log),
    origin: RequestOrigin = Depends(get_request_origin),
) -> UserResponse:
    if user_id == current_user.id:
        raise ApiError(
            status.HTTP_400_BAD_REQUEST,
            "Cannot delete your own account",
            "CANNOT_DELETE_SELF",
        )

    try:
        user = await service.delete_user(user_id)
    except UserNotFoundError:
        raise _user_not_found()

    await activity.log(
        "User Deleted",
        f"Deleted user {user.username}",
        username=current_user.username,
        user_id=current_user.id,
        origin=origin,
    )
    await db.commit()
    return user

# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Authentication service for tenant users.

This module provides the AuthService that handles:
- Username/password login against the tenant's user records
- Password changes and administrative resets

Every query is scoped to the tenant's company code; a user of one tenant
cannot log in through another tenant even when both share a database.

Example:
    >>> auth_service = AuthService(db, jwt_manager, tenant)
    >>> result = await auth_service.login("dispatcher", "s3cret-pass")
    >>> result.token
    'eyJhbGciOi...'
"""

import logging
from typing import NamedTuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fieldservice.domains.auth.jwt import JWTManager
from fieldservice.domains.auth.password import PasswordHasher
from fieldservice.domains.tenant.registry import TenantContext
from fieldservice.infrastructure.database.models.tenant import User
from fieldservice.models.auth import AuthenticatedUser, TenantSummary
from fieldservice.utils.datetime import utc_now

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8


class AuthenticationError(Exception):
    """Base exception for authentication errors."""

    pass


class InvalidCredentialsError(AuthenticationError):
    """Raised when username or password is wrong, or the user is inactive."""

    pass


class PasswordTooShortError(AuthenticationError):
    """Raised when a new password is shorter than MIN_PASSWORD_LENGTH."""

    pass


class InvalidCurrentPasswordError(AuthenticationError):
    """Raised when the current password does not match."""

    pass


class UserNotFoundError(AuthenticationError):
    """Raised when the target user does not exist in the tenant."""

    pass


class LoginResult(NamedTuple):
    """Successful login."""

    token: str
    expires_in: int
    user: AuthenticatedUser
    tenant: TenantSummary


def tenant_summary(tenant: TenantContext) -> TenantSummary:
    """Build the public tenant summary."""
    return TenantSummary(
        id=tenant.id,
        code=tenant.code,
        name=tenant.name,
        status=tenant.status,
        subscription_tier=tenant.tier,
        features=list(tenant.features),
    )


class AuthService:
    """Authentication service for one tenant.

    Attributes:
        _db: Tenant database session.
        _jwt_manager: JWT token manager.
        _tenant: Tenant the requests are scoped to.
        _hasher: Password hasher.
    """

    def __init__(
        self,
        db: AsyncSession,
        jwt_manager: JWTManager,
        tenant: TenantContext,
        hasher: PasswordHasher | None = None,
    ) -> None:
        """Initialize the authentication service.

        Args:
            db: Tenant database session.
            jwt_manager: JWT token manager.
            tenant: Resolved tenant.
            hasher: Password hasher; a default bcrypt hasher if omitted.
        """
        self._db = db
        self._jwt_manager = jwt_manager
        self._tenant = tenant
        self._hasher = hasher or PasswordHasher()

    async def _get_user_by_username(self, username: str) -> User | None:
        result = await self._db.execute(
            select(User).where(
                User.company_code == self._tenant.code,
                User.username == username,
            )
        )
        return result.scalar_one_or_none()

    async def _get_user(self, user_id: str) -> User | None:
        result = await self._db.execute(
            select(User).where(
                User.company_code == self._tenant.code,
                User.id == user_id,
            )
        )
        return result.scalar_one_or_none()

    async def login(self, username: str, password: str) -> LoginResult:
        """Authenticate a user and issue an access token.

        Args:
            username: Login name.
            password: Plain text password.

        Returns:
            LoginResult with token, user and tenant summaries.

        Raises:
            InvalidCredentialsError: If the user is unknown, inactive, or
                the password does not match.
        """
        user = await self._get_user_by_username(username)
        if user is None or not user.is_active:
            logger.info("Login failed for %s@%s: unknown or inactive user", username, self._tenant.code)
            raise InvalidCredentialsError("Invalid username or password")

        if not self._hasher.verify(password, user.password_hash):
            logger.info("Login failed for %s@%s: bad password", username, self._tenant.code)
            raise InvalidCredentialsError("Invalid username or password")

        if self._hasher.needs_rehash(user.password_hash or ""):
            user.password_hash = self._hasher.hash(password)

        user.last_login_at = utc_now()
        await self._db.flush()

        token = self._jwt_manager.create_access_token(
            user_id=user.id,
            username=user.username,
            email=user.email,
            full_name=user.full_name,
            role=user.role,
            tenant_id=self._tenant.id,
            tenant_code=self._tenant.code,
            company_name=self._tenant.name,
            is_system_admin=user.is_system_admin,
            is_tenant_admin=user.is_tenant_admin,
            subscription_tier=self._tenant.tier,
        )

        logger.info("User %s logged in to tenant %s", user.username, self._tenant.code)
        return LoginResult(
            token=token,
            expires_in=self._jwt_manager.expires_in,
            user=AuthenticatedUser.model_validate(user),
            tenant=tenant_summary(self._tenant),
        )

    async def get_user(self, user_id: str) -> AuthenticatedUser:
        """Get the current user's profile.

        Raises:
            UserNotFoundError: If the user no longer exists.
        """
        user = await self._get_user(user_id)
        if user is None:
            raise UserNotFoundError(user_id)
        return AuthenticatedUser.model_validate(user)

    async def change_password(
        self,
        user_id: str,
        current_password: str,
        new_password: str,
    ) -> None:
        """Change a user's own password.

        Raises:
            PasswordTooShortError: If the new password is too short.
            UserNotFoundError: If the user no longer exists.
            InvalidCurrentPasswordError: If the current password is wrong.
        """
        if len(new_password) < MIN_PASSWORD_LENGTH:
            raise PasswordTooShortError(
                f"New password must be at least {MIN_PASSWORD_LENGTH} characters"
            )

        user = await self._get_user(user_id)
        if user is None:
            raise UserNotFoundError(user_id)

        if not self._hasher.verify(current_password, user.password_hash):
            raise InvalidCurrentPasswordError("Current password is incorrect")

        user.password_hash = self._hasher.hash(new_password)
        await self._db.flush()
        logger.info("Password changed for user %s", user.username)

    async def reset_password(self, target_user_id: str, new_password: str) -> User:
        """Set a user's password without the current one.

        Authorization (admin or self) is the caller's responsibility.

        Raises:
            PasswordTooShortError: If the new password is too short.
            UserNotFoundError: If the target user does not exist.
        """
        if len(new_password) < MIN_PASSWORD_LENGTH:
            raise PasswordTooShortError(
                f"New password must be at least {MIN_PASSWORD_LENGTH} characters"
            )

        user = await self._get_user(target_user_id)
        if user is None:
            raise UserNotFoundError(target_user_id)

        user.password_hash = self._hasher.hash(new_password)
        await self._db.flush()
        logger.info("Password reset for user %s", user.username)
        return user

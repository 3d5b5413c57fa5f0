# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Tenant user management service."""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fieldservice.domains.auth.password import PasswordHasher
from fieldservice.infrastructure.database.models.tenant import User
from fieldservice.models.user import UserCreateRequest, UserResponse, UserUpdateRequest

logger = logging.getLogger(__name__)

REQUIRED_USER_FIELDS = (
    ("username", "username"),
    ("email", "email"),
    ("full_name", "fullName"),
    ("role", "role"),
)


class UserServiceError(Exception):
    """Base exception for user management errors."""

    pass


class MissingUserFieldsError(UserServiceError):
    """Raised when required fields are empty.

    Attributes:
        fields: camelCase names of the missing fields.
    """

    def __init__(self, fields: list[str]) -> None:
        super().__init__(f"Missing required fields: {', '.join(fields)}")
        self.fields = fields


class UserAlreadyExistsError(UserServiceError):
    """Raised when a username or email is already taken in the tenant.

    Attributes:
        field: The conflicting field, "username" or "email".
    """

    def __init__(self, field: str) -> None:
        super().__init__(f"A user with that {field} already exists")
        self.field = field


class UserNotFoundError(UserServiceError):
    """Raised when the user does not exist in the tenant."""

    pass


class UserService:
    """CRUD for the staff users of one tenant."""

    def __init__(
        self,
        db: AsyncSession,
        company_code: str,
        hasher: PasswordHasher | None = None,
    ) -> None:
        self._db = db
        self._company_code = company_code
        self._hasher = hasher or PasswordHasher()

    async def _get(self, user_id: str) -> User:
        result = await self._db.execute(
            select(User).where(
                User.company_code == self._company_code,
                User.id == user_id,
            )
        )
        user = result.scalar_one_or_none()
        if user is None:
            raise UserNotFoundError(user_id)
        return user

    async def _check_unique(self, field: str, value: str, exclude_id: str | None = None) -> None:
        column = getattr(User, field)
        stmt = select(User.id).where(
            User.company_code == self._company_code,
            column == value,
        )
        if exclude_id is not None:
            stmt = stmt.where(User.id != exclude_id)
        result = await self._db.execute(stmt)
        if result.first() is not None:
            raise UserAlreadyExistsError(field)

    async def list_users(self, include_inactive: bool = False) -> list[UserResponse]:
        """List users ordered by full name."""
        stmt = select(User).where(User.company_code == self._company_code)
        if not include_inactive:
            stmt = stmt.where(User.is_active.is_(True))
        result = await self._db.execute(stmt.order_by(User.full_name))
        return [UserResponse.model_validate(u) for u in result.scalars().all()]

    async def get_user(self, user_id: str) -> UserResponse:
        """Get one user.

        Raises:
            UserNotFoundError: If the user does not exist in the tenant.
        """
        return UserResponse.model_validate(await self._get(user_id))

    async def create_user(self, request: UserCreateRequest) -> UserResponse:
        """Create a user.

        A user created without a password cannot log in until an admin
        resets it.

        Raises:
            MissingUserFieldsError: If required fields are empty.
            UserAlreadyExistsError: If the username or email is taken.
        """
        missing = [
            alias
            for attr, alias in REQUIRED_USER_FIELDS
            if not (getattr(request, attr) or "").strip()
        ]
        if missing:
            raise MissingUserFieldsError(missing)

        username = request.username.strip()
        email = request.email.strip()
        await self._check_unique("username", username)
        await self._check_unique("email", email)

        user = User(
            company_code=self._company_code,
            username=username,
            email=email,
            full_name=request.full_name.strip(),
            role=request.role.strip(),
            vendor=request.vendor,
            password_hash=self._hasher.hash(request.password) if request.password else None,
            is_active=request.is_active,
            is_tenant_admin=request.role.strip() == "Admin",
        )
        self._db.add(user)
        await self._db.flush()

        logger.info("Created user %s in %s", username, self._company_code)
        return UserResponse.model_validate(user)

    async def update_user(self, user_id: str, request: UserUpdateRequest) -> UserResponse:
        """Update a user. Only fields present in the request are changed.

        Raises:
            UserNotFoundError: If the user does not exist in the tenant.
            UserAlreadyExistsError: If the new username or email is taken.
        """
        user = await self._get(user_id)
        changes = {
            k: v for k, v in request.model_dump(exclude_unset=True).items() if v is not None
        }

        if "username" in changes and changes["username"] != user.username:
            await self._check_unique("username", changes["username"], exclude_id=user.id)
        if "email" in changes and changes["email"] != user.email:
            await self._check_unique("email", changes["email"], exclude_id=user.id)

        for field, value in changes.items():
            setattr(user, field, value)
        if "role" in changes:
            user.is_tenant_admin = changes["role"] == "Admin"

        await self._db.flush()
        await self._db.refresh(user)
        logger.info("Updated user %s in %s", user.username, self._company_code)
        return UserResponse.model_validate(user)

    async def delete_user(self, user_id: str) -> UserResponse:
        """Delete a user.

        Returns:
            The deleted user, for activity logging.

        Raises:
            UserNotFoundError: If the user does not exist in the tenant.
        """
        user = await self._get(user_id)
        deleted = UserResponse.model_validate(user)
        await self._db.delete(user)
        await self._db.flush()
        logger.info("Deleted user %s from %s", user.username, self._company_code)
        return deleted

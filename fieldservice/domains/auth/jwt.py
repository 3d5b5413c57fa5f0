# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""JWT token management utilities.

This module provides JWT token creation and validation using python-jose.
Staff tokens and customer portal tokens are signed with different secrets,
so a customer token can never pass as a staff token.

Example:
    >>> from fieldservice.core.config import get_settings
    >>> jwt_manager = JWTManager(get_settings().jwt)
    >>> token = jwt_manager.create_access_token(user_id="user-123", ...)
    >>> claims = jwt_manager.decode_token(token)
"""

import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Literal

from jose import ExpiredSignatureError, JWTError as JoseJWTError, jwt
from pydantic import BaseModel, ValidationError

from fieldservice.core.config.settings import JWTSettings

logger = logging.getLogger(__name__)


class TokenPayload(BaseModel):
    """Staff access token payload.

    Attributes:
        sub: Subject (user ID).
        type: Token type.
        username: Login name.
        email: User email.
        full_name: Display name.
        role: User role (Admin, Coordinator, Technician, ...).
        tenant_id: Tenant ID.
        tenant_code: Tenant code the token was issued for.
        company_name: Tenant display name.
        is_system_admin: Platform-wide administrator flag.
        is_tenant_admin: Tenant administrator flag.
        subscription_tier: Tenant subscription tier.
        exp: Expiration timestamp.
        iat: Issued at timestamp.
        jti: JWT ID for token tracking.
    """

    sub: str
    type: Literal["access"]
    username: str
    email: str | None = None
    full_name: str | None = None
    role: str | None = None
    tenant_id: str | None = None
    tenant_code: str | None = None
    company_name: str | None = None
    is_system_admin: bool = False
    is_tenant_admin: bool = False
    subscription_tier: str | None = None
    exp: int
    iat: int
    jti: str


class CustomerTokenPayload(BaseModel):
    """Customer portal token payload."""

    sub: str
    type: Literal["customer"]
    username: str
    customer_id: str
    customer_name: str
    tenant_code: str
    exp: int
    iat: int
    jti: str


class JWTError(Exception):
    """Base exception for JWT operations."""

    pass


class TokenExpiredError(JWTError):
    """Raised when a token has expired."""

    pass


class InvalidTokenError(JWTError):
    """Raised when a token is invalid."""

    pass


class JWTManager:
    """JWT token creation and validation manager.

    Attributes:
        _settings: JWT configuration settings.

    Example:
        >>> jwt_manager = JWTManager(settings)
        >>> token = jwt_manager.create_access_token(
        ...     user_id="user-123",
        ...     username="dispatcher",
        ...     tenant_code="ACME",
        ... )
        >>> claims = jwt_manager.decode_token(token)
    """

    def __init__(self, settings: JWTSettings) -> None:
        """Initialize the JWT manager.

        Args:
            settings: JWT configuration settings.
        """
        self._settings = settings

    @property
    def expires_in(self) -> int:
        """Token lifetime in seconds."""
        return self._settings.access_token_expire_minutes * 60

    def _encode(self, claims: dict[str, Any], secret: str) -> str:
        now = datetime.now(timezone.utc)
        exp = now + timedelta(minutes=self._settings.access_token_expire_minutes)
        payload = {
            **claims,
            "exp": int(exp.timestamp()),
            "iat": int(now.timestamp()),
            "jti": secrets.token_urlsafe(16),
        }
        return jwt.encode(payload, secret, algorithm=self._settings.algorithm)

    def _decode(self, token: str, secret: str, expected_type: str) -> dict[str, Any]:
        try:
            payload = jwt.decode(token, secret, algorithms=[self._settings.algorithm])
        except ExpiredSignatureError:
            raise TokenExpiredError("Token has expired")
        except JoseJWTError as e:
            logger.warning("Token decode failed: %s", str(e))
            raise InvalidTokenError(f"Invalid token: {str(e)}")

        if payload.get("type") != expected_type:
            raise InvalidTokenError(
                f"Expected {expected_type} token, got {payload.get('type')}"
            )
        return payload

    def create_access_token(
        self,
        user_id: str,
        username: str,
        email: str | None = None,
        full_name: str | None = None,
        role: str | None = None,
        tenant_id: str | None = None,
        tenant_code: str | None = None,
        company_name: str | None = None,
        is_system_admin: bool = False,
        is_tenant_admin: bool = False,
        subscription_tier: str | None = None,
    ) -> str:
        """Create a staff access token.

        Returns:
            JWT access token string.
        """
        return self._encode(
            {
                "sub": str(user_id),
                "type": "access",
                "username": username,
                "email": email,
                "full_name": full_name,
                "role": role,
                "tenant_id": tenant_id,
                "tenant_code": tenant_code,
                "company_name": company_name,
                "is_system_admin": is_system_admin,
                "is_tenant_admin": is_tenant_admin,
                "subscription_tier": subscription_tier,
            },
            self._settings.secret_key.get_secret_value(),
        )

    def create_customer_token(
        self,
        account_id: str,
        username: str,
        customer_id: str,
        customer_name: str,
        tenant_code: str,
    ) -> str:
        """Create a customer portal token signed with the customer secret."""
        return self._encode(
            {
                "sub": account_id,
                "type": "customer",
                "username": username,
                "customer_id": customer_id,
                "customer_name": customer_name,
                "tenant_code": tenant_code,
            },
            self._settings.customer_secret_key.get_secret_value(),
        )

    def decode_token(self, token: str) -> TokenPayload:
        """Decode and validate a staff access token.

        Args:
            token: JWT token string.

        Returns:
            TokenPayload with decoded claims.

        Raises:
            TokenExpiredError: If the token has expired.
            InvalidTokenError: If the token is invalid or wrong type.
        """
        payload = self._decode(token, self._settings.secret_key.get_secret_value(), "access")
        try:
            return TokenPayload.model_validate(payload)
        except ValidationError as e:
            raise InvalidTokenError(f"Invalid token claims: {e.error_count()} errors")

    def decode_customer_token(self, token: str) -> CustomerTokenPayload:
        """Decode and validate a customer portal token.

        Raises:
            TokenExpiredError: If the token has expired.
            InvalidTokenError: If the token is invalid or wrong type.
        """
        payload = self._decode(
            token, self._settings.customer_secret_key.get_secret_value(), "customer"
        )
        try:
            return CustomerTokenPayload.model_validate(payload)
        except ValidationError as e:
            raise InvalidTokenError(f"Invalid token claims: {e.error_count()} errors")

    def verify_token(self, token: str) -> bool:
        """Verify if a staff token is valid."""
        try:
            self.decode_token(token)
            return True
        except (TokenExpiredError, InvalidTokenError):
            return False

# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Rate limiting.

Two mechanisms live here:
- slowapi limits on individual endpoints (staff and customer login, public
  service request submission), keyed by client IP
- a sliding-window counter of failed tenant lookups per client IP, used by
  the tenant middleware to slow down tenant code enumeration

Example:
    @router.post("/login")
    @limiter.limit(auth_limit, key_func=get_ip_only)
    async def login(request: Request, ...):
        ...
"""

import logging
import time
from collections import deque
from typing import Callable

from fastapi import Request, Response
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from fieldservice.api.errors import error_response
from fieldservice.core.config import get_settings

logger = logging.getLogger(__name__)


def get_client_identifier(request: Request) -> str:
    """Get a unique identifier for the client.

    Uses user ID if authenticated, otherwise the IP address, prefixed with
    the tenant code when one is resolved.

    Args:
        request: HTTP request.

    Returns:
        Client identifier string.
    """
    user = getattr(request.state, "user", None)
    tenant = getattr(request.state, "tenant", None)

    parts = []
    if tenant:
        parts.append(f"tenant:{tenant.code}")
    if user:
        parts.append(f"user:{user.id}")
    else:
        parts.append(f"ip:{get_remote_address(request)}")

    return ":".join(parts)


def get_ip_only(request: Request) -> str:
    """Get client IP address only.

    Used for login endpoints where user is not yet authenticated.
    """
    return get_remote_address(request)


def auth_limit() -> str:
    """Limit string for login endpoints, read at request time."""
    return get_settings().rate_limit.auth_limit


def public_limit() -> str:
    """Limit string for anonymous submission endpoints."""
    return get_settings().rate_limit.public_limit


settings = get_settings()
limiter = Limiter(
    key_func=get_client_identifier,
    default_limits=[f"{settings.rate_limit.requests_per_minute}/minute"],
    storage_uri=settings.rate_limit.storage_uri,
    enabled=settings.rate_limit.enabled,
)


async def rate_limit_exceeded_handler(
    request: Request,
    exc: RateLimitExceeded,
) -> Response:
    """Handle rate limit exceeded errors.

    Returns a 429 Too Many Requests response in the error envelope.
    """
    logger.warning(
        "Rate limit exceeded: %s for %s",
        exc.detail,
        get_client_identifier(request),
    )
    return error_response(
        429,
        "Too many requests. Please try again later.",
        "RATE_LIMITED",
        headers={"Retry-After": "60"},
    )


class FailedLookupTracker:
    """Counts failed tenant lookups per client in a sliding window.

    Attributes:
        max_failures: Failures allowed inside the window.
        window: Window length in seconds.
    """

    def __init__(
        self,
        max_failures: int = 5,
        window: float = 900.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_failures = max_failures
        self.window = window
        self._clock = clock
        self._failures: dict[str, deque[float]] = {}

    def _prune(self, client: str, now: float) -> deque[float]:
        failures = self._failures.get(client)
        if failures is None:
            return deque()
        while failures and failures[0] <= now - self.window:
            failures.popleft()
        if not failures:
            del self._failures[client]
        return failures

    def retry_after(self, client: str) -> int | None:
        """Seconds until the client may retry, or None if not blocked."""
        now = self._clock()
        failures = self._prune(client, now)
        if len(failures) < self.max_failures:
            return None
        return max(1, int(failures[0] + self.window - now + 0.999))

    def record_failure(self, client: str) -> None:
        """Count one failed lookup."""
        now = self._clock()
        # Sweep clients whose window has lapsed
        for known in list(self._failures):
            self._prune(known, now)
        self._failures.setdefault(client, deque()).append(now)

    @property
    def client_count(self) -> int:
        """Number of clients with failures on record."""
        return len(self._failures)

    def reset(self, client: str | None = None) -> None:
        """Forget one client's failures, or everyone's."""
        if client is None:
            self._failures.clear()
        else:
            self._failures.pop(client, None)

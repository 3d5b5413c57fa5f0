# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for rate limiting helpers."""

from unittest.mock import MagicMock

import pytest

from fieldservice.api.middleware.rate_limit import (
    FailedLookupTracker,
    get_client_identifier,
    get_ip_only,
)


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def tracker(clock: FakeClock) -> FailedLookupTracker:
    """Tracker allowing 3 failures per 60 seconds."""
    return FailedLookupTracker(max_failures=3, window=60.0, clock=clock)


class TestFailedLookupTracker:
    """Tests for FailedLookupTracker."""

    def test_not_blocked_below_limit(self, tracker: FailedLookupTracker) -> None:
        tracker.record_failure("1.2.3.4")
        tracker.record_failure("1.2.3.4")

        assert tracker.retry_after("1.2.3.4") is None

    def test_blocked_at_limit(self, tracker: FailedLookupTracker, clock: FakeClock) -> None:
        """Test that the limit blocks until the oldest failure leaves the window."""
        for _ in range(3):
            tracker.record_failure("1.2.3.4")
            clock.now += 10

        assert tracker.retry_after("1.2.3.4") == 30

    def test_window_expiry_unblocks(self, tracker: FailedLookupTracker, clock: FakeClock) -> None:
        for _ in range(3):
            tracker.record_failure("1.2.3.4")

        clock.now += 60

        assert tracker.retry_after("1.2.3.4") is None

    def test_clients_are_counted_separately(self, tracker: FailedLookupTracker) -> None:
        for _ in range(3):
            tracker.record_failure("1.2.3.4")

        assert tracker.retry_after("5.6.7.8") is None

    def test_reset(self, tracker: FailedLookupTracker) -> None:
        for _ in range(3):
            tracker.record_failure("1.2.3.4")

        tracker.reset("1.2.3.4")

        assert tracker.retry_after("1.2.3.4") is None

    def test_lapsed_clients_are_swept(
        self,
        tracker: FailedLookupTracker,
        clock: FakeClock,
    ) -> None:
        """Test that one-off failures from many addresses do not pile up."""
        for i in range(50):
            tracker.record_failure(f"10.0.0.{i}")
        assert tracker.client_count == 50

        clock.now += 61
        tracker.record_failure("5.6.7.8")

        assert tracker.client_count == 1

    def test_sweep_keeps_clients_inside_window(
        self,
        tracker: FailedLookupTracker,
        clock: FakeClock,
    ) -> None:
        tracker.record_failure("1.2.3.4")
        clock.now += 30
        tracker.record_failure("10.0.0.1")
        clock.now += 31
        tracker.record_failure("5.6.7.8")

        assert tracker.client_count == 2
        assert tracker.retry_after("1.2.3.4") is None


def _request(user: object | None = None, tenant: object | None = None) -> MagicMock:
    request = MagicMock()
    request.client.host = "10.0.0.1"
    request.state.user = user
    request.state.tenant = tenant
    return request


class TestKeyFunctions:
    """Tests for rate limit key functions."""

    def test_ip_only_uses_client_address(self) -> None:
        assert get_ip_only(_request()) == "10.0.0.1"

    def test_client_identifier_for_anonymous_client(self) -> None:
        assert get_client_identifier(_request()) == "ip:10.0.0.1"

    def test_client_identifier_uses_user_when_authenticated(self) -> None:
        user = MagicMock()
        user.id = "user-1"

        tenant = MagicMock()
        tenant.code = "ACME"

        assert get_client_identifier(_request(user=user, tenant=tenant)) == "tenant:ACME:user:user-1"

# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Browser notification models."""

from typing import Any

from fieldservice.models.common import CamelModel


class UserNotificationRequest(CamelModel):
    """Push a notification to one connected user."""

    target_user_id: str | None = None
    title: str | None = None
    message: str | None = None
    icon: str = "🔔"
    url: str | None = None
    priority: str = "normal"
    data: dict[str, Any] | None = None


class CompanyNotificationRequest(CamelModel):
    """Push a notification to every connected user of the caller's company."""

    title: str | None = None
    message: str | None = None
    icon: str = "🔔"
    url: str | None = None
    priority: str = "normal"
    data: dict[str, Any] | None = None


class NotificationDeliveryResponse(CamelModel):
    """Delivery result."""

    success: bool
    delivered: int
    message: str


class NotificationStatusResponse(CamelModel):
    """Connected client summary."""

    connected_users: int
    companies: dict[str, int]

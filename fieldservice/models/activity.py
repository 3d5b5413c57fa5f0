# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Activity log models."""

from datetime import datetime

from fieldservice.models.common import CamelModel


class ActivityLogEntry(CamelModel):
    """One audit trail entry."""

    id: str
    user_id: str | None = None
    username: str
    action: str
    details: str
    timestamp: datetime
    user_timezone: str | None = None
    ip_address: str | None = None
    user_agent: str | None = None

# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Browser notifications.

Key Components:
- NotificationHub: one WebSocket per connected user, addressed by user,
  company or broadcast, with a heartbeat
- build_notification: the message shape browsers display

Usage:
    from fieldservice.infrastructure.notifications import (
        NotificationHub,
        build_notification,
    )

    hub = NotificationHub(ping_interval=settings.notifications.ping_interval)
    await hub.send_to_user("42", build_notification("Ticket assigned", "TKT-..."))
"""

from fieldservice.infrastructure.notifications.hub import (
    ClientConnection,
    NotificationHub,
    build_notification,
)

__all__ = [
    "NotificationHub",
    "ClientConnection",
    "build_notification",
]

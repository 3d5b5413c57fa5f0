# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""API routes package.

Modules:
    health: Liveness, readiness and tenant pool status.
    auth: Staff login and password endpoints.
    companies: Company (tenant) registration.
    users: Tenant user management.
    tickets: Tickets and ticket notes.
    service_requests: Public submissions and their processing.
    activity: Activity log.
    plugins: Plugin catalog, administration and UI contributions.
    notifications: Notification sending and the notification WebSocket.
    customer_portal: Customer portal login and requests.
"""

from fastapi import APIRouter

from fieldservice.api.routes import (
    activity,
    auth,
    companies,
    customer_portal,
    health,
    notifications,
    plugins,
    service_requests,
    tickets,
    users,
)

# Main /api router
router = APIRouter(prefix="/api")

router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
router.include_router(companies.router, prefix="/companies", tags=["Companies"])
router.include_router(users.router, prefix="/users", tags=["Users"])
router.include_router(tickets.router, prefix="/tickets", tags=["Tickets"])
router.include_router(service_requests.router, prefix="/service-requests", tags=["Service Requests"])
router.include_router(activity.router, prefix="/activity-log", tags=["Activity Log"])
router.include_router(plugins.router, prefix="/plugins", tags=["Plugins"])
router.include_router(notifications.router, prefix="/notifications", tags=["Notifications"])
router.include_router(customer_portal.router, prefix="/customer-portal", tags=["Customer Portal"])

__all__ = ["router", "health", "notifications", "plugins"]

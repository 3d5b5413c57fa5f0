# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Real-time notification endpoints.

HTTP (under /api/notifications):
- POST /user - Notify one connected user
- POST /company - Notify every connected user of the current tenant
- GET /status - Connected client summary

WebSocket:
- /ws/notifications - Clients register with
  {"type": "register", "userId", "userName", "role", "companyCode"} and
  answer the server's pings. {"type": "ping"} is answered with a pong.
"""

import json
import logging
from typing import Any

from fastapi import APIRouter, WebSocket, WebSocketDisconnect, status

from fieldservice.api.dependencies import AuthUser, Hub, Tenant, get_notification_hub
from fieldservice.api.errors import ApiError
from fieldservice.infrastructure.notifications import NotificationHub, build_notification
from fieldservice.models.notification import (
    CompanyNotificationRequest,
    NotificationDeliveryResponse,
    NotificationStatusResponse,
    UserNotificationRequest,
)
from fieldservice.utils.datetime import utc_now

logger = logging.getLogger(__name__)

router = APIRouter()
websocket_router = APIRouter()


@router.post(
    "/user",
    response_model=NotificationDeliveryResponse,
    summary="Notify user",
)
async def notify_user(
    data: UserNotificationRequest,
    current_user: AuthUser,
    hub: Hub,
) -> NotificationDeliveryResponse:
    if not data.target_user_id or not data.title or not data.message:
        raise ApiError(
            status.HTTP_400_BAD_REQUEST,
            "targetUserId, title, and message are required",
            "MISSING_FIELDS",
        )

    delivered = await hub.send_to_user(
        data.target_user_id,
        build_notification(
            data.title,
            data.message,
            icon=data.icon,
            url=data.url,
            priority=data.priority,
            data=data.data,
        ),
    )
    return NotificationDeliveryResponse(
        success=True,
        delivered=int(delivered),
        message="Notification sent" if delivered else "User not connected",
    )


@router.post(
    "/company",
    response_model=NotificationDeliveryResponse,
    summary="Notify company",
    description="Send to every connected user of the current tenant except the sender.",
)
async def notify_company(
    data: CompanyNotificationRequest,
    current_user: AuthUser,
    tenant: Tenant,
    hub: Hub,
) -> NotificationDeliveryResponse:
    if not data.title or not data.message:
        raise ApiError(
            status.HTTP_400_BAD_REQUEST,
            "title and message are required",
            "MISSING_FIELDS",
        )

    delivered = await hub.send_to_company(
        tenant.code,
        build_notification(
            data.title,
            data.message,
            icon=data.icon,
            url=data.url,
            priority=data.priority,
            data=data.data,
        ),
        exclude_user_id=current_user.id,
    )
    return NotificationDeliveryResponse(
        success=True,
        delivered=delivered,
        message=f"Notification sent to {delivered} user(s)",
    )


@router.get("/status", response_model=NotificationStatusResponse, summary="Connection status")
async def notification_status(hub: Hub) -> NotificationStatusResponse:
    hub_status = hub.get_status()
    return NotificationStatusResponse(
        connected_users=hub_status["connected_users"],
        companies=hub_status["companies"],
    )


async def _handle_message(
    websocket: WebSocket,
    hub: NotificationHub,
    message: Any,
) -> str | None:
    """Handle one client message; returns the user id on registration."""
    if not isinstance(message, dict):
        await websocket.send_json({"type": "error", "message": "Invalid message format"})
        return None

    kind = message.get("type")
    if kind == "register":
        user_id = message.get("userId")
        if not user_id:
            await websocket.send_json({"type": "error", "message": "userId is required"})
            return None
        client = await hub.register(
            websocket,
            str(user_id),
            user_name=message.get("userName"),
            role=message.get("role"),
            company_code=message.get("companyCode"),
        )
        await websocket.send_json(
            {
                "type": "registered",
                "userId": client.user_id,
                "companyCode": client.company_code,
                "timestamp": utc_now().isoformat(),
            }
        )
        return client.user_id

    if kind == "ping":
        await websocket.send_json({"type": "pong", "timestamp": utc_now().isoformat()})
    elif kind != "pong":
        await websocket.send_json({"type": "error", "message": f"Unknown message type: {kind}"})
    return None


@websocket_router.websocket("/ws/notifications")
async def notifications_websocket(websocket: WebSocket) -> None:
    """Notification channel of one browser session."""
    hub = get_notification_hub()
    await websocket.accept()

    user_id: str | None = None
    try:
        while True:
            raw = await websocket.receive_text()
            try:
                message = json.loads(raw)
            except json.JSONDecodeError:
                await websocket.send_json({"type": "error", "message": "Invalid JSON"})
                continue

            registered = await _handle_message(websocket, hub, message)
            if registered is not None:
                if user_id is not None and user_id != registered:
                    hub.unregister(user_id, websocket)
                user_id = registered

    except WebSocketDisconnect:
        logger.debug("Notification socket disconnected (user=%s)", user_id)

    finally:
        if user_id is not None:
            hub.unregister(user_id, websocket)

# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""In-process hub for browser notifications over WebSocket.

Each user holds at most one connection; registering again replaces (and
closes) the previous one. Connections are tagged with the user's name, role
and company so that messages can be addressed to a user, to everyone in a
company, or to every connected client.

A background task pings every client each ``ping_interval`` seconds and
drops connections that no longer accept messages.

Example:
    hub = NotificationHub(ping_interval=30)
    hub.start()

    await hub.register(websocket, user_id="42", company_code="DCPSP")
    await hub.send_to_company("DCPSP", build_notification("New request", "..."))

    await hub.stop()
"""

import asyncio
import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol

from fieldservice.utils.datetime import utc_now

logger = logging.getLogger(__name__)

# Close code sent to a connection replaced by a newer one
REPLACED_CLOSE_CODE = 4000


class MessageSocket(Protocol):
    """The part of a WebSocket the hub needs."""

    async def send_json(self, data: Any, mode: str = "text") -> None: ...

    async def close(self, code: int = 1000, reason: str | None = None) -> None: ...


@dataclass
class ClientConnection:
    """A registered client.

    Attributes:
        websocket: The client's socket.
        user_id: User id the client registered as.
        user_name: Display name.
        role: User role.
        company_code: Company the user belongs to.
        connected_at: Registration time.
    """

    websocket: MessageSocket
    user_id: str
    user_name: str | None = None
    role: str | None = None
    company_code: str | None = None
    connected_at: datetime = field(default_factory=utc_now)


def build_notification(
    title: str,
    message: str,
    icon: str = "🔔",
    url: str | None = None,
    priority: str = "normal",
    data: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Build a notification message."""
    return {
        "type": "notification",
        "title": title,
        "message": message,
        "icon": icon,
        "url": url,
        "priority": priority,
        "data": data or {},
        "timestamp": utc_now().isoformat(),
    }


class NotificationHub:
    """Tracks connected clients and delivers messages to them.

    Attributes:
        ping_interval: Seconds between heartbeat pings.
    """

    def __init__(self, ping_interval: float = 30.0) -> None:
        self.ping_interval = ping_interval
        self._clients: dict[str, ClientConnection] = {}
        self._heartbeat: asyncio.Task[None] | None = None

    # =========================================================================
    # Registration
    # =========================================================================

    async def register(
        self,
        websocket: MessageSocket,
        user_id: str,
        user_name: str | None = None,
        role: str | None = None,
        company_code: str | None = None,
    ) -> ClientConnection:
        """Register a client, replacing any earlier connection of the user."""
        user_id = str(user_id)
        previous = self._clients.get(user_id)

        client = ClientConnection(
            websocket=websocket,
            user_id=user_id,
            user_name=user_name,
            role=role,
            company_code=company_code.upper() if company_code else None,
        )
        self._clients[user_id] = client

        if previous is not None and previous.websocket is not websocket:
            logger.info("Replacing notification connection for user %s", user_id)
            await self._close_quietly(previous.websocket, REPLACED_CLOSE_CODE)

        logger.info(
            "Notification client registered: user=%s company=%s (%d connected)",
            user_id,
            client.company_code,
            len(self._clients),
        )
        return client

    def unregister(self, user_id: str, websocket: MessageSocket | None = None) -> bool:
        """Forget a user's connection.

        When ``websocket`` is given, the entry is only removed if it is still
        that socket, so a replaced connection closing late does not drop
        its successor.

        Returns:
            True if a connection was removed.
        """
        client = self._clients.get(str(user_id))
        if client is None:
            return False
        if websocket is not None and client.websocket is not websocket:
            return False
        del self._clients[client.user_id]
        logger.info("Notification client unregistered: user=%s", client.user_id)
        return True

    def is_connected(self, user_id: str) -> bool:
        """Check whether a user has a live registration."""
        return str(user_id) in self._clients

    def get_client(self, user_id: str) -> ClientConnection | None:
        """A user's connection, or None."""
        return self._clients.get(str(user_id))

    # =========================================================================
    # Delivery
    # =========================================================================

    async def _deliver(self, client: ClientConnection, message: dict[str, Any]) -> bool:
        try:
            await client.websocket.send_json(message)
            return True
        except Exception as e:
            logger.debug("Dropping notification client %s: %s", client.user_id, str(e))
            self.unregister(client.user_id, client.websocket)
            return False

    async def send_to_user(self, user_id: str, message: dict[str, Any]) -> bool:
        """Send to one user.

        Returns:
            True if the user was connected and the message was sent.
        """
        client = self._clients.get(str(user_id))
        if client is None:
            return False
        return await self._deliver(client, message)

    async def send_to_company(
        self,
        company_code: str,
        message: dict[str, Any],
        exclude_user_id: str | None = None,
    ) -> int:
        """Send to every connected user of a company.

        Returns:
            Number of clients reached.
        """
        code = company_code.upper()
        targets = [
            c
            for c in list(self._clients.values())
            if c.company_code == code and c.user_id != exclude_user_id
        ]
        results = [await self._deliver(c, message) for c in targets]
        return sum(results)

    async def broadcast(self, message: dict[str, Any]) -> int:
        """Send to every connected client.

        Returns:
            Number of clients reached.
        """
        results = [await self._deliver(c, message) for c in list(self._clients.values())]
        return sum(results)

    # =========================================================================
    # Heartbeat
    # =========================================================================

    async def ping_all(self) -> int:
        """Ping every client; unreachable ones are dropped."""
        return await self.broadcast({"type": "ping", "timestamp": utc_now().isoformat()})

    async def _run_heartbeat(self) -> None:
        while True:
            await asyncio.sleep(self.ping_interval)
            reached = await self.ping_all()
            logger.debug("Heartbeat reached %d notification client(s)", reached)

    def start(self) -> None:
        """Start the heartbeat task on the running loop."""
        if self._heartbeat is None or self._heartbeat.done():
            self._heartbeat = asyncio.create_task(self._run_heartbeat())
            logger.info("Notification heartbeat started (every %ss)", self.ping_interval)

    async def stop(self) -> None:
        """Stop the heartbeat and close every connection."""
        if self._heartbeat is not None:
            self._heartbeat.cancel()
            try:
                await self._heartbeat
            except asyncio.CancelledError:
                pass
            self._heartbeat = None

        for client in list(self._clients.values()):
            await self._close_quietly(client.websocket, 1001)
        self._clients.clear()
        logger.info("Notification hub stopped")

    async def _close_quietly(self, websocket: MessageSocket, code: int) -> None:
        try:
            await websocket.close(code=code)
        except Exception as e:
            logger.debug("Closing notification socket failed: %s", str(e))

    def get_status(self) -> dict[str, Any]:
        """Connected client summary."""
        companies = Counter(c.company_code for c in self._clients.values() if c.company_code)
        return {
            "connected_users": len(self._clients),
            "companies": dict(sorted(companies.items())),
            "heartbeat_running": self._heartbeat is not None and not self._heartbeat.done(),
        }

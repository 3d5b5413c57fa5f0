# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Activity log service.

Writing an entry never fails the calling request: errors are logged and
swallowed inside a savepoint so the caller's transaction stays usable.
"""

import logging
from dataclasses import dataclass

from sqlalchemy import or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from fieldservice.infrastructure.database.models.tenant import ActivityLog
from fieldservice.models.activity import ActivityLogEntry
from fieldservice.utils.datetime import hours_ago

logger = logging.getLogger(__name__)

MAX_ACTIVITY_ROWS = 100


@dataclass(frozen=True)
class RequestOrigin:
    """Client details recorded with an activity entry."""

    ip_address: str | None = None
    user_agent: str | None = None
    user_timezone: str | None = None


class ActivityLogService:
    """Records and queries the per-company activity log."""

    def __init__(self, db: AsyncSession, company_code: str) -> None:
        self._db = db
        self._company_code = company_code

    async def log(
        self,
        action: str,
        details: str,
        username: str,
        user_id: str | None = None,
        origin: RequestOrigin | None = None,
    ) -> ActivityLog | None:
        """Record an activity entry.

        Args:
            action: Short action name, e.g. "Ticket Created".
            details: Human-readable description.
            username: Acting user name.
            user_id: Acting user id, if known.
            origin: Client details.

        Returns:
            The stored entry, or None if writing failed.
        """
        origin = origin or RequestOrigin()
        entry = ActivityLog(
            company_code=self._company_code,
            user_id=user_id,
            username=username,
            action=action,
            details=details,
            ip_address=origin.ip_address,
            user_agent=(origin.user_agent or "")[:500] or None,
            user_timezone=origin.user_timezone,
        )
        try:
            async with self._db.begin_nested():
                self._db.add(entry)
        except SQLAlchemyError as e:
            logger.warning("Could not write activity log entry %r: %s", action, str(e))
            return None
        return entry

    async def list_entries(
        self,
        hours: int = 8,
        search: str | None = None,
        action: str | None = None,
        username: str | None = None,
    ) -> list[ActivityLogEntry]:
        """Query recent entries, newest first.

        Args:
            hours: Look-back window.
            search: Substring matched against user, action and details.
            action: Exact action filter.
            username: Exact user name filter.

        Returns:
            At most MAX_ACTIVITY_ROWS entries.
        """
        stmt = select(ActivityLog).where(
            ActivityLog.company_code == self._company_code,
            ActivityLog.timestamp >= hours_ago(hours),
        )

        if search and search.strip():
            pattern = f"%{search.strip()}%"
            stmt = stmt.where(
                or_(
                    ActivityLog.username.ilike(pattern),
                    ActivityLog.action.ilike(pattern),
                    ActivityLog.details.ilike(pattern),
                )
            )
        if action and action.strip():
            stmt = stmt.where(ActivityLog.action == action.strip())
        if username and username.strip():
            stmt = stmt.where(ActivityLog.username == username.strip())

        stmt = stmt.order_by(ActivityLog.timestamp.desc()).limit(MAX_ACTIVITY_ROWS)
        result = await self._db.execute(stmt)
        return [ActivityLogEntry.model_validate(row) for row in result.scalars().all()]

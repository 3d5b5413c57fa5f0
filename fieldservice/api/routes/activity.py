# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Activity log endpoint."""

from fastapi import APIRouter, Query

from fieldservice.api.dependencies import Activity, AuthUser
from fieldservice.models.activity import ActivityLogEntry

router = APIRouter()


@router.get(
    "",
    response_model=list[ActivityLogEntry],
    summary="Recent activity",
    description="Audit entries of the last N hours, newest first, at most 100.",
)
async def list_activity(
    current_user: AuthUser,
    activity: Activity,
    hours: int = Query(default=8, ge=1, le=24 * 90),
    search: str | None = Query(default=None),
    action: str | None = Query(default=None),
    user_id: str | None = Query(default=None, alias="userId"),
    username: str | None = Query(default=None),
) -> list[ActivityLogEntry]:
    # userId carries the login name; entries are keyed by username
    return await activity.list_entries(
        hours=hours,
        search=search,
        action=action,
        username=user_id or username,
    )

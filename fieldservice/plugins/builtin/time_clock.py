# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Time clock plugin.

Technicians clock in and out of tickets. Clocking out records the elapsed
minutes and adds a time summary note to the ticket.

Routes (under /api/plugins/time-clock):
- GET  /status/{technician_id}?ticketId=...
- POST /clock-in
- POST /clock-out
- GET  /ticket-summary/{ticket_id}
- GET  /report?days=...
"""

import logging
from datetime import datetime

from fastapi import APIRouter, Query, status
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from fieldservice.api.dependencies import Activity, Origin, Tenant, TenantDB
from fieldservice.api.errors import ApiError
from fieldservice.domains.ticket.service import TicketNotFoundError, TicketService
from fieldservice.infrastructure.database.models.tenant import TimeClockEntry, User
from fieldservice.models.common import CamelModel
from fieldservice.plugins.base import (
    Plugin,
    PluginHooks,
    ReportComponent,
    TenantPool,
    TicketTab,
)
from fieldservice.utils.datetime import days_from_now, ensure_utc, minutes_between, utc_now

logger = logging.getLogger(__name__)

VERSION = "1.0.0"

router = APIRouter()


class TimeClockEntryResponse(CamelModel):
    """A clock-in, open or closed."""

    id: str
    technician_id: str
    technician_name: str
    ticket_id: str
    clock_in_time: datetime
    clock_out_time: datetime | None = None
    total_minutes: int | None = None
    notes: str | None = None


class ClockRequest(CamelModel):
    """Clock in or out of a ticket."""

    technician_id: str | None = None
    technician_name: str | None = None
    ticket_id: str | None = None
    notes: str | None = None


class ClockStatusResponse(CamelModel):
    is_clocked_in: bool
    current_entry: TimeClockEntryResponse | None = None
    last_entry: TimeClockEntryResponse | None = None


class ClockEntryResult(CamelModel):
    success: bool = True
    message: str
    entry: TimeClockEntryResponse


class TechnicianTime(CamelModel):
    technician_id: str
    technician_name: str
    total_minutes: int
    entries: int


class TicketTimeSummary(CamelModel):
    ticket_id: str
    total_minutes: int
    entries: list[TimeClockEntryResponse]
    breakdown: list[TechnicianTime]


class TimeClockReport(CamelModel):
    days: int
    total_minutes: int
    technicians: list[TechnicianTime]


def format_duration(minutes: int) -> str:
    """Format minutes as "Xh Ym"."""
    return f"{minutes // 60}h {minutes % 60}m"


def format_timestamp(value: datetime) -> str:
    return ensure_utc(value).strftime("%Y-%m-%d %H:%M UTC")


def time_summary_note(entry: TimeClockEntry) -> str:
    """Ticket note written on clock-out."""
    return (
        f"⏰ Time Summary for {entry.technician_name}:\n"
        f"Clock In: {format_timestamp(entry.clock_in_time)}\n"
        f"Clock Out: {format_timestamp(entry.clock_out_time)}\n"
        f"Total Time: {format_duration(entry.total_minutes or 0)}"
    )


def _require_ids(body: ClockRequest) -> tuple[str, str]:
    if not body.technician_id or not body.ticket_id:
        raise ApiError(
            status.HTTP_400_BAD_REQUEST,
            "Technician ID and Ticket ID are required",
            "MISSING_FIELDS",
        )
    return body.technician_id, body.ticket_id


def _breakdown(entries: list[TimeClockEntry]) -> list[TechnicianTime]:
    totals: dict[str, TechnicianTime] = {}
    for entry in entries:
        item = totals.get(entry.technician_id)
        if item is None:
            item = totals[entry.technician_id] = TechnicianTime(
                technician_id=entry.technician_id,
                technician_name=entry.technician_name,
                total_minutes=0,
                entries=0,
            )
        item.total_minutes += entry.total_minutes or 0
        item.entries += 1
    return sorted(totals.values(), key=lambda t: (-t.total_minutes, t.technician_name))


async def _open_entry(
    db: AsyncSession,
    company_code: str,
    technician_id: str,
    ticket_id: str | None = None,
) -> TimeClockEntry | None:
    stmt = select(TimeClockEntry).where(
        TimeClockEntry.company_code == company_code,
        TimeClockEntry.technician_id == technician_id,
        TimeClockEntry.clock_out_time.is_(None),
    )
    if ticket_id:
        stmt = stmt.where(TimeClockEntry.ticket_id == ticket_id)
    result = await db.execute(stmt.order_by(TimeClockEntry.clock_in_time.desc()).limit(1))
    return result.scalar_one_or_none()


async def _technician_name(db: AsyncSession, company_code: str, body: ClockRequest) -> str:
    result = await db.execute(
        select(User.full_name).where(
            User.company_code == company_code,
            User.id == body.technician_id,
        )
    )
    return result.scalar_one_or_none() or body.technician_name or "Unknown"


@router.get("/status/{technician_id}", response_model=ClockStatusResponse)
async def get_clock_status(
    technician_id: str,
    db: TenantDB,
    tenant: Tenant,
    ticket_id: str | None = Query(default=None, alias="ticketId"),
) -> ClockStatusResponse:
    current = await _open_entry(db, tenant.code, technician_id, ticket_id)

    stmt = select(TimeClockEntry).where(
        TimeClockEntry.company_code == tenant.code,
        TimeClockEntry.technician_id == technician_id,
        TimeClockEntry.clock_out_time.is_not(None),
    )
    if ticket_id:
        stmt = stmt.where(TimeClockEntry.ticket_id == ticket_id)
    result = await db.execute(stmt.order_by(TimeClockEntry.clock_out_time.desc()).limit(1))
    last = result.scalar_one_or_none()

    return ClockStatusResponse(
        is_clocked_in=current is not None,
        current_entry=TimeClockEntryResponse.model_validate(current) if current else None,
        last_entry=TimeClockEntryResponse.model_validate(last) if last else None,
    )


@router.post("/clock-in", response_model=ClockEntryResult, status_code=status.HTTP_201_CREATED)
async def clock_in(
    body: ClockRequest,
    db: TenantDB,
    tenant: Tenant,
    activity: Activity,
    origin: Origin,
) -> ClockEntryResult:
    technician_id, ticket_id = _require_ids(body)

    if await _open_entry(db, tenant.code, technician_id, ticket_id) is not None:
        raise ApiError(
            status.HTTP_409_CONFLICT,
            "Already clocked in to this ticket",
            "ALREADY_CLOCKED_IN",
        )

    entry = TimeClockEntry(
        company_code=tenant.code,
        technician_id=technician_id,
        technician_name=await _technician_name(db, tenant.code, body),
        ticket_id=ticket_id,
        clock_in_time=utc_now(),
        notes=body.notes,
    )
    db.add(entry)
    await db.flush()

    await activity.log(
        "Clocked In",
        f"{entry.technician_name} clocked in to ticket {ticket_id}",
        username=entry.technician_name,
        user_id=technician_id,
        origin=origin,
    )
    await db.commit()

    return ClockEntryResult(
        message="Clocked in successfully",
        entry=TimeClockEntryResponse.model_validate(entry),
    )


@router.post("/clock-out", response_model=ClockEntryResult)
async def clock_out(
    body: ClockRequest,
    db: TenantDB,
    tenant: Tenant,
    activity: Activity,
    origin: Origin,
) -> ClockEntryResult:
    technician_id, ticket_id = _require_ids(body)

    entry = await _open_entry(db, tenant.code, technician_id, ticket_id)
    if entry is None:
        raise ApiError(
            status.HTTP_400_BAD_REQUEST,
            "No active clock-in found for this ticket",
            "NOT_CLOCKED_IN",
        )

    entry.clock_out_time = utc_now()
    entry.total_minutes = max(0, minutes_between(entry.clock_in_time, entry.clock_out_time))
    if body.notes:
        entry.notes = body.notes
    await db.flush()

    try:
        await TicketService(db, tenant.code).add_note(
            ticket_id,
            time_summary_note(entry),
            created_by=entry.technician_name,
        )
    except TicketNotFoundError:
        logger.warning("Clock-out for unknown ticket %s, no summary note added", ticket_id)

    await activity.log(
        "Clocked Out",
        f"{entry.technician_name} clocked out of ticket {ticket_id} "
        f"({format_duration(entry.total_minutes)})",
        username=entry.technician_name,
        user_id=technician_id,
        origin=origin,
    )
    await db.commit()

    return ClockEntryResult(
        message="Clocked out successfully",
        entry=TimeClockEntryResponse.model_validate(entry),
    )


@router.get("/ticket-summary/{ticket_id}", response_model=TicketTimeSummary)
async def get_ticket_summary(ticket_id: str, db: TenantDB, tenant: Tenant) -> TicketTimeSummary:
    result = await db.execute(
        select(TimeClockEntry)
        .where(
            TimeClockEntry.company_code == tenant.code,
            TimeClockEntry.ticket_id == ticket_id,
        )
        .order_by(TimeClockEntry.clock_in_time)
    )
    entries = list(result.scalars().all())
    return TicketTimeSummary(
        ticket_id=ticket_id,
        total_minutes=sum(e.total_minutes or 0 for e in entries),
        entries=[TimeClockEntryResponse.model_validate(e) for e in entries],
        breakdown=_breakdown(entries),
    )


@router.get("/report", response_model=TimeClockReport)
async def get_report(
    db: TenantDB,
    tenant: Tenant,
    days: int = Query(default=30, ge=1, le=365),
) -> TimeClockReport:
    result = await db.execute(
        select(TimeClockEntry).where(
            TimeClockEntry.company_code == tenant.code,
            TimeClockEntry.clock_out_time.is_not(None),
            TimeClockEntry.clock_in_time >= days_from_now(-days),
        )
    )
    entries = list(result.scalars().all())
    return TimeClockReport(
        days=days,
        total_minutes=sum(e.total_minutes or 0 for e in entries),
        technicians=_breakdown(entries),
    )


async def on_install(tenant_code: str, pool: TenantPool) -> None:
    async with pool() as session:
        conn = await session.connection()
        await conn.run_sync(TimeClockEntry.__table__.create, checkfirst=True)
        await session.commit()
    logger.info("Time clock installed for %s", tenant_code)


async def on_uninstall(tenant_code: str, pool: TenantPool) -> None:
    async with pool() as session:
        await session.execute(
            delete(TimeClockEntry).where(TimeClockEntry.company_code == tenant_code)
        )
        await session.commit()
    logger.info("Time clock entries removed for %s", tenant_code)


plugin = Plugin(
    name="time-clock",
    version=VERSION,
    display_name="Time Clock",
    description="Technician clock in and clock out per ticket with time summaries",
    router=router,
    ticket_tabs=[
        TicketTab(
            id="timeclock",
            label="Time Clock",
            component_id="ticket-time-clock",
            icon="⏰",
            roles=("Technician", "SystemAdmin"),
        ),
    ],
    report_component=ReportComponent(
        component_id="time-clock-report",
        label="Time Clock Report",
        icon="⏰",
    ),
    hooks=PluginHooks(on_install=on_install, on_uninstall=on_uninstall),
)

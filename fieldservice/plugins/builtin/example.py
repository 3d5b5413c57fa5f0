# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Example plugin.

Shows every extension point: REST routes, a ticket tab, a report component,
the four lifecycle hooks and an event hook. Its install hook creates a small
tenant table: POST /action stores one row per action, GET /data lists them,
and the uninstall hook clears the company's rows.
"""

import json
import logging
from typing import Any

from fastapi import APIRouter
from pydantic import BaseModel
from sqlalchemy import Column, DateTime, Integer, MetaData, String, Table, delete, insert, select

from fieldservice.api.dependencies import AuthUser, Tenant, TenantDB
from fieldservice.plugins.base import (
    EventHook,
    Plugin,
    PluginHooks,
    ReportComponent,
    TenantPool,
    TicketTab,
)
from fieldservice.utils.datetime import utc_now

logger = logging.getLogger(__name__)

VERSION = "1.0.0"

metadata = MetaData()

example_plugin_data = Table(
    "example_plugin_data",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("company_code", String(50), nullable=False, index=True),
    Column("item_name", String(200)),
    Column("item_value", String(500)),
    Column("created_at", DateTime(timezone=True), default=utc_now),
    Column("created_by", String(100)),
)

router = APIRouter()


class ActionRequest(BaseModel):
    action: str | None = None
    data: Any = None


@router.get("/status")
async def get_status() -> dict[str, Any]:
    return {
        "status": "active",
        "message": "Example plugin is running!",
        "version": VERSION,
    }


@router.get("/data")
async def get_data(db: TenantDB, tenant: Tenant) -> dict[str, Any]:
    result = await db.execute(
        select(example_plugin_data)
        .where(example_plugin_data.c.company_code == tenant.code)
        .order_by(example_plugin_data.c.id.desc())
    )
    return {
        "companyCode": tenant.code,
        "message": "This is example data from the plugin",
        "timestamp": utc_now().isoformat(),
        "items": [
            {
                "id": row.id,
                "name": row.item_name,
                "value": json.loads(row.item_value) if row.item_value else None,
                "createdBy": row.created_by,
                "createdAt": row.created_at.isoformat() if row.created_at else None,
            }
            for row in result
        ],
    }


@router.post("/action")
async def post_action(
    body: ActionRequest,
    db: TenantDB,
    tenant: Tenant,
    current_user: AuthUser,
) -> dict[str, Any]:
    result = await db.execute(
        insert(example_plugin_data).values(
            company_code=tenant.code,
            item_name=body.action,
            item_value=json.dumps(body.data),
            created_by=current_user.username,
        )
    )
    await db.commit()
    logger.debug("Example plugin stored action %s for %s", body.action, tenant.code)
    return {
        "success": True,
        "message": f'Action "{body.action}" processed successfully',
        "itemId": result.inserted_primary_key[0],
        "receivedData": body.data,
    }


async def on_install(tenant_code: str, pool: TenantPool) -> None:
    async with pool() as session:
        conn = await session.connection()
        await conn.run_sync(example_plugin_data.create, checkfirst=True)
        await session.commit()
    logger.info("Example plugin installed for %s", tenant_code)


async def on_uninstall(tenant_code: str, pool: TenantPool) -> None:
    async with pool() as session:
        await session.execute(
            delete(example_plugin_data).where(example_plugin_data.c.company_code == tenant_code)
        )
        await session.commit()
    logger.info("Example plugin data removed for %s", tenant_code)


async def on_enable(tenant_code: str, pool: TenantPool) -> None:
    logger.info("Example plugin enabled for %s", tenant_code)


async def on_disable(tenant_code: str, pool: TenantPool) -> None:
    logger.info("Example plugin disabled for %s", tenant_code)


async def on_ticket_created(data: dict[str, Any]) -> None:
    ticket = data.get("ticket") or {}
    logger.debug("Example plugin saw ticket %s", ticket.get("id"))


plugin = Plugin(
    name="example-plugin",
    version=VERSION,
    display_name="Example Plugin",
    description="Demonstrates plugin routes, ticket tabs, reports and hooks",
    router=router,
    ticket_tabs=[
        TicketTab(id="example-tab", label="Example", component_id="example-plugin-tab"),
    ],
    report_component=ReportComponent(
        component_id="example-plugin-report",
        label="Example Report",
    ),
    hooks=PluginHooks(
        on_install=on_install,
        on_uninstall=on_uninstall,
        on_enable=on_enable,
        on_disable=on_disable,
    ),
    event_hooks={"ticket.created": EventHook(handler=on_ticket_created, priority=200)},
)

"""
System Log Service
==================

Admin activity log: filtered listing with distinct filter values, entry
creation, and the error-count query the issue monitor polls.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional, Sequence

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from rxdesk.models.system_log import LogStatus, SystemLog

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 50


@dataclass(frozen=True)
class SystemLogPage:
    logs: Sequence[SystemLog]
    total: int
    limit: int
    offset: int
    actions: list[str]
    statuses: list[str]


async def list_logs(
    db: AsyncSession,
    *,
    action: Optional[str] = None,
    status: Optional[LogStatus] = None,
    limit: int = DEFAULT_LIMIT,
    offset: int = 0,
) -> SystemLogPage:
    """Newest-first page of log entries plus the distinct filter values."""
    filters = []
    if action:
        filters.append(SystemLog.action == action)
    if status is not None:
        filters.append(SystemLog.status == status)

    total = (
        await db.execute(select(func.count()).select_from(SystemLog).where(*filters))
    ).scalar_one()

    result = await db.execute(
        select(SystemLog)
        .where(*filters)
        .order_by(SystemLog.created_at.desc())
        .offset(offset)
        .limit(limit)
    )
    logs = result.scalars().all()

    actions = (
        await db.execute(select(SystemLog.action).distinct().order_by(SystemLog.action))
    ).scalars().all()
    statuses = (
        await db.execute(select(SystemLog.status).distinct().order_by(SystemLog.status))
    ).scalars().all()

    return SystemLogPage(
        logs=logs,
        total=total,
        limit=limit,
        offset=offset,
        actions=list(actions),
        statuses=[s.value for s in statuses],
    )


async def create_log(
    db: AsyncSession,
    *,
    action: str,
    details: Optional[str] = None,
    status: LogStatus = LogStatus.SUCCESS,
    user_email: Optional[str] = None,
    user_name: Optional[str] = None,
) -> SystemLog:
    if not action or not action.strip():
        raise ValueError("Action is required")

    entry = SystemLog(
        action=action.strip(),
        details=details,
        status=status,
        user_email=user_email or "system",
        user_name=user_name or "System",
    )
    db.add(entry)
    await db.flush()

    logger.info("System log recorded: %s (%s)", entry.action, entry.status.value)
    return entry


async def count_errors_since(db: AsyncSession, since: datetime) -> int:
    result = await db.execute(
        select(func.count())
        .select_from(SystemLog)
        .where(SystemLog.status == LogStatus.ERROR, SystemLog.created_at >= since)
    )
    return result.scalar_one()


async def count_errors_last_hour(db: AsyncSession, now: datetime) -> int:
    return await count_errors_since(db, now - timedelta(hours=1))

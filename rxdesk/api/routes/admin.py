"""
Admin API-health and system log routes
======================================

Routes (admin only):
  GET  /api/v1/admin/api-health     -- run every health check now
  GET  /api/v1/admin/issues         -- latest issue snapshot (?refresh=true polls now)
  GET  /api/v1/admin/system-logs    -- filtered, paginated activity log
  POST /api/v1/admin/system-logs    -- append an activity log entry
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, status

from rxdesk.api.deps import AdminUser, DBSession
from rxdesk.api.schemas.admin import (
    ApiHealthOut,
    HealthCheckOut,
    HealthSummary,
    IssuesOut,
    SystemLogCreate,
    SystemLogListOut,
    SystemLogOut,
)
from rxdesk.api.schemas.common import Envelope
from rxdesk.models.system_log import LogStatus
from rxdesk.services import apiHealthService, issueMonitor, systemLogService
from rxdesk.services.issueDetector import overall_status, summarize_checks

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.get(
    "/api-health",
    response_model=Envelope[ApiHealthOut],
    summary="Run all health checks",
)
async def get_api_health(db: DBSession, admin: AdminUser) -> Envelope[ApiHealthOut]:
    checks = await apiHealthService.run_health_checks(db)
    return Envelope(
        data=ApiHealthOut(
            overall_status=overall_status(checks),
            checked_at=datetime.now(timezone.utc),
            health_checks=[HealthCheckOut.model_validate(c) for c in checks],
            summary=HealthSummary(**summarize_checks(checks)),
        )
    )


@router.get(
    "/issues",
    response_model=Envelope[IssuesOut],
    summary="Detected issues with first/last seen history",
    description=(
        "Returns the background monitor's latest snapshot. Pass refresh=true, "
        "or call before the first background poll, to run detection now."
    ),
)
async def get_issues(
    db: DBSession,
    admin: AdminUser,
    refresh: bool = Query(default=False),
) -> Envelope[IssuesOut]:
    snapshot = None if refresh else issueMonitor.get_latest_snapshot()
    if snapshot is None:
        snapshot = await issueMonitor.poll_once(db)
    return Envelope(data=IssuesOut.model_validate(snapshot))


@router.get(
    "/system-logs",
    response_model=Envelope[SystemLogListOut],
    summary="List system activity logs",
)
async def list_system_logs(
    db: DBSession,
    admin: AdminUser,
    action: Optional[str] = Query(default=None, max_length=100),
    log_status: Optional[LogStatus] = Query(default=None, alias="status"),
    limit: int = Query(default=systemLogService.DEFAULT_LIMIT, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
) -> Envelope[SystemLogListOut]:
    page = await systemLogService.list_logs(
        db, action=action, status=log_status, limit=limit, offset=offset
    )
    return Envelope(
        data=SystemLogListOut(
            logs=[SystemLogOut.model_validate(entry) for entry in page.logs],
            total=page.total,
            limit=page.limit,
            offset=page.offset,
            actions=page.actions,
            statuses=page.statuses,
        )
    )


@router.post(
    "/system-logs",
    response_model=Envelope[SystemLogOut],
    status_code=status.HTTP_201_CREATED,
    summary="Record a system activity log entry",
)
async def create_system_log(
    db: DBSession,
    admin: AdminUser,
    body: SystemLogCreate,
) -> Envelope[SystemLogOut]:
    try:
        entry = await systemLogService.create_log(
            db,
            action=body.action,
            details=body.details,
            status=body.status,
            user_email=admin.email,
            user_name=admin.full_name,
        )
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(exc),
        ) from exc
    return Envelope(data=SystemLogOut.model_validate(entry))

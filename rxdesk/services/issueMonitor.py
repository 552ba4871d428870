"""
Issue Monitor
=============

Polls dependency health, recent error logs and stuck prescriptions, runs the
issue heuristic, and reconciles the result with the Redis-backed history.
The latest snapshot is kept in memory for the admin dashboard; a manual
refresh calls ``poll_once`` directly.

Usage (integrated into the FastAPI app lifespan)::

    from rxdesk.services.issueMonitor import start_issue_monitor, stop_issue_monitor

    await start_issue_monitor()
    ...
    await stop_issue_monitor()

The monitor uses asyncio.create_task and sleeps between runs; no external
scheduler is required for this single periodic task.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import httpx
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from rxdesk.api.deps import async_session_factory
from rxdesk.core.config import settings
from rxdesk.models.prescription import Prescription, PrescriptionStatus
from rxdesk.services import apiHealthService, systemLogService
from rxdesk.services.issueDetector import (
    CheckStatus,
    HealthCheckResult,
    TrackedIssue,
    detect_issues,
    overall_status,
    reconcile_history,
    summarize_checks,
)
from rxdesk.services.issueHistoryStore import IssueHistoryStore, get_history_store

logger = logging.getLogger(__name__)

# Internal state
_monitor_task: asyncio.Task | None = None
_running: bool = False
_latest_snapshot: Optional["IssueSnapshot"] = None


@dataclass(frozen=True)
class IssueSnapshot:
    """Everything the API-health dashboard renders for one poll."""
    checked_at: datetime
    overall_status: str
    health_checks: list[HealthCheckResult]
    summary: dict[str, int]
    issues: list[TrackedIssue]
    error_log_count: int
    stuck_prescription_count: int

    @property
    def active_issues(self) -> list[TrackedIssue]:
        return [i for i in self.issues if not i.is_resolved]


# ---------------------------------------------------------------------------
# Core logic
# ---------------------------------------------------------------------------

async def count_stuck_prescriptions(
    db: AsyncSession,
    now: datetime,
    stuck_hours: int,
) -> int:
    """Prescriptions still ``submitted`` more than ``stuck_hours`` after submission."""
    cutoff = now - timedelta(hours=stuck_hours)
    result = await db.execute(
        select(func.count())
        .select_from(Prescription)
        .where(
            Prescription.status == PrescriptionStatus.SUBMITTED,
            Prescription.submitted_at.is_not(None),
            Prescription.submitted_at < cutoff,
        )
    )
    return result.scalar_one()


def _database_down(checks: list[HealthCheckResult]) -> bool:
    return any(
        c.category == "database" and c.status == CheckStatus.ERROR for c in checks
    )


async def poll_once(
    db: AsyncSession,
    *,
    now: datetime | None = None,
    store: IssueHistoryStore | None = None,
    client: httpx.AsyncClient | None = None,
) -> IssueSnapshot:
    """Run one detection cycle and persist the updated issue history.

    When the database check errors, the error log and stuck prescription
    counts are reported as 0 without querying.
    """
    global _latest_snapshot

    now = now or datetime.now(timezone.utc)
    store = store or get_history_store()

    checks = await apiHealthService.run_health_checks(db, client)
    if _database_down(checks):
        logger.warning("Database check failed; skipping error log and prescription counts")
        error_count = stuck_count = 0
    else:
        error_count = await systemLogService.count_errors_last_hour(db, now)
        stuck_count = await count_stuck_prescriptions(
            db, now, settings.stuck_prescription_hours
        )

    detected = detect_issues(
        checks,
        error_count,
        stuck_count,
        error_threshold=settings.error_log_threshold_per_hour,
        stuck_hours=settings.stuck_prescription_hours,
    )

    history = await store.load()
    tracked, new_history = reconcile_history(detected, history, now)
    await store.save(new_history, previous_keys=set(history))

    snapshot = IssueSnapshot(
        checked_at=now,
        overall_status=overall_status(checks),
        health_checks=checks,
        summary=summarize_checks(checks),
        issues=tracked,
        error_log_count=error_count,
        stuck_prescription_count=stuck_count,
    )
    _latest_snapshot = snapshot

    resolved = sum(1 for i in tracked if i.is_resolved)
    if detected or resolved:
        logger.info(
            "Issue poll: %d active, %d resolved (overall=%s)",
            len(detected),
            resolved,
            snapshot.overall_status,
        )
    return snapshot


def get_latest_snapshot() -> Optional[IssueSnapshot]:
    return _latest_snapshot


async def _run_monitor() -> None:
    """Main loop: poll every ``issue_monitor_interval_seconds``."""
    interval = settings.issue_monitor_interval_seconds
    logger.info("Issue monitor started (interval=%ds)", interval)

    while _running:
        try:
            async with async_session_factory() as db:
                await poll_once(db)
        except Exception:
            logger.exception("Error in issue monitor poll")

        await asyncio.sleep(interval)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

async def start_issue_monitor() -> None:
    """Start the background issue monitor task."""
    global _monitor_task, _running

    if _monitor_task is not None:
        logger.warning("Issue monitor is already running")
        return

    _running = True
    _monitor_task = asyncio.create_task(_run_monitor())


async def stop_issue_monitor() -> None:
    """Stop the background issue monitor task."""
    global _monitor_task, _running

    _running = False

    if _monitor_task is not None:
        _monitor_task.cancel()
        try:
            await _monitor_task
        except asyncio.CancelledError:
            pass
        _monitor_task = None
        logger.info("Issue monitor stopped")

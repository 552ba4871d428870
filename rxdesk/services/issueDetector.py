"""
Issue Detector -- admin API-health dashboard
============================================

Turns one poll's worth of observations (health-check results, recent error
log count, stuck prescription count) into a list of issues, then reconciles
that list against the first-seen / last-seen history of earlier polls.

Thresholds:
  - more than ``error_threshold`` (default 5) error logs in the last hour
  - a prescription is stuck when its status is exactly ``submitted`` and it
    was submitted strictly more than ``stuck_hours`` (default 24) ago

The two counts are SQL aggregates run by ``issueMonitor``; this module only
applies the thresholds to them.

Issue keys are stable signatures so the same problem is recognised across
polls: ``api-error-<check name>``, ``api-degraded-<check name>``,
``multiple-errors``, ``stuck-prescriptions``.

Everything here is pure; the Redis-backed history lives in
``issueHistoryStore`` and the polling loop in ``issueMonitor``.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Mapping, Optional, Sequence

DEFAULT_ERROR_THRESHOLD = 5
DEFAULT_STUCK_HOURS = 24


class Severity(str, enum.Enum):
    CRITICAL = "critical"
    WARNING = "warning"
    INFO = "info"


class CheckStatus(str, enum.Enum):
    OPERATIONAL = "operational"
    DEGRADED = "degraded"
    ERROR = "error"
    UNKNOWN = "unknown"


# ---------------------------------------------------------------------------
# Data shapes
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class HealthCheckResult:
    """Outcome of probing one dependency."""
    name: str
    category: str
    status: CheckStatus
    response_time_ms: Optional[int]
    last_checked: datetime
    endpoint: Optional[str] = None
    error: Optional[str] = None


@dataclass(frozen=True)
class DetectedIssue:
    key: str
    severity: Severity
    title: str
    description: str


@dataclass(frozen=True)
class TrackedIssue:
    """A detected (or just-resolved) issue with its history attached."""
    key: str
    severity: Severity
    title: str
    description: str
    detected_at: datetime
    last_seen_at: datetime
    is_resolved: bool
    duration: str


def _as_utc(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Detection
# ---------------------------------------------------------------------------

def detect_issues(
    health_checks: Sequence[HealthCheckResult],
    error_log_count: int,
    stuck_prescription_count: int,
    *,
    error_threshold: int = DEFAULT_ERROR_THRESHOLD,
    stuck_hours: int = DEFAULT_STUCK_HOURS,
) -> list[DetectedIssue]:
    """Synthesize this poll's issue list."""
    issues: list[DetectedIssue] = []

    for check in health_checks:
        if check.status == CheckStatus.ERROR:
            issues.append(
                DetectedIssue(
                    key=f"api-error-{check.name}",
                    severity=Severity.CRITICAL,
                    title=f"{check.name} is down",
                    description=check.error or f"{check.name} health check failed.",
                )
            )
        elif check.status == CheckStatus.DEGRADED:
            issues.append(
                DetectedIssue(
                    key=f"api-degraded-{check.name}",
                    severity=Severity.WARNING,
                    title=f"{check.name} is degraded",
                    description=check.error or f"{check.name} is responding slowly or partially.",
                )
            )

    if error_log_count > error_threshold:
        issues.append(
            DetectedIssue(
                key="multiple-errors",
                severity=Severity.WARNING,
                title="Multiple errors detected",
                description=f"{error_log_count} errors logged in the last hour.",
            )
        )

    if stuck_prescription_count > 0:
        noun = "prescription" if stuck_prescription_count == 1 else "prescriptions"
        issues.append(
            DetectedIssue(
                key="stuck-prescriptions",
                severity=Severity.WARNING,
                title="Stuck prescriptions",
                description=(
                    f"{stuck_prescription_count} {noun} submitted more than "
                    f"{stuck_hours} hours ago without progressing."
                ),
            )
        )

    return issues


# ---------------------------------------------------------------------------
# History reconciliation
# ---------------------------------------------------------------------------

def format_duration(delta: timedelta) -> str:
    """Compact elapsed time: ``45s``, ``12m``, ``3h 5m``, ``2d 4h``."""
    seconds = max(0, int(delta.total_seconds()))
    if seconds < 60:
        return f"{seconds}s"
    minutes, _ = divmod(seconds, 60)
    if minutes < 60:
        return f"{minutes}m"
    hours, minutes = divmod(minutes, 60)
    if hours < 24:
        return f"{hours}h {minutes}m"
    days, hours = divmod(hours, 24)
    return f"{days}d {hours}h"


def history_entry(issue: DetectedIssue, first_seen: datetime, last_seen: datetime) -> dict[str, str]:
    return {
        "severity": issue.severity.value,
        "title": issue.title,
        "description": issue.description,
        "first_seen": first_seen.isoformat(),
        "last_seen": last_seen.isoformat(),
    }


def reconcile_history(
    detected: Sequence[DetectedIssue],
    history: Mapping[str, Mapping[str, str]],
    now: datetime,
) -> tuple[list[TrackedIssue], dict[str, dict[str, str]]]:
    """Merge this poll's issues with the stored history.

    Returns ``(tracked, new_history)``. ``tracked`` lists every active issue
    (first-seen carried over from history, or ``now`` when new) followed by
    previously-tracked issues that are no longer detected, flagged resolved.
    ``new_history`` holds only the active issues: resolved ones are pruned.
    """
    now = _as_utc(now)
    tracked: list[TrackedIssue] = []
    new_history: dict[str, dict[str, str]] = {}

    for issue in detected:
        previous = history.get(issue.key)
        first_seen = (
            _as_utc(datetime.fromisoformat(previous["first_seen"])) if previous else now
        )
        new_history[issue.key] = history_entry(issue, first_seen, now)
        tracked.append(
            TrackedIssue(
                key=issue.key,
                severity=issue.severity,
                title=issue.title,
                description=issue.description,
                detected_at=first_seen,
                last_seen_at=now,
                is_resolved=False,
                duration=format_duration(now - first_seen),
            )
        )

    for key, entry in history.items():
        if key in new_history:
            continue
        first_seen = _as_utc(datetime.fromisoformat(entry["first_seen"]))
        last_seen = _as_utc(datetime.fromisoformat(entry["last_seen"]))
        tracked.append(
            TrackedIssue(
                key=key,
                severity=Severity(entry.get("severity", Severity.INFO.value)),
                title=entry.get("title", key),
                description=entry.get("description", ""),
                detected_at=first_seen,
                last_seen_at=last_seen,
                is_resolved=True,
                duration=format_duration(last_seen - first_seen),
            )
        )

    return tracked, new_history


def overall_status(checks: Sequence[HealthCheckResult]) -> str:
    """``critical`` if any check errors, else ``degraded`` if any is degraded."""
    statuses = {c.status for c in checks}
    if CheckStatus.ERROR in statuses:
        return "critical"
    if CheckStatus.DEGRADED in statuses:
        return "degraded"
    return "operational"


def summarize_checks(checks: Sequence[HealthCheckResult]) -> dict[str, int]:
    return {
        "total": len(checks),
        "operational": sum(1 for c in checks if c.status == CheckStatus.OPERATIONAL),
        "degraded": sum(1 for c in checks if c.status == CheckStatus.DEGRADED),
        "error": sum(1 for c in checks if c.status == CheckStatus.ERROR),
    }


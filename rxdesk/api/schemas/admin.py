"""
Pydantic v2 schemas for the admin API-health dashboard and system logs.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from rxdesk.models.system_log import LogStatus
from rxdesk.services.issueDetector import CheckStatus, Severity


# ---------------------------------------------------------------------------
# Health checks and issues
# ---------------------------------------------------------------------------

class HealthCheckOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    name: str
    category: str
    status: CheckStatus
    response_time_ms: Optional[int] = None
    last_checked: datetime
    endpoint: Optional[str] = None
    error: Optional[str] = None


class HealthSummary(BaseModel):
    total: int
    operational: int
    degraded: int
    error: int


class ApiHealthOut(BaseModel):
    overall_status: str
    checked_at: datetime
    health_checks: list[HealthCheckOut]
    summary: HealthSummary


class IssueOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    key: str
    severity: Severity
    title: str
    description: str
    detected_at: datetime
    last_seen_at: datetime
    is_resolved: bool
    duration: str


class IssuesOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    checked_at: datetime
    overall_status: str
    health_checks: list[HealthCheckOut]
    summary: HealthSummary
    issues: list[IssueOut]
    error_log_count: int
    stuck_prescription_count: int


# ---------------------------------------------------------------------------
# System logs
# ---------------------------------------------------------------------------

class SystemLogOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_email: Optional[str] = None
    user_name: Optional[str] = None
    action: str
    details: Optional[str] = None
    status: LogStatus
    created_at: datetime


class SystemLogCreate(BaseModel):
    action: str = Field(min_length=1, max_length=100)
    details: Optional[str] = None
    status: LogStatus = LogStatus.SUCCESS


class SystemLogListOut(BaseModel):
    logs: list[SystemLogOut]
    total: int
    limit: int
    offset: int
    actions: list[str]
    statuses: list[str]

"""
API Health Service
==================

Probes the database and every external dependency and reports one
``HealthCheckResult`` per dependency for the admin dashboard.

Status rules:
  - database: ``error`` when ``SELECT 1`` fails
  - DigitalRx: non-2xx or unreachable is ``degraded`` (its sandbox is flaky
    and must not raise critical alerts)
  - Stripe / Twilio / Junction: missing credentials or unreachable is
    ``error``; a non-2xx answer is ``degraded``
  - internal routes are listed as ``operational`` (served by this process)

External probes run concurrently with a short per-request timeout.
"""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Any, Optional

import httpx
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from rxdesk.core.config import settings
from rxdesk.services.issueDetector import CheckStatus, HealthCheckResult

logger = logging.getLogger(__name__)

STRIPE_BALANCE_URL = "https://api.stripe.com/v1/balance"
TWILIO_ACCOUNT_URL = "https://api.twilio.com/2010-04-01/Accounts/{sid}.json"

INTERNAL_ENDPOINTS: tuple[tuple[str, str], ...] = (
    ("Order Review API", "/order-reviews"),
    ("Provider Orders API", "/provider-orders"),
    ("Medication Catalog API", "/medication-catalog"),
    ("Provider Availability API", "/providers/{provider_id}/availability"),
)


class MissingCredentialsError(Exception):
    """Raised when a dependency cannot be probed because it is not configured."""


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


# ---------------------------------------------------------------------------
# Individual checks
# ---------------------------------------------------------------------------

async def check_database(db: AsyncSession) -> HealthCheckResult:
    started = time.monotonic()
    try:
        await db.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        logger.error("Database health check failed: %s", exc)
        return HealthCheckResult(
            name="Database",
            category="database",
            status=CheckStatus.ERROR,
            response_time_ms=None,
            last_checked=_now(),
            endpoint="Database Connection",
            error=str(exc),
        )
    return HealthCheckResult(
        name="Database",
        category="database",
        status=CheckStatus.OPERATIONAL,
        response_time_ms=_elapsed_ms(started),
        last_checked=_now(),
        endpoint="Database Connection",
    )


async def _probe_http(
    client: httpx.AsyncClient,
    *,
    name: str,
    url: str,
    endpoint: str,
    unreachable_status: CheckStatus,
    headers: Optional[dict[str, str]] = None,
    auth: Any = None,
    credentials_ok: bool = True,
    missing_credentials_message: str = "",
) -> HealthCheckResult:
    """GET ``url``; 2xx is operational, other answers degraded."""
    started = time.monotonic()
    try:
        if not credentials_ok:
            raise MissingCredentialsError(missing_credentials_message)
        response = await client.get(
            url,
            headers=headers,
            auth=auth,
            timeout=settings.health_check_timeout_seconds,
        )
    except (httpx.HTTPError, MissingCredentialsError) as exc:
        logger.warning("Health check %s failed: %s", name, exc)
        return HealthCheckResult(
            name=name,
            category="external",
            status=unreachable_status,
            response_time_ms=None,
            last_checked=_now(),
            endpoint=endpoint,
            error=str(exc) or "Connection failed",
        )

    ok = response.is_success
    return HealthCheckResult(
        name=name,
        category="external",
        status=CheckStatus.OPERATIONAL if ok else CheckStatus.DEGRADED,
        response_time_ms=_elapsed_ms(started),
        last_checked=_now(),
        endpoint=endpoint,
        error=None if ok else f"HTTP {response.status_code}",
    )


def check_digitalrx(client: httpx.AsyncClient):
    base = settings.digitalrx_base_url.rstrip("/")
    return _probe_http(
        client,
        name="DigitalRx Pharmacy API",
        url=f"{base}/health",
        endpoint=base,
        unreachable_status=CheckStatus.DEGRADED,
        headers={"Authorization": f"Bearer {settings.digitalrx_api_key}"},
    )


def check_stripe(client: httpx.AsyncClient):
    return _probe_http(
        client,
        name="Stripe Payment API",
        url=STRIPE_BALANCE_URL,
        endpoint="https://api.stripe.com/v1",
        unreachable_status=CheckStatus.ERROR,
        headers={"Authorization": f"Bearer {settings.stripe_secret_key}"},
        credentials_ok=bool(settings.stripe_secret_key),
        missing_credentials_message="Stripe API key not configured",
    )


def check_twilio(client: httpx.AsyncClient):
    sid, token = settings.twilio_account_sid, settings.twilio_auth_token
    return _probe_http(
        client,
        name="Twilio Messaging API",
        url=TWILIO_ACCOUNT_URL.format(sid=sid),
        endpoint="https://api.twilio.com",
        unreachable_status=CheckStatus.ERROR,
        auth=(sid, token),
        credentials_ok=bool(sid and token),
        missing_credentials_message="Twilio credentials not configured",
    )


def check_junction(client: httpx.AsyncClient):
    base = settings.junction_base_url.rstrip("/")
    return _probe_http(
        client,
        name="Junction Health Data API",
        url=f"{base}/v2/providers",
        endpoint=base,
        unreachable_status=CheckStatus.ERROR,
        headers={"x-vital-api-key": settings.junction_api_key},
        credentials_ok=bool(settings.junction_api_key),
        missing_credentials_message="Junction API key not configured",
    )


def internal_endpoint_checks() -> list[HealthCheckResult]:
    checked = _now()
    return [
        HealthCheckResult(
            name=name,
            category="internal",
            status=CheckStatus.OPERATIONAL,
            response_time_ms=None,
            last_checked=checked,
            endpoint=f"{settings.api_v1_prefix}{path}",
        )
        for name, path in INTERNAL_ENDPOINTS
    ]


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

async def run_health_checks(
    db: AsyncSession,
    client: httpx.AsyncClient | None = None,
) -> list[HealthCheckResult]:
    """Probe every dependency. Never raises for a failing dependency."""
    owns_client = client is None
    if client is None:
        client = httpx.AsyncClient()

    try:
        database = await check_database(db)
        external = await asyncio.gather(
            check_digitalrx(client),
            check_stripe(client),
            check_twilio(client),
            check_junction(client),
        )
    finally:
        if owns_client:
            await client.aclose()

    return [database, *external, *internal_endpoint_checks()]

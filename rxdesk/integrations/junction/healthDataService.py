"""
Junction (Vital) health data service
====================================

Async wrapper around the Junction wearables aggregation API:

  - resolve or create the Junction user for one of our users
  - issue short-lived link tokens for the device-linking widget
  - fetch daily summaries (sleep, activity, body) and grouped time series
    (blood pressure, HRV, glucose) over a date range
  - disconnect a linked device provider

All HTTP calls use httpx with retry logic (3 attempts, exponential backoff)
and authenticate with the ``x-vital-api-key`` header.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import date
from typing import Any, Optional

import httpx

from rxdesk.core.config import settings

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

_MAX_RETRIES = 3
_INITIAL_BACKOFF_SECONDS = 0.5  # doubles each retry: 0.5, 1.0, 2.0
_REQUEST_TIMEOUT_SECONDS = 10.0

SUMMARY_CATEGORIES = frozenset({"sleep", "activity", "body"})
TIMESERIES_CATEGORIES = frozenset({"blood_pressure", "hrv", "glucose"})
METRIC_CATEGORIES = SUMMARY_CATEGORIES | TIMESERIES_CATEGORIES

# Test hook: an ``httpx.MockTransport`` (or any transport) to route calls to.
_transport: Optional[httpx.AsyncBaseTransport] = None


def set_transport(transport: Optional[httpx.AsyncBaseTransport]) -> None:
    """Override the HTTP transport. Pass None to restore the default."""
    global _transport
    _transport = transport


# ---------------------------------------------------------------------------
# Custom exception
# ---------------------------------------------------------------------------

class JunctionError(Exception):
    """Raised when a Junction API request fails after all retries or
    returns a client error."""

    def __init__(
        self, message: str, status: int | None = None, raw: Any = None
    ) -> None:
        super().__init__(message)
        self.status = status
        self.raw = raw


# ---------------------------------------------------------------------------
# Internal HTTP helpers
# ---------------------------------------------------------------------------

def _client() -> httpx.AsyncClient:
    if not settings.junction_api_key:
        raise JunctionError("JUNCTION_API_KEY is not configured")
    return httpx.AsyncClient(
        base_url=settings.junction_base_url,
        headers={
            "Content-Type": "application/json",
            "x-vital-api-key": settings.junction_api_key,
        },
        transport=_transport,
        timeout=_REQUEST_TIMEOUT_SECONDS,
    )


def _error_detail(response: httpx.Response) -> str:
    detail = f"HTTP {response.status_code}"
    try:
        body = response.json()
    except ValueError:
        return detail
    if isinstance(body, dict):
        extra = body.get("detail") or body.get("message")
        if extra:
            detail += f": {extra}"
    return detail


async def _request_with_retry(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    *,
    params: dict[str, Any] | None = None,
    json_body: dict[str, Any] | None = None,
) -> Any:
    """Execute an HTTP request with exponential-backoff retry logic.

    Retries on 5xx, timeouts and connection errors. 4xx responses raise
    ``JunctionError`` immediately with ``status`` set.
    """
    last_exception: Exception | None = None
    backoff = _INITIAL_BACKOFF_SECONDS

    for attempt in range(1, _MAX_RETRIES + 1):
        try:
            response = await client.request(method, url, params=params, json=json_body)

            if 400 <= response.status_code < 500:
                raise JunctionError(
                    f"Junction API client error: {_error_detail(response)}",
                    status=response.status_code,
                    raw=response.text,
                )

            if response.status_code >= 500:
                last_exception = JunctionError(
                    f"Junction API server error: HTTP {response.status_code}",
                    status=response.status_code,
                    raw=response.text,
                )
                logger.warning(
                    "Junction API server error on attempt %d/%d: HTTP %d",
                    attempt,
                    _MAX_RETRIES,
                    response.status_code,
                )
            else:
                return response.json() if response.content else {}

        except (httpx.TimeoutException, httpx.ConnectError) as exc:
            last_exception = exc
            logger.warning(
                "Junction API transport error on attempt %d/%d: %s",
                attempt,
                _MAX_RETRIES,
                exc,
            )

        if attempt < _MAX_RETRIES:
            await asyncio.sleep(backoff)
            backoff *= 2

    raise JunctionError(
        f"Junction API request failed after {_MAX_RETRIES} attempts",
        raw=str(last_exception),
    )


# ---------------------------------------------------------------------------
# Users and linking
# ---------------------------------------------------------------------------

async def resolve_or_create_user(client_user_id: str) -> str:
    """Return the Junction ``user_id`` for our user id, creating it if needed."""
    async with _client() as client:
        try:
            data = await _request_with_retry(
                client, "GET", f"/v2/user/resolve/{client_user_id}"
            )
        except JunctionError as exc:
            if exc.status != 404:
                raise
            data = await _request_with_retry(
                client, "POST", "/v2/user/", json_body={"client_user_id": client_user_id}
            )
            logger.info("Junction user created for %s", client_user_id)
    return data["user_id"]


async def create_link_token(junction_user_id: str) -> str:
    async with _client() as client:
        data = await _request_with_retry(
            client, "POST", "/v2/link/token", json_body={"user_id": junction_user_id}
        )
    return data["link_token"]


async def list_connected_providers(junction_user_id: str) -> list[dict[str, Any]]:
    async with _client() as client:
        data = await _request_with_retry(client, "GET", f"/v2/user/providers/{junction_user_id}")
    return data.get("providers", [])


async def disconnect_provider(junction_user_id: str, provider: str) -> None:
    async with _client() as client:
        await _request_with_retry(client, "DELETE", f"/v2/user/{junction_user_id}/{provider}")
    logger.info("Junction provider %s disconnected for %s", provider, junction_user_id)


# ---------------------------------------------------------------------------
# Health metrics
# ---------------------------------------------------------------------------

def _flatten_groups(payload: dict[str, Any]) -> list[dict[str, Any]]:
    """Flatten ``{"groups": {provider: [{"data": [...]}]}}`` into points
    tagged with their provider, oldest first."""
    points: list[dict[str, Any]] = []
    for provider, groups in (payload.get("groups") or {}).items():
        for group in groups:
            for point in group.get("data", []):
                points.append({**point, "provider": provider})
    points.sort(key=lambda p: p.get("timestamp") or "")
    return points


async def get_metrics(
    junction_user_id: str,
    category: str,
    start_date: date,
    end_date: date,
) -> list[dict[str, Any]]:
    """Fetch one metric category over ``[start_date, end_date]``.

    Raises:
        ValueError: If the category or date range is invalid.
        JunctionError: On API failure.
    """
    if category not in METRIC_CATEGORIES:
        raise ValueError(
            f"Unknown metric category '{category}'. "
            f"Expected one of: {', '.join(sorted(METRIC_CATEGORIES))}."
        )
    if end_date < start_date:
        raise ValueError("end_date must not be before start_date")

    params = {"start_date": start_date.isoformat(), "end_date": end_date.isoformat()}
    async with _client() as client:
        if category in SUMMARY_CATEGORIES:
            data = await _request_with_retry(
                client, "GET", f"/v2/summary/{category}/{junction_user_id}", params=params
            )
            return list(data.get(category, []))

        data = await _request_with_retry(
            client,
            "GET",
            f"/v2/timeseries/{junction_user_id}/{category}/grouped",
            params=params,
        )
    return _flatten_groups(data)

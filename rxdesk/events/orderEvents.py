"""
Order Review Event Emission
===========================

Each function emits an event for a review lock change so downstream
consumers (audit trail, notifications) can subscribe to it. The transport is
the application log for now: every emitter logs the event and returns the
payload dict.

Events emitted:
  - order_review.started
  - order_review.released
  - order_review.completed
  - order_review.reclaimed
  - order.paid
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any

logger = logging.getLogger(__name__)


def _build_event(
    event_type: str,
    order_id: uuid.UUID,
    *,
    data: dict[str, Any] | None = None,
    actor_id: uuid.UUID | None = None,
) -> dict[str, Any]:
    """Construct a standardised event payload."""
    return {
        "event_type": event_type,
        "order_id": str(order_id),
        "actor_id": str(actor_id) if actor_id else None,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "data": data or {},
    }


def emit_review_started(order_id: uuid.UUID, provider_id: uuid.UUID) -> dict[str, Any]:
    event = _build_event("order_review.started", order_id, actor_id=provider_id)
    logger.info("Event emitted: %s for order %s", event["event_type"], order_id)
    return event


def emit_review_released(order_id: uuid.UUID, provider_id: uuid.UUID) -> dict[str, Any]:
    event = _build_event("order_review.released", order_id, actor_id=provider_id)
    logger.info("Event emitted: %s for order %s", event["event_type"], order_id)
    return event


def emit_review_completed(
    order_id: uuid.UUID,
    provider_id: uuid.UUID,
    reviewed_at: datetime,
) -> dict[str, Any]:
    event = _build_event(
        "order_review.completed",
        order_id,
        actor_id=provider_id,
        data={"reviewed_at": reviewed_at.isoformat()},
    )
    logger.info("Event emitted: %s for order %s", event["event_type"], order_id)
    return event


def emit_review_reclaimed(
    order_id: uuid.UUID,
    previous_provider_id: uuid.UUID | None,
    provider_id: uuid.UUID,
) -> dict[str, Any]:
    """Emitted when an expired review lock is taken over by another provider."""
    event = _build_event(
        "order_review.reclaimed",
        order_id,
        actor_id=provider_id,
        data={
            "previous_provider_id": (
                str(previous_provider_id) if previous_provider_id else None
            ),
        },
    )
    logger.warning(
        "Event emitted: %s for order %s (previous owner %s)",
        event["event_type"],
        order_id,
        previous_provider_id,
    )
    return event


def emit_order_paid(
    order_id: uuid.UUID,
    checkout_session_id: str,
    amount_cents: int | None,
) -> dict[str, Any]:
    event = _build_event(
        "order.paid",
        order_id,
        data={
            "checkout_session_id": checkout_session_id,
            "amount_cents": amount_cents,
        },
    )
    logger.info("Event emitted: %s for order %s", event["event_type"], order_id)
    return event

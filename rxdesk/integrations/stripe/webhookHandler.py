"""
Stripe Webhook Handler
======================

Processes inbound Stripe webhook events with:
- Signature verification using the configured webhook secret
- Idempotent event processing (processed event IDs tracked in-memory with
  LRU eviction)
- Order payment bookkeeping for completed Checkout sessions

Supported event types:
  - checkout.session.completed   -- marks the referenced order paid
  - checkout.session.expired
  - invoice.payment_failed
  - customer.subscription.deleted

Events not in the handled set are acknowledged but not processed.
"""

from __future__ import annotations

import logging
import time
import uuid
from collections import OrderedDict
from dataclasses import dataclass
from datetime import datetime, timezone
from threading import Lock
from typing import Any, Awaitable, Callable

import stripe
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from rxdesk.core.config import settings
from rxdesk.events.orderEvents import emit_order_paid
from rxdesk.models.order import Order, OrderStatus

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Idempotency store
# ---------------------------------------------------------------------------

_MAX_PROCESSED_EVENTS = 10_000
_processed_events: OrderedDict[str, float] = OrderedDict()
_processed_lock = Lock()


def _mark_event_processed(event_id: str) -> None:
    with _processed_lock:
        _processed_events[event_id] = time.time()
        while len(_processed_events) > _MAX_PROCESSED_EVENTS:
            _processed_events.popitem(last=False)


def _is_event_processed(event_id: str) -> bool:
    with _processed_lock:
        return event_id in _processed_events


def clear_processed_events() -> None:
    """Clear the processed events store. Useful for testing."""
    with _processed_lock:
        _processed_events.clear()


# ---------------------------------------------------------------------------
# Response dataclass
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class WebhookResult:
    """Result of processing a webhook event."""
    event_type: str
    processed: bool
    message: str


class WebhookProcessingError(Exception):
    """A verified event whose handler or commit failed; Stripe should retry it."""

    def __init__(self, event_id: str, event_type: str) -> None:
        super().__init__(f"Error processing event {event_id} ({event_type})")
        self.event_id = event_id
        self.event_type = event_type


# ---------------------------------------------------------------------------
# Event handlers
# ---------------------------------------------------------------------------

def _order_id_from_session(session: Any) -> uuid.UUID | None:
    metadata = getattr(session, "metadata", None) or {}
    raw = metadata.get("order_id") or getattr(session, "client_reference_id", None)
    if not raw:
        return None
    try:
        return uuid.UUID(str(raw))
    except ValueError:
        return None


async def _handle_checkout_completed(db: AsyncSession, event: Any) -> str:
    """Record payment on the order the session was opened for."""
    session = event.data.object
    order_id = _order_id_from_session(session)
    if order_id is None:
        logger.warning("Checkout session %s has no order reference", session.id)
        return f"Checkout session {session.id} completed without an order reference"

    result = await db.execute(select(Order).where(Order.id == order_id))
    order = result.scalar_one_or_none()
    if order is None:
        logger.warning("Checkout session %s references unknown order %s", session.id, order_id)
        return f"Order {order_id} not found for checkout session {session.id}"

    if order.paid_at is None:
        order.paid_at = datetime.now(timezone.utc)
        order.stripe_checkout_session_id = session.id
        if order.status == OrderStatus.PENDING:
            order.status = OrderStatus.PROCESSING
        await db.flush()
        emit_order_paid(order.id, session.id, getattr(session, "amount_total", None))

    return f"Order {order.order_number} paid via checkout session {session.id}"


async def _handle_checkout_expired(db: AsyncSession, event: Any) -> str:
    session = event.data.object
    logger.info("Checkout session expired: id=%s", session.id)
    return f"Checkout session {session.id} expired"


async def _handle_invoice_payment_failed(db: AsyncSession, event: Any) -> str:
    invoice = event.data.object
    logger.warning(
        "Invoice payment failed: invoice=%s, customer=%s",
        invoice.id,
        getattr(invoice, "customer", None),
    )
    return f"Invoice {invoice.id} payment failed"


async def _handle_subscription_deleted(db: AsyncSession, event: Any) -> str:
    subscription = event.data.object
    logger.info(
        "Subscription cancelled: id=%s, customer=%s",
        subscription.id,
        getattr(subscription, "customer", None),
    )
    return f"Subscription {subscription.id} cancelled"


_EVENT_HANDLERS: dict[str, Callable[[AsyncSession, Any], Awaitable[str]]] = {
    "checkout.session.completed": _handle_checkout_completed,
    "checkout.session.expired": _handle_checkout_expired,
    "invoice.payment_failed": _handle_invoice_payment_failed,
    "customer.subscription.deleted": _handle_subscription_deleted,
}


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

async def handle_webhook(
    db: AsyncSession,
    payload: bytes,
    sig_header: str,
) -> WebhookResult:
    """Verify and process an inbound Stripe webhook event.

    Handled events are committed here, then recorded as processed.

    Raises:
        ValueError: If signature verification or payload parsing fails.
        WebhookProcessingError: If the handler or the commit fails. The
            event is not recorded, so Stripe's retry is processed again.
    """
    try:
        event = stripe.Webhook.construct_event(
            payload=payload,
            sig_header=sig_header,
            secret=settings.stripe_webhook_secret,
        )
    except stripe.SignatureVerificationError as exc:
        logger.warning("Webhook signature verification failed: %s", str(exc))
        raise ValueError(f"Invalid webhook signature: {str(exc)}") from exc
    except ValueError as exc:
        logger.warning("Webhook payload parsing failed: %s", str(exc))
        raise ValueError(f"Invalid webhook payload: {str(exc)}") from exc

    event_id: str = event.id
    event_type: str = event.type

    if _is_event_processed(event_id):
        logger.info("Webhook event already processed, skipping: id=%s", event_id)
        return WebhookResult(
            event_type=event_type,
            processed=False,
            message=f"Event {event_id} already processed (idempotent skip)",
        )

    handler = _EVENT_HANDLERS.get(event_type)
    if handler is None:
        _mark_event_processed(event_id)
        return WebhookResult(
            event_type=event_type,
            processed=False,
            message=f"Event type '{event_type}' acknowledged but not handled",
        )

    try:
        message = await handler(db, event)
        await db.commit()
    except Exception as exc:
        logger.exception("Error processing webhook event: id=%s, type=%s", event_id, event_type)
        await db.rollback()
        raise WebhookProcessingError(event_id, event_type) from exc

    _mark_event_processed(event_id)
    logger.info("Webhook event processed: id=%s, type=%s", event_id, event_type)
    return WebhookResult(event_type=event_type, processed=True, message=message)

"""
Order Review Service
====================

Database-backed review lock for patient orders. All transitions are
validated by ``orderReviewStateManager`` and then applied with a
conditional ``UPDATE ... WHERE review_status = :seen AND reviewed_by = :seen``
so two providers racing to start the same review cannot both win: the
second update matches zero rows and is rejected.

Key functions:
  - get_order          -- single order retrieval
  - get_review_detail  -- order + formatted questionnaire + allowed actions
  - start_review       -- pending -> in_review (takes the lock)
  - release_review     -- in_review -> pending (owner only)
  - complete_review    -- in_review -> completed (owner only)
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from rxdesk.core.config import settings
from rxdesk.events.orderEvents import (
    emit_review_completed,
    emit_review_reclaimed,
    emit_review_released,
    emit_review_started,
)
from rxdesk.models.order import Order, ReviewStatus
from rxdesk.services.orderReviewStateManager import (
    MSG_ALREADY_IN_REVIEW,
    MSG_NOT_FOUND,
    MSG_NOT_OWNER,
    REVIEW_STATUS_LABELS,
    ReviewAction,
    get_available_actions,
    is_lock_expired,
    validate_review_action,
)
from rxdesk.services.questionnaireFormatter import (
    build_questionnaire_summary,
    format_currency,
    get_state_name,
)

logger = logging.getLogger(__name__)

_UNSET: Any = object()


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------

class OrderNotFoundError(Exception):
    """Raised when an order cannot be found by ID."""

    def __init__(self, order_id: uuid.UUID) -> None:
        self.order_id = order_id
        super().__init__(MSG_NOT_FOUND)


class InvalidReviewActionError(Exception):
    """Raised when a review action is not allowed in the current state."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)

    @property
    def is_ownership_error(self) -> bool:
        return self.reason == MSG_NOT_OWNER


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------

async def get_order(db: AsyncSession, order_id: uuid.UUID) -> Order:
    result = await db.execute(select(Order).where(Order.id == order_id))
    order = result.scalar_one_or_none()
    if order is None:
        raise OrderNotFoundError(order_id)
    return order


async def get_review_detail(
    db: AsyncSession,
    order_id: uuid.UUID,
    viewer_id: uuid.UUID,
) -> dict[str, Any]:
    """Everything the review screen needs for one order."""
    order = await get_order(db, order_id)
    return {
        "order": order,
        "review_status_label": REVIEW_STATUS_LABELS[order.review_status],
        "total_display": format_currency(order.total_amount_cents),
        "state_name": get_state_name(order.state),
        "questionnaire": build_questionnaire_summary(order.questionnaire_data),
        "available_actions": [
            a.value
            for a in get_available_actions(order.review_status, order.reviewed_by, viewer_id)
        ],
        "is_locked_by_viewer": (
            order.review_status == ReviewStatus.IN_REVIEW
            and order.reviewed_by == viewer_id
        ),
    }


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------

async def _apply(
    db: AsyncSession,
    order: Order,
    *,
    seen_status: ReviewStatus,
    seen_reviewed_by: Optional[uuid.UUID],
    values: dict[str, Any],
) -> bool:
    """Conditionally write ``values``; False when another writer got there first."""
    stmt = (
        update(Order)
        .where(Order.id == order.id, Order.review_status == seen_status)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if seen_reviewed_by is None:
        stmt = stmt.where(Order.reviewed_by.is_(None))
    else:
        stmt = stmt.where(Order.reviewed_by == seen_reviewed_by)

    result = await db.execute(stmt)
    if result.rowcount != 1:
        return False

    await db.refresh(order)
    return True


async def _transition(
    db: AsyncSession,
    order_id: uuid.UUID,
    action: ReviewAction,
    actor_id: uuid.UUID,
    *,
    now: datetime,
    lock_timeout_minutes: Optional[int],
) -> tuple[Order, Optional[uuid.UUID], bool]:
    order = await get_order(db, order_id)
    seen_status = order.review_status
    seen_reviewed_by = order.reviewed_by

    check = validate_review_action(
        seen_status,
        seen_reviewed_by,
        action,
        actor_id,
        lock_expired=is_lock_expired(order.review_started_at, lock_timeout_minutes, now),
    )
    if not check.allowed:
        raise InvalidReviewActionError(check.reason or "Review action not allowed.")

    values: dict[str, Any] = {"review_status": check.target}
    if action == ReviewAction.START:
        values.update(reviewed_by=actor_id, review_started_at=now)
    elif action == ReviewAction.RELEASE:
        values.update(reviewed_by=None, review_started_at=None)
    else:
        values.update(reviewed_at=now)

    applied = await _apply(
        db,
        order,
        seen_status=seen_status,
        seen_reviewed_by=seen_reviewed_by,
        values=values,
    )
    if not applied:
        logger.info(
            "Review %s lost a race on order %s (actor=%s)", action.value, order_id, actor_id
        )
        # Re-read and report whatever state the winner left behind.
        db.expunge(order)
        fresh = await get_order(db, order_id)
        retry = validate_review_action(fresh.review_status, fresh.reviewed_by, action, actor_id)
        raise InvalidReviewActionError(retry.reason or MSG_ALREADY_IN_REVIEW)

    return order, seen_reviewed_by, check.reclaimed


async def start_review(
    db: AsyncSession,
    order_id: uuid.UUID,
    provider_id: uuid.UUID,
    *,
    now: datetime | None = None,
    lock_timeout_minutes: Optional[int] = _UNSET,
) -> Order:
    """Take the review lock on a pending order.

    Raises:
        OrderNotFoundError: If the order does not exist.
        InvalidReviewActionError: If the order is already in review (and the
            lock has not expired) or already completed.

    Reclaiming an expired lock hands it to ``provider_id`` in the same
    UPDATE; the order is never released to ``pending`` in between.
    """
    now = now or datetime.now(timezone.utc)
    if lock_timeout_minutes is _UNSET:
        lock_timeout_minutes = settings.review_lock_timeout_minutes

    order, previous_owner, reclaimed = await _transition(
        db,
        order_id,
        ReviewAction.START,
        provider_id,
        now=now,
        lock_timeout_minutes=lock_timeout_minutes,
    )

    if reclaimed:
        emit_review_reclaimed(order.id, previous_owner, provider_id)
    emit_review_started(order.id, provider_id)
    logger.info("Review started on order %s by provider %s", order.order_number, provider_id)
    return order


async def release_review(
    db: AsyncSession,
    order_id: uuid.UUID,
    provider_id: uuid.UUID,
) -> Order:
    """Give the lock back; the order returns to ``pending``."""
    order, _, _ = await _transition(
        db,
        order_id,
        ReviewAction.RELEASE,
        provider_id,
        now=datetime.now(timezone.utc),
        lock_timeout_minutes=None,
    )
    emit_review_released(order.id, provider_id)
    logger.info("Review released on order %s by provider %s", order.order_number, provider_id)
    return order


async def complete_review(
    db: AsyncSession,
    order_id: uuid.UUID,
    provider_id: uuid.UUID,
    *,
    now: datetime | None = None,
) -> Order:
    """Sign off the review; ``completed`` is terminal."""
    now = now or datetime.now(timezone.utc)
    order, _, _ = await _transition(
        db,
        order_id,
        ReviewAction.COMPLETE,
        provider_id,
        now=now,
        lock_timeout_minutes=None,
    )
    emit_review_completed(order.id, provider_id, now)
    logger.info("Review completed on order %s by provider %s", order.order_number, provider_id)
    return order

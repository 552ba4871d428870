"""
Order Review State Manager
==========================

Finite state machine for the provider review of an order. Every review
change MUST go through ``validate_review_action`` before being persisted.

State machine overview::

    pending --start--> in_review --complete--> completed
       ^                   |
       +-----release-------+

Guards:
  - start:    only from ``pending``
  - release:  only from ``in_review`` and only by the provider holding the lock
  - complete: only from ``in_review`` and only by the provider holding the lock

``completed`` is terminal. A lock is held until released unless a lease
timeout is configured, in which case ``start`` may reclaim an expired lock.
A reclaim is the one self-transition: ``in_review`` (provider A) goes
straight to ``in_review`` (provider B) with a fresh ``review_started_at``,
without passing through ``pending``. It is therefore absent from
``VALID_TRANSITIONS``, which lists status changes only.
"""

from __future__ import annotations

import enum
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from rxdesk.models.order import ReviewStatus


class ReviewAction(str, enum.Enum):
    START = "start"
    RELEASE = "release"
    COMPLETE = "complete"


# Human-facing labels for dashboards
REVIEW_STATUS_LABELS: dict[ReviewStatus, str] = {
    ReviewStatus.PENDING: "Pending Review",
    ReviewStatus.IN_REVIEW: "In Review",
    ReviewStatus.COMPLETED: "Completed",
}

# Failure messages surfaced verbatim to the caller
MSG_NOT_FOUND = "Order not found"
MSG_ALREADY_IN_REVIEW = "Order is already being reviewed"
MSG_ALREADY_COMPLETED = "Order has already been completed"
MSG_NOT_IN_REVIEW = "Order is not currently being reviewed"
MSG_NOT_OWNER = "You are not the provider reviewing this order"


# ---------------------------------------------------------------------------
# Transition guard result
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TransitionResult:
    """Result of a review action validation attempt."""
    allowed: bool
    reason: str | None = None
    target: ReviewStatus | None = None
    reclaimed: bool = False


# ---------------------------------------------------------------------------
# Transition definitions
# ---------------------------------------------------------------------------

VALID_TRANSITIONS: dict[ReviewStatus, set[ReviewStatus]] = {
    ReviewStatus.PENDING: {ReviewStatus.IN_REVIEW},
    ReviewStatus.IN_REVIEW: {ReviewStatus.PENDING, ReviewStatus.COMPLETED},
    ReviewStatus.COMPLETED: set(),  # terminal
}

ACTION_TARGETS: dict[ReviewAction, ReviewStatus] = {
    ReviewAction.START: ReviewStatus.IN_REVIEW,
    ReviewAction.RELEASE: ReviewStatus.PENDING,
    ReviewAction.COMPLETE: ReviewStatus.COMPLETED,
}


def is_lock_expired(
    review_started_at: Optional[datetime],
    timeout_minutes: Optional[int],
    now: Optional[datetime] = None,
) -> bool:
    """True when a lease is configured and the lock is older than it."""
    if timeout_minutes is None or review_started_at is None:
        return False
    if review_started_at.tzinfo is None:
        review_started_at = review_started_at.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)
    return now - review_started_at > timedelta(minutes=timeout_minutes)


# ---------------------------------------------------------------------------
# Guard functions
# ---------------------------------------------------------------------------

def _guard_start(current: ReviewStatus, lock_expired: bool) -> TransitionResult:
    """``start`` from pending, or from an expired ``in_review`` lock (reclaimed)."""
    if current == ReviewStatus.COMPLETED:
        return TransitionResult(allowed=False, reason=MSG_ALREADY_COMPLETED)
    if current == ReviewStatus.IN_REVIEW:
        if lock_expired:
            return TransitionResult(
                allowed=True, target=ReviewStatus.IN_REVIEW, reclaimed=True
            )
        return TransitionResult(allowed=False, reason=MSG_ALREADY_IN_REVIEW)
    return TransitionResult(allowed=True, target=ReviewStatus.IN_REVIEW)


def _guard_owner(
    current: ReviewStatus,
    reviewed_by: Optional[uuid.UUID],
    actor_id: uuid.UUID,
    action: ReviewAction,
) -> TransitionResult:
    if current != ReviewStatus.IN_REVIEW:
        return TransitionResult(allowed=False, reason=MSG_NOT_IN_REVIEW)
    if reviewed_by != actor_id:
        return TransitionResult(allowed=False, reason=MSG_NOT_OWNER)
    return TransitionResult(allowed=True, target=ACTION_TARGETS[action])


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def validate_review_action(
    current_status: ReviewStatus,
    reviewed_by: Optional[uuid.UUID],
    action: ReviewAction,
    actor_id: uuid.UUID,
    *,
    lock_expired: bool = False,
) -> TransitionResult:
    """Validate whether ``actor_id`` may apply ``action`` to a review.

    Returns a ``TransitionResult`` whose ``target`` is the status to persist
    when allowed, or ``allowed=False`` with one of the MSG_* reasons.
    """
    if action == ReviewAction.START:
        return _guard_start(current_status, lock_expired)
    return _guard_owner(current_status, reviewed_by, actor_id, action)


def get_available_actions(
    current_status: ReviewStatus,
    reviewed_by: Optional[uuid.UUID],
    actor_id: uuid.UUID,
) -> list[ReviewAction]:
    """Actions ``actor_id`` could take right now; useful for UI buttons."""
    return [
        action
        for action in ReviewAction
        if validate_review_action(current_status, reviewed_by, action, actor_id).allowed
    ]

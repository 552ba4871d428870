"""
Order review API routes
=======================

The review lock: one provider at a time reviews an order.

Routes:
  GET  /api/v1/order-reviews/{order_id}            -- review screen payload
  POST /api/v1/order-reviews/{order_id}/start      -- take the lock (pending -> in_review)
  POST /api/v1/order-reviews/{order_id}/release    -- give it back (in_review -> pending)
  POST /api/v1/order-reviews/{order_id}/complete   -- sign off (in_review -> completed)

Errors:
  404 -- order not found
  403 -- caller is not the provider holding the lock
  409 -- action not allowed in the current review state
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, HTTPException, status

from rxdesk.api.deps import CurrentProvider, DBSession
from rxdesk.api.schemas.common import Envelope
from rxdesk.api.schemas.order import OrderReviewDetail, OrderReviewOut
from rxdesk.services import orderReviewService
from rxdesk.services.orderReviewService import (
    InvalidReviewActionError,
    OrderNotFoundError,
)

router = APIRouter(prefix="/order-reviews", tags=["Order Reviews"])


def _to_http(exc: Exception) -> HTTPException:
    if isinstance(exc, OrderNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, InvalidReviewActionError) and exc.is_ownership_error:
        return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=exc.reason)
    return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))


@router.get(
    "/{order_id}",
    response_model=Envelope[OrderReviewDetail],
    summary="Order review screen",
)
async def get_order_review(
    db: DBSession,
    provider: CurrentProvider,
    order_id: uuid.UUID,
) -> Envelope[OrderReviewDetail]:
    try:
        detail = await orderReviewService.get_review_detail(db, order_id, provider.user_id)
    except OrderNotFoundError as exc:
        raise _to_http(exc) from exc

    detail["order"] = OrderReviewOut.model_validate(detail["order"])
    return Envelope(data=OrderReviewDetail(**detail))


@router.post(
    "/{order_id}/start",
    response_model=Envelope[OrderReviewOut],
    summary="Start reviewing an order",
)
async def start_review(
    db: DBSession,
    provider: CurrentProvider,
    order_id: uuid.UUID,
) -> Envelope[OrderReviewOut]:
    try:
        order = await orderReviewService.start_review(db, order_id, provider.user_id)
    except (OrderNotFoundError, InvalidReviewActionError) as exc:
        raise _to_http(exc) from exc
    return Envelope(data=OrderReviewOut.model_validate(order))


@router.post(
    "/{order_id}/release",
    response_model=Envelope[OrderReviewOut],
    summary="Release the review lock",
)
async def release_review(
    db: DBSession,
    provider: CurrentProvider,
    order_id: uuid.UUID,
) -> Envelope[OrderReviewOut]:
    try:
        order = await orderReviewService.release_review(db, order_id, provider.user_id)
    except (OrderNotFoundError, InvalidReviewActionError) as exc:
        raise _to_http(exc) from exc
    return Envelope(data=OrderReviewOut.model_validate(order))


@router.post(
    "/{order_id}/complete",
    response_model=Envelope[OrderReviewOut],
    summary="Complete the review",
)
async def complete_review(
    db: DBSession,
    provider: CurrentProvider,
    order_id: uuid.UUID,
) -> Envelope[OrderReviewOut]:
    try:
        order = await orderReviewService.complete_review(db, order_id, provider.user_id)
    except (OrderNotFoundError, InvalidReviewActionError) as exc:
        raise _to_http(exc) from exc
    return Envelope(data=OrderReviewOut.model_validate(order))

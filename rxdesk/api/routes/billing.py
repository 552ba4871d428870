"""
Billing routes (Stripe)
=======================

Routes:
  POST /api/v1/billing/checkout   -- hosted Checkout session for the caller
  POST /api/v1/billing/portal     -- hosted billing portal session
  POST /api/v1/billing/webhook    -- Stripe webhook endpoint
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Request, status
from sqlalchemy import select

from rxdesk.api.deps import CurrentUser, DBSession
from rxdesk.api.schemas.billing import (
    CheckoutRequest,
    CheckoutSessionOut,
    PortalRequest,
    PortalSessionOut,
    WebhookResponse,
)
from rxdesk.api.schemas.common import Envelope
from rxdesk.core.config import settings
from rxdesk.integrations.stripe import (
    CheckoutLineItem,
    PaymentError,
    WebhookProcessingError,
    create_billing_portal_session,
    create_checkout_session,
    get_or_create_customer,
    handle_webhook,
)
from rxdesk.models.order import Order
from rxdesk.models.user import User

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/billing", tags=["Billing"])


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _payment_error_to_http(exc: PaymentError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_402_PAYMENT_REQUIRED,
        detail=exc.message,
    )


async def _ensure_customer(db, user: User) -> str:
    customer = await get_or_create_customer(
        user.id,
        user.email,
        name=user.full_name or None,
        existing_customer_id=user.stripe_customer_id,
    )
    if user.stripe_customer_id != customer.id:
        user.stripe_customer_id = customer.id
        await db.flush()
    return customer.id


# ---------------------------------------------------------------------------
# POST /billing/checkout
# ---------------------------------------------------------------------------

@router.post(
    "/checkout",
    response_model=Envelope[CheckoutSessionOut],
    summary="Create a Stripe Checkout session",
    description=(
        "Runs in subscription mode when any price is recurring. When an "
        "order_id is given, the completed session marks that order paid."
    ),
)
async def create_checkout(
    db: DBSession,
    user: CurrentUser,
    body: CheckoutRequest,
) -> Envelope[CheckoutSessionOut]:
    metadata = {"user_id": str(user.id)}
    if body.order_id is not None:
        result = await db.execute(select(Order).where(Order.id == body.order_id))
        order = result.scalar_one_or_none()
        if order is None or order.user_id != user.id:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Order not found",
            )
        metadata["order_id"] = str(order.id)

    base = settings.public_base_url.rstrip("/")
    try:
        customer_id = await _ensure_customer(db, user)
        session = await create_checkout_session(
            [CheckoutLineItem(price=i.price, quantity=i.quantity) for i in body.items],
            customer_id=customer_id,
            success_url=body.success_url
            or f"{base}/checkout/success?session_id={{CHECKOUT_SESSION_ID}}",
            cancel_url=body.cancel_url or f"{base}/checkout/cancel",
            metadata=metadata,
        )
    except PaymentError as exc:
        raise _payment_error_to_http(exc) from exc

    return Envelope(data=CheckoutSessionOut(session_id=session.id, url=session.url, mode=session.mode))


# ---------------------------------------------------------------------------
# POST /billing/portal
# ---------------------------------------------------------------------------

@router.post(
    "/portal",
    response_model=Envelope[PortalSessionOut],
    summary="Open the Stripe billing portal",
)
async def create_portal(
    db: DBSession,
    user: CurrentUser,
    body: PortalRequest,
) -> Envelope[PortalSessionOut]:
    return_url = body.return_url or f"{settings.public_base_url.rstrip('/')}/account"
    try:
        customer_id = await _ensure_customer(db, user)
        url = await create_billing_portal_session(customer_id, return_url)
    except PaymentError as exc:
        raise _payment_error_to_http(exc) from exc

    return Envelope(data=PortalSessionOut(url=url))


# ---------------------------------------------------------------------------
# POST /billing/webhook
# ---------------------------------------------------------------------------

@router.post(
    "/webhook",
    response_model=Envelope[WebhookResponse],
    summary="Stripe webhook endpoint",
    description=(
        "Receives and processes Stripe webhook events. The raw request body "
        "is required for signature verification."
    ),
)
async def stripe_webhook(
    request: Request,
    db: DBSession,
) -> Envelope[WebhookResponse]:
    payload = await request.body()
    sig_header = request.headers.get("Stripe-Signature", "")

    if not sig_header:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing Stripe-Signature header",
        )

    try:
        result = await handle_webhook(db, payload, sig_header)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except WebhookProcessingError as exc:
        # Non-2xx so Stripe redelivers the event.
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(exc),
        ) from exc

    return Envelope(
        data=WebhookResponse(
            event_type=result.event_type,
            processed=result.processed,
            message=result.message,
        )
    )

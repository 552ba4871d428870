"""
Stripe Checkout Service
=======================

Patient-facing billing through Stripe:
- Customer lookup / creation keyed by our user id
- Hosted Checkout sessions for medication orders and subscriptions
- Hosted billing portal sessions

Stripe keys come from settings (``STRIPE_SECRET_KEY`` in the environment).
All SDK failures are converted to ``PaymentError``.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Any, Optional

import stripe

from rxdesk.core.config import settings

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Stripe SDK configuration
# ---------------------------------------------------------------------------

stripe.api_key = settings.stripe_secret_key

_CUSTOMER_PAGE_SIZE = 100


# ---------------------------------------------------------------------------
# Custom exception
# ---------------------------------------------------------------------------

class PaymentError(Exception):
    """Raised when a Stripe operation fails.

    Attributes:
        message: Human-readable error description.
        stripe_error_code: The Stripe error code, if available.
        stripe_error_type: The Stripe error type, if available.
    """

    def __init__(
        self,
        message: str,
        stripe_error_code: str | None = None,
        stripe_error_type: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.stripe_error_code = stripe_error_code
        self.stripe_error_type = stripe_error_type


# ---------------------------------------------------------------------------
# Response dataclasses
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CustomerResult:
    id: str
    email: Optional[str]
    created: bool


@dataclass(frozen=True)
class CheckoutSessionResult:
    id: str
    url: Optional[str]
    mode: str


@dataclass(frozen=True)
class CheckoutLineItem:
    price: str
    quantity: int = 1


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _handle_stripe_error(exc: stripe.StripeError) -> PaymentError:
    """Convert a Stripe SDK exception into a PaymentError."""
    error_body = getattr(exc, "error", None)
    code = getattr(error_body, "code", None) if error_body else None
    error_type = getattr(error_body, "type", None) if error_body else None

    logger.error("Stripe API error: %s (code=%s, type=%s)", str(exc), code, error_type)
    return PaymentError(
        message=str(exc),
        stripe_error_code=code,
        stripe_error_type=error_type,
    )


def _metadata(obj: Any) -> dict[str, str]:
    meta = getattr(obj, "metadata", None)
    return dict(meta) if meta else {}


def _find_customer_by_user_id(user_id: str) -> Any | None:
    starting_after: str | None = None
    while True:
        params: dict[str, Any] = {"limit": _CUSTOMER_PAGE_SIZE}
        if starting_after:
            params["starting_after"] = starting_after
        page = stripe.Customer.list(**params)
        for customer in page.data:
            if _metadata(customer).get("user_id") == user_id:
                return customer
        if not page.has_more or not page.data:
            return None
        starting_after = page.data[-1].id


# ---------------------------------------------------------------------------
# Customers
# ---------------------------------------------------------------------------

async def get_or_create_customer(
    user_id: uuid.UUID,
    email: str,
    name: str | None = None,
    existing_customer_id: str | None = None,
) -> CustomerResult:
    """Resolve the Stripe customer for a user, creating one as a last resort.

    Lookup order: the stored customer id (unless deleted), a customer whose
    ``metadata.user_id`` matches, a customer with the same email. Any reused
    customer gets ``metadata.user_id`` stamped on it.

    Raises:
        PaymentError: If a Stripe API call fails.
    """
    uid = str(user_id)
    try:
        if existing_customer_id:
            try:
                customer = stripe.Customer.retrieve(existing_customer_id)
            except stripe.InvalidRequestError as exc:
                logger.warning(
                    "Stored Stripe customer %s not retrievable: %s",
                    existing_customer_id,
                    exc,
                )
            else:
                if not getattr(customer, "deleted", False):
                    meta = _metadata(customer)
                    if meta.get("user_id") != uid:
                        stripe.Customer.modify(
                            customer.id, metadata={**meta, "user_id": uid}
                        )
                    return CustomerResult(id=customer.id, email=customer.email, created=False)

        customer = _find_customer_by_user_id(uid)
        if customer is not None:
            return CustomerResult(id=customer.id, email=customer.email, created=False)

        by_email = stripe.Customer.list(email=email, limit=1)
        if by_email.data:
            customer = by_email.data[0]
            stripe.Customer.modify(
                customer.id, metadata={**_metadata(customer), "user_id": uid}
            )
            return CustomerResult(id=customer.id, email=customer.email, created=False)

        customer = stripe.Customer.create(
            email=email,
            name=name,
            metadata={"user_id": uid, "platform": "rxdesk"},
        )
    except stripe.StripeError as exc:
        raise _handle_stripe_error(exc) from exc

    logger.info("Stripe customer created: id=%s, user_id=%s", customer.id, uid)
    return CustomerResult(id=customer.id, email=email, created=True)


# ---------------------------------------------------------------------------
# Checkout
# ---------------------------------------------------------------------------

async def create_checkout_session(
    items: list[CheckoutLineItem],
    *,
    customer_id: str,
    success_url: str,
    cancel_url: str,
    metadata: dict[str, str] | None = None,
) -> CheckoutSessionResult:
    """Create a hosted Checkout session.

    The session runs in ``subscription`` mode when any price is recurring,
    otherwise ``payment`` mode.

    Raises:
        PaymentError: If a Stripe API call fails.
        ValueError: If ``items`` is empty.
    """
    if not items:
        raise ValueError("Checkout requires at least one line item")

    try:
        prices = [stripe.Price.retrieve(item.price) for item in items]
        mode = (
            "subscription"
            if any(getattr(p, "type", None) == "recurring" for p in prices)
            else "payment"
        )
        session = stripe.checkout.Session.create(
            customer=customer_id,
            line_items=[{"price": i.price, "quantity": i.quantity} for i in items],
            mode=mode,
            success_url=success_url,
            cancel_url=cancel_url,
            allow_promotion_codes=True,
            billing_address_collection="required",
            shipping_address_collection={"allowed_countries": ["US"]},
            payment_method_types=["card"],
            metadata=metadata or {},
        )
    except stripe.StripeError as exc:
        raise _handle_stripe_error(exc) from exc

    logger.info(
        "Checkout session created: id=%s, customer=%s, mode=%s, items=%d",
        session.id,
        customer_id,
        mode,
        len(items),
    )
    return CheckoutSessionResult(id=session.id, url=session.url, mode=mode)


# ---------------------------------------------------------------------------
# Billing portal
# ---------------------------------------------------------------------------

async def create_billing_portal_session(customer_id: str, return_url: str) -> str:
    """Return the URL of a hosted billing portal session."""
    try:
        session = stripe.billing_portal.Session.create(
            customer=customer_id,
            return_url=return_url,
        )
    except stripe.StripeError as exc:
        raise _handle_stripe_error(exc) from exc

    logger.info("Billing portal session created for customer %s", customer_id)
    return session.url

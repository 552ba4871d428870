"""
Stripe Integration Module
=========================

Central export point for the Stripe integration.

Usage::

    from rxdesk.integrations.stripe import (
        PaymentError,
        get_or_create_customer,
        create_checkout_session,
        create_billing_portal_session,
        handle_webhook,
    )
"""

from .checkoutService import (
    CheckoutLineItem,
    CheckoutSessionResult,
    CustomerResult,
    PaymentError,
    create_billing_portal_session,
    create_checkout_session,
    get_or_create_customer,
)
from .webhookHandler import (
    WebhookProcessingError,
    WebhookResult,
    clear_processed_events,
    handle_webhook,
)

__all__ = [
    "PaymentError",
    "CustomerResult",
    "CheckoutLineItem",
    "CheckoutSessionResult",
    "get_or_create_customer",
    "create_checkout_session",
    "create_billing_portal_session",
    "WebhookProcessingError",
    "WebhookResult",
    "clear_processed_events",
    "handle_webhook",
]

"""
E2E: Stripe checkout, billing portal and webhooks.

The Stripe SDK is mocked in conftest; webhook tests set the event returned
by ``construct_event`` and check the order it references.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
import stripe
from httpx import AsyncClient

from rxdesk.integrations.stripe import webhookHandler
from tests.e2e.conftest import CA_ORDER_ID, ORDER_ID

pytestmark = pytest.mark.asyncio

CHECKOUT_URL = "/api/v1/billing/checkout"
WEBHOOK_URL = "/api/v1/billing/webhook"
SIGNED = {"Stripe-Signature": "t=1,v1=test"}


def _completed_event(event_id: str = "evt_test_1", order_id=ORDER_ID) -> MagicMock:
    event = MagicMock()
    event.id = event_id
    event.type = "checkout.session.completed"
    event.data.object = MagicMock(
        id="cs_test_123",
        metadata={"order_id": str(order_id)},
        amount_total=19900,
    )
    return event


class TestCheckout:

    async def test_checkout_for_own_order(self, client: AsyncClient, patient_headers, mock_stripe):
        resp = await client.post(
            CHECKOUT_URL,
            json={"items": [{"price": "price_glp1", "quantity": 1}], "order_id": str(ORDER_ID)},
            headers=patient_headers,
        )

        assert resp.status_code == 200
        assert resp.json()["data"] == {
            "session_id": "cs_test_123",
            "url": "https://checkout.stripe.com/c/pay/cs_test_123",
            "mode": "payment",
        }
        kwargs = mock_stripe.checkout.Session.create.call_args.kwargs
        assert kwargs["customer"] == "cus_test_abc"
        assert kwargs["metadata"]["order_id"] == str(ORDER_ID)

    async def test_recurring_price_uses_subscription_mode(self, client: AsyncClient, patient_headers, mock_stripe):
        mock_stripe.Price.retrieve.return_value = MagicMock(type="recurring")

        resp = await client.post(
            CHECKOUT_URL,
            json={"items": [{"price": "price_monthly"}]},
            headers=patient_headers,
        )

        assert resp.json()["data"]["mode"] == "subscription"

    async def test_someone_elses_order_is_404(self, client: AsyncClient, patient_headers, mock_stripe):
        resp = await client.post(
            CHECKOUT_URL,
            json={"items": [{"price": "price_glp1"}], "order_id": str(CA_ORDER_ID)},
            headers=patient_headers,
        )

        assert resp.status_code == 404
        assert resp.json() == {"success": False, "error": "Order not found"}
        mock_stripe.checkout.Session.create.assert_not_called()

    async def test_empty_cart_rejected(self, client: AsyncClient, patient_headers):
        resp = await client.post(CHECKOUT_URL, json={"items": []}, headers=patient_headers)
        assert resp.status_code == 422

    async def test_stripe_failure_is_402(self, client: AsyncClient, patient_headers, mock_stripe):
        mock_stripe.checkout.Session.create.side_effect = stripe.InvalidRequestError(
            "No such price: 'price_gone'", param="line_items"
        )

        resp = await client.post(
            CHECKOUT_URL, json={"items": [{"price": "price_gone"}]}, headers=patient_headers
        )

        assert resp.status_code == 402
        assert "price_gone" in resp.json()["error"]


class TestPortal:

    async def test_portal_url(self, client: AsyncClient, patient_headers):
        resp = await client.post("/api/v1/billing/portal", json={}, headers=patient_headers)

        assert resp.status_code == 200
        assert resp.json()["data"]["url"] == "https://billing.stripe.com/p/session/test_123"


class TestWebhook:

    async def test_missing_signature(self, client: AsyncClient):
        resp = await client.post(WEBHOOK_URL, content=b"{}")

        assert resp.status_code == 400
        assert resp.json() == {"success": False, "error": "Missing Stripe-Signature header"}

    async def test_bad_signature(self, client: AsyncClient, mock_stripe_webhook):
        mock_stripe_webhook.Webhook.construct_event.side_effect = stripe.SignatureVerificationError(
            "bad sig", "t=1,v1=test"
        )

        resp = await client.post(WEBHOOK_URL, content=b"{}", headers=SIGNED)

        assert resp.status_code == 400
        assert resp.json()["error"].startswith("Invalid webhook signature")

    async def test_completed_session_marks_order_paid(
        self, client: AsyncClient, mock_stripe_webhook, provider_headers
    ):
        mock_stripe_webhook.Webhook.construct_event.return_value = _completed_event()

        resp = await client.post(WEBHOOK_URL, content=b"{}", headers=SIGNED)

        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["processed"] is True
        assert data["message"] == "Order 100100 paid via checkout session cs_test_123"

        detail = await client.get(f"/api/v1/order-reviews/{ORDER_ID}", headers=provider_headers)
        assert detail.json()["data"]["order"]["paid_at"] is not None

    async def test_duplicate_event_skipped(self, client: AsyncClient, mock_stripe_webhook):
        mock_stripe_webhook.Webhook.construct_event.return_value = _completed_event("evt_dup")

        first = await client.post(WEBHOOK_URL, content=b"{}", headers=SIGNED)
        second = await client.post(WEBHOOK_URL, content=b"{}", headers=SIGNED)

        assert first.json()["data"]["processed"] is True
        assert second.json()["data"]["processed"] is False
        assert "already processed" in second.json()["data"]["message"]

    async def test_unhandled_event_acknowledged(self, client: AsyncClient, mock_stripe_webhook):
        event = MagicMock(id="evt_other", type="customer.created")
        mock_stripe_webhook.Webhook.construct_event.return_value = event

        resp = await client.post(WEBHOOK_URL, content=b"{}", headers=SIGNED)

        assert resp.status_code == 200
        assert resp.json()["data"]["processed"] is False
        assert resp.json()["data"]["event_type"] == "customer.created"

    async def test_failed_event_returns_500_and_is_redelivered(
        self, client: AsyncClient, mock_stripe_webhook, provider_headers
    ):
        mock_stripe_webhook.Webhook.construct_event.return_value = _completed_event("evt_retry")
        broken = AsyncMock(side_effect=RuntimeError("pharmacy sync failed"))

        with patch.dict(webhookHandler._EVENT_HANDLERS, {"checkout.session.completed": broken}):
            failed = await client.post(WEBHOOK_URL, content=b"{}", headers=SIGNED)

        assert failed.status_code == 500
        assert failed.json() == {
            "success": False,
            "error": "Error processing event evt_retry (checkout.session.completed)",
        }
        detail = await client.get(f"/api/v1/order-reviews/{ORDER_ID}", headers=provider_headers)
        assert detail.json()["data"]["order"]["paid_at"] is None

        retried = await client.post(WEBHOOK_URL, content=b"{}", headers=SIGNED)

        assert retried.status_code == 200
        assert retried.json()["data"]["processed"] is True
        detail = await client.get(f"/api/v1/order-reviews/{ORDER_ID}", headers=provider_headers)
        assert detail.json()["data"]["order"]["paid_at"] is not None

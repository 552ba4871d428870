"""
E2E test fixtures for the RxDesk backend.

Provides:
- An in-process FastAPI test app with all routes and error handlers registered
- httpx AsyncClient wired via ASGI transport (no network needed)
- An async SQLite database session (in-memory) for isolation
- Pre-populated seed data: patient, two Texas providers, an admin, orders,
  prescriptions and system logs
- Bearer-token headers for each seeded user

External services (Stripe, Redis, Junction, dependency health checks) are
mocked at the integration level so the full route -> service -> DB flow is
exercised.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator
from unittest.mock import MagicMock, patch

import pytest
import pytest_asyncio
import stripe
from httpx import ASGITransport, AsyncClient
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.ext.compiler import compiles
from sqlalchemy.pool import StaticPool

from rxdesk.models import Base
from rxdesk.services import auth_service


@compiles(JSONB, "sqlite")
def compile_jsonb_sqlite(type_, compiler, **kw):
    return "JSON"


@compiles(UUID, "sqlite")
def compile_uuid_sqlite(type_, compiler, **kw):
    return "CHAR(32)"


# ---------------------------------------------------------------------------
# Test IDs (stable across tests so cross-references work)
# ---------------------------------------------------------------------------

PATIENT_USER_ID = uuid.UUID("aaaaaaaa-aaaa-aaaa-aaaa-aaaaaaaaaaaa")
PROVIDER_USER_ID = uuid.UUID("bbbbbbbb-bbbb-bbbb-bbbb-bbbbbbbbbbbb")
PROVIDER_B_USER_ID = uuid.UUID("cccccccc-cccc-cccc-cccc-cccccccccccc")
ADMIN_USER_ID = uuid.UUID("dddddddd-dddd-dddd-dddd-dddddddddddd")

PROVIDER_PROFILE_ID = uuid.UUID("11111111-1111-1111-1111-111111111111")
PROVIDER_B_PROFILE_ID = uuid.UUID("22222222-2222-2222-2222-222222222222")

ORDER_ID = uuid.UUID("33333333-3333-3333-3333-333333333333")
CA_ORDER_ID = uuid.UUID("44444444-4444-4444-4444-444444444444")

TX_ORDER_COUNT = 23


# ---------------------------------------------------------------------------
# Async engine + session (in-memory SQLite)
# ---------------------------------------------------------------------------

TEST_DB_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture
async def _test_engine():
    """A fresh in-memory database per test; StaticPool keeps one connection."""
    engine = create_async_engine(
        TEST_DB_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(_test_engine) -> AsyncGenerator[AsyncSession, None]:
    session_factory = async_sessionmaker(
        bind=_test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    async with session_factory() as session:
        yield session
        await session.rollback()


# ---------------------------------------------------------------------------
# Seed data
# ---------------------------------------------------------------------------

async def _seed_data(db: AsyncSession) -> None:
    """Insert minimum seed data for E2E tests."""
    from rxdesk.models.order import Order, OrderStatus, ReviewStatus
    from rxdesk.models.prescription import Prescription, PrescriptionStatus
    from rxdesk.models.provider import ProviderProfile
    from rxdesk.models.system_log import LogStatus, SystemLog
    from rxdesk.models.user import User, UserStatus

    now = datetime.now(timezone.utc)

    # -- Users --
    patient = User(
        id=PATIENT_USER_ID,
        email="patient@test.rxdesk.com",
        first_name="Jane",
        last_name="Doe",
        role_patient=True,
        status=UserStatus.ACTIVE,
    )
    provider_user = User(
        id=PROVIDER_USER_ID,
        email="provider@test.rxdesk.com",
        first_name="Maria",
        last_name="Lopez",
        role_provider=True,
        status=UserStatus.ACTIVE,
        timezone="America/Chicago",
    )
    provider_b_user = User(
        id=PROVIDER_B_USER_ID,
        email="provider.b@test.rxdesk.com",
        first_name="Sam",
        last_name="Okafor",
        role_provider=True,
        status=UserStatus.ACTIVE,
        timezone="America/Chicago",
    )
    admin = User(
        id=ADMIN_USER_ID,
        email="admin@test.rxdesk.com",
        first_name="Admin",
        last_name="User",
        role_admin=True,
        status=UserStatus.ACTIVE,
    )
    db.add_all([patient, provider_user, provider_b_user, admin])
    await db.flush()

    # -- Provider profiles (both licensed in Texas) --
    db.add_all([
        ProviderProfile(
            id=PROVIDER_PROFILE_ID,
            user_id=PROVIDER_USER_ID,
            npi_number="1234567893",
            specialty="Family Medicine",
            licensed_state="TX",
            timezone="America/Chicago",
        ),
        ProviderProfile(
            id=PROVIDER_B_PROFILE_ID,
            user_id=PROVIDER_B_USER_ID,
            npi_number="1245319599",
            specialty="Internal Medicine",
            licensed_state="TX",
            timezone="America/Chicago",
        ),
    ])
    await db.flush()

    # -- Orders: 23 in Texas (one owned by the patient), one in California --
    orders = []
    for i in range(TX_ORDER_COUNT):
        orders.append(
            Order(
                id=ORDER_ID if i == 0 else uuid.uuid4(),
                order_number=str(100100 + i),
                user_id=PATIENT_USER_ID if i == 0 else None,
                patient_name="Jane Doe" if i == 0 else f"Patient {i:02d}",
                patient_email="patient@test.rxdesk.com" if i == 0 else None,
                state="TX",
                status=OrderStatus.PROCESSING,
                review_status=ReviewStatus.PENDING,
                total_amount_cents=19900,
                line_items=[{"name": "Semaglutide", "quantity": 1}],
                questionnaire_data={"weight": 182, "smoker": False},
                created_at=now - timedelta(hours=i),
            )
        )
    orders.append(
        Order(
            id=CA_ORDER_ID,
            order_number="200001",
            patient_name="Carl Coast",
            state="CA",
            status=OrderStatus.PENDING,
            review_status=ReviewStatus.PENDING,
            total_amount_cents=9900,
            line_items=[],
            created_at=now,
        )
    )
    db.add_all(orders)
    await db.flush()

    # -- Prescriptions: one stuck, one recent, one past the pharmacy --
    db.add_all([
        Prescription(
            order_id=ORDER_ID,
            patient_name="Jane Doe",
            medication="Semaglutide 0.25mg",
            status=PrescriptionStatus.SUBMITTED,
            submitted_at=now - timedelta(hours=30),
        ),
        Prescription(
            patient_name="Patient 01",
            medication="Metformin 500mg",
            status=PrescriptionStatus.SUBMITTED,
            submitted_at=now - timedelta(hours=2),
        ),
        Prescription(
            patient_name="Patient 02",
            medication="Tirzepatide 2.5mg",
            status=PrescriptionStatus.SHIPPED,
            submitted_at=now - timedelta(days=4),
        ),
    ])

    # -- System logs: two recent errors (below the alert threshold) --
    db.add_all([
        SystemLog(action="login", status=LogStatus.SUCCESS, created_at=now - timedelta(minutes=5)),
        SystemLog(action="pharmacy_submit", status=LogStatus.ERROR, created_at=now - timedelta(minutes=10)),
        SystemLog(action="pharmacy_submit", status=LogStatus.ERROR, created_at=now - timedelta(minutes=20)),
    ])
    await db.flush()


@pytest_asyncio.fixture
async def seeded_db(db_session: AsyncSession) -> AsyncSession:
    """A database session with seed data already committed."""
    await _seed_data(db_session)
    await db_session.commit()
    return db_session


# ---------------------------------------------------------------------------
# FastAPI test application
# ---------------------------------------------------------------------------

def _create_test_app(db_session_override: AsyncSession):
    """Build a FastAPI app with all routes registered and the DB dependency
    overridden to use the test session."""
    from fastapi import FastAPI
    from fastapi.exceptions import RequestValidationError
    from starlette.exceptions import HTTPException as StarletteHTTPException

    from rxdesk.api.deps import get_db
    from rxdesk.api.routes.admin import router as admin_router
    from rxdesk.api.routes.availability import router as availability_router
    from rxdesk.api.routes.billing import router as billing_router
    from rxdesk.api.routes.medicationCatalog import router as medication_router
    from rxdesk.api.routes.orderReviews import router as order_reviews_router
    from rxdesk.api.routes.providerOrders import router as provider_orders_router
    from rxdesk.api.routes.vitals import router as vitals_router
    from rxdesk.main import http_exception_handler, validation_exception_handler

    app = FastAPI(title="RxDesk Test")

    async def _override_get_db():
        yield db_session_override

    app.dependency_overrides[get_db] = _override_get_db
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    for router in (
        availability_router,
        order_reviews_router,
        provider_orders_router,
        admin_router,
        medication_router,
        vitals_router,
        billing_router,
    ):
        app.include_router(router, prefix="/api/v1")

    return app


@pytest_asyncio.fixture
async def client(seeded_db: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """httpx AsyncClient connected to the test app via ASGI transport."""
    app = _create_test_app(seeded_db)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


# ---------------------------------------------------------------------------
# Auth headers
# ---------------------------------------------------------------------------

def auth_headers(user_id: uuid.UUID) -> dict[str, str]:
    token, _ = auth_service.create_access_token(user_id)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def patient_headers() -> dict[str, str]:
    return auth_headers(PATIENT_USER_ID)


@pytest.fixture
def provider_headers() -> dict[str, str]:
    return auth_headers(PROVIDER_USER_ID)


@pytest.fixture
def provider_b_headers() -> dict[str, str]:
    return auth_headers(PROVIDER_B_USER_ID)


@pytest.fixture
def admin_headers() -> dict[str, str]:
    return auth_headers(ADMIN_USER_ID)


# ---------------------------------------------------------------------------
# Stripe mocks (used by billing routes)
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def mock_stripe():
    """Mock the Stripe SDK calls made by the checkout service."""
    with patch("rxdesk.integrations.stripe.checkoutService.stripe") as mod:
        mod.StripeError = stripe.StripeError
        mod.InvalidRequestError = stripe.InvalidRequestError

        empty_page = MagicMock(data=[], has_more=False)
        mod.Customer.list.return_value = empty_page
        mod.Customer.create.return_value = MagicMock(id="cus_test_abc", email="patient@test.rxdesk.com")
        mod.Customer.retrieve.return_value = MagicMock(
            id="cus_test_abc",
            email="patient@test.rxdesk.com",
            deleted=False,
            metadata={"user_id": str(PATIENT_USER_ID)},
        )

        mod.Price.retrieve.return_value = MagicMock(type="one_time")
        mod.checkout.Session.create.return_value = MagicMock(
            id="cs_test_123", url="https://checkout.stripe.com/c/pay/cs_test_123"
        )
        mod.billing_portal.Session.create.return_value = MagicMock(
            url="https://billing.stripe.com/p/session/test_123"
        )
        yield mod


@pytest.fixture(autouse=True)
def mock_stripe_webhook():
    """Replace signature verification; tests set ``construct_event.return_value``."""
    from rxdesk.integrations.stripe import clear_processed_events

    clear_processed_events()
    with patch("rxdesk.integrations.stripe.webhookHandler.stripe") as mod:
        mod.SignatureVerificationError = stripe.SignatureVerificationError
        yield mod
    clear_processed_events()


# ---------------------------------------------------------------------------
# Issue monitor state
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def issue_store(fake_redis, monkeypatch):
    """Point issue history at the in-memory Redis and forget old snapshots."""
    from rxdesk.services import issueMonitor
    from rxdesk.services.issueHistoryStore import IssueHistoryStore, set_history_store

    store = IssueHistoryStore(fake_redis, key="test:issue-history")
    set_history_store(store)
    monkeypatch.setattr(issueMonitor, "_latest_snapshot", None)
    yield store
    set_history_store(None)

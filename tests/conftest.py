"""
Shared pytest fixtures for RxDesk backend unit tests.

Provides mock database sessions, an in-memory Redis stand-in, and sample
domain objects that mirror production ORM models without requiring a live
database connection.
"""

import uuid
from datetime import datetime, timezone
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from rxdesk.models.order import Order, OrderStatus, ReviewStatus
from rxdesk.models.provider import ProviderProfile
from rxdesk.models.user import User, UserStatus


# ---------------------------------------------------------------------------
# Database session mock
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_db() -> AsyncMock:
    """Async mock of ``AsyncSession``.

    Provides a mock that supports ``db.execute()``, ``db.add()``,
    ``db.flush()``, and ``db.commit()`` out of the box.  Individual tests
    can configure ``mock_db.execute.return_value`` (or ``side_effect``) to
    control query results.
    """
    session = AsyncMock()
    session.add = MagicMock()
    session.add_all = MagicMock()
    session.expunge = MagicMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.refresh = AsyncMock()
    return session


# ---------------------------------------------------------------------------
# Redis stand-in
# ---------------------------------------------------------------------------


class _FakePipeline:
    def __init__(self, redis: "FakeRedis") -> None:
        self._redis = redis
        self._ops: list[tuple[str, tuple, dict]] = []

    async def __aenter__(self) -> "_FakePipeline":
        return self

    async def __aexit__(self, *exc_info) -> None:
        self._ops.clear()

    def hdel(self, key, *fields):
        self._ops.append(("hdel", (key, *fields), {}))
        return self

    def hset(self, key, mapping=None):
        self._ops.append(("hset", (key,), {"mapping": mapping}))
        return self

    async def execute(self) -> list:
        results = []
        for name, args, kwargs in self._ops:
            results.append(await getattr(self._redis, name)(*args, **kwargs))
        self._ops.clear()
        return results


class FakeRedis:
    """The subset of ``redis.asyncio.Redis`` hash commands the app uses."""

    def __init__(self) -> None:
        self.hashes: dict[str, dict[str, str]] = {}
        self.closed = False

    async def hgetall(self, key):
        return dict(self.hashes.get(key, {}))

    async def hset(self, key, mapping=None):
        bucket = self.hashes.setdefault(key, {})
        added = sum(1 for k in mapping if k not in bucket)
        bucket.update(mapping)
        return added

    async def hdel(self, key, *fields):
        bucket = self.hashes.get(key, {})
        removed = 0
        for field in fields:
            if bucket.pop(field, None) is not None:
                removed += 1
        return removed

    def pipeline(self, transaction=True):
        return _FakePipeline(self)

    async def aclose(self):
        self.closed = True


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


# ---------------------------------------------------------------------------
# User fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def sample_provider_user() -> User:
    """A licensed provider user."""
    user = MagicMock(spec=User)
    user.id = uuid.uuid4()
    user.email = "provider@example.com"
    user.first_name = "Maria"
    user.last_name = "Lopez"
    user.full_name = "Maria Lopez"
    user.role_patient = False
    user.role_provider = True
    user.role_admin = False
    user.status = UserStatus.ACTIVE
    user.timezone = "America/Chicago"
    user.created_at = datetime(2025, 1, 10, tzinfo=timezone.utc)
    user.updated_at = datetime(2025, 1, 10, tzinfo=timezone.utc)
    return user


@pytest.fixture
def sample_provider(sample_provider_user: User) -> ProviderProfile:
    """A provider licensed in Texas."""
    profile = MagicMock(spec=ProviderProfile)
    profile.id = uuid.uuid4()
    profile.user_id = sample_provider_user.id
    profile.user = sample_provider_user
    profile.npi_number = "1234567893"
    profile.specialty = "Family Medicine"
    profile.licensed_state = "TX"
    profile.timezone = "America/Chicago"
    profile.is_active = True
    return profile


# ---------------------------------------------------------------------------
# Order fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def sample_order() -> Order:
    """A paid order waiting for provider review."""
    order = MagicMock(spec=Order)
    order.id = uuid.uuid4()
    order.order_number = "100234"
    order.user_id = uuid.uuid4()
    order.patient_name = "Jane Doe"
    order.patient_email = "jane@example.com"
    order.state = "TX"
    order.status = OrderStatus.PROCESSING
    order.review_status = ReviewStatus.PENDING
    order.reviewed_by = None
    order.review_started_at = None
    order.reviewed_at = None
    order.total_amount_cents = 19900
    order.line_items = [{"name": "Semaglutide", "quantity": 1}]
    order.questionnaire_data = {
        "height": {"feet": 5, "inches": 7},
        "weight": 182,
        "allergies": ["penicillin"],
        "pregnant": False,
    }
    order.created_at = datetime(2025, 2, 3, 15, 30, tzinfo=timezone.utc)
    return order

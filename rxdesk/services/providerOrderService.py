"""
Provider Order Service
======================

Order queue for the provider dashboard. The full order set for the
provider's licensed state is fetched, then searched, filtered, sorted
(newest first) and sliced into a page in Python.

Key functions:
  - search_matches            -- order number / patient name / M/D/YYYY date
  - filter_orders             -- search + status + review status
  - paginate                  -- 1-indexed page slice with totals
  - generate_pagination_pages -- sliding window of page numbers for the UI
  - format_patient_name       -- "Jane D." privacy-preserving name
  - get_provider_orders       -- the dashboard query
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, Protocol, Sequence, TypeVar

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from rxdesk.models.order import Order, OrderStatus, ReviewStatus
from rxdesk.models.provider import ProviderProfile

logger = logging.getLogger(__name__)

T = TypeVar("T")


class OrderLike(Protocol):
    order_number: str
    patient_name: str
    created_at: datetime
    status: OrderStatus
    review_status: ReviewStatus


# ---------------------------------------------------------------------------
# Pagination helper (same shape as the other list endpoints)
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PaginatedResult:
    """Generic container for a page of results plus metadata."""

    items: Sequence
    total_items: int
    page: int
    page_size: int

    @property
    def total_pages(self) -> int:
        if self.total_items == 0:
            return 0
        return math.ceil(self.total_items / self.page_size)


@dataclass(frozen=True)
class OrderFilters:
    search: str | None = None
    status: OrderStatus | None = None
    review_status: ReviewStatus | None = None
    page: int = 1
    page_size: int = 10


# ---------------------------------------------------------------------------
# Formatting
# ---------------------------------------------------------------------------

def _as_utc(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def format_order_date(value: datetime) -> str:
    """``M/D/YYYY`` without zero padding, e.g. ``3/7/2025``."""
    return f"{value.month}/{value.day}/{value.year}"


def format_patient_name(first_name: str, last_name: str, full_name: bool = False) -> str:
    if not first_name and not last_name:
        return "Unknown"
    if full_name:
        return f"{first_name} {last_name}".strip()
    last_initial = f"{last_name[0].upper()}." if last_name else ""
    return f"{first_name} {last_initial}".strip()


# ---------------------------------------------------------------------------
# Search / filter / sort / slice
# ---------------------------------------------------------------------------

def search_matches(query: str | None, order: OrderLike) -> bool:
    """Case-insensitive substring match on number, patient name or date.

    An empty or whitespace-only query matches every order.
    """
    if not query or not query.strip():
        return True

    needle = query.strip().lower()
    return (
        needle in order.order_number.lower()
        or needle in order.patient_name.lower()
        or needle in format_order_date(order.created_at)
    )


def filter_orders(orders: Iterable[T], filters: OrderFilters) -> list[T]:
    """Apply search and status filters, newest first."""
    matched = [
        o
        for o in orders
        if search_matches(filters.search, o)
        and (filters.status is None or o.status == filters.status)
        and (filters.review_status is None or o.review_status == filters.review_status)
    ]
    matched.sort(key=lambda o: _as_utc(o.created_at), reverse=True)
    return matched


def paginate(items: Sequence[T], page: int, page_size: int) -> PaginatedResult:
    """Slice ``items`` into a 1-indexed page.

    Raises:
        ValueError: If ``page`` or ``page_size`` is less than 1.
    """
    if page < 1:
        raise ValueError(f"page must be >= 1, got {page}")
    if page_size < 1:
        raise ValueError(f"page_size must be >= 1, got {page_size}")

    start = (page - 1) * page_size
    return PaginatedResult(
        items=list(items[start:start + page_size]),
        total_items=len(items),
        page=page,
        page_size=page_size,
    )


def generate_pagination_pages(current_page: int, total_pages: int, max_pages: int = 5) -> list[int]:
    """Page numbers to render in the pager, centred on ``current_page``."""
    if total_pages <= max_pages:
        return list(range(1, total_pages + 1))

    start = max(1, current_page - max_pages // 2)
    end = min(total_pages, start + max_pages - 1)
    if end - start + 1 < max_pages:
        start = max(1, end - max_pages + 1)
    return list(range(start, end + 1))


# ---------------------------------------------------------------------------
# Dashboard query
# ---------------------------------------------------------------------------

async def get_provider_orders(
    db: AsyncSession,
    provider: ProviderProfile,
    filters: OrderFilters,
) -> PaginatedResult:
    """Orders shipping to the provider's licensed state, filtered and paged."""
    state = provider.licensed_state.upper()
    result = await db.execute(select(Order).where(Order.state == state))
    orders = result.scalars().all()

    matched = filter_orders(orders, filters)
    page = paginate(matched, filters.page, filters.page_size)

    logger.debug(
        "Provider %s dashboard: state=%s fetched=%d matched=%d page=%d/%d",
        provider.id,
        state,
        len(orders),
        len(matched),
        filters.page,
        page.total_pages,
    )
    return page

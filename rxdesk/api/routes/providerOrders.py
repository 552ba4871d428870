"""
Provider order dashboard routes
===============================

Routes:
  GET /api/v1/provider-orders   -- orders in the provider's licensed state,
                                   searchable, filterable and paginated
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Query

from rxdesk.api.deps import CurrentProvider, DBSession
from rxdesk.api.schemas.common import Envelope, page_meta
from rxdesk.api.schemas.order import OrderListItem
from rxdesk.core.config import settings
from rxdesk.models.order import OrderStatus, ReviewStatus
from rxdesk.services import providerOrderService
from rxdesk.services.providerOrderService import OrderFilters, format_order_date

router = APIRouter(prefix="/provider-orders", tags=["Provider Orders"])


@router.get(
    "",
    response_model=Envelope[list[OrderListItem]],
    summary="List orders for the provider dashboard",
    description=(
        "Search matches order number, patient name or the M/D/YYYY order "
        "date, case-insensitively. Results are newest first."
    ),
)
async def list_provider_orders(
    db: DBSession,
    provider: CurrentProvider,
    search: Optional[str] = Query(default=None, max_length=200),
    order_status: Optional[OrderStatus] = Query(default=None, alias="status"),
    review_status: Optional[ReviewStatus] = Query(default=None),
    page: int = Query(default=1, ge=1, description="Page number (1-indexed)"),
    page_size: int = Query(
        default=settings.default_page_size,
        ge=1,
        le=settings.max_page_size,
        description="Number of items per page",
    ),
) -> Envelope[list[OrderListItem]]:
    result = await providerOrderService.get_provider_orders(
        db,
        provider,
        OrderFilters(
            search=search,
            status=order_status,
            review_status=review_status,
            page=page,
            page_size=page_size,
        ),
    )

    items = []
    for order in result.items:
        item = OrderListItem.model_validate(order)
        item.created_display = format_order_date(order.created_at)
        items.append(item)

    return Envelope(data=items, meta=page_meta(result))

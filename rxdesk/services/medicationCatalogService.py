"""
Medication Catalog Service
==========================

CRUD over the pharmacy's medication catalog. Queries use async SQLAlchemy
sessions and return ORM instances that the route layer converts to
Pydantic schemas.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from rxdesk.models.medication import MedicationCatalogItem
from rxdesk.services.providerOrderService import PaginatedResult

logger = logging.getLogger(__name__)

_UPDATABLE_FIELDS = frozenset({
    "name",
    "strength",
    "form",
    "category",
    "description",
    "price_cents",
    "stripe_price_id",
    "requires_prescription",
    "is_active",
})


class MedicationNotFoundError(Exception):
    def __init__(self, medication_id: uuid.UUID) -> None:
        super().__init__(f"Medication {medication_id} not found")
        self.medication_id = medication_id


async def list_medications(
    db: AsyncSession,
    *,
    search: Optional[str] = None,
    category: Optional[str] = None,
    include_inactive: bool = False,
    page: int = 1,
    page_size: int = 20,
) -> PaginatedResult:
    """Paginated catalog listing ordered by name.

    ``search`` matches name or description case-insensitively; ``category``
    is an exact match.
    """
    filters = []
    if not include_inactive:
        filters.append(MedicationCatalogItem.is_active.is_(True))
    if category:
        filters.append(MedicationCatalogItem.category == category)
    if search and search.strip():
        pattern = f"%{search.strip()}%"
        filters.append(
            or_(
                MedicationCatalogItem.name.ilike(pattern),
                MedicationCatalogItem.description.ilike(pattern),
            )
        )

    count_stmt = select(func.count(MedicationCatalogItem.id)).where(*filters)
    total_items: int = (await db.execute(count_stmt)).scalar_one()

    data_stmt = (
        select(MedicationCatalogItem)
        .where(*filters)
        .order_by(MedicationCatalogItem.name, MedicationCatalogItem.strength)
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    items = (await db.execute(data_stmt)).scalars().all()

    return PaginatedResult(
        items=items,
        total_items=total_items,
        page=page,
        page_size=page_size,
    )


async def get_medication(db: AsyncSession, medication_id: uuid.UUID) -> MedicationCatalogItem:
    result = await db.execute(
        select(MedicationCatalogItem).where(MedicationCatalogItem.id == medication_id)
    )
    item = result.scalar_one_or_none()
    if item is None:
        raise MedicationNotFoundError(medication_id)
    return item


async def create_medication(db: AsyncSession, **fields: Any) -> MedicationCatalogItem:
    unknown = set(fields) - _UPDATABLE_FIELDS
    if unknown:
        raise ValueError(f"Unknown medication fields: {', '.join(sorted(unknown))}")
    if not (fields.get("name") or "").strip():
        raise ValueError("Medication name is required")

    item = MedicationCatalogItem(**fields)
    db.add(item)
    await db.flush()
    logger.info("Medication created: id=%s, name=%s", item.id, item.name)
    return item


async def update_medication(
    db: AsyncSession,
    medication_id: uuid.UUID,
    **changes: Any,
) -> MedicationCatalogItem:
    unknown = set(changes) - _UPDATABLE_FIELDS
    if unknown:
        raise ValueError(f"Unknown medication fields: {', '.join(sorted(unknown))}")
    if "name" in changes and not (changes["name"] or "").strip():
        raise ValueError("Medication name is required")

    item = await get_medication(db, medication_id)
    for key, value in changes.items():
        setattr(item, key, value)
    await db.flush()
    await db.refresh(item)
    logger.info("Medication updated: id=%s, fields=%s", item.id, sorted(changes))
    return item


async def delete_medication(db: AsyncSession, medication_id: uuid.UUID) -> None:
    item = await get_medication(db, medication_id)
    await db.delete(item)
    await db.flush()
    logger.info("Medication deleted: id=%s", medication_id)

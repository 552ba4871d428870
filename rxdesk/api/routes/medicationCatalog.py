"""
Medication catalog routes
=========================

Routes:
  GET    /api/v1/medication-catalog                  -- paginated, searchable list
  GET    /api/v1/medication-catalog/{medication_id}  -- single item
  POST   /api/v1/medication-catalog                  -- create (admin)
  PATCH  /api/v1/medication-catalog/{medication_id}  -- partial update (admin)
  DELETE /api/v1/medication-catalog/{medication_id}  -- delete (admin)
"""

from __future__ import annotations

import uuid
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, status

from rxdesk.api.deps import AdminUser, CurrentUser, DBSession
from rxdesk.api.schemas.common import Envelope, page_meta
from rxdesk.api.schemas.medication import MedicationCreate, MedicationOut, MedicationUpdate
from rxdesk.core.config import settings
from rxdesk.services import medicationCatalogService
from rxdesk.services.medicationCatalogService import MedicationNotFoundError

router = APIRouter(prefix="/medication-catalog", tags=["Medication Catalog"])


def _not_found(exc: MedicationNotFoundError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))


@router.get(
    "",
    response_model=Envelope[list[MedicationOut]],
    summary="List catalog medications",
)
async def list_medications(
    db: DBSession,
    user: CurrentUser,
    search: Optional[str] = Query(default=None, max_length=200),
    category: Optional[str] = Query(default=None, max_length=100),
    include_inactive: bool = Query(default=False),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(
        default=settings.default_page_size,
        ge=1,
        le=settings.max_page_size,
    ),
) -> Envelope[list[MedicationOut]]:
    result = await medicationCatalogService.list_medications(
        db,
        search=search,
        category=category,
        include_inactive=include_inactive and user.role_admin,
        page=page,
        page_size=page_size,
    )
    return Envelope(
        data=[MedicationOut.model_validate(m) for m in result.items],
        meta=page_meta(result),
    )


@router.get(
    "/{medication_id}",
    response_model=Envelope[MedicationOut],
    summary="Get a catalog medication",
)
async def get_medication(
    db: DBSession,
    user: CurrentUser,
    medication_id: uuid.UUID,
) -> Envelope[MedicationOut]:
    try:
        item = await medicationCatalogService.get_medication(db, medication_id)
    except MedicationNotFoundError as exc:
        raise _not_found(exc) from exc
    return Envelope(data=MedicationOut.model_validate(item))


@router.post(
    "",
    response_model=Envelope[MedicationOut],
    status_code=status.HTTP_201_CREATED,
    summary="Add a medication to the catalog",
)
async def create_medication(
    db: DBSession,
    admin: AdminUser,
    body: MedicationCreate,
) -> Envelope[MedicationOut]:
    try:
        item = await medicationCatalogService.create_medication(db, **body.model_dump())
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(exc),
        ) from exc
    return Envelope(data=MedicationOut.model_validate(item))


@router.patch(
    "/{medication_id}",
    response_model=Envelope[MedicationOut],
    summary="Update a catalog medication",
)
async def update_medication(
    db: DBSession,
    admin: AdminUser,
    medication_id: uuid.UUID,
    body: MedicationUpdate,
) -> Envelope[MedicationOut]:
    try:
        item = await medicationCatalogService.update_medication(
            db, medication_id, **body.model_dump(exclude_unset=True)
        )
    except MedicationNotFoundError as exc:
        raise _not_found(exc) from exc
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(exc),
        ) from exc
    return Envelope(data=MedicationOut.model_validate(item))


@router.delete(
    "/{medication_id}",
    response_model=Envelope[dict],
    summary="Delete a catalog medication",
)
async def delete_medication(
    db: DBSession,
    admin: AdminUser,
    medication_id: uuid.UUID,
) -> Envelope[dict]:
    try:
        await medicationCatalogService.delete_medication(db, medication_id)
    except MedicationNotFoundError as exc:
        raise _not_found(exc) from exc
    return Envelope(data={"deleted": str(medication_id)})

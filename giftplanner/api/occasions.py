"""
Occasions API — Occasion CRUD, upcoming occasions and reminders.

GET    /api/v1/occasions              — List occasions (by date)
GET    /api/v1/occasions/upcoming     — Occasions still ahead, soonest first
GET    /api/v1/occasions/reminders    — Occasions inside their reminder window
POST   /api/v1/occasions              — Create (title defaults to "<Name>'s <Type>")
GET    /api/v1/occasions/{id}         — Get one occasion
PUT    /api/v1/occasions/{id}         — Update
DELETE /api/v1/occasions/{id}         — Delete
"""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from giftplanner.api.deps import get_stores
from giftplanner.db.entity_store import Stores
from giftplanner.models.entities import (
    Contact,
    Occasion,
    OccasionCreate,
    OccasionUpdate,
)
from giftplanner.services.occasions import (
    default_occasion_title,
    due_reminders,
    upcoming_occasions,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/occasions", tags=["occasions"])


async def _load_occasions(stores: Stores) -> list[Occasion]:
    rows = await stores.occasions.list(sort="date")
    return [Occasion.model_validate(r) for r in rows]


@router.get("", response_model=list[Occasion])
async def list_occasions(
    contact_id: Optional[str] = Query(default=None),
    stores: Stores = Depends(get_stores),
) -> list[Occasion]:
    if contact_id:
        rows = await stores.occasions.filter(contact_id=contact_id)
        return sorted((Occasion.model_validate(r) for r in rows), key=lambda o: o.date)
    return await _load_occasions(stores)


@router.get("/upcoming", response_model=list[Occasion])
async def list_upcoming_occasions(
    on: Optional[date] = Query(default=None, description="Reference date (defaults to today)."),
    stores: Stores = Depends(get_stores),
) -> list[Occasion]:
    return upcoming_occasions(await _load_occasions(stores), on or date.today())


@router.get("/reminders", response_model=list[Occasion])
async def list_due_reminders(
    on: Optional[date] = Query(default=None, description="Reference date (defaults to today)."),
    stores: Stores = Depends(get_stores),
) -> list[Occasion]:
    return due_reminders(await _load_occasions(stores), on or date.today())


@router.post("", status_code=status.HTTP_201_CREATED, response_model=Occasion)
async def create_occasion(
    payload: OccasionCreate,
    stores: Stores = Depends(get_stores),
) -> Occasion:
    """
    Create an occasion for an existing contact.

    When no title is given, one is derived from the contact's first name
    and the occasion type. Custom occasions must be titled explicitly.
    """
    contact = Contact.model_validate(await stores.contacts.get(payload.contact_id))

    title = (payload.title or "").strip() or default_occasion_title(contact, payload.type)
    if not title:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="A title is required for custom occasions.",
        )

    fields = payload.model_dump(mode="json")
    fields["title"] = title
    row = await stores.occasions.create(fields)
    logger.info("Created occasion %s for contact %s", row.get("id"), contact.id)
    return Occasion.model_validate(row)


@router.get("/{occasion_id}", response_model=Occasion)
async def get_occasion(occasion_id: str, stores: Stores = Depends(get_stores)) -> Occasion:
    return Occasion.model_validate(await stores.occasions.get(occasion_id))


@router.put("/{occasion_id}", response_model=Occasion)
async def update_occasion(
    occasion_id: str,
    payload: OccasionUpdate,
    stores: Stores = Depends(get_stores),
) -> Occasion:
    changes = payload.model_dump(mode="json", exclude_unset=True)
    if changes.get("contact_id"):
        await stores.contacts.get(changes["contact_id"])
    row = await stores.occasions.update(occasion_id, changes)
    return Occasion.model_validate(row)


@router.delete("/{occasion_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_occasion(occasion_id: str, stores: Stores = Depends(get_stores)) -> None:
    """
    Delete an occasion. Gifts planned for it are kept and fall back to
    the "General Gifts" group in spending summaries.
    """
    await stores.occasions.delete(occasion_id)

"""
Gifts API — Gift CRUD plus the gift-level shopping actions.

GET    /api/v1/gifts                     — List gifts (newest first)
POST   /api/v1/gifts                     — Create a gift
GET    /api/v1/gifts/{id}                — Get one gift
PUT    /api/v1/gifts/{id}                — Update a gift
DELETE /api/v1/gifts/{id}                — Delete a gift and its shopping options
GET    /api/v1/gifts/{id}/options        — Shopping options for a gift
POST   /api/v1/gifts/{id}/options        — Add a manually entered option
DELETE /api/v1/gifts/{id}/options        — Clear all options ("reshop all")
POST   /api/v1/gifts/{id}/suggestions    — Generate AI suggestions for a gift
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from giftplanner.api.deps import get_reconciler, get_stores
from giftplanner.core.errors import EntityNotFoundError
from giftplanner.db.entity_store import Stores
from giftplanner.models.entities import (
    Contact,
    Gift,
    GiftCreate,
    GiftUpdate,
    ShoppingOption,
)
from giftplanner.models.shopping import ManualOptionCreate, SuggestionsResponse
from giftplanner.services.shopping import ShoppingOptionReconciler

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/gifts", tags=["gifts"])


async def load_gift_contact(stores: Stores, gift: Gift) -> Contact:
    """
    The contact a gift is for; 409 when it was deleted or never set.

    Suggestion prompts are built from the contact, so shopping actions
    cannot proceed without one.
    """
    if gift.contact_id:
        try:
            return Contact.model_validate(await stores.contacts.get(gift.contact_id))
        except EntityNotFoundError:
            logger.warning("Gift %s references missing contact %s", gift.id, gift.contact_id)
    raise HTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail="This gift's assigned contact may have been deleted. "
               "Please edit the gift to re-assign a contact.",
    )


@router.get("", response_model=list[Gift])
async def list_gifts(
    contact_id: Optional[str] = Query(default=None),
    occasion_id: Optional[str] = Query(default=None),
    stores: Stores = Depends(get_stores),
) -> list[Gift]:
    filters = {k: v for k, v in (("contact_id", contact_id), ("occasion_id", occasion_id)) if v}
    if filters:
        rows = await stores.gifts.filter(**filters)
    else:
        rows = await stores.gifts.list(sort="-created_date")
    return [Gift.model_validate(r) for r in rows]


@router.post("", status_code=status.HTTP_201_CREATED, response_model=Gift)
async def create_gift(payload: GiftCreate, stores: Stores = Depends(get_stores)) -> Gift:
    await stores.contacts.get(payload.contact_id)
    if payload.occasion_id:
        await stores.occasions.get(payload.occasion_id)
    row = await stores.gifts.create(payload.model_dump(mode="json"))
    logger.info("Created gift %s", row.get("id"))
    return Gift.model_validate(row)


@router.get("/{gift_id}", response_model=Gift)
async def get_gift(gift_id: str, stores: Stores = Depends(get_stores)) -> Gift:
    return Gift.model_validate(await stores.gifts.get(gift_id))


@router.put("/{gift_id}", response_model=Gift)
async def update_gift(
    gift_id: str,
    payload: GiftUpdate,
    stores: Stores = Depends(get_stores),
) -> Gift:
    row = await stores.gifts.update(gift_id, payload.model_dump(mode="json", exclude_unset=True))
    return Gift.model_validate(row)


@router.delete("/{gift_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_gift(gift_id: str, stores: Stores = Depends(get_stores)) -> None:
    await stores.gifts.get(gift_id)
    await stores.delete_gift(gift_id)


# ===================================================================
# Gift-level shopping actions
# ===================================================================

@router.get("/{gift_id}/options", response_model=list[ShoppingOption])
async def list_gift_options(gift_id: str, stores: Stores = Depends(get_stores)) -> list[ShoppingOption]:
    await stores.gifts.get(gift_id)
    rows = await stores.shopping_options.filter(gift_id=gift_id)
    return [ShoppingOption.model_validate(r) for r in rows]


@router.post(
    "/{gift_id}/options",
    status_code=status.HTTP_201_CREATED,
    response_model=ShoppingOption,
)
async def add_manual_option(
    gift_id: str,
    payload: ManualOptionCreate,
    stores: Stores = Depends(get_stores),
    reconciler: ShoppingOptionReconciler = Depends(get_reconciler),
) -> ShoppingOption:
    """Manual-entry fallback when suggestions come back empty or miss the mark."""
    await stores.gifts.get(gift_id)
    return await reconciler.add_manual_option(gift_id, payload)


@router.delete("/{gift_id}/options")
async def clear_gift_options(
    gift_id: str,
    stores: Stores = Depends(get_stores),
    reconciler: ShoppingOptionReconciler = Depends(get_reconciler),
) -> dict:
    await stores.gifts.get(gift_id)
    removed = await reconciler.clear_options(gift_id)
    return {"gift_id": gift_id, "removed": removed}


@router.post("/{gift_id}/suggestions", response_model=SuggestionsResponse)
async def generate_gift_suggestions(
    gift_id: str,
    stores: Stores = Depends(get_stores),
    reconciler: ShoppingOptionReconciler = Depends(get_reconciler),
) -> SuggestionsResponse:
    """
    Generate AI shopping suggestions and store them as Suggested options.

    An empty result is not an error: the response has count 0 and the
    client offers manual entry instead.
    """
    gift = Gift.model_validate(await stores.gifts.get(gift_id))
    contact = await load_gift_contact(stores, gift)
    options = await reconciler.add_suggestions(gift, contact)
    return SuggestionsResponse(gift_id=gift_id, options=options, count=len(options))

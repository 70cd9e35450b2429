"""
Contacts API — Contact CRUD and per-contact spending.

GET    /api/v1/contacts                 — List contacts
POST   /api/v1/contacts                 — Create a contact
GET    /api/v1/contacts/{id}            — Get one contact
PUT    /api/v1/contacts/{id}            — Update a contact
DELETE /api/v1/contacts/{id}            — Delete a contact with its occasions, gifts and options
GET    /api/v1/contacts/{id}/spending   — Spend summary grouped by occasion
POST   /api/v1/contacts/{id}/flowers    — Flower arrangements to order for the contact
"""

import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Depends, status

from giftplanner.api.deps import get_stores, get_suggestion_generator, statuses_query
from giftplanner.core.config import CONTACT_SPEND_STATUSES
from giftplanner.core.errors import EntityNotFoundError
from giftplanner.db.entity_store import Stores
from giftplanner.models.entities import (
    AffiliateLink,
    Contact,
    ContactCreate,
    ContactUpdate,
    Gift,
    Occasion,
)
from giftplanner.models.reports import ContactSpendSummary
from giftplanner.models.shopping import FlowerOptionsResponse, FlowerOrderRequest
from giftplanner.services.flowers import find_flower_arrangements
from giftplanner.services.spending import contact_spend_summary
from giftplanner.services.suggestions import SuggestionGenerator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/contacts", tags=["contacts"])


@router.get("", response_model=list[Contact])
async def list_contacts(stores: Stores = Depends(get_stores)) -> list[Contact]:
    rows = await stores.contacts.list(sort="name")
    return [Contact.model_validate(r) for r in rows]


@router.post("", status_code=status.HTTP_201_CREATED, response_model=Contact)
async def create_contact(
    payload: ContactCreate,
    stores: Stores = Depends(get_stores),
) -> Contact:
    row = await stores.contacts.create(payload.model_dump(mode="json"))
    logger.info("Created contact %s", row.get("id"))
    return Contact.model_validate(row)


@router.get("/{contact_id}", response_model=Contact)
async def get_contact(contact_id: str, stores: Stores = Depends(get_stores)) -> Contact:
    return Contact.model_validate(await stores.contacts.get(contact_id))


@router.put("/{contact_id}", response_model=Contact)
async def update_contact(
    contact_id: str,
    payload: ContactUpdate,
    stores: Stores = Depends(get_stores),
) -> Contact:
    row = await stores.contacts.update(contact_id, payload.model_dump(mode="json", exclude_unset=True))
    return Contact.model_validate(row)


@router.delete("/{contact_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_contact(contact_id: str, stores: Stores = Depends(get_stores)) -> None:
    """Delete the contact and everything planned for them."""
    await stores.contacts.get(contact_id)  # 404 for unknown ids
    await stores.delete_contact(contact_id)


@router.get("/{contact_id}/spending", response_model=ContactSpendSummary)
async def get_contact_spending(
    contact_id: str,
    statuses: Optional[frozenset[str]] = Depends(statuses_query),
    stores: Stores = Depends(get_stores),
) -> ContactSpendSummary:
    """
    Spending for one contact, grouped by occasion.

    Counts purchased and given gifts by default (see ?statuses=). Works
    for a contact that has since been deleted: the summary is labelled
    "Unknown Contact" and built from whatever gifts still reference it.
    """
    gift_rows, occasion_rows = await asyncio.gather(
        stores.gifts.filter(contact_id=contact_id),
        stores.occasions.filter(contact_id=contact_id),
    )

    contact: Optional[Contact] = None
    try:
        contact = Contact.model_validate(await stores.contacts.get(contact_id))
    except EntityNotFoundError:
        logger.warning("Spending requested for missing contact %s", contact_id)

    return contact_spend_summary(
        contact_id=contact_id,
        contact=contact,
        gifts=[Gift.model_validate(r) for r in gift_rows],
        occasions=[Occasion.model_validate(r) for r in occasion_rows],
        spent_statuses=statuses or CONTACT_SPEND_STATUSES,
    )


@router.post("/{contact_id}/flowers", response_model=FlowerOptionsResponse)
async def find_contact_flowers(
    contact_id: str,
    payload: FlowerOrderRequest,
    stores: Stores = Depends(get_stores),
    generator: SuggestionGenerator = Depends(get_suggestion_generator),
) -> FlowerOptionsResponse:
    """
    Find flower arrangements to send to a contact.

    Store URLs come back with affiliate tracking applied where an active
    link covers the florist (affiliate_url). No arrangements found is an
    empty list, not an error.
    """
    contact_row, link_rows = await asyncio.gather(
        stores.contacts.get(contact_id),
        stores.affiliate_links.list(),
    )
    links = [AffiliateLink.model_validate(r) for r in link_rows]
    return await find_flower_arrangements(
        Contact.model_validate(contact_row), payload, generator, links,
    )

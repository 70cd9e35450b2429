"""
Dashboard API — Headline stats, spending per contact and occasion gift lists.

GET  /api/v1/dashboard/stats                — Counts, total spent and recent gifts
GET  /api/v1/dashboard/spending-by-contact  — Spend per contact, highest first
POST /api/v1/dashboard/gift-lists           — Ensure each occasion has a gift with suggestions
"""

import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Depends

from giftplanner.api.deps import get_reconciler, get_stores, statuses_query
from giftplanner.core.config import DASHBOARD_SPEND_STATUSES
from giftplanner.db.entity_store import Stores
from giftplanner.models.entities import Contact, Gift, Occasion
from giftplanner.models.reports import DashboardStats, SpendingByContactResponse
from giftplanner.models.shopping import GiftListsResponse
from giftplanner.services.shopping import ShoppingOptionReconciler
from giftplanner.services.spending import dashboard_stats, spending_by_contact

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/dashboard", tags=["dashboard"])


async def _load_all(stores: Stores) -> tuple[list[Contact], list[Occasion], list[Gift]]:
    contact_rows, occasion_rows, gift_rows = await asyncio.gather(
        stores.contacts.list(sort="name"),
        stores.occasions.list(sort="date"),
        stores.gifts.list(sort="-created_date"),
    )
    return (
        [Contact.model_validate(r) for r in contact_rows],
        [Occasion.model_validate(r) for r in occasion_rows],
        [Gift.model_validate(r) for r in gift_rows],
    )


@router.get("/stats", response_model=DashboardStats)
async def get_dashboard_stats(
    statuses: Optional[frozenset[str]] = Depends(statuses_query),
    stores: Stores = Depends(get_stores),
) -> DashboardStats:
    """Totals across everything; purchased, delivered and given count as spent by default."""
    contacts, occasions, gifts = await _load_all(stores)
    return dashboard_stats(contacts, occasions, gifts, statuses or DASHBOARD_SPEND_STATUSES)


@router.get("/spending-by-contact", response_model=SpendingByContactResponse)
async def get_spending_by_contact(
    statuses: Optional[frozenset[str]] = Depends(statuses_query),
    stores: Stores = Depends(get_stores),
) -> SpendingByContactResponse:
    contacts, _, gifts = await _load_all(stores)
    wanted = statuses or DASHBOARD_SPEND_STATUSES
    entries = spending_by_contact(contacts, gifts, wanted)
    return SpendingByContactResponse(
        contacts=entries,
        total_spent=sum(e.total_spent for e in entries),
        spent_statuses=sorted(wanted),
    )


@router.post("/gift-lists", response_model=GiftListsResponse)
async def build_gift_lists(
    stores: Stores = Depends(get_stores),
    reconciler: ShoppingOptionReconciler = Depends(get_reconciler),
) -> GiftListsResponse:
    """
    Make sure every occasion has a base gift with shopping suggestions.

    Occasions whose contact was deleted are skipped and reported in
    skipped_occasion_ids.
    """
    contacts, occasions, _ = await _load_all(stores)
    result = await reconciler.ensure_occasion_gift_lists(occasions, contacts)
    logger.info(
        "Gift lists: %d ready, %d skipped",
        len(result.gift_lists), len(result.skipped_occasion_ids),
    )
    return result

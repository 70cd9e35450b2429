"""
Shopping Options API — Linking, reshopping and bulk purchase.

GET    /api/v1/shopping-options                 — List options (optionally ?gift_id=)
GET    /api/v1/shopping-options/purchasable     — Only options that are ready to buy
GET    /api/v1/shopping-options/by-gift         — Options grouped by gift ("orphaned" for missing gifts)
GET    /api/v1/shopping-options/{id}/search-url — Web search link for finding a real product page
DELETE /api/v1/shopping-options/{id}            — Remove an option
POST   /api/v1/shopping-options/{id}/link       — Suggested → Linked (URL, store, price)
POST   /api/v1/shopping-options/{id}/reshop     — Replace with a new suggestion in the same category
POST   /api/v1/shopping-options/bulk-purchase   — URLs to open for the selected, linked options
"""

import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from giftplanner.api.deps import get_reconciler, get_stores
from giftplanner.api.gifts import load_gift_contact
from giftplanner.core.errors import ShoppingOptionStateError
from giftplanner.db.entity_store import Stores
from giftplanner.models.entities import AffiliateLink, Gift, ShoppingOption
from giftplanner.models.shopping import (
    BulkPurchasePlan,
    BulkPurchaseRequest,
    LinkOptionRequest,
    ReshopResponse,
)
from giftplanner.services.affiliate import search_url_for
from giftplanner.services.shopping import (
    ShoppingOptionReconciler,
    group_options_by_gift,
    plan_bulk_purchase,
    purchasable_options,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/shopping-options", tags=["shopping-options"])


async def _load_options(stores: Stores, gift_id: Optional[str] = None) -> list[ShoppingOption]:
    if gift_id:
        rows = await stores.shopping_options.filter(gift_id=gift_id)
    else:
        rows = await stores.shopping_options.list(sort="created_date")
    return [ShoppingOption.model_validate(r) for r in rows]


@router.get("", response_model=list[ShoppingOption])
async def list_shopping_options(
    gift_id: Optional[str] = Query(default=None),
    stores: Stores = Depends(get_stores),
) -> list[ShoppingOption]:
    return await _load_options(stores, gift_id)


@router.get("/purchasable", response_model=list[ShoppingOption])
async def list_purchasable_options(
    gift_id: Optional[str] = Query(default=None),
    stores: Stores = Depends(get_stores),
) -> list[ShoppingOption]:
    return purchasable_options(await _load_options(stores, gift_id))


@router.get("/by-gift", response_model=dict[str, list[ShoppingOption]])
async def list_options_by_gift(stores: Stores = Depends(get_stores)) -> dict[str, list[ShoppingOption]]:
    options, gift_rows = await asyncio.gather(
        _load_options(stores),
        stores.gifts.list(),
    )
    return group_options_by_gift(options, [Gift.model_validate(r) for r in gift_rows])


@router.get("/{option_id}/search-url")
async def get_option_search_url(option_id: str, stores: Stores = Depends(get_stores)) -> dict:
    """Search link used to find and link a Suggested option by hand."""
    option = ShoppingOption.model_validate(await stores.shopping_options.get(option_id))
    return {"option_id": option_id, "url": search_url_for(option.search_terms or option.title)}


@router.post("/bulk-purchase", response_model=BulkPurchasePlan)
async def bulk_purchase(
    payload: BulkPurchaseRequest,
    stores: Stores = Depends(get_stores),
) -> BulkPurchasePlan:
    """
    Resolve the selected options into store URLs to open.

    Options still waiting for a manual link are never opened, even when
    selected; they are listed in skipped_ids. URLs carry affiliate
    tracking where a link is configured for the store's domain.
    """
    options, link_rows = await asyncio.gather(
        _load_options(stores),
        stores.affiliate_links.list(),
    )
    links = [AffiliateLink.model_validate(r) for r in link_rows]
    plan = plan_bulk_purchase(payload.option_ids, options, links)
    logger.info(
        "Bulk purchase: opening %d option(s), skipped %d",
        len(plan.urls), len(plan.skipped_ids),
    )
    return plan


@router.delete("/{option_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_shopping_option(option_id: str, stores: Stores = Depends(get_stores)) -> None:
    await stores.shopping_options.delete(option_id)


@router.post("/{option_id}/link", response_model=ShoppingOption)
async def link_shopping_option(
    option_id: str,
    payload: LinkOptionRequest,
    reconciler: ShoppingOptionReconciler = Depends(get_reconciler),
) -> ShoppingOption:
    """Attach a real store URL, store name and confirmed price to an option."""
    try:
        return await reconciler.link_option(
            option_id,
            store_url=payload.store_url,
            store_name=payload.store_name,
            current_price=payload.current_price,
        )
    except ShoppingOptionStateError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(exc),
        )


@router.post("/{option_id}/reshop", response_model=ReshopResponse)
async def reshop_shopping_option(
    option_id: str,
    stores: Stores = Depends(get_stores),
    reconciler: ShoppingOptionReconciler = Depends(get_reconciler),
) -> ReshopResponse:
    """
    Drop an option and look for a new one in the same category.

    Missing gift or contact data is checked before anything is deleted.
    Once the old option is gone it stays gone; if no replacement is found
    the response has replacement=null.
    """
    option = ShoppingOption.model_validate(await stores.shopping_options.get(option_id))
    gift = Gift.model_validate(await stores.gifts.get(option.gift_id))
    contact = await load_gift_contact(stores, gift)

    replacement = await reconciler.reshop(option, gift, contact)
    return ReshopResponse(removed_option_id=option_id, replacement=replacement)

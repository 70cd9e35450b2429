"""
Analytics API — Purchase volume and store breakdowns.

GET /api/v1/analytics                       — Monthly, top stores and missing affiliates in one response
GET /api/v1/analytics/monthly               — Purchases and revenue per month
GET /api/v1/analytics/top-stores            — Most used stores (?month=&year=)
GET /api/v1/analytics/missing-affiliates    — Top stores with no affiliate link configured
GET /api/v1/analytics/affiliate-programs    — Affiliate programs offered by those stores (web lookup)
"""

import asyncio
from typing import Optional

from fastapi import APIRouter, Depends, Query

from giftplanner.api.deps import get_stores, get_suggestion_generator, statuses_query
from giftplanner.core.config import ANALYTICS_SPEND_STATUSES
from giftplanner.db.entity_store import Stores
from giftplanner.models.entities import AffiliateLink, Gift
from giftplanner.models.reports import (
    AffiliateProgramInfo,
    AnalyticsResponse,
    MonthlyPurchases,
    StoreStats,
)
from giftplanner.services.analytics import (
    lookup_affiliate_programs,
    missing_affiliate_stores,
    monthly_purchases,
    qualifying_purchases,
    top_stores,
)
from giftplanner.services.suggestions import SuggestionGenerator

router = APIRouter(prefix="/api/v1/analytics", tags=["analytics"])


async def _load_purchases(stores: Stores, statuses: Optional[frozenset[str]]) -> list[Gift]:
    rows = await stores.gifts.list(sort="-created_date")
    gifts = [Gift.model_validate(r) for r in rows]
    return qualifying_purchases(gifts, statuses or ANALYTICS_SPEND_STATUSES)


async def _load_links(stores: Stores) -> list[AffiliateLink]:
    return [AffiliateLink.model_validate(r) for r in await stores.affiliate_links.list()]


@router.get("", response_model=AnalyticsResponse)
async def get_analytics(
    month: Optional[int] = Query(default=None, ge=1, le=12),
    year: Optional[int] = Query(default=None),
    statuses: Optional[frozenset[str]] = Depends(statuses_query),
    stores: Stores = Depends(get_stores),
) -> AnalyticsResponse:
    purchases, links = await asyncio.gather(
        _load_purchases(stores, statuses),
        _load_links(stores),
    )
    stores_ranked = top_stores(purchases, month=month, year=year)
    return AnalyticsResponse(
        monthly_purchases=monthly_purchases(purchases),
        top_stores=stores_ranked,
        missing_affiliates=missing_affiliate_stores(stores_ranked, links),
        total_spent=sum(g.price for g in purchases),
        total_purchases=len(purchases),
        spent_statuses=sorted(statuses or ANALYTICS_SPEND_STATUSES),
    )


@router.get("/monthly", response_model=list[MonthlyPurchases])
async def get_monthly_purchases(
    statuses: Optional[frozenset[str]] = Depends(statuses_query),
    stores: Stores = Depends(get_stores),
) -> list[MonthlyPurchases]:
    return monthly_purchases(await _load_purchases(stores, statuses))


@router.get("/top-stores", response_model=list[StoreStats])
async def get_top_stores(
    month: Optional[int] = Query(default=None, ge=1, le=12),
    year: Optional[int] = Query(default=None),
    limit: int = Query(default=10, ge=1, le=50),
    statuses: Optional[frozenset[str]] = Depends(statuses_query),
    stores: Stores = Depends(get_stores),
) -> list[StoreStats]:
    purchases = await _load_purchases(stores, statuses)
    return top_stores(purchases, month=month, year=year, limit=limit)


@router.get("/missing-affiliates", response_model=list[StoreStats])
async def get_missing_affiliates(
    statuses: Optional[frozenset[str]] = Depends(statuses_query),
    stores: Stores = Depends(get_stores),
) -> list[StoreStats]:
    purchases, links = await asyncio.gather(
        _load_purchases(stores, statuses),
        _load_links(stores),
    )
    return missing_affiliate_stores(top_stores(purchases), links)


@router.get("/affiliate-programs", response_model=list[AffiliateProgramInfo])
async def get_affiliate_programs(
    statuses: Optional[frozenset[str]] = Depends(statuses_query),
    stores: Stores = Depends(get_stores),
    generator: SuggestionGenerator = Depends(get_suggestion_generator),
) -> list[AffiliateProgramInfo]:
    """
    Look up affiliate programs for the top stores that have no link yet.

    Each entry carries the store's purchase count and revenue so the
    most valuable programs can be joined first. An empty list means no
    programs were found (or the lookup failed); it is never an error.
    """
    purchases, links = await asyncio.gather(
        _load_purchases(stores, statuses),
        _load_links(stores),
    )
    missing = missing_affiliate_stores(top_stores(purchases), links)
    return await lookup_affiliate_programs(missing, generator)

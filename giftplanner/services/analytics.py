"""
Purchase Analytics — Monthly purchase volume, top stores, and stores
that have no affiliate program configured yet (with a web lookup of the
programs those stores offer).

Only "qualifying" purchases are counted: status in the analytics status
set, a vendor recorded, and a positive price.
"""

import logging
import re
from typing import Iterable, Optional

from giftplanner.core.config import ANALYTICS_SPEND_STATUSES
from giftplanner.models.entities import AffiliateLink, Gift, GiftStatus
from giftplanner.models.reports import AffiliateProgramInfo, MonthlyPurchases, StoreStats
from giftplanner.services.spending import counts_as_spent, normalize_statuses
from giftplanner.services.suggestions import SuggestionGenerator

logger = logging.getLogger(__name__)

TOP_STORES_LIMIT = 10

KNOWN_STORE_DOMAINS: dict[str, str] = {
    "amazon": "amazon.com",
    "target": "target.com",
    "walmart": "walmart.com",
    "home depot": "homedepot.com",
    "lowes": "lowes.com",
    "best buy": "bestbuy.com",
    "costco": "costco.com",
    "ebay": "ebay.com",
    "etsy": "etsy.com",
    "wayfair": "wayfair.com",
}


def qualifying_purchases(
    gifts: list[Gift],
    statuses: Iterable[str | GiftStatus] = ANALYTICS_SPEND_STATUSES,
) -> list[Gift]:
    wanted = normalize_statuses(statuses)
    return [
        g for g in gifts
        if counts_as_spent(g, wanted) and g.vendor and g.price > 0
    ]


def store_domain(store_name: str) -> str:
    normalized = store_name.strip().lower()
    if normalized in KNOWN_STORE_DOMAINS:
        return KNOWN_STORE_DOMAINS[normalized]
    return re.sub(r"\s+", "", normalized) + ".com"


def monthly_purchases(purchases: list[Gift]) -> list[MonthlyPurchases]:
    """Purchase count and revenue per calendar month, oldest first."""
    months: dict[str, MonthlyPurchases] = {}
    for gift in purchases:
        if gift.purchase_date is None:
            continue
        key = gift.purchase_date.strftime("%Y-%m")
        entry = months.setdefault(key, MonthlyPurchases(month=key))
        entry.purchases += 1
        entry.revenue += gift.price
    return [months[k] for k in sorted(months)]


def top_stores(
    purchases: list[Gift],
    month: Optional[int] = None,
    year: Optional[int] = None,
    limit: int = TOP_STORES_LIMIT,
) -> list[StoreStats]:
    """
    Most-used stores by number of purchases.

    Vendors are grouped case-insensitively; the first spelling seen is
    kept as the display name. The month (1-12) and year filters only apply
    to gifts that have a purchase_date; undated purchases always count.
    """
    stores: dict[str, StoreStats] = {}
    for gift in purchases:
        if not gift.vendor:
            continue
        if gift.purchase_date is not None:
            if month is not None and gift.purchase_date.month != month:
                continue
            if year is not None and gift.purchase_date.year != year:
                continue
        key = gift.vendor.strip().lower()
        entry = stores.get(key)
        if entry is None:
            entry = StoreStats(name=gift.vendor.strip(), domain=store_domain(gift.vendor))
            stores[key] = entry
        entry.purchases += 1
        entry.revenue += gift.price

    ranked = sorted(stores.values(), key=lambda s: s.purchases, reverse=True)
    return ranked[:limit]


def missing_affiliate_stores(
    stores: list[StoreStats],
    links: list[AffiliateLink],
) -> list[StoreStats]:
    """Stores not covered by any configured affiliate link domain."""
    existing = [d for d in (link.domain.strip().lower() for link in links) if d]

    def covered(store: StoreStats) -> bool:
        bare = store.domain.replace(".com", "")
        return any(d in store.domain or bare in d for d in existing)

    return [s for s in stores if not covered(s)]


def _bare_domain(domain: str) -> str:
    domain = domain.strip().lower()
    return domain[4:] if domain.startswith("www.") else domain


def merge_program_purchases(
    programs: list[AffiliateProgramInfo],
    stores: list[StoreStats],
) -> list[AffiliateProgramInfo]:
    """
    Attach each store's purchase count and revenue to its program entry.

    Programs are matched to stores by name (case-insensitive), then by
    domain. Entries for stores that were not asked about are dropped.
    """
    by_name = {s.name.strip().lower(): s for s in stores}
    by_domain = {_bare_domain(s.domain): s for s in stores}

    merged: list[AffiliateProgramInfo] = []
    for program in programs:
        store = by_name.get(program.store_name.strip().lower()) or by_domain.get(
            _bare_domain(program.domain)
        )
        if store is None:
            logger.debug("Ignoring affiliate program for unrequested store %r", program.store_name)
            continue
        merged.append(program.model_copy(update={
            "purchases": store.purchases,
            "revenue": store.revenue,
        }))
    return merged


async def lookup_affiliate_programs(
    missing: list[StoreStats],
    generator: SuggestionGenerator,
) -> list[AffiliateProgramInfo]:
    """Affiliate programs for stores without a link; [] when the lookup finds nothing."""
    if not missing:
        return []
    programs = await generator.find_affiliate_programs(missing)
    return merge_program_purchases(programs, missing)

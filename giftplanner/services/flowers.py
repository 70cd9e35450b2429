"""
Flower Ordering — Deliverable flower arrangements for a contact.

The suggestion generator finds arrangements on online florists' sites;
each store URL is then passed through the affiliate rewriter so that
"Order" links carry tracking for any active program covering that store.
Nothing here is persisted: the user orders on the florist's site.
"""

import logging

from giftplanner.models.entities import AffiliateLink, Contact
from giftplanner.models.shopping import (
    FlowerArrangement,
    FlowerOptionsResponse,
    FlowerOrderRequest,
)
from giftplanner.services.affiliate import rewrite_url
from giftplanner.services.suggestions import FLOWER_ARRANGEMENT_COUNT, SuggestionGenerator

logger = logging.getLogger(__name__)


def with_affiliate_urls(
    arrangements: list[FlowerArrangement],
    links: list[AffiliateLink],
) -> list[FlowerArrangement]:
    """Copy each arrangement with affiliate_url (and the program used) filled in."""
    enriched = []
    for arrangement in arrangements:
        url, link = rewrite_url(arrangement.store_url, links)
        enriched.append(arrangement.model_copy(update={
            "affiliate_url": url,
            "affiliate_program": link.program_name if link else None,
        }))
    return enriched


async def find_flower_arrangements(
    contact: Contact,
    request: FlowerOrderRequest,
    generator: SuggestionGenerator,
    links: list[AffiliateLink],
) -> FlowerOptionsResponse:
    arrangements = await generator.suggest_flowers(contact, request)
    arrangements = with_affiliate_urls(arrangements[:FLOWER_ARRANGEMENT_COUNT], links)

    tagged = sum(1 for a in arrangements if a.affiliate_program)
    logger.info(
        "Found %d flower arrangement(s) for contact %s (%d with affiliate tracking)",
        len(arrangements), contact.id, tagged,
    )
    return FlowerOptionsResponse(
        contact_id=contact.id,
        occasion_type=request.occasion_type,
        budget_min=request.budget_min,
        budget_max=request.budget_ceiling,
        arrangements=arrangements,
        count=len(arrangements),
    )

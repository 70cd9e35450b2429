"""
Affiliate Links API — Manage affiliate programs and rewrite store URLs.

GET    /api/v1/affiliate-links            — List affiliate links
POST   /api/v1/affiliate-links            — Create
PUT    /api/v1/affiliate-links/{id}       — Update
DELETE /api/v1/affiliate-links/{id}       — Delete
POST   /api/v1/affiliate-links/rewrite    — Apply tracking to a URL
"""

import logging

from fastapi import APIRouter, Depends, status

from giftplanner.api.deps import get_stores
from giftplanner.db.entity_store import Stores
from giftplanner.models.entities import (
    AffiliateLink,
    AffiliateLinkCreate,
    AffiliateLinkUpdate,
)
from giftplanner.models.shopping import UrlRewriteRequest, UrlRewriteResponse
from giftplanner.services.affiliate import rewrite_url

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/affiliate-links", tags=["affiliate-links"])


@router.get("", response_model=list[AffiliateLink])
async def list_affiliate_links(stores: Stores = Depends(get_stores)) -> list[AffiliateLink]:
    rows = await stores.affiliate_links.list(sort="-created_date")
    return [AffiliateLink.model_validate(r) for r in rows]


@router.post("", status_code=status.HTTP_201_CREATED, response_model=AffiliateLink)
async def create_affiliate_link(
    payload: AffiliateLinkCreate,
    stores: Stores = Depends(get_stores),
) -> AffiliateLink:
    row = await stores.affiliate_links.create(payload.model_dump())
    logger.info("Created affiliate link for %s", payload.domain)
    return AffiliateLink.model_validate(row)


@router.post("/rewrite", response_model=UrlRewriteResponse)
async def rewrite_store_url(
    payload: UrlRewriteRequest,
    stores: Stores = Depends(get_stores),
) -> UrlRewriteResponse:
    links = [AffiliateLink.model_validate(r) for r in await stores.affiliate_links.list()]
    url, link = rewrite_url(payload.url, links)
    return UrlRewriteResponse(
        url=url,
        rewritten=link is not None,
        program_name=link.program_name if link else None,
    )


@router.put("/{link_id}", response_model=AffiliateLink)
async def update_affiliate_link(
    link_id: str,
    payload: AffiliateLinkUpdate,
    stores: Stores = Depends(get_stores),
) -> AffiliateLink:
    row = await stores.affiliate_links.update(link_id, payload.model_dump(exclude_unset=True))
    return AffiliateLink.model_validate(row)


@router.delete("/{link_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_affiliate_link(link_id: str, stores: Stores = Depends(get_stores)) -> None:
    await stores.affiliate_links.delete(link_id)

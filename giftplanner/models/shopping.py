"""
Shopping Models — request/response schemas for suggestion, linking,
reshop, bulk-purchase and flower-ordering flows.
"""

from __future__ import annotations

from typing import Literal, Optional
from urllib.parse import urlparse

from pydantic import BaseModel, Field, ValidationInfo, field_validator

from giftplanner.models.entities import Gift, ShoppingOption


class SuggestedOption(BaseModel):
    """One option as returned by the suggestion generator, before persisting."""

    title: str
    description: str = ""
    category: str = "other"
    target_interest: Optional[str] = None
    estimated_price: Optional[float] = None
    key_features: list[str] = Field(default_factory=list)
    search_terms: str = ""


class LinkOptionRequest(BaseModel):
    """Payload for POST /api/v1/shopping-options/{id}/link."""

    store_url: str
    store_name: str
    current_price: float = Field(gt=0)

    @field_validator("store_url", "store_name")
    @classmethod
    def not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("field cannot be empty")
        return v


class ManualOptionCreate(BaseModel):
    """Payload for POST /api/v1/gifts/{id}/options (manual entry fallback)."""

    title: str
    description: Optional[str] = None
    category: Optional[str] = None
    target_interest: Optional[str] = None
    current_price: Optional[float] = Field(default=None, ge=0)
    store_name: Optional[str] = None
    store_url: Optional[str] = None
    rating: Optional[float] = Field(default=None, ge=0, le=5)


class SuggestionsResponse(BaseModel):
    gift_id: str
    options: list[ShoppingOption]
    count: int


class ReshopResponse(BaseModel):
    removed_option_id: str
    replacement: Optional[ShoppingOption] = None


class BulkPurchaseRequest(BaseModel):
    option_ids: list[str]

    @field_validator("option_ids")
    @classmethod
    def validate_non_empty(cls, v: list[str]) -> list[str]:
        if not v:
            raise ValueError("Please select at least one item to purchase.")
        return v


class BulkPurchasePlan(BaseModel):
    """URLs to open, in order, for a bulk purchase."""

    urls: list[str] = Field(default_factory=list)
    option_ids: list[str] = Field(default_factory=list)
    skipped_ids: list[str] = Field(default_factory=list)
    stagger_ms: int = 0


class GiftList(BaseModel):
    """An occasion's base gift with its current shopping options."""

    occasion_id: str
    gift: Gift
    options: list[ShoppingOption] = Field(default_factory=list)


class GiftListsResponse(BaseModel):
    gift_lists: list[GiftList]
    skipped_occasion_ids: list[str] = Field(default_factory=list)


class UrlRewriteRequest(BaseModel):
    url: str


class UrlRewriteResponse(BaseModel):
    url: str
    rewritten: bool
    program_name: Optional[str] = None


# ======================================================================
# Flower ordering
# ======================================================================

FlowerOccasion = Literal[
    "just_because", "birthday", "anniversary", "apology", "congratulations",
    "sympathy", "get_well", "thank_you",
]

# Upper bound used when only a minimum budget is given ("$150+")
FLOWER_BUDGET_SPREAD = 25.0


class FlowerOrderRequest(BaseModel):
    """Payload for POST /api/v1/contacts/{id}/flowers."""

    occasion_type: FlowerOccasion = "just_because"
    budget_min: float = Field(default=50.0, gt=0)
    budget_max: Optional[float] = Field(default=None, gt=0)

    @field_validator("budget_max")
    @classmethod
    def not_below_min(cls, v: Optional[float], info: ValidationInfo) -> Optional[float]:
        low = info.data.get("budget_min")
        if v is not None and low is not None and v < low:
            raise ValueError("budget_max cannot be below budget_min")
        return v

    @property
    def budget_ceiling(self) -> float:
        if self.budget_max is None:
            return self.budget_min + FLOWER_BUDGET_SPREAD
        return self.budget_max


class FlowerArrangement(BaseModel):
    """A deliverable arrangement from an online florist."""

    name: str
    description: str = ""
    price: float = Field(ge=0)
    original_price: Optional[float] = None
    store_name: str
    store_url: str
    image_url: Optional[str] = None
    rating: Optional[float] = Field(default=None, ge=0, le=5)
    same_day_delivery: bool = False
    color_match: Optional[str] = None
    occasion_fit: Optional[str] = None
    # store_url with affiliate tracking applied (same URL when no link matches)
    affiliate_url: Optional[str] = None
    affiliate_program: Optional[str] = None

    @field_validator("store_url")
    @classmethod
    def http_url(cls, v: str) -> str:
        v = v.strip()
        if urlparse(v).scheme not in ("http", "https"):
            raise ValueError("store_url must be an http(s) URL")
        return v


class FlowerOptionsResponse(BaseModel):
    contact_id: str
    occasion_type: str
    budget_min: float
    budget_max: float
    arrangements: list[FlowerArrangement]
    count: int

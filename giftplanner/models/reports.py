"""
Report Models — Pydantic schemas for spend summaries, dashboard stats
and purchase analytics.

All of these are computed from entity snapshots by the pure functions in
giftplanner.services.spending and giftplanner.services.analytics; none
are stored.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from giftplanner.models.entities import Contact, Gift, Occasion

NO_OCCASION_KEY = "no_occasion"
NO_OCCASION_TITLE = "General Gifts"
UNKNOWN_CONTACT_NAME = "Unknown Contact"


# ======================================================================
# Per-contact spend (grouped by occasion)
# ======================================================================

class OccasionSpendGroup(BaseModel):
    """Gifts sharing one occasion (or the synthetic "no_occasion" bucket)."""

    key: str
    occasion: Optional[Occasion] = None
    title: str
    gifts: list[Gift] = Field(default_factory=list)
    total_spent: float = 0.0
    total_budget: float = 0.0


class SpendSummary(BaseModel):
    groups: dict[str, OccasionSpendGroup] = Field(default_factory=dict)
    total_spent: float = 0.0
    total_budget: float = 0.0
    spent_statuses: list[str] = Field(default_factory=list)


class ContactSpendSummary(SpendSummary):
    contact_id: str
    contact_name: str
    contact: Optional[Contact] = None


# ======================================================================
# Dashboard
# ======================================================================

class ContactSpend(BaseModel):
    contact_id: Optional[str] = None
    contact_name: str
    total_spent: float = 0.0
    gift_count: int = 0


class SpendingByContactResponse(BaseModel):
    contacts: list[ContactSpend]
    total_spent: float
    spent_statuses: list[str]


class DashboardStats(BaseModel):
    total_contacts: int
    upcoming_occasions: int
    total_gifts: int
    total_spent: float
    recent_gifts: list[Gift] = Field(default_factory=list)
    spent_statuses: list[str] = Field(default_factory=list)


# ======================================================================
# Analytics
# ======================================================================

class MonthlyPurchases(BaseModel):
    month: str  # "YYYY-MM"
    purchases: int = 0
    revenue: float = 0.0


class StoreStats(BaseModel):
    name: str
    domain: str
    purchases: int = 0
    revenue: float = 0.0


class AffiliateProgramInfo(BaseModel):
    """Affiliate program details for a store that has no link configured."""

    store_name: str
    domain: str
    has_program: bool = False
    program_name: Optional[str] = None
    signup_url: Optional[str] = None
    commission_rate: Optional[str] = None
    notes: Optional[str] = None
    purchases: int = 0
    revenue: float = 0.0


class AnalyticsResponse(BaseModel):
    monthly_purchases: list[MonthlyPurchases]
    top_stores: list[StoreStats]
    missing_affiliates: list[StoreStats]
    total_spent: float
    total_purchases: int
    spent_statuses: list[str]

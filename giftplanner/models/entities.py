"""
Entity Models — Pydantic schemas for the stored gift-planning records.

Records come back from the entity store as plain dicts (with extra
columns such as user_id); these models validate them into typed objects
and define the create/update payloads accepted by the API.

Contacts are referenced (never owned) by occasions and gifts through
contact_id. Nothing in the store enforces those references, so any of
them may dangle after a delete.
"""

from __future__ import annotations

import datetime as dt
from enum import Enum
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field, field_validator


# ======================================================================
# Enums
# ======================================================================

class GiftStatus(str, Enum):
    IDEA = "idea"
    PLANNED = "planned"
    PURCHASED = "purchased"
    DELIVERED = "delivered"
    GIVEN = "given"


Relationship = Literal[
    "family", "friend", "partner", "girlfriend", "boyfriend", "colleague", "other",
]

Importance = Literal["low", "medium", "high"]

OCCASION_TYPES: set[str] = {
    "birthday", "anniversary", "holiday", "christmas", "hanukkah", "kwanzaa",
    "mothers_day", "fathers_day", "graduation", "promotion", "quinceanera",
    "bar_mitzvah", "bat_mitzvah", "custom",
}


def _zero_if_none(v: Any) -> Any:
    return 0.0 if v is None or v == "" else v


# ======================================================================
# Contact
# ======================================================================

class ContactPreferences(BaseModel):
    """What the contact likes — feeds the suggestion prompt."""

    hobbies: list[str] = Field(default_factory=list)
    favorite_colors: list[str] = Field(default_factory=list)
    style: Optional[str] = None
    sizes: dict[str, str] = Field(default_factory=dict)

    @field_validator("hobbies", "favorite_colors", mode="before")
    @classmethod
    def none_to_empty_list(cls, v: Any) -> Any:
        return [] if v is None else v

    @field_validator("sizes", mode="before")
    @classmethod
    def none_to_empty_dict(cls, v: Any) -> Any:
        return {} if v is None else v


class Contact(BaseModel):
    id: str
    name: str
    relationship: Optional[str] = None
    birthday: Optional[dt.date] = None
    gender: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    notes: Optional[str] = None
    preferences: ContactPreferences = Field(default_factory=ContactPreferences)
    created_date: Optional[dt.datetime] = None

    @field_validator("preferences", mode="before")
    @classmethod
    def none_to_default_preferences(cls, v: Any) -> Any:
        return {} if v is None else v

    @property
    def first_name(self) -> str:
        return self.name.split(" ")[0] if self.name else ""

    def age(self, today: Optional[dt.date] = None, default: int = 30) -> int:
        """Age in calendar years (year difference only); default when unknown."""
        if self.birthday is None:
            return default
        today = today or dt.date.today()
        return today.year - self.birthday.year


class ContactCreate(BaseModel):
    name: str
    relationship: Relationship
    birthday: Optional[dt.date] = None
    gender: Optional[Literal["male", "female", "other"]] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    notes: Optional[str] = None
    preferences: ContactPreferences = Field(default_factory=ContactPreferences)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name cannot be empty")
        return v


class ContactUpdate(BaseModel):
    name: Optional[str] = None
    relationship: Optional[Relationship] = None
    birthday: Optional[dt.date] = None
    gender: Optional[Literal["male", "female", "other"]] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    notes: Optional[str] = None
    preferences: Optional[ContactPreferences] = None


# ======================================================================
# Occasion
# ======================================================================

class Occasion(BaseModel):
    id: str
    contact_id: str
    title: str
    type: Optional[str] = None
    date: dt.date
    budget: float = 0.0
    recurring: bool = True
    reminder_days: int = 7
    importance: str = "medium"
    notes: Optional[str] = None
    created_date: Optional[dt.datetime] = None

    @field_validator("budget", mode="before")
    @classmethod
    def missing_budget_is_zero(cls, v: Any) -> Any:
        return _zero_if_none(v)

    @field_validator("reminder_days", mode="before")
    @classmethod
    def default_reminder_days(cls, v: Any) -> Any:
        return 7 if v in (None, "", 0) else v

    @field_validator("recurring", mode="before")
    @classmethod
    def default_recurring(cls, v: Any) -> Any:
        return True if v is None else v


class OccasionCreate(BaseModel):
    contact_id: str
    type: str
    date: dt.date
    title: Optional[str] = None  # auto-generated from contact + type when omitted
    budget: float = Field(default=50.0, ge=0)
    recurring: bool = True
    reminder_days: int = Field(default=7, ge=0, le=365)
    importance: Importance = "medium"
    notes: Optional[str] = None

    @field_validator("type")
    @classmethod
    def validate_type(cls, v: str) -> str:
        if v not in OCCASION_TYPES:
            raise ValueError(
                f"Invalid occasion type: '{v}'. Must be one of: {sorted(OCCASION_TYPES)}"
            )
        return v


class OccasionUpdate(BaseModel):
    contact_id: Optional[str] = None
    type: Optional[str] = None
    date: Optional[dt.date] = None
    title: Optional[str] = None
    budget: Optional[float] = Field(default=None, ge=0)
    recurring: Optional[bool] = None
    reminder_days: Optional[int] = Field(default=None, ge=0, le=365)
    importance: Optional[Importance] = None
    notes: Optional[str] = None


# ======================================================================
# Gift
# ======================================================================

class Gift(BaseModel):
    id: str
    contact_id: Optional[str] = None
    occasion_id: Optional[str] = None
    title: str
    category: Optional[str] = None
    budget: float = 0.0
    price: float = 0.0
    status: GiftStatus = GiftStatus.IDEA
    vendor: Optional[str] = None
    store_url: Optional[str] = None
    purchase_date: Optional[dt.date] = None
    description: Optional[str] = None
    created_date: Optional[dt.datetime] = None

    @field_validator("budget", "price", mode="before")
    @classmethod
    def missing_amount_is_zero(cls, v: Any) -> Any:
        return _zero_if_none(v)

    @field_validator("occasion_id", "contact_id", mode="before")
    @classmethod
    def blank_is_none(cls, v: Any) -> Any:
        return None if v == "" else v

    @field_validator("purchase_date", mode="before")
    @classmethod
    def date_part_only(cls, v: Any) -> Any:
        # Older rows store a full ISO timestamp; keep the calendar date.
        if v == "":
            return None
        if isinstance(v, str) and "T" in v:
            return v.split("T", 1)[0]
        return v


class GiftCreate(BaseModel):
    contact_id: str
    occasion_id: Optional[str] = None
    title: str
    category: str = "other"
    budget: float = Field(default=0.0, ge=0)
    price: float = Field(default=0.0, ge=0)
    status: GiftStatus = GiftStatus.IDEA
    vendor: Optional[str] = None
    store_url: Optional[str] = None
    purchase_date: Optional[dt.date] = None
    description: Optional[str] = None


class GiftUpdate(BaseModel):
    contact_id: Optional[str] = None
    occasion_id: Optional[str] = None
    title: Optional[str] = None
    category: Optional[str] = None
    budget: Optional[float] = Field(default=None, ge=0)
    price: Optional[float] = Field(default=None, ge=0)
    status: Optional[GiftStatus] = None
    vendor: Optional[str] = None
    store_url: Optional[str] = None
    purchase_date: Optional[dt.date] = None
    description: Optional[str] = None


# ======================================================================
# ShoppingOption
# ======================================================================

class ShoppingOption(BaseModel):
    """
    One candidate purchase for a gift.

    Suggested: needs_manual_link=True, no store_url/store_name; current_price
    is the AI's estimate. Linked: needs_manual_link=False with a
    human-confirmed store_url, store_name and current_price.
    """

    id: str
    gift_id: str
    title: str
    description: Optional[str] = None
    category: Optional[str] = None
    target_interest: Optional[str] = None
    current_price: Optional[float] = None
    store_name: Optional[str] = None
    store_url: Optional[str] = None
    needs_manual_link: bool = True
    rating: Optional[float] = None
    key_features: list[str] = Field(default_factory=list)
    search_terms: Optional[str] = None
    created_date: Optional[dt.datetime] = None

    @field_validator("key_features", mode="before")
    @classmethod
    def none_to_empty_list(cls, v: Any) -> Any:
        return [] if v is None else v

    @property
    def is_ready_to_buy(self) -> bool:
        return not self.needs_manual_link and bool(self.store_url)


# ======================================================================
# AffiliateLink
# ======================================================================

class AffiliateLink(BaseModel):
    id: str
    program_name: str
    domain: str
    tracking_id_param: str
    tracking_id_value: str
    is_active: bool = True
    created_date: Optional[dt.datetime] = None


class AffiliateLinkCreate(BaseModel):
    program_name: str
    domain: str
    tracking_id_param: str
    tracking_id_value: str
    is_active: bool = True

    @field_validator("domain")
    @classmethod
    def normalize_domain(cls, v: str) -> str:
        v = v.strip().lower()
        if not v:
            raise ValueError("domain cannot be empty")
        return v

    @field_validator("program_name", "tracking_id_param", "tracking_id_value")
    @classmethod
    def not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("field cannot be empty")
        return v


class AffiliateLinkUpdate(BaseModel):
    program_name: Optional[str] = None
    domain: Optional[str] = None
    tracking_id_param: Optional[str] = None
    tracking_id_value: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator("domain")
    @classmethod
    def normalize_domain(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip().lower()
        if not v:
            raise ValueError("domain cannot be empty")
        return v

    @field_validator("program_name", "tracking_id_param", "tracking_id_value")
    @classmethod
    def not_blank(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("field cannot be empty")
        return v

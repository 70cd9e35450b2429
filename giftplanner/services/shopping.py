"""
Shopping Option Reconciler — Lifecycle of suggested and linked options.

A shopping option is in one of two states:

    Suggested  needs_manual_link=True,  store_url/store_name = None,
               current_price = the AI's estimate
    Linked     needs_manual_link=False, store_url/store_name set,
               current_price = the price a person confirmed

Suggested → Linked happens only through link_option(), which takes the
URL, store and price together. Nothing moves an option back to Suggested:
reshopping deletes the option and creates a fresh suggestion in its place.

Only Linked options with a URL are ever eligible for purchase, whatever
the user has selected.
"""

import asyncio
import logging
from typing import Any, Optional

from giftplanner.core.config import BULK_PURCHASE_STAGGER_MS, DEFAULT_GIFT_BUDGET
from giftplanner.core.errors import EntityStoreError, ShoppingOptionStateError
from giftplanner.db.entity_store import Stores
from giftplanner.models.entities import (
    AffiliateLink,
    Contact,
    Gift,
    GiftStatus,
    Occasion,
    ShoppingOption,
)
from giftplanner.models.shopping import (
    BulkPurchasePlan,
    GiftList,
    GiftListsResponse,
    ManualOptionCreate,
    SuggestedOption,
)
from giftplanner.services.affiliate import rewrite_url
from giftplanner.services.suggestions import SuggestionGenerator

logger = logging.getLogger(__name__)

ORPHANED_OPTIONS_KEY = "orphaned"


# ======================================================================
# Pure helpers
# ======================================================================

def suggestion_to_option_fields(suggestion: SuggestedOption, gift_id: str) -> dict[str, Any]:
    """Fields for persisting a generator suggestion as a Suggested option."""
    return {
        "gift_id": gift_id,
        "title": suggestion.title,
        "description": suggestion.description,
        "category": suggestion.category,
        "target_interest": suggestion.target_interest,
        "current_price": suggestion.estimated_price,
        "key_features": suggestion.key_features,
        "search_terms": suggestion.search_terms,
        "needs_manual_link": True,
        "store_name": None,
        "store_url": None,
    }


def group_options_by_gift(
    options: list[ShoppingOption],
    gifts: list[Gift],
) -> dict[str, list[ShoppingOption]]:
    """
    Bucket options under their gift id.

    Options whose gift no longer exists are collected under "orphaned"
    instead of raising, so one stale row never breaks a whole listing.
    """
    known = {g.id for g in gifts}
    grouped: dict[str, list[ShoppingOption]] = {}
    for option in options:
        key = option.gift_id if option.gift_id in known else ORPHANED_OPTIONS_KEY
        grouped.setdefault(key, []).append(option)
    if ORPHANED_OPTIONS_KEY in grouped:
        logger.warning(
            "%d shopping option(s) reference missing gifts",
            len(grouped[ORPHANED_OPTIONS_KEY]),
        )
    return grouped


def purchasable_options(options: list[ShoppingOption]) -> list[ShoppingOption]:
    """Options a person could buy right now (Linked, with a URL)."""
    return [o for o in options if o.is_ready_to_buy]


def plan_bulk_purchase(
    selected_ids: list[str] | set[str],
    options: list[ShoppingOption],
    affiliate_links: list[AffiliateLink],
    stagger_ms: int = BULK_PURCHASE_STAGGER_MS,
) -> BulkPurchasePlan:
    """
    Work out which store URLs to open for a bulk purchase.

    An option is opened only if it is selected AND ready to buy; selected
    Suggested options are reported in skipped_ids. URLs keep the order of
    `options` and are affiliate-rewritten.

    Raises:
        ValueError: If nothing is selected.
    """
    selected = set(selected_ids)
    if not selected:
        raise ValueError("Please select at least one item to purchase.")

    plan = BulkPurchasePlan(stagger_ms=stagger_ms)
    for option in options:
        if option.id not in selected:
            continue
        if not option.is_ready_to_buy:
            plan.skipped_ids.append(option.id)
            continue
        url, _ = rewrite_url(option.store_url, affiliate_links)
        plan.urls.append(url)
        plan.option_ids.append(option.id)

    # Selected ids that matched no option at all
    seen = set(plan.option_ids) | set(plan.skipped_ids)
    plan.skipped_ids.extend(sorted(selected - seen))
    return plan


def _validate_link_fields(store_url: Optional[str], store_name: Optional[str],
                          current_price: Optional[float]) -> None:
    missing = [
        name for name, value in (
            ("store_url", store_url),
            ("store_name", store_name),
            ("current_price", current_price),
        )
        if value is None or (isinstance(value, str) and not value.strip())
    ]
    if missing:
        raise ShoppingOptionStateError(
            f"Linking requires store_url, store_name and current_price together "
            f"(missing: {', '.join(missing)})"
        )
    if current_price <= 0:
        raise ShoppingOptionStateError("current_price must be greater than zero")
    if not store_url.strip().lower().startswith(("http://", "https://")):
        raise ShoppingOptionStateError("store_url must be an http(s) URL")


def gift_list_fields(occasion: Occasion, contact: Contact) -> dict[str, Any]:
    """Fields for the base gift auto-created for an occasion."""
    summary = ""
    if contact.preferences.hobbies:
        summary = f"Enjoys: {', '.join(contact.preferences.hobbies)}. "
    return {
        "occasion_id": occasion.id,
        "contact_id": contact.id,
        "title": f"Gift ideas for {occasion.title}",
        "category": "other",
        "budget": occasion.budget or DEFAULT_GIFT_BUDGET,
        "description": summary,
        "status": GiftStatus.IDEA.value,
    }


# ======================================================================
# Store-backed reconciler
# ======================================================================

class ShoppingOptionReconciler:
    """Creates, links and replaces shopping options through the entity store."""

    def __init__(self, stores: Stores, generator: SuggestionGenerator):
        self.stores = stores
        self.generator = generator

    async def _save_suggestions(
        self, gift: Gift, suggestions: list[SuggestedOption],
    ) -> list[ShoppingOption]:
        rows = await asyncio.gather(*[
            self.stores.shopping_options.create(suggestion_to_option_fields(s, gift.id))
            for s in suggestions
        ])
        return [ShoppingOption.model_validate(r) for r in rows]

    async def add_suggestions(self, gift: Gift, contact: Contact) -> list[ShoppingOption]:
        """Generate a full batch for the gift and store each as Suggested."""
        suggestions = await self.generator.generate(contact, gift)
        if not suggestions:
            logger.info("No suggestions found for gift %s", gift.id)
            return []
        return await self._save_suggestions(gift, suggestions)

    async def link_option(
        self,
        option_id: str,
        store_url: Optional[str],
        store_name: Optional[str],
        current_price: Optional[float],
    ) -> ShoppingOption:
        """
        Move an option to Linked with a confirmed URL, store and price.

        Only those three fields and needs_manual_link change; id and
        gift_id are never written.

        Raises:
            ShoppingOptionStateError: If any of the three fields is missing
                or invalid.
            EntityNotFoundError: If the option does not exist.
        """
        _validate_link_fields(store_url, store_name, current_price)
        row = await self.stores.shopping_options.update(option_id, {
            "store_url": store_url.strip(),
            "store_name": store_name.strip(),
            "current_price": float(current_price),
            "needs_manual_link": False,
        })
        logger.info("Linked shopping option %s to %s", option_id, store_name)
        return ShoppingOption.model_validate(row)

    async def reshop(
        self,
        option: ShoppingOption,
        gift: Gift,
        contact: Contact,
    ) -> Optional[ShoppingOption]:
        """
        Replace one option with a fresh suggestion in the same category.

        The old option is deleted first. If the generator comes back empty
        (or raises) the old option stays deleted; the gift just has one
        fewer option.

        Returns:
            The new Suggested option, or None if nothing was found.
        """
        await self.stores.shopping_options.delete(option.id)
        logger.info("Reshopping option %s (category: %s)", option.id, option.category)

        suggestions = await self.generator.generate(contact, gift, option.category or "other")
        if not suggestions:
            logger.warning(
                "Reshop found no replacement for option %s; original removed",
                option.id,
            )
            return None

        saved = await self._save_suggestions(gift, suggestions[:1])
        return saved[0]

    async def clear_options(self, gift_id: str) -> int:
        """Delete every shopping option of a gift."""
        removed = await self.stores.shopping_options.delete_where(gift_id=gift_id)
        logger.info("Cleared %d shopping options for gift %s", removed, gift_id)
        return removed

    async def add_manual_option(
        self, gift_id: str, payload: ManualOptionCreate,
    ) -> ShoppingOption:
        """
        Store an option a person entered by hand.

        With URL, store and price all present it is created Linked;
        otherwise it starts out Suggested like a generated one.
        """
        fields = payload.model_dump()
        try:
            _validate_link_fields(payload.store_url, payload.store_name, payload.current_price)
            fields["needs_manual_link"] = False
        except ShoppingOptionStateError:
            fields.update(needs_manual_link=True, store_url=None, store_name=None)
        fields["gift_id"] = gift_id
        row = await self.stores.shopping_options.create(fields)
        return ShoppingOption.model_validate(row)

    async def ensure_occasion_gift_lists(
        self,
        occasions: list[Occasion],
        contacts: list[Contact],
    ) -> GiftListsResponse:
        """
        Make sure every occasion has a base gift with suggestions.

        For each occasion whose contact still exists: reuse its first gift
        (or create "Gift ideas for <title>"), then generate suggestions if
        the gift has none. Occasions are handled one at a time; a failure
        on one is logged and the pass moves on.
        """
        contacts_by_id = {c.id: c for c in contacts}
        gift_lists: list[GiftList] = []
        skipped: list[str] = []

        for occasion in occasions:
            contact = contacts_by_id.get(occasion.contact_id)
            if contact is None:
                logger.warning(
                    "Occasion %s references missing contact %s — skipping gift list",
                    occasion.id, occasion.contact_id,
                )
                skipped.append(occasion.id)
                continue

            try:
                existing = await self.stores.gifts.filter(occasion_id=occasion.id)
                if existing:
                    gift = Gift.model_validate(existing[0])
                else:
                    gift = Gift.model_validate(
                        await self.stores.gifts.create(gift_list_fields(occasion, contact))
                    )

                option_rows = await self.stores.shopping_options.filter(gift_id=gift.id)
                options = [ShoppingOption.model_validate(r) for r in option_rows]
                if not options:
                    options = await self.add_suggestions(gift, contact)
            except EntityStoreError as exc:
                logger.error(
                    "Failed to build gift list for occasion %s: %s",
                    occasion.id, exc, exc_info=True,
                )
                skipped.append(occasion.id)
                continue

            gift_lists.append(GiftList(occasion_id=occasion.id, gift=gift, options=options))

        return GiftListsResponse(gift_lists=gift_lists, skipped_occasion_ids=skipped)

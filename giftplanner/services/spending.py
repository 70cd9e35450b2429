"""
Spending Service — Spend aggregation over gift snapshots.

Two reports count "spent" money differently, and both exist on purpose
until product decides which one is canonical:

- Per-contact spending (grouped by occasion) counts gifts that are
  purchased or given  →  CONTACT_SPEND_STATUSES
- Dashboard total counts purchased, delivered or given
  →  DASHBOARD_SPEND_STATUSES

Every function takes the status set as a parameter and echoes it back in
its result, so callers can always tell which definition produced a number.

All functions are pure: they read the lists they are given, never call the
entity store, and return new objects. Running them twice on the same
snapshot yields identical output. Dangling references (an occasion_id or
contact_id pointing at a deleted record) never raise; such gifts land in
the "General Gifts" bucket or under "Unknown Contact".
"""

import logging
from typing import Iterable, Optional

from giftplanner.core.config import CONTACT_SPEND_STATUSES, DASHBOARD_SPEND_STATUSES
from giftplanner.models.entities import Contact, Gift, GiftStatus, Occasion
from giftplanner.models.reports import (
    NO_OCCASION_KEY,
    NO_OCCASION_TITLE,
    UNKNOWN_CONTACT_NAME,
    ContactSpend,
    ContactSpendSummary,
    DashboardStats,
    OccasionSpendGroup,
    SpendSummary,
)

logger = logging.getLogger(__name__)

RECENT_GIFTS_LIMIT = 5


def normalize_statuses(statuses: Iterable[str | GiftStatus]) -> frozenset[str]:
    """Accept GiftStatus members or raw strings; return the plain values."""
    return frozenset(
        s.value if isinstance(s, GiftStatus) else GiftStatus(s).value
        for s in statuses
    )


def counts_as_spent(gift: Gift, statuses: frozenset[str]) -> bool:
    return gift.status.value in statuses


# ======================================================================
# Per-contact spend, grouped by occasion
# ======================================================================

def group_spending_by_occasion(
    gifts: list[Gift],
    occasions: list[Occasion],
    spent_statuses: Iterable[str | GiftStatus] = CONTACT_SPEND_STATUSES,
) -> SpendSummary:
    """
    Group gifts by occasion and total their spend and budget.

    A gift joins the group of its occasion_id when that id resolves to one
    of the given occasions; otherwise (no occasion, or one that no longer
    exists) it joins the synthetic "no_occasion" group titled
    "General Gifts".

    Per group:
        total_spent  = sum of price for gifts whose status is in spent_statuses
        total_budget = sum of budget for every gift, whatever its status

    Groups appear in the order their first gift appears in `gifts`.
    """
    statuses = normalize_statuses(spent_statuses)
    occasions_by_id = {o.id: o for o in occasions}
    groups: dict[str, OccasionSpendGroup] = {}

    for gift in gifts:
        occasion = occasions_by_id.get(gift.occasion_id) if gift.occasion_id else None
        if occasion is not None:
            key, title = occasion.id, occasion.title
        else:
            if gift.occasion_id:
                logger.warning(
                    "Gift %s references missing occasion %s — grouping under %s",
                    gift.id, gift.occasion_id, NO_OCCASION_KEY,
                )
            key, title = NO_OCCASION_KEY, NO_OCCASION_TITLE

        group = groups.get(key)
        if group is None:
            group = OccasionSpendGroup(key=key, occasion=occasion, title=title)
            groups[key] = group

        group.gifts.append(gift)
        if counts_as_spent(gift, statuses):
            group.total_spent += gift.price
        group.total_budget += gift.budget

    return SpendSummary(
        groups=groups,
        total_spent=sum(g.total_spent for g in groups.values()),
        total_budget=sum(g.total_budget for g in groups.values()),
        spent_statuses=sorted(statuses),
    )


def contact_spend_summary(
    contact_id: str,
    contact: Optional[Contact],
    gifts: list[Gift],
    occasions: list[Occasion],
    spent_statuses: Iterable[str | GiftStatus] = CONTACT_SPEND_STATUSES,
) -> ContactSpendSummary:
    """
    Spending breakdown for one contact.

    `gifts` and `occasions` may be the whole collection; only those with a
    matching contact_id are used. A None contact (deleted) is reported as
    "Unknown Contact" rather than failing.
    """
    own_gifts = [g for g in gifts if g.contact_id == contact_id]
    own_occasions = [o for o in occasions if o.contact_id == contact_id]
    summary = group_spending_by_occasion(own_gifts, own_occasions, spent_statuses)

    return ContactSpendSummary(
        contact_id=contact_id,
        contact_name=contact.name if contact else UNKNOWN_CONTACT_NAME,
        contact=contact,
        **summary.model_dump(exclude={"groups"}),
        groups=summary.groups,
    )


# ======================================================================
# Dashboard-level totals
# ======================================================================

def total_spent(
    gifts: list[Gift],
    statuses: Iterable[str | GiftStatus] = DASHBOARD_SPEND_STATUSES,
) -> float:
    """Ungrouped spend across all gifts (delivered counts by default)."""
    wanted = normalize_statuses(statuses)
    return sum(g.price for g in gifts if counts_as_spent(g, wanted))


def _created_sort_key(gift: Gift) -> float:
    return gift.created_date.timestamp() if gift.created_date else float("-inf")


def dashboard_stats(
    contacts: list[Contact],
    occasions: list[Occasion],
    gifts: list[Gift],
    statuses: Iterable[str | GiftStatus] = DASHBOARD_SPEND_STATUSES,
) -> DashboardStats:
    wanted = normalize_statuses(statuses)
    recent = sorted(gifts, key=_created_sort_key, reverse=True)[:RECENT_GIFTS_LIMIT]
    return DashboardStats(
        total_contacts=len(contacts),
        upcoming_occasions=len(occasions),
        total_gifts=len(gifts),
        total_spent=total_spent(gifts, wanted),
        recent_gifts=recent,
        spent_statuses=sorted(wanted),
    )


def spending_by_contact(
    contacts: list[Contact],
    gifts: list[Gift],
    statuses: Iterable[str | GiftStatus] = DASHBOARD_SPEND_STATUSES,
) -> list[ContactSpend]:
    """
    Spend per contact, highest first.

    Gifts whose contact_id no longer resolves are still counted, under
    their dangling id and the "Unknown Contact" label. Gifts with no
    contact_id at all share a single unknown bucket.
    """
    wanted = normalize_statuses(statuses)
    names = {c.id: c.name for c in contacts}
    totals: dict[Optional[str], ContactSpend] = {}

    for gift in gifts:
        entry = totals.get(gift.contact_id)
        if entry is None:
            entry = ContactSpend(
                contact_id=gift.contact_id,
                contact_name=names.get(gift.contact_id, UNKNOWN_CONTACT_NAME),
            )
            totals[gift.contact_id] = entry
        entry.gift_count += 1
        if counts_as_spent(gift, wanted):
            entry.total_spent += gift.price

    # sorted() is stable, so ties keep first-appearance order
    return sorted(totals.values(), key=lambda e: e.total_spent, reverse=True)

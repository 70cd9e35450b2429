"""
Tests for the Spending Service (occasion grouping and dashboard totals)

Covers:
- Budget totals independent of status; spend totals only for spent statuses
- The two status definitions (per-contact vs dashboard) and overriding them
- The "General Gifts" bucket for missing and dangling occasions
- Idempotence and first-appearance group order
- Unknown Contact handling for deleted contacts
- Dashboard stats and spending-by-contact ranking

Prerequisites:
- No external credentials required (pure functions)
"""

from datetime import date, datetime

import pytest

from giftplanner.models.entities import Contact, Gift, GiftStatus, Occasion
from giftplanner.models.reports import NO_OCCASION_KEY, NO_OCCASION_TITLE, UNKNOWN_CONTACT_NAME
from giftplanner.services.spending import (
    contact_spend_summary,
    dashboard_stats,
    group_spending_by_occasion,
    normalize_statuses,
    spending_by_contact,
    total_spent,
)


def _occasion(occasion_id="o1", contact_id="c1", title="Ana's Birthday") -> Occasion:
    return Occasion(id=occasion_id, contact_id=contact_id, title=title, date=date(2026, 5, 4))


def _gift(gift_id, status="idea", price=0, budget=0, occasion_id=None, contact_id="c1",
          created=None) -> Gift:
    return Gift(
        id=gift_id,
        contact_id=contact_id,
        occasion_id=occasion_id,
        title=f"Gift {gift_id}",
        status=status,
        price=price,
        budget=budget,
        created_date=created,
    )


# ---------------------------------------------------------------------------
# Occasion grouping
# ---------------------------------------------------------------------------


class TestGroupSpendingByOccasion:
    """Per-occasion spend and budget totals."""

    def test_purchased_and_idea_in_same_occasion(self):
        """Purchased 40/50 plus idea 0/20 → spent 40, budget 70."""
        gifts = [
            _gift("a", "purchased", price=40, budget=50, occasion_id="o1"),
            _gift("b", "idea", price=0, budget=20, occasion_id="o1"),
        ]
        summary = group_spending_by_occasion(gifts, [_occasion()])

        group = summary.groups["o1"]
        assert group.total_spent == 40
        assert group.total_budget == 70
        assert group.title == "Ana's Birthday"
        assert [g.id for g in group.gifts] == ["a", "b"]

    def test_budget_counts_every_status(self):
        gifts = [
            _gift(str(i), status.value, price=10, budget=15, occasion_id="o1")
            for i, status in enumerate(GiftStatus)
        ]
        summary = group_spending_by_occasion(gifts, [_occasion()])
        assert summary.groups["o1"].total_budget == 15 * len(GiftStatus)

    def test_delivered_excluded_from_default_spend(self):
        """The per-contact definition counts purchased and given only."""
        gifts = [
            _gift("p", "purchased", price=10, occasion_id="o1"),
            _gift("d", "delivered", price=100, occasion_id="o1"),
            _gift("g", "given", price=5, occasion_id="o1"),
            _gift("i", "planned", price=1000, occasion_id="o1"),
        ]
        summary = group_spending_by_occasion(gifts, [_occasion()])
        assert summary.total_spent == 15
        assert summary.spent_statuses == ["given", "purchased"]

    def test_status_set_can_be_overridden(self):
        gifts = [_gift("d", "delivered", price=100, occasion_id="o1")]
        summary = group_spending_by_occasion(
            gifts, [_occasion()], spent_statuses={"delivered"},
        )
        assert summary.total_spent == 100

    def test_gift_without_occasion_goes_to_general_gifts(self):
        summary = group_spending_by_occasion([_gift("a", "given", price=12)], [])
        group = summary.groups[NO_OCCASION_KEY]
        assert group.title == NO_OCCASION_TITLE
        assert group.occasion is None
        assert group.total_spent == 12

    def test_dangling_occasion_goes_to_general_gifts(self):
        """A gift whose occasion was deleted must not raise."""
        gifts = [_gift("a", "purchased", price=30, budget=30, occasion_id="deleted-occasion")]
        summary = group_spending_by_occasion(gifts, [_occasion()])
        assert list(summary.groups) == [NO_OCCASION_KEY]
        assert summary.groups[NO_OCCASION_KEY].total_spent == 30

    def test_groups_in_first_appearance_order(self):
        occasions = [_occasion("o1"), _occasion("o2", title="Ana's Graduation")]
        gifts = [
            _gift("a", occasion_id="o2"),
            _gift("b"),
            _gift("c", occasion_id="o1"),
            _gift("d", occasion_id="o2"),
        ]
        summary = group_spending_by_occasion(gifts, occasions)
        assert list(summary.groups) == ["o2", NO_OCCASION_KEY, "o1"]

    def test_grand_totals_sum_groups(self):
        occasions = [_occasion("o1"), _occasion("o2")]
        gifts = [
            _gift("a", "purchased", price=10, budget=20, occasion_id="o1"),
            _gift("b", "given", price=7, budget=8, occasion_id="o2"),
            _gift("c", "idea", budget=5),
        ]
        summary = group_spending_by_occasion(gifts, occasions)
        assert summary.total_spent == 17
        assert summary.total_budget == 33

    def test_aggregation_is_idempotent(self):
        gifts = [
            _gift("a", "purchased", price=40, budget=50, occasion_id="o1"),
            _gift("b", "idea", budget=20, occasion_id="missing"),
        ]
        occasions = [_occasion()]
        first = group_spending_by_occasion(gifts, occasions)
        second = group_spending_by_occasion(gifts, occasions)
        assert first.model_dump() == second.model_dump()

    def test_empty_input(self):
        summary = group_spending_by_occasion([], [])
        assert summary.groups == {}
        assert summary.total_spent == 0
        assert summary.total_budget == 0

    def test_missing_amounts_count_as_zero(self):
        gift = Gift.model_validate({
            "id": "a", "title": "No price", "status": "purchased",
            "price": None, "budget": None, "occasion_id": "",
        })
        summary = group_spending_by_occasion([gift], [])
        assert summary.groups[NO_OCCASION_KEY].total_spent == 0
        assert summary.groups[NO_OCCASION_KEY].total_budget == 0


class TestContactSpendSummary:
    """Per-contact summary over the whole collection."""

    def test_filters_to_contact(self):
        contact = Contact(id="c1", name="Ana Lopez")
        gifts = [
            _gift("a", "purchased", price=10, contact_id="c1"),
            _gift("b", "purchased", price=99, contact_id="c2"),
        ]
        summary = contact_spend_summary("c1", contact, gifts, [])
        assert summary.contact_name == "Ana Lopez"
        assert summary.total_spent == 10

    def test_deleted_contact_renders_unknown(self):
        """Occasion and gifts survive a deleted contact; no exception."""
        occasions = [_occasion("o2", contact_id="gone")]
        gifts = [_gift("a", "given", price=15, budget=20, occasion_id="o2", contact_id="gone")]
        summary = contact_spend_summary("gone", None, gifts, occasions)
        assert summary.contact_name == UNKNOWN_CONTACT_NAME
        assert summary.contact is None
        assert summary.groups["o2"].total_spent == 15

    def test_occasion_of_other_contact_not_used(self):
        occasions = [_occasion("o1", contact_id="c2")]
        gifts = [_gift("a", "given", price=5, occasion_id="o1", contact_id="c1")]
        summary = contact_spend_summary("c1", None, gifts, occasions)
        assert list(summary.groups) == [NO_OCCASION_KEY]


# ---------------------------------------------------------------------------
# Dashboard totals
# ---------------------------------------------------------------------------


class TestDashboardTotals:
    """Ungrouped totals use the three-status definition."""

    def test_total_spent_includes_delivered(self):
        gifts = [
            _gift("p", "purchased", price=10),
            _gift("d", "delivered", price=20),
            _gift("g", "given", price=30),
            _gift("i", "idea", price=40),
        ]
        assert total_spent(gifts) == 60

    def test_per_contact_and_dashboard_definitions_differ(self):
        gifts = [_gift("d", "delivered", price=20, occasion_id="o1")]
        assert group_spending_by_occasion(gifts, [_occasion()]).total_spent == 0
        assert total_spent(gifts) == 20

    def test_dashboard_stats(self):
        contacts = [Contact(id="c1", name="Ana"), Contact(id="c2", name="Ben")]
        gifts = [
            _gift(str(i), "purchased", price=1, created=datetime(2026, 1, i + 1))
            for i in range(7)
        ]
        stats = dashboard_stats(contacts, [_occasion()], gifts)

        assert stats.total_contacts == 2
        assert stats.upcoming_occasions == 1
        assert stats.total_gifts == 7
        assert stats.total_spent == 7
        assert [g.id for g in stats.recent_gifts] == ["6", "5", "4", "3", "2"]
        assert stats.spent_statuses == ["delivered", "given", "purchased"]

    def test_spending_by_contact_ranked(self):
        contacts = [Contact(id="c1", name="Ana"), Contact(id="c2", name="Ben")]
        gifts = [
            _gift("a", "purchased", price=10, contact_id="c1"),
            _gift("b", "purchased", price=50, contact_id="c2"),
            _gift("c", "idea", price=500, contact_id="c1"),
            _gift("d", "given", price=5, contact_id="deleted"),
        ]
        entries = spending_by_contact(contacts, gifts)

        assert [e.contact_name for e in entries] == ["Ben", "Ana", UNKNOWN_CONTACT_NAME]
        assert entries[1].gift_count == 2
        assert entries[1].total_spent == 10
        assert entries[2].contact_id == "deleted"


class TestNormalizeStatuses:

    def test_accepts_enum_and_strings(self):
        assert normalize_statuses([GiftStatus.GIVEN, "purchased"]) == {"given", "purchased"}

    def test_rejects_unknown(self):
        with pytest.raises(ValueError):
            normalize_statuses(["bought"])

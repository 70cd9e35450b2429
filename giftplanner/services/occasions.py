"""
Occasion Planning — Titles, next occurrences and reminder windows.

Recurring occasions are stored with the date of one occurrence (often the
first one, e.g. a birth date); their next occurrence is that month/day in
the current or following year.
"""

import calendar
from datetime import date
from typing import Optional

from giftplanner.models.entities import Contact, Occasion

OCCASION_TYPE_LABELS: dict[str, str] = {
    "birthday": "Birthday",
    "anniversary": "Anniversary",
    "holiday": "Holiday",
    "graduation": "Graduation",
    "promotion": "Promotion",
    "mothers_day": "Mother's Day",
    "fathers_day": "Father's Day",
    "quinceanera": "Quinceañera",
    "bar_mitzvah": "Bar Mitzvah",
    "bat_mitzvah": "Bat Mitzvah",
    "kwanzaa": "Kwanzaa",
    "christmas": "Christmas",
    "hanukkah": "Hanukkah",
}


def occasion_type_label(occasion_type: str) -> str:
    if occasion_type in OCCASION_TYPE_LABELS:
        return OCCASION_TYPE_LABELS[occasion_type]
    if not occasion_type:
        return ""
    return occasion_type[0].upper() + occasion_type[1:].replace("_", " ")


def default_occasion_title(contact: Optional[Contact], occasion_type: str) -> str:
    """
    "<FirstName>'s <Label>", e.g. "Maria's Mother's Day".

    Custom occasions (and occasions without a known contact) get no default
    title; the user has to name them.
    """
    if occasion_type == "custom" or contact is None or not occasion_type:
        return ""
    return f"{contact.first_name}'s {occasion_type_label(occasion_type)}"


def _same_day_in_year(d: date, year: int) -> date:
    # Feb 29 falls back to Feb 28 in non-leap years
    if d.month == 2 and d.day == 29 and not calendar.isleap(year):
        return date(year, 2, 28)
    return d.replace(year=year)


def next_occurrence(occasion: Occasion, today: date) -> date:
    """The next date (today or later) this occasion happens on.

    One-off occasions simply return their stored date, even if it has passed.
    """
    if not occasion.recurring:
        return occasion.date
    candidate = _same_day_in_year(occasion.date, today.year)
    if candidate < today:
        candidate = _same_day_in_year(occasion.date, today.year + 1)
    return candidate


def days_until(occasion: Occasion, today: date) -> int:
    return (next_occurrence(occasion, today) - today).days


def upcoming_occasions(occasions: list[Occasion], today: date) -> list[Occasion]:
    """Occasions that have not passed, soonest first."""
    upcoming = [o for o in occasions if days_until(o, today) >= 0]
    return sorted(upcoming, key=lambda o: next_occurrence(o, today))


def due_reminders(occasions: list[Occasion], today: date) -> list[Occasion]:
    """Occasions whose next occurrence falls inside their reminder window."""
    due = [
        o for o in occasions
        if 0 <= days_until(o, today) <= o.reminder_days
    ]
    return sorted(due, key=lambda o: next_occurrence(o, today))

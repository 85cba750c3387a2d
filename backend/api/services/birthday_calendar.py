"""Year-independent birthday matching.

A 29 February birth date is celebrated on 1 March in non-leap years.
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date, timedelta


@dataclass(frozen=True)
class BirthdayMatch:
    matched: bool
    birthday_date: date | None = None


def birthday_in_year(dob: date, year: int) -> date:
    """The calendar date on which ``dob`` is celebrated in ``year``."""
    if dob.month == 2 and dob.day == 29 and not calendar.isleap(year):
        return date(year, 3, 1)
    return date(year, dob.month, dob.day)


def match_birthday(dob: date | None, today: date) -> BirthdayMatch:
    """Decide whether ``today`` is the birthday of someone born on ``dob``.

    The birth year is ignored. On a match, ``birthday_date`` is the
    celebrated date in today's year, which is the key used for duplicate
    prevention.
    """
    if dob is None:
        return BirthdayMatch(False)
    celebrated = birthday_in_year(dob, today.year)
    if celebrated != today:
        return BirthdayMatch(False)
    return BirthdayMatch(True, celebrated)


def is_birthday(dob: date | None, today: date) -> bool:
    return match_birthday(dob, today).matched


def birthday_month_days(today: date) -> list[tuple[int, int]]:
    """(month, day) pairs of birth dates celebrated on ``today``."""
    pairs = [(today.month, today.day)]
    if today.month == 3 and today.day == 1 and not calendar.isleap(today.year):
        pairs.append((2, 29))
    return pairs


def next_birthday_within(dob: date, reference: date, days: int) -> date | None:
    """First celebrated date in ``[reference, reference + days]``, or None.

    Both this year's and next year's occurrence are considered so windows
    crossing 31 December work.
    """
    end = reference + timedelta(days=days)
    for year in (reference.year, reference.year + 1):
        celebrated = birthday_in_year(dob, year)
        if reference <= celebrated <= end:
            return celebrated
    return None


def age_on(dob: date, on: date) -> int:
    """Completed years between ``dob`` and ``on``."""
    had_birthday = (on.month, on.day) >= (dob.month, dob.day)
    return on.year - dob.year - (0 if had_birthday else 1)

"""Phone number canonicalization for the WhatsApp gateway."""

from __future__ import annotations

import re

MALAYSIA_COUNTRY_CODE = "60"

_NON_DIGITS = re.compile(r"[^0-9]")


def normalize_phone(raw: str, country_code: str = MALAYSIA_COUNTRY_CODE) -> str:
    """Reduce ``raw`` to digits in international form without the plus sign.

    ``012-345 6789`` → ``60123456789``. Numbers already carrying the country
    code are returned unchanged; length is not validated.
    """
    digits = _NON_DIGITS.sub("", raw or "")
    if digits.startswith(country_code):
        return digits
    if digits.startswith("0"):
        return country_code + digits[1:]
    return country_code + digits


def has_usable_phone(raw: str | None) -> bool:
    """True when ``raw`` contains at least one digit."""
    return bool(raw) and _NON_DIGITS.sub("", raw or "") != ""

"""Birthday message template rendering."""

from __future__ import annotations

import re

from shared.models.customer import Customer

PLACEHOLDERS = ("Name", "SenderName", "SaveName", "Age", "PGCode")

_PLACEHOLDER_RE = re.compile(r"\{(\w+)\}")


def placeholder_values(customer: Customer) -> dict[str, str]:
    name = customer.name or ""
    return {
        "Name": name,
        "SenderName": customer.sender_name or name,
        "SaveName": customer.save_name or "",
        "Age": str(customer.age) if customer.age is not None else "",
        "PGCode": customer.pg_code or "",
    }


def render_template(template: str, customer: Customer) -> str:
    """Substitute every known ``{Placeholder}`` with the customer's field.

    Matching is case-sensitive and happens in a single pass, so substituted
    values are never re-scanned. Unknown placeholders are kept verbatim.
    """
    values = placeholder_values(customer)
    return _PLACEHOLDER_RE.sub(lambda m: values.get(m.group(1), m.group(0)), template)

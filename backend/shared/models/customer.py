"""Customer model consumed by the birthday messaging engine."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime


@dataclass
class Customer:
    """A tenant-owned customer with canonical field names.

    Import aliases (``Name`` / ``name`` / ``nama`` ...) are resolved once when
    the row is written; everything downstream reads these fields only.
    """

    id: str
    user_id: str
    name: str | None = None
    sender_name: str | None = None
    save_name: str | None = None
    dob: date | None = None
    phone: str | None = None
    age: int | None = None
    pg_code: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

"""Repository for the customers table (read side used by birthday messaging)."""

from __future__ import annotations

from collections.abc import Sequence

import asyncpg

from shared.models.customer import Customer

_COLUMNS = (
    "id::text AS id, user_id::text AS user_id, name, sender_name, save_name, "
    "dob, phone, age, pg_code, created_at, updated_at"
)


class CustomerRepository:
    def __init__(self, pool: asyncpg.Pool) -> None:
        self.pool = pool

    async def get(self, user_id: str, customer_id: str) -> Customer | None:
        """Fetch one customer owned by ``user_id``."""
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"SELECT {_COLUMNS} FROM customers WHERE id = $1::uuid AND user_id = $2::uuid",
                customer_id,
                user_id,
            )
            return Customer(**dict(row)) if row else None

    async def list_by_ids(self, user_id: str, customer_ids: Sequence[str]) -> list[Customer]:
        """Fetch the tenant's customers among ``customer_ids``, in creation order."""
        if not customer_ids:
            return []
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                f"""
                SELECT {_COLUMNS} FROM customers
                WHERE user_id = $1::uuid AND id = ANY($2::uuid[])
                ORDER BY created_at, id
                """,
                user_id,
                list(customer_ids),
            )
            return [Customer(**dict(row)) for row in rows]

    async def list_with_birthdays(self, user_id: str) -> list[Customer]:
        """All of a tenant's customers that have both a phone and a date of birth."""
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                f"""
                SELECT {_COLUMNS} FROM customers
                WHERE user_id = $1::uuid AND dob IS NOT NULL AND phone IS NOT NULL
                ORDER BY name NULLS LAST, id
                """,
                user_id,
            )
            return [Customer(**dict(row)) for row in rows]

    async def list_birthday_candidates(
        self, month_days: Sequence[tuple[int, int]]
    ) -> list[Customer]:
        """Customers of every tenant whose (birth month, birth day) is in ``month_days``.

        Only rows with a phone and a date of birth are returned.
        """
        if not month_days:
            return []
        months = [m for m, _ in month_days]
        days = [d for _, d in month_days]
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                f"""
                SELECT {_COLUMNS} FROM customers
                WHERE dob IS NOT NULL
                  AND phone IS NOT NULL
                  AND (EXTRACT(MONTH FROM dob)::int, EXTRACT(DAY FROM dob)::int) IN (
                      SELECT m, d FROM unnest($1::int[], $2::int[]) AS t(m, d)
                  )
                ORDER BY user_id, created_at, id
                """,
                months,
                days,
            )
            return [Customer(**dict(row)) for row in rows]

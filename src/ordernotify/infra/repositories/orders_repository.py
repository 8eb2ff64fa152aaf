"""Orders repository - the notification slice of storefront orders.

The ``orders`` and ``stores`` tables belong to the storefront. This module
only reads the columns needed to address and render notifications and
updates ``status``. Uses raw SQL with psycopg2 (no ORM).
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from psycopg2.extensions import cursor as PgCursor

from ordernotify.domain.models import OrderRecord, coerce_locale
from ordernotify.infra.db import fetchall, fetchone

_ORDER_COLUMNS = """
    o.id, o.status, o.language, o.customer_name, o.customer_phone,
    s.name, s.address, s.phone, o.total, o.currency, o.created_at
"""

_ORDER_FROM = """
    FROM orders o
    LEFT JOIN stores s ON s.id = o.store_id
"""


def _to_record(row: tuple[Any, ...]) -> OrderRecord:
    (
        order_id,
        status,
        language,
        customer_name,
        customer_phone,
        store_name,
        store_address,
        store_phone,
        total,
        currency,
        created_at,
    ) = row
    return OrderRecord(
        id=str(order_id),
        status=status,
        language=coerce_locale(language),
        customer_name=customer_name or "",
        customer_phone=customer_phone or "",
        store_name=store_name or "",
        store_address=store_address,
        store_phone=store_phone,
        total_amount=Decimal(str(total)) if total is not None else Decimal("0"),
        currency=(currency or "MXN").upper(),
        created_at=created_at,
    )


def get_order(cur: PgCursor, order_id: str) -> OrderRecord | None:
    row = fetchone(
        cur,
        f"SELECT {_ORDER_COLUMNS} {_ORDER_FROM} WHERE o.id::text = %s",
        (order_id,),
    )
    return _to_record(row) if row else None


def find_recent_by_phone(
    cur: PgCursor,
    *,
    local_phone: str,
    local_length: int,
    limit: int,
) -> list[OrderRecord]:
    """Newest orders whose phone ends with the same local number.

    Matching on the trailing digits covers every stored and sender form of
    one number: local only, ``52`` + local and the ``521`` mobile prefix.

    Args:
        cur: Database cursor.
        local_phone: The last ``local_length`` digits of the sender phone.
        local_length: Digits in a national number without country code.
        limit: Maximum rows.
    """
    rows = fetchall(
        cur,
        f"""
        SELECT {_ORDER_COLUMNS} {_ORDER_FROM}
        WHERE right(regexp_replace(o.customer_phone, '\\D', '', 'g'), %s) = %s
        ORDER BY o.created_at DESC
        LIMIT %s
        """,
        (local_length, local_phone, limit),
    )
    return [_to_record(row) for row in rows]


def compare_and_set_status(
    cur: PgCursor,
    *,
    order_id: str,
    expected: str,
    new: str,
) -> bool:
    """Set ``status`` only if it still equals ``expected``."""
    cur.execute(
        """
        UPDATE orders
        SET status = %s, updated_at = now()
        WHERE id::text = %s AND status = %s
        """,
        (new, order_id, expected),
    )
    return cur.rowcount == 1

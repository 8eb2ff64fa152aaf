"""Delivery status repository, one row per provider message id."""

from __future__ import annotations

from psycopg2.extensions import cursor as PgCursor

from ordernotify.domain.models import DeliveryRecord
from ordernotify.infra.db import fetchone
from ordernotify.whatsapp.models import DELIVERY_RANK


def get_status(cur: PgCursor, message_id: str) -> DeliveryRecord | None:
    row = fetchone(
        cur,
        """
        SELECT message_id, status, status_at, error_code, error_message,
               requires_manual_intervention
        FROM whatsapp_delivery_statuses
        WHERE message_id = %s
        """,
        (message_id,),
    )
    if row is None:
        return None
    return DeliveryRecord(
        message_id=row[0],
        status=row[1],
        timestamp=row[2],
        error_code=row[3],
        error_message=row[4],
        requires_manual_intervention=bool(row[5]),
    )


def _rank_sql(column: str) -> str:
    whens = " ".join(f"WHEN '{state}' THEN {rank}" for state, rank in DELIVERY_RANK.items())
    return f"(CASE {column} {whens} ELSE 0 END)"


_UPSERT_SQL = f"""
    INSERT INTO whatsapp_delivery_statuses (
        message_id, status, status_at, error_code, error_message,
        requires_manual_intervention
    )
    VALUES (%s, %s, %s, %s, %s, %s)
    ON CONFLICT (message_id) DO UPDATE SET
        status = EXCLUDED.status,
        status_at = EXCLUDED.status_at,
        error_code = EXCLUDED.error_code,
        error_message = EXCLUDED.error_message,
        requires_manual_intervention = EXCLUDED.requires_manual_intervention,
        updated_at = now()
    WHERE whatsapp_delivery_statuses.status <> 'failed'
      AND {_rank_sql("EXCLUDED.status")} > {_rank_sql("whatsapp_delivery_statuses.status")}
"""


def upsert_status(cur: PgCursor, record: DeliveryRecord) -> bool:
    """Insert or advance the stored status.

    The rank guard runs inside the upsert, so concurrent receipts for the
    same message cannot move it backwards. Returns False when the stored row
    was left alone (stale, duplicate or already failed).
    """
    cur.execute(
        _UPSERT_SQL,
        (
            record.message_id,
            record.status,
            record.timestamp,
            record.error_code,
            record.error_message,
            record.requires_manual_intervention,
        ),
    )
    return cur.rowcount == 1

"""WhatsApp message log repository.

Inbound messages are deduplicated on the provider message id. Outbound rows
keep one line per dispatch attempt for the admin tooling.
"""

from __future__ import annotations

from psycopg2.extensions import cursor as PgCursor

from ordernotify.domain.models import DispatchResult
from ordernotify.infra.db import fetchone
from ordernotify.whatsapp.models import MessageReceived


def insert_inbound(cur: PgCursor, message: MessageReceived) -> bool:
    """Insert an inbound message. Returns False for an already-seen id."""
    cur.execute(
        """
        INSERT INTO whatsapp_inbound_messages (
            message_id, sender_phone, body, kind, sent_at
        )
        VALUES (%s, %s, %s, %s, %s)
        ON CONFLICT (message_id) DO NOTHING
        """,
        (
            message.message_id,
            message.sender_phone,
            message.text,
            message.kind,
            message.timestamp,
        ),
    )
    return cur.rowcount == 1


def insert_outbound(
    cur: PgCursor,
    *,
    order_id: str | None,
    to_phone: str,
    kind: str,
    result: DispatchResult,
) -> None:
    cur.execute(
        """
        INSERT INTO whatsapp_outbound_messages (
            order_id, to_phone, kind, success, provider_message_id,
            test_mode, error
        )
        VALUES (%s, %s, %s, %s, %s, %s, %s)
        """,
        (
            order_id,
            to_phone,
            kind,
            result.success,
            result.message_id,
            result.test_mode,
            result.error,
        ),
    )


def outbound_exists(cur: PgCursor, *, order_id: str, kind: str) -> bool:
    row = fetchone(
        cur,
        """
        SELECT 1 FROM whatsapp_outbound_messages
        WHERE order_id = %s AND kind = %s AND success
        LIMIT 1
        """,
        (order_id, kind),
    )
    return row is not None

"""WhatsApp message log and delivery status tables.

Also adds the notification columns this service reads from the storefront
``orders`` table when that table exists.

Revision ID: 001_whatsapp_notifications
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

from alembic import op


revision = "001_whatsapp_notifications"
down_revision = None
branch_labels = None
depends_on = None


UPGRADE_SQL = """
CREATE TABLE IF NOT EXISTS whatsapp_inbound_messages (
    message_id   TEXT PRIMARY KEY,
    sender_phone TEXT NOT NULL,
    body         TEXT,
    kind         TEXT NOT NULL,
    sent_at      TIMESTAMPTZ,
    received_at  TIMESTAMPTZ NOT NULL DEFAULT now()
);

CREATE INDEX IF NOT EXISTS idx_whatsapp_inbound_sender
    ON whatsapp_inbound_messages (sender_phone, received_at DESC);

CREATE TABLE IF NOT EXISTS whatsapp_outbound_messages (
    id                  BIGSERIAL PRIMARY KEY,
    order_id            TEXT,
    to_phone            TEXT NOT NULL,
    kind                TEXT NOT NULL,
    success             BOOLEAN NOT NULL,
    provider_message_id TEXT,
    test_mode           BOOLEAN NOT NULL DEFAULT false,
    error               TEXT,
    created_at          TIMESTAMPTZ NOT NULL DEFAULT now()
);

CREATE INDEX IF NOT EXISTS idx_whatsapp_outbound_order_kind
    ON whatsapp_outbound_messages (order_id, kind);

CREATE TABLE IF NOT EXISTS whatsapp_delivery_statuses (
    message_id                   TEXT PRIMARY KEY,
    status                       TEXT NOT NULL
        CHECK (status IN ('sent', 'delivered', 'read', 'failed')),
    status_at                    TIMESTAMPTZ,
    error_code                   INTEGER,
    error_message                TEXT,
    requires_manual_intervention BOOLEAN NOT NULL DEFAULT false,
    updated_at                   TIMESTAMPTZ NOT NULL DEFAULT now()
);

ALTER TABLE IF EXISTS orders ADD COLUMN IF NOT EXISTS language TEXT NOT NULL DEFAULT 'en';
ALTER TABLE IF EXISTS orders ADD COLUMN IF NOT EXISTS currency TEXT NOT NULL DEFAULT 'MXN';
ALTER TABLE IF EXISTS orders ADD COLUMN IF NOT EXISTS updated_at TIMESTAMPTZ NOT NULL DEFAULT now();
"""


def upgrade() -> None:
    conn = op.get_bind()
    conn.exec_driver_sql(UPGRADE_SQL)


def downgrade() -> None:
    conn = op.get_bind()
    conn.exec_driver_sql(
        """
        DROP TABLE IF EXISTS whatsapp_delivery_statuses;
        DROP TABLE IF EXISTS whatsapp_outbound_messages;
        DROP TABLE IF EXISTS whatsapp_inbound_messages;
        """
    )

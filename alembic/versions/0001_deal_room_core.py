"""deal room core tables

Revision ID: 0001_deal_room_core
Revises:
Create Date: 2026-10-18 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = "0001_deal_room_core"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

JSONType = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def upgrade():
    op.create_table(
        "dealers",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("business_name", sa.String(256), nullable=False),
        sa.Column("owner_email", sa.String(320), nullable=False, unique=True),
        sa.Column("email", sa.String(320), nullable=True),
        sa.Column("phone", sa.String(32), nullable=True),
        sa.Column("address", sa.String(512), nullable=True),
        sa.Column("city", sa.String(128), nullable=True),
        sa.Column("state", sa.String(128), nullable=True),
        sa.Column("verification_status", sa.String(32), nullable=False, server_default=sa.text("'provisional'")),

        sa.Column("rating", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("rating_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("completed_deals", sa.Integer(), nullable=False, server_default=sa.text("0")),

        sa.Column("bank_name", sa.String(128), nullable=True),
        sa.Column("account_number", sa.String(64), nullable=True),
        sa.Column("ifsc_code", sa.String(16), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),

        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_dealers_city", "dealers", ["city"])

    op.create_table(
        "vehicles",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("dealer_id", sa.Uuid(), sa.ForeignKey("dealers.id", ondelete="CASCADE"), nullable=False),
        sa.Column("make", sa.String(64), nullable=False),
        sa.Column("model", sa.String(64), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("price", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(32), nullable=False, server_default=sa.text("'draft'")),
        sa.Column("vin", sa.String(32), nullable=True),
        sa.Column("kilometers", sa.Integer(), nullable=True),
        sa.Column("fuel_type", sa.String(32), nullable=True),
        sa.Column("transmission", sa.String(32), nullable=True),
        sa.Column("date_listed", sa.DateTime(timezone=True), nullable=True),
        sa.Column("date_sold", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_vehicles_dealer", "vehicles", ["dealer_id"])
    op.create_index("ix_vehicles_make_model_status", "vehicles", ["make", "model", "status"])

    op.create_table(
        "transactions",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("vehicle_id", sa.Uuid(), sa.ForeignKey("vehicles.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("seller_id", sa.Uuid(), nullable=False),
        sa.Column("buyer_id", sa.Uuid(), nullable=True),
        sa.Column("status", sa.String(32), nullable=False),
        sa.Column("offer_amount", sa.Integer(), nullable=False),
        sa.Column("final_amount", sa.Integer(), nullable=True),

        sa.Column("escrow_status", sa.String(16), nullable=False, server_default=sa.text("'none'")),
        sa.Column("payment_method", sa.String(32), nullable=True),
        sa.Column("payment_reference", sa.String(128), nullable=True),
        sa.Column("payment_confirmed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("funds_released_at", sa.DateTime(timezone=True), nullable=True),

        sa.Column("transport_status", sa.String(16), nullable=False, server_default=sa.text("'none'")),
        sa.Column("logistics_partner", sa.String(64), nullable=True),
        sa.Column("transport_booking_id", sa.String(64), nullable=True),
        sa.Column("pickup_address", sa.String(512), nullable=True),
        sa.Column("delivery_address", sa.String(512), nullable=True),
        sa.Column("pickup_eta", sa.DateTime(timezone=True), nullable=True),
        sa.Column("delivery_eta", sa.DateTime(timezone=True), nullable=True),
        sa.Column("delivery_confirmed_at", sa.DateTime(timezone=True), nullable=True),

        sa.Column("messages", JSONType, nullable=False),
        sa.Column("seller_rating", JSONType, nullable=True),
        sa.Column("buyer_rating", JSONType, nullable=True),

        sa.Column("deal_archived", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("archived_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default=sa.text("1")),

        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_transactions_vehicle", "transactions", ["vehicle_id"])
    op.create_index("ix_transactions_seller", "transactions", ["seller_id"])
    op.create_index("ix_transactions_buyer", "transactions", ["buyer_id"])
    op.create_index("ix_transactions_status", "transactions", ["status"])

    op.create_table(
        "notifications",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("recipient_email", sa.String(320), nullable=False),
        sa.Column("type", sa.String(32), nullable=False),
        sa.Column("title", sa.String(256), nullable=False),
        sa.Column("message", sa.String(2000), nullable=False),
        sa.Column("link", sa.String(512), nullable=True),
        sa.Column("priority", sa.String(16), nullable=False, server_default=sa.text("'normal'")),
        sa.Column("read_status", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_notifications_recipient_read", "notifications", ["recipient_email", "read_status"])

    op.create_table(
        "rto_applications",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("transaction_id", sa.Uuid(), sa.ForeignKey("transactions.id", ondelete="CASCADE"), nullable=False),
        sa.Column("vehicle_id", sa.Uuid(), nullable=False),
        sa.Column("seller_name", sa.String(256), nullable=False),
        sa.Column("seller_address", sa.String(512), nullable=True),
        sa.Column("buyer_name", sa.String(256), nullable=False),
        sa.Column("buyer_address", sa.String(512), nullable=True),
        sa.Column("application_fee", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("document_urls", JSONType, nullable=False),
        sa.Column("status", sa.String(32), nullable=False),
        sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_rto_transaction", "rto_applications", ["transaction_id"])

    op.create_table(
        "idempotency_key_records",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("transaction_id", sa.Uuid(), nullable=False),
        sa.Column("actor_email", sa.String(320), nullable=False),
        sa.Column("endpoint_key", sa.String(128), nullable=False),
        sa.Column("idem_key", sa.String(128), nullable=False),
        sa.Column("request_hash", sa.String(128), nullable=False),
        sa.Column("response_status", sa.String(16), nullable=False, server_default=sa.text("'200'")),
        sa.Column("response_json", JSONType, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("transaction_id", "actor_email", "endpoint_key", "idem_key", name="uq_idem_scope"),
    )
    op.create_index(
        "ix_idem_lookup", "idempotency_key_records", ["transaction_id", "actor_email", "endpoint_key"]
    )


def downgrade():
    op.drop_index("ix_idem_lookup", table_name="idempotency_key_records")
    op.drop_table("idempotency_key_records")
    op.drop_index("ix_rto_transaction", table_name="rto_applications")
    op.drop_table("rto_applications")
    op.drop_index("ix_notifications_recipient_read", table_name="notifications")
    op.drop_table("notifications")
    for ix in ("ix_transactions_status", "ix_transactions_buyer", "ix_transactions_seller", "ix_transactions_vehicle"):
        op.drop_index(ix, table_name="transactions")
    op.drop_table("transactions")
    op.drop_index("ix_vehicles_make_model_status", table_name="vehicles")
    op.drop_index("ix_vehicles_dealer", table_name="vehicles")
    op.drop_table("vehicles")
    op.drop_index("ix_dealers_city", table_name="dealers")
    op.drop_table("dealers")

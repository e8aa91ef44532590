"""Initial billing schema: parties, items, purchases, sales, payments, sequences, reconciliation log

Revision ID: 20261018_initial_billing
Revises:
Create Date: 2026-10-18
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261018_initial_billing"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
    ]


def _trade_columns():
    return [
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("document_number", sa.String(32), nullable=False),
        sa.Column("party_id", sa.Integer(), nullable=True),
        sa.Column("party_name", sa.String(100), nullable=False),
        sa.Column("phone_number", sa.String(20), nullable=False),
        sa.Column("total_amount", sa.Numeric(14, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("date", sa.String(10), nullable=False),
        sa.Column("status", sa.String(16), nullable=False, server_default="pending"),
        sa.Column("pdf_uri", sa.String(512), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["party_id"], ["parties.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("document_number"),
    ]


def _line_columns(parent_table: str, parent_key: str):
    return [
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column(parent_key, sa.Integer(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("item_id", sa.Integer(), nullable=False),
        sa.Column("item_name", sa.String(255), nullable=True),
        sa.Column("quantity", sa.Numeric(14, 3), nullable=False),
        sa.Column("price", sa.Numeric(14, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("line_total", sa.Numeric(14, 2), nullable=False, server_default=sa.text("0")),
        sa.ForeignKeyConstraint([parent_key], [f"{parent_table}.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    ]


def upgrade():
    op.create_table(
        "parties",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("phone_number", sa.String(20), nullable=False),
        sa.Column("role", sa.String(16), nullable=False, server_default="general"),
        sa.Column("address", sa.String(255), nullable=True),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("balance", sa.Numeric(14, 2), nullable=False, server_default=sa.text("0")),
        *_timestamps(),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name", "phone_number", name="uq_parties_name_phone"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("parties", schema=None) as batch_op:
        batch_op.create_index("ix_parties_phone_number", ["phone_number"], unique=False)
        batch_op.create_index("ix_parties_role", ["role"], unique=False)

    op.create_table(
        "items",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("product_name", sa.String(255), nullable=False),
        sa.Column("category", sa.String(32), nullable=False, server_default="Primary"),
        sa.Column("purchase_price", sa.Numeric(14, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("sale_price", sa.Numeric(14, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("opening_stock", sa.Numeric(16, 4), nullable=False, server_default=sa.text("0")),
        sa.Column("as_of_date", sa.String(10), nullable=True),
        sa.Column("low_stock_alert", sa.Numeric(16, 4), nullable=False, server_default=sa.text("0")),
        sa.Column("is_universal", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("universal_key", sa.String(32), nullable=True),
        *_timestamps(),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("universal_key", name="uq_items_universal_key"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("items", schema=None) as batch_op:
        batch_op.create_index("ix_items_category_name", ["category", "product_name"], unique=False)
        batch_op.create_index("ix_items_is_universal", ["is_universal"], unique=False)

    for table in ("purchases", "sales"):
        op.create_table(table, *_trade_columns(), sqlite_autoincrement=True)
        with op.batch_alter_table(table, schema=None) as batch_op:
            batch_op.create_index(f"ix_{table}_party_id", ["party_id"], unique=False)
            batch_op.create_index(f"ix_{table}_party_name", ["party_name"], unique=False)
            batch_op.create_index(f"ix_{table}_phone_number", ["phone_number"], unique=False)
            batch_op.create_index(f"ix_{table}_date", ["date"], unique=False)
            batch_op.create_index(f"ix_{table}_status", ["status"], unique=False)
            batch_op.create_index(f"ix_{table}_created_at", ["created_at"], unique=False)

    op.create_table("purchase_lines", *_line_columns("purchases", "purchase_id"), sqlite_autoincrement=True)
    with op.batch_alter_table("purchase_lines", schema=None) as batch_op:
        batch_op.create_index("ix_purchase_lines_purchase_id", ["purchase_id"], unique=False)
        batch_op.create_index("ix_purchase_lines_item_id", ["item_id"], unique=False)

    op.create_table("sale_lines", *_line_columns("sales", "sale_id"), sqlite_autoincrement=True)
    with op.batch_alter_table("sale_lines", schema=None) as batch_op:
        batch_op.create_index("ix_sale_lines_sale_id", ["sale_id"], unique=False)
        batch_op.create_index("ix_sale_lines_item_id", ["item_id"], unique=False)

    op.create_table(
        "payments",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("document_number", sa.String(32), nullable=False),
        sa.Column("type", sa.String(16), nullable=False, server_default="payment-in"),
        sa.Column("party_id", sa.Integer(), nullable=True),
        sa.Column("party_name", sa.String(100), nullable=False),
        sa.Column("phone_number", sa.String(20), nullable=False),
        sa.Column("amount", sa.Numeric(14, 2), nullable=False),
        sa.Column("total_amount", sa.Numeric(14, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("date", sa.String(10), nullable=False),
        sa.Column("status", sa.String(16), nullable=False, server_default="completed"),
        sa.Column("description", sa.String(500), nullable=True),
        sa.Column("payment_method", sa.String(16), nullable=False, server_default="cash"),
        sa.Column("reference", sa.String(100), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["party_id"], ["parties.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("document_number"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("payments", schema=None) as batch_op:
        batch_op.create_index("ix_payments_type", ["type"], unique=False)
        batch_op.create_index("ix_payments_party_id", ["party_id"], unique=False)
        batch_op.create_index("ix_payments_party_name", ["party_name"], unique=False)
        batch_op.create_index("ix_payments_phone_number", ["phone_number"], unique=False)
        batch_op.create_index("ix_payments_date", ["date"], unique=False)
        batch_op.create_index("ix_payments_status", ["status"], unique=False)
        batch_op.create_index("ix_payments_created_at", ["created_at"], unique=False)
        batch_op.create_index("ix_payments_type_party_name", ["type", "party_name"], unique=False)

    op.create_table(
        "document_sequences",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("prefix", sa.String(16), nullable=False),
        sa.Column("next_number", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("prefix", name="uq_doc_sequences_prefix"),
        sqlite_autoincrement=True,
    )

    op.create_table(
        "reconciliation_events",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("document_type", sa.String(16), nullable=False),
        sa.Column("document_id", sa.Integer(), nullable=False),
        sa.Column("document_number", sa.String(32), nullable=True),
        sa.Column("operation", sa.String(16), nullable=False),
        sa.Column("entity_type", sa.String(16), nullable=False),
        sa.Column("entity_id", sa.Integer(), nullable=True),
        sa.Column("effect", sa.String(16), nullable=False),
        sa.Column("amount", sa.Numeric(16, 4), nullable=False, server_default=sa.text("0")),
        sa.Column("outcome", sa.String(16), nullable=False, server_default="applied"),
        sa.Column("note", sa.String(255), nullable=True),
        sa.Column("occurred_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("reconciliation_events", schema=None) as batch_op:
        batch_op.create_index("ix_recon_events_document", ["document_type", "document_id"], unique=False)
        batch_op.create_index("ix_recon_events_entity", ["entity_type", "entity_id"], unique=False)
        batch_op.create_index("ix_reconciliation_events_occurred_at", ["occurred_at"], unique=False)


def downgrade():
    op.drop_table("reconciliation_events")
    op.drop_table("document_sequences")
    op.drop_table("payments")
    op.drop_table("sale_lines")
    op.drop_table("purchase_lines")
    op.drop_table("sales")
    op.drop_table("purchases")
    op.drop_table("items")
    op.drop_table("parties")

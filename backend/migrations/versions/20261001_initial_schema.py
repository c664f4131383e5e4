"""Initial back office schema

Revision ID: 20261001_initial
Revises:
Create Date: 2026-10-01
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261001_initial"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
    ]


def upgrade():
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("identity_uid", sa.String(128), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("display_name", sa.String(255), nullable=False, server_default=""),
        sa.Column("photo_url", sa.String(1024), nullable=False, server_default=""),
        sa.Column("phone_number", sa.String(32), nullable=False, server_default=""),
        sa.Column("role", sa.String(32), nullable=False, server_default="engineer"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        sa.Column("business_name", sa.String(255), nullable=False, server_default=""),
        sa.Column("owner_name", sa.String(255), nullable=False, server_default=""),
        sa.Column("business_address", sa.String(512), nullable=False, server_default=""),
        sa.Column("business_state", sa.String(128), nullable=False, server_default=""),
        sa.Column("business_city", sa.String(128), nullable=False, server_default=""),
        sa.Column("business_pincode", sa.String(16), nullable=False, server_default=""),
        sa.Column("business_phone", sa.String(32), nullable=False, server_default=""),
        sa.Column("hide_phone_on_bills", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("profile_completed_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("identity_uid", name="uq_users_identity_uid"),
        sa.UniqueConstraint("email", name="uq_users_email"),
        sqlite_autoincrement=True,
    )

    op.create_table(
        "device_tokens",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("token", sa.String(512), nullable=False),
        sa.Column("device", sa.String(64), nullable=False, server_default="web"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("last_seen_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "token", name="uq_device_tokens_user_token"),
        sqlite_autoincrement=True,
    )

    with op.batch_alter_table("device_tokens", schema=None) as batch_op:
        batch_op.create_index("ix_device_tokens_user_id", ["user_id"], unique=False)
        batch_op.create_index("ix_device_tokens_last_seen_at", ["last_seen_at"], unique=False)

    op.create_table(
        "customers",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("owner_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(32), nullable=False),
        sa.Column("whatsapp", sa.String(32), nullable=False, server_default=""),
        sa.Column("address", sa.String(512), nullable=False, server_default=""),
        sa.Column("is_deleted", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        *_timestamps(),
        sa.ForeignKeyConstraint(["owner_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("owner_id", "phone", name="uq_customers_owner_phone"),
        sqlite_autoincrement=True,
    )

    with op.batch_alter_table("customers", schema=None) as batch_op:
        batch_op.create_index("ix_customers_owner_id", ["owner_id"], unique=False)
        batch_op.create_index("ix_customers_owner_deleted", ["owner_id", "is_deleted"], unique=False)

    op.create_table(
        "items",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("owner_id", sa.Integer(), nullable=False),
        sa.Column("item_type", sa.String(16), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("unit", sa.String(32), nullable=False),
        sa.Column("warranty", sa.String(64), nullable=False, server_default="no_warranty"),
        sa.Column("mrp_cents", sa.Integer(), nullable=False),
        sa.Column("purchase_price_cents", sa.Integer(), nullable=False),
        sa.Column("sale_price_cents", sa.Integer(), nullable=False),
        sa.Column("stock_qty", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("is_deleted", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        *_timestamps(),
        sa.CheckConstraint("stock_qty >= 0", name="ck_items_stock_non_negative"),
        sa.ForeignKeyConstraint(["owner_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )

    with op.batch_alter_table("items", schema=None) as batch_op:
        batch_op.create_index("ix_items_owner_id", ["owner_id"], unique=False)
        batch_op.create_index("ix_items_owner_deleted", ["owner_id", "is_deleted"], unique=False)

    op.create_table(
        "item_serials",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("item_id", sa.Integer(), nullable=False),
        sa.Column("serial_no", sa.String(128), nullable=False),
        sa.Column("status", sa.String(16), nullable=False, server_default="available"),
        sa.Column("added_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("customer_name", sa.String(255), nullable=True),
        sa.Column("bill_number", sa.String(64), nullable=True),
        sa.ForeignKeyConstraint(["item_id"], ["items.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("serial_no", name="uq_item_serials_serial_no"),
        sqlite_autoincrement=True,
    )

    with op.batch_alter_table("item_serials", schema=None) as batch_op:
        batch_op.create_index("ix_item_serials_item_id", ["item_id"], unique=False)
        batch_op.create_index("ix_item_serials_item_status", ["item_id", "status"], unique=False)

    op.create_table(
        "stock_receipts",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("item_id", sa.Integer(), nullable=False),
        sa.Column("qty", sa.Integer(), nullable=False),
        sa.Column("added_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.ForeignKeyConstraint(["item_id"], ["items.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )

    with op.batch_alter_table("stock_receipts", schema=None) as batch_op:
        batch_op.create_index("ix_stock_receipts_item_id", ["item_id"], unique=False)

    op.create_table(
        "services",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("owner_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("price_cents", sa.Integer(), nullable=False),
        sa.Column("is_deleted", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        *_timestamps(),
        sa.ForeignKeyConstraint(["owner_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )

    with op.batch_alter_table("services", schema=None) as batch_op:
        batch_op.create_index("ix_services_owner_id", ["owner_id"], unique=False)
        batch_op.create_index("ix_services_owner_deleted", ["owner_id", "is_deleted"], unique=False)

    op.create_table(
        "work_orders",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("owner_id", sa.Integer(), nullable=False),
        sa.Column("customer_id", sa.Integer(), nullable=False),
        sa.Column("work_order_number", sa.String(64), nullable=False),
        sa.Column("note", sa.Text(), nullable=False),
        sa.Column("schedule_date", sa.Date(), nullable=False),
        sa.Column("schedule_time", sa.String(5), nullable=True),
        sa.Column("status", sa.String(16), nullable=False, server_default="pending"),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("reminder_sent", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("bill_id", sa.Integer(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["owner_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["customer_id"], ["customers.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("owner_id", "work_order_number", name="uq_work_orders_owner_number"),
        sqlite_autoincrement=True,
    )

    with op.batch_alter_table("work_orders", schema=None) as batch_op:
        batch_op.create_index("ix_work_orders_owner_id", ["owner_id"], unique=False)
        batch_op.create_index("ix_work_orders_customer_id", ["customer_id"], unique=False)
        batch_op.create_index("ix_work_orders_status", ["status"], unique=False)
        batch_op.create_index(
            "ix_work_orders_owner_status_schedule", ["owner_id", "status", "schedule_date"], unique=False
        )

    op.create_table(
        "bills",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("owner_id", sa.Integer(), nullable=False),
        sa.Column("customer_id", sa.Integer(), nullable=False),
        sa.Column("bill_number", sa.String(64), nullable=False),
        sa.Column("subtotal_cents", sa.Integer(), nullable=False),
        sa.Column("discount_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("total_cents", sa.Integer(), nullable=False),
        sa.Column("received_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("due_cents", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(16), nullable=False, server_default="pending"),
        sa.Column("payment_method", sa.String(16), nullable=False, server_default="cash"),
        sa.Column("work_order_id", sa.Integer(), nullable=True),
        sa.Column("is_deleted", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        *_timestamps(),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.ForeignKeyConstraint(["owner_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["customer_id"], ["customers.id"]),
        sa.ForeignKeyConstraint(["work_order_id"], ["work_orders.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("owner_id", "bill_number", name="uq_bills_owner_number"),
        sqlite_autoincrement=True,
    )

    with op.batch_alter_table("bills", schema=None) as batch_op:
        batch_op.create_index("ix_bills_owner_id", ["owner_id"], unique=False)
        batch_op.create_index("ix_bills_customer_id", ["customer_id"], unique=False)
        batch_op.create_index("ix_bills_status", ["status"], unique=False)
        batch_op.create_index("ix_bills_owner_created", ["owner_id", "created_at"], unique=False)
        batch_op.create_index("ix_bills_customer_due", ["customer_id", "due_cents"], unique=False)

    op.create_table(
        "bill_lines",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("bill_id", sa.Integer(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("line_type", sa.String(16), nullable=False),
        sa.Column("item_ref", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("serial_no", sa.String(128), nullable=True),
        sa.Column("qty", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("unit_price_cents", sa.Integer(), nullable=False),
        sa.Column("purchase_price_cents_at_sale", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("line_amount_cents", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["bill_id"], ["bills.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )

    with op.batch_alter_table("bill_lines", schema=None) as batch_op:
        batch_op.create_index("ix_bill_lines_bill_id", ["bill_id"], unique=False)

    op.create_table(
        "bill_payments",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("bill_id", sa.Integer(), nullable=False),
        sa.Column("amount_cents", sa.Integer(), nullable=False),
        sa.Column("paid_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("note", sa.String(255), nullable=False, server_default=""),
        sa.ForeignKeyConstraint(["bill_id"], ["bills.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )

    with op.batch_alter_table("bill_payments", schema=None) as batch_op:
        batch_op.create_index("ix_bill_payments_bill_id", ["bill_id"], unique=False)
        batch_op.create_index("ix_bill_payments_bill_paid", ["bill_id", "paid_at"], unique=False)

    op.create_table(
        "bank_accounts",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("owner_id", sa.Integer(), nullable=False),
        sa.Column("bank_name", sa.String(255), nullable=False),
        sa.Column("account_number", sa.String(64), nullable=False),
        sa.Column("ifsc_code", sa.String(16), nullable=False),
        sa.Column("account_holder_name", sa.String(255), nullable=False),
        sa.Column("upi_id", sa.String(255), nullable=False),
        sa.Column("is_primary", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("is_deleted", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        *_timestamps(),
        sa.ForeignKeyConstraint(["owner_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )

    with op.batch_alter_table("bank_accounts", schema=None) as batch_op:
        batch_op.create_index("ix_bank_accounts_owner_id", ["owner_id"], unique=False)
        batch_op.create_index("ix_bank_accounts_owner_primary", ["owner_id", "is_primary"], unique=False)

    op.create_table(
        "document_sequences",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("owner_id", sa.Integer(), nullable=False),
        sa.Column("document_type", sa.String(32), nullable=False),
        sa.Column("next_number", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.ForeignKeyConstraint(["owner_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("owner_id", "document_type", name="uq_doc_sequences_owner_type"),
        sqlite_autoincrement=True,
    )

    with op.batch_alter_table("document_sequences", schema=None) as batch_op:
        batch_op.create_index("ix_document_sequences_owner_id", ["owner_id"], unique=False)


def downgrade():
    for table in (
        "document_sequences",
        "bank_accounts",
        "bill_payments",
        "bill_lines",
        "bills",
        "work_orders",
        "services",
        "stock_receipts",
        "item_serials",
        "items",
        "customers",
        "device_tokens",
        "users",
    ):
        op.drop_table(table)

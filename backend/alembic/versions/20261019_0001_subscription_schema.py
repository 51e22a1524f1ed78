"""Create users, service catalog and subscription tables."""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


ENUM_VALUES = {
    "user_role_enum": ("customer", "admin"),
    "service_category_enum": (
        "Cable",
        "Silver",
        "Snacks",
        "Internet",
        "Gaming",
        "Design",
        "Development",
    ),
    "currency_enum": ("INR", "USD"),
    "billing_cycle_enum": ("one-time", "monthly", "quarterly", "yearly"),
    "subscription_status_enum": (
        "pending",
        "active",
        "paused",
        "cancelled",
        "expired",
        "failed",
    ),
    "payment_status_enum": ("pending", "paid", "failed", "refunded", "partial"),
    "installation_status_enum": (
        "not-required",
        "scheduled",
        "in-progress",
        "completed",
        "failed",
    ),
    "subscription_source_enum": ("web", "mobile", "admin", "api"),
    "payment_method_enum": ("card", "upi", "netbanking", "wallet", "cash", "cheque"),
    "payment_record_status_enum": ("pending", "success", "failed", "refunded"),
}


def _dialect_settings():
    bind = op.get_bind()
    dialect = bind.dialect.name if bind else "sqlite"

    uuid_type = sa.String(length=36)
    json_type = sa.JSON()
    if dialect == "postgresql":
        uuid_type = postgresql.UUID(as_uuid=True)
        json_type = postgresql.JSONB()
    return dialect, uuid_type, json_type


def _enum_factory(dialect: str):
    """Return a builder for named enums; PostgreSQL types are created once up front."""

    if dialect == "postgresql":
        bind = op.get_bind()
        for name, values in ENUM_VALUES.items():
            postgresql.ENUM(*values, name=name).create(bind, checkfirst=True)

        def build(name: str):
            return postgresql.ENUM(*ENUM_VALUES[name], name=name, create_type=False)

        return build

    def build(name: str):
        return sa.Enum(*ENUM_VALUES[name], name=name)

    return build


def upgrade() -> None:
    dialect, uuid_type, json_type = _dialect_settings()
    enum = _enum_factory(dialect)

    op.create_table(
        "users",
        sa.Column("user_id", uuid_type, primary_key=True),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("phone", sa.String(length=20), nullable=True),
        sa.Column("role", enum("user_role_enum"), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "services",
        sa.Column("service_id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("description", sa.String(length=500), nullable=False),
        sa.Column("category", enum("service_category_enum"), nullable=False),
        sa.Column("subcategory", sa.String(length=100), nullable=True),
        sa.Column("slug", sa.String(length=120), nullable=False, unique=True),
        sa.Column("price_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("currency", enum("currency_enum"), nullable=False),
        sa.Column("billing_cycle", enum("billing_cycle_enum"), nullable=False),
        sa.Column("features", json_type, nullable=False),
        sa.Column("specifications", json_type, nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("regions", json_type, nullable=False),
        sa.Column("max_subscriptions", sa.Integer(), nullable=True),
        sa.Column(
            "current_subscriptions", sa.Integer(), nullable=False, server_default="0"
        ),
        sa.Column(
            "max_quantity_per_user", sa.Integer(), nullable=False, server_default="1"
        ),
        sa.Column(
            "min_subscription_period", sa.Integer(), nullable=False, server_default="1"
        ),
        sa.Column("max_online_order_value", sa.Numeric(12, 2), nullable=True),
        sa.Column("requires_quote", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("tags", json_type, nullable=False),
        sa.Column(
            "created_by",
            uuid_type,
            sa.ForeignKey("users.user_id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column(
            "last_modified_by",
            uuid_type,
            sa.ForeignKey("users.user_id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.CheckConstraint("price_amount >= 0", name="ck_services_price_non_negative"),
        sa.CheckConstraint(
            "current_subscriptions >= 0",
            name="ck_services_current_subscriptions_non_negative",
        ),
        sa.CheckConstraint(
            "max_subscriptions IS NULL OR current_subscriptions <= max_subscriptions",
            name="ck_services_current_within_capacity",
        ),
        sa.CheckConstraint(
            "max_quantity_per_user >= 1", name="ck_services_max_quantity_positive"
        ),
        sa.CheckConstraint(
            "min_subscription_period >= 1", name="ck_services_min_period_positive"
        ),
    )
    op.create_index(
        "services_category_active_idx", "services", ["category", "is_active"]
    )
    op.create_index("services_price_idx", "services", ["price_amount"])

    op.create_table(
        "subscriptions",
        sa.Column("subscription_id", uuid_type, primary_key=True),
        sa.Column(
            "user_id",
            uuid_type,
            sa.ForeignKey("users.user_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("plan_name", sa.String(length=100), nullable=True),
        sa.Column("subtotal", sa.Numeric(12, 2), nullable=False),
        sa.Column("taxes", sa.Numeric(12, 2), nullable=False),
        sa.Column("discounts", sa.Numeric(12, 2), nullable=False),
        sa.Column("total", sa.Numeric(12, 2), nullable=False),
        sa.Column("currency", enum("currency_enum"), nullable=False),
        sa.Column("billing_cycle", enum("billing_cycle_enum"), nullable=False),
        sa.Column("status", enum("subscription_status_enum"), nullable=False),
        sa.Column("payment_status", enum("payment_status_enum"), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column("next_billing_date", sa.Date(), nullable=True),
        sa.Column("last_payment_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("paused_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "installation_required",
            sa.Boolean(),
            nullable=False,
            server_default=sa.false(),
        ),
        sa.Column("installation_scheduled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "installation_status", enum("installation_status_enum"), nullable=False
        ),
        sa.Column("technician_name", sa.String(length=100), nullable=True),
        sa.Column("technician_phone", sa.String(length=20), nullable=True),
        sa.Column("technician_email", sa.String(length=255), nullable=True),
        sa.Column("installation_notes", sa.Text(), nullable=True),
        sa.Column("address_street", sa.String(length=200), nullable=False),
        sa.Column("address_city", sa.String(length=100), nullable=False),
        sa.Column("address_state", sa.String(length=100), nullable=False),
        sa.Column("address_pincode", sa.String(length=6), nullable=False),
        sa.Column("address_landmark", sa.String(length=200), nullable=True),
        sa.Column("source", enum("subscription_source_enum"), nullable=False),
        sa.Column("referral_code", sa.String(length=50), nullable=True),
        sa.Column("promo_code", sa.String(length=50), nullable=True),
        sa.Column("tags", json_type, nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.CheckConstraint("subtotal >= 0", name="ck_subscriptions_subtotal_non_negative"),
        sa.CheckConstraint("taxes >= 0", name="ck_subscriptions_taxes_non_negative"),
        sa.CheckConstraint("discounts >= 0", name="ck_subscriptions_discounts_non_negative"),
        sa.CheckConstraint("total >= 0", name="ck_subscriptions_total_non_negative"),
    )
    op.create_index("subscriptions_user_status_idx", "subscriptions", ["user_id", "status"])
    op.create_index(
        "subscriptions_status_next_billing_idx",
        "subscriptions",
        ["status", "next_billing_date"],
    )
    op.create_index("subscriptions_end_date_idx", "subscriptions", ["end_date"])

    op.create_table(
        "subscription_items",
        sa.Column("item_id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "subscription_id",
            uuid_type,
            sa.ForeignKey("subscriptions.subscription_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column(
            "service_id",
            sa.Integer(),
            sa.ForeignKey("services.service_id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("customizations", json_type, nullable=False),
        sa.Column("price_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("price_currency", enum("currency_enum"), nullable=False),
        sa.Column("price_billing_cycle", enum("billing_cycle_enum"), nullable=False),
        sa.CheckConstraint("quantity >= 1", name="ck_subscription_items_quantity_positive"),
        sa.CheckConstraint(
            "price_amount >= 0", name="ck_subscription_items_price_non_negative"
        ),
    )
    op.create_index(
        "subscription_items_service_idx", "subscription_items", ["service_id"]
    )
    op.create_index(
        "subscription_items_subscription_idx", "subscription_items", ["subscription_id"]
    )

    op.create_table(
        "subscription_payments",
        sa.Column("payment_id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "subscription_id",
            uuid_type,
            sa.ForeignKey("subscriptions.subscription_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("currency", enum("currency_enum"), nullable=False),
        sa.Column("method", enum("payment_method_enum"), nullable=False),
        sa.Column("transaction_id", sa.String(length=120), nullable=True),
        sa.Column("status", enum("payment_record_status_enum"), nullable=False),
        sa.Column("paid_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.CheckConstraint(
            "amount >= 0", name="ck_subscription_payments_amount_non_negative"
        ),
    )
    op.create_index(
        "subscription_payments_subscription_idx",
        "subscription_payments",
        ["subscription_id"],
    )

    op.create_table(
        "subscription_notes",
        sa.Column("note_id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "subscription_id",
            uuid_type,
            sa.ForeignKey("subscriptions.subscription_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("author", sa.String(length=255), nullable=True),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(
        "subscription_notes_subscription_idx",
        "subscription_notes",
        ["subscription_id"],
    )


def downgrade() -> None:
    op.drop_index("subscription_notes_subscription_idx", table_name="subscription_notes")
    op.drop_table("subscription_notes")
    op.drop_index(
        "subscription_payments_subscription_idx", table_name="subscription_payments"
    )
    op.drop_table("subscription_payments")
    op.drop_index("subscription_items_subscription_idx", table_name="subscription_items")
    op.drop_index("subscription_items_service_idx", table_name="subscription_items")
    op.drop_table("subscription_items")
    op.drop_index("subscriptions_end_date_idx", table_name="subscriptions")
    op.drop_index("subscriptions_status_next_billing_idx", table_name="subscriptions")
    op.drop_index("subscriptions_user_status_idx", table_name="subscriptions")
    op.drop_table("subscriptions")
    op.drop_index("services_price_idx", table_name="services")
    op.drop_index("services_category_active_idx", table_name="services")
    op.drop_table("services")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")

    bind = op.get_bind()
    if bind.dialect.name == "postgresql":
        for name in ENUM_VALUES:
            postgresql.ENUM(name=name).drop(bind, checkfirst=True)

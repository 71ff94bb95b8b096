"""initial schema: companies, users, dealer groups, dealers, dealer ledger, orders

Revision ID: 4c1d2e7a9b30
Revises:
Create Date: <AUTO>
"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "4c1d2e7a9b30"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _money() -> sa.Numeric:
    return sa.Numeric(14, 2)


def _pct() -> sa.Numeric:
    return sa.Numeric(5, 2)


def upgrade() -> None:
    # -----------------------------
    # companies (tenants)
    # -----------------------------
    op.create_table(
        "companies",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("tenant_id", sa.String(length=20), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("slug", sa.String(length=120), nullable=False),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("phone", sa.String(length=20), nullable=True),
        sa.Column("business_type", sa.String(length=20), nullable=False, server_default="dairy"),
        sa.Column("plan", sa.String(length=20), nullable=False, server_default="trial"),
        sa.Column("subscription_status", sa.String(length=20), nullable=False, server_default="active"),
        sa.Column("subscription_start", sa.DateTime(timezone=True), nullable=False),
        sa.Column("subscription_end", sa.DateTime(timezone=True), nullable=False),
        sa.Column("max_users", sa.Integer(), nullable=False, server_default="5"),
        sa.Column("max_products", sa.Integer(), nullable=False, server_default="100"),
        sa.Column("max_orders", sa.Integer(), nullable=False, server_default="1000"),
        sa.Column(
            "features",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column("total_users", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_products", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_orders", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_activity", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("is_suspended", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("suspension_reason", sa.String(length=500), nullable=True),
        sa.Column("suspended_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    )
    op.create_index("ix_companies_tenant_id", "companies", ["tenant_id"], unique=True)
    op.create_index("ix_companies_slug", "companies", ["slug"], unique=True)
    op.create_index("ix_companies_email", "companies", ["email"], unique=True)
    op.create_index("ix_companies_subscription_status", "companies", ["subscription_status"], unique=False)
    op.create_index("ix_companies_is_active", "companies", ["is_active"], unique=False)

    # -----------------------------
    # users
    # -----------------------------
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("full_name", sa.String(length=200), nullable=True),
        sa.Column("phone", sa.String(length=20), nullable=True),
        sa.Column("role", sa.String(length=30), nullable=False, server_default="staff"),
        sa.Column("tenant_id", sa.String(length=20), nullable=True),
        sa.Column("is_company_owner", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("magic_code", sa.String(length=64), nullable=True),
        sa.Column("magic_code_expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_tenant_id", "users", ["tenant_id"], unique=False)

    # -----------------------------
    # dealer_groups
    # -----------------------------
    op.create_table(
        "dealer_groups",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("tenant_id", sa.String(length=20), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("code", sa.String(length=20), nullable=False),
        sa.Column("discount_percentage", _pct(), nullable=False, server_default="0"),
        sa.Column("credit_limit", _money(), nullable=False, server_default="0"),
        sa.Column("credit_days", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("commission_percentage", _pct(), nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.UniqueConstraint("tenant_id", "code", name="uq_dealer_groups_tenant_code"),
        sa.UniqueConstraint("tenant_id", "name", name="uq_dealer_groups_tenant_name"),
    )
    op.create_index("ix_dealer_groups_tenant_id", "dealer_groups", ["tenant_id"], unique=False)

    # -----------------------------
    # dealers
    # -----------------------------
    op.create_table(
        "dealers",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("tenant_id", sa.String(length=20), nullable=False),
        sa.Column(
            "dealer_group_id",
            sa.Uuid(),
            sa.ForeignKey("dealer_groups.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("dealer_code", sa.String(length=20), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("business_name", sa.String(length=150), nullable=True),
        sa.Column("phone", sa.String(length=20), nullable=True),
        sa.Column("email", sa.String(length=320), nullable=True),
        sa.Column("city", sa.String(length=50), nullable=True),
        sa.Column("opening_balance", _money(), nullable=False, server_default="0"),
        sa.Column("opening_balance_type", sa.String(length=10), nullable=False, server_default="credit"),
        sa.Column("current_balance", _money(), nullable=False, server_default="0"),
        sa.Column("credit_limit", _money(), nullable=False, server_default="0"),
        sa.Column("credit_days", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("discount_percentage", _pct(), nullable=False, server_default="0"),
        sa.Column("commission_percentage", _pct(), nullable=False, server_default="0"),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="active"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_by_id", sa.Uuid(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.UniqueConstraint("tenant_id", "dealer_code", name="uq_dealers_tenant_code"),
        sa.CheckConstraint("opening_balance_type IN ('credit', 'debit')", name="ck_dealers_opening_balance_type"),
    )
    op.create_index("ix_dealers_tenant_id", "dealers", ["tenant_id"], unique=False)
    op.create_index("ix_dealers_dealer_group_id", "dealers", ["dealer_group_id"], unique=False)
    op.create_index("ix_dealers_is_active", "dealers", ["is_active"], unique=False)

    # -----------------------------
    # dealer_transactions (append-only ledger)
    # -----------------------------
    op.create_table(
        "dealer_transactions",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("tenant_id", sa.String(length=20), nullable=False),
        sa.Column(
            "dealer_id",
            sa.Uuid(),
            sa.ForeignKey("dealers.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("seq", sa.Integer(), nullable=False),
        sa.Column("date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("type", sa.String(length=10), nullable=False),
        sa.Column("amount", _money(), nullable=False),
        sa.Column("description", sa.String(length=500), nullable=False),
        sa.Column("reference_type", sa.String(length=30), nullable=True),
        sa.Column("reference_id", sa.String(length=64), nullable=True),
        sa.Column("balance_after", _money(), nullable=False),
        sa.Column("created_by_id", sa.Uuid(), nullable=True),
        sa.UniqueConstraint("dealer_id", "seq", name="uq_dealer_transactions_dealer_seq"),
        sa.CheckConstraint("type IN ('credit', 'debit')", name="ck_dealer_transactions_type"),
        sa.CheckConstraint("amount > 0", name="ck_dealer_transactions_amount_positive"),
    )
    op.create_index(
        "ix_dealer_transactions_tenant_dealer_date",
        "dealer_transactions",
        ["tenant_id", "dealer_id", "date"],
        unique=False,
    )

    # -----------------------------
    # orders (ledger-relevant fields)
    # -----------------------------
    op.create_table(
        "orders",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("tenant_id", sa.String(length=20), nullable=False),
        sa.Column(
            "dealer_id",
            sa.Uuid(),
            sa.ForeignKey("dealers.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("order_number", sa.String(length=20), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
        sa.Column("total", _money(), nullable=False),
        sa.Column("paid_amount", _money(), nullable=False, server_default="0"),
        sa.Column("payment_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_by_id", sa.Uuid(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("tenant_id", "order_number", name="uq_orders_tenant_number"),
    )
    op.create_index("ix_orders_tenant_id", "orders", ["tenant_id"], unique=False)
    op.create_index("ix_orders_dealer_id", "orders", ["dealer_id"], unique=False)
    op.create_index("ix_orders_status", "orders", ["status"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_orders_status", table_name="orders")
    op.drop_index("ix_orders_dealer_id", table_name="orders")
    op.drop_index("ix_orders_tenant_id", table_name="orders")
    op.drop_table("orders")

    op.drop_index("ix_dealer_transactions_tenant_dealer_date", table_name="dealer_transactions")
    op.drop_table("dealer_transactions")

    op.drop_index("ix_dealers_is_active", table_name="dealers")
    op.drop_index("ix_dealers_dealer_group_id", table_name="dealers")
    op.drop_index("ix_dealers_tenant_id", table_name="dealers")
    op.drop_table("dealers")

    op.drop_index("ix_dealer_groups_tenant_id", table_name="dealer_groups")
    op.drop_table("dealer_groups")

    op.drop_index("ix_users_tenant_id", table_name="users")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")

    op.drop_index("ix_companies_is_active", table_name="companies")
    op.drop_index("ix_companies_subscription_status", table_name="companies")
    op.drop_index("ix_companies_email", table_name="companies")
    op.drop_index("ix_companies_slug", table_name="companies")
    op.drop_index("ix_companies_tenant_id", table_name="companies")
    op.drop_table("companies")

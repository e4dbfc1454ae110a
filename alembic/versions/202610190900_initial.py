"""initial schema

Revision ID: 202610190900
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""

from alembic import op
import sqlalchemy as sa


revision = "202610190900"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    ]


def upgrade():
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False, unique=True),
        *_timestamps(),
    )

    op.create_table(
        "wallets",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=False, server_default="USD"),
        sa.Column("balance_cents", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_default", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("description", sa.Text()),
        *_timestamps(),
        sa.UniqueConstraint("user_id", "name", name="uq_wallet_user_name"),
    )

    op.create_table(
        "categories",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id")),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("color", sa.String(length=7)),
        sa.Column("icon", sa.String(length=50)),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("description", sa.Text()),
        *_timestamps(),
    )

    op.create_table(
        "ledger_entries",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("wallet_id", sa.Integer(), sa.ForeignKey("wallets.id")),
        sa.Column("category_id", sa.Integer(), sa.ForeignKey("categories.id")),
        sa.Column("amount_cents", sa.Integer(), nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=False, server_default="USD"),
        sa.Column("transaction_date", sa.Date(), nullable=False),
        sa.Column("merchant", sa.String(length=200)),
        sa.Column("description", sa.Text()),
        sa.Column(
            "type",
            sa.Enum("expense", "income", "transfer", name="entrytype"),
            nullable=False,
        ),
        sa.Column("is_recurring", sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
        sa.CheckConstraint("amount_cents >= 0", name="ck_ledger_amount_positive"),
    )
    op.create_index(
        "ix_ledger_user_date", "ledger_entries", ["user_id", "transaction_date"]
    )
    op.create_index(
        "ix_ledger_user_category_date",
        "ledger_entries",
        ["user_id", "category_id", "transaction_date"],
    )

    op.create_table(
        "budgets",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("category_id", sa.Integer(), sa.ForeignKey("categories.id")),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("amount_cents", sa.Integer(), nullable=False),
        sa.Column(
            "period",
            sa.Enum(
                "weekly", "monthly", "quarterly", "yearly", "custom", name="budgetperiod"
            ),
            nullable=False,
        ),
        sa.Column("starts_at", sa.DateTime(), nullable=False),
        sa.Column("ends_at", sa.DateTime(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column(
            "alert_threshold_bps", sa.Integer(), nullable=False, server_default="8000"
        ),
        sa.Column("alert_enabled", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("description", sa.Text()),
        *_timestamps(),
        sa.CheckConstraint("amount_cents > 0", name="ck_budget_amount_positive"),
        sa.CheckConstraint("starts_at <= ends_at", name="ck_budget_window_ordered"),
        sa.CheckConstraint(
            "alert_threshold_bps BETWEEN 0 AND 10000",
            name="ck_budget_alert_threshold_range",
        ),
    )
    op.create_index("ix_budget_user_active", "budgets", ["user_id", "is_active"])
    op.create_index(
        "ix_budget_user_category_window",
        "budgets",
        ["user_id", "category_id", "starts_at", "ends_at"],
    )


def downgrade():
    op.drop_index("ix_budget_user_category_window", table_name="budgets")
    op.drop_index("ix_budget_user_active", table_name="budgets")
    op.drop_table("budgets")
    op.drop_index("ix_ledger_user_category_date", table_name="ledger_entries")
    op.drop_index("ix_ledger_user_date", table_name="ledger_entries")
    op.drop_table("ledger_entries")
    op.drop_table("categories")
    op.drop_table("wallets")
    op.drop_table("users")

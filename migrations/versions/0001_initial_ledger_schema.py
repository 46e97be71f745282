"""initial ledger schema

Revision ID: 0001
Revises:
Create Date: 2026-10-16 09:00:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

account_type_enum = sa.Enum(
    "ASSET", "LIABILITY", "EQUITY", "REVENUE", "EXPENSE",
    name="account_type_enum",
)
entry_kind_enum = sa.Enum(
    "STANDARD", "CLOSING", "REVERSAL",
    name="entry_kind_enum",
)


def upgrade() -> None:
    op.create_table(
        "accounts",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("code", sa.String(20), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("account_type", account_type_enum, nullable=False),
        sa.Column("opening_balance", sa.Numeric(19, 4), nullable=False),
        sa.Column("balance", sa.Numeric(19, 4), nullable=False),
        sa.Column("parent_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(
            ["parent_id"], ["accounts.id"], name="fk_accounts_parent"
        ),
    )
    op.create_index("ix_accounts_code", "accounts", ["code"], unique=True)
    op.create_index("ix_accounts_parent_id", "accounts", ["parent_id"])

    op.create_table(
        "fiscal_years",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False, unique=True),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("is_closed", sa.Boolean(), nullable=False),
        sa.Column("closed_at", sa.DateTime(), nullable=True),
        sa.Column("closed_by_user_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint(
            "end_date > start_date", name="ck_fiscal_years_date_range"
        ),
    )

    op.create_table(
        "journal_entries",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("entry_number", sa.String(40), nullable=False),
        sa.Column("entry_date", sa.Date(), nullable=False),
        sa.Column("description", sa.String(255), nullable=False),
        sa.Column("debit_account_code", sa.String(20), nullable=False),
        sa.Column("credit_account_code", sa.String(20), nullable=False),
        sa.Column("amount", sa.Numeric(19, 4), nullable=False),
        sa.Column("fiscal_year_id", sa.Integer(), nullable=False),
        sa.Column("entry_kind", entry_kind_enum, nullable=False),
        sa.Column("reverses_entry_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(
            ["debit_account_code"], ["accounts.code"], onupdate="CASCADE"
        ),
        sa.ForeignKeyConstraint(
            ["credit_account_code"], ["accounts.code"], onupdate="CASCADE"
        ),
        sa.ForeignKeyConstraint(["fiscal_year_id"], ["fiscal_years.id"]),
        sa.ForeignKeyConstraint(["reverses_entry_id"], ["journal_entries.id"]),
        sa.CheckConstraint(
            "amount > 0", name="ck_journal_entries_amount_positive"
        ),
        sa.CheckConstraint(
            "debit_account_code <> credit_account_code",
            name="ck_journal_entries_distinct_accounts",
        ),
    )
    op.create_index(
        "ix_journal_entries_entry_number", "journal_entries",
        ["entry_number"], unique=True,
    )
    op.create_index(
        "ix_journal_entries_entry_date", "journal_entries", ["entry_date"]
    )
    op.create_index(
        "ix_journal_entries_debit_account_code", "journal_entries",
        ["debit_account_code"],
    )
    op.create_index(
        "ix_journal_entries_credit_account_code", "journal_entries",
        ["credit_account_code"],
    )
    op.create_index(
        "ix_journal_entries_fiscal_year_id", "journal_entries",
        ["fiscal_year_id"],
    )

    op.create_table(
        "company_accounting_settings",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "current_fiscal_year_id", sa.Integer(),
            sa.ForeignKey("fiscal_years.id"), nullable=True,
        ),
        sa.Column(
            "retained_earnings_account_id", sa.Integer(),
            sa.ForeignKey("accounts.id"), nullable=True,
        ),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )

    op.create_table(
        "audit_log",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("event_type", sa.String(100), nullable=False),
        sa.Column("details", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )


def downgrade() -> None:
    op.drop_table("audit_log")
    op.drop_table("company_accounting_settings")
    op.drop_index("ix_journal_entries_fiscal_year_id", table_name="journal_entries")
    op.drop_index("ix_journal_entries_credit_account_code", table_name="journal_entries")
    op.drop_index("ix_journal_entries_debit_account_code", table_name="journal_entries")
    op.drop_index("ix_journal_entries_entry_date", table_name="journal_entries")
    op.drop_index("ix_journal_entries_entry_number", table_name="journal_entries")
    op.drop_table("journal_entries")
    op.drop_table("fiscal_years")
    op.drop_index("ix_accounts_parent_id", table_name="accounts")
    op.drop_index("ix_accounts_code", table_name="accounts")
    op.drop_table("accounts")
    entry_kind_enum.drop(op.get_bind(), checkfirst=True)
    account_type_enum.drop(op.get_bind(), checkfirst=True)

"""Ledger schema baseline

Revision ID: 20261017_01
Revises: None
Create Date: 2026-10-17
"""
# pylint: disable=no-member,invalid-name,wrong-import-order

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "20261017_01"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""

    op.create_table(
        "instrument",
        sa.Column("instrument_id", sa.Integer(), sa.Identity(always=False), primary_key=True),
        sa.Column("symbol", sa.String(length=10), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("created_at_utc", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.UniqueConstraint("symbol", name="uq_instrument_symbol"),
    )

    op.create_table(
        "ledger_transaction",
        sa.Column("transaction_id", sa.BigInteger(), sa.Identity(always=False), primary_key=True),
        sa.Column(
            "instrument_id",
            sa.Integer(),
            sa.ForeignKey("instrument.instrument_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("kind", sa.Text(), nullable=False),
        sa.Column("effective_date", sa.Date(), nullable=False),
        sa.Column("quantity", sa.Numeric(18, 8), nullable=True),
        sa.Column("total_amount", sa.Numeric(18, 2), nullable=False),
        sa.Column("unit_price", sa.Numeric(18, 8), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at_utc", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at_utc", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.CheckConstraint("kind in ('BUY', 'SELL', 'INCOME')", name="ck_ledger_transaction_kind"),
        sa.CheckConstraint("total_amount >= 0", name="ck_ledger_transaction_total_amount_non_negative"),
        sa.CheckConstraint(
            "(kind = 'INCOME' AND quantity IS NULL) OR (kind in ('BUY', 'SELL') AND quantity > 0)",
            name="ck_ledger_transaction_quantity_by_kind",
        ),
    )
    op.create_index(
        "ix_ledger_transaction_instrument_replay_order",
        "ledger_transaction",
        ["instrument_id", "effective_date", "transaction_id"],
    )
    op.create_index("ix_ledger_transaction_effective_date", "ledger_transaction", ["effective_date"])

    op.create_table(
        "position_aggregate",
        sa.Column(
            "instrument_id",
            sa.Integer(),
            sa.ForeignKey("instrument.instrument_id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("total_shares", sa.Numeric(18, 8), nullable=False, server_default=sa.text("0")),
        sa.Column("total_invested", sa.Numeric(18, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("average_cost", sa.Numeric(18, 8), nullable=False, server_default=sa.text("0")),
        sa.Column("realized_profit", sa.Numeric(18, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("updated_at_utc", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    )


def downgrade() -> None:
    """Downgrade schema."""

    op.drop_table("position_aggregate")
    op.drop_index("ix_ledger_transaction_effective_date", table_name="ledger_transaction")
    op.drop_index("ix_ledger_transaction_instrument_replay_order", table_name="ledger_transaction")
    op.drop_table("ledger_transaction")
    op.drop_table("instrument")

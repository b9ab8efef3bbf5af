"""add settlement tables

Revision ID: 20261019_0002
Revises: 20261019_0001
Create Date: 2026-10-19 09:30:00.000000
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "20261019_0002"
down_revision: Union[str, None] = "20261019_0001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _table_exists(inspector: sa.Inspector, table_name: str) -> bool:
    return table_name in inspector.get_table_names()


def _index_exists(inspector: sa.Inspector, table_name: str, index_name: str) -> bool:
    return index_name in {index["name"] for index in inspector.get_indexes(table_name)}


def upgrade() -> None:
    bind = op.get_bind()
    inspector = sa.inspect(bind)

    if not _table_exists(inspector, "seller_payouts"):
        op.create_table(
            "seller_payouts",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("seller_id", sa.String(length=36), nullable=False),
            sa.Column("order_id", sa.String(length=100), nullable=False),
            sa.Column("amount", sa.Integer(), nullable=False),
            sa.Column("commission", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("status", sa.String(length=20), nullable=False, server_default="HOLD"),
            sa.Column("released_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("failure_reason", sa.Text(), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
            sa.ForeignKeyConstraint(["seller_id"], ["marketplace_sellers.id"]),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("order_id", "seller_id", name="ux_seller_payouts_order_seller"),
        )

    if not _table_exists(inspector, "commission_history"):
        op.create_table(
            "commission_history",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("order_id", sa.String(length=100), nullable=False),
            sa.Column("seller_id", sa.String(length=36), nullable=False),
            sa.Column("commission_rate", sa.Numeric(5, 4), nullable=False),
            sa.Column("order_total", sa.Integer(), nullable=False),
            sa.Column("commission_amount", sa.Integer(), nullable=False),
            sa.Column("seller_payout", sa.Integer(), nullable=False),
            sa.Column("status", sa.String(length=20), nullable=False, server_default="CALCULATED"),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
            sa.CheckConstraint(
                "commission_rate >= 0 AND commission_rate <= 1",
                name="ck_commission_history_commission_rate",
            ),
            sa.CheckConstraint("order_total >= 0", name="ck_commission_history_order_total"),
            sa.CheckConstraint("commission_amount >= 0", name="ck_commission_history_commission_amount"),
            sa.CheckConstraint("seller_payout >= 0", name="ck_commission_history_seller_payout"),
            sa.CheckConstraint(
                "commission_amount + seller_payout = order_total",
                name="ck_commission_history_amounts",
            ),
            sa.ForeignKeyConstraint(["seller_id"], ["marketplace_sellers.id"]),
            sa.PrimaryKeyConstraint("id"),
        )

    if not _table_exists(inspector, "marketplace_settings"):
        op.create_table(
            "marketplace_settings",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("default_commission_rate", sa.Numeric(5, 4), nullable=False),
            sa.Column("payout_schedule_frequency", sa.String(length=20), nullable=False, server_default="weekly"),
            sa.Column("payout_minimum_threshold", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("payout_scheduler_last_run", sa.DateTime(timezone=True), nullable=True),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
            sa.PrimaryKeyConstraint("id"),
        )

    inspector = sa.inspect(bind)
    indexes: list[tuple[str, str, list[str]]] = [
        ("seller_payouts", "ix_seller_payouts_seller_id", ["seller_id"]),
        ("seller_payouts", "ix_seller_payouts_order_id", ["order_id"]),
        ("seller_payouts", "ix_seller_payouts_status", ["status"]),
        ("seller_payouts", "ix_seller_payouts_seller_status", ["seller_id", "status"]),
        ("commission_history", "ix_commission_history_seller_id", ["seller_id"]),
        ("commission_history", "ix_commission_history_order_id", ["order_id"]),
        ("commission_history", "ix_commission_history_status", ["status"]),
        ("commission_history", "ix_commission_history_seller_status", ["seller_id", "status"]),
        ("commission_history", "ix_commission_history_created_at", ["created_at"]),
    ]
    for table_name, index_name, columns in indexes:
        if _table_exists(inspector, table_name) and not _index_exists(inspector, table_name, index_name):
            op.create_index(index_name, table_name, columns, unique=False)


def downgrade() -> None:
    bind = op.get_bind()
    inspector = sa.inspect(bind)
    for table_name in ("marketplace_settings", "commission_history", "seller_payouts"):
        if _table_exists(inspector, table_name):
            op.drop_table(table_name)

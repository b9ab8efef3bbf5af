"""create catalog and order tables

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "20261019_0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _table_exists(inspector: sa.Inspector, table_name: str) -> bool:
    return table_name in inspector.get_table_names()


def _index_exists(inspector: sa.Inspector, table_name: str, index_name: str) -> bool:
    return index_name in {index["name"] for index in inspector.get_indexes(table_name)}


def _created_at() -> sa.Column:
    return sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now())


def _updated_at() -> sa.Column:
    return sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now())


def upgrade() -> None:
    bind = op.get_bind()
    inspector = sa.inspect(bind)

    if not _table_exists(inspector, "users"):
        op.create_table(
            "users",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("email", sa.String(length=255), nullable=False),
            sa.Column("full_name", sa.String(length=100), nullable=True),
            sa.Column("is_active", sa.Boolean(), nullable=True),
            sa.Column("is_platform_admin", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
            sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("email"),
        )

    if not _table_exists(inspector, "channels"):
        op.create_table(
            "channels",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("code", sa.String(length=120), nullable=False),
            sa.Column("name", sa.String(length=255), nullable=False),
            sa.Column("is_default", sa.Boolean(), nullable=False, server_default=sa.false()),
            _created_at(),
            sa.PrimaryKeyConstraint("id"),
        )

    if not _table_exists(inspector, "marketplace_sellers"):
        op.create_table(
            "marketplace_sellers",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("owner_user_id", sa.String(length=36), nullable=False),
            sa.Column("verification_status", sa.String(length=20), nullable=False, server_default="PENDING"),
            sa.Column("shop_name", sa.String(length=100), nullable=False),
            sa.Column("shop_slug", sa.String(length=100), nullable=False),
            sa.Column("shop_description", sa.Text(), nullable=True),
            sa.Column("business_name", sa.String(length=200), nullable=True),
            sa.Column("tax_id", sa.String(length=100), nullable=True),
            sa.Column("payment_account_id", sa.String(length=200), nullable=True),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column("commission_rate", sa.Numeric(5, 4), nullable=True),
            sa.Column("channel_id", sa.String(length=36), nullable=True),
            _created_at(),
            _updated_at(),
            sa.CheckConstraint(
                "length(shop_name) >= 3 AND length(shop_name) <= 100",
                name="ck_marketplace_sellers_shop_name_length",
            ),
            sa.CheckConstraint(
                "commission_rate IS NULL OR (commission_rate >= 0 AND commission_rate <= 1)",
                name="ck_marketplace_sellers_commission_rate",
            ),
            sa.ForeignKeyConstraint(["owner_user_id"], ["users.id"]),
            sa.ForeignKeyConstraint(["channel_id"], ["channels.id"]),
            sa.PrimaryKeyConstraint("id"),
        )

    if not _table_exists(inspector, "products"):
        op.create_table(
            "products",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("seller_id", sa.String(length=36), nullable=True),
            sa.Column("name", sa.String(length=255), nullable=False),
            sa.Column("active", sa.Boolean(), nullable=True),
            _created_at(),
            sa.ForeignKeyConstraint(["seller_id"], ["marketplace_sellers.id"]),
            sa.PrimaryKeyConstraint("id"),
        )

    if not _table_exists(inspector, "product_variants"):
        op.create_table(
            "product_variants",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("product_id", sa.String(length=36), nullable=False),
            sa.Column("sku", sa.String(length=100), nullable=True),
            sa.Column("price", sa.Integer(), nullable=False, server_default="0"),
            _created_at(),
            sa.ForeignKeyConstraint(["product_id"], ["products.id"]),
            sa.PrimaryKeyConstraint("id"),
        )

    if not _table_exists(inspector, "shipping_methods"):
        op.create_table(
            "shipping_methods",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("code", sa.String(length=120), nullable=False),
            sa.Column("name", sa.String(length=255), nullable=False),
            sa.Column("price", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
            _created_at(),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("code"),
        )

    if not _table_exists(inspector, "shipping_method_channels"):
        op.create_table(
            "shipping_method_channels",
            sa.Column("shipping_method_id", sa.String(length=36), nullable=False),
            sa.Column("channel_id", sa.String(length=36), nullable=False),
            sa.ForeignKeyConstraint(["shipping_method_id"], ["shipping_methods.id"]),
            sa.ForeignKeyConstraint(["channel_id"], ["channels.id"]),
            sa.PrimaryKeyConstraint("shipping_method_id", "channel_id"),
        )

    if not _table_exists(inspector, "orders"):
        op.create_table(
            "orders",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("code", sa.String(length=32), nullable=False),
            sa.Column("channel_id", sa.String(length=36), nullable=False),
            sa.Column("aggregate_order_id", sa.String(length=36), nullable=True),
            sa.Column("customer_email", sa.String(length=255), nullable=True),
            sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
            sa.Column("currency", sa.String(length=3), nullable=False, server_default="USD"),
            sa.Column("subtotal", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("shipping_total", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("total", sa.Integer(), nullable=False),
            sa.Column("note", sa.String(length=255), nullable=True),
            _created_at(),
            _updated_at(),
            sa.ForeignKeyConstraint(["channel_id"], ["channels.id"]),
            sa.ForeignKeyConstraint(["aggregate_order_id"], ["orders.id"]),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("code"),
        )

    if not _table_exists(inspector, "order_items"):
        op.create_table(
            "order_items",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("order_id", sa.String(length=36), nullable=False),
            sa.Column("variant_id", sa.String(length=36), nullable=False),
            sa.Column("seller_channel_id", sa.String(length=36), nullable=True),
            sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("qty", sa.Integer(), nullable=False),
            sa.Column("unit_price", sa.Integer(), nullable=False),
            sa.Column("line_total", sa.Integer(), nullable=False),
            sa.ForeignKeyConstraint(["order_id"], ["orders.id"]),
            sa.ForeignKeyConstraint(["variant_id"], ["product_variants.id"]),
            sa.ForeignKeyConstraint(["seller_channel_id"], ["channels.id"]),
            sa.PrimaryKeyConstraint("id"),
        )

    if not _table_exists(inspector, "shipping_lines"):
        op.create_table(
            "shipping_lines",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("order_id", sa.String(length=36), nullable=False),
            sa.Column("shipping_method_id", sa.String(length=36), nullable=False),
            sa.Column("price", sa.Integer(), nullable=False),
            sa.ForeignKeyConstraint(["order_id"], ["orders.id"]),
            sa.ForeignKeyConstraint(["shipping_method_id"], ["shipping_methods.id"]),
            sa.PrimaryKeyConstraint("id"),
        )

    if not _table_exists(inspector, "audit_logs"):
        op.create_table(
            "audit_logs",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("actor_user_id", sa.String(length=36), nullable=True),
            sa.Column("action", sa.String(length=100), nullable=False),
            sa.Column("target_type", sa.String(length=100), nullable=False),
            sa.Column("target_id", sa.String(length=36), nullable=True),
            sa.Column("metadata_json", sa.JSON(), nullable=True),
            _created_at(),
            sa.ForeignKeyConstraint(["actor_user_id"], ["users.id"]),
            sa.PrimaryKeyConstraint("id"),
        )

    inspector = sa.inspect(bind)
    indexes: list[tuple[str, str, list, bool]] = [
        ("users", "ix_users_email", ["email"], True),
        ("users", "ux_users_email_lower", [sa.text("lower(email)")], True),
        ("channels", "ix_channels_code", ["code"], True),
        ("marketplace_sellers", "ix_marketplace_sellers_owner_user_id", ["owner_user_id"], True),
        ("marketplace_sellers", "ix_marketplace_sellers_shop_slug", ["shop_slug"], True),
        ("marketplace_sellers", "ix_marketplace_sellers_channel_id", ["channel_id"], False),
        ("marketplace_sellers", "ix_marketplace_sellers_verification_status", ["verification_status"], False),
        ("products", "ix_products_seller_id", ["seller_id"], False),
        ("product_variants", "ix_product_variants_product_id", ["product_id"], False),
        ("orders", "ix_orders_channel_id", ["channel_id"], False),
        ("orders", "ix_orders_aggregate_order_id", ["aggregate_order_id"], False),
        ("orders", "ix_orders_customer_email", ["customer_email"], False),
        ("orders", "ix_orders_status_created_at", ["status", "created_at"], False),
        ("order_items", "ix_order_items_order_id", ["order_id"], False),
        ("order_items", "ix_order_items_variant_id", ["variant_id"], False),
        ("order_items", "ix_order_items_seller_channel_id", ["seller_channel_id"], False),
        ("shipping_lines", "ix_shipping_lines_order_id", ["order_id"], False),
        ("shipping_lines", "ix_shipping_lines_shipping_method_id", ["shipping_method_id"], False),
        ("audit_logs", "ix_audit_logs_actor_user_id", ["actor_user_id"], False),
        ("audit_logs", "ix_audit_logs_target_id", ["target_id"], False),
        ("audit_logs", "ix_audit_logs_action_created_at", ["action", "created_at"], False),
        ("audit_logs", "ix_audit_logs_actor_created_at", ["actor_user_id", "created_at"], False),
    ]
    for table_name, index_name, columns, unique in indexes:
        if _table_exists(inspector, table_name) and not _index_exists(inspector, table_name, index_name):
            op.create_index(index_name, table_name, columns, unique=unique)

    if _table_exists(inspector, "product_variants") and not _index_exists(
        inspector, "product_variants", "ux_product_variants_sku_lower"
    ):
        op.create_index(
            "ux_product_variants_sku_lower",
            "product_variants",
            [sa.text("lower(sku)")],
            unique=True,
            postgresql_where=sa.text("sku IS NOT NULL"),
            sqlite_where=sa.text("sku IS NOT NULL"),
        )


def downgrade() -> None:
    bind = op.get_bind()
    inspector = sa.inspect(bind)
    for table_name in (
        "audit_logs",
        "shipping_lines",
        "order_items",
        "orders",
        "shipping_method_channels",
        "shipping_methods",
        "product_variants",
        "products",
        "marketplace_sellers",
        "channels",
        "users",
    ):
        if _table_exists(inspector, table_name):
            op.drop_table(table_name)

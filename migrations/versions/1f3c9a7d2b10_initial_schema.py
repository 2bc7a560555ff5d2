"""initial schema

Revision ID: 1f3c9a7d2b10
Revises:
Create Date: 2026-10-19 10:00:00

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "1f3c9a7d2b10"
down_revision = None
branch_labels = None
depends_on = None


user_role = sa.Enum("CUSTOMER", "MANAGER", "ADMIN", name="userrole")
user_status = sa.Enum("ACTIVE", "INACTIVE", "SUSPENDED", name="userstatus")
category_status = sa.Enum("ACTIVE", "INACTIVE", name="categorystatus")
product_status = sa.Enum(
    "ACTIVE", "INACTIVE", "OUT_OF_STOCK", "DISCONTINUED",
    name="productstatus")
order_status = sa.Enum(
    "PENDING", "CONFIRMED", "PROCESSING", "SHIPPED", "DELIVERED",
    "CANCELLED", "REFUNDED",
    name="orderstatus")
payment_status = sa.Enum(
    "PENDING", "PROCESSING", "COMPLETED", "FAILED", "REFUNDED", "CANCELLED",
    name="paymentstatus")
payment_method = sa.Enum(
    "BANK_TRANSFER", "CREDIT_CARD", "CASH_ON_DELIVERY", "TBC_BANK",
    name="paymentmethod")
order_source = sa.Enum("WEBSITE", "ADMIN", "API", "IMPORT", name="ordersource")
communication_type = sa.Enum(
    "EMAIL", "SMS", "CALL", "NOTE", name="communicationtype")
communication_status = sa.Enum(
    "SENT", "DELIVERED", "FAILED", name="communicationstatus")


def upgrade():
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("email", sa.String(length=120), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("first_name", sa.String(length=50), nullable=False),
        sa.Column("last_name", sa.String(length=50), nullable=False),
        sa.Column("phone", sa.String(length=30), nullable=True),
        sa.Column("company", sa.String(length=120), nullable=True),
        sa.Column("role", user_role, nullable=False),
        sa.Column("status", user_status, nullable=False),
        sa.Column("is_email_verified", sa.Boolean(), nullable=False),
        sa.Column("street", sa.String(length=200), nullable=True),
        sa.Column("city", sa.String(length=100), nullable=True),
        sa.Column("state", sa.String(length=100), nullable=True),
        sa.Column("zip_code", sa.String(length=20), nullable=True),
        sa.Column("country", sa.String(length=100), nullable=True),
        sa.Column("language", sa.String(length=2), nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=False),
        sa.Column("notify_email", sa.Boolean(), nullable=False),
        sa.Column("notify_sms", sa.Boolean(), nullable=False),
        sa.Column("notify_push", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.Column("last_login_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    with op.batch_alter_table("users", schema=None) as batch_op:
        batch_op.create_index(
            batch_op.f("ix_users_email"), ["email"], unique=True)

    op.create_table(
        "password_reset_tokens",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("token", sa.String(length=64), nullable=False),
        sa.Column("expires_at", sa.DateTime(), nullable=False),
        sa.Column("used", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(
            ["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    with op.batch_alter_table(
            "password_reset_tokens", schema=None) as batch_op:
        batch_op.create_index(
            batch_op.f("ix_password_reset_tokens_user_id"), ["user_id"])
        batch_op.create_index(
            batch_op.f("ix_password_reset_tokens_token"), ["token"],
            unique=True)

    op.create_table(
        "categories",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.JSON(), nullable=False),
        sa.Column("slug", sa.String(length=150), nullable=False),
        sa.Column("description", sa.JSON(), nullable=True),
        sa.Column("parent_id", sa.Integer(), nullable=True),
        sa.Column("children_ids", sa.JSON(), nullable=False),
        sa.Column("image_url", sa.String(length=255), nullable=True),
        sa.Column("image_alt", sa.String(length=200), nullable=True),
        sa.Column("icon_name", sa.String(length=50), nullable=True),
        sa.Column("icon_color", sa.String(length=20), nullable=True),
        sa.Column("seo", sa.JSON(), nullable=True),
        sa.Column("status", category_status, nullable=False),
        sa.Column("featured", sa.Boolean(), nullable=False),
        sa.Column("sort_order", sa.Integer(), nullable=False),
        sa.Column("product_count", sa.Integer(), nullable=False),
        sa.Column("created_by", sa.Integer(), nullable=True),
        sa.Column("updated_by", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(
            ["parent_id"], ["categories.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["created_by"], ["users.id"]),
        sa.ForeignKeyConstraint(["updated_by"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    with op.batch_alter_table("categories", schema=None) as batch_op:
        batch_op.create_index(
            batch_op.f("ix_categories_slug"), ["slug"], unique=True)
        batch_op.create_index(
            batch_op.f("ix_categories_parent_id"), ["parent_id"])
        batch_op.create_index(
            batch_op.f("ix_categories_status"), ["status"])

    op.create_table(
        "products",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.JSON(), nullable=False),
        sa.Column("slug", sa.String(length=200), nullable=False),
        sa.Column("code", sa.String(length=50), nullable=False),
        sa.Column("barcode", sa.String(length=64), nullable=True),
        sa.Column("description", sa.JSON(), nullable=True),
        sa.Column("category_id", sa.Integer(), nullable=False),
        sa.Column("subcategory_id", sa.Integer(), nullable=True),
        sa.Column("images", sa.JSON(), nullable=False),
        sa.Column("price1", sa.Numeric(10, 2), nullable=False),
        sa.Column("price2", sa.Numeric(10, 2), nullable=True),
        sa.Column("price3", sa.Numeric(10, 2), nullable=True),
        sa.Column("active_price", sa.String(length=10), nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=False),
        sa.Column("stock", sa.Integer(), nullable=False),
        sa.Column("min_stock_level", sa.Integer(), nullable=False),
        sa.Column("max_stock_level", sa.Integer(), nullable=True),
        sa.Column("unit", sa.String(length=20), nullable=False),
        sa.Column("track_inventory", sa.Boolean(), nullable=False),
        sa.Column("specifications", sa.JSON(), nullable=True),
        sa.Column("seo", sa.JSON(), nullable=True),
        sa.Column("status", product_status, nullable=False),
        sa.Column("featured", sa.Boolean(), nullable=False),
        sa.Column("tags", sa.JSON(), nullable=False),
        sa.Column("rating_average", sa.Numeric(3, 2), nullable=False),
        sa.Column("rating_count", sa.Integer(), nullable=False),
        sa.Column("total_sold", sa.Integer(), nullable=False),
        sa.Column("revenue", sa.Numeric(12, 2), nullable=False),
        sa.Column("created_by", sa.Integer(), nullable=True),
        sa.Column("updated_by", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint("stock >= 0", name="check_stock_non_negative"),
        sa.CheckConstraint("price1 >= 0", name="check_price1_non_negative"),
        sa.ForeignKeyConstraint(["category_id"], ["categories.id"]),
        sa.ForeignKeyConstraint(["subcategory_id"], ["categories.id"]),
        sa.ForeignKeyConstraint(["created_by"], ["users.id"]),
        sa.ForeignKeyConstraint(["updated_by"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("barcode"),
    )
    with op.batch_alter_table("products", schema=None) as batch_op:
        batch_op.create_index(
            batch_op.f("ix_products_slug"), ["slug"], unique=True)
        batch_op.create_index(
            batch_op.f("ix_products_code"), ["code"], unique=True)
        batch_op.create_index(
            batch_op.f("ix_products_category_id"), ["category_id"])
        batch_op.create_index(
            batch_op.f("ix_products_subcategory_id"), ["subcategory_id"])
        batch_op.create_index(
            batch_op.f("ix_products_status"), ["status"])
        batch_op.create_index(
            batch_op.f("ix_products_featured"), ["featured"])
        batch_op.create_index(
            batch_op.f("ix_products_created_at"), ["created_at"])

    op.create_table(
        "product_quantity_discounts",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("product_id", sa.Integer(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("min_quantity", sa.Integer(), nullable=False),
        sa.Column("max_quantity", sa.Integer(), nullable=True),
        sa.Column("price", sa.Numeric(10, 2), nullable=False),
        sa.Column("discount_percent", sa.Numeric(5, 2), nullable=True),
        sa.CheckConstraint(
            "min_quantity > 0", name="check_min_quantity_positive"),
        sa.ForeignKeyConstraint(
            ["product_id"], ["products.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    with op.batch_alter_table(
            "product_quantity_discounts", schema=None) as batch_op:
        batch_op.create_index(
            batch_op.f("ix_product_quantity_discounts_product_id"),
            ["product_id"])

    op.create_table(
        "product_related",
        sa.Column("product_id", sa.Integer(), nullable=False),
        sa.Column("related_id", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(
            ["product_id"], ["products.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(
            ["related_id"], ["products.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("product_id", "related_id"),
    )

    op.create_table(
        "carts",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(
            ["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id"),
    )

    op.create_table(
        "cart_items",
        sa.Column("cart_id", sa.Integer(), nullable=False),
        sa.Column("product_id", sa.Integer(), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("added_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint("quantity > 0", name="check_quantity_positive"),
        sa.ForeignKeyConstraint(
            ["cart_id"], ["carts.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(
            ["product_id"], ["products.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("cart_id", "product_id"),
    )

    op.create_table(
        "orders",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("order_number", sa.String(length=32), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=True),
        sa.Column("is_guest", sa.Boolean(), nullable=False),
        sa.Column("guest_first_name", sa.String(length=50), nullable=True),
        sa.Column("guest_last_name", sa.String(length=50), nullable=True),
        sa.Column("guest_email", sa.String(length=120), nullable=True),
        sa.Column("guest_phone", sa.String(length=30), nullable=True),
        sa.Column("subtotal", sa.Numeric(12, 2), nullable=False),
        sa.Column("tax_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("tax_rate", sa.Numeric(5, 2), nullable=False),
        sa.Column("shipping_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("discount_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("discount_code", sa.String(length=50), nullable=True),
        sa.Column("discount_type", sa.String(length=20), nullable=True),
        sa.Column("total", sa.Numeric(12, 2), nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=False),
        sa.Column(
            "shipping_first_name", sa.String(length=50), nullable=False),
        sa.Column(
            "shipping_last_name", sa.String(length=50), nullable=False),
        sa.Column("shipping_company", sa.String(length=120), nullable=True),
        sa.Column("shipping_street", sa.String(length=200), nullable=False),
        sa.Column("shipping_city", sa.String(length=100), nullable=False),
        sa.Column("shipping_state", sa.String(length=100), nullable=True),
        sa.Column("shipping_zip_code", sa.String(length=20), nullable=True),
        sa.Column("shipping_country", sa.String(length=100), nullable=False),
        sa.Column("shipping_phone", sa.String(length=30), nullable=False),
        sa.Column("shipping_email", sa.String(length=120), nullable=False),
        sa.Column("shipping_method", sa.String(length=20), nullable=False),
        sa.Column("estimated_delivery", sa.DateTime(), nullable=True),
        sa.Column("tracking_number", sa.String(length=100), nullable=True),
        sa.Column("carrier", sa.String(length=50), nullable=True),
        sa.Column("shipping_notes", sa.Text(), nullable=True),
        sa.Column("payment_method", payment_method, nullable=False),
        sa.Column("payment_status", payment_status, nullable=False),
        sa.Column("transaction_id", sa.String(length=100), nullable=True),
        sa.Column("payment_date", sa.DateTime(), nullable=True),
        sa.Column("bank_name", sa.String(length=100), nullable=True),
        sa.Column(
            "bank_account_number", sa.String(length=64), nullable=True),
        sa.Column(
            "bank_reference_number", sa.String(length=64), nullable=True),
        sa.Column("card_last4", sa.String(length=4), nullable=True),
        sa.Column("card_brand", sa.String(length=20), nullable=True),
        sa.Column("card_expiry_month", sa.Integer(), nullable=True),
        sa.Column("card_expiry_year", sa.Integer(), nullable=True),
        sa.Column("status", order_status, nullable=False),
        sa.Column("customer_note", sa.Text(), nullable=True),
        sa.Column("admin_note", sa.Text(), nullable=True),
        sa.Column("internal_note", sa.Text(), nullable=True),
        sa.Column("source", order_source, nullable=False),
        sa.Column("user_agent", sa.String(length=500), nullable=True),
        sa.Column("ip_address", sa.String(length=45), nullable=True),
        sa.Column("referrer", sa.String(length=500), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(
            ["user_id"], ["users.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    with op.batch_alter_table("orders", schema=None) as batch_op:
        batch_op.create_index(
            batch_op.f("ix_orders_order_number"), ["order_number"],
            unique=True)
        batch_op.create_index(batch_op.f("ix_orders_user_id"), ["user_id"])
        batch_op.create_index(
            batch_op.f("ix_orders_guest_email"), ["guest_email"])
        batch_op.create_index(
            batch_op.f("ix_orders_tracking_number"), ["tracking_number"])
        batch_op.create_index(
            batch_op.f("ix_orders_payment_status"), ["payment_status"])
        batch_op.create_index(
            batch_op.f("ix_orders_transaction_id"), ["transaction_id"])
        batch_op.create_index(batch_op.f("ix_orders_status"), ["status"])
        batch_op.create_index(
            batch_op.f("ix_orders_created_at"), ["created_at"])

    op.create_table(
        "order_items",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("order_id", sa.Integer(), nullable=False),
        sa.Column("product_id", sa.Integer(), nullable=True),
        sa.Column("product_name", sa.JSON(), nullable=False),
        sa.Column("product_code", sa.String(length=50), nullable=True),
        sa.Column("product_image", sa.String(length=255), nullable=True),
        sa.Column("product_specifications", sa.JSON(), nullable=True),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("unit_price", sa.Numeric(10, 2), nullable=False),
        sa.Column("total_price", sa.Numeric(12, 2), nullable=False),
        sa.Column("applied_discount", sa.Numeric(12, 2), nullable=False),
        sa.CheckConstraint(
            "quantity > 0", name="check_order_quantity_positive"),
        sa.ForeignKeyConstraint(
            ["order_id"], ["orders.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(
            ["product_id"], ["products.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    with op.batch_alter_table("order_items", schema=None) as batch_op:
        batch_op.create_index(
            batch_op.f("ix_order_items_order_id"), ["order_id"])
        batch_op.create_index(
            batch_op.f("ix_order_items_product_id"), ["product_id"])

    op.create_table(
        "order_status_history",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("order_id", sa.Integer(), nullable=False),
        sa.Column("status", order_status, nullable=False),
        sa.Column("note", sa.String(length=500), nullable=True),
        sa.Column("updated_by", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(
            ["order_id"], ["orders.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(
            ["updated_by"], ["users.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    with op.batch_alter_table(
            "order_status_history", schema=None) as batch_op:
        batch_op.create_index(
            batch_op.f("ix_order_status_history_order_id"), ["order_id"])

    op.create_table(
        "order_communications",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("order_id", sa.Integer(), nullable=False),
        sa.Column("type", communication_type, nullable=False),
        sa.Column("content", sa.Text(), nullable=True),
        sa.Column("sent_at", sa.DateTime(), nullable=False),
        sa.Column("sent_by", sa.Integer(), nullable=True),
        sa.Column("status", communication_status, nullable=False),
        sa.ForeignKeyConstraint(
            ["order_id"], ["orders.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(
            ["sent_by"], ["users.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    with op.batch_alter_table(
            "order_communications", schema=None) as batch_op:
        batch_op.create_index(
            batch_op.f("ix_order_communications_order_id"), ["order_id"])

    op.create_table(
        "settings",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("site", sa.JSON(), nullable=False),
        sa.Column("contact", sa.JSON(), nullable=False),
        sa.Column("social", sa.JSON(), nullable=False),
        sa.Column("homepage", sa.JSON(), nullable=False),
        sa.Column("ecommerce", sa.JSON(), nullable=False),
        sa.Column("payment", sa.JSON(), nullable=False),
        sa.Column("shipping", sa.JSON(), nullable=False),
        sa.Column("email", sa.JSON(), nullable=False),
        sa.Column("seo", sa.JSON(), nullable=False),
        sa.Column("security", sa.JSON(), nullable=False),
        sa.Column("maintenance", sa.JSON(), nullable=False),
        sa.Column("system", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("actor_id", sa.Integer(), nullable=True),
        sa.Column("actor_role", sa.String(length=20), nullable=False),
        sa.Column("action", sa.String(length=100), nullable=False),
        sa.Column("target_type", sa.String(length=50), nullable=True),
        sa.Column("target_id", sa.Integer(), nullable=True),
        sa.Column("ip", sa.String(length=45), nullable=True),
        sa.Column("user_agent", sa.String(length=500), nullable=True),
        sa.Column("payload_json", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(
            ["actor_id"], ["users.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    with op.batch_alter_table("audit_logs", schema=None) as batch_op:
        batch_op.create_index(
            batch_op.f("ix_audit_logs_created_at"), ["created_at"])


def downgrade():
    op.drop_table("audit_logs")
    op.drop_table("settings")
    op.drop_table("order_communications")
    op.drop_table("order_status_history")
    op.drop_table("order_items")
    op.drop_table("orders")
    op.drop_table("cart_items")
    op.drop_table("carts")
    op.drop_table("product_related")
    op.drop_table("product_quantity_discounts")
    op.drop_table("products")
    op.drop_table("categories")
    op.drop_table("password_reset_tokens")
    op.drop_table("users")

    bind = op.get_bind()
    for enum_type in (
            communication_status,
            communication_type,
            order_source,
            payment_method,
            payment_status,
            order_status,
            product_status,
            category_status,
            user_status,
            user_role):
        enum_type.drop(bind, checkfirst=True)

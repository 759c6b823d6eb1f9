"""Initial schema: users, audit log, clients, catalog, equipment and quotes.

Revision ID: 0a1b2c3d4e5f
Revises:
Create Date: 2025-04-07 10:00:00.000000+00:00
"""

from __future__ import annotations

from typing import Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers
revision: str = "0a1b2c3d4e5f"
down_revision: Union[str, None] = None
branch_labels: Union[str, None] = None
depends_on: Union[str, None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    ]


def upgrade() -> None:
    # ── Users ─────────────────────────────────────────────────────────
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), nullable=False, primary_key=True),
        sa.Column("username", sa.String(50), nullable=False, unique=True),
        sa.Column("email", sa.String(100), nullable=False, unique=True),
        sa.Column("hashed_password", sa.String(255), nullable=False),
        sa.Column("first_name", sa.String(50), nullable=False),
        sa.Column("last_name", sa.String(50), nullable=False),
        sa.Column("phone", sa.String(20), nullable=True),
        sa.Column("position", sa.String(100), nullable=True),
        sa.Column(
            "role",
            sa.Enum("ADMIN", "MANAGER", "USER", name="roleenum"),
            nullable=False,
            server_default="USER",
        ),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("last_login", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column("failed_login_attempts", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("locked_until", sa.DateTime(timezone=True), nullable=True),
    )

    # ── Audit log ─────────────────────────────────────────────────────
    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Uuid(), nullable=False, primary_key=True),
        sa.Column("action", sa.String(50), nullable=False),
        sa.Column("resource_type", sa.String(50), nullable=False),
        sa.Column("resource_id", sa.String(100), nullable=False),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column(
            "changes",
            sa.JSON().with_variant(postgresql.JSONB(), "postgresql"),
            nullable=True,
        ),
        sa.Column("ip_address", sa.String(45), nullable=True),
        sa.Column("request_id", sa.String(64), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )
    op.create_index("ix_audit_resource", "audit_logs", ["resource_type", "resource_id"])
    op.create_index("ix_audit_user", "audit_logs", ["user_id"])
    op.create_index("ix_audit_action", "audit_logs", ["action"])

    # ── Clients ───────────────────────────────────────────────────────
    op.create_table(
        "clients",
        sa.Column("id", sa.Uuid(), nullable=False, primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("contact", sa.String(100), nullable=False),
        sa.Column("email", sa.String(100), nullable=False, unique=True),
        sa.Column("phone", sa.String(20), nullable=False),
        sa.Column("street", sa.String(255), nullable=True),
        sa.Column("city", sa.String(100), nullable=True),
        sa.Column("state", sa.String(100), nullable=True),
        sa.Column("zip_code", sa.String(10), nullable=True),
        sa.Column("country", sa.String(100), nullable=True),
        sa.Column("full_address", sa.Text(), nullable=True),
        sa.Column("rfc", sa.String(13), nullable=True),
        sa.Column(
            "client_type",
            sa.Enum(
                "HOSPITAL", "CLINIC", "LABORATORY", "DIAGNOSTIC_CENTER", "PRACTICE", "OTHER",
                name="clienttype",
            ),
            nullable=False,
        ),
        sa.Column(
            "status",
            sa.Enum("ACTIVE", "INACTIVE", "SUSPENDED", name="clientstatus"),
            nullable=False,
            server_default="ACTIVE",
        ),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("hospital_name", sa.String(200), nullable=True),
        sa.Column("agency", sa.String(200), nullable=True),
        sa.Column("contract", sa.String(100), nullable=True),
        sa.Column("total_quotes", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_amount", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column("last_quote_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_by", sa.Uuid(), sa.ForeignKey("users.id"), nullable=True),
        *_timestamps(),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_clients_name", "clients", ["name"])
    op.create_index("ix_clients_client_type", "clients", ["client_type"])
    op.create_index("ix_clients_status", "clients", ["status"])
    op.create_index("ix_clients_created_at", "clients", ["created_at"])

    # ── Catalog ───────────────────────────────────────────────────────
    op.create_table(
        "categories",
        sa.Column("id", sa.Uuid(), nullable=False, primary_key=True),
        sa.Column("name", sa.String(100), nullable=False, unique=True),
        sa.Column("description", sa.String(300), nullable=False),
        sa.Column("slug", sa.String(120), nullable=False, unique=True),
        sa.Column("parent_category_id", sa.Uuid(), sa.ForeignKey("categories.id"), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_by", sa.Uuid(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )

    op.create_table(
        "products",
        sa.Column("id", sa.Uuid(), nullable=False, primary_key=True),
        sa.Column("code", sa.String(50), nullable=False, unique=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("brand", sa.String(100), nullable=True),
        sa.Column("supplier", sa.String(200), nullable=True),
        sa.Column("category_id", sa.Uuid(), sa.ForeignKey("categories.id"), nullable=True),
        sa.Column("service", sa.String(100), nullable=True),
        sa.Column("specialty", sa.String(100), nullable=True),
        sa.Column("classification", sa.String(100), nullable=True),
        sa.Column("warehouse", sa.String(100), nullable=True),
        sa.Column("currency", sa.String(3), nullable=False, server_default="MXN"),
        sa.Column("package_quantity", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("package_price", sa.Numeric(12, 2), nullable=True),
        sa.Column("unit_price", sa.Numeric(12, 2), nullable=True),
        sa.Column("cost", sa.Numeric(12, 2), nullable=True),
        sa.Column("unit_cost", sa.Numeric(12, 2), nullable=True),
        sa.Column("tax_percent", sa.Numeric(5, 2), nullable=False, server_default="16"),
        sa.Column("factory_price", sa.Numeric(12, 2), nullable=True),
        sa.Column("landed_factor", sa.Numeric(10, 4), nullable=False, server_default="1"),
        sa.Column("margin_factor", sa.Numeric(10, 4), nullable=False, server_default="1"),
        sa.Column("currency_factor", sa.Numeric(10, 4), nullable=False, server_default="1"),
        sa.Column("sales_commission", sa.Numeric(5, 2), nullable=False, server_default="0"),
        sa.Column("expiry_date", sa.Date(), nullable=True),
        sa.Column("created_by", sa.Uuid(), sa.ForeignKey("users.id"), nullable=True),
        *_timestamps(),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("package_quantity >= 1", name="ck_product_package_quantity_positive"),
        sa.CheckConstraint(
            "tax_percent >= 0 AND tax_percent <= 100", name="ck_product_tax_percent_range"
        ),
    )
    op.create_index("ix_products_category", "products", ["category_id"])
    op.create_index("ix_products_name", "products", ["name"])

    # ── Equipment ─────────────────────────────────────────────────────
    op.create_table(
        "equipment",
        sa.Column("id", sa.Uuid(), nullable=False, primary_key=True),
        sa.Column("client_id", sa.Uuid(), sa.ForeignKey("clients.id"), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("model", sa.String(100), nullable=False),
        sa.Column("serial_number", sa.String(100), nullable=False, unique=True),
        sa.Column(
            "category",
            sa.Enum(
                "MONITORING", "EMERGENCY", "VENTILATION", "DIAGNOSTICS", "LABORATORY",
                "SURGERY", "RADIOLOGY", "REHABILITATION", "ANESTHESIA", "NEONATOLOGY",
                "CARDIOLOGY", "NEUROLOGY", "OTHER",
                name="equipmentcategory",
            ),
            nullable=False,
        ),
        sa.Column("brand", sa.String(100), nullable=False),
        sa.Column("location", sa.String(200), nullable=False),
        sa.Column("install_date", sa.Date(), nullable=True),
        sa.Column("purchase_date", sa.Date(), nullable=True),
        sa.Column("warranty_expiry", sa.Date(), nullable=True),
        sa.Column("last_maintenance", sa.Date(), nullable=True),
        sa.Column("maintenance_interval", sa.Integer(), nullable=False, server_default="12"),
        sa.Column(
            "status",
            sa.Enum(
                "ACTIVE", "MAINTENANCE", "OUT_OF_SERVICE", "RETIRED",
                name="equipmentstatus",
            ),
            nullable=False,
            server_default="ACTIVE",
        ),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("supplier", sa.String(200), nullable=True),
        sa.Column("cost", sa.Numeric(12, 2), nullable=True),
        sa.Column("currency", sa.String(3), nullable=False, server_default="MXN"),
        sa.Column("created_by", sa.Uuid(), sa.ForeignKey("users.id"), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "maintenance_interval >= 1 AND maintenance_interval <= 60",
            name="ck_equipment_maintenance_interval_range",
        ),
    )
    op.create_index("ix_equipment_client", "equipment", ["client_id"])
    op.create_index("ix_equipment_category", "equipment", ["category"])
    op.create_index("ix_equipment_status", "equipment", ["status"])
    op.create_index("ix_equipment_last_maintenance", "equipment", ["last_maintenance"])

    # ── Quotes ────────────────────────────────────────────────────────
    op.create_table(
        "quotes",
        sa.Column("id", sa.Uuid(), nullable=False, primary_key=True),
        sa.Column("folio", sa.String(30), nullable=False, unique=True),
        sa.Column("client_id", sa.Uuid(), sa.ForeignKey("clients.id"), nullable=True),
        sa.Column("client_name", sa.String(200), nullable=False),
        sa.Column("client_contact", sa.String(100), nullable=False),
        sa.Column("client_email", sa.String(100), nullable=False),
        sa.Column("client_phone", sa.String(20), nullable=False, server_default=""),
        sa.Column("client_address", sa.Text(), nullable=False, server_default=""),
        sa.Column("client_position", sa.String(100), nullable=True),
        sa.Column("subtotal", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column("tax_rate", sa.Numeric(5, 4), nullable=False, server_default="0.16"),
        sa.Column("tax_amount", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column("total", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column(
            "currency",
            sa.Enum("MXN", "USD", "EUR", name="currency"),
            nullable=False,
            server_default="MXN",
        ),
        sa.Column(
            "status",
            sa.Enum(
                "DRAFT", "SENT", "PENDING", "CONFIRMED", "REJECTED", "CANCELLED", "EXPIRED",
                name="quotestatus",
            ),
            nullable=False,
            server_default="DRAFT",
        ),
        sa.Column("terms_payment_conditions", sa.Text(), nullable=False),
        sa.Column("terms_delivery_time", sa.String(100), nullable=False),
        sa.Column("terms_warranty", sa.Text(), nullable=False),
        sa.Column("terms_observations", sa.Text(), nullable=True),
        sa.Column("terms_valid_until", sa.Date(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("sent_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("confirmed_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rejected_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_by", sa.Uuid(), sa.ForeignKey("users.id"), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("subtotal >= 0", name="ck_quote_subtotal_non_negative"),
        sa.CheckConstraint("total >= 0", name="ck_quote_total_non_negative"),
    )
    op.create_index("ix_quotes_status", "quotes", ["status"])
    op.create_index("ix_quotes_client", "quotes", ["client_id"])
    op.create_index("ix_quotes_created_at", "quotes", ["created_at"])

    op.create_table(
        "quote_items",
        sa.Column("id", sa.Uuid(), nullable=False, primary_key=True),
        sa.Column("quote_id", sa.Uuid(), sa.ForeignKey("quotes.id"), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("product_id", sa.Uuid(), sa.ForeignKey("products.id"), nullable=True),
        sa.Column("code", sa.String(50), nullable=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("brand", sa.String(100), nullable=False, server_default="N/A"),
        sa.Column("category", sa.String(100), nullable=False, server_default="N/A"),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("unit_price", sa.Numeric(12, 2), nullable=False),
        sa.Column("line_total", sa.Numeric(14, 2), nullable=False),
        sa.CheckConstraint("quantity > 0", name="ck_quote_item_quantity_positive"),
        sa.CheckConstraint("unit_price >= 0", name="ck_quote_item_unit_price_non_negative"),
    )
    op.create_index("ix_quote_items_quote", "quote_items", ["quote_id"])


def downgrade() -> None:
    op.drop_index("ix_quote_items_quote", table_name="quote_items")
    op.drop_table("quote_items")
    op.drop_index("ix_quotes_created_at", table_name="quotes")
    op.drop_index("ix_quotes_client", table_name="quotes")
    op.drop_index("ix_quotes_status", table_name="quotes")
    op.drop_table("quotes")
    op.drop_index("ix_equipment_last_maintenance", table_name="equipment")
    op.drop_index("ix_equipment_status", table_name="equipment")
    op.drop_index("ix_equipment_category", table_name="equipment")
    op.drop_index("ix_equipment_client", table_name="equipment")
    op.drop_table("equipment")
    op.drop_index("ix_products_name", table_name="products")
    op.drop_index("ix_products_category", table_name="products")
    op.drop_table("products")
    op.drop_table("categories")
    op.drop_index("ix_clients_created_at", table_name="clients")
    op.drop_index("ix_clients_status", table_name="clients")
    op.drop_index("ix_clients_client_type", table_name="clients")
    op.drop_index("ix_clients_name", table_name="clients")
    op.drop_table("clients")
    op.drop_index("ix_audit_action", table_name="audit_logs")
    op.drop_index("ix_audit_user", table_name="audit_logs")
    op.drop_index("ix_audit_resource", table_name="audit_logs")
    op.drop_table("audit_logs")
    op.drop_table("users")

    for enum_name in (
        "quotestatus", "currency", "equipmentstatus", "equipmentcategory",
        "clientstatus", "clienttype", "roleenum",
    ):
        sa.Enum(name=enum_name).drop(op.get_bind(), checkfirst=True)

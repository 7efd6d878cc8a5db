"""Table definitions.

Queries are written as plain SQL against these tables; the metadata here is
only used to create the schema and keep column names in one place.
"""

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    MetaData,
    String,
    Table,
    Text,
)
from sqlalchemy.engine import Engine

metadata = MetaData()

ID = String(36)


users = Table(
    "users",
    metadata,
    Column("id", ID, primary_key=True),
    Column("email", String(254), nullable=False, unique=True),
    Column("password_hash", String(100), nullable=False),
    Column("full_name", String(200), nullable=False),
    Column("role", String(20), nullable=False, server_default="Kasir"),
    Column("is_active", Boolean, nullable=False, server_default="1"),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("last_login_at", DateTime(timezone=True)),
)

customers = Table(
    "customers",
    metadata,
    Column("id", ID, primary_key=True),
    Column("name", String(200), nullable=False),
    Column("phone", String(40)),
    Column("address", Text),
    Column("customer_type", String(20), nullable=False, server_default="retail"),
    Column("created_at", DateTime(timezone=True), nullable=False),
)

suppliers = Table(
    "suppliers",
    metadata,
    Column("id", ID, primary_key=True),
    Column("name", String(200), nullable=False),
    Column("phone", String(40)),
    Column("address", Text),
    Column("notes", Text),
    Column("created_at", DateTime(timezone=True), nullable=False),
)

products = Table(
    "products",
    metadata,
    Column("id", ID, primary_key=True),
    Column("name", String(250), nullable=False),
    Column("category", String(100)),
    Column("description", Text),
    Column("barcode", String(200), unique=True),
    Column("buy_price", BigInteger, nullable=False, server_default="0"),
    Column("retail_price", BigInteger, nullable=False, server_default="0"),
    Column("reseller_price", BigInteger, nullable=False, server_default="0"),
    Column("stock", Integer, nullable=False, server_default="0"),
    Column("image_url", Text),
    Column("supplier_id", ID, ForeignKey("suppliers.id", ondelete="SET NULL")),
    Column("entry_date", Date),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
    CheckConstraint("stock >= 0", name="ck_products_stock_non_negative"),
)

stock_movements = Table(
    "stock_movements",
    metadata,
    Column("id", ID, primary_key=True),
    Column("product_id", ID, ForeignKey("products.id", ondelete="CASCADE"), nullable=False),
    Column("movement_type", String(30), nullable=False),
    Column("qty_delta", Integer, nullable=False),
    Column("reason", Text),
    Column("reference_id", ID),
    Column("performed_by_user_id", ID),
    Column("created_at", DateTime(timezone=True), nullable=False),
)

sales_transactions = Table(
    "sales_transactions",
    metadata,
    Column("id", ID, primary_key=True),
    Column("display_id", String(40), nullable=False, unique=True),
    Column("customer_id", ID, ForeignKey("customers.id", ondelete="SET NULL")),
    Column("customer_name_cache", String(200), nullable=False),
    Column("customer_type", String(20), nullable=False),
    Column("subtotal", BigInteger, nullable=False),
    Column("discount", BigInteger, nullable=False),
    Column("total", BigInteger, nullable=False),
    Column("cost", BigInteger, nullable=False),
    Column("profit", BigInteger, nullable=False),
    Column("payment_method", String(20), nullable=False),
    Column("amount_paid", BigInteger, nullable=False),
    Column("change_amount", BigInteger, nullable=False),
    Column("remaining_amount", BigInteger, nullable=False),
    Column("kasir_id", ID, ForeignKey("users.id", ondelete="SET NULL")),
    Column("created_at", DateTime(timezone=True), nullable=False),
)

sales_transaction_items = Table(
    "sales_transaction_items",
    metadata,
    Column("id", ID, primary_key=True),
    Column(
        "transaction_id",
        ID,
        ForeignKey("sales_transactions.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("product_id", ID, ForeignKey("products.id", ondelete="SET NULL")),
    Column("product_name", String(250), nullable=False),
    Column("quantity", Integer, nullable=False),
    Column("buy_price_at_sale", BigInteger, nullable=False),
    Column("sale_price_at_sale", BigInteger, nullable=False),
)

service_entries = Table(
    "service_entries",
    metadata,
    Column("id", ID, primary_key=True),
    Column("customer_id", ID, ForeignKey("customers.id", ondelete="RESTRICT"), nullable=False),
    Column("kasir_id", ID, ForeignKey("users.id", ondelete="SET NULL")),
    Column("category", String(100)),
    Column("device_type", String(100)),
    Column("damage_type", String(200)),
    Column("description", Text),
    Column("status", String(20), nullable=False, server_default="pending"),
    Column("date", Date, nullable=False),
    Column("service_info", Text),
    Column("info_date", Date),
    Column("created_at", DateTime(timezone=True), nullable=False),
)

service_transactions = Table(
    "service_transactions",
    metadata,
    Column("id", ID, primary_key=True),
    Column("display_id", String(40), nullable=False, unique=True),
    Column(
        "service_entry_id",
        ID,
        ForeignKey("service_entries.id", ondelete="RESTRICT"),
        nullable=False,
        unique=True,
    ),
    Column("customer_id", ID, ForeignKey("customers.id", ondelete="SET NULL")),
    Column("customer_name_cache", String(200), nullable=False),
    Column("customer_type", String(20), nullable=False),
    Column("description", Text),
    Column("service_fee", BigInteger, nullable=False),
    Column("subtotal", BigInteger, nullable=False),
    Column("discount", BigInteger, nullable=False),
    Column("total_amount", BigInteger, nullable=False),
    Column("cost", BigInteger, nullable=False),
    Column("profit", BigInteger, nullable=False),
    Column("payment_method", String(20), nullable=False),
    Column("amount_paid", BigInteger, nullable=False),
    Column("change_amount", BigInteger, nullable=False),
    Column("remaining_amount", BigInteger, nullable=False),
    Column("revision", Integer, nullable=False, server_default="0"),
    Column("kasir_id", ID, ForeignKey("users.id", ondelete="SET NULL")),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
)

service_parts_used = Table(
    "service_parts_used",
    metadata,
    Column("id", ID, primary_key=True),
    Column(
        "service_transaction_id",
        ID,
        ForeignKey("service_transactions.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("product_id", ID, ForeignKey("products.id", ondelete="SET NULL")),
    Column("product_name", String(250), nullable=False),
    Column("quantity", Integer, nullable=False),
    Column("buy_price", BigInteger, nullable=False),
    Column("sale_price", BigInteger, nullable=False),
)

installments = Table(
    "installments",
    metadata,
    Column("id", ID, primary_key=True),
    Column("display_id", String(40), nullable=False, unique=True),
    Column("source", String(20), nullable=False),
    Column("customer_id", ID, ForeignKey("customers.id", ondelete="SET NULL")),
    Column("customer_name", String(200), nullable=False),
    Column("transaction_date", DateTime(timezone=True), nullable=False),
    Column("total_amount", BigInteger, nullable=False),
    Column("paid_amount", BigInteger, nullable=False),
    Column("remaining_amount", BigInteger, nullable=False),
    Column("status", String(10), nullable=False),
    Column("details", Text),
    Column("created_by", ID, ForeignKey("users.id", ondelete="SET NULL")),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
    CheckConstraint("remaining_amount >= 0", name="ck_installments_remaining_non_negative"),
)

installment_payments = Table(
    "installment_payments",
    metadata,
    Column("id", ID, primary_key=True),
    Column(
        "installment_id",
        ID,
        ForeignKey("installments.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("amount", BigInteger, nullable=False),
    Column("note", Text),
    Column("received_by", ID, ForeignKey("users.id", ondelete="SET NULL")),
    Column("paid_at", DateTime(timezone=True), nullable=False),
)

app_settings = Table(
    "app_settings",
    metadata,
    Column("key", String(50), primary_key=True),
    Column("value", Text, nullable=False),
)


def create_schema(engine: Engine) -> None:
    metadata.create_all(engine)


def drop_schema(engine: Engine) -> None:
    metadata.drop_all(engine)

from sqlalchemy import (
    JSON,
    Column,
    Date,
    DateTime,
    Index,
    MetaData,
    Numeric,
    String,
    Table,
    Text,
)

metadata = MetaData()

equipment = Table(
    "equipment",
    metadata,
    Column("id", String(64), primary_key=True),
    Column("name", String(255), nullable=False, default=""),
    Column("status", String(32), nullable=False),
    Column("daily_rate", Numeric(12, 2), nullable=False),
    Column("currency", String(3), nullable=False, default="USD"),
)

reservations = Table(
    "reservations",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("customer_id", String(64), nullable=False),
    Column("equipment_id", String(64), nullable=False),
    Column("start_date", Date, nullable=False),
    Column("end_date", Date, nullable=False),
    Column("delivery_address", String(500), nullable=False),
    Column("status", String(32), nullable=False),
    Column("total_amount", Numeric(12, 2), nullable=False),
    Column("currency", String(3), nullable=False),
    Column("notes", Text),
    Column("created_at", DateTime(timezone=True)),
    Column("updated_at", DateTime(timezone=True)),
    Index("ix_reservations_timeline", "equipment_id", "start_date", "end_date"),
    Index("ix_reservations_customer_status", "customer_id", "status"),
)

payments = Table(
    "payments",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("reservation_id", String(36), nullable=False, index=True),
    Column("gateway_charge_id", String(128), nullable=False, unique=True),
    Column("amount", Numeric(12, 2), nullable=False),
    Column("currency", String(3), nullable=False),
    Column("status", String(32), nullable=False),
    Column("client_secret", String(255)),
    Column("refund_amount", Numeric(12, 2)),
    Column("refunded_at", DateTime(timezone=True)),
    Column("last_event_id", String(128)),
    Column("payment_metadata", JSON),
    Column("created_at", DateTime(timezone=True)),
    Column("updated_at", DateTime(timezone=True)),
)

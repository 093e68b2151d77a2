"""
SQLAlchemy models.
All model and enum definitions live here for simplicity and to avoid circular imports.
"""
from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, Numeric, Enum as SQLEnum, JSON, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from labelsync.database import Base
import enum
import uuid

# Enums
class MarketplaceName(str, enum.Enum):
    VEEQO = "veeqo"
    TRENDYOL = "trendyol"
    SHIPPO = "shippo"

class SyncJobType(str, enum.Enum):
    PULL_ORDERS = "PULL_ORDERS"
    SHIPPING_INFO = "SHIPPING_INFO"

class SyncJobStatus(str, enum.Enum):
    RUNNING = "RUNNING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"

class LogLevel(str, enum.Enum):
    INFO = "INFO"
    ERROR = "ERROR"

class LabelJobStatus(str, enum.Enum):
    PENDING = "PENDING"
    SUBMITTED = "SUBMITTED"
    FAILED = "FAILED"

# Models
class User(Base):
    """Tenant root. The id is issued by the auth provider, never generated here."""
    __tablename__ = "users"

    id = Column(String, primary_key=True)
    email = Column(String, unique=True, nullable=True, index=True)
    name = Column(String, nullable=True)
    apps_script_id = Column("apps_script_id", String, nullable=True)
    google_sheet_id = Column("google_sheet_id", String, nullable=True)
    created_at = Column("created_at", DateTime, server_default=func.now())

    credentials = relationship("MarketplaceCredential", back_populates="user", cascade="all, delete-orphan")
    shipper_profile = relationship("ShipperProfile", back_populates="user", uselist=False, cascade="all, delete-orphan")
    orders = relationship("Order", back_populates="user")

class MarketplaceCredential(Base):
    __tablename__ = "marketplace_credentials"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column("user_id", String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    marketplace = Column("marketplace", String, nullable=False, index=True)
    value_encrypted = Column("value_encrypted", String, nullable=True)
    created_at = Column("created_at", DateTime, server_default=func.now())
    updated_at = Column("updated_at", DateTime, server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="credentials")

    __table_args__ = (UniqueConstraint("user_id", "marketplace", name="uq_marketplace_credentials_user_marketplace"),)

class ShipperProfile(Base):
    __tablename__ = "shipper_profiles"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column("user_id", String, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    shipper_name = Column("shipper_name", String, nullable=True)
    shipper_person_name = Column("shipper_person_name", String, nullable=True)
    shipper_phone_number = Column("shipper_phone_number", String, nullable=True)
    shipper_street1 = Column("shipper_street1", String, nullable=True)
    shipper_street2 = Column("shipper_street2", String, nullable=True)
    shipper_city = Column("shipper_city", String, nullable=True)
    shipper_state_code = Column("shipper_state_code", String, nullable=True)
    shipper_postal_code = Column("shipper_postal_code", String, nullable=True)
    shipper_country_code = Column("shipper_country_code", String, nullable=True)
    default_currency_code = Column("default_currency_code", String(3), nullable=True)
    duties_payment_type = Column("duties_payment_type", String, nullable=True)
    updated_at = Column("updated_at", DateTime, server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="shipper_profile")

class Order(Base):
    __tablename__ = "orders"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column("user_id", String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    # Upstream service slug (veeqo/trendyol/shippo); marketplace may be a Veeqo channel name
    source = Column("source", String, nullable=False, index=True)
    marketplace = Column("marketplace", String, nullable=False)
    marketplace_key = Column("marketplace_key", String, nullable=False)
    marketplace_created_at = Column("marketplace_created_at", DateTime, nullable=True)
    customer_name = Column("customer_name", String, nullable=False)
    status = Column("status", String, nullable=False)
    ship_by_date = Column("ship_by_date", DateTime, nullable=True)
    currency = Column("currency", String(3), nullable=True)
    total_price = Column("total_price", Numeric(12, 2), default=0, nullable=False)
    shipping_address = Column("shipping_address", JSON, nullable=True)
    # Edited by users only; the order sync never writes these
    packing_status = Column("packing_status", String, nullable=True)
    production_notes = Column("production_notes", String, nullable=True)
    packing_edited_at = Column("packing_edited_at", DateTime, nullable=True)
    production_edited_at = Column("production_edited_at", DateTime, nullable=True)
    created_at = Column("created_at", DateTime, server_default=func.now())
    updated_at = Column("updated_at", DateTime, server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="orders")
    items = relationship("OrderItem", back_populates="order", cascade="all, delete-orphan", passive_deletes=True)
    shipping = relationship("OrderShipping", back_populates="order", uselist=False, cascade="all, delete-orphan")

    __table_args__ = (
        UniqueConstraint(
            "user_id",
            "marketplace",
            "marketplace_key",
            name="orders_user_marketplace_key_unique",
        ),
    )

class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    order_id = Column("order_id", String, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    marketplace_line_id = Column("marketplace_line_id", String, nullable=True)
    sku = Column(String, nullable=False)
    product_name = Column("product_name", String, nullable=False)
    variant_info = Column("variant_info", String, nullable=True)
    quantity = Column(Integer, nullable=False, default=0)
    unit_price = Column("unit_price", Numeric(12, 2), nullable=False, default=0)
    total_price = Column("total_price", Numeric(12, 2), nullable=False, default=0)
    image_url = Column("image_url", String, nullable=True)
    notes = Column(String, nullable=True)

    order = relationship("Order", back_populates="items")

class OrderShipping(Base):
    __tablename__ = "order_shippings"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    order_id = Column("order_id", String, ForeignKey("orders.id", ondelete="CASCADE"), unique=True, nullable=False)
    first_name = Column("first_name", String, nullable=False, default="")
    last_name = Column("last_name", String, nullable=False, default="")
    company = Column(String, nullable=False, default="")
    street1 = Column(String, nullable=False, default="")
    street2 = Column(String, nullable=False, default="")
    city = Column(String, nullable=False, default="")
    state = Column(String, nullable=False, default="")
    postal_code = Column("postal_code", String, nullable=False, default="")
    country_code = Column("country_code", String, nullable=False, default="")
    phone = Column(String, nullable=False, default="")
    updated_at = Column("updated_at", DateTime, server_default=func.now(), onupdate=func.now())

    order = relationship("Order", back_populates="shipping")

class SyncJob(Base):
    __tablename__ = "sync_jobs"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column("user_id", String, ForeignKey("users.id", ondelete="CASCADE"), nullable=True, index=True)
    marketplace = Column("marketplace", String, nullable=True)
    job_type = Column("job_type", SQLEnum(SyncJobType), nullable=False)
    status = Column(SQLEnum(SyncJobStatus), default=SyncJobStatus.RUNNING)
    started_at = Column("started_at", DateTime, nullable=True)
    finished_at = Column("finished_at", DateTime, nullable=True)
    records_created = Column("records_created", Integer, default=0)
    records_updated = Column("records_updated", Integer, default=0)
    records_failed = Column("records_failed", Integer, default=0)
    error_message = Column("error_message", String, nullable=True)
    created_at = Column("created_at", DateTime, server_default=func.now())

    logs = relationship("SyncLog", back_populates="sync_job", cascade="all, delete-orphan")

class SyncLog(Base):
    __tablename__ = "sync_logs"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    sync_job_id = Column("sync_job_id", String, ForeignKey("sync_jobs.id", ondelete="CASCADE"), nullable=False)
    level = Column(SQLEnum(LogLevel), nullable=False)
    message = Column(String, nullable=False)
    raw_payload = Column("raw_payload", JSON, nullable=True)
    created_at = Column("created_at", DateTime, server_default=func.now())

    sync_job = relationship("SyncJob", back_populates="logs")

class LabelJob(Base):
    __tablename__ = "label_jobs"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    order_id = Column("order_id", String, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column("user_id", String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    status = Column(SQLEnum(LabelJobStatus), default=LabelJobStatus.PENDING)
    request_payload = Column("request_payload", JSON, nullable=True)
    response_payload = Column("response_payload", JSON, nullable=True)
    error = Column(String, nullable=True)
    created_at = Column("created_at", DateTime, server_default=func.now())
    updated_at = Column("updated_at", DateTime, server_default=func.now(), onupdate=func.now())

    order = relationship("Order")

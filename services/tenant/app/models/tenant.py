# app/models/tenant.py
import enum
import math
import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, Boolean, Column, DateTime, Enum, ForeignKey, Numeric, String, Text, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.core.database import Base


class TenantStatus(str, enum.Enum):
    TRIAL = "TRIAL"
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    SUSPENDED = "SUSPENDED"
    EXPIRED = "EXPIRED"


class TenantType(str, enum.Enum):
    GYM = "GYM"
    STUDIO = "STUDIO"
    PERSONAL_TRAINER = "PERSONAL_TRAINER"
    ENTERPRISE = "ENTERPRISE"


class ProvisioningStatus(str, enum.Enum):
    PENDING = "PENDING"
    SCHEMA_CREATED = "SCHEMA_CREATED"
    READY = "READY"


class SubscriptionPlan(str, enum.Enum):
    TRIAL = "TRIAL"
    BASIC = "BASIC"
    PREMIUM = "PREMIUM"
    ENTERPRISE = "ENTERPRISE"


class SubscriptionStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    CANCELLED = "CANCELLED"
    EXPIRED = "EXPIRED"
    PAST_DUE = "PAST_DUE"


# Só tenants ACTIVE recebem conexão
RESOLVABLE_STATUSES = frozenset({TenantStatus.ACTIVE})

_JSON = JSONB().with_variant(JSON, "sqlite")


def _enum(enum_cls, name):
    return Enum(enum_cls, name=name, native_enum=False, length=32, validate_strings=True)


def _aware(value):
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class Tenant(Base):
    __tablename__ = "tenants"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(200), nullable=False)
    domain = Column(String(100), unique=True, nullable=False, index=True)
    schema_name = Column(String(63), unique=True, nullable=False, index=True)
    tenant_type = Column(_enum(TenantType, "tenant_type"), nullable=False, default=TenantType.GYM)
    status = Column(_enum(TenantStatus, "tenant_status"), nullable=False, default=TenantStatus.TRIAL)
    description = Column(Text, nullable=True)
    logo = Column(String(255), nullable=True)
    settings = Column(_JSON, nullable=True)
    contact = Column(_JSON, nullable=True)
    trial_start_date = Column(DateTime(timezone=True), nullable=True)
    trial_end_date = Column(DateTime(timezone=True), nullable=True)
    is_schema_created = Column(Boolean, nullable=False, default=False)
    provisioning_status = Column(
        _enum(ProvisioningStatus, "provisioning_status"),
        nullable=False,
        default=ProvisioningStatus.PENDING,
    )
    provisioning_error = Column(Text, nullable=True)
    last_access_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    subscriptions = relationship(
        "Subscription",
        back_populates="tenant",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @property
    def is_active(self) -> bool:
        return self.status == TenantStatus.ACTIVE

    @property
    def is_trial(self) -> bool:
        return self.status == TenantStatus.TRIAL

    @property
    def is_trial_expired(self) -> bool:
        end = _aware(self.trial_end_date)
        if end is None:
            return False
        return datetime.now(timezone.utc) > end

    @property
    def days_until_trial_expires(self) -> int:
        end = _aware(self.trial_end_date)
        if end is None:
            return 0
        remaining = end - datetime.now(timezone.utc)
        return math.ceil(remaining.total_seconds() / 86400)


class Subscription(Base):
    __tablename__ = "subscriptions"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("tenants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    plan = Column(_enum(SubscriptionPlan, "subscription_plan"), nullable=False)
    status = Column(
        _enum(SubscriptionStatus, "subscription_status"),
        nullable=False,
        default=SubscriptionStatus.ACTIVE,
    )
    monthly_price = Column(Numeric(10, 2), nullable=False)
    yearly_price = Column(Numeric(10, 2), nullable=True)
    start_date = Column(DateTime(timezone=True), nullable=False)
    end_date = Column(DateTime(timezone=True), nullable=True)
    next_billing_date = Column(DateTime(timezone=True), nullable=True)
    features = Column(_JSON, nullable=True)
    limits = Column(_JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    tenant = relationship("Tenant", back_populates="subscriptions")

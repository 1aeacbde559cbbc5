from datetime import datetime
from decimal import Decimal
from uuid import UUID
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from app.models.tenant import (
    ProvisioningStatus,
    SubscriptionPlan,
    SubscriptionStatus,
    TenantStatus,
    TenantType,
)
from shared.tenancy import InvalidIdentifier, validate_domain


class TenantContact(BaseModel):
    email: EmailStr = Field(..., examples=["contato@academia-forte.com"])
    phone: Optional[str] = Field(default=None, examples=["+55 11 99999-0000"])
    address: Optional[str] = Field(default=None, examples=["Rua das Flores, 100"])


class TenantSettings(BaseModel):
    timezone: str = Field(default="UTC", examples=["America/Sao_Paulo"])
    currency: str = Field(default="USD", examples=["BRL"])
    language: str = Field(default="en", examples=["pt-BR"])
    features: List[str] = Field(default_factory=list, examples=[["classes", "nutrition"]])
    branding: Dict[str, Any] = Field(default_factory=dict, examples=[{"primary_color": "#4A90E2"}])


class TenantCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=200, examples=["Academia Forte"])
    domain: str = Field(..., max_length=100, examples=["academia-forte.com"])
    tenant_type: TenantType = Field(default=TenantType.GYM, examples=["GYM"])
    description: Optional[str] = None
    logo: Optional[str] = Field(default=None, max_length=255)
    contact: Optional[TenantContact] = None
    settings: Optional[TenantSettings] = None

    @field_validator("domain")
    @classmethod
    def validar_dominio(cls, value: str) -> str:
        try:
            return validate_domain(value)
        except InvalidIdentifier as exc:
            raise ValueError(exc.reason) from exc


class TenantUpdate(BaseModel):
    """Campos editáveis. ``domain`` e ``schema_name`` são imutáveis."""

    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(default=None, min_length=2, max_length=200)
    tenant_type: Optional[TenantType] = None
    status: Optional[TenantStatus] = None
    description: Optional[str] = None
    logo: Optional[str] = Field(default=None, max_length=255)
    contact: Optional[TenantContact] = None
    settings: Optional[TenantSettings] = None

    @field_validator("name", "tenant_type", "status", mode="before")
    @classmethod
    def rejeitar_nulo(cls, value):
        # Colunas NOT NULL: omitir o campo mantém o valor atual, null não.
        if value is None:
            raise ValueError("campo não pode ser nulo")
        return value


class TenantOut(BaseModel):
    id: UUID
    name: str
    domain: str
    schema_name: str
    tenant_type: TenantType
    status: TenantStatus
    description: Optional[str] = None
    logo: Optional[str] = None
    contact: Optional[Dict[str, Any]] = None
    settings: Optional[Dict[str, Any]] = None
    is_schema_created: bool
    provisioning_status: ProvisioningStatus
    provisioning_error: Optional[str] = None
    trial_start_date: Optional[datetime] = None
    trial_end_date: Optional[datetime] = None
    last_access_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    @property
    def is_ready(self) -> bool:
        return self.is_schema_created and self.provisioning_status == ProvisioningStatus.READY


class SubscriptionOut(BaseModel):
    id: UUID
    plan: SubscriptionPlan
    status: SubscriptionStatus
    monthly_price: Decimal
    yearly_price: Optional[Decimal] = None
    start_date: datetime
    end_date: Optional[datetime] = None
    next_billing_date: Optional[datetime] = None
    features: Optional[Dict[str, Any]] = None
    limits: Optional[Dict[str, Any]] = None

    model_config = ConfigDict(from_attributes=True)


class TenantDetailOut(TenantOut):
    is_trial: bool
    is_trial_expired: bool
    days_until_trial_expires: int
    subscriptions: List[SubscriptionOut] = Field(default_factory=list)


class TenantPage(BaseModel):
    items: List[TenantOut]
    total: int
    page: int
    limit: int


class MigrationEntryOut(BaseModel):
    name: str
    applied_at: Optional[datetime] = None


class MigrationStatusOut(BaseModel):
    schema_name: str
    applied: List[MigrationEntryOut]
    pending: List[str]


class RoleTypeOut(BaseModel):
    id: UUID
    name: str
    code: str
    level: str
    category: str
    is_active: bool

    model_config = ConfigDict(from_attributes=True)


class PermissionOut(BaseModel):
    resource: str
    action: str
    name: str

    model_config = ConfigDict(from_attributes=True)


class RoleOut(BaseModel):
    id: UUID
    name: str
    description: Optional[str] = None
    role_type_id: UUID
    permissions: List[PermissionOut] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)

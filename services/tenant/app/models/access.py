"""Tabelas que existem dentro de cada schema de tenant.

Não pertencem ao metadata do banco de controle: são criadas pelas migrations
de tenant e consultadas pelo engine do schema (search_path).
"""

import enum
import uuid

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, String, Table, Text, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

TenantBase = declarative_base()

_JSON = JSONB().with_variant(JSON, "sqlite")


class RoleTypeCode(str, enum.Enum):
    CLIENT = "CLIENT"
    COACH = "COACH"
    COACH_MEMBER = "COACH_MEMBER"
    STUDIO_COACH = "STUDIO_COACH"
    STUDIO_OWNER = "STUDIO_OWNER"
    STUDIO_MEMBER = "STUDIO_MEMBER"
    GYM_COACH = "GYM_COACH"
    GYM_OWNER = "GYM_OWNER"
    GYM_MEMBER = "GYM_MEMBER"


class RoleLevel(str, enum.Enum):
    BASIC = "BASIC"
    PREMIUM = "PREMIUM"
    MANAGER = "MANAGER"
    OWNER = "OWNER"
    ADMIN = "ADMIN"


class RoleCategory(str, enum.Enum):
    CLIENT = "CLIENT"
    COACH = "COACH"
    STUDIO = "STUDIO"
    GYM = "GYM"
    SYSTEM = "SYSTEM"


class PermissionAction(str, enum.Enum):
    CREATE = "CREATE"
    READ = "READ"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    MANAGE = "MANAGE"


role_permissions = Table(
    "role_permissions",
    TenantBase.metadata,
    Column("role_id", Uuid(as_uuid=True), ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
    Column(
        "permission_id",
        Uuid(as_uuid=True),
        ForeignKey("permissions.id", ondelete="CASCADE"),
        primary_key=True,
    ),
)


class RoleType(TenantBase):
    __tablename__ = "role_types"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False)
    code = Column(String(32), nullable=False, unique=True)
    description = Column(Text, nullable=True)
    level = Column(String(32), nullable=False, default=RoleLevel.BASIC.value)
    category = Column(String(32), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    roles = relationship("Role", back_populates="role_type")


class Permission(TenantBase):
    __tablename__ = "permissions"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False)
    resource = Column(String(50), nullable=False)
    action = Column(String(16), nullable=False)
    description = Column(Text, nullable=True)
    conditions = Column(_JSON, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class Role(TenantBase):
    __tablename__ = "roles"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    role_type_id = Column(Uuid(as_uuid=True), ForeignKey("role_types.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    role_type = relationship("RoleType", back_populates="roles")
    permissions = relationship("Permission", secondary=role_permissions, lazy="selectin")

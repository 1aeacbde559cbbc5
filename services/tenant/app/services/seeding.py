"""Seed inicial de papéis e permissões de um schema de tenant.

Cada tipo de tenant recebe seu próprio conjunto de role types e permissões.
O seed é idempotente: registros existentes (por ``code`` ou por
``resource``/``action``) são reaproveitados, então reexecutar o
provisionamento não duplica nada.
"""

from __future__ import annotations

from typing import Dict, List

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from app.models.access import (
    Permission,
    PermissionAction as Action,
    Role,
    RoleCategory as Category,
    RoleLevel as Level,
    RoleType,
    RoleTypeCode as Code,
)
from app.models.tenant import TenantType

logger = structlog.get_logger(__name__)


def _role(name, code, level, category):
    return {"name": name, "code": code, "level": level, "category": category}


def _perm(name, resource, action):
    return {"name": name, "resource": resource, "action": action}


TENANT_ROLE_CONFIGS: Dict[TenantType, Dict[str, List[dict]]] = {
    TenantType.GYM: {
        "role_types": [
            _role("Gym Owner", Code.GYM_OWNER, Level.OWNER, Category.GYM),
            _role("Gym Manager", Code.GYM_MEMBER, Level.MANAGER, Category.GYM),
            _role("Personal Trainer", Code.COACH, Level.PREMIUM, Category.COACH),
            _role("Gym Member", Code.CLIENT, Level.BASIC, Category.CLIENT),
        ],
        "permissions": [
            _perm("Manage Equipment", "equipment", Action.MANAGE),
            _perm("View Equipment", "equipment", Action.READ),
            _perm("Manage Memberships", "memberships", Action.MANAGE),
            _perm("View Members", "members", Action.READ),
            _perm("Manage Classes", "classes", Action.MANAGE),
            _perm("Book Classes", "classes", Action.CREATE),
            _perm("View Analytics", "analytics", Action.READ),
            _perm("Manage Locker Rentals", "lockers", Action.MANAGE),
        ],
    },
    TenantType.STUDIO: {
        "role_types": [
            _role("Studio Owner", Code.STUDIO_OWNER, Level.OWNER, Category.STUDIO),
            _role("Yoga Instructor", Code.STUDIO_COACH, Level.PREMIUM, Category.COACH),
            _role("Studio Member", Code.STUDIO_MEMBER, Level.BASIC, Category.CLIENT),
        ],
        "permissions": [
            _perm("Manage Classes", "classes", Action.MANAGE),
            _perm("Teach Classes", "classes", Action.UPDATE),
            _perm("Book Classes", "classes", Action.CREATE),
            _perm("View Class Schedule", "classes", Action.READ),
            _perm("Manage Meditation Sessions", "meditation", Action.MANAGE),
            _perm("Track Wellness", "wellness", Action.CREATE),
            _perm("View Community Events", "events", Action.READ),
        ],
    },
    TenantType.PERSONAL_TRAINER: {
        "role_types": [
            _role("Personal Trainer", Code.COACH, Level.OWNER, Category.COACH),
            _role("Client", Code.CLIENT, Level.BASIC, Category.CLIENT),
        ],
        "permissions": [
            _perm("Manage Clients", "clients", Action.MANAGE),
            _perm("Create Workout Programs", "workouts", Action.MANAGE),
            _perm("Track Client Progress", "progress", Action.MANAGE),
            _perm("Nutrition Coaching", "nutrition", Action.MANAGE),
            _perm("Schedule Sessions", "sessions", Action.MANAGE),
            _perm("View Own Progress", "progress", Action.READ),
            _perm("Book Sessions", "sessions", Action.CREATE),
        ],
    },
    TenantType.ENTERPRISE: {
        "role_types": [
            _role("Wellness Administrator", Code.GYM_OWNER, Level.OWNER, Category.SYSTEM),
            _role("Wellness Coach", Code.COACH, Level.PREMIUM, Category.COACH),
            _role("Employee", Code.CLIENT, Level.BASIC, Category.CLIENT),
        ],
        "permissions": [
            _perm("Manage Employee Wellness", "employee_wellness", Action.MANAGE),
            _perm("Create Health Challenges", "challenges", Action.MANAGE),
            _perm("View Wellness Analytics", "analytics", Action.READ),
            _perm("Manage Team Competitions", "competitions", Action.MANAGE),
            _perm("Participate in Challenges", "challenges", Action.CREATE),
            _perm("View Team Stats", "team_stats", Action.READ),
            _perm("Track Personal Wellness", "personal_wellness", Action.CREATE),
        ],
    },
}


def permissions_for_level(level: str, permissions: List[Permission]) -> List[Permission]:
    """Filtra as permissões concedidas a um papel conforme o nível."""
    if level == Level.OWNER.value:
        return list(permissions)
    if level == Level.MANAGER.value:
        return [
            p for p in permissions
            if p.action != Action.DELETE.value and p.resource != "analytics"
        ]
    if level == Level.PREMIUM.value:
        return [
            p for p in permissions
            if p.action in (Action.READ.value, Action.CREATE.value)
            or (p.action == Action.UPDATE.value and p.resource != "users")
        ]
    return [p for p in permissions if p.action in (Action.READ.value, Action.CREATE.value)]


async def _ensure_role_types(db: AsyncSession, configs: List[dict]) -> List[RoleType]:
    role_types = []
    for data in configs:
        code = data["code"].value
        role_type = await db.scalar(select(RoleType).where(RoleType.code == code))
        if role_type is None:
            role_type = RoleType(
                name=data["name"],
                code=code,
                level=data["level"].value,
                category=data["category"].value,
            )
            db.add(role_type)
        role_types.append(role_type)
    await db.flush()
    return role_types


async def _ensure_permissions(db: AsyncSession, configs: List[dict]) -> List[Permission]:
    permissions = []
    for data in configs:
        action = data["action"].value
        permission = await db.scalar(
            select(Permission).where(
                Permission.resource == data["resource"],
                Permission.action == action,
            )
        )
        if permission is None:
            permission = Permission(name=data["name"], resource=data["resource"], action=action)
            db.add(permission)
        permissions.append(permission)
    await db.flush()
    return permissions


async def seed_tenant_data(engine: AsyncEngine, tenant_type: TenantType) -> int:
    """Cria role types, permissões e papéis padrão no schema do engine.

    Args:
        engine: Engine com search_path apontando para o schema do tenant
        tenant_type: Tipo do tenant, seleciona o conjunto de papéis

    Returns:
        Quantidade de papéis criados nesta execução
    """
    config = TENANT_ROLE_CONFIGS.get(TenantType(tenant_type))
    if config is None:
        raise ValueError(f"Tipo de tenant sem configuração de seed: {tenant_type}")

    created = 0
    async with AsyncSession(engine, expire_on_commit=False) as db:
        async with db.begin():
            role_types = await _ensure_role_types(db, config["role_types"])
            permissions = await _ensure_permissions(db, config["permissions"])

            for role_type in role_types:
                existing = await db.scalar(select(Role).where(Role.role_type_id == role_type.id))
                if existing is not None:
                    continue
                db.add(
                    Role(
                        name=role_type.name,
                        description=f"Default {role_type.name} role for {TenantType(tenant_type).value}",
                        role_type_id=role_type.id,
                        permissions=permissions_for_level(role_type.level, permissions),
                    )
                )
                created += 1

    logger.info("tenant_seeded", tenant_type=TenantType(tenant_type).value, roles_created=created)
    return created

"""Rotas com escopo de tenant: consultas rodam no schema do tenant resolvido."""

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.dependencies import get_current_tenant, get_tenant_db
from app.models.access import Role, RoleType
from app.schemas.tenant_schema import RoleOut, RoleTypeOut, TenantOut

router = APIRouter(tags=["Tenant"])


@router.get("/", response_model=TenantOut)
async def tenant_atual(tenant: TenantOut = Depends(get_current_tenant)):
    return tenant


@router.get("/role-types", response_model=List[RoleTypeOut])
async def listar_role_types(db: AsyncSession = Depends(get_tenant_db)):
    rows = await db.scalars(select(RoleType).where(RoleType.is_active.is_(True)).order_by(RoleType.name))
    return list(rows)


@router.get("/roles", response_model=List[RoleOut])
async def listar_roles(db: AsyncSession = Depends(get_tenant_db)):
    rows = await db.scalars(select(Role).order_by(Role.name))
    return list(rows)

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from app.core.auth_dependencies import TokenPayload, require_platform_admin
from app.core.dependencies import get_registry
from app.schemas.tenant_schema import (
    MigrationStatusOut,
    TenantCreate,
    TenantDetailOut,
    TenantOut,
    TenantPage,
    TenantUpdate,
)
from app.services.tenant_registry import TenantRegistry

router = APIRouter(tags=["Tenants"])


@router.post("/", response_model=TenantOut, status_code=status.HTTP_201_CREATED)
async def criar_tenant(
    tenant: TenantCreate,
    registry: TenantRegistry = Depends(get_registry),
    _: TokenPayload = Depends(require_platform_admin),
):
    return await registry.create_tenant(tenant)


@router.get("/", response_model=TenantPage)
async def listar_tenants(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    registry: TenantRegistry = Depends(get_registry),
):
    items, total = await registry.list_tenants(page=page, limit=limit)
    return TenantPage(items=items, total=total, page=page, limit=limit)


@router.get("/by-domain/{domain}", response_model=TenantOut)
async def buscar_tenant_por_dominio(domain: str, registry: TenantRegistry = Depends(get_registry)):
    return await registry.get_tenant_by_domain(domain)


@router.get("/{tenant_id}", response_model=TenantDetailOut)
async def buscar_tenant(tenant_id: UUID, registry: TenantRegistry = Depends(get_registry)):
    return await registry.get_tenant(tenant_id)


@router.put("/{tenant_id}", response_model=TenantOut)
async def atualizar_tenant(
    tenant_id: UUID,
    tenant_update: TenantUpdate,
    registry: TenantRegistry = Depends(get_registry),
    _: TokenPayload = Depends(require_platform_admin),
):
    # domain e schema_name não fazem parte do TenantUpdate
    return await registry.update_tenant(tenant_id, tenant_update)


@router.delete("/{tenant_id}", status_code=status.HTTP_204_NO_CONTENT)
async def deletar_tenant(
    tenant_id: UUID,
    registry: TenantRegistry = Depends(get_registry),
    _: TokenPayload = Depends(require_platform_admin),
):
    await registry.delete_tenant(tenant_id)
    return None


@router.post("/{tenant_id}/provision", response_model=TenantOut)
async def provisionar_tenant(
    tenant_id: UUID,
    registry: TenantRegistry = Depends(get_registry),
    _: TokenPayload = Depends(require_platform_admin),
):
    return await registry.provision_tenant(tenant_id)


@router.get("/{tenant_id}/migrations", response_model=MigrationStatusOut)
async def status_migrations(
    tenant_id: UUID,
    registry: TenantRegistry = Depends(get_registry),
    _: TokenPayload = Depends(require_platform_admin),
):
    return await registry.migration_status_for_tenant(tenant_id)

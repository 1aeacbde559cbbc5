from typing import AsyncIterator, Optional

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.schemas.tenant_schema import TenantOut
from app.services.tenant_registry import TenantRegistry
from shared import bind_tenant_context
from shared.logging import TENANT_DOMAIN_HEADER
from shared.tenancy import TenantConnectionCache


def get_registry(request: Request) -> TenantRegistry:
    return request.app.state.registry


def get_connection_cache(registry: TenantRegistry = Depends(get_registry)) -> TenantConnectionCache:
    return registry.connections


def extract_tenant_domain(request: Request) -> Optional[str]:
    """Header ``X-Tenant-Domain``, depois ``?tenant=``, depois subdomínio do host."""
    domain = request.headers.get(TENANT_DOMAIN_HEADER) or request.query_params.get("tenant")
    if domain:
        return domain.strip()

    host = (request.headers.get("host") or "").split(":", 1)[0]
    labels = [label for label in host.split(".") if label]
    if len(labels) >= 3:
        return labels[0]
    return None


async def get_current_tenant(
    request: Request,
    registry: TenantRegistry = Depends(get_registry),
) -> TenantOut:
    domain = extract_tenant_domain(request)
    if not domain:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Tenant não informado. Use o header X-Tenant-Domain.",
        )
    tenant = await registry.resolve_tenant(domain)
    bind_tenant_context(tenant_domain=tenant.domain, schema=tenant.schema_name)
    request.state.tenant = tenant
    return tenant


async def get_tenant_db(
    tenant: TenantOut = Depends(get_current_tenant),
    connections: TenantConnectionCache = Depends(get_connection_cache),
) -> AsyncIterator[AsyncSession]:
    """Sessão ligada a uma conexão do pool do schema do tenant."""
    async with connections.connect(tenant.schema_name) as conn:
        async with AsyncSession(bind=conn, expire_on_commit=False) as db:
            yield db

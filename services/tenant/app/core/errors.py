"""Tradução dos erros de tenancy para respostas HTTP."""

from typing import Dict, Tuple, Type

import structlog
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from shared.tenancy import (
    DomainAlreadyExists,
    InvalidIdentifier,
    MigrationFailed,
    NoMigrationsApplied,
    PoolClosed,
    PoolExhausted,
    SchemaNameUnavailable,
    SchemaOperationFailed,
    TenancyError,
    TenantInactive,
    TenantNotFound,
    TenantNotReady,
)

logger = structlog.get_logger(__name__)

POOL_RETRY_AFTER_SECONDS = 1

_ERROR_RESPONSES: Dict[Type[TenancyError], Tuple[int, str]] = {
    InvalidIdentifier: (status.HTTP_400_BAD_REQUEST, "Identificador inválido"),
    TenantNotFound: (status.HTTP_404_NOT_FOUND, "Tenant não encontrado"),
    DomainAlreadyExists: (status.HTTP_409_CONFLICT, "Domínio já cadastrado"),
    SchemaNameUnavailable: (status.HTTP_409_CONFLICT, "Não foi possível reservar um schema para o domínio"),
    TenantInactive: (status.HTTP_403_FORBIDDEN, "Tenant inativo"),
    TenantNotReady: (status.HTTP_503_SERVICE_UNAVAILABLE, "Tenant not ready"),
    SchemaOperationFailed: (status.HTTP_500_INTERNAL_SERVER_ERROR, "Falha na operação de schema"),
    MigrationFailed: (status.HTTP_500_INTERNAL_SERVER_ERROR, "Falha ao aplicar migration"),
    NoMigrationsApplied: (status.HTTP_409_CONFLICT, "Nenhuma migration aplicada"),
    PoolExhausted: (status.HTTP_503_SERVICE_UNAVAILABLE, "Pool de conexões esgotado, tente novamente"),
    PoolClosed: (status.HTTP_503_SERVICE_UNAVAILABLE, "Pool do tenant foi fechado, tente novamente"),
}


def _lookup(exc: TenancyError) -> Tuple[int, str]:
    for exc_type in type(exc).__mro__:
        if exc_type in _ERROR_RESPONSES:
            return _ERROR_RESPONSES[exc_type]
    return status.HTTP_500_INTERNAL_SERVER_ERROR, "Erro de tenancy"


def _details(exc: TenancyError) -> dict:
    if isinstance(exc, InvalidIdentifier):
        return {"reason": exc.reason}
    if isinstance(exc, MigrationFailed):
        return {"script": exc.script_name}
    if isinstance(exc, SchemaOperationFailed):
        return {"schema": exc.schema_name, "operation": exc.operation}
    if isinstance(exc, TenantNotReady):
        return {"provisioning_status": exc.provisioning_status}
    if isinstance(exc, TenantInactive):
        return {"status": exc.status}
    return {}


async def tenancy_error_handler(request: Request, exc: TenancyError) -> JSONResponse:
    status_code, message = _lookup(exc)
    if status_code >= 500 and not isinstance(exc, (PoolClosed, PoolExhausted, TenantNotReady)):
        logger.error("tenancy_error", error_type=type(exc).__name__, error=str(exc))
    else:
        logger.info("tenancy_error", error_type=type(exc).__name__, status_code=status_code)

    content = {"detail": message, "error": type(exc).__name__}
    content.update(_details(exc))
    headers = None
    if isinstance(exc, (PoolClosed, PoolExhausted)):
        headers = {"Retry-After": str(POOL_RETRY_AFTER_SECONDS)}
    return JSONResponse(status_code=status_code, content=content, headers=headers)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(TenancyError, tenancy_error_handler)

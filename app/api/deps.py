"""
Dependencias reutilizables para routers (FastAPI Depends).

- Autenticación: ejecuta el guard y entrega la identidad como valor explícito.
- Mantener esta capa delgada: sin lógica de negocio pesada.
"""
from fastapi import Depends, Request, Response

from app.domain.auth.schemas import GuardResult, Identity
from app.services.auth_validator import authenticate


async def get_guard_result(request: Request, response: Response) -> GuardResult:
    """Resultado completo del guard (identidad + par rotado si lo hubo)."""
    return await authenticate(request, response)


async def get_current_user(result: GuardResult = Depends(get_guard_result)) -> Identity:
    return result.identity

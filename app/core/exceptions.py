"""
Taxonomía de errores de autenticación y handlers globales para respuestas consistentes.
"""
import logging
from enum import Enum
from typing import Any, Dict

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.services.transport import replay_rotation


class AuthFailure(str, Enum):
    """Códigos estables de rechazo del guard (contrato con clientes).

    El access token vencido no tiene código: es `TokenExpired`, una transición
    interna que el guard resuelve rotando y nunca llega al cliente.
    """

    MISSING_ACCESS_TOKEN = "missing_access_token"
    INVALID_TOKEN = "invalid_token"
    MISSING_REFRESH_TOKEN = "missing_refresh_token"
    REFRESH_EXPIRED_OR_UNKNOWN = "refresh_expired_or_unknown"


AUTH_MESSAGES: Dict[AuthFailure, str] = {
    AuthFailure.MISSING_ACCESS_TOKEN: "Access token missing",
    AuthFailure.INVALID_TOKEN: "Invalid token",
    AuthFailure.MISSING_REFRESH_TOKEN: "Refresh token missing",
    AuthFailure.REFRESH_EXPIRED_OR_UNKNOWN: "Refresh token expired, please login again",
}


class AuthError(Exception):
    """Rechazo de autenticación con un único motivo estable."""

    def __init__(self, reason: AuthFailure, message: str | None = None) -> None:
        self.reason = reason
        self.message = message or AUTH_MESSAGES[reason]
        super().__init__(self.message)


class TokenInvalid(Exception):
    """Firma rota, payload malformado o tipo de token inesperado."""


class TokenExpired(Exception):
    """Token bien formado y firmado, pero con `exp` vencido."""


class RefreshExpiredOrUnknown(AuthError):
    def __init__(self, message: str | None = None) -> None:
        super().__init__(AuthFailure.REFRESH_EXPIRED_OR_UNKNOWN, message)


class StoreUnavailable(Exception):
    """Falla de infraestructura (Mongo caído / timeout). No es un fallo de auth."""


def _req_id(request: Request) -> str | None:
    return getattr(getattr(request, "state", object()), "request_id", None)


def _respond(request: Request, status_code: int, body: Dict[str, Any], headers: Dict[str, str] | None = None) -> JSONResponse:
    rid = _req_id(request)
    if rid:
        body["request_id"] = rid
    resp = JSONResponse(status_code=status_code, content=body, headers=headers)
    # Una rotación ya confirmada viaja también en las respuestas de error
    replay_rotation(request, resp)
    return resp


def register_exception_handlers(app: FastAPI) -> None:
    log = logging.getLogger("expenses.errors")

    @app.exception_handler(AuthError)
    async def _auth_exc_handler(request: Request, exc: AuthError):
        body: Dict[str, Any] = {"message": exc.message, "code": exc.reason.value}
        return _respond(request, 401, body, headers={"WWW-Authenticate": "Bearer"})

    @app.exception_handler(StoreUnavailable)
    async def _store_exc_handler(request: Request, exc: StoreUnavailable):
        log.warning("Store no disponible request_id=%s: %s", _req_id(request), exc)
        body: Dict[str, Any] = {"message": "Service temporarily unavailable", "code": "store_unavailable"}
        return _respond(request, 503, body, headers={"Retry-After": "1"})

    @app.exception_handler(StarletteHTTPException)
    async def _http_exc_handler(request: Request, exc: StarletteHTTPException):
        body: Dict[str, Any] = {"message": exc.detail or "HTTP error"}
        return _respond(request, exc.status_code, body, headers=getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def _validation_handler(request: Request, exc: RequestValidationError):
        body: Dict[str, Any] = {"message": "Validation error", "errors": jsonable_encoder(exc.errors())}
        return _respond(request, 422, body)

    @app.exception_handler(Exception)
    async def _generic_handler(request: Request, exc: Exception):
        log.exception("Unhandled error request_id=%s", _req_id(request))
        return _respond(request, 500, {"message": "Internal server error"})

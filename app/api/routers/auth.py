"""Rutas de autenticación: registro, login, refresh, logout y sesión actual."""
import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status

from app.api.deps import get_current_user, get_guard_result
from app.api.schemas.auth import (
    LoginOut,
    LoginPayload,
    LogoutOut,
    MeOut,
    RefreshOut,
    RefreshPayload,
    RegisterOut,
    RegisterPayload,
    SessionOut,
)
from app.core import rate_limit
from app.core.config import settings
from app.core.exceptions import AuthError, AuthFailure
from app.domain.auth.schemas import GuardResult, Identity
from app.repositories import refresh_token_repo as rt_repo
from app.services import auth_service, session_service, transport

router = APIRouter(prefix="/auth", tags=["Auth"])

_log = logging.getLogger("expenses.auth")


def _client_ip(request: Request) -> str:
    return request.client.host if request.client else ""


def _check_rate(request: Request, route: str) -> None:
    if not rate_limit.allow((_client_ip(request), route), limit=settings.login_rate_per_min, window_seconds=60):
        raise HTTPException(status_code=429, detail="Demasiados intentos, espera un momento")


@router.post(
    "/register",
    response_model=RegisterOut,
    status_code=status.HTTP_201_CREATED,
    summary="Registrar usuario",
)
async def register(payload: RegisterPayload, request: Request):
    _check_rate(request, "/auth/register")
    try:
        user_id = await auth_service.register_user(payload)
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return RegisterOut(id=user_id)


@router.post(
    "/login",
    response_model=LoginOut,
    summary="Login",
    description="Verifica credenciales y emite el par access/refresh por el perfil del cliente.",
)
async def login(payload: LoginPayload, request: Request, response: Response):
    _check_rate(request, "/auth/login")
    try:
        user_id, user_name = await auth_service.verify_credentials(login=payload.user_name, password=payload.password)
    except ValueError as e:
        raise HTTPException(status_code=401, detail=str(e))

    pair = await session_service.issue_pair(user_id)
    profile = transport.resolve_profile(request)
    transport.emit_credentials(response, pair, profile)
    _log.info("Login ok user_id=%s profile=%s", user_id, profile)

    out = LoginOut(message="Login successful", user_name=user_name)
    if profile == transport.HEADER:
        # Clientes nativos no tienen cookies: el par también va en el body
        out.access_token = pair.access_token
        out.refresh_token = pair.refresh_token
        out.token_type = pair.token_type
    return out


@router.post(
    "/refresh",
    response_model=RefreshOut,
    summary="Rotar refresh token",
    description="Canjea el refresh token (cookie, x-refresh-token o body) por un par nuevo.",
)
async def refresh(request: Request, response: Response, payload: RefreshPayload | None = None):
    creds = transport.extract_credentials(request)
    token = creds.refresh_token or (payload.refresh_token if payload else None)
    if not token:
        raise AuthError(AuthFailure.MISSING_REFRESH_TOKEN)

    _, pair = await session_service.rotate_pair(token)
    profile = transport.COOKIE if creds.refresh_channel == transport.COOKIE else transport.resolve_profile(request)
    transport.emit_credentials(response, pair, profile)

    out = RefreshOut()
    if profile == transport.HEADER:
        out.access_token = pair.access_token
        out.refresh_token = pair.refresh_token
        out.token_type = pair.token_type
    return out


@router.post(
    "/logout",
    response_model=LogoutOut,
    summary="Cerrar sesión",
    description="Elimina el refresh token presentado y borra las cookies de sesión.",
)
async def logout(request: Request, response: Response, payload: RefreshPayload | None = None):
    creds = transport.extract_credentials(request)
    token = creds.refresh_token or (payload.refresh_token if payload else None)
    owner = await session_service.end_session(token)
    transport.clear_credentials(response)
    if owner:
        _log.info("Logout user_id=%s", owner)
    return LogoutOut(revoked=1 if owner else 0)


@router.post(
    "/logout-all",
    response_model=LogoutOut,
    summary="Cerrar sesión en todos los dispositivos",
)
async def logout_all(response: Response, user: Identity = Depends(get_current_user)):
    n = await session_service.end_all_sessions(user.user_id)
    transport.clear_credentials(response)
    return LogoutOut(revoked=n)


@router.get("/me", response_model=MeOut, summary="Identidad del usuario autenticado")
async def me(user: Identity = Depends(get_current_user)):
    return MeOut(user_id=user.user_id)


@router.get(
    "/session",
    response_model=SessionOut,
    summary="Estado de la sesión",
    description="Identidad, si esta petición rotó credenciales y si el refresh vigente sigue vivo.",
)
async def session(request: Request, result: GuardResult = Depends(get_guard_result)):
    if result.rotated:
        refresh = result.rotated.refresh_token
    else:
        refresh = transport.extract_credentials(request).refresh_token
    return SessionOut(
        user_id=result.identity.user_id,
        rotated=result.rotation_occurred,
        channel=result.channel,
        refresh_live=await rt_repo.is_live(refresh) if refresh else False,
    )

"""
Transporte de credenciales: perfil cookie (navegador) vs perfil header (móvil / API).

Los nombres de cookies y headers son contrato con los clientes existentes;
no cambiarlos.
"""
from typing import Literal, Optional

from fastapi import Request, Response

from app.core.config import settings
from app.domain.auth.schemas import Credentials, TokenPair

Profile = Literal["cookie", "header"]

COOKIE: Profile = "cookie"
HEADER: Profile = "header"

# Cookies (perfil navegador)
ACCESS_COOKIE = "accessToken"
REFRESH_COOKIE = "refreshToken"
ROTATED_COOKIE = "newAccessToken"

# Headers de petición
AUTHORIZATION_HEADER = "authorization"
REFRESH_HEADER = "x-refresh-token"
CLIENT_TYPE_HEADER = "x-client-type"

# Headers de respuesta
ACCESS_RESPONSE_HEADER = "x-access-token"
REFRESH_RESPONSE_HEADER = "x-refresh-token"
ROTATED_HEADER = "new-access-token"

EXPOSED_HEADERS = (ACCESS_RESPONSE_HEADER, REFRESH_RESPONSE_HEADER, ROTATED_HEADER)


def resolve_profile(request: Request) -> Profile:
    """
    Elige el perfil del cliente.

    - `x-client-type: web` -> cookie; cualquier otro valor explícito -> header.
    - Sin señal explícita: heurística sobre el User-Agent (p. ej. okhttp en Android).
    """
    client_type = (request.headers.get(CLIENT_TYPE_HEADER) or "").strip().lower()
    if client_type:
        return COOKIE if client_type == "web" else HEADER
    ua = (request.headers.get("user-agent") or "").lower()
    if any(m.lower() in ua for m in settings.mobile_user_agent_markers if m):
        return HEADER
    return COOKIE


def _bearer(request: Request) -> Optional[str]:
    auth = request.headers.get(AUTHORIZATION_HEADER) or ""
    if auth.lower().startswith("bearer "):
        return auth.split(" ", 1)[1].strip() or None
    return None


def extract_credentials(request: Request) -> Credentials:
    """Lee access/refresh token. Si llegan por cookie y por header, gana la cookie."""
    cookie_access = request.cookies.get(ACCESS_COOKIE) or None
    header_access = _bearer(request)
    cookie_refresh = request.cookies.get(REFRESH_COOKIE) or None
    header_refresh = (request.headers.get(REFRESH_HEADER) or "").strip() or None

    if cookie_access:
        access, channel = cookie_access, COOKIE
    elif header_access:
        access, channel = header_access, HEADER
    else:
        access, channel = None, None

    if cookie_refresh:
        refresh, refresh_channel = cookie_refresh, COOKIE
    elif header_refresh:
        refresh, refresh_channel = header_refresh, HEADER
    else:
        refresh, refresh_channel = None, None

    return Credentials(
        access_token=access,
        refresh_token=refresh,
        channel=channel,
        refresh_channel=refresh_channel,
    )


def _set_cookie(response: Response, name: str, value: str, *, httponly: bool = True) -> None:
    response.set_cookie(
        name,
        value,
        # El access cookie debe sobrevivir a su propio `exp` para poder rotarlo
        max_age=settings.refresh_token_max_age,
        path=settings.cookie_path,
        httponly=httponly,
        samesite=settings.cookie_samesite,
        secure=settings.cookie_secure,
    )


def emit_credentials(response: Response, pair: TokenPair, profile: Profile) -> None:
    """
    Escribe el par nuevo en la respuesta.

    Perfil cookie: cookies http-only estrictas. En todos los perfiles el par
    también viaja como headers de respuesta, con la señal de rotación.
    """
    if profile == COOKIE:
        _set_cookie(response, ACCESS_COOKIE, pair.access_token)
        _set_cookie(response, REFRESH_COOKIE, pair.refresh_token)
        # Legible desde JS para que el frontend sepa que hubo rotación
        _set_cookie(response, ROTATED_COOKIE, "true", httponly=False)
    response.headers[ACCESS_RESPONSE_HEADER] = pair.access_token
    response.headers[REFRESH_RESPONSE_HEADER] = pair.refresh_token
    response.headers[ROTATED_HEADER] = "true"


def remember_rotation(request: Request, pair: TokenPair, profile: Profile) -> None:
    """
    Anota el par emitido en el estado de la petición.

    Sólo lo leen los handlers de error: si el endpoint falla después de rotar,
    la respuesta de error repite la emisión y el cliente no pierde la sesión.
    """
    request.state.rotated_credentials = (pair, profile)


def replay_rotation(request: Request, response: Response) -> None:
    rotated = getattr(request.state, "rotated_credentials", None)
    if rotated:
        emit_credentials(response, *rotated)


def clear_credentials(response: Response) -> None:
    for name in (ACCESS_COOKIE, REFRESH_COOKIE, ROTATED_COOKIE):
        response.delete_cookie(
            name,
            path=settings.cookie_path,
            secure=settings.cookie_secure,
            httponly=name != ROTATED_COOKIE,
            samesite=settings.cookie_samesite,
        )

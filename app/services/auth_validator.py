"""
Guard por petición: extrae credenciales, verifica el access token y, si venció,
rota la sesión con el refresh token antes de dejar pasar la petición.

    EXTRACT -> ACCEPT
            -> NEEDS_REFRESH -> ACCEPT (con par nuevo) | REJECT
            -> REJECT

Nunca autoriza parcialmente: o devuelve una identidad completa o lanza
`AuthError` con un único motivo. Los errores de Mongo salen como
`StoreUnavailable`, nunca como 401.
"""
import logging

from fastapi import Request, Response

from app.core.exceptions import AuthError, AuthFailure, TokenExpired, TokenInvalid
from app.domain.auth.schemas import GuardResult, Identity
from app.services import session_service, transport
from app.services.token_service import verify_access_token

_log = logging.getLogger("expenses.auth")


async def authenticate(request: Request, response: Response) -> GuardResult:
    creds = transport.extract_credentials(request)
    if not creds.access_token:
        raise AuthError(AuthFailure.MISSING_ACCESS_TOKEN)

    try:
        claims = verify_access_token(creds.access_token)
        return GuardResult(identity=Identity(user_id=claims.sub), channel=creds.channel)
    except TokenInvalid:
        # Nunca intentar refresh con un token alterado
        _log.info("Access token inválido path=%s", request.url.path)
        raise AuthError(AuthFailure.INVALID_TOKEN) from None
    except TokenExpired:
        pass

    # NEEDS_REFRESH
    if not creds.refresh_token:
        raise AuthError(AuthFailure.MISSING_REFRESH_TOKEN)

    identity, pair = await session_service.rotate_pair(creds.refresh_token)

    # Si cualquiera de los dos llegó por cookie, el navegador necesita las cookies nuevas
    profile = transport.COOKIE if creds.uses_cookies else transport.HEADER
    # El refresh viejo ya no existe; si escribir la respuesta falla, la petición falla
    transport.emit_credentials(response, pair, profile)
    transport.remember_rotation(request, pair, profile)
    return GuardResult(identity=identity, rotated=pair, channel=creds.channel)

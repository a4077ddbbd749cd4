"""
Emisión de sesiones: compone el access token (JWT) con el refresh token persistido.
"""
import logging
from typing import Optional, Tuple

from app.core.exceptions import RefreshExpiredOrUnknown
from app.domain.auth.schemas import Identity, TokenPair
from app.repositories import refresh_token_repo as rt_repo
from app.services.token_service import create_access_token

_log = logging.getLogger("expenses.auth")


async def issue_pair(user_id: str) -> TokenPair:
    """
    Par nuevo para un sujeto ya verificado (login).

    Si falla la persistencia del refresh token no se devuelve nada.
    """
    access = create_access_token(user_id=user_id)
    refresh = await rt_repo.issue(user_id)
    return TokenPair(access_token=access, refresh_token=refresh)


async def rotate_pair(refresh_token: str) -> Tuple[Identity, TokenPair]:
    """
    Canjea el refresh token y devuelve (identidad, par nuevo).

    La invalidación del refresh viejo y el alta del nuevo ocurren en una sola
    operación del store; después sólo queda firmar el access token.
    """
    user_id, new_refresh = await rt_repo.rotate(refresh_token)
    access = create_access_token(user_id=user_id)
    _log.info("Sesión rotada user_id=%s", user_id)
    return Identity(user_id=user_id), TokenPair(access_token=access, refresh_token=new_refresh)


async def end_session(refresh_token: Optional[str]) -> Optional[str]:
    """Cierra la sesión del refresh token. Devuelve el dueño o None si ya no existía."""
    if not refresh_token:
        return None
    try:
        return await rt_repo.redeem(refresh_token)
    except RefreshExpiredOrUnknown:
        return None


async def end_all_sessions(user_id: str) -> int:
    n = await rt_repo.revoke_all_for_user(user_id)
    _log.info("Logout global user_id=%s sesiones=%s", user_id, n)
    return n

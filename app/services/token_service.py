"""
Creación y verificación de JWTs de acceso (HS256).

Trabajo puro de CPU: no toca Mongo ni suspende la petición.
"""
from datetime import datetime, timedelta, timezone
from typing import Literal, Optional
from uuid import uuid4

import jwt as pyjwt
from pydantic import BaseModel, ValidationError

from app.core.config import settings
from app.core.exceptions import TokenExpired, TokenInvalid


class AccessClaims(BaseModel):
    """Estructura canónica de claims, fijada al emitir el token."""

    sub: str
    iat: int
    exp: int
    jti: str
    typ: Literal["access"] = "access"


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


def _secret() -> str:
    if not settings.jwt_secret:
        raise RuntimeError("JWT_SECRET no configurado")
    return settings.jwt_secret


def create_access_token(
    *, user_id: str, expires_delta: Optional[timedelta] = None, now: Optional[datetime] = None
) -> str:
    """
    Genera un JWT válido por `expires_delta` (por defecto ACCESS_TOKEN_EXPIRE_MINUTES).
    Claims: sub(user_id), iat, exp, jti, typ=access.
    """
    now = now or _now_utc()
    ttl = expires_delta if expires_delta is not None else timedelta(minutes=settings.access_token_expire_minutes)
    claims = AccessClaims(
        sub=str(user_id),
        iat=int(now.timestamp()),
        exp=int((now + ttl).timestamp()),
        jti=str(uuid4()),
    )
    return pyjwt.encode(claims.model_dump(), _secret(), algorithm=settings.jwt_algorithm)


def verify_access_token(token: str) -> AccessClaims:
    """
    Decodifica y valida firma/expiración. Devuelve los claims canónicos.

    - `TokenExpired`: firma correcta pero `exp` vencido.
    - `TokenInvalid`: cualquier otra cosa (firma alterada, malformado, claims ausentes).
    """
    try:
        payload = pyjwt.decode(
            token,
            key=_secret(),
            algorithms=[settings.jwt_algorithm],
            options={"require": ["sub", "iat", "exp", "jti"]},
        )
    except pyjwt.ExpiredSignatureError as e:
        raise TokenExpired(str(e)) from e
    except pyjwt.InvalidTokenError as e:
        raise TokenInvalid(str(e)) from e
    try:
        return AccessClaims.model_validate(payload)
    except ValidationError as e:
        raise TokenInvalid("claims inválidos") from e

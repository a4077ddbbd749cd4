"""
Persistencia de refresh tokens (colección `refresh_token`, Motor).

Reglas:
- Un token vive mientras exista su documento; no hay flags de "usado".
- Canjear y rotar son UNA sola operación atómica en Mongo (find_one_and_*):
  ante canjes concurrentes del mismo token sólo uno lo encuentra.
- Cualquier error de Mongo se traduce a `StoreUnavailable` (no es un 401).
"""
from __future__ import annotations

import hashlib
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Tuple

from pymongo import ReturnDocument
from pymongo.errors import PyMongoError

from app.core.config import settings
from app.core.exceptions import RefreshExpiredOrUnknown, StoreUnavailable
from app.infrastructure.db.mongo_async import get_async_db
from app.infrastructure.db.schemas.refresh_token import RefreshTokenModel

RT_COLL = "refresh_token"

_log = logging.getLogger("expenses.auth.refresh")


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


def _dt(dt: datetime) -> datetime:
    # Asegura timezone-aware en UTC
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _coll():
    return get_async_db()[RT_COLL]


def _default_ttl() -> timedelta:
    return timedelta(days=settings.refresh_token_expire_days)


def generate_refresh_token() -> str:
    # 256-bit random token in hex
    return secrets.token_hex(32)


def hash_refresh_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def build_refresh_token_doc(*, user_id: str, raw_token: str, ttl: Optional[timedelta] = None) -> Dict[str, Any]:
    """Construye documento listo para insertar (hash + expiración absoluta)."""
    now = _now_utc()
    model = RefreshTokenModel(
        user_id=str(user_id),
        token_hash=hash_refresh_token(raw_token),
        created_at=now,
        expires_at=now + (ttl if ttl is not None else _default_ttl()),
    )
    return model.model_dump()


async def issue(user_id: str, ttl: Optional[timedelta] = None) -> str:
    """Persiste un refresh token nuevo para `user_id` y devuelve el valor opaco."""
    raw = generate_refresh_token()
    doc = build_refresh_token_doc(user_id=user_id, raw_token=raw, ttl=ttl)
    try:
        await _coll().insert_one(doc)
    except PyMongoError as e:
        raise StoreUnavailable(f"insert refresh_token: {e}") from e
    return raw


async def _reap_expired(token_hash: str) -> None:
    """Borra (lazy) el documento vencido con ese hash, si existe."""
    try:
        res = await _coll().delete_one({"token_hash": token_hash, "expires_at": {"$lte": _now_utc()}})
    except PyMongoError as e:
        raise StoreUnavailable(f"delete refresh_token: {e}") from e
    if res.deleted_count:
        _log.info("Refresh token vencido eliminado al presentarse")


async def redeem(token: str) -> str:
    """
    Canjea el token: lo localiza y lo elimina en la misma operación, devolviendo su dueño.

    Si ya no existe (o el documento borrado estaba vencido) lanza
    `RefreshExpiredOrUnknown`.
    """
    if not token:
        raise RefreshExpiredOrUnknown()
    try:
        doc = await _coll().find_one_and_delete({"token_hash": hash_refresh_token(token)})
    except PyMongoError as e:
        raise StoreUnavailable(f"find_one_and_delete refresh_token: {e}") from e
    if not doc:
        raise RefreshExpiredOrUnknown()
    if _dt(doc["expires_at"]) <= _now_utc():
        raise RefreshExpiredOrUnknown()
    return str(doc["user_id"])


async def rotate(token: str, ttl: Optional[timedelta] = None) -> Tuple[str, str]:
    """
    Reemplaza atómicamente el token vigente por uno nuevo del mismo usuario.

    Invalidar el viejo y persistir el nuevo es un único `find_one_and_update`
    sobre el mismo documento, así que no existe ventana en la que el usuario
    quede sin ninguno de los dos. Devuelve (user_id, nuevo_token).
    """
    if not token:
        raise RefreshExpiredOrUnknown()
    old_hash = hash_refresh_token(token)
    new_raw = generate_refresh_token()
    now = _now_utc()
    try:
        prev = await _coll().find_one_and_update(
            {"token_hash": old_hash, "expires_at": {"$gt": now}},
            {
                "$set": {
                    "token_hash": hash_refresh_token(new_raw),
                    "created_at": now,
                    "expires_at": now + (ttl if ttl is not None else _default_ttl()),
                }
            },
            return_document=ReturnDocument.BEFORE,
        )
    except PyMongoError as e:
        raise StoreUnavailable(f"find_one_and_update refresh_token: {e}") from e
    if not prev:
        await _reap_expired(old_hash)
        raise RefreshExpiredOrUnknown()
    return str(prev["user_id"]), new_raw


async def is_live(token: str) -> bool:
    """True si existe un documento no vencido para ese token."""
    if not token:
        return False
    try:
        n = await _coll().count_documents(
            {"token_hash": hash_refresh_token(token), "expires_at": {"$gt": _now_utc()}}, limit=1
        )
    except PyMongoError as e:
        raise StoreUnavailable(f"count refresh_token: {e}") from e
    return n > 0


async def revoke_all_for_user(user_id: str) -> int:
    """Elimina todos los refresh tokens del usuario (logout en todos los dispositivos)."""
    try:
        res = await _coll().delete_many({"user_id": str(user_id)})
    except PyMongoError as e:
        raise StoreUnavailable(f"delete_many refresh_token: {e}") from e
    return int(res.deleted_count)

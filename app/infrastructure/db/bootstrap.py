"""
Bootstrap de la base Mongo: define y aplica validadores (JSON Schema) e índices.
Se ejecuta al inicio de la app para asegurar colecciones mínimas y consistencia.
No tumba la app si algo falla; deja warnings en los casos no críticos.
"""
from __future__ import annotations

from typing import Any, Dict, List
import logging
from pymongo.errors import PyMongoError
from app.infrastructure.db.mongo_async import get_async_db

_log = logging.getLogger("expenses.mongo.bootstrap")


async def _collmod_or_create(name: str, validator: Dict[str, Any] | None) -> None:
    db = get_async_db()
    try:
        if name not in await db.list_collection_names():
            if validator:
                await db.create_collection(name, validator={"$jsonSchema": validator})
            else:
                await db.create_collection(name)
        elif validator:
            await db.command({
                "collMod": name,
                "validator": {"$jsonSchema": validator},
                "validationLevel": "moderate",
            })
    except PyMongoError as e:
        # No aborta el arranque; solo deja sin validator estricto.
        _log.warning("No se pudo aplicar validator en '%s': %s", name, e)


async def _ensure_indexes(name: str, indexes: List[Dict[str, Any]]) -> None:
    coll = get_async_db()[name]
    for ix in indexes:
        spec = dict(ix)
        keys = spec.pop("keys")
        try:
            await coll.create_index(keys, **spec)
        except PyMongoError as e:
            # Ignora fallas de índice (e.g., ya existe con otras opciones o datos no únicos previos)
            _log.warning("No se pudo crear índice en '%s' (%s): %s", name, keys, e)


async def ensure_collections() -> None:
    """
    Garantiza colecciones, validadores e índices mínimos.
    """
    user_validator = {
        "bsonType": "object",
        "required": ["email", "user_name", "password_hash", "created_at", "updated_at"],
        "properties": {
            "email": {"bsonType": "string", "minLength": 3, "description": "lowercase"},
            "user_name": {"bsonType": "string", "minLength": 3},
            "password_hash": {"bsonType": "string"},
            "created_at": {"bsonType": "date"},
            "updated_at": {"bsonType": "date"},
        },
        "additionalProperties": True,
    }
    await _collmod_or_create("user", user_validator)
    await _ensure_indexes(
        "user",
        [
            {"keys": [("email", 1)], "unique": True, "name": "uniq_email"},
            {"keys": [("user_name", 1)], "unique": True, "name": "uniq_user_name"},
        ],
    )

    refresh_token_validator = {
        "bsonType": "object",
        "required": ["user_id", "token_hash", "created_at", "expires_at"],
        "properties": {
            "user_id": {"bsonType": "string"},
            "token_hash": {"bsonType": "string"},
            "created_at": {"bsonType": "date"},
            "expires_at": {"bsonType": "date"},
        },
        "additionalProperties": True,
    }
    await _collmod_or_create("refresh_token", refresh_token_validator)
    await _ensure_indexes(
        "refresh_token",
        [
            {"keys": [("token_hash", 1)], "unique": True, "name": "uniq_token_hash"},
            {"keys": [("user_id", 1)], "name": "ix_user"},
            # Mongo borra en segundo plano los que nadie vuelve a presentar
            {"keys": [("expires_at", 1)], "expireAfterSeconds": 0, "name": "ttl_expires_at"},
        ],
    )
    _log.info("Colecciones e índices verificados")

"""Persistencia de usuarios (colección `user`) para el proveedor de identidad local."""
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pymongo.errors import DuplicateKeyError, PyMongoError

from app.core.exceptions import StoreUnavailable
from app.infrastructure.db.mongo_async import get_async_db

USER_COLL = "user"


def _coll():
    return get_async_db()[USER_COLL]


async def find_user_by_login(login: str) -> Optional[Dict[str, Any]]:
    """Busca por email o por user_name (el login acepta ambos)."""
    value = login.strip()
    try:
        return await _coll().find_one({"$or": [{"email": value.lower()}, {"user_name": value}]})
    except PyMongoError as e:
        raise StoreUnavailable(f"find user: {e}") from e


async def insert_user(doc: Dict[str, Any]) -> str:
    """Inserta usuario y devuelve id (str). Email/user_name duplicados -> ValueError."""
    data = dict(doc)
    now = datetime.now(timezone.utc)
    data.setdefault("created_at", now)
    data["updated_at"] = now
    try:
        res = await _coll().insert_one(data)
    except DuplicateKeyError:
        raise ValueError("El email o el user_name ya están registrados")
    except PyMongoError as e:
        raise StoreUnavailable(f"insert user: {e}") from e
    return str(res.inserted_id)

"""
Proveedor de identidad local: registro y verificación de credenciales.

Sólo entrega un `user_id` verificado; la emisión y rotación de tokens vive en
`session_service`.
"""
from typing import Optional

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError
from argon2.low_level import Type

from app.api.schemas.auth import RegisterPayload
from app.repositories import user_repo


ph = PasswordHasher(time_cost=2, memory_cost=51200, parallelism=2, hash_len=32, salt_len=16, type=Type.ID)


def hash_password(password: str) -> str:
    return ph.hash(password)


def verify_password(password: str, password_hash: Optional[str]) -> bool:
    if not password_hash:
        return False
    try:
        return ph.verify(password_hash, password)
    except (VerificationError, InvalidHashError):
        return False


async def register_user(payload: RegisterPayload) -> str:
    """Crea el usuario con `password_hash` argon2id y devuelve su id."""
    for login in (payload.email, payload.user_name):
        if await user_repo.find_user_by_login(login):
            raise ValueError("El email o el user_name ya están registrados")
    return await user_repo.insert_user(
        {
            "email": payload.email,
            "user_name": payload.user_name,
            "password_hash": hash_password(payload.password),
        }
    )


async def verify_credentials(*, login: str, password: str) -> tuple[str, str]:
    """
    Devuelve (user_id, user_name) si las credenciales son válidas.

    Mismo mensaje para usuario inexistente y password incorrecto.
    """
    u = await user_repo.find_user_by_login(login)
    if not u or not verify_password(password, u.get("password_hash")):
        raise ValueError("Credenciales inválidas")
    return str(u["_id"]), u.get("user_name") or ""

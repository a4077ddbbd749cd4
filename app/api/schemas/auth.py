"""
Esquemas Pydantic para operaciones de autenticación.

- Mantiene las validaciones y normalizaciones (p. ej. email en minúsculas).
- Modelos pensados para separar la capa API de la lógica de negocio.
"""

from typing import Optional
from pydantic import BaseModel, EmailStr, Field, field_validator


class RegisterPayload(BaseModel):
    email: EmailStr
    user_name: str = Field(min_length=3, max_length=50)
    password: str = Field(min_length=8, max_length=256)

    @field_validator("email")
    @classmethod
    def _lower_email(cls, v: EmailStr) -> str:
        return str(v).lower()

    @field_validator("user_name")
    @classmethod
    def _strip_user_name(cls, v: str) -> str:
        return v.strip()


class LoginPayload(BaseModel):
    """`user_name` acepta el nombre de usuario o el email."""

    user_name: str
    password: str


class RefreshPayload(BaseModel):
    refresh_token: Optional[str] = None


# === Response models ===

class RegisterOut(BaseModel):
    message: str = "ok"
    id: str


class LoginOut(BaseModel):
    message: str
    user_name: str
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    token_type: Optional[str] = None


class RefreshOut(BaseModel):
    message: str = "ok"
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    token_type: Optional[str] = None


class MeOut(BaseModel):
    user_id: str


class SessionOut(BaseModel):
    user_id: str
    rotated: bool
    channel: Optional[str] = None
    refresh_live: bool


class LogoutOut(BaseModel):
    message: str = "ok"
    revoked: int = 0

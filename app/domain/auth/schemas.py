# app/domain/auth/schemas.py
from typing import Literal, Optional
from pydantic import BaseModel


class Identity(BaseModel):
    """Sujeto autenticado que recibe cada handler protegido."""

    user_id: str


class TokenPair(BaseModel):
    access_token: str
    refresh_token: str
    token_type: Literal["bearer"] = "bearer"


class Credentials(BaseModel):
    """Credenciales tal como llegaron en la petición."""

    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    # Canal del access token: "cookie" | "header" | None si no llegó
    channel: Optional[Literal["cookie", "header"]] = None
    refresh_channel: Optional[Literal["cookie", "header"]] = None

    @property
    def uses_cookies(self) -> bool:
        """True si alguno de los dos tokens llegó por cookie."""
        return "cookie" in (self.channel, self.refresh_channel)


class GuardResult(BaseModel):
    identity: Identity
    rotated: Optional[TokenPair] = None
    channel: Optional[Literal["cookie", "header"]] = None

    @property
    def rotation_occurred(self) -> bool:
        return self.rotated is not None

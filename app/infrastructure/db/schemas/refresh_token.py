"""
Modelo Pydantic para documentos de la colección `refresh_token`.

No hay bandera de "usado"/"revocado": un refresh token vive mientras exista su
documento. Rotar reemplaza el hash en el mismo documento; cerrar sesión o
presentarlo vencido lo elimina.
"""
from datetime import datetime
from pydantic import BaseModel


class RefreshTokenModel(BaseModel):
    user_id: str  # ObjectId en string
    token_hash: str  # sha256 del token opaco entregado al cliente
    created_at: datetime
    expires_at: datetime

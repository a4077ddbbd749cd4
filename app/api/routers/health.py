"""Health (sin auth), salidas tipadas y estables."""
from fastapi import APIRouter, Response, status

from app.api.schemas.health import PingOut, HealthOut
from app.infrastructure.db.mongo_async import ping as mongo_ping


router = APIRouter(tags=["Health"])  # no prefix to keep paths stable


@router.get("/ping", response_model=PingOut, summary="Ping básico")
async def ping() -> PingOut:
    return PingOut(message="pong")


@router.get("/health", response_model=HealthOut, summary="Salud básica (incluye Mongo)")
async def health(response: Response) -> HealthOut:
    mongo_ok = await mongo_ping()
    if not mongo_ok:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return HealthOut(ok=mongo_ok, mongo=mongo_ok)

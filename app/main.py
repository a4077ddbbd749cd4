"""Entrada principal de la app FastAPI (configura middlewares, excepciones y routers)."""
from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from app.core.config import settings
from app.infrastructure.db.mongo_async import ping, close_async_client
from app.infrastructure.db.bootstrap import ensure_collections
from app.api.router import api_router
from app.core.logging import setup_logging
from app.core.middleware import add_middlewares
from app.core.exceptions import register_exception_handlers

_log = logging.getLogger("expenses.startup")

setup_logging(settings.log_level)

if not settings.jwt_secret:
    _log.warning("JWT_SECRET no configurado; login y rutas protegidas fallarán")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Garantiza colecciones/índices/validadores mínimos si hay conexión
    try:
        if await ping():
            await ensure_collections()
        else:
            _log.warning("Mongo no listo; omitiendo ensure_collections()")
    except Exception as e:
        # No impedir el arranque si fallan validadores/índices
        _log.warning("ensure_collections() falló: %s", e)
    yield
    close_async_client()


app = FastAPI(title=settings.app_name, lifespan=lifespan)

add_middlewares(app)
register_exception_handlers(app)

# Monta routers bajo el prefijo configurado
app.include_router(api_router, prefix=settings.api_prefix_normalized)

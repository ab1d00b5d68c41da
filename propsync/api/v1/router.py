"""
Router principal de la API v1.
Agrupa los endpoints del importador y el trigger externo.
"""
from fastapi import APIRouter

from propsync.api.v1.endpoints import cron, importer


# Router principal de la API v1
api_router = APIRouter(prefix="/v1")

api_router.include_router(importer.router)
api_router.include_router(cron.router)

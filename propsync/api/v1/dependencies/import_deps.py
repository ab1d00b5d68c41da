"""
Dependencias para inyeccion del scheduler del importador y la configuracion.
"""
from fastapi import Request

from propsync.application.services.import_scheduler import ImportScheduler
from propsync.core.config import Settings, settings
from propsync.shared.exceptions.base import AppException


def get_import_scheduler(request: Request) -> ImportScheduler:
    """
    Dependencia para obtener el scheduler creado en el startup.

    Returns:
        ImportScheduler: Instancia unica guardada en app.state

    Raises:
        AppException: 503 si el importador no se inicializo
    """
    scheduler = getattr(request.app.state, "import_scheduler", None)
    if scheduler is None:
        raise AppException(
            message="Scheduler not initialized",
            status_code=503,
            error_code="SCHEDULER_NOT_INITIALIZED",
        )
    return scheduler


def get_settings() -> Settings:
    """Dependencia para la configuracion (sobreescribible en tests)."""
    return settings

"""
Manejadores de eventos de inicio y cierre de la aplicacion.
"""
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable

from fastapi import FastAPI
from loguru import logger

from propsync.application.services.import_scheduler import ImportScheduler
from propsync.application.use_cases.sync_orchestrator import build_orchestrator
from propsync.core.config import settings


def startup_handler(app: FastAPI) -> Callable:
    """
    Manejador de eventos de inicio de la aplicacion.

    Args:
        app: Instancia de FastAPI

    Returns:
        Callable: Funcion asincrona de inicio
    """
    async def startup() -> None:
        """Construye el pipeline de importacion y arranca el scheduler."""
        try:
            logger.info(f"Iniciando {settings.APP_NAME} v{settings.APP_VERSION}")
            logger.info(f"Entorno: {settings.ENVIRONMENT}")

            # Validar configuracion critica
            _validate_config()

            # Configurar logging adicional
            logger.add(
                settings.LOG_FILE,
                rotation="500 MB",
                retention="10 days",
                level=settings.LOG_LEVEL
            )

            scheduler = ImportScheduler(build_orchestrator(settings))
            app.state.import_scheduler = scheduler

            if settings.SCHEDULER_ENABLED:
                scheduler.start()
            else:
                logger.info("[SCHEDULER] Scheduler deshabilitado (SCHEDULER_ENABLED=false)")

            logger.success("Aplicacion iniciada correctamente")

            _print_available_urls()

        except Exception as e:
            logger.error(f"Error durante startup: {e}")
            logger.exception("Detalle del error:")
            raise

    return startup


def _validate_config() -> None:
    """Valida que la configuracion critica este presente."""
    warnings = []

    if not settings.WORDPRESS_PASSWORD:
        warnings.append("WORDPRESS_PASSWORD no configurada - las escrituras en WordPress fallaran")

    if not settings.CRON_SECRET:
        warnings.append("CRON_SECRET no configurado - el trigger /cron/import queda deshabilitado")

    for warning in warnings:
        logger.warning(f"CONFIG: {warning}")


def _print_available_urls() -> None:
    """Imprime las URLs disponibles de la aplicacion."""
    if settings.HOST == "0.0.0.0":
        access_host = "localhost"
    else:
        access_host = settings.HOST

    base_url = f"http://{access_host}:{settings.PORT}"

    logger.opt(colors=True).info("<bold><green>" + "=" * 80 + "</green></bold>")
    logger.opt(colors=True).info("<bold><green>URLS DISPONIBLES:</green></bold>")
    logger.opt(colors=True).info("<bold><green>" + "=" * 80 + "</green></bold>")
    logger.opt(colors=True).info(f"<cyan>  Swagger UI:  {base_url}/docs</cyan>")
    logger.opt(colors=True).info(f"<cyan>  Estado:      {base_url}/api/v1/import/status</cyan>")
    logger.opt(colors=True).info(f"<cyan>  Health:      {base_url}/health</cyan>")
    logger.opt(colors=True).info("<bold><green>" + "=" * 80 + "</green></bold>")


def shutdown_handler(app: FastAPI) -> Callable:
    """
    Manejador de eventos de cierre de la aplicacion.

    Args:
        app: Instancia de FastAPI

    Returns:
        Callable: Funcion asincrona de cierre
    """
    async def shutdown() -> None:
        """Detiene el scheduler. Una corrida en curso no se cancela."""
        logger.info("Cerrando aplicacion...")

        scheduler = getattr(app.state, "import_scheduler", None)
        if scheduler is not None:
            if scheduler.orchestrator.is_running:
                logger.warning("[SCHEDULER] Hay una importacion en curso al cerrar la aplicacion")
            scheduler.stop()

        logger.success("Aplicacion cerrada correctamente")

    return shutdown


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Envuelve startup/shutdown en el ciclo de vida de la aplicacion."""
    await startup_handler(app)()
    try:
        yield
    finally:
        await shutdown_handler(app)()

"""
Trigger protegido para schedulers externos (cron de la plataforma de hosting).

A diferencia de POST /import/run, la corrida es sincronica: la respuesta
llega con el resumen final (importados, actualizados, errores, archivados).
"""
import hmac
from typing import Optional

from fastapi import APIRouter, Depends, Header, status
from fastapi.responses import JSONResponse
from loguru import logger

from propsync.api.v1.dependencies.import_deps import get_import_scheduler, get_settings
from propsync.application.dto.import_dto import (
    CronImportResponseDTO,
    ImportStatusDTO,
    ImportSummaryDTO,
)
from propsync.application.services.import_scheduler import ImportScheduler
from propsync.core.config import Settings
from propsync.shared.exceptions.auth import UnauthorizedException
from propsync.shared.exceptions.sync import ConcurrencyError
from propsync.shared.utils.datetime_utils import DateTimeUtils


router = APIRouter(prefix="/cron", tags=["Cron"])


def verify_cron_secret(
    authorization: Optional[str] = Header(default=None),
    config: Settings = Depends(get_settings),
) -> None:
    """
    Valida `Authorization: Bearer <CRON_SECRET>`.

    Sin CRON_SECRET configurado el trigger queda deshabilitado.

    Raises:
        UnauthorizedException: Token ausente, invalido o trigger deshabilitado
    """
    secret = config.CRON_SECRET
    if not secret:
        logger.warning("[CRON] Trigger rechazado: CRON_SECRET no configurado")
        raise UnauthorizedException("Cron trigger disabled: CRON_SECRET not configured")

    expected = f"Bearer {secret}"
    if not authorization or not hmac.compare_digest(authorization.encode(), expected.encode()):
        logger.warning("[CRON] Trigger rechazado: token invalido")
        raise UnauthorizedException("Invalid cron secret")


def _response(status_code: int, body: CronImportResponseDTO) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=body.model_dump(by_alias=True, mode="json"))


@router.api_route(
    "/import",
    methods=["GET", "POST"],
    response_model=CronImportResponseDTO,
    dependencies=[Depends(verify_cron_secret)],
    summary="Importacion completa sincronica (trigger externo)",
)
async def cron_import(
    scheduler: ImportScheduler = Depends(get_import_scheduler),
):
    """
    Ejecuta la misma corrida que el disparo manual y espera a que termine.

    Returns:
        200 con el resumen, 409 si ya hay una corrida, 500 si la corrida aborto
    """
    logger.info(f"[CRON] Import triggered at {DateTimeUtils.now_utc().isoformat()}")

    try:
        summary = await scheduler.run_and_wait()
    except ConcurrencyError as e:
        return _response(
            status.HTTP_409_CONFLICT,
            CronImportResponseDTO(success=False, message=e.message, error=e.details.get("reason")),
        )

    final_status = ImportStatusDTO.from_status(scheduler.status())
    if not summary.success:
        logger.error(f"[CRON] Import failed: {summary.error}")
        return _response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            CronImportResponseDTO(
                success=False,
                message="Import failed",
                error=summary.error,
                status=final_status,
            ),
        )

    return CronImportResponseDTO(
        success=True,
        message="Import completed successfully",
        summary=ImportSummaryDTO.from_summary(summary),
        status=final_status,
    )

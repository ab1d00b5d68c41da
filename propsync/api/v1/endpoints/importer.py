"""
Endpoints del importador de propiedades.
Permiten consultar el estado, disparar una corrida manual y ver la programacion.
"""
from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from loguru import logger

from propsync.api.v1.dependencies.import_deps import get_import_scheduler
from propsync.application.dto.import_dto import (
    ImportResponseDTO,
    ImportStatusDTO,
    ScheduleInfoDTO,
    ScheduleResponseDTO,
)
from propsync.application.services.import_scheduler import ImportScheduler
from propsync.shared.exceptions.sync import ConcurrencyError


router = APIRouter(prefix="/import", tags=["Import"])


@router.get(
    "/status",
    response_model=ImportResponseDTO,
    summary="Estado actual del importador"
)
async def get_import_status(
    scheduler: ImportScheduler = Depends(get_import_scheduler),
) -> ImportResponseDTO:
    """Retorna un snapshot del estado (el frontend hace polling aqui)."""
    return ImportResponseDTO(
        success=True,
        message="Import status retrieved",
        status=ImportStatusDTO.from_status(scheduler.status()),
    )


@router.post(
    "/run",
    response_model=ImportResponseDTO,
    status_code=status.HTTP_200_OK,
    summary="Iniciar una importacion manual",
    responses={409: {"model": ImportResponseDTO, "description": "Ya hay una importacion en curso"}},
)
async def run_import(
    scheduler: ImportScheduler = Depends(get_import_scheduler),
):
    """
    Inicia la importacion en background y retorna inmediatamente.

    Si ya hay una corrida activa responde 409 sin tocar su estado.
    """
    try:
        current = await scheduler.run_now()
    except ConcurrencyError as e:
        logger.warning(f"[IMPORTER] Run rechazado: {e.message}")
        body = ImportResponseDTO(
            success=False,
            message=e.message,
            error=e.details.get("reason"),
        )
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content=body.model_dump(by_alias=True, mode="json"),
        )

    return ImportResponseDTO(
        success=True,
        message="Import started successfully",
        status=ImportStatusDTO.from_status(current),
    )


@router.get(
    "/schedule",
    response_model=ScheduleResponseDTO,
    summary="Informacion de programacion"
)
async def get_import_schedule(
    scheduler: ImportScheduler = Depends(get_import_scheduler),
) -> ScheduleResponseDTO:
    """Proxima corrida, ultima corrida y progreso actual."""
    current = scheduler.status()
    return ScheduleResponseDTO(
        success=True,
        message="Schedule information retrieved",
        status=ScheduleInfoDTO(
            next_run=scheduler.next_run(),
            last_run=current.last_run,
            is_running=current.is_running,
            current_progress=current.current_progress,
            current_phase=current.current_phase.label,
        ),
    )

"""
Data Transfer Objects (DTOs) de la aplicacion.
"""
from propsync.application.dto.import_dto import (
    CronImportResponseDTO,
    ImportResponseDTO,
    ImportStatusDTO,
    ImportSummaryDTO,
    ScheduleInfoDTO,
    ScheduleResponseDTO,
)

__all__ = [
    "CronImportResponseDTO",
    "ImportResponseDTO",
    "ImportStatusDTO",
    "ImportSummaryDTO",
    "ScheduleInfoDTO",
    "ScheduleResponseDTO",
]

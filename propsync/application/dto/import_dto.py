"""
DTOs del importador.
Definen la estructura JSON que consume la UI (status, run, schedule, cron).
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from propsync.domain.entities.sync_status import SyncStatus, SyncSummary


class ImportStatusDTO(BaseModel):
    """Snapshot completo del estado del importador."""

    model_config = ConfigDict(populate_by_name=True)

    is_running: bool = Field(..., alias="isRunning", description="Hay una corrida activa")
    last_run: Optional[datetime] = Field(None, alias="lastRun", description="Fin de la ultima corrida exitosa")
    next_run: datetime = Field(..., alias="nextRun", description="Proxima corrida programada")
    total_imported: int = Field(0, alias="totalImported")
    total_updated: int = Field(0, alias="totalUpdated")
    total_errors: int = Field(0, alias="totalErrors")
    current_progress: int = Field(0, alias="currentProgress", ge=0, le=100)
    current_phase: str = Field("idle", alias="currentPhase", description="idle, data, images o cleanup")
    last_error: Optional[str] = Field(None, alias="lastError")

    @classmethod
    def from_status(cls, status: SyncStatus) -> "ImportStatusDTO":
        return cls(
            is_running=status.is_running,
            last_run=status.last_run,
            next_run=status.next_run,
            total_imported=status.total_imported,
            total_updated=status.total_updated,
            total_errors=status.total_errors,
            current_progress=status.current_progress,
            current_phase=status.current_phase.label,
            last_error=status.last_error,
        )


class ScheduleInfoDTO(BaseModel):
    """Subconjunto del estado enfocado en tiempos."""

    model_config = ConfigDict(populate_by_name=True)

    next_run: datetime = Field(..., alias="nextRun")
    last_run: Optional[datetime] = Field(None, alias="lastRun")
    is_running: bool = Field(..., alias="isRunning")
    current_progress: int = Field(0, alias="currentProgress")
    current_phase: str = Field("idle", alias="currentPhase")


class ImportResponseDTO(BaseModel):
    """Envoltorio de respuesta de los endpoints del importador."""

    success: bool
    message: str
    status: Optional[ImportStatusDTO] = None
    error: Optional[str] = None


class ScheduleResponseDTO(BaseModel):
    success: bool
    message: str
    status: ScheduleInfoDTO


class ImportSummaryDTO(BaseModel):
    """Conteos finales de una corrida sincronica (trigger externo)."""

    imported: int
    updated: int
    errors: int
    archived: int
    total_records: int = Field(0, alias="totalRecords")
    started_at: datetime = Field(..., alias="startedAt")
    finished_at: Optional[datetime] = Field(None, alias="finishedAt")

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_summary(cls, summary: SyncSummary) -> "ImportSummaryDTO":
        return cls(
            imported=summary.imported,
            updated=summary.updated,
            errors=summary.errors,
            archived=summary.archived,
            total_records=summary.total_records,
            started_at=summary.started_at,
            finished_at=summary.finished_at,
        )


class CronImportResponseDTO(BaseModel):
    success: bool
    message: str
    summary: Optional[ImportSummaryDTO] = None
    status: Optional[ImportStatusDTO] = None
    error: Optional[str] = None

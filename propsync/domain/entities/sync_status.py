"""
Estado de la sincronizacion y resultado de una corrida.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class SyncPhase(str, Enum):
    """Estados internos de la maquina de fases."""
    IDLE = "idle"
    FETCHING = "fetching"
    UPSERTING = "upserting"
    ATTACHING_MEDIA = "attaching_media"
    ARCHIVING = "archiving"

    @property
    def label(self) -> str:
        """Etiqueta publica que consume la UI (idle, data, images, cleanup)."""
        return _PHASE_LABELS[self]


_PHASE_LABELS = {
    SyncPhase.IDLE: "idle",
    SyncPhase.FETCHING: "data",
    SyncPhase.UPSERTING: "data",
    SyncPhase.ATTACHING_MEDIA: "images",
    SyncPhase.ARCHIVING: "cleanup",
}

# Bandas de progreso: datos 0-50, imagenes 50-90, limpieza 90-100
DATA_PHASE_WEIGHT = 50
IMAGES_PHASE_WEIGHT = 40
PROGRESS_COMPLETE = 100


@dataclass
class SyncStatus:
    """
    Estado compartido del importador.

    Solo el orquestador lo muta; los lectores reciben siempre una copia.
    """

    next_run: datetime
    is_running: bool = False
    last_run: Optional[datetime] = None
    total_imported: int = 0
    total_updated: int = 0
    total_errors: int = 0
    current_progress: int = 0
    current_phase: SyncPhase = SyncPhase.IDLE
    last_error: Optional[str] = None


@dataclass
class SyncSummary:
    """Resultado de una corrida completa (o abortada)."""

    started_at: datetime
    success: bool = False
    imported: int = 0
    updated: int = 0
    errors: int = 0
    archived: int = 0
    total_records: int = 0
    error: Optional[str] = None
    finished_at: Optional[datetime] = None

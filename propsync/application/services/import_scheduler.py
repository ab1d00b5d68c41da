"""
Scheduler del importador: corrida diaria a medianoche + ejecucion manual.

Patron asincrono:
- `run_now()` adquiere el guard, lanza la corrida en background y retorna
  inmediatamente el estado; el frontend hace polling a /import/status.
- La corrida (bloqueante, requests) se ejecuta en un thread via
  `asyncio.to_thread` para no bloquear el event loop.
- El job programado es de una sola vez (DateTrigger); al terminar cada
  corrida programada se vuelve a agendar para la siguiente medianoche.
  Asi no hay deriva ni doble disparo si una corrida cruza el cambio de dia.
"""

from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Callable, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.date import DateTrigger
from loguru import logger

from propsync.application.use_cases.sync_orchestrator import SyncOrchestrator
from propsync.domain.entities.sync_status import SyncStatus, SyncSummary
from propsync.shared.exceptions.sync import ConcurrencyError
from propsync.shared.utils.datetime_utils import DateTimeUtils

IMPORT_JOB_ID = "xml_import_daily"


class ImportScheduler:
    """
    Expone run-now / status / next-run sobre un SyncOrchestrator.

    Los tasks en background se guardan en un set para que no sean
    recolectados antes de terminar.
    """

    def __init__(
        self,
        orchestrator: SyncOrchestrator,
        *,
        next_run_fn: Callable[[], datetime] = DateTimeUtils.next_midnight,
    ) -> None:
        self._orchestrator = orchestrator
        self._next_run_fn = next_run_fn
        self._scheduler: Optional[AsyncIOScheduler] = None
        self._tasks: set[asyncio.Task] = set()

    @property
    def orchestrator(self) -> SyncOrchestrator:
        return self._orchestrator

    @property
    def is_started(self) -> bool:
        return self._scheduler is not None

    # ------------------------------------------------------------------
    # Ciclo de vida
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Inicia el scheduler. Llamarlo de nuevo no hace nada."""
        if self._scheduler is not None:
            logger.info("[SCHEDULER] Scheduler already running")
            return

        logger.info("[SCHEDULER] Starting scheduler for daily imports at midnight")
        self._scheduler = AsyncIOScheduler()
        self._scheduler.start()
        self._schedule_next_run()

    def stop(self) -> None:
        """Detiene el scheduler. Una corrida en curso termina igual."""
        if self._scheduler is None:
            return
        self._scheduler.shutdown(wait=False)
        self._scheduler = None
        logger.info("[SCHEDULER] Scheduler stopped")

    def _schedule_next_run(self) -> None:
        if self._scheduler is None:
            return
        next_run = self._next_run_fn()
        self._scheduler.add_job(
            self._run_scheduled,
            trigger=DateTrigger(run_date=next_run),
            id=IMPORT_JOB_ID,
            replace_existing=True,
            misfire_grace_time=3600,
        )
        self._orchestrator.set_next_run(next_run)
        logger.info(f"[SCHEDULER] Next import scheduled for {next_run.isoformat()}")

    async def _run_scheduled(self) -> None:
        """Disparo programado: corre (si no hay otra corrida) y se reagenda."""
        logger.info("[SCHEDULER] Running scheduled import...")
        try:
            self._orchestrator.acquire()
        except ConcurrencyError:
            logger.warning("[SCHEDULER] Import already running, skipping scheduled run")
        else:
            await asyncio.to_thread(self._orchestrator.run, acquired=True)
        finally:
            self._schedule_next_run()

    # ------------------------------------------------------------------
    # Consultas / disparo manual
    # ------------------------------------------------------------------

    def status(self) -> SyncStatus:
        return self._orchestrator.snapshot()

    def next_run(self) -> datetime:
        """Proximo disparo programado (o la proxima medianoche si no hay scheduler)."""
        if self._scheduler is not None:
            job = self._scheduler.get_job(IMPORT_JOB_ID)
            if job is not None and job.next_run_time is not None:
                return job.next_run_time
        return self._orchestrator.snapshot().next_run

    async def run_now(self) -> SyncStatus:
        """
        Inicia una corrida en background y retorna el estado de inmediato.

        Raises:
            ConcurrencyError: Si ya hay una corrida activa
        """
        self._orchestrator.acquire()
        logger.info("[IMPORTER] Manual import started")
        task = asyncio.create_task(self._run_in_background())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return self._orchestrator.snapshot()

    async def run_and_wait(self) -> SyncSummary:
        """
        Corre sincronicamente (para el trigger externo) y retorna el resumen.

        Raises:
            ConcurrencyError: Si ya hay una corrida activa
        """
        self._orchestrator.acquire()
        return await asyncio.to_thread(self._orchestrator.run, acquired=True)

    async def _run_in_background(self) -> None:
        try:
            await asyncio.to_thread(self._orchestrator.run, acquired=True)
        except Exception as e:
            logger.exception(f"[IMPORTER] Background import error: {e}")

    async def wait_for_background(self) -> None:
        """Espera a que terminen las corridas lanzadas con run_now."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

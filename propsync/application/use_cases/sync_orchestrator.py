"""
Orquestador de la sincronizacion feed XML -> WordPress.

Maquina de fases:
    idle -> fetching -> upserting -> attaching_media -> archiving -> idle

- Solo FetchError/ParseError (o un error inesperado) abortan la corrida: se
  registra `last_error` y se salta directo a idle, sin trabajo parcial.
- Los errores por registro (upsert, imagenes) se aislan y la corrida sigue.
- El progreso nunca retrocede dentro de una corrida: datos 0-50,
  imagenes 50-90, limpieza hasta 100.

El estado se protege con un lock corto por grupo de campos; los lectores
reciben siempre una copia, nunca la instancia viva.
"""

from __future__ import annotations

import math
import threading
from dataclasses import replace
from typing import Any, Callable, Optional, Protocol, Sequence

from loguru import logger

from propsync.core.config import Settings
from propsync.domain.entities.property_record import PropertyRecord
from propsync.domain.entities.sync_status import (
    DATA_PHASE_WEIGHT,
    IMAGES_PHASE_WEIGHT,
    PROGRESS_COMPLETE,
    SyncPhase,
    SyncStatus,
    SyncSummary,
)
from propsync.infrastructure.backend.types import AttachmentResult, BackendPost, UpsertResult
from propsync.infrastructure.backend.wordpress_client import WordPressClient, WordPressCredentials
from propsync.infrastructure.feed.feed_client import FeedClient
from propsync.infrastructure.feed.feed_parser import FeedParser
from propsync.shared.exceptions.sync import ConcurrencyError, FetchError, ParseError, UpsertError
from propsync.shared.utils.datetime_utils import DateTimeUtils

DEFAULT_BATCH_SIZE = 20


class FeedSource(Protocol):
    def fetch(self) -> bytes: ...


class ListingBackend(Protocol):
    def reset_term_cache(self) -> None: ...

    def find_by_external_id(self, external_id: str) -> Optional[BackendPost]: ...

    def upsert(self, record: PropertyRecord) -> UpsertResult: ...

    def attach_images(self, post_id: int, image_urls: Sequence[str]) -> AttachmentResult: ...

    def archive_stale(self, current_ids: Sequence[str]) -> int: ...


def phase_progress(done: int, total: int, weight: int) -> int:
    """Porcentaje de una banda redondeado hacia arriba en .5 (como Math.round)."""
    if total <= 0:
        return weight
    return int(math.floor(done / total * weight + 0.5))


class SyncOrchestrator:
    """
    Duenio unico del estado del importador.

    Uso:
        orchestrator.acquire()           # falla rapido si ya hay una corrida
        summary = orchestrator.run(acquired=True)
    o simplemente `orchestrator.run()`, que adquiere el guard por si mismo.
    """

    def __init__(
        self,
        *,
        feed: FeedSource,
        parser: FeedParser,
        backend: ListingBackend,
        batch_size: int = DEFAULT_BATCH_SIZE,
        next_run_fn: Callable[[], Any] = DateTimeUtils.next_midnight,
    ) -> None:
        if batch_size < 1:
            raise ValueError("batch_size debe ser >= 1")
        self._feed = feed
        self._parser = parser
        self._backend = backend
        self._batch_size = batch_size
        self._next_run_fn = next_run_fn
        self._lock = threading.Lock()
        self._status = SyncStatus(next_run=next_run_fn())

    # ------------------------------------------------------------------
    # Estado
    # ------------------------------------------------------------------

    def snapshot(self) -> SyncStatus:
        """Copia del estado actual (nunca la instancia viva)."""
        with self._lock:
            return replace(self._status)

    @property
    def is_running(self) -> bool:
        with self._lock:
            return self._status.is_running

    def set_next_run(self, next_run: Any) -> None:
        self._update(next_run=next_run)

    def _update(self, **changes: Any) -> None:
        """Actualiza un grupo de campos bajo el lock. El progreso nunca baja."""
        with self._lock:
            progress = changes.get("current_progress")
            if progress is not None:
                changes["current_progress"] = max(progress, self._status.current_progress)
            for k, v in changes.items():
                setattr(self._status, k, v)

    def acquire(self) -> None:
        """
        Transicion idle -> fetching.

        Raises:
            ConcurrencyError: Si ya hay una corrida activa
        """
        with self._lock:
            if self._status.is_running:
                raise ConcurrencyError()
            self._status.is_running = True
            self._status.current_progress = 0
            self._status.current_phase = SyncPhase.FETCHING

    def _release(self) -> None:
        """Transicion terminal a idle (exito o aborto)."""
        with self._lock:
            self._status.is_running = False
            self._status.current_phase = SyncPhase.IDLE

    # ------------------------------------------------------------------
    # Corrida
    # ------------------------------------------------------------------

    def run(self, *, acquired: bool = False) -> SyncSummary:
        """
        Ejecuta una corrida completa de forma bloqueante.

        Args:
            acquired: True si el caller ya llamo a `acquire()`

        Returns:
            SyncSummary: Conteos de la corrida y error si se aborto

        Raises:
            ConcurrencyError: Si acquired=False y ya hay una corrida activa
        """
        if not acquired:
            self.acquire()

        summary = SyncSummary(started_at=DateTimeUtils.now_utc())
        try:
            logger.info("[IMPORT] Starting import process...")
            self._run_phases(summary)
            summary.success = True
            logger.success("[IMPORT] Import completed successfully")
            logger.info(
                f"[IMPORT] Summary - Imported: {summary.imported}, Updated: {summary.updated}, "
                f"Errors: {summary.errors}, Archived: {summary.archived}"
            )
        except (FetchError, ParseError) as e:
            summary.error = e.message
            self._update(last_error=e.message)
            logger.error(f"[IMPORT] Import failed: {e.message}")
        except Exception as e:
            message = str(e) or e.__class__.__name__
            summary.error = message
            self._update(last_error=message)
            logger.exception(f"[IMPORT] Import failed with unexpected error: {message}")
        finally:
            summary.finished_at = DateTimeUtils.now_utc()
            self._release()
        return summary

    def _run_phases(self, summary: SyncSummary) -> None:
        self._backend.reset_term_cache()

        records = self._fetch_records()
        summary.total_records = len(records)

        self._upsert_records(records, summary)
        self._attach_media(records)
        summary.archived = self._archive(records)

        self._update(
            current_progress=PROGRESS_COMPLETE,
            last_run=DateTimeUtils.now_utc(),
            next_run=self._next_run_fn(),
            last_error=None,
        )

    def _fetch_records(self) -> list[PropertyRecord]:
        self._update(current_phase=SyncPhase.FETCHING)
        logger.info("[IMPORT] Phase 1: Fetching and parsing XML...")
        records = self._parser.parse(self._feed.fetch())
        logger.info(f"[IMPORT] Found {len(records)} properties")
        return records

    def _upsert_records(self, records: list[PropertyRecord], summary: SyncSummary) -> None:
        self._update(current_phase=SyncPhase.UPSERTING)
        total = len(records)

        for start in range(0, total, self._batch_size):
            batch = records[start:start + self._batch_size]
            logger.info(f"[IMPORT] Processing batch {start // self._batch_size + 1}...")

            for record in batch:
                try:
                    result = self._backend.upsert(record)
                except UpsertError as e:
                    summary.errors += 1
                    logger.error(f"[IMPORT] Error for property {record.external_id}: {e.reason}")
                    continue
                except Exception as e:
                    summary.errors += 1
                    logger.error(f"[IMPORT] Exception for property {record.external_id}: {e}")
                    continue

                if result.created:
                    summary.imported += 1
                else:
                    summary.updated += 1
                if result.taxonomy_failures:
                    logger.debug(
                        f"[IMPORT] {len(result.taxonomy_failures)} taxonomia(s) sin asignar "
                        f"para {record.external_id}"
                    )

            self._update(
                current_progress=phase_progress(start + len(batch), total, DATA_PHASE_WEIGHT),
                total_imported=summary.imported,
                total_updated=summary.updated,
                total_errors=summary.errors,
            )

    def _attach_media(self, records: list[PropertyRecord]) -> None:
        self._update(current_phase=SyncPhase.ATTACHING_MEDIA)
        logger.info("[IMPORT] Phase 2: Downloading images...")
        total = len(records)

        for completed, record in enumerate(records, start=1):
            if record.has_images:
                try:
                    # Se vuelve a buscar: el post pudo crearse en esta misma corrida
                    post = self._backend.find_by_external_id(record.external_id)
                    if post is None:
                        logger.warning(f"[IMPORT] Post no encontrado para imagenes de {record.external_id}")
                    else:
                        result = self._backend.attach_images(post.id, record.images)
                        if result.failures:
                            logger.debug(
                                f"[IMPORT] {len(result.failures)}/{len(record.images)} imagen(es) "
                                f"omitidas para {record.external_id}"
                            )
                except Exception as e:
                    logger.error(f"[IMPORT] Error downloading images for {record.external_id}: {e}")

            self._update(
                current_progress=DATA_PHASE_WEIGHT + phase_progress(completed, total, IMAGES_PHASE_WEIGHT)
            )

    def _archive(self, records: list[PropertyRecord]) -> int:
        self._update(current_phase=SyncPhase.ARCHIVING)
        logger.info("[IMPORT] Phase 3: Archiving old properties...")
        archived = self._backend.archive_stale([record.external_id for record in records])
        logger.info(f"[IMPORT] Archived {archived} old properties")
        return archived


def build_orchestrator(config: Settings) -> SyncOrchestrator:
    """
    Constructor "oficial" del pipeline a partir de la configuracion.
    """
    if not config.WORDPRESS_PASSWORD:
        logger.warning("[IMPORT] WORDPRESS_PASSWORD vacio: las escrituras en WordPress fallaran")

    feed = FeedClient(config.XML_FEED_URL, timeout_s=config.FEED_TIMEOUT_SECONDS)
    backend = WordPressClient(
        config.WORDPRESS_URL,
        WordPressCredentials(username=config.WORDPRESS_USER, password=config.WORDPRESS_PASSWORD),
        post_type=config.LISTING_POST_TYPE,
        external_id_meta_key=config.EXTERNAL_ID_META_KEY,
        timeout_s=config.BACKEND_TIMEOUT_SECONDS,
        media_timeout_s=config.MEDIA_TIMEOUT_SECONDS,
        max_retries=config.BACKEND_MAX_RETRIES,
    )
    return SyncOrchestrator(
        feed=feed,
        parser=FeedParser(),
        backend=backend,
        batch_size=config.SYNC_BATCH_SIZE,
    )

"""
Taxonomia de errores del pipeline feed XML -> WordPress.

Severidades:
- Nivel corrida: FetchError, ParseError. Abortan la corrida en el limite de fase
  y quedan registrados en `last_error`.
- Nivel registro: UpsertError. Incrementa el contador de errores y el loop sigue.
- Canal lateral: TaxonomyError, MediaError. Se devuelven como valores dentro de
  los resultados (UpsertResult / AttachmentResult), se loguean y se descartan.
- ArchiveError: aborta solo la pasada de archivado.
- ConcurrencyError: ya hay una corrida activa.
"""
from typing import Any, Optional

from propsync.shared.exceptions.base import AppException


class SyncException(AppException):
    """Excepcion base para errores del pipeline de sincronizacion."""

    def __init__(
        self,
        message: str,
        error_code: str = "SYNC_ERROR",
        status_code: int = 500,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            status_code=status_code,
            error_code=error_code,
            details=details,
        )


class FetchError(SyncException):
    """Fallo de transporte o respuesta no-2xx (feed o backend)."""

    def __init__(self, message: str, *, url: str = "", status: Optional[int] = None):
        details: dict[str, Any] = {"url": url}
        if status is not None:
            details["status"] = status
        super().__init__(message, error_code="FETCH_ERROR", status_code=502, details=details)
        self.url = url
        self.status = status


class BackendRequestError(FetchError):
    """Error de integracion con la API REST de WordPress."""

    def __init__(self, message: str, *, url: str = "", status: Optional[int] = None, body: str = ""):
        super().__init__(message, url=url, status=status)
        self.error_code = "BACKEND_REQUEST_ERROR"
        self.body = body


class ParseError(SyncException):
    """El documento del feed no es XML valido."""

    def __init__(self, message: str):
        super().__init__(message, error_code="FEED_PARSE_ERROR", status_code=502)


class UpsertError(SyncException):
    """El backend rechazo la creacion o actualizacion de un post."""

    def __init__(self, external_id: str, reason: str):
        super().__init__(
            f"No se pudo guardar la propiedad {external_id}: {reason}",
            error_code="UPSERT_ERROR",
            details={"external_id": external_id},
        )
        self.external_id = external_id
        self.reason = reason


class TaxonomyError(SyncException):
    """Fallo al resolver, crear o asignar un termino de taxonomia."""

    def __init__(self, taxonomy: str, labels: list[str], reason: str):
        super().__init__(
            f"Error asignando taxonomia {taxonomy} {labels}: {reason}",
            error_code="TAXONOMY_ERROR",
            details={"taxonomy": taxonomy, "labels": labels},
        )
        self.taxonomy = taxonomy
        self.labels = labels
        self.reason = reason


class MediaError(SyncException):
    """Fallo al descargar o subir una imagen."""

    def __init__(self, url: str, reason: str):
        super().__init__(
            f"Error procesando imagen {url}: {reason}",
            error_code="MEDIA_ERROR",
            details={"url": url},
        )
        self.url = url
        self.reason = reason


class ArchiveError(SyncException):
    """No se pudo listar los posts publicados durante el archivado."""

    def __init__(self, reason: str):
        super().__init__(
            f"Error archivando propiedades antiguas: {reason}",
            error_code="ARCHIVE_ERROR",
        )


class ConcurrencyError(SyncException):
    """Ya existe una importacion en curso."""

    def __init__(self, message: str = "Import is already running"):
        super().__init__(
            message,
            error_code="IMPORT_ALREADY_RUNNING",
            status_code=409,
            details={"reason": "An import process is already in progress"},
        )

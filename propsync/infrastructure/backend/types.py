"""
Tipos del lado WordPress del pipeline feed -> WordPress.

Se mantienen libres de I/O para poder testearlos facilmente.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from propsync.shared.exceptions.sync import MediaError, TaxonomyError


@dataclass(frozen=True)
class BackendPost:
    """Post de WordPress minimo para reconciliar."""

    id: int
    title: str
    content: str
    status: str
    meta: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> "BackendPost":
        """
        Construye el post desde la respuesta REST.

        WordPress devuelve title/content como {"rendered": ...} en contexto
        view y {"raw": ...} en contexto edit; aceptamos ambos y strings planos.
        """
        return cls(
            id=int(payload["id"]),
            title=_rendered(payload.get("title")),
            content=_rendered(payload.get("content")),
            status=str(payload.get("status") or ""),
            meta=payload.get("meta") or {},
        )

    def external_id(self, meta_key: str) -> str:
        value = self.meta.get(meta_key)
        if isinstance(value, list):
            value = value[0] if value else ""
        return str(value).strip() if value else ""


def _rendered(value: Any) -> str:
    if isinstance(value, dict):
        return str(value.get("raw") or value.get("rendered") or "")
    return str(value or "")


@dataclass(frozen=True)
class UpsertResult:
    """
    Resultado de guardar una propiedad.

    taxonomy_failures es el canal lateral: errores best-effort que el
    orquestador solo loguea, nunca cuentan como error del registro.
    """

    post_id: int
    created: bool
    taxonomy_failures: tuple[TaxonomyError, ...] = ()


@dataclass(frozen=True)
class AttachmentResult:
    """Ids de media subidos (en orden) y fallos por URL descartados."""

    attachment_ids: tuple[int, ...] = ()
    failures: tuple[MediaError, ...] = ()

    @property
    def featured_id(self) -> int | None:
        return self.attachment_ids[0] if self.attachment_ids else None

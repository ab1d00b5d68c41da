"""
Reconciliacion one-way: feed XML -> WordPress (REST API).

Objetivos de diseno:
- Idempotencia: el external id guardado en metadata decide create vs update.
- Enriquecimiento best-effort: taxonomias e imagenes nunca hacen fallar un registro.
- Archivado: lo que desaparece del feed pasa a draft, no se borra.
"""
from propsync.infrastructure.backend.taxonomy_mappings import TaxonomyMapping
from propsync.infrastructure.backend.types import AttachmentResult, BackendPost, UpsertResult
from propsync.infrastructure.backend.wordpress_client import WordPressClient, WordPressCredentials

__all__ = [
    "AttachmentResult",
    "BackendPost",
    "TaxonomyMapping",
    "UpsertResult",
    "WordPressClient",
    "WordPressCredentials",
]

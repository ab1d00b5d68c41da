"""
Entidades del dominio.
"""
from propsync.domain.entities.property_record import ListingOperation, PropertyRecord
from propsync.domain.entities.sync_status import SyncPhase, SyncStatus, SyncSummary

__all__ = [
    "ListingOperation",
    "PropertyRecord",
    "SyncPhase",
    "SyncStatus",
    "SyncSummary",
]

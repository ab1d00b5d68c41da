"""
Servicios de aplicacion.
"""
from propsync.application.services.import_scheduler import ImportScheduler

__all__ = ["ImportScheduler"]

"""
Casos de uso de la aplicacion.
"""
from propsync.application.use_cases.sync_orchestrator import SyncOrchestrator, build_orchestrator

__all__ = ["SyncOrchestrator", "build_orchestrator"]

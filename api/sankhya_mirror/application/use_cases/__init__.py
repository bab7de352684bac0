"""
Casos de uso de la aplicacion.
"""
from .mirror_sync_use_cases import MirrorSyncUseCases

__all__ = ["MirrorSyncUseCases"]

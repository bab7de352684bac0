"""
Dependencias para inyeccion de casos de uso.
"""
from functools import lru_cache

from sankhya_mirror.application.use_cases.mirror_sync_use_cases import MirrorSyncUseCases


@lru_cache(maxsize=1)
def get_mirror_sync_use_cases() -> MirrorSyncUseCases:
    """
    Dependencia para obtener los casos de uso de sincronizacion.
    Una sola instancia por proceso: el pipeline se cablea en el primer uso.

    Returns:
        MirrorSyncUseCases: Instancia de casos de uso de sincronizacion
    """
    return MirrorSyncUseCases()

"""
Entidades del dominio.
"""
from sankhya_mirror.domain.entities.mirror_stats import MirrorStats
from sankhya_mirror.domain.entities.sync_result import BatchReport, SyncResult

__all__ = [
    "BatchReport",
    "MirrorStats",
    "SyncResult",
]

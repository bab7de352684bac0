"""
Data Transfer Objects (DTOs) para la capa de aplicacion.
"""
from .sync_dto import BatchReportDTO, MirrorStatsDTO, SyncResultDTO

__all__ = [
    "BatchReportDTO",
    "MirrorStatsDTO",
    "SyncResultDTO",
]

"""
DTOs del espejado Sankhya expuestos por el API.
"""

from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from sankhya_mirror.domain.entities.sync_result import BatchReport, SyncResult
from sankhya_mirror.domain.entities.mirror_stats import MirrorStats


class SyncResultDTO(BaseModel):
    """Resultado de la reconciliación de un sistema."""
    success: bool
    system_id: int
    system_label: str
    entity: str
    table_name: str
    total_fetched: int
    inserted: int
    updated: int
    marked_stale: int = Field(..., description="Filas activas marcadas como no actuales antes del upsert")
    failed_records: int = 0
    started_at: datetime
    finished_at: datetime
    duration_ms: int
    error_message: Optional[str] = None

    @classmethod
    def from_domain(cls, result: SyncResult) -> "SyncResultDTO":
        return cls(
            success=result.success,
            system_id=result.system_id,
            system_label=result.system_label,
            entity=result.entity,
            table_name=result.table_name,
            total_fetched=result.total_fetched,
            inserted=result.inserted,
            updated=result.updated,
            marked_stale=result.marked_stale,
            failed_records=result.failed_records,
            started_at=result.started_at,
            finished_at=result.finished_at,
            duration_ms=result.duration_ms,
            error_message=result.error_message,
        )


class BatchReportDTO(BaseModel):
    """Reporte de un batch sobre todas las empresas activas."""
    entity: str
    successes: int
    failures: int
    cancelled: bool = False
    totals: Dict[str, int]
    results: List[SyncResultDTO]

    @classmethod
    def from_domain(cls, report: BatchReport) -> "BatchReportDTO":
        return cls(
            entity=report.entity,
            successes=report.successes,
            failures=report.failures,
            cancelled=report.cancelled,
            totals=report.totals(),
            results=[SyncResultDTO.from_domain(r) for r in report.results],
        )


class MirrorStatsDTO(BaseModel):
    """Estadísticas de la tabla espejo para un sistema."""
    system_id: int
    total_rows: int
    active_rows: int
    stale_rows: int
    last_sync_at: Optional[datetime] = None

    @classmethod
    def from_domain(cls, stats: MirrorStats) -> "MirrorStatsDTO":
        return cls(
            system_id=stats.system_id,
            total_rows=stats.total_rows,
            active_rows=stats.active_rows,
            stale_rows=stats.stale_rows,
            last_sync_at=stats.last_sync_at,
        )

"""
Resultado de una corrida de reconciliacion y reporte agregado de un batch.

Son value objects inmutables: se construyen una sola vez al final de la
corrida y se entregan al agregador y al log sink.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from loguru import logger

from sankhya_mirror.shared.utils.datetime_utils import DateTimeUtils


@dataclass(frozen=True)
class SyncResult:
    """
    Resumen de la reconciliacion de una entidad para un sistema (empresa).

    - total_fetched: registros recibidos del snapshot remoto
    - inserted / updated: filas escritas por el upsert
    - marked_stale: filas activas marcadas como no actuales antes del upsert
      (cota superior de las eliminaciones reales)
    - failed_records: registros descartados por error a nivel de fila
    """

    success: bool
    system_id: int
    system_label: str
    entity: str
    table_name: str
    total_fetched: int
    inserted: int
    updated: int
    marked_stale: int
    started_at: datetime
    finished_at: datetime
    failed_records: int = 0
    error_message: Optional[str] = None

    @property
    def duration_ms(self) -> int:
        return DateTimeUtils.elapsed_ms(self.started_at, self.finished_at)

    @classmethod
    def succeeded(
        cls,
        *,
        system_id: int,
        system_label: str,
        entity: str,
        table_name: str,
        total_fetched: int,
        inserted: int,
        updated: int,
        marked_stale: int,
        failed_records: int,
        started_at: datetime,
        finished_at: datetime,
    ) -> "SyncResult":
        return cls(
            success=True,
            system_id=system_id,
            system_label=system_label,
            entity=entity,
            table_name=table_name,
            total_fetched=total_fetched,
            inserted=inserted,
            updated=updated,
            marked_stale=marked_stale,
            failed_records=failed_records,
            started_at=started_at,
            finished_at=finished_at,
        )

    @classmethod
    def failed(
        cls,
        *,
        system_id: int,
        system_label: str,
        entity: str,
        table_name: str,
        error_message: str,
        started_at: datetime,
        finished_at: datetime,
        total_fetched: int = 0,
    ) -> "SyncResult":
        """
        Resultado de una corrida fallida.

        Los contadores de escritura quedan en 0: la transaccion se revirtio.
        """
        return cls(
            success=False,
            system_id=system_id,
            system_label=system_label,
            entity=entity,
            table_name=table_name,
            total_fetched=total_fetched,
            inserted=0,
            updated=0,
            marked_stale=0,
            started_at=started_at,
            finished_at=finished_at,
            error_message=error_message,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "system_id": self.system_id,
            "system_label": self.system_label,
            "entity": self.entity,
            "table_name": self.table_name,
            "total_fetched": self.total_fetched,
            "inserted": self.inserted,
            "updated": self.updated,
            "marked_stale": self.marked_stale,
            "failed_records": self.failed_records,
            "started_at": DateTimeUtils.to_iso_string(self.started_at),
            "finished_at": DateTimeUtils.to_iso_string(self.finished_at),
            "duration_ms": self.duration_ms,
            "error_message": self.error_message,
        }


@dataclass(frozen=True)
class BatchReport:
    """Agregado de los SyncResult de un batch, en orden de ejecucion."""

    entity: str
    results: Tuple[SyncResult, ...] = field(default_factory=tuple)
    cancelled: bool = False

    @classmethod
    def from_results(cls, entity: str, results: List[SyncResult], cancelled: bool = False) -> "BatchReport":
        return cls(entity=entity, results=tuple(results), cancelled=cancelled)

    @property
    def successes(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failures(self) -> int:
        return sum(1 for r in self.results if not r.success)

    @property
    def all_succeeded(self) -> bool:
        return not self.cancelled and self.failures == 0

    def totals(self) -> Dict[str, int]:
        """Suma de contadores de las corridas exitosas."""
        ok = [r for r in self.results if r.success]
        return {
            "total_fetched": sum(r.total_fetched for r in ok),
            "inserted": sum(r.inserted for r in ok),
            "updated": sum(r.updated for r in ok),
            "marked_stale": sum(r.marked_stale for r in ok),
            "failed_records": sum(r.failed_records for r in ok),
        }

    def log_summary(self) -> None:
        totals = self.totals()
        logger.info(
            f"[Sync] Batch '{self.entity}' finalizado: {self.successes} exitos, {self.failures} fallas"
            f"{' (cancelado)' if self.cancelled else ''} | "
            f"fetched={totals['total_fetched']} inserted={totals['inserted']} "
            f"updated={totals['updated']} stale={totals['marked_stale']}"
        )
        for r in self.results:
            if not r.success:
                logger.warning(f"[Sync] {r.system_label} ({r.system_id}): {r.error_message}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "entity": self.entity,
            "successes": self.successes,
            "failures": self.failures,
            "cancelled": self.cancelled,
            "totals": self.totals(),
            "results": [r.to_dict() for r in self.results],
        }

"""
Batch: reconcilia una entidad para todos los sistemas activos, uno por vez.
"""

from __future__ import annotations

import threading
import time
from typing import Callable, List, Optional

from loguru import logger

from sankhya_mirror.domain.entities.sync_result import BatchReport, SyncResult
from sankhya_mirror.domain.repositories.sync_ports import ICompanyDirectory

from .sync_config import EntitySyncConfig
from .sync_service import SnapshotReconciler


class BatchDriver:
    """
    Itera el reconciliador sobre el directorio de sistemas activos.

    - Estrictamente secuencial, con una pausa fija entre sistemas (rate limit
      del gateway)
    - La falla de un sistema no detiene el batch
    - Un cancel_event activo corta el batch antes del siguiente sistema
    """

    def __init__(
        self,
        *,
        reconciler: SnapshotReconciler,
        directory: ICompanyDirectory,
        pause_s: float = 2.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._reconciler = reconciler
        self._directory = directory
        self._pause_s = pause_s
        self._sleep = sleep

    def sync_all(
        self,
        config: EntitySyncConfig,
        *,
        cancel_event: Optional[threading.Event] = None,
    ) -> BatchReport:
        logger.info(f"[Sync] Iniciando sincronización de '{config.entity_key}' de todas las empresas...")
        companies = self._directory.list_active()

        if not companies:
            logger.warning("[Sync] Ninguna empresa activa encontrada")
            return BatchReport.from_results(config.entity_key, [])

        results: List[SyncResult] = []
        cancelled = False
        for index, company in enumerate(companies):
            if cancel_event is not None and cancel_event.is_set():
                logger.warning(f"[Sync] Batch cancelado antes de {company.label} ({company.system_id})")
                cancelled = True
                break

            if index > 0 and self._pause_s > 0:
                self._sleep(self._pause_s)

            results.append(
                self._reconciler.run_for_system(
                    config,
                    company.system_id,
                    company.label,
                    cancel_event=cancel_event,
                )
            )

        report = BatchReport.from_results(config.entity_key, results, cancelled=cancelled)
        report.log_summary()
        return report

    def sync_system(
        self,
        config: EntitySyncConfig,
        system_id: int,
        *,
        cancel_event: Optional[threading.Event] = None,
    ) -> SyncResult:
        """Reconcilia un único sistema del directorio (EntityNotFoundException si no existe)."""
        company = self._directory.get(system_id)
        return self._reconciler.run_for_system(
            config,
            company.system_id,
            company.label,
            cancel_event=cancel_event,
        )

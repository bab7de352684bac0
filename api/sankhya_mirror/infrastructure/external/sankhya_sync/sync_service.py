"""
Servicio de reconciliación Sankhya -> base espejo (snapshot completo).

Diseño (resumen), por sistema:
- Renueva el bearer token (siempre forzado, sin cache entre corridas)
- Trae el snapshot completo de la entidad y lo decodifica
- En UNA transacción: marca todas las filas activas del sistema como no
  actuales y luego hace upsert de cada registro recibido (que las reactiva)
- Commit; ante cualquier error fatal, rollback

Estrategia de idempotencia:
- "marcar todo no actual y luego upsert" deja la tabla igual al snapshot sin
  necesidad de diff: lo ausente queda is_active = false, lo presente activo.
- Un error en un registro se registra con su clave y no aborta la corrida.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Callable, List, Optional

from loguru import logger
from sqlalchemy.engine import Connection, Engine

from sankhya_mirror.core.config import settings
from sankhya_mirror.domain.entities.sync_result import SyncResult
from sankhya_mirror.domain.repositories.sync_ports import (
    IConnectionProvider,
    ISyncLogSink,
    ITokenProvider,
)
from sankhya_mirror.shared.exceptions.sync import SyncCancelledException
from sankhya_mirror.shared.utils.datetime_utils import DateTimeUtils

from .mirror_repository import ROW_LEVEL_ERRORS, MirrorRepository, is_connection_error
from .sankhya_client import SankhyaClient
from .sync_config import EntitySyncConfig
from .types import RemoteRecord, UpsertOutcome

if TYPE_CHECKING:
    from .batch import BatchDriver


@dataclass(frozen=True)
class UpsertCounts:
    inserted: int = 0
    updated: int = 0
    failed: int = 0


class SnapshotReconciler:
    """
    Orquestador de una corrida de reconciliación para un sistema.

    Estados: START -> TOKEN_ACQUIRED -> FETCHED -> STALED -> UPSERTED -> COMMITTED,
    con FAILED alcanzable desde cualquier punto posterior a START.
    """

    def __init__(
        self,
        *,
        client: SankhyaClient,
        token_provider: ITokenProvider,
        connection_provider: IConnectionProvider,
        log_sink: Optional[ISyncLogSink] = None,
        mirror_repo: Optional[MirrorRepository] = None,
        deadline_s: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._client = client
        self._tokens = token_provider
        self._connections = connection_provider
        self._log_sink = log_sink
        self._repo = mirror_repo or MirrorRepository()
        self._deadline_s = deadline_s or None
        self._clock = clock

    def run_for_system(
        self,
        config: EntitySyncConfig,
        system_id: int,
        system_label: str,
        *,
        cancel_event: Optional[threading.Event] = None,
    ) -> SyncResult:
        """
        Ejecuta una corrida completa. Nunca levanta por errores de la corrida:
        siempre retorna un SyncResult (éxito o falla) y lo emite al log sink.
        """
        started_at = DateTimeUtils.now_utc()
        deadline_at = self._clock() + self._deadline_s if self._deadline_s else None
        conn: Optional[Connection] = None
        transaction = None
        total_fetched = 0
        result: Optional[SyncResult] = None

        logger.info("=" * 60)
        logger.info(f"[Sync] {config.root_entity} -> {config.table_name}")
        logger.info(f"[Sync] ID_SISTEMA: {system_id} | Empresa: {system_label}")
        logger.info("=" * 60)

        try:
            bearer_token = self._tokens.acquire(system_id, force_refresh=True)
            snapshot = self._client.fetch_snapshot(bearer_token, config)
            total_fetched = len(snapshot.records)
            self._check_run_control(cancel_event, deadline_at)

            conn = self._connections.acquire()
            transaction = conn.begin()
            synced_at = DateTimeUtils.now_utc()

            marked_stale = self._repo.mark_all_stale(conn, config, system_id=system_id, synced_at=synced_at)
            logger.info(f"[Sync] {marked_stale} registros marcados como no actuales")

            counts = self._upsert_snapshot(
                conn,
                config,
                system_id=system_id,
                records=snapshot.records,
                synced_at=synced_at,
                cancel_event=cancel_event,
                deadline_at=deadline_at,
            )

            transaction.commit()

            result = SyncResult.succeeded(
                system_id=system_id,
                system_label=system_label,
                entity=config.entity_key,
                table_name=config.table_name,
                total_fetched=total_fetched,
                inserted=counts.inserted,
                updated=counts.updated,
                marked_stale=marked_stale,
                failed_records=counts.failed,
                started_at=started_at,
                finished_at=DateTimeUtils.now_utc(),
            )
            logger.success(
                f"[Sync] {system_label}: {total_fetched} registros, {counts.inserted} insertados, "
                f"{counts.updated} actualizados, {marked_stale} no actuales, {counts.failed} con error "
                f"({result.duration_ms}ms)"
            )

        except Exception as e:
            logger.error(f"[Sync] Error sincronizando {config.entity_key} para {system_label}: {e}")
            self._rollback_quietly(transaction)
            result = SyncResult.failed(
                system_id=system_id,
                system_label=system_label,
                entity=config.entity_key,
                table_name=config.table_name,
                error_message=str(e) or e.__class__.__name__,
                started_at=started_at,
                finished_at=DateTimeUtils.now_utc(),
                total_fetched=total_fetched,
            )

        finally:
            if result is not None:
                self._emit(result)
            self._release_quietly(conn)

        return result

    def _upsert_snapshot(
        self,
        conn: Connection,
        config: EntitySyncConfig,
        *,
        system_id: int,
        records: List[RemoteRecord],
        synced_at: datetime,
        cancel_event: Optional[threading.Event],
        deadline_at: Optional[float],
    ) -> UpsertCounts:
        inserted = updated = failed = 0

        for record in records:
            self._check_run_control(cancel_event, deadline_at)
            try:
                row = config.map_record(record)
                outcome = self._repo.upsert_row(conn, config, system_id=system_id, row=row, synced_at=synced_at)
            except ROW_LEVEL_ERRORS as e:
                if is_connection_error(e):
                    raise
                failed += 1
                logger.error(f"[Sync] Error procesando {config.entity_key} [{config.describe_key(record)}]: {e}")
                continue

            if outcome is UpsertOutcome.INSERTED:
                inserted += 1
            else:
                updated += 1

        logger.info(f"[Sync] Upsert concluido: {inserted} insertados, {updated} actualizados, {failed} con error")
        return UpsertCounts(inserted=inserted, updated=updated, failed=failed)

    def _check_run_control(self, cancel_event: Optional[threading.Event], deadline_at: Optional[float]) -> None:
        if cancel_event is not None and cancel_event.is_set():
            raise SyncCancelledException("cancelación solicitada")
        if deadline_at is not None and self._clock() > deadline_at:
            raise SyncCancelledException(f"deadline de {self._deadline_s}s excedido")

    def _emit(self, result: SyncResult) -> None:
        if self._log_sink is None:
            return
        try:
            self._log_sink.record(result)
        except Exception as e:
            logger.error(f"[Sync] Error al guardar log de sincronización: {e}")

    @staticmethod
    def _rollback_quietly(transaction) -> None:
        if transaction is None or not transaction.is_active:
            return
        try:
            transaction.rollback()
        except Exception as e:
            logger.error(f"[Sync] Error al hacer rollback: {e}")

    def _release_quietly(self, conn: Optional[Connection]) -> None:
        if conn is None:
            return
        try:
            self._connections.release(conn)
        except Exception as e:
            logger.error(f"[Sync] Error al cerrar conexión: {e}")


@dataclass(frozen=True)
class SyncComponents:
    """Piezas cableadas del pipeline (ver build_from_env)."""

    engine: Engine
    reconciler: SnapshotReconciler
    batch_driver: "BatchDriver"
    mirror_repo: MirrorRepository
    connection_provider: IConnectionProvider


def build_from_env(engine: Optional[Engine] = None) -> SyncComponents:
    """
    Constructor "oficial" del pipeline a partir de settings (env / .env).

    - Base espejo: settings.effective_database_url
    - Gateway: SANKHYA_BASE_URL + paths de login y loadRecords
    - Credenciales por contrato: tabla sync_contracts
    """
    from sankhya_mirror.infrastructure.database.session import (
        EngineConnectionProvider,
        get_engine,
        get_session_factory,
    )
    from sankhya_mirror.infrastructure.repositories.contract_repository import ContractRepository
    from sankhya_mirror.infrastructure.repositories.sync_log_repository import SyncLogRepository

    from .batch import BatchDriver
    from .token_provider import SankhyaTokenProvider

    engine = engine or get_engine()
    session_factory = get_session_factory(engine)
    contracts = ContractRepository(session_factory)
    connections = EngineConnectionProvider(engine)
    mirror_repo = MirrorRepository()

    reconciler = SnapshotReconciler(
        client=SankhyaClient(
            load_records_url=settings.load_records_url,
            default_timeout_s=settings.SANKHYA_TIMEOUT_S,
        ),
        token_provider=SankhyaTokenProvider(
            login_url=settings.login_url,
            credentials_lookup=contracts.get_credentials,
        ),
        connection_provider=connections,
        log_sink=SyncLogRepository(session_factory),
        mirror_repo=mirror_repo,
        deadline_s=settings.SYNC_RUN_DEADLINE_S,
    )
    batch_driver = BatchDriver(
        reconciler=reconciler,
        directory=contracts,
        pause_s=settings.SYNC_PAUSE_SECONDS,
    )
    return SyncComponents(
        engine=engine,
        reconciler=reconciler,
        batch_driver=batch_driver,
        mirror_repo=mirror_repo,
        connection_provider=connections,
    )

"""
Log sink persistente: una fila en sync_logs por corrida.
"""
from sqlalchemy.orm import sessionmaker
from loguru import logger

from sankhya_mirror.domain.entities.sync_result import SyncResult
from sankhya_mirror.domain.repositories.sync_ports import ISyncLogSink
from sankhya_mirror.infrastructure.database.models import SyncLogModel

STATUS_SUCCESS = "SUCESSO"
STATUS_FAILURE = "FALHA"


class SyncLogRepository(ISyncLogSink):
    """
    Escribe en su propia transacción, independiente de la corrida
    (una corrida revertida igual deja su log).
    """

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def record(self, result: SyncResult) -> None:
        entry = SyncLogModel(
            id_sistema=result.system_id,
            empresa=result.system_label,
            tabela=result.table_name.upper(),
            status=STATUS_SUCCESS if result.success else STATUS_FAILURE,
            total_registros=result.total_fetched,
            registros_inseridos=result.inserted,
            registros_atualizados=result.updated,
            registros_deletados=result.marked_stale,
            registros_falhos=result.failed_records,
            duracao_ms=result.duration_ms,
            mensagem_erro=result.error_message[:4000] if result.error_message else None,
            data_inicio=result.started_at,
            data_fim=result.finished_at,
        )
        with self._session_factory.begin() as session:
            session.add(entry)
        logger.debug(f"[Sync] Log de corrida guardado ({entry.tabela}, sistema {result.system_id})")

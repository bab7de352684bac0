"""
Tests de los repositorios de control (contratos, logs) y de estadísticas espejo.
"""
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import select

from sankhya_mirror.domain.entities.mirror_stats import MirrorStats
from sankhya_mirror.domain.entities.sync_result import SyncResult
from sankhya_mirror.infrastructure.database.models import ContractModel, SyncLogModel
from sankhya_mirror.infrastructure.external.sankhya_sync.entity_mappings import FINANCEIRO
from sankhya_mirror.infrastructure.external.sankhya_sync.mirror_repository import MirrorRepository
from sankhya_mirror.infrastructure.repositories.contract_repository import ContractRepository
from sankhya_mirror.infrastructure.repositories.sync_log_repository import SyncLogRepository
from sankhya_mirror.shared.exceptions.domain import EntityNotFoundException

T0 = datetime(2024, 5, 1, 8, 0, tzinfo=timezone.utc)


@pytest.fixture
def contracts(session_factory):
    with session_factory.begin() as session:
        session.add_all([
            ContractModel(id_empresa=2, empresa="Zeta Ltda", ativo=True, gateway_token="t2",
                          app_key="k2", username="u2", password="p2"),
            ContractModel(id_empresa=1, empresa="Alfa SA", ativo=True, gateway_token="t1",
                          app_key="k1", username="u1", password="p1"),
            ContractModel(id_empresa=3, empresa="Beta ME", ativo=False),
        ])
    return ContractRepository(session_factory)


class TestContractRepository:
    """Directorio de empresas."""

    def test_list_active_ordered_by_name(self, contracts):
        assert [(c.system_id, c.label) for c in contracts.list_active()] == [(1, "Alfa SA"), (2, "Zeta Ltda")]

    def test_get_and_credentials(self, contracts):
        assert contracts.get(2).label == "Zeta Ltda"
        creds = contracts.get_credentials(1)
        assert (creds.token, creds.app_key, creds.username, creds.password) == ("t1", "k1", "u1", "p1")

    def test_missing_credentials_are_empty_strings(self, contracts):
        assert contracts.get_credentials(3).token == ""

    def test_unknown_contract_raises(self, contracts):
        with pytest.raises(EntityNotFoundException):
            contracts.get(42)


class TestSyncLogRepository:
    """Una fila de log por corrida."""

    def test_records_success_and_failure(self, session_factory):
        repo = SyncLogRepository(session_factory)
        repo.record(SyncResult.succeeded(
            system_id=1, system_label="Alfa SA", entity="financeiro", table_name="as_financeiro",
            total_fetched=10, inserted=4, updated=6, marked_stale=7, failed_records=1,
            started_at=T0, finished_at=T0 + timedelta(seconds=3),
        ))
        repo.record(SyncResult.failed(
            system_id=2, system_label="Zeta Ltda", entity="financeiro", table_name="as_financeiro",
            error_message="x" * 5000, started_at=T0, finished_at=T0,
        ))

        with session_factory() as session:
            logs = session.execute(select(SyncLogModel).order_by(SyncLogModel.id)).scalars().all()

        assert [log.status for log in logs] == ["SUCESSO", "FALHA"]
        ok, failed = logs
        assert ok.tabela == "AS_FINANCEIRO"
        assert (ok.total_registros, ok.registros_inseridos, ok.registros_atualizados) == (10, 4, 6)
        assert (ok.registros_deletados, ok.registros_falhos, ok.duracao_ms) == (7, 1, 3000)
        assert ok.mensagem_erro is None
        assert len(failed.mensagem_erro) == 4000
        assert failed.registros_inseridos == 0


def test_mirror_stats_per_system(engine):
    repo = MirrorRepository()
    synced_at = datetime(2024, 5, 1, 8, 0)
    with engine.begin() as conn:
        for nufin in (1, 2, 3):
            repo.upsert_row(conn, FINANCEIRO, system_id=1, row={"nufin": nufin}, synced_at=synced_at)
        repo.upsert_row(conn, FINANCEIRO, system_id=2, row={"nufin": 1}, synced_at=synced_at)
        repo.mark_all_stale(conn, FINANCEIRO, system_id=1, synced_at=synced_at)
        repo.upsert_row(conn, FINANCEIRO, system_id=1, row={"nufin": 1}, synced_at=synced_at)

    with engine.connect() as conn:
        stats = repo.get_stats(conn, FINANCEIRO)
        only_two = repo.get_stats(conn, FINANCEIRO, system_id=2)

    assert [(s.system_id, s.total_rows, s.active_rows, s.stale_rows) for s in stats] == [(1, 3, 1, 2), (2, 1, 1, 0)]
    assert all(isinstance(s, MirrorStats) for s in stats)
    assert stats[0].last_sync_at == synced_at
    assert [s.system_id for s in only_two] == [2]

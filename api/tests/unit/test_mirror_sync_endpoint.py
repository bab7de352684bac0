"""
Tests de los endpoints /api/v1/sync y de MirrorSyncUseCases.

El pipeline se cablea con dobles (gateway y directorio falsos) sobre la base
SQLite del test; el API se prueba con httpx.AsyncClient + ASGITransport.
"""
import pytest
from httpx import ASGITransport, AsyncClient

from main import create_application
from sankhya_mirror.api.v1.dependencies.use_case_deps import get_mirror_sync_use_cases
from sankhya_mirror.application.use_cases.mirror_sync_use_cases import MirrorSyncUseCases
from sankhya_mirror.domain.repositories.sync_ports import CompanyEntry
from sankhya_mirror.infrastructure.external.sankhya_sync.batch import BatchDriver
from sankhya_mirror.infrastructure.external.sankhya_sync.mirror_repository import MirrorRepository
from sankhya_mirror.infrastructure.external.sankhya_sync.sync_service import SnapshotReconciler, SyncComponents
from sankhya_mirror.shared.exceptions.domain import EntityNotFoundException, ValidationException
from sankhya_mirror.shared.exceptions.sync import RemoteApiException


@pytest.fixture
def use_cases(engine, connection_provider, fake_client, token_provider, log_sink, make_directory):
    mirror_repo = MirrorRepository()
    reconciler = SnapshotReconciler(
        client=fake_client,
        token_provider=token_provider,
        connection_provider=connection_provider,
        log_sink=log_sink,
        mirror_repo=mirror_repo,
    )
    directory = make_directory([CompanyEntry(1, "Alfa SA"), CompanyEntry(2, "Zeta Ltda")])
    components = SyncComponents(
        engine=engine,
        reconciler=reconciler,
        batch_driver=BatchDriver(reconciler=reconciler, directory=directory, pause_s=0),
        mirror_repo=mirror_repo,
        connection_provider=connection_provider,
    )
    return MirrorSyncUseCases(components_factory=lambda: components)


@pytest.fixture
def app(use_cases):
    application = create_application()
    application.dependency_overrides[get_mirror_sync_use_cases] = lambda: use_cases
    yield application
    application.dependency_overrides.clear()


@pytest.fixture
def client(app):
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


class TestMirrorSyncUseCases:
    """Validaciones previas a la ejecución."""

    @pytest.mark.asyncio
    async def test_unknown_entity(self, use_cases):
        with pytest.raises(EntityNotFoundException):
            await use_cases.sync_entity("pedidos")

    @pytest.mark.asyncio
    async def test_non_positive_system_id(self, use_cases):
        with pytest.raises(ValidationException):
            await use_cases.sync_system("financeiro", 0)

    @pytest.mark.asyncio
    async def test_components_are_built_once(self):
        built = []

        def _factory():
            built.append(1)
            return object()

        use_cases = MirrorSyncUseCases(components_factory=_factory)
        assert use_cases.components is use_cases.components
        assert built == [1]


class TestSyncEndpoints:
    """Endpoints de reconciliación y estadísticas."""

    @pytest.mark.asyncio
    async def test_sync_entity_runs_batch(self, client, fake_client):
        fake_client.set_records(1, [{"NUFIN": "1"}, {"NUFIN": "2"}])
        fake_client.set_error(2, RemoteApiException("Sankhya request falló 503: indisponible", status="503"))

        async with client as ac:
            response = await ac.post("/api/v1/sync/financeiro")

        assert response.status_code == 200
        body = response.json()
        assert body["entity"] == "financeiro"
        assert (body["successes"], body["failures"]) == (1, 1)
        assert body["totals"]["inserted"] == 2
        assert [r["system_id"] for r in body["results"]] == [1, 2]
        assert "503" in body["results"][1]["error_message"]

    @pytest.mark.asyncio
    async def test_sync_single_system(self, client, fake_client):
        fake_client.set_records(2, [{"CODPROD": "5", "NUTAB": "1", "CODLOCAL": "0"}])

        async with client as ac:
            response = await ac.post("/api/v1/sync/excecao_preco/systems/2")

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["system_label"] == "Zeta Ltda"
        assert body["table_name"] == "as_excecao_preco"
        assert body["inserted"] == 1

    @pytest.mark.asyncio
    async def test_unknown_entity_returns_404(self, client):
        async with client as ac:
            response = await ac.post("/api/v1/sync/pedidos")

        assert response.status_code == 404
        assert response.json()["error"] == "ENTITY_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_unknown_system_returns_404(self, client):
        async with client as ac:
            response = await ac.post("/api/v1/sync/financeiro/systems/99")

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_invalid_system_id_returns_400(self, client):
        async with client as ac:
            response = await ac.post("/api/v1/sync/financeiro/systems/-1")

        assert response.status_code == 400
        assert response.json()["details"] == {"field": "system_id"}

    @pytest.mark.asyncio
    async def test_stats_after_sync(self, client, fake_client):
        fake_client.set_records(1, [{"NUFIN": "1"}, {"NUFIN": "2"}])

        async with client as ac:
            await ac.post("/api/v1/sync/financeiro/systems/1")
            fake_client.set_records(1, [{"NUFIN": "1"}])
            await ac.post("/api/v1/sync/financeiro/systems/1")
            response = await ac.get("/api/v1/sync/financeiro/stats", params={"system_id": 1})

        assert response.status_code == 200
        stats = response.json()
        assert len(stats) == 1
        assert (stats[0]["total_rows"], stats[0]["active_rows"], stats[0]["stale_rows"]) == (2, 1, 1)
        assert stats[0]["last_sync_at"] is not None

    @pytest.mark.asyncio
    async def test_health(self, client):
        async with client as ac:
            response = await ac.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestLifespan:
    """Inicio y cierre de la aplicación."""

    @pytest.mark.asyncio
    async def test_lifespan_creates_tables_and_closes_db(self, monkeypatch, tmp_path):
        from sankhya_mirror.core import events
        from sankhya_mirror.infrastructure.external.sankhya_sync.entity_mappings import ENTITY_CONFIGS

        calls = []
        monkeypatch.setattr(events, "init_db", lambda engine, configs: calls.append(("init_db", list(configs))))
        monkeypatch.setattr(events, "close_db", lambda: calls.append(("close_db", None)))
        monkeypatch.setattr(events.settings, "LOG_FILE", str(tmp_path / "sync.log"))

        application = create_application()
        async with application.router.lifespan_context(application):
            assert calls == [("init_db", list(ENTITY_CONFIGS.values()))]

        assert calls[-1] == ("close_db", None)

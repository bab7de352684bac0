"""
Configuración de fixtures para pytest.

La base espejo de los tests es un SQLite en archivo temporal (una base por
test): el log sink abre su propia sesión y necesita ver las mismas tablas.
"""
from typing import Any, Callable, Dict, Iterator, List, Optional

import pytest
from sqlalchemy import select
from sqlalchemy.engine import Engine

from sankhya_mirror.domain.entities.sync_result import SyncResult
from sankhya_mirror.domain.repositories.sync_ports import (
    CompanyEntry,
    ICompanyDirectory,
    ISyncLogSink,
    ITokenProvider,
)
from sankhya_mirror.infrastructure.database.session import (
    EngineConnectionProvider,
    create_mirror_engine,
    get_session_factory,
    init_db,
)
from sankhya_mirror.infrastructure.external.sankhya_sync.decoder import DecodedSnapshot
from sankhya_mirror.infrastructure.external.sankhya_sync.entity_mappings import ENTITY_CONFIGS
from sankhya_mirror.infrastructure.external.sankhya_sync.mirror_repository import mirror_table_for
from sankhya_mirror.shared.exceptions.domain import EntityNotFoundException


@pytest.fixture
def engine(tmp_path) -> Iterator[Engine]:
    """Engine SQLite con tablas de control y espejo creadas."""
    mirror_engine = create_mirror_engine(f"sqlite:///{tmp_path / 'mirror.db'}")
    init_db(mirror_engine, configs=ENTITY_CONFIGS.values())
    yield mirror_engine
    mirror_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return get_session_factory(engine)


@pytest.fixture
def connection_provider(engine) -> EngineConnectionProvider:
    return EngineConnectionProvider(engine)


@pytest.fixture
def fetch_rows(engine) -> Callable[..., List[Dict[str, Any]]]:
    """Lee las filas espejo de una entidad (opcionalmente de un sistema)."""

    def _fetch(config, system_id: Optional[int] = None) -> List[Dict[str, Any]]:
        table = mirror_table_for(config)
        query = select(table).order_by(table.c.id)
        if system_id is not None:
            query = query.where(table.c.id_sistema == system_id)
        with engine.connect() as conn:
            return [dict(r._mapping) for r in conn.execute(query)]

    return _fetch


@pytest.fixture
def gateway_payload() -> Callable[..., Dict[str, Any]]:
    """
    Construye una respuesta loadRecords en el formato posicional del gateway.

    rows: lista de listas de valores en el orden de `fields`; None = celda vacía.
    """

    def _build(fields: List[str], rows: List[List[Any]], total: Any = "__auto__", status: str = "1"):
        entities: Dict[str, Any] = {
            "metadata": {"fields": {"field": [{"name": f} for f in fields]}},
        }
        raw = []
        for row in rows:
            raw.append({
                f"f{i}": ({} if value is None else {"$": value})
                for i, value in enumerate(row)
            })
        if raw:
            entities["entity"] = raw
        entities["total"] = str(len(rows)) if total == "__auto__" else total
        return {"serviceName": "CRUDServiceProvider.loadRecords", "status": status, "responseBody": {"entities": entities}}

    return _build


# --- Dobles de test de los colaboradores externos ---


class FakeTokenProvider(ITokenProvider):
    def __init__(self, error: Optional[Exception] = None):
        self.error = error
        self.calls: List[tuple] = []

    def acquire(self, system_id: int, force_refresh: bool = False) -> str:
        self.calls.append((system_id, force_refresh))
        if self.error is not None:
            raise self.error
        return f"bearer-{system_id}"


class FakeClient:
    """Devuelve snapshots programados por sistema (via el bearer token)."""

    def __init__(self):
        self.snapshots: Dict[int, Any] = {}
        self.calls: List[str] = []

    def set_records(self, system_id: int, records: List[Dict[str, Any]]) -> None:
        self.snapshots[system_id] = DecodedSnapshot(records=list(records), declared_total=len(records))

    def set_error(self, system_id: int, error: Exception) -> None:
        self.snapshots[system_id] = error

    def fetch_snapshot(self, bearer_token: str, config) -> DecodedSnapshot:
        self.calls.append(bearer_token)
        system_id = int(bearer_token.rsplit("-", 1)[1])
        outcome = self.snapshots.get(system_id, DecodedSnapshot())
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class FakeLogSink(ISyncLogSink):
    def __init__(self, error: Optional[Exception] = None):
        self.error = error
        self.results: List[SyncResult] = []

    def record(self, result: SyncResult) -> None:
        self.results.append(result)
        if self.error is not None:
            raise self.error


class FakeDirectory(ICompanyDirectory):
    def __init__(self, companies: List[CompanyEntry]):
        self.companies = companies

    def list_active(self) -> List[CompanyEntry]:
        return list(self.companies)

    def get(self, system_id: int) -> CompanyEntry:
        for company in self.companies:
            if company.system_id == system_id:
                return company
        raise EntityNotFoundException("Contrato", system_id)


@pytest.fixture
def token_provider() -> FakeTokenProvider:
    return FakeTokenProvider()


@pytest.fixture
def fake_client() -> FakeClient:
    return FakeClient()


@pytest.fixture
def log_sink() -> FakeLogSink:
    return FakeLogSink()


@pytest.fixture
def make_directory() -> Callable[[List[CompanyEntry]], FakeDirectory]:
    return FakeDirectory

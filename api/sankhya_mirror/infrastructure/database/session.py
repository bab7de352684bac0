"""
Gestión del engine y las conexiones de la base espejo.

El job de sync es síncrono (batch secuencial), por eso se usa el engine
síncrono de SQLAlchemy sobre psycopg (v3).
"""
from functools import lru_cache
from typing import Iterable, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.orm import declarative_base, sessionmaker

from sankhya_mirror.core.config import settings
from sankhya_mirror.domain.repositories.sync_ports import IConnectionProvider


# Base para modelos de SQLAlchemy (ORM + tablas espejo Core)
Base = declarative_base()


def _create_engine_args(url: str) -> dict:
    """
    Construye los argumentos del engine segun el tipo de base de datos.
    PostgreSQL usa pool de conexiones, SQLite no lo soporta.
    """
    args = {
        "echo": settings.DEBUG,
        "future": True,
    }

    # Configuracion de pool solo para PostgreSQL
    if url.startswith("postgresql"):
        args.update({
            "pool_size": settings.DB_POOL_SIZE,
            "max_overflow": settings.DB_MAX_OVERFLOW,
            "pool_pre_ping": True,  # Verifica conexion antes de usar
        })

    return args


def _enable_sqlite_savepoints(engine: Engine) -> None:
    """
    pysqlite maneja BEGIN por su cuenta y rompe los SAVEPOINT.
    Se desactiva y se emite BEGIN explícito (receta de la doc de SQLAlchemy).
    """

    @event.listens_for(engine, "connect")
    def _do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _do_begin(conn):
        conn.exec_driver_sql("BEGIN")


def create_mirror_engine(url: Optional[str] = None, **overrides) -> Engine:
    """
    Crea un engine para la base espejo.

    Args:
        url: URL SQLAlchemy; por defecto settings.effective_database_url
        overrides: argumentos extra para create_engine
    """
    url = url or settings.effective_database_url
    args = _create_engine_args(url)
    args.update(overrides)
    engine = create_engine(url, **args)
    if engine.dialect.name == "sqlite":
        _enable_sqlite_savepoints(engine)
    return engine


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    """Engine global (lazy: no conecta al importar)."""
    return create_mirror_engine()


def get_session_factory(engine: Optional[Engine] = None) -> sessionmaker:
    """Session factory para los repositorios ORM (contratos, logs)."""
    return sessionmaker(
        bind=engine or get_engine(),
        expire_on_commit=False,
        autoflush=False,
    )


class EngineConnectionProvider(IConnectionProvider):
    """Connection provider sobre el pool del engine."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def acquire(self) -> Connection:
        return self._engine.connect()

    def release(self, connection: Connection) -> None:
        connection.close()


def init_db(engine: Optional[Engine] = None, configs: Iterable = ()) -> None:
    """
    Crea las tablas que falten (modelos ORM + tablas espejo de `configs`).
    No migra tablas existentes.
    """
    # Import tardío: registra las tablas espejo en Base.metadata
    from sankhya_mirror.infrastructure.external.sankhya_sync.mirror_repository import mirror_table_for
    import sankhya_mirror.infrastructure.database.models  # noqa: F401

    for config in configs:
        mirror_table_for(config)
    Base.metadata.create_all(engine or get_engine())


def close_db() -> None:
    """Cierra las conexiones del pool global si se llegó a crear."""
    if get_engine.cache_info().currsize:
        get_engine().dispose()

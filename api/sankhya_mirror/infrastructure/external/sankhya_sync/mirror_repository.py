"""
Repositorio de las tablas espejo (SQLAlchemy Core) para:
- marcado de filas no actuales (soft delete previo al upsert)
- UPSERT por (id_sistema, clave de negocio)
- estadísticas de sincronización

Cada tabla espejo se genera a partir de su EntitySyncConfig. Las filas nunca
se borran físicamente: desaparecer del remoto = is_active false.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import (
    BigInteger,
    Boolean,
    Column,
    DateTime,
    Index,
    Integer,
    MetaData,
    Table,
    UniqueConstraint,
    and_,
    case,
    func,
    insert,
    select,
    update,
)
from sqlalchemy.engine import Connection
from sqlalchemy.exc import DBAPIError, SQLAlchemyError

from sankhya_mirror.domain.entities.mirror_stats import MirrorStats
from sankhya_mirror.infrastructure.database.session import Base

from .sync_config import (
    ACTIVE_COLUMN,
    CREATED_AT_COLUMN,
    LAST_SYNC_COLUMN,
    SYSTEM_ID_COLUMN,
    EntitySyncConfig,
)
from .types import UpsertOutcome

# Errores que afectan a un único registro: se registran y el loop sigue.
ROW_LEVEL_ERRORS = (SQLAlchemyError, ValueError, TypeError, ArithmeticError)


def is_connection_error(exc: BaseException) -> bool:
    """True si el error invalida la conexión (fatal para la corrida)."""
    return isinstance(exc, DBAPIError) and bool(exc.connection_invalidated)


def mirror_table_for(config: EntitySyncConfig, metadata: Optional[MetaData] = None) -> Table:
    """
    Retorna (o registra) la tabla espejo de la entidad.

    Columnas: id surrogate, id_sistema, una columna por field mapeado
    (nullable salvo la clave), is_active, last_sync_at, created_at.
    """
    metadata = metadata if metadata is not None else Base.metadata
    existing = metadata.tables.get(config.table_name)
    if existing is not None:
        return existing

    columns = [
        Column("id", BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True),
        Column(SYSTEM_ID_COLUMN, Integer, nullable=False),
    ]
    for m in config.field_mappings:
        columns.append(Column(m.column, m.column_type, nullable=m.column not in config.key_columns))
    columns.extend([
        Column(ACTIVE_COLUMN, Boolean, nullable=False, default=True),
        Column(LAST_SYNC_COLUMN, DateTime(timezone=True), nullable=False),
        Column(CREATED_AT_COLUMN, DateTime(timezone=True), nullable=False),
    ])

    return Table(
        config.table_name,
        metadata,
        *columns,
        UniqueConstraint(SYSTEM_ID_COLUMN, *config.key_columns, name=f"uq_{config.table_name}_business_key"),
        Index(f"ix_{config.table_name}_active", SYSTEM_ID_COLUMN, ACTIVE_COLUMN),
    )


class MirrorRepository:
    """
    Operaciones sobre las tablas espejo. El caller controla la transacción:
    ningún método hace commit.
    """

    def __init__(self, metadata: Optional[MetaData] = None) -> None:
        self._metadata = metadata

    def table(self, config: EntitySyncConfig) -> Table:
        return mirror_table_for(config, self._metadata)

    def mark_all_stale(
        self,
        conn: Connection,
        config: EntitySyncConfig,
        *,
        system_id: int,
        synced_at: datetime,
    ) -> int:
        """
        Marca todas las filas activas del sistema como no actuales.

        Retorna la cantidad de filas afectadas (cota superior de las
        eliminaciones: el upsert posterior reactiva las que sigan en el remoto).
        """
        table = self.table(config)
        result = conn.execute(
            update(table)
            .where(
                table.c[SYSTEM_ID_COLUMN] == system_id,
                table.c[ACTIVE_COLUMN].is_(True),
            )
            .values({ACTIVE_COLUMN: False, LAST_SYNC_COLUMN: synced_at})
        )
        return result.rowcount or 0

    def upsert_row(
        self,
        conn: Connection,
        config: EntitySyncConfig,
        *,
        system_id: int,
        row: Dict[str, Any],
        synced_at: datetime,
    ) -> UpsertOutcome:
        """
        Inserta o actualiza una fila espejo y la deja activa.

        - Existe (id_sistema + clave): actualiza fields de negocio,
          is_active = true, last_sync_at = synced_at. created_at no se toca.
        - No existe: inserta con created_at = last_sync_at = synced_at.

        Corre dentro de un SAVEPOINT: si falla, solo se revierte esta fila y la
        transacción de la corrida sigue utilizable. La excepción se propaga.
        """
        table = self.table(config)
        key_clause = and_(
            table.c[SYSTEM_ID_COLUMN] == system_id,
            *[table.c[k] == row.get(k) for k in config.key_columns],
        )

        with conn.begin_nested():
            existing_id = conn.execute(select(table.c.id).where(key_clause)).scalar_one_or_none()

            if existing_id is not None:
                values = {c: row.get(c) for c in config.business_columns}
                values.update({ACTIVE_COLUMN: True, LAST_SYNC_COLUMN: synced_at})
                conn.execute(update(table).where(table.c.id == existing_id).values(values))
                return UpsertOutcome.UPDATED

            values = dict(row)
            values.update({
                SYSTEM_ID_COLUMN: system_id,
                ACTIVE_COLUMN: True,
                LAST_SYNC_COLUMN: synced_at,
                CREATED_AT_COLUMN: synced_at,
            })
            conn.execute(insert(table).values(values))
            return UpsertOutcome.INSERTED

    def get_stats(
        self,
        conn: Connection,
        config: EntitySyncConfig,
        *,
        system_id: Optional[int] = None,
    ) -> List[MirrorStats]:
        """Totales, activos, no actuales y última carga, agrupados por sistema."""
        table = self.table(config)
        active = table.c[ACTIVE_COLUMN]
        query = (
            select(
                table.c[SYSTEM_ID_COLUMN].label("system_id"),
                func.count().label("total_rows"),
                func.sum(case((active.is_(True), 1), else_=0)).label("active_rows"),
                func.sum(case((active.is_(False), 1), else_=0)).label("stale_rows"),
                func.max(table.c[LAST_SYNC_COLUMN]).label("last_sync_at"),
            )
            .group_by(table.c[SYSTEM_ID_COLUMN])
            .order_by(table.c[SYSTEM_ID_COLUMN])
        )
        if system_id is not None:
            query = query.where(table.c[SYSTEM_ID_COLUMN] == system_id)

        return [
            MirrorStats(
                system_id=r.system_id,
                total_rows=int(r.total_rows or 0),
                active_rows=int(r.active_rows or 0),
                stale_rows=int(r.stale_rows or 0),
                last_sync_at=r.last_sync_at,
            )
            for r in conn.execute(query)
        ]

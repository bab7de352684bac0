"""
Configuración del sync (descriptor Sankhya -> tabla espejo).

Un único motor de reconciliación se parametriza con un EntitySyncConfig por
tipo de registro:
- entidad raíz Sankhya y fieldset solicitado
- tabla espejo local y columnas de clave de negocio
- mapeos de fields, tipos de columna y saneamiento

Este módulo no realiza I/O: solo define configuración.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Tuple

from sankhya_mirror.shared.exceptions.sync import SyncConfigException

from .types import FieldMapping, RemoteRecord

SYSTEM_ID_COLUMN = "id_sistema"
ACTIVE_COLUMN = "is_active"
LAST_SYNC_COLUMN = "last_sync_at"
CREATED_AT_COLUMN = "created_at"


@dataclass(frozen=True)
class EntitySyncConfig:
    """
    Config de una entidad Sankhya -> una tabla espejo.

    NOTA sobre la clave:
    - La fila espejo se identifica por (id_sistema, key_columns).
    - key_columns deben existir entre las columnas de field_mappings.
    """

    entity_key: str
    root_entity: str
    table_name: str
    key_columns: Tuple[str, ...]
    field_mappings: Tuple[FieldMapping, ...]
    request_timeout_s: int = 60

    def __post_init__(self) -> None:
        columns = [m.column for m in self.field_mappings]
        if len(set(columns)) != len(columns):
            raise SyncConfigException(f"Columnas duplicadas en la config '{self.entity_key}'")
        missing = [k for k in self.key_columns if k not in columns]
        if not self.key_columns or missing:
            raise SyncConfigException(
                f"Config '{self.entity_key}': columnas clave sin mapeo {missing or '(vacío)'}"
            )

    @property
    def remote_fields(self) -> List[str]:
        """Fieldset explícito en el orden declarado."""
        return [m.remote_field for m in self.field_mappings]

    @property
    def business_columns(self) -> List[str]:
        """Columnas que el UPDATE refresca (todo salvo la clave)."""
        return [m.column for m in self.field_mappings if m.column not in self.key_columns]

    def map_record(self, record: RemoteRecord) -> Dict[str, Any]:
        """
        Mapea un registro decodificado a {columna: valor saneado}.

        Puede levantar ValueError/TypeError si un valor no es convertible:
        eso es un error a nivel de registro.
        """
        return {m.column: m.apply(record) for m in self.field_mappings}

    def describe_key(self, record: RemoteRecord) -> str:
        """Clave de negocio legible (para logs), sin transformar."""
        by_column = {m.column: m.remote_field for m in self.field_mappings}
        return ", ".join(f"{by_column[k]}={record.get(by_column[k])}" for k in self.key_columns)

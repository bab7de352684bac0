"""
Tipos y transformaciones puras para el pipeline Sankhya -> base espejo.

Se mantienen libres de I/O para poder testearlos fácilmente.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Optional

from sqlalchemy.types import TypeEngine

# Registro decodificado: nombre de field Sankhya -> valor crudo (string en general).
RemoteRecord = Dict[str, Any]

Transform = Callable[[Any], Any]


class UpsertOutcome(str, Enum):
    """Resultado de un upsert individual."""

    INSERTED = "inserted"
    UPDATED = "updated"


@dataclass(frozen=True)
class FieldMapping:
    """
    Define el mapeo de un field Sankhya a una columna de la tabla espejo.

    - remote_field: nombre del field en el fieldset Sankhya (p.ej. "NUFIN")
    - column: nombre de la columna local
    - column_type: tipo SQLAlchemy de la columna
    - transform: función opcional para sanear el valor antes de persistir
    """

    remote_field: str
    column: str
    column_type: TypeEngine
    transform: Optional[Transform] = None

    def apply(self, record: RemoteRecord) -> Any:
        raw = record.get(self.remote_field)
        if self.transform is None:
            return raw
        return self.transform(raw)


def to_int(value: Any) -> Optional[int]:
    """
    Convierte a int. Vacío -> None. Un valor no numérico levanta ValueError
    (error a nivel de registro, lo maneja el loop de upsert).
    """
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValueError(f"Valor booleano no es un entero válido: {value!r}")
    if isinstance(value, int):
        return value
    text = str(value).strip()
    if not text:
        return None
    return int(text)


def to_str(value: Any) -> Optional[str]:
    """Convierte a string; vacío -> None."""
    if value is None:
        return None
    text = str(value)
    return text if text.strip() else None

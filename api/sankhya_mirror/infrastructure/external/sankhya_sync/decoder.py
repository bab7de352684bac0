"""
Decodificador de respuestas posicionales de CRUDServiceProvider.loadRecords.

Sankhya no devuelve los registros por nombre de campo: devuelve un bloque
`metadata.fields.field` (índice -> nombre) y cada entity con valores bajo
claves posicionales `f0`, `f1`, ... con la forma {"$": valor}.

La decodificación es en dos fases, sin mezclarlas:
1. build_field_index: tabla índice -> nombre a partir de la metadata
2. decode_entity: cada entity cruda se mapea a través de esa tabla
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from sankhya_mirror.shared.exceptions.sync import MalformedResponseException, RemoteApiException

from .types import RemoteRecord

STATUS_OK = "1"


@dataclass(frozen=True)
class DecodedSnapshot:
    """Snapshot remoto ya decodificado."""

    records: List[RemoteRecord] = field(default_factory=list)
    field_names: List[str] = field(default_factory=list)
    declared_total: Optional[int] = None

    @property
    def is_empty(self) -> bool:
        return not self.records


def as_list(value: Any) -> List[Any]:
    """
    El gateway serializa colecciones de un solo elemento como objeto suelto.
    Normaliza a lista: None -> [], dict -> [dict], lista -> lista.
    """
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


def _parse_total(raw: Any) -> Optional[int]:
    if raw is None or raw == "":
        return None
    try:
        return int(str(raw).strip())
    except ValueError:
        raise MalformedResponseException(f"Campo 'total' inválido en la respuesta: {raw!r}")


def build_field_index(metadata: Any) -> Dict[int, str]:
    """
    Fase 1: construye la tabla índice posicional -> nombre de field.

    Raises:
        MalformedResponseException: metadata ausente o fields sin nombre
    """
    if not isinstance(metadata, dict):
        raise MalformedResponseException("La respuesta no contiene 'metadata' de fields")

    fields = metadata.get("fields")
    raw_fields = as_list(fields.get("field") if isinstance(fields, dict) else None)
    if not raw_fields:
        raise MalformedResponseException("La metadata no declara ningún field")

    index: Dict[int, str] = {}
    for position, raw in enumerate(raw_fields):
        name = raw.get("name") if isinstance(raw, dict) else None
        if not name:
            raise MalformedResponseException(f"Field sin nombre en la posición {position} de la metadata")
        index[position] = str(name)
    return index


def _cell_value(cell: Any) -> Any:
    """Extrae el valor de una celda posicional; None si está ausente."""
    if isinstance(cell, dict):
        return cell.get("$")
    return cell


def decode_entity(raw_entity: Any, field_index: Dict[int, str]) -> RemoteRecord:
    """
    Fase 2: mapea una entity cruda a un registro con nombres.

    Las posiciones ausentes (o celdas vacías como {}) se omiten: no se
    setea ningún placeholder.
    """
    if not isinstance(raw_entity, dict):
        raise MalformedResponseException(f"Entity con formato inesperado: {type(raw_entity).__name__}")

    record: RemoteRecord = {}
    for position, name in field_index.items():
        value = _cell_value(raw_entity.get(f"f{position}"))
        if value is not None:
            record[name] = value
    return record


def decode_entities(metadata: Any, raw_entities: Sequence[Any]) -> List[RemoteRecord]:
    """Decodifica una colección de entities con la metadata dada."""
    field_index = build_field_index(metadata)
    return [decode_entity(raw, field_index) for raw in raw_entities]


def decode_load_records_response(payload: Any) -> DecodedSnapshot:
    """
    Decodifica la respuesta completa de loadRecords.

    Reglas de vacío vs mal formado:
    - status distinto de "1" -> RemoteApiException (nunca se trata como vacío,
      para no disparar un soft delete masivo por un error de auth)
    - sin responseBody.entities -> MalformedResponseException
    - entities sin 'entity' y total ausente o 0 -> snapshot vacío válido
    - entities sin 'entity' pero total > 0 -> MalformedResponseException
    - entities con registros pero sin metadata -> MalformedResponseException
    """
    if not isinstance(payload, dict):
        raise MalformedResponseException("La respuesta del gateway no es un objeto JSON")

    status = payload.get("status")
    if status is not None and str(status) != STATUS_OK:
        message = payload.get("statusMessage") or "sin statusMessage"
        raise RemoteApiException(f"Sankhya respondió status {status}: {message}", status=str(status))

    body = payload.get("responseBody")
    entities = body.get("entities") if isinstance(body, dict) else None
    if not isinstance(entities, dict):
        raise MalformedResponseException("La respuesta no contiene responseBody.entities")

    declared_total = _parse_total(entities.get("total"))
    raw_entities = as_list(entities.get("entity"))

    if not raw_entities:
        if declared_total:
            raise MalformedResponseException(
                f"La respuesta declara total={declared_total} pero no trae entities"
            )
        return DecodedSnapshot(records=[], declared_total=declared_total or 0)

    metadata = entities.get("metadata")
    return DecodedSnapshot(
        records=decode_entities(metadata, raw_entities),
        field_names=list(build_field_index(metadata).values()),
        declared_total=declared_total,
    )

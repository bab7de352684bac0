"""
Descriptores de las entidades Sankhya espejadas.

Agregar una entidad nueva = declarar su EntitySyncConfig aquí; el motor de
reconciliación no cambia.
"""

from __future__ import annotations

from functools import partial
from typing import Dict, List

from sqlalchemy import DateTime, Integer, Numeric, String, Text

from sankhya_mirror.core.config import settings
from sankhya_mirror.shared.exceptions.domain import EntityNotFoundException

from .sanitizers import clamp_decimal, parse_sankhya_date
from .sync_config import EntitySyncConfig
from .types import FieldMapping, to_int, to_str

_MAX_DIGITS = settings.DECIMAL_MAX_DIGITS
_money = partial(clamp_decimal, max_digits=_MAX_DIGITS)


def _int_field(remote: str) -> FieldMapping:
    return FieldMapping(remote_field=remote, column=remote.lower(), column_type=Integer(), transform=to_int)


def _money_field(remote: str) -> FieldMapping:
    return FieldMapping(
        remote_field=remote,
        column=remote.lower(),
        column_type=Numeric(_MAX_DIGITS, 2),
        transform=_money,
    )


def _date_field(remote: str) -> FieldMapping:
    return FieldMapping(
        remote_field=remote,
        column=remote.lower(),
        column_type=DateTime(),
        transform=parse_sankhya_date,
    )


def _str_field(remote: str, length: int | None = None) -> FieldMapping:
    column_type = String(length) if length else Text()
    return FieldMapping(remote_field=remote, column=remote.lower(), column_type=column_type, transform=to_str)


FINANCEIRO = EntitySyncConfig(
    entity_key="financeiro",
    root_entity="Financeiro",
    table_name="as_financeiro",
    key_columns=("nufin",),
    field_mappings=(
        _int_field("NUFIN"),
        _int_field("CODPARC"),
        _int_field("CODEMP"),
        _money_field("VLRDESDOB"),
        _date_field("DTVENC"),
        _date_field("DTNEG"),
        _str_field("PROVISAO", 1),
        _date_field("DHBAIXA"),
        _money_field("VLRBAIXA"),
        _int_field("RECDESP"),
        _str_field("NOSSONUM", 100),
        _int_field("CODCTABCOINT"),
        _str_field("HISTORICO"),
        _int_field("NUMNOTA"),
    ),
    request_timeout_s=60,
)

EXCECAO_PRECO = EntitySyncConfig(
    entity_key="excecao_preco",
    root_entity="Excecao",
    table_name="as_excecao_preco",
    key_columns=("codprod", "nutab", "codlocal"),
    field_mappings=(
        _int_field("CODPROD"),
        _money_field("VLRANT"),
        _money_field("VARIACAO"),
        _int_field("NUTAB"),
        _str_field("TIPO", 10),
        _money_field("VLRVENDA"),
        _int_field("CODLOCAL"),
        _str_field("CONTROLE", 100),
    ),
    request_timeout_s=30,
)

ENTITY_CONFIGS: Dict[str, EntitySyncConfig] = {
    FINANCEIRO.entity_key: FINANCEIRO,
    EXCECAO_PRECO.entity_key: EXCECAO_PRECO,
}


def get_entity_config(entity_key: str) -> EntitySyncConfig:
    """
    Retorna el descriptor de la entidad indicada.

    Raises:
        EntityNotFoundException: si la entidad no está registrada
    """
    config = ENTITY_CONFIGS.get(entity_key)
    if config is None:
        raise EntityNotFoundException("Entidad de sync", entity_key)
    return config


def list_entity_keys() -> List[str]:
    return list(ENTITY_CONFIGS.keys())

"""
Tests de los descriptores de entidad y del mapeo de registros.
"""
from decimal import Decimal
from datetime import datetime

import pytest
from sqlalchemy import Integer

from sankhya_mirror.infrastructure.external.sankhya_sync.entity_mappings import (
    EXCECAO_PRECO,
    FINANCEIRO,
    get_entity_config,
    list_entity_keys,
)
from sankhya_mirror.infrastructure.external.sankhya_sync.sync_config import EntitySyncConfig
from sankhya_mirror.infrastructure.external.sankhya_sync.types import FieldMapping, to_int, to_str
from sankhya_mirror.shared.exceptions.domain import EntityNotFoundException
from sankhya_mirror.shared.exceptions.sync import SyncConfigException


def test_to_int_conversions():
    assert to_int("42") == 42
    assert to_int(" 7 ") == 7
    assert to_int("") is None
    assert to_int(None) is None
    with pytest.raises(ValueError):
        to_int("12a")
    with pytest.raises(ValueError):
        to_int(True)


def test_to_str_empty_is_none():
    assert to_str("  ") is None
    assert to_str("ABC") == "ABC"
    assert to_str(10) == "10"


def test_registered_entities():
    assert list_entity_keys() == ["financeiro", "excecao_preco"]
    assert get_entity_config("financeiro") is FINANCEIRO


def test_unknown_entity_raises_not_found():
    with pytest.raises(EntityNotFoundException) as exc_info:
        get_entity_config("pedidos")
    assert exc_info.value.status_code == 404


def test_financeiro_fieldset_and_key():
    assert FINANCEIRO.root_entity == "Financeiro"
    assert FINANCEIRO.key_columns == ("nufin",)
    assert FINANCEIRO.remote_fields[0] == "NUFIN"
    assert "nufin" not in FINANCEIRO.business_columns
    assert "historico" in FINANCEIRO.business_columns


def test_excecao_has_composite_key():
    assert EXCECAO_PRECO.root_entity == "Excecao"
    assert EXCECAO_PRECO.key_columns == ("codprod", "nutab", "codlocal")


def test_map_record_sanitizes_values():
    row = FINANCEIRO.map_record({
        "NUFIN": "123",
        "VLRDESDOB": "1500.75",
        "DTVENC": "10/01/2024",
        "DHBAIXA": "fecha-rota",
        "HISTORICO": "",
    })

    assert row["nufin"] == 123
    assert row["vlrdesdob"] == Decimal("1500.75")
    assert row["dtvenc"] == datetime(2024, 1, 10)
    assert row["dhbaixa"] is None
    assert row["historico"] is None
    # Fields ausentes quedan en None (se persisten como NULL)
    assert row["codparc"] is None


def test_map_record_invalid_key_raises_value_error():
    with pytest.raises(ValueError):
        FINANCEIRO.map_record({"NUFIN": "no-numerico"})


def test_describe_key_uses_remote_names():
    record = {"CODPROD": "10", "NUTAB": "3", "CODLOCAL": "0"}
    assert EXCECAO_PRECO.describe_key(record) == "CODPROD=10, NUTAB=3, CODLOCAL=0"


def test_config_rejects_unmapped_key():
    with pytest.raises(SyncConfigException):
        EntitySyncConfig(
            entity_key="x",
            root_entity="X",
            table_name="as_x",
            key_columns=("id",),
            field_mappings=(FieldMapping("OTRO", "otro", Integer()),),
        )


def test_config_rejects_duplicate_columns():
    with pytest.raises(SyncConfigException):
        EntitySyncConfig(
            entity_key="x",
            root_entity="X",
            table_name="as_x",
            key_columns=("id",),
            field_mappings=(FieldMapping("ID", "id", Integer()), FieldMapping("ID2", "id", Integer())),
        )

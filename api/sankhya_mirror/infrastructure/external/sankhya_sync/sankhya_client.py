"""
Cliente mínimo del gateway Sankhya (CRUDServiceProvider.loadRecords).

Requisitos cubiertos:
- requests
- snapshot completo (disableRowsLimit) con fieldset explícito
- un solo intento por corrida: el caller puede re-ejecutar la reconciliación
"""

from __future__ import annotations

from typing import Any, Optional

import requests
from loguru import logger

from sankhya_mirror.shared.exceptions.sync import RemoteApiException

from .decoder import DecodedSnapshot, decode_load_records_response
from .sync_config import EntitySyncConfig


def build_load_records_payload(root_entity: str, fields: list[str]) -> dict[str, Any]:
    """
    Construye el body de loadRecords para traer el dataset completo de una entidad.
    """
    return {
        "requestBody": {
            "dataSet": {
                "rootEntity": root_entity,
                "includePresentationFields": "N",
                "offsetPage": None,
                "disableRowsLimit": True,
                "entity": {
                    "fieldset": {
                        "list": ", ".join(fields),
                    }
                },
            }
        }
    }


class SankhyaClient:
    """
    Cliente HTTP del gateway. Devuelve snapshots ya decodificados.

    Importante:
    - No hace cast de tipos: eso se decide en los FieldMapping de cada entidad.
    - No reintenta: cualquier error de transporte/parseo es fatal para la corrida.
    """

    def __init__(
        self,
        *,
        load_records_url: str,
        session: Optional[requests.Session] = None,
        default_timeout_s: int = 60,
    ) -> None:
        self._url = load_records_url
        self._session = session or requests.Session()
        self._default_timeout_s = default_timeout_s

    def fetch_snapshot(self, bearer_token: str, config: EntitySyncConfig) -> DecodedSnapshot:
        """
        Trae el snapshot completo de la entidad configurada.

        Raises:
            RemoteApiException: error de red, HTTP no 2xx, JSON inválido o status de error
            MalformedResponseException: respuesta sin el contrato metadata/entities
        """
        logger.info(f"[Sync] Buscando '{config.root_entity}' en Sankhya ({len(config.remote_fields)} fields)...")
        payload = build_load_records_payload(config.root_entity, config.remote_fields)
        body = self._post_json(
            payload,
            bearer_token=bearer_token,
            timeout_s=config.request_timeout_s or self._default_timeout_s,
        )

        snapshot = decode_load_records_response(body)
        if snapshot.is_empty:
            logger.warning(f"[Sync] Sankhya no devolvió registros de '{config.root_entity}' (snapshot vacío)")
        else:
            logger.info(f"[Sync] {len(snapshot.records)} registros de '{config.root_entity}' recibidos")
        return snapshot

    def _post_json(self, payload: dict[str, Any], *, bearer_token: str, timeout_s: int) -> Any:
        headers = {
            "Authorization": f"Bearer {bearer_token}",
            "Content-Type": "application/json",
        }
        try:
            resp = self._session.post(self._url, json=payload, headers=headers, timeout=timeout_s)
        except requests.RequestException as e:
            raise RemoteApiException(f"Error de red consultando Sankhya: {e}") from e

        if not 200 <= resp.status_code < 300:
            raise RemoteApiException(
                f"Sankhya request falló {resp.status_code}: {resp.text[:500]}",
                status=str(resp.status_code),
            )

        try:
            return resp.json()
        except ValueError as e:
            raise RemoteApiException(f"Sankhya devolvió un cuerpo no JSON: {resp.text[:200]}") from e

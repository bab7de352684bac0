"""
Obtención del bearer token del gateway Sankhya (POST /login).

Cada contrato tiene sus propias credenciales (token, appkey, usuario, clave).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Optional

import requests
from loguru import logger

from sankhya_mirror.domain.repositories.sync_ports import ITokenProvider
from sankhya_mirror.shared.exceptions.sync import TokenAcquisitionException


@dataclass(frozen=True)
class SankhyaCredentials:
    token: str
    app_key: str
    username: str
    password: str


CredentialsLookup = Callable[[int], SankhyaCredentials]


class SankhyaTokenProvider(ITokenProvider):
    """
    Token provider con cache en memoria por sistema.

    El reconciliador siempre pide force_refresh=True: el token dura menos que
    una ventana típica de batch.
    """

    def __init__(
        self,
        *,
        login_url: str,
        credentials_lookup: CredentialsLookup,
        session: Optional[requests.Session] = None,
        timeout_s: int = 30,
    ) -> None:
        self._login_url = login_url
        self._credentials_lookup = credentials_lookup
        self._session = session or requests.Session()
        self._timeout_s = timeout_s
        self._cache: Dict[int, str] = {}

    def acquire(self, system_id: int, force_refresh: bool = False) -> str:
        if not force_refresh and system_id in self._cache:
            return self._cache[system_id]

        if force_refresh:
            logger.info(f"[Sync] Forzando renovación del token para el sistema {system_id}...")

        token = self._login(system_id)
        self._cache[system_id] = token
        return token

    def _login(self, system_id: int) -> str:
        try:
            creds = self._credentials_lookup(system_id)
        except Exception as e:
            raise TokenAcquisitionException(system_id, f"credenciales no disponibles ({e})") from e

        headers = {
            "token": creds.token,
            "appkey": creds.app_key,
            "username": creds.username,
            "password": creds.password,
        }
        try:
            resp = self._session.post(self._login_url, headers=headers, timeout=self._timeout_s)
        except requests.RequestException as e:
            raise TokenAcquisitionException(system_id, f"error de red: {e}") from e

        if not 200 <= resp.status_code < 300:
            raise TokenAcquisitionException(system_id, f"login respondió {resp.status_code}: {resp.text[:200]}")

        try:
            body = resp.json()
        except ValueError as e:
            raise TokenAcquisitionException(system_id, "login devolvió un cuerpo no JSON") from e

        bearer = body.get("bearerToken") if isinstance(body, dict) else None
        if not bearer:
            raise TokenAcquisitionException(system_id, "la respuesta de login no contiene 'bearerToken'")
        return str(bearer)

"""
Excepciones del pipeline de espejado Sankhya -> base local.

Taxonomia:
- Fatales para la corrida de un sistema: token, transporte, respuesta mal formada,
  configuracion y cancelacion. Provocan rollback y un SyncResult fallido.
- Los errores a nivel de registro NO usan esta jerarquia: se capturan en el
  loop de upsert y se registran con la clave de negocio.
"""
from typing import Any, Dict, Optional

from sankhya_mirror.shared.exceptions.base import AppException


class SyncException(AppException):
    """Excepcion base para errores del sync."""

    def __init__(
        self,
        message: str,
        error_code: str = "SYNC_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            status_code=502,
            error_code=error_code,
            details=details
        )


class TokenAcquisitionException(SyncException):
    """No se pudo obtener el bearer token del gateway."""

    def __init__(self, system_id: int, reason: str):
        super().__init__(
            message=f"No se pudo obtener token para el sistema {system_id}: {reason}",
            error_code="TOKEN_ACQUISITION_FAILED",
            details={"system_id": system_id}
        )


class RemoteApiException(SyncException):
    """Error de transporte o status de error devuelto por el gateway."""

    def __init__(self, message: str, status: Optional[str] = None):
        super().__init__(
            message=message,
            error_code="REMOTE_API_ERROR",
            details={"status": status} if status is not None else None
        )


class MalformedResponseException(SyncException):
    """La respuesta no respeta el contrato metadata + entities."""

    def __init__(self, message: str):
        super().__init__(message=message, error_code="MALFORMED_RESPONSE")


class SyncConfigException(SyncException):
    """Error de configuracion del pipeline."""

    def __init__(self, message: str):
        super().__init__(message=message, error_code="SYNC_CONFIG_ERROR")
        self.status_code = 500


class SyncCancelledException(SyncException):
    """La corrida fue cancelada o excedio su deadline."""

    def __init__(self, reason: str):
        super().__init__(
            message=f"Sincronizacion interrumpida: {reason}",
            error_code="SYNC_CANCELLED",
            details={"reason": reason}
        )
        self.status_code = 409

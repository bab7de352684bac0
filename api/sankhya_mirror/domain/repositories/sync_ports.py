"""
Interfaces de los colaboradores externos del pipeline de espejado.
Definen el contrato que debe cumplir cualquier implementación
(gateway real, base de datos, o dobles de test).
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, List

from sankhya_mirror.domain.entities.sync_result import SyncResult


@dataclass(frozen=True)
class CompanyEntry:
    """Sistema (empresa/contrato) a sincronizar."""

    system_id: int
    label: str


class ITokenProvider(ABC):
    """Obtiene el bearer token del gateway para un sistema."""

    @abstractmethod
    def acquire(self, system_id: int, force_refresh: bool = False) -> str:
        """
        Retorna un bearer token válido para el sistema.

        Args:
            system_id: Identificador del sistema
            force_refresh: Si True, ignora cualquier token cacheado

        Returns:
            str: Bearer token
        """
        pass


class IConnectionProvider(ABC):
    """Entrega y libera conexiones a la base espejo."""

    @abstractmethod
    def acquire(self) -> Any:
        """Abre una conexión (sin transacción iniciada)."""
        pass

    @abstractmethod
    def release(self, connection: Any) -> None:
        """Devuelve/cierra la conexión."""
        pass


class ICompanyDirectory(ABC):
    """Directorio de sistemas activos."""

    @abstractmethod
    def list_active(self) -> List[CompanyEntry]:
        """
        Lista los sistemas activos, ordenados por nombre.

        Returns:
            List[CompanyEntry]: Sistemas a procesar
        """
        pass

    @abstractmethod
    def get(self, system_id: int) -> CompanyEntry:
        """Obtiene un sistema por ID (EntityNotFoundException si no existe)."""
        pass


class ISyncLogSink(ABC):
    """Persistencia del resultado de cada corrida."""

    @abstractmethod
    def record(self, result: SyncResult) -> None:
        """
        Registra el resultado de una corrida.

        Args:
            result: Resultado inmutable de la corrida
        """
        pass

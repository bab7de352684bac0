"""
Casos de uso del espejado Sankhya (disparados desde el API).

La reconciliación es bloqueante (requests + SQLAlchemy síncrono): se ejecuta
en un thread separado para no bloquear el event loop.
"""
import asyncio
from typing import Callable, List, Optional

from loguru import logger

from sankhya_mirror.application.dto.sync_dto import BatchReportDTO, MirrorStatsDTO, SyncResultDTO
from sankhya_mirror.infrastructure.external.sankhya_sync.entity_mappings import get_entity_config
from sankhya_mirror.infrastructure.external.sankhya_sync.sync_config import EntitySyncConfig
from sankhya_mirror.infrastructure.external.sankhya_sync.sync_service import SyncComponents, build_from_env
from sankhya_mirror.shared.exceptions.domain import ValidationException


class MirrorSyncUseCases:
    """
    Orquesta batch, corrida individual y estadísticas por entidad.
    """

    def __init__(self, components_factory: Callable[[], SyncComponents] = build_from_env):
        self._components_factory = components_factory
        self._components: Optional[SyncComponents] = None

    @property
    def components(self) -> SyncComponents:
        if self._components is None:
            self._components = self._components_factory()
        return self._components

    async def sync_entity(self, entity_key: str) -> BatchReportDTO:
        """Reconcilia la entidad para todas las empresas activas."""
        config = get_entity_config(entity_key)
        logger.info(f"Iniciando sincronizacion de '{entity_key}' desde API")
        report = await asyncio.to_thread(self.components.batch_driver.sync_all, config)
        return BatchReportDTO.from_domain(report)

    async def sync_system(self, entity_key: str, system_id: int) -> SyncResultDTO:
        """Reconcilia la entidad para un único sistema."""
        config = get_entity_config(entity_key)
        self._validate_system_id(system_id)
        result = await asyncio.to_thread(self.components.batch_driver.sync_system, config, system_id)
        return SyncResultDTO.from_domain(result)

    async def get_stats(self, entity_key: str, system_id: Optional[int] = None) -> List[MirrorStatsDTO]:
        """Estadísticas de la tabla espejo (todas las empresas o una)."""
        config = get_entity_config(entity_key)
        if system_id is not None:
            self._validate_system_id(system_id)
        stats = await asyncio.to_thread(self._collect_stats, config, system_id)
        return [MirrorStatsDTO.from_domain(s) for s in stats]

    def _collect_stats(self, config: EntitySyncConfig, system_id: Optional[int]):
        provider = self.components.connection_provider
        conn = provider.acquire()
        try:
            return self.components.mirror_repo.get_stats(conn, config, system_id=system_id)
        finally:
            provider.release(conn)

    @staticmethod
    def _validate_system_id(system_id: int) -> None:
        if system_id <= 0:
            raise ValidationException("system_id debe ser un entero positivo", field="system_id")

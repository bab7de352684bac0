"""
Endpoints para el espejado Sankhya -> base local.
Permiten disparar la reconciliación desde la UI y consultar su estado.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from loguru import logger

from sankhya_mirror.api.v1.dependencies.use_case_deps import get_mirror_sync_use_cases
from sankhya_mirror.application.dto.sync_dto import BatchReportDTO, MirrorStatsDTO, SyncResultDTO
from sankhya_mirror.application.use_cases.mirror_sync_use_cases import MirrorSyncUseCases
from sankhya_mirror.shared.exceptions.base import AppException


router = APIRouter(prefix="/sync", tags=["Sync"])


@router.post(
    "/{entity}",
    response_model=BatchReportDTO,
    status_code=status.HTTP_200_OK,
    summary="Reconciliar una entidad para todas las empresas activas"
)
async def sync_entity(
    entity: str,
    use_cases: MirrorSyncUseCases = Depends(get_mirror_sync_use_cases),
) -> BatchReportDTO:
    """
    Ejecuta el batch de reconciliación (una empresa por vez).

    La falla de una empresa no detiene el batch: queda reportada en `results`.
    """
    try:
        report = await use_cases.sync_entity(entity)
    except AppException:
        raise
    except Exception as e:
        logger.error(f"Error en batch de sincronizacion '{entity}': {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Error al sincronizar: {str(e)}"
        )

    logger.info(f"Batch '{entity}' completado: {report.successes} exitos, {report.failures} fallas")
    return report


@router.post(
    "/{entity}/systems/{system_id}",
    response_model=SyncResultDTO,
    status_code=status.HTTP_200_OK,
    summary="Reconciliar una entidad para una empresa"
)
async def sync_system(
    entity: str,
    system_id: int,
    use_cases: MirrorSyncUseCases = Depends(get_mirror_sync_use_cases),
) -> SyncResultDTO:
    """
    Ejecuta la reconciliación de una empresa.
    Una corrida fallida igual responde 200 con success=false y error_message.
    """
    return await use_cases.sync_system(entity, system_id)


@router.get(
    "/{entity}/stats",
    response_model=List[MirrorStatsDTO],
    summary="Estadísticas de la tabla espejo"
)
async def get_stats(
    entity: str,
    system_id: Optional[int] = Query(default=None, description="Filtrar por empresa"),
    use_cases: MirrorSyncUseCases = Depends(get_mirror_sync_use_cases),
) -> List[MirrorStatsDTO]:
    """Total de filas, activas, no actuales y última carga por empresa."""
    return await use_cases.get_stats(entity, system_id)

"""
Ciclo de vida de la aplicacion (inicio y cierre).
"""
import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from loguru import logger

from sankhya_mirror.core.config import settings
from sankhya_mirror.infrastructure.database.session import close_db, init_db
from sankhya_mirror.infrastructure.external.sankhya_sync.entity_mappings import ENTITY_CONFIGS


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """
    Inicializa recursos antes de atender requests y los libera al cerrar.

    Args:
        app: Instancia de FastAPI
    """
    sink_id = await _startup()
    try:
        yield
    finally:
        await _shutdown(sink_id)


async def _startup() -> int:
    """Crea tablas faltantes y agrega el sink de archivo. Retorna el id del sink."""
    try:
        logger.info(f"Iniciando {settings.APP_NAME} v{settings.APP_VERSION}")
        logger.info(f"Entorno: {settings.ENVIRONMENT}")

        _validate_config()

        # Crea tablas de control y tablas espejo si no existen
        await asyncio.to_thread(init_db, None, list(ENTITY_CONFIGS.values()))
        logger.info("Base de datos inicializada")

        sink_id = logger.add(
            settings.LOG_FILE,
            rotation="500 MB",
            retention="10 days",
            level=settings.LOG_LEVEL
        )

        logger.success("Aplicacion iniciada correctamente")
        _print_available_urls()
        return sink_id

    except Exception as e:
        logger.error(f"Error durante startup: {e}")
        logger.exception("Detalle del error:")
        raise


async def _shutdown(sink_id: int) -> None:
    """Libera recursos al cerrar la aplicacion."""
    logger.info("Cerrando aplicacion...")
    await asyncio.to_thread(close_db)
    logger.info("Conexiones de base de datos cerradas")
    logger.success("Aplicacion cerrada correctamente")
    logger.remove(sink_id)


def _validate_config() -> None:
    """Valida que la configuracion critica este presente."""
    warnings = []

    if not settings.SANKHYA_BASE_URL.startswith("http"):
        warnings.append(f"SANKHYA_BASE_URL invalida: '{settings.SANKHYA_BASE_URL}'")
    if "sandbox" in settings.SANKHYA_BASE_URL and not settings.is_development:
        warnings.append("SANKHYA_BASE_URL apunta al sandbox en un entorno que no es de desarrollo")
    if settings.SYNC_PAUSE_SECONDS < 0:
        warnings.append("SYNC_PAUSE_SECONDS negativo - se ignora la pausa entre empresas")

    for warning in warnings:
        logger.warning(f"CONFIG: {warning}")


def _print_available_urls() -> None:
    """Imprime las URLs disponibles de la aplicacion."""
    access_host = "localhost" if settings.HOST == "0.0.0.0" else settings.HOST
    base_url = f"http://{access_host}:{settings.PORT}"

    logger.opt(colors=True).info("<bold><green>" + "=" * 80 + "</green></bold>")
    logger.opt(colors=True).info("<bold><green>URLS DISPONIBLES:</green></bold>")
    logger.opt(colors=True).info(f"<cyan>  Swagger UI:  {base_url}/docs</cyan>")
    logger.opt(colors=True).info(f"<cyan>  Sync:        {base_url}/api/v1/sync/{{entity}}</cyan>")
    logger.opt(colors=True).info(f"<cyan>  Health:      {base_url}/health</cyan>")
    logger.opt(colors=True).info("<bold><green>" + "=" * 80 + "</green></bold>")

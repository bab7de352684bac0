"""
CLI: Sankhya -> base espejo (reconciliación por snapshot completo).

Uso recomendado:
  - Ejecutar como job (cron/systemd timer), una entidad por invocación o todas.
  - El API expone los mismos flujos on-demand; este script es la vía del scheduler.

Variables de entorno:
  - DATABASE_URL (o DATABASE_HOST/PORT/USER/PASSWORD/NAME)
  - SANKHYA_BASE_URL
  - SYNC_PAUSE_SECONDS, SYNC_RUN_DEADLINE_S (opcionales)

Ejecución:
  python scripts/sankhya_mirror_sync.py --entity financeiro
  python scripts/sankhya_mirror_sync.py --entity all
  python scripts/sankhya_mirror_sync.py --entity excecao_preco --system-id 3
  python scripts/sankhya_mirror_sync.py --entity financeiro --stats
  python scripts/sankhya_mirror_sync.py --init-db

Cada corrida crea antes las tablas faltantes de las entidades pedidas
(--init-db solo crea las tablas de todas las entidades y termina).

Exit code 0 solo si todas las corridas terminaron con éxito.
"""

from __future__ import annotations

import argparse
import signal
import sys
import threading
from pathlib import Path
from typing import List, Optional

from loguru import logger
from dotenv import load_dotenv

# Permite ejecutar este script desde cualquier cwd sin configurar PYTHONPATH.
# La carpeta "api" contiene el paquete raíz `sankhya_mirror/`.
_API_ROOT = Path(__file__).resolve().parents[1]
if str(_API_ROOT) not in sys.path:
    sys.path.insert(0, str(_API_ROOT))

_REPO_ROOT = _API_ROOT.parent
load_dotenv(_API_ROOT / ".env", override=False)
load_dotenv(_REPO_ROOT / ".env", override=False)

from sankhya_mirror.core.config import settings
from sankhya_mirror.infrastructure.database.session import close_db, init_db
from sankhya_mirror.infrastructure.external.sankhya_sync.entity_mappings import (
    ENTITY_CONFIGS,
    get_entity_config,
    list_entity_keys,
)
from sankhya_mirror.infrastructure.external.sankhya_sync.sync_config import EntitySyncConfig
from sankhya_mirror.infrastructure.external.sankhya_sync.sync_service import SyncComponents, build_from_env

ALL_ENTITIES = "all"


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Reconciliación Sankhya -> base espejo")
    parser.add_argument(
        "--entity",
        choices=[*list_entity_keys(), ALL_ENTITIES],
        default=ALL_ENTITIES,
        help="Entidad a sincronizar (default: todas).",
    )
    parser.add_argument(
        "--system-id",
        type=int,
        default=None,
        help="Sincroniza solo este ID_SISTEMA (debe existir en sync_contracts).",
    )
    parser.add_argument(
        "--stats",
        action="store_true",
        help="Solo imprime estadísticas de las tablas espejo (no ejecuta sync).",
    )
    parser.add_argument(
        "--init-db",
        action="store_true",
        help="Crea las tablas faltantes (control + espejo) y termina.",
    )
    return parser.parse_args(argv)


def _install_cancel_handlers(cancel_event: threading.Event) -> None:
    """SIGINT/SIGTERM cortan la corrida en curso (rollback) y el resto del batch."""

    def _handler(signum, frame):
        logger.warning(f"Señal {signum} recibida: cancelando sincronización...")
        cancel_event.set()

    signal.signal(signal.SIGINT, _handler)
    signal.signal(signal.SIGTERM, _handler)


def _print_stats(components: SyncComponents, configs: List[EntitySyncConfig], system_id: Optional[int]) -> None:
    provider = components.connection_provider
    conn = provider.acquire()
    try:
        for config in configs:
            stats = components.mirror_repo.get_stats(conn, config, system_id=system_id)
            logger.info(f"[Stats] {config.table_name}: {len(stats)} empresa(s)")
            for s in stats:
                logger.info(
                    f"  ID_SISTEMA {s.system_id}: total={s.total_rows} activos={s.active_rows} "
                    f"no_actuales={s.stale_rows} ultima_carga={s.last_sync_at}"
                )
    finally:
        provider.release(conn)


def _run(
    components: SyncComponents,
    configs: List[EntitySyncConfig],
    system_id: Optional[int],
    cancel_event: threading.Event,
) -> bool:
    all_ok = True
    for config in configs:
        if cancel_event.is_set():
            logger.warning(f"Sincronización cancelada antes de '{config.entity_key}'")
            return False

        if system_id is not None:
            result = components.batch_driver.sync_system(config, system_id, cancel_event=cancel_event)
            all_ok = all_ok and result.success
        else:
            report = components.batch_driver.sync_all(config, cancel_event=cancel_event)
            all_ok = all_ok and report.all_succeeded and not report.cancelled
    return all_ok


def main(argv: Optional[List[str]] = None) -> int:
    args = _parse_args(argv)

    logger.add(settings.LOG_FILE, rotation="500 MB", retention="10 days", level=settings.LOG_LEVEL)

    configs = (
        list(ENTITY_CONFIGS.values())
        if args.entity == ALL_ENTITIES
        else [get_entity_config(args.entity)]
    )

    if args.init_db:
        logger.info("Inicializando base de datos...")
        init_db(configs=ENTITY_CONFIGS.values())
        logger.success("Base de datos inicializada correctamente")
        return 0

    if args.system_id is not None and args.system_id <= 0:
        logger.error("--system-id debe ser un entero positivo")
        return 2

    try:
        # Crea las tablas que falten: la primera corrida sobre una base nueva no falla
        init_db(configs=configs)
        components = build_from_env()

        if args.stats:
            _print_stats(components, configs, args.system_id)
            return 0

        cancel_event = threading.Event()
        _install_cancel_handlers(cancel_event)

        logger.info(f"Iniciando sincronización Sankhya -> espejo ({args.entity})...")
        ok = _run(components, configs, args.system_id, cancel_event)
        if ok:
            logger.success("Sincronización finalizada sin errores")
            return 0
        logger.error("Sincronización finalizada con errores")
        return 1
    except Exception as e:
        logger.error(f"Error fatal en la sincronización: {e}")
        return 1
    finally:
        close_db()


if __name__ == "__main__":
    raise SystemExit(main())

"""
CLI: feed XML -> WordPress (una corrida completa, sin levantar el API).

Uso recomendado:
  - Importaciones manuales o desde un cron del sistema cuando el API no esta corriendo.
  - Usa la misma configuracion (.env) y el mismo pipeline que el scheduler del API.

Ejecucion:
  python scripts/run_import.py
  python scripts/run_import.py --feed-url https://example.com/feed.xml
  python scripts/run_import.py --batch-size 50
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from loguru import logger

# Permite ejecutar este script desde cualquier cwd sin configurar PYTHONPATH.
_REPO_ROOT = Path(__file__).resolve().parents[1]
if str(_REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(_REPO_ROOT))

from propsync.application.use_cases.sync_orchestrator import build_orchestrator
from propsync.core.config import settings


def main() -> int:
    parser = argparse.ArgumentParser(description="Importa el feed XML de propiedades a WordPress.")
    parser.add_argument(
        "--feed-url",
        default=None,
        help="URL del feed (default: XML_FEED_URL).",
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        default=None,
        help="Registros por lote (default: SYNC_BATCH_SIZE).",
    )
    args = parser.parse_args()

    overrides = {}
    if args.feed_url:
        overrides["XML_FEED_URL"] = args.feed_url
    if args.batch_size:
        overrides["SYNC_BATCH_SIZE"] = args.batch_size
    config = settings.model_copy(update=overrides)

    logger.info(f"[IMPORT] Feed: {config.XML_FEED_URL}")
    logger.info(f"[IMPORT] WordPress: {config.WORDPRESS_URL}")

    summary = build_orchestrator(config).run()

    if not summary.success:
        logger.error(f"[IMPORT] Importacion fallida: {summary.error}")
        return 1

    logger.success(
        f"[IMPORT] OK total={summary.total_records} importados={summary.imported} "
        f"actualizados={summary.updated} errores={summary.errors} archivados={summary.archived}"
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

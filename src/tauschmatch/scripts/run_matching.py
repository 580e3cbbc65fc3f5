"""
Script para calcular los matches de un usuario desde la terminal.

Imprime el resultado como JSON (el mismo formato que la API).

Uso:
    python -m tauschmatch.scripts.run_matching --user-id <uid> [--limit 10]
"""

import argparse
import asyncio
import json
import sys

import structlog

from tauschmatch.config import get_settings
from tauschmatch.log_config import configure_logging
from tauschmatch.matching import MatchingEngine, MatchingError

logger = structlog.get_logger()


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Busca matches para un usuario")
    parser.add_argument("--user-id", required=True, help="ID del usuario")
    parser.add_argument("--limit", type=int, default=None, help="Máximo de resultados")
    return parser.parse_args(argv)


async def run_matching(user_id: str, limit=None) -> list[dict]:
    """Ejecuta el matching para un usuario."""
    engine = MatchingEngine.from_settings()
    matches = await engine.find_matches_for_user_id(user_id, limit=limit)
    return [match.to_response_dict() for match in matches]


def main(argv=None):
    """Entry point del script."""
    settings = get_settings()
    configure_logging(settings.log_level)
    args = parse_args(argv)

    logger.info("Iniciando matching", user_id=args.user_id, limit=args.limit)

    try:
        matches = asyncio.run(run_matching(args.user_id, args.limit))
    except KeyboardInterrupt:
        logger.info("Matching interrumpido por usuario")
        sys.exit(130)
    except MatchingError as e:
        logger.error("Error fatal en matching", error=str(e))
        sys.exit(1)

    print(json.dumps(matches, ensure_ascii=False, indent=2))
    logger.info("Matching completado", matches=len(matches))


if __name__ == "__main__":
    main()

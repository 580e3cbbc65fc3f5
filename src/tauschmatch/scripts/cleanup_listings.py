"""
Limpieza de la tabla de listings.

Borra duplicados por link (se queda con el que tiene imágenes) y
listings sin alguno de los campos requeridos por el matcher.

Uso:
    python -m tauschmatch.scripts.cleanup_listings [--dry-run]
    python -m tauschmatch.scripts.cleanup_listings --duplicates
    python -m tauschmatch.scripts.cleanup_listings --incomplete
"""

import argparse
import sys

import structlog

from tauschmatch.config import get_settings
from tauschmatch.database import ListingRepository
from tauschmatch.log_config import configure_logging

logger = structlog.get_logger()


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Limpia listings duplicados e incompletos")
    parser.add_argument("--dry-run", action="store_true", help="Sólo reporta, no borra")
    parser.add_argument("--duplicates", action="store_true", help="Sólo duplicados por link")
    parser.add_argument("--incomplete", action="store_true", help="Sólo listings incompletos")
    return parser.parse_args(argv)


def run_cleanup(
    repo: ListingRepository,
    duplicates: bool = True,
    incomplete: bool = True,
    dry_run: bool = False,
) -> dict:
    """
    Ejecuta la limpieza.

    Returns:
        Estadísticas: total, duplicates, incomplete, deleted, errors
    """
    listings = repo.get_all()
    stats = {"total": len(listings), "duplicates": 0, "incomplete": 0, "deleted": 0, "errors": 0}

    to_delete: list[str] = []
    if duplicates:
        duplicate_ids = repo.find_duplicate_ids(listings)
        stats["duplicates"] = len(duplicate_ids)
        to_delete.extend(duplicate_ids)
    if incomplete:
        incomplete_ids = repo.find_incomplete_ids(listings)
        stats["incomplete"] = len(incomplete_ids)
        to_delete.extend(i for i in incomplete_ids if i not in to_delete)

    logger.info(
        "Listings a borrar",
        total=stats["total"],
        duplicates=stats["duplicates"],
        incomplete=stats["incomplete"],
        dry_run=dry_run,
    )

    if dry_run:
        return stats

    for listing_id in to_delete:
        try:
            if repo.delete(listing_id):
                stats["deleted"] += 1
        except Exception as e:
            logger.error("Error borrando listing", listing_id=listing_id, error=str(e))
            stats["errors"] += 1

    return stats


def main(argv=None):
    """Entry point del script."""
    settings = get_settings()
    configure_logging(settings.log_level)
    args = parse_args(argv)

    # Sin flags de tipo se limpian ambos
    both = not args.duplicates and not args.incomplete

    try:
        stats = run_cleanup(
            ListingRepository(admin=True),
            duplicates=args.duplicates or both,
            incomplete=args.incomplete or both,
            dry_run=args.dry_run,
        )
    except KeyboardInterrupt:
        logger.info("Limpieza interrumpida por usuario")
        sys.exit(130)
    except Exception as e:
        logger.error("Error fatal en limpieza", error=str(e))
        sys.exit(1)

    logger.info("Limpieza completada", **stats)
    sys.exit(0 if stats["errors"] == 0 else 1)


if __name__ == "__main__":
    main()

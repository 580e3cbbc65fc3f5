"""
Script para levantar la API HTTP de matching.

Uso:
    python -m tauschmatch.scripts.run_server
"""

import os
import sys

import structlog
from aiohttp import web

from tauschmatch.api import create_app
from tauschmatch.config import get_settings
from tauschmatch.log_config import configure_logging

logger = structlog.get_logger()


def main():
    """Entry point del servidor."""
    settings = get_settings()
    configure_logging(settings.log_level)

    # Render/Heroku exponen el puerto en $PORT
    port = int(os.getenv("PORT", settings.api_port))
    logger.info("Iniciando API de matching", host=settings.api_host, port=port)

    try:
        web.run_app(create_app(settings=settings), host=settings.api_host, port=port, print=None)
    except KeyboardInterrupt:
        logger.info("Servidor detenido por usuario")
        sys.exit(0)
    except Exception as e:
        logger.error("Error fatal en servidor", error=str(e))
        sys.exit(1)


if __name__ == "__main__":
    main()

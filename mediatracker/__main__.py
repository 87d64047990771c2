"""Module executed when running ``python -m mediatracker``."""

from __future__ import annotations

import logging

import uvicorn

from app.config import settings

logger = logging.getLogger("mediatracker")


def main() -> None:
    """Start the uvicorn server using the configured settings."""

    logger.info(
        "Starting %s on %s:%s (%s)",
        settings.app_name,
        settings.server_host,
        settings.server_port,
        settings.environment,
    )
    uvicorn.run(
        "app.main:app",
        host=settings.server_host,
        port=settings.server_port,
        reload=settings.environment == "development",
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":  # pragma: no cover - runtime entrypoint
    main()

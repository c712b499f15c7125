"""Entry point for the ``webhook-logger`` command."""

from __future__ import annotations

import logging

import uvicorn
from dotenv import load_dotenv

from webhook_logger.app import create_app
from webhook_logger.config import Settings

logger = logging.getLogger(__name__)


def main() -> None:
    load_dotenv()
    settings = Settings()

    logging.basicConfig(
        level=settings.log_level, format="%(asctime)s %(levelname)s %(name)s %(message)s"
    )

    app = create_app(settings)
    logger.info(
        "Webhook logger running at http://%s:%d (storage=%s)",
        settings.host,
        settings.port,
        settings.storage_backend,
    )
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    main()

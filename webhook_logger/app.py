"""FastAPI application factory.

The storage backend is built once from settings (or passed in directly)
and handed to both route groups; nothing else decides which backend is
active. Its lifecycle follows the app's lifespan.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse

from webhook_logger import __version__
from webhook_logger.browser import pages
from webhook_logger.browser.handlers import register_log_routes
from webhook_logger.config import Settings
from webhook_logger.errors import PayloadTooLarge
from webhook_logger.middleware import BodySizeLimitMiddleware, payload_too_large_response
from webhook_logger.records import format_timestamp
from webhook_logger.storage import StorageBackend, build_storage
from webhook_logger.webhooks.handlers import register_webhook_routes

logger = logging.getLogger(__name__)


def create_app(
    settings: Settings | None = None,
    storage: StorageBackend | None = None,
) -> FastAPI:
    """Build the webhook logger app around a single storage backend."""
    settings = settings or Settings()
    storage = storage or build_storage(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Opening %s storage", storage.name)
        await asyncio.to_thread(storage.open)
        try:
            yield
        finally:
            await asyncio.to_thread(storage.close)

    app = FastAPI(title="Webhook Logger", version=__version__, lifespan=lifespan)
    app.state.settings = settings
    app.state.storage = storage

    app.add_middleware(BodySizeLimitMiddleware, max_body_bytes=settings.max_body_bytes)

    @app.exception_handler(PayloadTooLarge)
    async def handle_payload_too_large(request: Request, exc: PayloadTooLarge):
        logger.warning("Rejected %s %s: %s", request.method, request.url.path, exc.message)
        return payload_too_large_response(exc)

    @app.get("/", response_class=HTMLResponse)
    async def home():
        return pages.render_home(storage.name)

    @app.get("/health")
    async def health():
        return {
            "status": "ok",
            "storage": storage.name,
            "time": format_timestamp(datetime.now(timezone.utc)),
        }

    register_webhook_routes(app, storage, max_body_bytes=settings.max_body_bytes)
    register_log_routes(app, storage)
    return app

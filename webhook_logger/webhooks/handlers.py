"""Webhook HTTP handler: FastAPI route for inbound webhooks.

The handler:
1. Reads the raw body under the size ceiling
2. Decodes it (JSON or URL-encoded form)
3. Stamps a new record with a unique receipt time
4. Saves it through the injected storage backend (off the event loop)
5. Returns 200 with the record's timestamp and the backend name

Error contract:
- 400 when a JSON body cannot be decoded
- 413 when the body exceeds the ceiling (raised before a record exists)
- 500 when the backend rejects the write, carrying only the error message
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from webhook_logger.config import DEFAULT_MAX_BODY_BYTES
from webhook_logger.errors import InvalidPayload, StorageWriteError
from webhook_logger.records import ReceiptClock, WebhookRecord
from webhook_logger.storage import StorageBackend
from webhook_logger.webhooks.payload import group_items, parse_body, read_body

logger = logging.getLogger(__name__)


def collect_headers(request: Request) -> dict[str, Any]:
    """Lower-cased request headers; repeated headers become lists."""
    return group_items(request.headers.items())


def collect_query(request: Request) -> dict[str, Any]:
    """Decoded query parameters; repeated parameters become lists."""
    return group_items(request.query_params.multi_items())


def register_webhook_routes(
    app: FastAPI,
    storage: StorageBackend,
    *,
    max_body_bytes: int = DEFAULT_MAX_BODY_BYTES,
    clock: ReceiptClock | None = None,
) -> None:
    """Register the webhook receiver route on the FastAPI app."""
    clock = clock or ReceiptClock()

    @app.post("/webhook")
    async def receive_webhook(request: Request):
        """Receive and log an arbitrary webhook payload."""
        raw = await read_body(request, max_body_bytes)

        try:
            body = parse_body(raw, request.headers.get("content-type"))
        except InvalidPayload as exc:
            logger.info("Rejected webhook with undecodable body: %s", exc.message)
            return JSONResponse(
                {"status": "error", "message": "Invalid webhook payload", "error": exc.message},
                status_code=400,
            )

        record = WebhookRecord.create(
            headers=collect_headers(request),
            body=body,
            query=collect_query(request),
            received_at=clock.now(),
        )

        # Runs to completion in its worker thread even if the client has gone.
        try:
            await asyncio.to_thread(storage.save, record)
        except StorageWriteError as exc:
            logger.error("Failed to log webhook %s: %s", record.identifier, exc.message)
            return JSONResponse(
                {"status": "error", "message": "Failed to log webhook", "error": exc.message},
                status_code=500,
            )

        logger.info("Webhook received and saved as %s (storage=%s)", record.filename, storage.name)
        return JSONResponse(
            {
                "status": "success",
                "message": "Webhook received and logged",
                "timestamp": record.timestamp,
                "storage": storage.name,
                "identifier": record.identifier,
            }
        )

    logger.info("Webhook route registered: POST /webhook (storage=%s)", storage.name)

"""Log browser HTTP handlers.

Both routes answer with HTML by default and with JSON when the client's
Accept header asks for ``application/json``. Storage reads run in worker
threads so a slow disk or database never stalls the event loop.
"""

from __future__ import annotations

import asyncio
import logging

from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse, JSONResponse, Response

from webhook_logger.browser import pages
from webhook_logger.errors import NotFound, StorageReadError
from webhook_logger.records import normalize_identifier
from webhook_logger.storage import StorageBackend

logger = logging.getLogger(__name__)


def accept_quality(accept: str, media: str) -> float:
    """Quality the Accept header gives *media*, from its most specific matching range."""
    family = media.split("/", 1)[0]
    specificity, quality = -1, 0.0
    for entry in accept.lower().split(","):
        media_range, *params = [piece.strip() for piece in entry.split(";")]
        if media_range == media:
            rank = 2
        elif media_range == f"{family}/*":
            rank = 1
        elif media_range == "*/*":
            rank = 0
        else:
            continue
        q = 1.0
        for param in params:
            name, _, value = param.partition("=")
            if name.strip() == "q":
                try:
                    q = float(value)
                except ValueError:
                    q = 0.0
        if rank > specificity:
            specificity, quality = rank, q
    return quality


def wants_json(request: Request) -> bool:
    """True when the client rates application/json above text/html.

    Ties (``*/*``, no Accept header) go to HTML.
    """
    accept = request.headers.get("accept", "")
    json_q = accept_quality(accept, "application/json")
    return json_q > 0 and json_q > accept_quality(accept, "text/html")


def _error(request: Request, status_code: int, title: str, message: str) -> Response:
    if wants_json(request):
        return JSONResponse({"status": "error", "message": message}, status_code=status_code)
    return HTMLResponse(pages.render_message(title, message), status_code=status_code)


def register_log_routes(app: FastAPI, storage: StorageBackend) -> None:
    """Register the log listing and log detail routes on the FastAPI app."""

    @app.get("/logs")
    async def list_logs(request: Request):
        """List stored webhook logs, newest first."""
        try:
            identifiers = await asyncio.to_thread(storage.list)
        except StorageReadError as exc:
            logger.error("Error reading logs: %s", exc.message)
            return _error(request, 500, "Error", f"Error reading logs: {exc.message}")

        if wants_json(request):
            return JSONResponse({"count": len(identifiers), "logs": identifiers})
        if not identifiers:
            return HTMLResponse(pages.render_empty_logs())
        return HTMLResponse(pages.render_log_list(identifiers))

    @app.get("/logs/{identifier}")
    async def show_log(request: Request, identifier: str):
        """Show a single webhook log's headers, body and query parameters."""
        identifier = normalize_identifier(identifier)
        try:
            record = await asyncio.to_thread(storage.get, identifier)
        except NotFound:
            return _error(request, 404, "Not Found", "Log not found")
        except StorageReadError as exc:
            logger.error("Error reading log %s: %s", identifier, exc.message)
            return _error(request, 500, "Error", f"Error reading log: {exc.message}")

        if wants_json(request):
            return JSONResponse({"identifier": record.identifier, **record.to_document()})
        return HTMLResponse(pages.render_log_detail(record))

    logger.info("Log browser routes registered: GET /logs, GET /logs/{identifier}")

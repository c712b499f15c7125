"""Request guards installed on the FastAPI app.

BodySizeLimitMiddleware rejects requests whose declared Content-Length is
above the ceiling before they are routed. Bodies without a declared length
(chunked uploads) are counted while being read; see ``read_body``.
"""

from __future__ import annotations

import logging

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from webhook_logger.errors import PayloadTooLarge

logger = logging.getLogger(__name__)


def payload_too_large_response(exc: PayloadTooLarge) -> JSONResponse:
    return JSONResponse(
        {"status": "error", "message": "Payload too large", "error": exc.message},
        status_code=413,
    )


class BodySizeLimitMiddleware(BaseHTTPMiddleware):
    """Reject oversized request bodies with 413 before any handler runs."""

    def __init__(self, app: ASGIApp, max_body_bytes: int) -> None:
        super().__init__(app)
        self.max_body_bytes = max_body_bytes

    async def dispatch(self, request: Request, call_next):
        declared = request.headers.get("content-length")
        if declared:
            if not declared.isdigit():
                return JSONResponse(
                    {"status": "error", "message": "Invalid Content-Length header"},
                    status_code=400,
                )
            if int(declared) > self.max_body_bytes:
                logger.warning(
                    "Rejected %s %s: %s bytes exceeds %d byte limit",
                    request.method,
                    request.url.path,
                    declared,
                    self.max_body_bytes,
                )
                return payload_too_large_response(PayloadTooLarge(self.max_body_bytes))
        return await call_next(request)

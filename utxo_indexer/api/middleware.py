"""
UTXO Indexer - API Middleware
===============================
Request ID e access log per le route REST.
"""

import time
import uuid
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from utxo_indexer.logging_setup import get_logger

logger = get_logger("api.access")

REQUEST_ID_HEADER = "X-Request-ID"


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Propaga X-Request-ID (ne genera uno se assente)"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request.state.request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex

        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request.state.request_id
        return response


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Access log: una riga per richiesta, WARNING per risposte 5xx.

    Aggiunge X-Process-Time alla risposta.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        started = time.perf_counter()

        response = await call_next(request)

        elapsed_ms = (time.perf_counter() - started) * 1000
        details = {
            "request_id": getattr(request.state, "request_id", None),
            "client": request.client.host if request.client else None,
            "status_code": response.status_code,
            "duration_ms": round(elapsed_ms, 2),
        }
        line = f"{request.method} {request.url.path} -> {response.status_code}"

        if response.status_code >= 500:
            logger.warning(line, extra_data=details)
        else:
            logger.info(line, extra_data=details)

        response.headers["X-Process-Time"] = f"{elapsed_ms:.2f}ms"
        return response


__all__ = [
    "RequestIDMiddleware",
    "RequestLoggingMiddleware",
]

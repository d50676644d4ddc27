"""
UTXO Indexer - REST API
=========================
API REST per ingest blocchi, rollback e query del ledger.

Last Updated: 2026-10-18
Version: 1.0.0

Endpoints:
- GET  /                          - Health check
- POST /blocks                    - Ingest blocco
- GET  /balance/{address}         - Balance address
- POST /rollback?height=N         - Rollback tip
- GET  /blocks/{height}           - Blocco memorizzato
- GET  /outputs/{tx_id}/{index}   - Output (speso o meno)
- GET  /address/{address}/utxos   - UTXO di un address
"""

from typing import Optional

from fastapi import FastAPI, Depends, HTTPException, Request, status
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# Internal imports
from utxo_indexer.api.deps import get_indexer
from utxo_indexer.api.middleware import RequestIDMiddleware, RequestLoggingMiddleware
from utxo_indexer.api.schemas import (
    HealthResponse,
    SuccessResponse,
    BalanceResponse,
    BlockResponse,
    OutputResponse,
    UtxoListResponse,
)
from utxo_indexer.config import IndexerSettings, get_settings
from utxo_indexer.errors import IndexerException, ErrorCategory, categorize
from utxo_indexer.logging_setup import get_logger
from utxo_indexer.services.indexer_service import IndexerService
from utxo_indexer.version import __version__


# ============================================================================
# MODULE LOGGER
# ============================================================================

logger = get_logger("api")


STATUS_BY_CATEGORY = {
    ErrorCategory.SCHEMA: status.HTTP_400_BAD_REQUEST,
    ErrorCategory.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorCategory.ARGUMENT: status.HTTP_400_BAD_REQUEST,
    ErrorCategory.ROLLBACK_BOUNDS: status.HTTP_400_BAD_REQUEST,
    ErrorCategory.PERSISTENCE: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorCategory.INTERNAL: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def _error_response(status_code: int, error: str, message: Optional[str], code: Optional[str] = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": error, "message": message, "code": code}
    )


def _internal_error() -> JSONResponse:
    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "Internal server error",
        "An unexpected error occurred",
        "INTERNAL_ERROR"
    )


# ============================================================================
# APP FACTORY
# ============================================================================

def create_app(indexer: Optional[IndexerService] = None) -> FastAPI:
    """
    Crea l'applicazione FastAPI.

    Args:
        indexer: Servizio già inizializzato (None: 503 su ogni route)

    Returns:
        FastAPI: Applicazione configurata

    Examples:
        >>> app = create_app(IndexerService.from_settings(config))
        >>> # Run with: uvicorn.run(app, host=config.api_host, port=config.api_port)
    """
    app = FastAPI(
        title="UTXO Indexer API",
        description="REST API for the UTXO ledger indexer",
        version=__version__
    )
    app.state.indexer = indexer

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "X-Process-Time"],
    )
    # Ultimo aggiunto = più esterno: il request ID precede il logging
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    @app.exception_handler(IndexerException)
    async def indexer_exception_handler(request: Request, exc: IndexerException):
        category = categorize(exc)
        status_code = STATUS_BY_CATEGORY[category]

        if status_code >= 500:
            logger.error(
                f"{request.method} {request.url.path} failed",
                extra_data={"error": exc.message, "code": exc.code}
            )
            return _internal_error()

        return _error_response(status_code, "Invalid request", exc.message, exc.code)

    _register_routes(app)
    return app


def create_app_from_settings(config: Optional[IndexerSettings] = None) -> FastAPI:
    """Factory per `uvicorn --factory`: apre il ledger da configurazione"""
    config = config or get_settings()
    return create_app(IndexerService.from_settings(config))


# ============================================================================
# ROUTES
# ============================================================================

def _register_routes(app: FastAPI) -> None:

    @app.get("/", response_model=HealthResponse)
    async def root(indexer: IndexerService = Depends(get_indexer)):
        """Health check"""
        current_height = await run_in_threadpool(indexer.get_current_height)
        return {
            "status": "healthy",
            "message": "UTXO indexer API",
            "version": __version__,
            "current_height": current_height,
        }

    @app.post(
        "/blocks",
        response_model=SuccessResponse,
        status_code=status.HTTP_201_CREATED
    )
    async def post_block(request: Request, indexer: IndexerService = Depends(get_indexer)):
        """Ingest di un blocco"""
        try:
            payload = await request.json()
        except ValueError:
            return _error_response(
                status.HTTP_400_BAD_REQUEST,
                "Invalid JSON",
                "Request body must be valid JSON",
                "INVALID_JSON"
            )

        result = await run_in_threadpool(indexer.process_block, payload)

        if not result.success:
            if result.is_client_error:
                return _error_response(
                    status.HTTP_400_BAD_REQUEST,
                    "Block validation failed",
                    result.error,
                    result.code
                )
            return _internal_error()

        return {"success": True, "message": "Block processed successfully"}

    @app.get("/balance/{address}", response_model=BalanceResponse)
    async def get_balance(address: str, indexer: IndexerService = Depends(get_indexer)):
        """Balance corrente (0 se address sconosciuto)"""
        balance = await run_in_threadpool(indexer.get_balance, address)
        return {"address": address, "balance": balance}

    @app.post("/rollback", response_model=SuccessResponse)
    async def rollback(
        height: Optional[str] = None,
        indexer: IndexerService = Depends(get_indexer)
    ):
        """Rollback del tip a `height`"""
        if height is None or height == "":
            return _error_response(
                status.HTTP_400_BAD_REQUEST,
                "Missing height parameter",
                "Height query parameter is required",
                "MISSING_HEIGHT"
            )

        try:
            target = int(height)
        except ValueError:
            return _error_response(
                status.HTTP_400_BAD_REQUEST,
                "Invalid height parameter",
                "Height must be a valid number",
                "INVALID_HEIGHT"
            )

        result = await run_in_threadpool(indexer.rollback_to_height, target)

        if not result.success:
            if result.is_client_error:
                return _error_response(
                    status.HTTP_400_BAD_REQUEST,
                    "Rollback failed",
                    result.error,
                    result.code
                )
            return _internal_error()

        return {"success": True, "message": f"Successfully rolled back to height {target}"}

    @app.get("/blocks/{height}", response_model=BlockResponse)
    async def get_block(height: int, indexer: IndexerService = Depends(get_indexer)):
        """Blocco memorizzato per height"""
        block = await run_in_threadpool(indexer.get_block, height)

        if block is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Block at height {height} not found"
            )
        return block.to_dict()

    @app.get("/outputs/{tx_id}/{index}", response_model=OutputResponse)
    async def get_output(tx_id: str, index: int, indexer: IndexerService = Depends(get_indexer)):
        """Output per (tx_id, index)"""
        output = await run_in_threadpool(indexer.get_output, tx_id, index)

        if output is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Output {tx_id}:{index} not found"
            )
        return output.to_dict()

    @app.get("/address/{address}/utxos", response_model=UtxoListResponse)
    async def get_address_utxos(address: str, indexer: IndexerService = Depends(get_indexer)):
        """UTXO di un address"""
        utxos = await run_in_threadpool(indexer.get_utxos, address)
        return {
            "address": address,
            "utxos": [utxo.to_dict() for utxo in utxos],
            "total": sum(utxo.value for utxo in utxos),
        }


# ============================================================================
# EXPORT
# ============================================================================

__all__ = [
    "create_app",
    "create_app_from_settings",
]

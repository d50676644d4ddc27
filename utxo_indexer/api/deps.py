"""
UTXO Indexer - API Dependencies
=================================
FastAPI dependency injection utilities.
"""

from fastapi import HTTPException, Request, status

from utxo_indexer.services.indexer_service import IndexerService


def get_indexer(request: Request) -> IndexerService:
    """
    Get indexer service instance.

    Dependency for FastAPI routes; the service is attached to
    `app.state.indexer` by `create_app`.
    """
    indexer = getattr(request.app.state, "indexer", None)
    if indexer is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Indexer not initialized"
        )
    return indexer


__all__ = [
    "get_indexer",
]

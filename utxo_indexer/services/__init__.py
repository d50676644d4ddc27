"""
UTXO Indexer - Services Package
=================================
High-level ledger services.
"""

from utxo_indexer.services.indexer_service import IndexerService

__all__ = [
    "IndexerService",
]

"""
UTXO Indexer - Storage Package
================================
Ledger data persistence.
"""

from utxo_indexer.storage.db import LedgerDatabase

__all__ = [
    "LedgerDatabase",
]

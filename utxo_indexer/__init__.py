"""
UTXO Indexer - UTXO Ledger Indexer
====================================
Indexer per ledger UTXO: validazione blocchi, balance, rollback.

Version: 1.0.0
License: MIT
"""

from utxo_indexer.version import __version__

# Core imports
from utxo_indexer.config import IndexerSettings, get_settings
from utxo_indexer.domain.models import Block, Transaction, Input, Output, StoredOutput
from utxo_indexer.domain.schema import parse_block
from utxo_indexer.domain.validation import BlockValidator
from utxo_indexer.storage.db import LedgerDatabase

# Services
from utxo_indexer.services.indexer_service import IndexerService

# Errors
from utxo_indexer.errors import IndexerException, OperationResult

__all__ = [
    # Version
    "__version__",

    # Core
    "IndexerSettings",
    "get_settings",
    "Block",
    "Transaction",
    "Input",
    "Output",
    "StoredOutput",
    "parse_block",
    "BlockValidator",
    "LedgerDatabase",

    # Services
    "IndexerService",

    # Errors
    "IndexerException",
    "OperationResult",
]

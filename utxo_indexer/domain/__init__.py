"""
UTXO Indexer - Domain Package
===============================
Modelli del ledger, schema guard e regole di validazione.
"""

# Models
from utxo_indexer.domain.models import (
    Output,
    Input,
    Transaction,
    Block,
    OutputKey,
    StoredOutput,
)

# Schema
from utxo_indexer.domain.schema import (
    check_block_schema,
    parse_block,
    validate_block_schema,
)

# Validation
from utxo_indexer.domain.validation import BlockValidator

__all__ = [
    # Models
    "Output",
    "Input",
    "Transaction",
    "Block",
    "OutputKey",
    "StoredOutput",

    # Schema
    "check_block_schema",
    "parse_block",
    "validate_block_schema",

    # Validation
    "BlockValidator",
]

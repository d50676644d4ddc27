"""
UTXO Indexer - Utilities Package
==================================
Common utility functions and helpers.
"""

from utxo_indexer.utils.hashing import sha256_hex, compute_block_id
from utxo_indexer.utils.validators import (
    is_strict_int,
    is_ledger_int,
    validate_address,
    validate_height,
    validate_output_ref,
)

__all__ = [
    # Hashing
    "sha256_hex",
    "compute_block_id",

    # Validators
    "is_strict_int",
    "is_ledger_int",
    "validate_address",
    "validate_height",
    "validate_output_ref",
]

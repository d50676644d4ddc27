"""
UTXO Indexer - Hashing
========================
Hash deterministici (block ID content-addressed).
"""

import hashlib
from typing import Iterable


def sha256_hex(data: str) -> str:
    """
    SHA-256 di una stringa UTF-8, in hex.

    Examples:
        >>> sha256_hex("")[:16]
        'e3b0c44298fc1c14'
    """
    return hashlib.sha256(data.encode("utf-8")).hexdigest()


def compute_block_id(height: int, tx_ids: Iterable[str]) -> str:
    """
    Block ID = sha256(str(height) + concatenazione dei tx id ordinati).

    L'ordine dichiarato delle transazioni non influisce sull'ID.

    Examples:
        >>> compute_block_id(1, ["b", "a"]) == compute_block_id(1, ["a", "b"])
        True
    """
    return sha256_hex(str(height) + "".join(sorted(tx_ids)))


__all__ = [
    "sha256_hex",
    "compute_block_id",
]

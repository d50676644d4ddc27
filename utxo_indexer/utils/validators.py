"""
UTXO Indexer - Input Validators
=================================
Validation functions for query parameters.
"""

from typing import Any

from utxo_indexer.constants import MAX_LEDGER_INTEGER
from utxo_indexer.errors import ArgumentError


def is_strict_int(value: Any) -> bool:
    """
    True se value è un int vero (bool escluso).

    Examples:
        >>> is_strict_int(3), is_strict_int(True), is_strict_int(3.0)
        (True, False, False)
    """
    return isinstance(value, int) and not isinstance(value, bool)


def is_ledger_int(value: Any, minimum: int = 0) -> bool:
    """
    True se value è un int in [minimum, MAX_LEDGER_INTEGER], quindi
    rappresentabile in una colonna SQLite INTEGER.

    Examples:
        >>> is_ledger_int(0), is_ledger_int(-1), is_ledger_int(2 ** 63)
        (True, False, False)
    """
    return is_strict_int(value) and minimum <= value <= MAX_LEDGER_INTEGER


def validate_address(address: Any) -> str:
    """
    Validate address query parameter.

    Raises:
        ArgumentError: If address is not a non-empty string
    """
    if not isinstance(address, str) or not address:
        raise ArgumentError(
            "Address must be a non-empty string",
            code="INVALID_ADDRESS"
        )
    return address


def validate_height(height: Any) -> int:
    """
    Validate rollback target height.

    Raises:
        ArgumentError: If height is not a non-negative integer
    """
    if not is_ledger_int(height):
        raise ArgumentError(
            "Height must be a non-negative integer",
            code="INVALID_HEIGHT",
            details={"height": repr(height)}
        )
    return height


def validate_output_ref(tx_id: Any, index: Any) -> None:
    """
    Validate (tx_id, index) output reference.

    Raises:
        ArgumentError: If tx_id is empty or index negative/non-integer
    """
    if not isinstance(tx_id, str) or not tx_id:
        raise ArgumentError("Transaction ID must be a non-empty string", code="INVALID_TXID")
    if not is_ledger_int(index):
        raise ArgumentError("Output index must be a non-negative integer", code="INVALID_OUTPUT_INDEX")

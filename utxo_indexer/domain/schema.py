"""
UTXO Indexer - Block Schema Guard
===================================
Gate strutturale per payload non fidati.

Il payload resta un valore non tipizzato finché non supera tutti i
controlli; solo allora viene convertito in un `Block` immutabile.
Nessun accesso allo store: questo stadio precede sempre la validazione
semantica.

Prima violazione vince; il messaggio indica campo e indice, es.
"Transaction 1: Output 0 value must be a non-negative number".
"""

from typing import Any, Mapping

from utxo_indexer.domain.models import Block
from utxo_indexer.errors import SchemaError, ValidationResult
from utxo_indexer.utils.validators import is_ledger_int


def _is_non_empty_string(value: Any) -> bool:
    return isinstance(value, str) and bool(value)


def _check_input(index: int, inp: Any) -> None:
    if not isinstance(inp, Mapping):
        raise SchemaError(f"Input {index} must be an object", code="INVALID_INPUT")
    if not _is_non_empty_string(inp.get("txId")):
        raise SchemaError(f"Input {index} txId must be a non-empty string", code="INVALID_INPUT_TXID")
    idx = inp.get("index")
    if not is_ledger_int(idx):
        raise SchemaError(f"Input {index} index must be a non-negative integer", code="INVALID_INPUT_INDEX")


def _check_output(index: int, output: Any) -> None:
    if not isinstance(output, Mapping):
        raise SchemaError(f"Output {index} must be an object", code="INVALID_OUTPUT")
    if not _is_non_empty_string(output.get("address")):
        raise SchemaError(f"Output {index} address must be a non-empty string", code="INVALID_OUTPUT_ADDRESS")
    value = output.get("value")
    # Interi int64: il ledger non rappresenta frazioni
    if not is_ledger_int(value):
        raise SchemaError(f"Output {index} value must be a non-negative number", code="INVALID_OUTPUT_VALUE")


def _check_transaction(tx: Any) -> None:
    if not isinstance(tx, Mapping):
        raise SchemaError("Transaction must be an object", code="INVALID_TRANSACTION")
    if not _is_non_empty_string(tx.get("id")):
        raise SchemaError("Transaction ID must be a non-empty string", code="INVALID_TRANSACTION_ID")
    if not isinstance(tx.get("inputs"), list):
        raise SchemaError("Transaction inputs must be an array", code="INVALID_INPUTS")
    if not isinstance(tx.get("outputs"), list):
        raise SchemaError("Transaction outputs must be an array", code="INVALID_OUTPUTS")

    for i, inp in enumerate(tx["inputs"]):
        _check_input(i, inp)
    for i, output in enumerate(tx["outputs"]):
        _check_output(i, output)


def check_block_schema(data: Any) -> None:
    """
    Verifica la struttura di un blocco non fidato.

    Raises:
        SchemaError: alla prima violazione
    """
    if not isinstance(data, Mapping):
        raise SchemaError("Block must be an object", code="INVALID_BLOCK")

    if not _is_non_empty_string(data.get("id")):
        raise SchemaError("Block ID must be a non-empty string", code="INVALID_BLOCK_ID")

    height = data.get("height")
    if not is_ledger_int(height, minimum=1):
        raise SchemaError("Block height must be a positive integer", code="INVALID_BLOCK_HEIGHT")

    if not isinstance(data.get("transactions"), list):
        raise SchemaError("Block transactions must be an array", code="INVALID_TRANSACTIONS")

    for i, tx in enumerate(data["transactions"]):
        try:
            _check_transaction(tx)
        except SchemaError as e:
            raise SchemaError(
                f"Transaction {i}: {e.message}",
                code=e.code,
                details={"transaction_index": i}
            ) from None


def parse_block(data: Any) -> Block:
    """
    Valida e converte un payload non fidato in `Block`.

    Args:
        data: Valore decodificato da JSON (dict atteso)

    Returns:
        Block: Blocco tipizzato e immutabile

    Raises:
        SchemaError: Se la struttura è invalida

    Examples:
        >>> parse_block({"id": "x", "height": 1, "transactions": []}).height
        1
        >>> parse_block(None)
        Traceback (most recent call last):
        ...
        utxo_indexer.errors.SchemaError: [INVALID_BLOCK] Block must be an object
    """
    check_block_schema(data)
    return Block.from_dict(data)


def validate_block_schema(data: Any) -> ValidationResult:
    """Forma tagged di `check_block_schema`: valid / invalid(reason)"""
    try:
        check_block_schema(data)
    except SchemaError as e:
        return ValidationResult.invalid(e)
    return ValidationResult.valid()


__all__ = [
    "check_block_schema",
    "parse_block",
    "validate_block_schema",
]

"""
UTXO Indexer - Block Validation
=================================
Regole di accettazione di un blocco rispetto allo stato corrente.

Validation Rules (in ordine, il primo fallimento vince):
1. Height: block.height == current_height + 1
2. Identity: block.id == sha256(height + tx id ordinati)
3. Per transazione, in ordine dichiarato:
   - tx id non già usato (nel blocco o nel ledger)
   - ogni input referenzia un output esistente e non speso
   - nessun output con valore negativo
   - somma input == somma output (salvo esenzione genesis, il cui
     valore coniato totale resta entro SQLite INTEGER)

Il validatore non modifica mai lo store. Per sequenziare le transazioni
dello stesso blocco usa un overlay provvisorio: un output consumato da
una transazione precedente del blocco è "speso" per le successive, un
output creato da una transazione precedente è spendibile dalle successive.
"""

from __future__ import annotations
from typing import Dict, Optional, Protocol, Set

from utxo_indexer.constants import GENESIS_HEIGHT, MAX_LEDGER_INTEGER
from utxo_indexer.domain.models import Block, Output, OutputKey, StoredOutput, Transaction
from utxo_indexer.errors import (
    ValidationError,
    ValidationResult,
    HeightMismatchError,
    BlockIdMismatchError,
    DuplicateTransactionError,
    OutputNotFoundError,
    OutputAlreadySpentError,
    NegativeOutputValueError,
    SumMismatchError,
    SupplyOverflowError,
)
from utxo_indexer.logging_setup import get_logger, PerformanceLogger


# ============================================================================
# MODULE LOGGER
# ============================================================================

logger = get_logger("validation")


class LedgerReader(Protocol):
    """Query read-only richieste dal validatore"""

    def current_height(self) -> int: ...

    def get_output(self, tx_id: str, index: int) -> Optional[StoredOutput]: ...

    def has_transaction(self, tx_id: str) -> bool: ...


# ============================================================================
# BLOCK VALIDATION CONTEXT
# ============================================================================

class _BlockOverlay:
    """Effetti provvisori delle transazioni già validate nel blocco corrente"""

    def __init__(self):
        self.spent: Set[OutputKey] = set()
        self.created: Dict[OutputKey, Output] = {}
        self.tx_ids: Set[str] = set()
        self.minted = 0

    def record(self, tx: Transaction) -> None:
        self.tx_ids.add(tx.id)
        for inp in tx.inputs:
            self.spent.add(inp.key)
        for key, output in zip(tx.output_keys(), tx.outputs):
            self.created[key] = output


# ============================================================================
# BLOCK VALIDATOR
# ============================================================================

class BlockValidator:
    """
    Validatore blocchi.

    Attributes:
        store: Ledger in sola lettura (current_height, get_output, has_transaction)
        allow_genesis_mint: Se True, le tx senza input a height 1 creano valore

    Examples:
        >>> validator = BlockValidator(database)
        >>> validator.validate_block(block)        # raises ValidationError
        >>> validator.check_block(block).is_valid  # tagged form
        True
    """

    def __init__(self, store: LedgerReader, allow_genesis_mint: bool = True):
        self.store = store
        self.allow_genesis_mint = allow_genesis_mint

    def validate_block(self, block: Block) -> None:
        """
        Validazione completa blocco.

        Raises:
            ValidationError: sottoclasse specifica della prima regola violata
        """
        with PerformanceLogger(logger, f"validate_block(height={block.height})"):
            self._validate_height(block)
            self._validate_block_id(block)

            overlay = _BlockOverlay()
            for position, tx in enumerate(block.transactions):
                self._validate_transaction(block, position, tx, overlay)
                overlay.record(tx)

        logger.debug(
            "Block validated successfully",
            extra_data={"height": block.height, "tx_count": len(block.transactions)}
        )

    def check_block(self, block: Block) -> ValidationResult:
        """Forma tagged di `validate_block`"""
        try:
            self.validate_block(block)
        except ValidationError as e:
            return ValidationResult.invalid(e)
        return ValidationResult.valid()

    # ========================================================================
    # RULES
    # ========================================================================

    def _validate_height(self, block: Block) -> None:
        current_height = self.store.current_height()
        expected = current_height + 1

        if block.height != expected:
            raise HeightMismatchError(
                f"Invalid height. Expected {expected}, got {block.height}",
                code="HEIGHT_MISMATCH",
                details={"expected": expected, "actual": block.height}
            )

    def _validate_block_id(self, block: Block) -> None:
        expected_id = block.compute_id()

        if block.id != expected_id:
            raise BlockIdMismatchError(
                f"Invalid block ID. Expected {expected_id}, got {block.id}",
                code="BLOCK_ID_MISMATCH",
                details={"expected": expected_id, "actual": block.id}
            )

    def _validate_transaction(
        self,
        block: Block,
        position: int,
        tx: Transaction,
        overlay: _BlockOverlay
    ) -> None:
        if tx.id in overlay.tx_ids or self.store.has_transaction(tx.id):
            raise DuplicateTransactionError(
                f"Duplicate transaction ID: {tx.id}",
                code="DUPLICATE_TXID",
                details={"txid": tx.id, "position": position}
            )

        input_sum = 0
        consumed: Set[OutputKey] = set()
        for inp in tx.inputs:
            if inp.key in consumed:
                raise OutputAlreadySpentError(
                    f"Output already spent: {inp.key}",
                    code="OUTPUT_ALREADY_SPENT",
                    details={"output": str(inp.key), "txid": tx.id}
                )
            input_sum += self._resolve_input_value(inp.key, overlay)
            consumed.add(inp.key)

        output_sum = 0
        for output in tx.outputs:
            if output.value < 0:
                raise NegativeOutputValueError(
                    f"Negative output value not allowed: {output.value}",
                    code="NEGATIVE_OUTPUT_VALUE",
                    details={"txid": tx.id, "value": output.value}
                )
            output_sum += output.value

        if self._is_exempt_from_conservation(block, tx):
            # Il ledger è vuoto a height 1: il mint del blocco è il valore totale
            minted = overlay.minted + output_sum
            if minted > MAX_LEDGER_INTEGER:
                raise SupplyOverflowError(
                    f"Total minted value ({minted}) exceeds maximum ledger value ({MAX_LEDGER_INTEGER})",
                    code="VALUE_OVERFLOW",
                    details={"txid": tx.id, "minted": minted}
                )
            overlay.minted = minted

            logger.debug(
                "Genesis transaction mints value",
                extra_data={"txid": tx.id, "value": output_sum}
            )
            return

        if input_sum != output_sum:
            raise SumMismatchError(
                f"Input sum ({input_sum}) does not equal output sum ({output_sum})",
                code="SUM_MISMATCH",
                details={"txid": tx.id, "input_sum": input_sum, "output_sum": output_sum}
            )

    def _resolve_input_value(self, key: OutputKey, overlay: _BlockOverlay) -> int:
        if key in overlay.spent:
            raise OutputAlreadySpentError(
                f"Output already spent: {key}",
                code="OUTPUT_ALREADY_SPENT",
                details={"output": str(key), "in_block": True}
            )

        created = overlay.created.get(key)
        if created is not None:
            return created.value

        stored = self.store.get_output(key.tx_id, key.index)
        if stored is None:
            raise OutputNotFoundError(
                f"Referenced output not found: {key}",
                code="OUTPUT_NOT_FOUND",
                details={"output": str(key)}
            )

        if stored.spent:
            raise OutputAlreadySpentError(
                f"Output already spent: {key}",
                code="OUTPUT_ALREADY_SPENT",
                details={"output": str(key), "spending_txid": stored.spending_tx_id}
            )

        return stored.value

    def _is_exempt_from_conservation(self, block: Block, tx: Transaction) -> bool:
        # Unico punto di ingresso di nuovo valore nel ledger
        return (
            self.allow_genesis_mint
            and block.height == GENESIS_HEIGHT
            and tx.is_genesis_style()
        )


# ============================================================================
# EXPORT
# ============================================================================

__all__ = [
    "LedgerReader",
    "BlockValidator",
]

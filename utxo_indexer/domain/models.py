"""
UTXO Indexer - Core Domain Models
===================================
Strutture dati fondamentali del ledger.

Last Updated: 2026-10-18
Version: 1.0.0

Models:
- Output: (address, value) prodotto da una transazione
- Input: riferimento a un output precedente (txId + index)
- Transaction: transazione con input/output
- Block: blocco completo (id content-addressed + height)
- OutputKey: chiave univoca output (tx_id + index)
- StoredOutput: proiezione persistita di un Output

Tutte le strutture sono immutabili (frozen). Il formato wire usa
camelCase (`txId`); gli attributi Python sono snake_case.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Optional, List, Dict, Any, Tuple

from utxo_indexer.utils.hashing import compute_block_id


# ============================================================================
# OUTPUT
# ============================================================================

@dataclass(frozen=True)
class Output:
    """
    Output di transazione.

    Attributes:
        address (str): Indirizzo proprietario
        value (int): Valore (intero non negativo)

    Examples:
        >>> Output("addr1", 100).to_dict()
        {'address': 'addr1', 'value': 100}
    """

    address: str
    value: int

    def to_dict(self) -> Dict[str, Any]:
        return {"address": self.address, "value": self.value}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Output:
        return cls(address=data["address"], value=data["value"])


# ============================================================================
# INPUT
# ============================================================================

@dataclass(frozen=True)
class Input:
    """
    Input di transazione (riferimento a output precedente, non speso).

    Attributes:
        tx_id (str): ID transazione che ha prodotto l'output
        index (int): Indice dell'output in quella transazione
    """

    tx_id: str
    index: int

    @property
    def key(self) -> OutputKey:
        return OutputKey(self.tx_id, self.index)

    def to_dict(self) -> Dict[str, Any]:
        return {"txId": self.tx_id, "index": self.index}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Input:
        return cls(tx_id=data["txId"], index=data["index"])


# ============================================================================
# TRANSACTION
# ============================================================================

@dataclass(frozen=True)
class Transaction:
    """
    Transazione del ledger.

    Una transazione senza input è di tipo "genesis-style": crea valore
    solo se esentata dalla regola di conservazione (vedi BlockValidator).

    Attributes:
        id (str): Transaction ID (univoco nel ledger)
        inputs (tuple[Input]): Input ordinati
        outputs (tuple[Output]): Output ordinati
    """

    id: str
    inputs: Tuple[Input, ...] = field(default_factory=tuple)
    outputs: Tuple[Output, ...] = field(default_factory=tuple)

    def __post_init__(self):
        # Liste accettate in costruzione, conservate come tuple
        object.__setattr__(self, "inputs", tuple(self.inputs))
        object.__setattr__(self, "outputs", tuple(self.outputs))

    def is_genesis_style(self) -> bool:
        """True se la transazione non ha input"""
        return not self.inputs

    def total_output_value(self) -> int:
        return sum(output.value for output in self.outputs)

    def output_keys(self) -> List[OutputKey]:
        return [OutputKey(self.id, idx) for idx in range(len(self.outputs))]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "inputs": [inp.to_dict() for inp in self.inputs],
            "outputs": [out.to_dict() for out in self.outputs],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Transaction:
        return cls(
            id=data["id"],
            inputs=tuple(Input.from_dict(inp) for inp in data["inputs"]),
            outputs=tuple(Output.from_dict(out) for out in data["outputs"]),
        )

    def __repr__(self) -> str:
        return (
            f"Transaction(id={self.id[:16]}, "
            f"inputs={len(self.inputs)}, outputs={len(self.outputs)})"
        )


# ============================================================================
# BLOCK
# ============================================================================

@dataclass(frozen=True)
class Block:
    """
    Blocco del ledger.

    Attributes:
        id (str): sha256(height + tx ids ordinati), in hex
        height (int): Posizione 1-based nella chain
        transactions (tuple[Transaction]): Transazioni in ordine dichiarato

    Examples:
        >>> tx = Transaction("genesis_tx", (), (Output("addr1", 100),))
        >>> block = Block.build(1, [tx])
        >>> block.has_valid_id()
        True
    """

    id: str
    height: int
    transactions: Tuple[Transaction, ...] = field(default_factory=tuple)

    def __post_init__(self):
        object.__setattr__(self, "transactions", tuple(self.transactions))

    @classmethod
    def build(cls, height: int, transactions: List[Transaction]) -> Block:
        """Costruisce un blocco calcolandone l'ID"""
        return cls(
            id=compute_block_id(height, [tx.id for tx in transactions]),
            height=height,
            transactions=tuple(transactions),
        )

    def transaction_ids(self) -> List[str]:
        return [tx.id for tx in self.transactions]

    def compute_id(self) -> str:
        return compute_block_id(self.height, self.transaction_ids())

    def has_valid_id(self) -> bool:
        return self.id == self.compute_id()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "height": self.height,
            "transactions": [tx.to_dict() for tx in self.transactions],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Block:
        """
        Deserializza blocco da dict già validato.

        Input non fidato deve passare da `schema.parse_block`.
        """
        return cls(
            id=data["id"],
            height=data["height"],
            transactions=tuple(Transaction.from_dict(tx) for tx in data["transactions"]),
        )

    def __repr__(self) -> str:
        return f"Block(height={self.height}, id={self.id[:16]}..., txs={len(self.transactions)})"


# ============================================================================
# OUTPUT KEY
# ============================================================================

@dataclass(frozen=True, order=True)
class OutputKey:
    """
    Chiave univoca di un output: (tx_id, index).

    Examples:
        >>> str(OutputKey("genesis_tx", 0))
        'genesis_tx:0'
    """

    tx_id: str
    index: int

    def __str__(self) -> str:
        return f"{self.tx_id}:{self.index}"


# ============================================================================
# STORED OUTPUT
# ============================================================================

@dataclass(frozen=True)
class StoredOutput:
    """
    Output persistito nello store.

    Attributes:
        tx_id (str): Transazione produttrice
        index (int): Indice output
        address (str): Proprietario
        value (int): Valore
        spent (bool): True se consumato da una transazione accettata
        spending_tx_id (str): Transazione che lo ha speso (None se unspent)
        produced_at_height (int): Height del blocco produttore
    """

    tx_id: str
    index: int
    address: str
    value: int
    spent: bool = False
    spending_tx_id: Optional[str] = None
    produced_at_height: int = 0

    @property
    def key(self) -> OutputKey:
        return OutputKey(self.tx_id, self.index)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "txId": self.tx_id,
            "index": self.index,
            "address": self.address,
            "value": self.value,
            "spent": self.spent,
            "spendingTxId": self.spending_tx_id,
            "producedAtHeight": self.produced_at_height,
        }


# ============================================================================
# EXPORT
# ============================================================================

__all__ = [
    "Output",
    "Input",
    "Transaction",
    "Block",
    "OutputKey",
    "StoredOutput",
]

"""
UTXO Indexer - Ledger Storage Layer
=====================================
Persistent storage con SQLite.

Last Updated: 2026-10-18
Version: 1.0.0

Features:
- Block persistence (height univoca, id content-addressed)
- Transaction indexing
- Output set con flag spent (mai cancellati su spesa)
- Apply / rollback atomici (BEGIN IMMEDIATE ... COMMIT)
- Query per balance, output e UTXO per address

Ogni scrittura è una singola transazione SQLite: o tutti gli effetti di
un blocco (o di un rollback) sono visibili, o nessuno. I lettori usano
connessioni thread-local in WAL e vedono solo stato committato.
"""

import json
import sqlite3
import threading
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Optional, List, Dict, Any, Iterator

# Internal imports
from utxo_indexer.constants import DB_SCHEMA_VERSION, DEFAULT_DB_TIMEOUT_SECONDS, EMPTY_LEDGER_HEIGHT
from utxo_indexer.domain.models import Block, Transaction, StoredOutput
from utxo_indexer.errors import (
    PersistenceError,
    DatabaseConnectionError,
    HeightConflictError,
    DuplicateTransactionError,
    OutputAlreadySpentError,
)
from utxo_indexer.logging_setup import get_logger, PerformanceLogger
from utxo_indexer.config import IndexerSettings


# ============================================================================
# MODULE LOGGER
# ============================================================================

logger = get_logger("storage")


# ============================================================================
# DATABASE SCHEMA
# ============================================================================

CREATE_TABLES_SQL = """
-- Blocks table
CREATE TABLE IF NOT EXISTS blocks (
    height INTEGER PRIMARY KEY,
    id TEXT UNIQUE NOT NULL,
    tx_count INTEGER NOT NULL,
    block_data TEXT NOT NULL,
    created_at INTEGER NOT NULL
);

-- Transactions table
CREATE TABLE IF NOT EXISTS transactions (
    id TEXT PRIMARY KEY,
    block_height INTEGER NOT NULL,
    position INTEGER NOT NULL,
    tx_data TEXT NOT NULL,
    FOREIGN KEY (block_height) REFERENCES blocks(height)
);

CREATE INDEX IF NOT EXISTS idx_tx_block_height ON transactions(block_height);

-- Outputs table (spent e unspent)
CREATE TABLE IF NOT EXISTS outputs (
    tx_id TEXT NOT NULL,
    output_index INTEGER NOT NULL,
    address TEXT NOT NULL,
    value INTEGER NOT NULL,
    spent INTEGER NOT NULL DEFAULT 0,
    spending_tx_id TEXT,
    produced_at_height INTEGER NOT NULL,
    PRIMARY KEY (tx_id, output_index)
);

CREATE INDEX IF NOT EXISTS idx_outputs_address ON outputs(address, spent);
CREATE INDEX IF NOT EXISTS idx_outputs_spending_tx ON outputs(spending_tx_id);
CREATE INDEX IF NOT EXISTS idx_outputs_height ON outputs(produced_at_height);

-- Metadata table
CREATE TABLE IF NOT EXISTS metadata (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at INTEGER NOT NULL
);
"""

OUTPUT_COLUMNS = (
    "tx_id, output_index, address, value, spent, spending_tx_id, produced_at_height"
)


def _row_to_output(row: tuple) -> StoredOutput:
    return StoredOutput(
        tx_id=row[0],
        index=row[1],
        address=row[2],
        value=row[3],
        spent=bool(row[4]),
        spending_tx_id=row[5],
        produced_at_height=row[6],
    )


# ============================================================================
# DATABASE CLASS
# ============================================================================

class LedgerDatabase:
    """
    Database SQLite per il ledger UTXO.

    Thread-safe: connessioni thread-local, scritture serializzate da
    un lock di processo e da BEGIN IMMEDIATE lato SQLite.

    Attributes:
        db_path: Path database file
        config: Indexer configuration

    Examples:
        >>> db = LedgerDatabase(Path("ledger.db"), config)
        >>> db.apply_block(block)
        >>> db.get_balance("addr1")
        100
    """

    def __init__(self, db_path: Path, config: Optional[IndexerSettings] = None):
        self.db_path = Path(db_path)
        self.config = config
        self.timeout = config.db_timeout_seconds if config else DEFAULT_DB_TIMEOUT_SECONDS

        # Thread-local storage per connections
        self._local = threading.local()
        self._connections: List[sqlite3.Connection] = []
        self._connections_lock = threading.Lock()
        self._write_lock = threading.RLock()

        self._initialize_database()

        logger.info(
            "Database initialized",
            extra_data={"db_path": str(self.db_path)}
        )

    # ========================================================================
    # CONNECTIONS
    # ========================================================================

    def _get_connection(self) -> sqlite3.Connection:
        """Ottieni connection thread-local"""
        conn = getattr(self._local, 'connection', None)
        if conn is not None:
            return conn

        try:
            # Autocommit: le transazioni sono esplicite (BEGIN IMMEDIATE)
            conn = sqlite3.connect(
                str(self.db_path),
                check_same_thread=False,
                timeout=self.timeout,
                isolation_level=None,
            )
            conn.execute("PRAGMA foreign_keys = ON")
            conn.execute("PRAGMA journal_mode = WAL")
            conn.execute("PRAGMA synchronous = NORMAL")
        except sqlite3.Error as e:
            raise DatabaseConnectionError(
                f"Failed to connect to database: {e}",
                code="DB_CONNECTION_FAILED",
                details={"db_path": str(self.db_path)}
            ) from e

        self._local.connection = conn
        with self._connections_lock:
            self._connections.append(conn)
        return conn

    def _initialize_database(self) -> None:
        """Inizializza database con schema"""
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise DatabaseConnectionError(
                f"Cannot create database directory: {e}",
                code="DB_CONNECTION_FAILED"
            ) from e

        try:
            conn = self._get_connection()
            conn.executescript(CREATE_TABLES_SQL)
            conn.execute(
                "INSERT OR REPLACE INTO metadata (key, value, updated_at) VALUES (?, ?, ?)",
                ("schema_version", str(DB_SCHEMA_VERSION), int(time.time()))
            )
            logger.debug("Database schema initialized")

        except sqlite3.Error as e:
            raise PersistenceError(
                f"Failed to initialize database: {e}",
                code="DB_INIT_FAILED"
            ) from e

    @contextmanager
    def _write_transaction(self) -> Iterator[sqlite3.Cursor]:
        """
        Transazione di scrittura esplicita.

        COMMIT all'uscita normale, ROLLBACK su qualunque eccezione
        (che viene ri-sollevata invariata).
        """
        with self._write_lock:
            conn = self._get_connection()
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn.cursor()
                conn.execute("COMMIT")
            except BaseException:
                if conn.in_transaction:
                    conn.execute("ROLLBACK")
                raise

    # ========================================================================
    # BLOCK OPERATIONS
    # ========================================================================

    def apply_block(self, block: Block) -> None:
        """
        Applica un blocco già validato in modo atomico.

        Args:
            block: Block validato

        Raises:
            HeightConflictError: tip spostato o height già presente
            DuplicateTransactionError: tx id già presente
            OutputAlreadySpentError: input speso nel frattempo
            PersistenceError: qualunque altro errore SQLite

        Examples:
            >>> db.apply_block(block)
            >>> db.current_height()
            1
        """
        with PerformanceLogger(logger, f"apply_block(height={block.height})"):
            try:
                with self._write_transaction() as cursor:
                    self._check_tip(cursor, block.height)
                    self._save_block(cursor, block)

                    for position, tx in enumerate(block.transactions):
                        self._save_transaction(cursor, tx, block.height, position)
                        self._mark_inputs_spent(cursor, tx)
                        self._save_outputs(cursor, tx, block.height)

            except (HeightConflictError, DuplicateTransactionError, OutputAlreadySpentError):
                raise
            except sqlite3.Error as e:
                raise PersistenceError(
                    f"Failed to apply block: {e}",
                    code="BLOCK_SAVE_FAILED",
                    details={"height": block.height}
                ) from e

        logger.debug(
            "Block saved to database",
            extra_data={"height": block.height, "id": block.id[:16] + "..."}
        )

    def _check_tip(self, cursor: sqlite3.Cursor, height: int) -> None:
        cursor.execute("SELECT COALESCE(MAX(height), 0) FROM blocks")
        tip = cursor.fetchone()[0]

        if height != tip + 1:
            raise HeightConflictError(
                f"Invalid height. Expected {tip + 1}, got {height}",
                code="HEIGHT_CONFLICT",
                details={"expected": tip + 1, "actual": height}
            )

    def _save_block(self, cursor: sqlite3.Cursor, block: Block) -> None:
        block_data = json.dumps(block.to_dict())

        try:
            cursor.execute("""
                INSERT INTO blocks (height, id, tx_count, block_data, created_at)
                VALUES (?, ?, ?, ?, ?)
            """, (
                block.height,
                block.id,
                len(block.transactions),
                block_data,
                int(time.time())
            ))
        except sqlite3.IntegrityError as e:
            raise HeightConflictError(
                f"Block at height {block.height} already exists",
                code="HEIGHT_CONFLICT",
                details={"height": block.height}
            ) from e

    def load_block(self, height: int) -> Optional[Block]:
        """
        Carica blocco da database.

        Returns:
            Block: Blocco caricato, o None se non trovato
        """
        try:
            cursor = self._get_connection().cursor()
            cursor.execute("SELECT block_data FROM blocks WHERE height = ?", (height,))
            row = cursor.fetchone()
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to load block: {e}", code="BLOCK_LOAD_FAILED") from e

        if not row:
            return None

        return Block.from_dict(json.loads(row[0]))

    get_block = load_block

    def get_block_count(self) -> int:
        """Numero blocchi memorizzati"""
        try:
            cursor = self._get_connection().cursor()
            cursor.execute("SELECT COUNT(*) FROM blocks")
            return cursor.fetchone()[0]
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to count blocks: {e}") from e

    def current_height(self) -> int:
        """
        Height dell'ultimo blocco.

        Returns:
            int: Height, o 0 se il ledger è vuoto
        """
        try:
            cursor = self._get_connection().cursor()
            cursor.execute("SELECT MAX(height) FROM blocks")
            result = cursor.fetchone()[0]
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to get current height: {e}") from e

        return EMPTY_LEDGER_HEIGHT if result is None else result

    # ========================================================================
    # TRANSACTION OPERATIONS
    # ========================================================================

    def _save_transaction(
        self,
        cursor: sqlite3.Cursor,
        tx: Transaction,
        block_height: int,
        position: int
    ) -> None:
        """Salva transazione (internal)"""
        try:
            cursor.execute("""
                INSERT INTO transactions (id, block_height, position, tx_data)
                VALUES (?, ?, ?, ?)
            """, (tx.id, block_height, position, json.dumps(tx.to_dict())))
        except sqlite3.IntegrityError as e:
            raise DuplicateTransactionError(
                f"Duplicate transaction ID: {tx.id}",
                code="DUPLICATE_TXID",
                details={"txid": tx.id}
            ) from e

    def has_transaction(self, tx_id: str) -> bool:
        """True se la transazione è già nel ledger"""
        try:
            cursor = self._get_connection().cursor()
            cursor.execute("SELECT 1 FROM transactions WHERE id = ?", (tx_id,))
            return cursor.fetchone() is not None
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to query transaction: {e}") from e

    # ========================================================================
    # OUTPUT OPERATIONS
    # ========================================================================

    def _mark_inputs_spent(self, cursor: sqlite3.Cursor, tx: Transaction) -> None:
        """Marca gli input come spesi (internal)"""
        for inp in tx.inputs:
            cursor.execute("""
                UPDATE outputs SET spent = 1, spending_tx_id = ?
                WHERE tx_id = ? AND output_index = ? AND spent = 0
            """, (tx.id, inp.tx_id, inp.index))

            if cursor.rowcount != 1:
                raise OutputAlreadySpentError(
                    f"Output already spent: {inp.key}",
                    code="OUTPUT_ALREADY_SPENT",
                    details={"output": str(inp.key), "txid": tx.id}
                )

    def _save_outputs(self, cursor: sqlite3.Cursor, tx: Transaction, block_height: int) -> None:
        """Inserisce gli output della transazione come unspent (internal)"""
        cursor.executemany(f"""
            INSERT INTO outputs ({OUTPUT_COLUMNS})
            VALUES (?, ?, ?, ?, 0, NULL, ?)
        """, [
            (tx.id, idx, output.address, output.value, block_height)
            for idx, output in enumerate(tx.outputs)
        ])

    def get_output(self, tx_id: str, index: int) -> Optional[StoredOutput]:
        """
        Output per (tx_id, index), speso o meno.

        Returns:
            StoredOutput: Output, o None se inesistente
        """
        try:
            cursor = self._get_connection().cursor()
            cursor.execute(
                f"SELECT {OUTPUT_COLUMNS} FROM outputs WHERE tx_id = ? AND output_index = ?",
                (tx_id, index)
            )
            row = cursor.fetchone()
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to load output: {e}", code="OUTPUT_LOAD_FAILED") from e

        return _row_to_output(row) if row else None

    def get_balance(self, address: str) -> int:
        """
        Balance di un address: somma degli output unspent.

        Returns:
            int: Balance (0 se address sconosciuto)
        """
        try:
            cursor = self._get_connection().cursor()
            cursor.execute(
                "SELECT COALESCE(SUM(value), 0) FROM outputs WHERE address = ? AND spent = 0",
                (address,)
            )
            return cursor.fetchone()[0]
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to compute balance: {e}", code="BALANCE_QUERY_FAILED") from e

    def get_utxos_by_address(self, address: str) -> List[StoredOutput]:
        """
        Output unspent di un address.

        Returns:
            List[StoredOutput]: Ordinati per height, tx id, indice
        """
        try:
            cursor = self._get_connection().cursor()
            cursor.execute(f"""
                SELECT {OUTPUT_COLUMNS} FROM outputs
                WHERE address = ? AND spent = 0
                ORDER BY produced_at_height, tx_id, output_index
            """, (address,))
            return [_row_to_output(row) for row in cursor.fetchall()]
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to query UTXOs: {e}", code="UTXO_QUERY_FAILED") from e

    # ========================================================================
    # ROLLBACK
    # ========================================================================

    def rollback_to_height(self, target_height: int) -> int:
        """
        Annulla tutti i blocchi con height > target_height.

        Ordine: ripristina gli output spesi da tx sopra il target, poi
        elimina output, transazioni e blocchi sopra il target.

        Args:
            target_height: Height da mantenere come nuovo tip

        Returns:
            int: Numero blocchi rimossi

        Raises:
            PersistenceError: Se il rollback fallisce (nessuna modifica)
        """
        with PerformanceLogger(logger, f"rollback_to_height({target_height})"):
            try:
                with self._write_transaction() as cursor:
                    cursor.execute(
                        "SELECT COUNT(*) FROM blocks WHERE height > ?", (target_height,)
                    )
                    removed = cursor.fetchone()[0]

                    cursor.execute("""
                        UPDATE outputs SET spent = 0, spending_tx_id = NULL
                        WHERE spending_tx_id IN (
                            SELECT id FROM transactions WHERE block_height > ?
                        )
                    """, (target_height,))
                    restored = cursor.rowcount

                    cursor.execute(
                        "DELETE FROM outputs WHERE produced_at_height > ?", (target_height,)
                    )
                    cursor.execute(
                        "DELETE FROM transactions WHERE block_height > ?", (target_height,)
                    )
                    cursor.execute(
                        "DELETE FROM blocks WHERE height > ?", (target_height,)
                    )

            except sqlite3.Error as e:
                raise PersistenceError(
                    f"Failed to rollback: {e}",
                    code="ROLLBACK_FAILED",
                    details={"target_height": target_height}
                ) from e

        logger.debug(
            "Rollback committed",
            extra_data={
                "target_height": target_height,
                "blocks_removed": removed,
                "outputs_restored": restored,
            }
        )
        return removed

    # ========================================================================
    # UTILITY
    # ========================================================================

    def get_statistics(self) -> Dict[str, Any]:
        """Contatori aggregati del ledger"""
        try:
            cursor = self._get_connection().cursor()
            cursor.execute("""
                SELECT
                    (SELECT COUNT(*) FROM blocks),
                    (SELECT COUNT(*) FROM transactions),
                    (SELECT COUNT(*) FROM outputs),
                    (SELECT COUNT(*) FROM outputs WHERE spent = 0),
                    (SELECT COALESCE(SUM(value), 0) FROM outputs WHERE spent = 0)
            """)
            blocks, txs, outputs, unspent, unspent_value = cursor.fetchone()
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to collect statistics: {e}") from e

        return {
            "blocks": blocks,
            "transactions": txs,
            "outputs": outputs,
            "unspent_outputs": unspent,
            "unspent_value": unspent_value,
        }

    def get_schema_version(self) -> Optional[int]:
        try:
            cursor = self._get_connection().cursor()
            cursor.execute("SELECT value FROM metadata WHERE key = 'schema_version'")
            row = cursor.fetchone()
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to read metadata: {e}") from e
        return int(row[0]) if row else None

    def close(self) -> None:
        """Chiudi tutte le database connections"""
        with self._connections_lock:
            for conn in self._connections:
                conn.close()
            self._connections.clear()
        self._local = threading.local()

        logger.info("Database closed")


# ============================================================================
# EXPORT
# ============================================================================

__all__ = [
    "CREATE_TABLES_SQL",
    "LedgerDatabase",
]

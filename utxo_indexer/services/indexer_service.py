"""
UTXO Indexer - Indexer Service
================================
Servizio high-level: ingest blocchi, rollback, query.

Last Updated: 2026-10-18
Version: 1.0.0

Features:
- Pipeline ingest: schema guard → validazione → apply atomico
- Rollback con limiti (target futuro, profondità massima)
- Query balance / output / UTXO / blocchi
- Audit trail di blocchi applicati e rollback

Le operazioni che mutano lo stato (process_block, rollback_to_height)
restituiscono sempre un OperationResult e non sollevano eccezioni; le
query sollevano le eccezioni tipizzate di `utxo_indexer.errors`.
"""

import threading
from typing import Any, Dict, List, Optional

# Internal imports
from utxo_indexer.config import IndexerSettings, validate_config
from utxo_indexer.constants import MAX_ROLLBACK_DEPTH
from utxo_indexer.domain.models import Block, StoredOutput
from utxo_indexer.domain.schema import parse_block
from utxo_indexer.domain.validation import BlockValidator
from utxo_indexer.errors import (
    IndexerException,
    InvalidConfigError,
    OperationResult,
    PersistenceError,
    RollbackBoundsError,
)
from utxo_indexer.logging_setup import get_logger, AuditLogger, PerformanceLogger
from utxo_indexer.storage.db import LedgerDatabase
from utxo_indexer.utils.validators import (
    validate_address,
    validate_height,
    validate_output_ref,
)
from utxo_indexer.version import __version__


# ============================================================================
# MODULE LOGGER
# ============================================================================

logger = get_logger("indexer")


# ============================================================================
# INDEXER SERVICE
# ============================================================================

class IndexerService:
    """
    Servizio indexer.

    High-level API per:
    - Ingest blocchi non fidati
    - Rollback del tip
    - Query balance e output set

    Attributes:
        database: Ledger store
        config: Indexer configuration
        validator: Block validator (legge dal database)

    Examples:
        >>> service = IndexerService(database, config)
        >>> result = service.process_block(raw_block)
        >>> result.success
        True
        >>> service.get_balance("addr1")
        100
    """

    def __init__(
        self,
        database: LedgerDatabase,
        config: Optional[IndexerSettings] = None,
        validator: Optional[BlockValidator] = None,
        audit_logger: Optional[AuditLogger] = None
    ):
        self.database = database
        self.config = config
        self.max_rollback_depth = config.max_rollback_depth if config else MAX_ROLLBACK_DEPTH
        self.validator = validator or BlockValidator(
            database,
            allow_genesis_mint=config.allow_genesis_mint if config else True
        )
        self.audit_logger = audit_logger

        # Serializza "avanza tip" e rollback
        self._lock = threading.RLock()

    @classmethod
    def from_settings(cls, config: IndexerSettings) -> "IndexerService":
        """
        Bootstrap completo da configurazione (CLI / API).

        Raises:
            InvalidConfigError: Se `validate_config` segnala errori
            DatabaseConnectionError: Se il database non è apribile
        """
        config.ensure_directories()

        is_valid, errors = validate_config(config)
        if not is_valid:
            raise InvalidConfigError(
                f"Invalid configuration: {'; '.join(errors)}",
                code="INVALID_CONFIG",
                details={"errors": errors}
            )

        database = LedgerDatabase(config.db_path, config)
        audit_logger = AuditLogger(config.log_dir) if config.enable_audit_log else None

        logger.info(
            "Indexer service ready",
            extra_data={
                "db_path": str(config.db_path),
                "current_height": database.current_height(),
                "max_rollback_depth": config.max_rollback_depth,
            }
        )
        return cls(database, config, audit_logger=audit_logger)

    # ========================================================================
    # INGEST
    # ========================================================================

    def process_block(self, raw_block: Any) -> OperationResult:
        """
        Valida e applica un blocco non fidato.

        Args:
            raw_block: Payload decodificato da JSON

        Returns:
            OperationResult: success, oppure error/code/category del primo fallimento
        """
        try:
            block = parse_block(raw_block)

            with self._lock:
                with PerformanceLogger(logger, f"process_block(height={block.height})", threshold_ms=1000):
                    self.validator.validate_block(block)
                    self.database.apply_block(block)

        except PersistenceError as e:
            logger.error(
                "Block persistence failed",
                extra_data={"error": e.message, "code": e.code}
            )
            return OperationResult.from_exception(e)

        except IndexerException as e:
            logger.warning(
                "Block rejected",
                extra_data={"error": e.message, "code": e.code}
            )
            return OperationResult.from_exception(e)

        except Exception as e:
            logger.exception(f"Unexpected error processing block: {e}")
            return OperationResult.from_exception(e)

        if self.audit_logger:
            self.audit_logger.log_block_applied(block.height, block.id, len(block.transactions))

        logger.info(
            "Block applied",
            extra_data={
                "height": block.height,
                "id": block.id[:16] + "...",
                "tx_count": len(block.transactions),
            }
        )
        return OperationResult.ok()

    # ========================================================================
    # ROLLBACK
    # ========================================================================

    def rollback_to_height(self, height: Any) -> OperationResult:
        """
        Annulla tutti i blocchi sopra `height`.

        Args:
            height: Nuovo tip (0 svuota il ledger)

        Returns:
            OperationResult: success, o errore argomento / bounds / persistence
        """
        try:
            validate_height(height)

            with self._lock:
                current = self.database.current_height()

                if height > current:
                    raise RollbackBoundsError(
                        f"Cannot rollback to height {height}, current height is {current}",
                        code="ROLLBACK_TARGET_IN_FUTURE",
                        details={"target": height, "current": current}
                    )

                if current - height > self.max_rollback_depth:
                    raise RollbackBoundsError(
                        f"Cannot rollback more than {self.max_rollback_depth} blocks. "
                        f"Current: {current}, Target: {height}",
                        code="ROLLBACK_TOO_DEEP",
                        details={"target": height, "current": current}
                    )

                removed = self.database.rollback_to_height(height)

        except PersistenceError as e:
            logger.error(
                "Rollback failed",
                extra_data={"error": e.message, "code": e.code}
            )
            return OperationResult.from_exception(e)

        except IndexerException as e:
            logger.warning(
                "Rollback rejected",
                extra_data={"error": e.message, "code": e.code}
            )
            return OperationResult.from_exception(e)

        except Exception as e:
            logger.exception(f"Unexpected error during rollback: {e}")
            return OperationResult.from_exception(e)

        if self.audit_logger:
            self.audit_logger.log_rollback(current, height, removed)

        logger.info(
            "Rolled back",
            extra_data={"from_height": current, "to_height": height, "blocks_removed": removed}
        )
        return OperationResult.ok()

    # ========================================================================
    # QUERIES
    # ========================================================================

    def get_balance(self, address: Any) -> int:
        """
        Balance corrente di un address.

        Raises:
            ArgumentError: Se address non è una stringa non vuota
            PersistenceError: Se la query fallisce
        """
        validate_address(address)
        return self.database.get_balance(address)

    def get_current_height(self) -> int:
        return self.database.current_height()

    def get_output(self, tx_id: Any, index: Any) -> Optional[StoredOutput]:
        validate_output_ref(tx_id, index)
        return self.database.get_output(tx_id, index)

    def get_utxos(self, address: Any) -> List[StoredOutput]:
        validate_address(address)
        return self.database.get_utxos_by_address(address)

    def get_block(self, height: Any) -> Optional[Block]:
        validate_height(height)
        return self.database.get_block(height)

    def get_status(self) -> Dict[str, Any]:
        """Stato sintetico per health check / CLI"""
        return {
            "version": __version__,
            "current_height": self.database.current_height(),
            "statistics": self.database.get_statistics(),
            "max_rollback_depth": self.max_rollback_depth,
        }

    # ========================================================================
    # LIFECYCLE
    # ========================================================================

    def close(self) -> None:
        """Rilascia database e audit log"""
        self.database.close()
        if self.audit_logger:
            self.audit_logger.close()


# ============================================================================
# EXPORT
# ============================================================================

__all__ = [
    "IndexerService",
]

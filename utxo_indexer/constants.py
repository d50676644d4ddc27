"""
UTXO Indexer - Core Constants
===============================
Costanti del protocollo di indicizzazione.

Last Updated: 2026-10-18
Version: 1.0.0
"""

from typing import Final

# ============================================================================
# CHAIN RULES
# ============================================================================

# Prima height valida; height 0 = ledger vuoto
GENESIS_HEIGHT: Final[int] = 1
EMPTY_LEDGER_HEIGHT: Final[int] = 0

# Profondità massima di un singolo rollback (policy, non limite strutturale)
MAX_ROLLBACK_DEPTH: Final[int] = 2000

# Limite di SQLite INTEGER (int64 signed): vale per valori, indici e
# per il valore totale del ledger, che è la base di ogni SUM
MAX_LEDGER_INTEGER: Final[int] = 2 ** 63 - 1

# ============================================================================
# STORAGE
# ============================================================================

DEFAULT_DB_FILENAME: Final[str] = "ledger.db"
DB_SCHEMA_VERSION: Final[int] = 1
DEFAULT_DB_TIMEOUT_SECONDS: Final[float] = 30.0

# ============================================================================
# API
# ============================================================================

DEFAULT_API_HOST: Final[str] = "0.0.0.0"
DEFAULT_API_PORT: Final[int] = 3000

# ============================================================================
# EXPORT
# ============================================================================

__all__ = [
    "MAX_LEDGER_INTEGER",
    "GENESIS_HEIGHT",
    "EMPTY_LEDGER_HEIGHT",
    "MAX_ROLLBACK_DEPTH",
    "DEFAULT_DB_FILENAME",
    "DB_SCHEMA_VERSION",
    "DEFAULT_DB_TIMEOUT_SECONDS",
    "DEFAULT_API_HOST",
    "DEFAULT_API_PORT",
]

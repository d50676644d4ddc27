"""
UTXO Indexer - Configuration Management
=========================================
Gestione centralizzata configurazione con Pydantic Settings.
Supporta environment variables, file .env, override runtime.

Last Updated: 2026-10-18
Version: 1.0.0

Features:
- Validazione automatica tipi
- Environment variables con prefisso UTXOINDEXER_
- File .env support
"""

import os
from pathlib import Path
from typing import Optional
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from utxo_indexer.constants import (
    DEFAULT_API_HOST,
    DEFAULT_API_PORT,
    DEFAULT_DB_FILENAME,
    DEFAULT_DB_TIMEOUT_SECONDS,
    MAX_ROLLBACK_DEPTH,
)


# ============================================================================
# MAIN CONFIGURATION CLASS
# ============================================================================

class IndexerSettings(BaseSettings):
    """
    Configurazione principale dell'indexer.

    Example:
        # Da environment
        export UTXOINDEXER_DATA_DIR=/var/lib/utxo-indexer
        export UTXOINDEXER_API_PORT=8080

        # Da codice
        config = IndexerSettings(data_dir=Path("/tmp/ledger"))
    """

    model_config = SettingsConfigDict(
        env_prefix='UTXOINDEXER_',
        env_file='.env',
        env_file_encoding='utf-8',
        case_sensitive=False,
        extra='ignore',
    )

    # ========================================================================
    # STORAGE
    # ========================================================================

    data_dir: Path = Field(
        default=Path("./data"),
        description="Directory dati ledger"
    )

    db_path: Optional[Path] = Field(
        default=None,
        description="Path database (auto: data_dir/ledger.db)"
    )

    db_timeout_seconds: float = Field(
        default=DEFAULT_DB_TIMEOUT_SECONDS,
        gt=0,
        le=600,
        description="Busy timeout SQLite (secondi)"
    )

    # ========================================================================
    # LEDGER RULES
    # ========================================================================

    max_rollback_depth: int = Field(
        default=MAX_ROLLBACK_DEPTH,
        ge=0,
        description="Numero massimo di blocchi annullabili con un rollback"
    )

    allow_genesis_mint: bool = Field(
        default=True,
        description="Tx senza input a height 1 possono creare valore"
    )

    # ========================================================================
    # API
    # ========================================================================

    api_host: str = Field(
        default=DEFAULT_API_HOST,
        description="Host API"
    )

    api_port: int = Field(
        default=DEFAULT_API_PORT,
        ge=1,
        le=65535,
        description="Porta API REST"
    )

    # ========================================================================
    # LOGGING
    # ========================================================================

    log_level: str = Field(
        default="INFO",
        description="Log level: DEBUG, INFO, WARNING, ERROR, CRITICAL"
    )

    log_to_file: bool = Field(
        default=True,
        description="Salva log su file"
    )

    log_dir: Path = Field(
        default=Path("./logs"),
        description="Directory log files"
    )

    log_format: str = Field(
        default="json",
        description="Formato log: json, text"
    )

    log_rotation_mb: int = Field(
        default=100,
        ge=1,
        description="Dimensione max file log prima rotation (MB)"
    )

    log_retention_days: int = Field(
        default=30,
        ge=1,
        description="File di log ruotati da mantenere"
    )

    enable_audit_log: bool = Field(
        default=True,
        description="Scrivi audit.log per blocchi applicati e rollback"
    )

    # ========================================================================
    # VALIDATORS
    # ========================================================================

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Valida log level"""
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log_level: {v}. Must be one of {valid_levels}")
        return v_upper

    @field_validator('log_format')
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        """Valida formato log"""
        valid_formats = ['json', 'text']
        v_lower = v.lower()
        if v_lower not in valid_formats:
            raise ValueError(f"Invalid log_format: {v}. Must be one of {valid_formats}")
        return v_lower

    # ========================================================================
    # POST-INIT PROCESSING
    # ========================================================================

    def model_post_init(self, __context) -> None:
        """Post-initialization: setup paths"""
        if self.db_path is None:
            self.db_path = self.data_dir / DEFAULT_DB_FILENAME

    def ensure_directories(self) -> None:
        """Crea directories dati/log se non esistono"""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        if self.log_to_file or self.enable_audit_log:
            self.log_dir.mkdir(parents=True, exist_ok=True)

    # ========================================================================
    # HELPER METHODS
    # ========================================================================

    def to_dict(self) -> dict:
        """Serializza config"""
        return self.model_dump()

    def to_json(self) -> str:
        """Serializza config in JSON"""
        return self.model_dump_json(indent=2)

    def __repr__(self) -> str:
        return (
            f"IndexerSettings("
            f"db_path={self.db_path}, "
            f"api_port={self.api_port}, "
            f"max_rollback_depth={self.max_rollback_depth})"
        )


# ============================================================================
# CACHED INSTANCE
# ============================================================================

@lru_cache(maxsize=1)
def get_settings() -> IndexerSettings:
    """
    Ottieni instance cached di IndexerSettings (letta da env/.env).

    Solo per bootstrap (CLI/API): i componenti del core ricevono
    la configurazione esplicitamente.
    """
    return IndexerSettings()


def reload_settings() -> IndexerSettings:
    """
    Ricarica settings (invalida cache).

    Usare quando si cambiano environment variables runtime.
    """
    get_settings.cache_clear()
    return get_settings()


def override_settings(**kwargs) -> IndexerSettings:
    """
    Settings con valori custom (utile per testing).

    Example:
        >>> config = override_settings(data_dir=Path("/tmp/x"), log_to_file=False)
    """
    return IndexerSettings(**kwargs)


# ============================================================================
# CONFIGURATION VALIDATION
# ============================================================================

def validate_config(config: IndexerSettings) -> tuple[bool, list[str]]:
    """
    Valida configurazione completa.

    Returns:
        tuple: (is_valid, errors_list)

    Example:
        >>> is_valid, errors = validate_config(get_settings())
    """
    errors = []

    db_parent = config.db_path.parent
    if db_parent.exists() and not os.access(db_parent, os.W_OK):
        errors.append(f"Directory not writable: {db_parent}")

    if config.log_to_file and config.log_dir.exists() and not os.access(config.log_dir, os.W_OK):
        errors.append(f"Directory not writable: {config.log_dir}")

    if config.db_path.exists() and config.db_path.is_dir():
        errors.append(f"db_path points to a directory: {config.db_path}")

    return (len(errors) == 0, errors)


# ============================================================================
# EXPORT
# ============================================================================

__all__ = [
    "IndexerSettings",
    "get_settings",
    "reload_settings",
    "override_settings",
    "validate_config",
]

"""
UTXO Indexer - Custom Exceptions
==================================
Gerarchia di eccezioni del core e risultati tipizzati delle operazioni.

Last Updated: 2026-10-18
Version: 1.0.0

Taxonomy:
- SchemaError: payload malformato (mai effetti sullo stato)
- ValidationError: blocco ben formato ma semanticamente invalido
- ArgumentError: parametro di query invalido
- RollbackBoundsError: target futuro o profondità oltre il limite
- PersistenceError: errore dello storage sottostante
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Any, Dict


# ============================================================================
# BASE EXCEPTION
# ============================================================================

class IndexerException(Exception):
    """
    Eccezione base per tutte le eccezioni dell'indexer.

    Attributes:
        message (str): Messaggio errore (human-readable)
        code (str): Codice errore (es. "HEIGHT_MISMATCH")
        details (dict): Dettagli aggiuntivi
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[dict] = None
    ):
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}

        super().__init__(self.message)

    def to_dict(self) -> dict:
        """Serializza eccezione per API/logging"""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }

    def __str__(self) -> str:
        if self.details:
            return f"[{self.code}] {self.message} | Details: {self.details}"
        return f"[{self.code}] {self.message}"


# ============================================================================
# CONFIGURATION ERRORS
# ============================================================================

class ConfigError(IndexerException):
    """Errore configurazione sistema"""
    pass


class InvalidConfigError(ConfigError):
    """Configurazione invalida"""
    pass


# ============================================================================
# SCHEMA ERRORS
# ============================================================================

class SchemaError(IndexerException):
    """Payload strutturalmente invalido (shape, tipi, campi obbligatori)"""
    pass


# ============================================================================
# VALIDATION ERRORS
# ============================================================================

class ValidationError(IndexerException):
    """Errore validazione semantica (base)"""
    pass


class HeightMismatchError(ValidationError):
    """Height non uguale a current_height + 1"""
    pass


class HeightConflictError(ValidationError):
    """Height già occupata o tip spostato durante apply"""
    pass


class BlockIdMismatchError(ValidationError):
    """Block ID non corrisponde all'hash deterministico"""
    pass


class DuplicateTransactionError(ValidationError):
    """Transaction ID già usato"""
    pass


class OutputNotFoundError(ValidationError):
    """Output referenziato inesistente"""
    pass


class OutputAlreadySpentError(ValidationError):
    """Tentativo double-spend"""
    pass


class NegativeOutputValueError(ValidationError):
    """Output con valore negativo"""
    pass


class SumMismatchError(ValidationError):
    """Somma input diversa da somma output"""
    pass


class SupplyOverflowError(ValidationError):
    """Valore coniato oltre il limite di SQLite INTEGER"""
    pass


# ============================================================================
# ARGUMENT / ROLLBACK ERRORS
# ============================================================================

class ArgumentError(IndexerException):
    """Parametro di query invalido"""
    pass


class RollbackBoundsError(IndexerException):
    """Rollback verso height futura o oltre la profondità massima"""
    pass


# ============================================================================
# STORAGE ERRORS
# ============================================================================

class PersistenceError(IndexerException):
    """Errore storage/database"""
    pass


class DatabaseConnectionError(PersistenceError):
    """Errore connessione database"""
    pass


# ============================================================================
# OPERATION RESULTS
# ============================================================================

class ErrorCategory(str, Enum):
    """Categoria di un fallimento, usata dal transport per lo status code"""
    SCHEMA = "schema"
    VALIDATION = "validation"
    ARGUMENT = "argument"
    ROLLBACK_BOUNDS = "rollback_bounds"
    PERSISTENCE = "persistence"
    INTERNAL = "internal"


CLIENT_ERROR_CATEGORIES = frozenset({
    ErrorCategory.SCHEMA,
    ErrorCategory.VALIDATION,
    ErrorCategory.ARGUMENT,
    ErrorCategory.ROLLBACK_BOUNDS,
})


def categorize(exc: BaseException) -> ErrorCategory:
    """
    Mappa un'eccezione sulla sua categoria.

    Examples:
        >>> categorize(SchemaError("bad"))
        <ErrorCategory.SCHEMA: 'schema'>
    """
    if isinstance(exc, SchemaError):
        return ErrorCategory.SCHEMA
    if isinstance(exc, ValidationError):
        return ErrorCategory.VALIDATION
    if isinstance(exc, ArgumentError):
        return ErrorCategory.ARGUMENT
    if isinstance(exc, RollbackBoundsError):
        return ErrorCategory.ROLLBACK_BOUNDS
    if isinstance(exc, PersistenceError):
        return ErrorCategory.PERSISTENCE
    return ErrorCategory.INTERNAL


@dataclass(frozen=True)
class OperationResult:
    """
    Esito tipizzato di un'operazione del core.

    Attributes:
        success (bool): True se l'operazione è andata a buon fine
        error (str): Reason leggibile (verbatim dal validatore)
        code (str): Codice errore
        category (ErrorCategory): Categoria del fallimento

    Examples:
        >>> OperationResult.ok().success
        True
        >>> result = OperationResult.from_exception(SchemaError("Block must be an object"))
        >>> result.error
        'Block must be an object'
    """

    success: bool
    error: Optional[str] = None
    code: Optional[str] = None
    category: Optional[ErrorCategory] = None

    @classmethod
    def ok(cls) -> OperationResult:
        return cls(success=True)

    @classmethod
    def from_exception(cls, exc: BaseException) -> OperationResult:
        if isinstance(exc, IndexerException):
            return cls(
                success=False,
                error=exc.message,
                code=exc.code,
                category=categorize(exc),
            )
        return cls(
            success=False,
            error=str(exc) or "Unknown error occurred",
            code="INTERNAL_ERROR",
            category=ErrorCategory.INTERNAL,
        )

    @property
    def is_client_error(self) -> bool:
        """True se il fallimento è recuperabile correggendo la richiesta"""
        return not self.success and self.category in CLIENT_ERROR_CATEGORIES

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"success": self.success}
        if not self.success:
            data["error"] = self.error
            data["code"] = self.code
            data["category"] = self.category.value if self.category else None
        return data


@dataclass(frozen=True)
class ValidationResult:
    """Esito tagged di una validazione (valid / invalid(reason))"""

    is_valid: bool
    error: Optional[str] = None
    code: Optional[str] = None

    @classmethod
    def valid(cls) -> ValidationResult:
        return cls(is_valid=True)

    @classmethod
    def invalid(cls, exc: IndexerException) -> ValidationResult:
        return cls(is_valid=False, error=exc.message, code=exc.code)


# ============================================================================
# EXPORT ALL
# ============================================================================

__all__ = [
    # Base
    "IndexerException",

    # Config
    "ConfigError",
    "InvalidConfigError",

    # Schema
    "SchemaError",

    # Validation
    "ValidationError",
    "HeightMismatchError",
    "HeightConflictError",
    "BlockIdMismatchError",
    "DuplicateTransactionError",
    "OutputNotFoundError",
    "OutputAlreadySpentError",
    "NegativeOutputValueError",
    "SumMismatchError",
    "SupplyOverflowError",

    # Arguments / rollback
    "ArgumentError",
    "RollbackBoundsError",

    # Storage
    "PersistenceError",
    "DatabaseConnectionError",

    # Results
    "ErrorCategory",
    "categorize",
    "OperationResult",
    "ValidationResult",
]

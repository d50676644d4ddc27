"""
UTXO Indexer - Logging System
===============================
Log strutturati (JSON su file, testo su console) e audit trail del ledger.

Last Updated: 2026-10-18
Version: 1.0.0

Features:
- File log JSON con rotation (+ file separato per errori)
- Console leggibile, colorata solo su TTY
- Payload strutturato via `extra_data`
- Timing delle operazioni lente
- Audit trail (blocchi applicati, rollback)
"""

import logging
import logging.handlers
import json
import sys
import time
from pathlib import Path
from typing import Optional, Dict, Any
from datetime import datetime, timezone
import traceback


ROOT_LOGGER_NAME = "utxoindexer"

MAIN_LOG_FILE = "utxoindexer.log"
ERROR_LOG_FILE = "utxoindexer_errors.log"
AUDIT_LOGGER_NAME = f"{ROOT_LOGGER_NAME}.audit"


def _utc_iso(created: float) -> str:
    return datetime.fromtimestamp(created, tz=timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"


# ============================================================================
# JSON FORMATTER
# ============================================================================

class JSONFormatter(logging.Formatter):
    """
    Una riga JSON per record.

    Output structure:
    {
        "timestamp": "2026-10-18T10:00:00.000Z",
        "level": "INFO",
        "logger": "utxoindexer.storage",
        "message": "Block applied",
        "source": "db.apply_block:210",
        "extra_data": {...},
        "exception": {...}
    }
    """

    def __init__(self, include_extra: bool = True, include_stack: bool = True):
        super().__init__()
        self.include_extra = include_extra
        self.include_stack = include_stack

    @staticmethod
    def _exception_payload(exc_info) -> Dict[str, Any]:
        exc_type, exc_value, exc_tb = exc_info
        return {
            "type": exc_type.__name__,
            "message": str(exc_value),
            "traceback": traceback.format_exception(exc_type, exc_value, exc_tb),
        }

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": _utc_iso(record.created),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "source": f"{record.module}.{record.funcName}:{record.lineno}",
            "thread": record.threadName,
        }

        extra_data = getattr(record, "extra_data", None)
        if self.include_extra and extra_data is not None:
            payload["extra_data"] = extra_data

        if self.include_stack and record.exc_info and record.exc_info[0] is not None:
            payload["exception"] = self._exception_payload(record.exc_info)

        return json.dumps(payload, default=str)


# ============================================================================
# CONSOLE FORMATTER
# ============================================================================

class ColoredTextFormatter(logging.Formatter):
    """`<time> [LEVEL] logger: message | extra`, livello colorato se richiesto"""

    LEVEL_COLORS = {
        logging.DEBUG: '\033[90m',
        logging.INFO: '\033[92m',
        logging.WARNING: '\033[93m',
        logging.ERROR: '\033[91m',
        logging.CRITICAL: '\033[1;91m',
    }
    RESET = '\033[0m'

    def __init__(self, use_colors: bool = True):
        super().__init__()
        self.use_colors = use_colors

    def _level(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelno)
        if not self.use_colors or color is None:
            return record.levelname
        return f"{color}{record.levelname}{self.RESET}"

    def format(self, record: logging.LogRecord) -> str:
        when = datetime.fromtimestamp(record.created, tz=timezone.utc).strftime('%H:%M:%S')
        line = f"{when} [{self._level(record)}] {record.name}: {record.getMessage()}"

        extra_data = getattr(record, 'extra_data', None)
        if extra_data:
            line = f"{line} | {extra_data}"

        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"

        return line


# ============================================================================
# LOGGER WRAPPER
# ============================================================================

class IndexerLogger:
    """
    Wrapper su `logging.Logger` che accetta `extra_data` come payload
    strutturato (finisce in `record.extra_data`).

    Example:
        >>> logger = get_logger("indexer")
        >>> logger.info("Block applied", extra_data={"height": 1})
    """

    def __init__(self, logger: logging.Logger):
        self._logger = logger

    @property
    def name(self) -> str:
        return self._logger.name

    def _emit(self, level: int, message: str, extra_data: Optional[Dict[str, Any]], exc_info=None):
        if not self._logger.isEnabledFor(level):
            return
        extra = {'extra_data': extra_data} if extra_data else None
        self._logger.log(level, message, exc_info=exc_info, extra=extra)

    def debug(self, message: str, extra_data: Optional[Dict[str, Any]] = None):
        self._emit(logging.DEBUG, message, extra_data)

    def info(self, message: str, extra_data: Optional[Dict[str, Any]] = None):
        self._emit(logging.INFO, message, extra_data)

    def warning(self, message: str, extra_data: Optional[Dict[str, Any]] = None):
        self._emit(logging.WARNING, message, extra_data)

    def error(self, message: str, extra_data: Optional[Dict[str, Any]] = None, exc_info=None):
        self._emit(logging.ERROR, message, extra_data, exc_info)

    def exception(self, message: str, extra_data: Optional[Dict[str, Any]] = None):
        """ERROR con traceback dell'eccezione corrente"""
        self._emit(logging.ERROR, message, extra_data, exc_info=sys.exc_info())


# ============================================================================
# SETUP
# ============================================================================

def _rotating_file(path: Path, rotation_mb: int, retention: int) -> logging.Handler:
    return logging.handlers.RotatingFileHandler(
        filename=path,
        maxBytes=rotation_mb * 1024 * 1024,
        backupCount=retention,
        encoding='utf-8'
    )


def setup_logging(
    log_level: str = "INFO",
    log_to_file: bool = True,
    log_dir: Path = Path("./logs"),
    log_format: str = "json",
    log_rotation_mb: int = 100,
    log_retention_days: int = 30,
    enable_console: bool = True,
) -> IndexerLogger:
    """
    Configura il logger `utxoindexer` (rimpiazza gli handler esistenti).

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR, CRITICAL
        log_to_file: Abilita utxoindexer.log e utxoindexer_errors.log
        log_dir: Directory dei file di log
        log_format: Formato del file principale (json, text)
        log_rotation_mb: Dimensione massima per file
        log_retention_days: File di backup mantenuti
        enable_console: Handler su stdout

    Returns:
        IndexerLogger: Logger root del package
    """
    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel(logging.getLevelName(log_level.upper()))

    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    if log_to_file:
        log_dir.mkdir(parents=True, exist_ok=True)

        main_handler = _rotating_file(log_dir / MAIN_LOG_FILE, log_rotation_mb, log_retention_days)
        if log_format == "json":
            main_handler.setFormatter(JSONFormatter())
        else:
            main_handler.setFormatter(ColoredTextFormatter(use_colors=False))
        root_logger.addHandler(main_handler)

        errors_handler = _rotating_file(log_dir / ERROR_LOG_FILE, log_rotation_mb, log_retention_days)
        errors_handler.setLevel(logging.ERROR)
        errors_handler.setFormatter(JSONFormatter())
        root_logger.addHandler(errors_handler)

    if enable_console:
        stream = logging.StreamHandler(sys.stdout)
        stream.setFormatter(ColoredTextFormatter(use_colors=sys.stdout.isatty()))
        root_logger.addHandler(stream)

    return IndexerLogger(root_logger)


def get_logger(category: str) -> IndexerLogger:
    """Logger figlio di `utxoindexer` (storage, validation, indexer, api, cli)"""
    return IndexerLogger(logging.getLogger(f"{ROOT_LOGGER_NAME}.{category}"))


# ============================================================================
# PERFORMANCE TRACKING
# ============================================================================

class PerformanceLogger:
    """
    Misura la durata di un blocco `with`.

    Sotto soglia logga a DEBUG, sopra soglia a WARNING. Le eccezioni
    non vengono intercettate.

    Example:
        >>> with PerformanceLogger(logger, "validate_block(height=5)", threshold_ms=500):
        ...     validator.check_block(block)
    """

    def __init__(self, logger: IndexerLogger, operation: str, threshold_ms: Optional[int] = None):
        self.logger = logger
        self.operation = operation
        self.threshold_ms = threshold_ms
        self._started: Optional[float] = None
        self.elapsed_ms: Optional[float] = None

    def __enter__(self):
        self._started = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.elapsed_ms = (time.perf_counter() - self._started) * 1000
        details = {
            "operation": self.operation,
            "duration_ms": round(self.elapsed_ms, 2),
            "failed": exc_type is not None,
        }

        slow = self.threshold_ms is not None and self.elapsed_ms > self.threshold_ms
        if slow:
            self.logger.warning(
                f"Slow operation: {self.operation} ({self.elapsed_ms:.2f}ms > {self.threshold_ms}ms)",
                extra_data=details
            )
        else:
            self.logger.debug(f"{self.operation}: {self.elapsed_ms:.2f}ms", extra_data=details)
        return False


# ============================================================================
# AUDIT LOGGER
# ============================================================================

class AuditLogger:
    """
    Logger specializzato per audit trail del ledger.

    Registra (una riga JSON per evento):
    - Blocchi applicati
    - Rollback eseguiti

    Ogni istanza scrive solo sul proprio file tramite un Logger non
    registrato nel logging manager: nessuna entry resta dopo `close()`.
    """

    def __init__(self, log_dir: Path = Path("./logs")):
        self.log_dir = log_dir
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self.audit_file = log_dir / "audit.log"

        self.logger = logging.Logger(AUDIT_LOGGER_NAME, logging.INFO)
        self.logger.propagate = False

        self._handler = logging.FileHandler(self.audit_file, encoding='utf-8')
        self._handler.setFormatter(JSONFormatter(include_extra=True))
        self.logger.addHandler(self._handler)

    def _audit(self, message: str, action: str, **fields):
        self.logger.info(
            message,
            extra={
                'extra_data': {
                    "action": action,
                    **fields,
                    "timestamp": datetime.now(timezone.utc).isoformat()
                }
            }
        )

    def log_block_applied(self, height: int, block_id: str, tx_count: int):
        """Log block application"""
        self._audit(
            "Block applied",
            "block_applied",
            height=height,
            block_id=block_id,
            tx_count=tx_count,
        )

    def log_rollback(self, from_height: int, to_height: int, blocks_removed: int):
        """Log rollback"""
        self._audit(
            "Ledger rolled back",
            "rollback",
            from_height=from_height,
            to_height=to_height,
            blocks_removed=blocks_removed,
        )

    def close(self):
        self.logger.removeHandler(self._handler)
        self._handler.close()


# ============================================================================
# EXPORT
# ============================================================================

__all__ = [
    "ROOT_LOGGER_NAME",
    "setup_logging",
    "get_logger",
    "IndexerLogger",
    "PerformanceLogger",
    "AuditLogger",
    "JSONFormatter",
    "ColoredTextFormatter",
]

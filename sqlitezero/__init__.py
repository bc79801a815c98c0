from .native import load_library, sqlite_version
from .errors import (
    Error, ProgrammingError, OpenError, PrepareError, BindError, StepError,
    ExactlyOneError, TransactionError, CloseError, StatementsOutstandingError,
    BackupError,
)
from .value import StorageClass, Value, IntegerType, INT32, INT64, UINT64, convert
from .row import Row
from .statement import Statement
from .cache import StatementCache
from .connection import (
    Connection, OpenFlags, connect, DEFAULT_CACHE_SIZE, DEFAULT_BUSY_TIMEOUT, MEMORY_PATH,
)
from .transaction import Transaction, TransactionMode, run_in_transaction
from .script import run_script
from .statement import strip_leading_comments
from .backup import backup, DEFAULT_BACKUP_PAGES, DEFAULT_BACKUP_SLEEP

__version__ = "0.1.0"

# Threads may share the module, but not connections
threadsafety = 1


def open(path=MEMORY_PATH, flags=OpenFlags.DEFAULT, **kwargs):
    """Open (or create) a database. ``":memory:"`` or no path gives a private in-memory one."""
    return Connection(path, flags, **kwargs)


__all__ = [
    "load_library", "sqlite_version",
    "Error", "ProgrammingError", "OpenError", "PrepareError", "BindError", "StepError",
    "ExactlyOneError", "TransactionError", "CloseError", "StatementsOutstandingError",
    "BackupError",
    "StorageClass", "Value", "IntegerType", "INT32", "INT64", "UINT64", "convert",
    "Row", "Statement", "StatementCache",
    "Connection", "OpenFlags", "connect", "open",
    "DEFAULT_CACHE_SIZE", "DEFAULT_BUSY_TIMEOUT", "MEMORY_PATH",
    "Transaction", "TransactionMode", "run_in_transaction",
    "run_script", "strip_leading_comments",
    "backup", "DEFAULT_BACKUP_PAGES", "DEFAULT_BACKUP_SLEEP",
]

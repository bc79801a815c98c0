import collections
import ctypes
import enum
import logging
import os

from .native import (
    load_library, primary_code, SQLITE_OK, SQLITE_BUSY,
    SQLITE_OPEN_READONLY, SQLITE_OPEN_READWRITE, SQLITE_OPEN_CREATE, SQLITE_OPEN_URI,
    SQLITE_OPEN_MEMORY, SQLITE_OPEN_NOMUTEX, SQLITE_OPEN_FULLMUTEX,
    SQLITE_OPEN_SHAREDCACHE, SQLITE_OPEN_PRIVATECACHE, SQLITE_OPEN_NOFOLLOW,
    SQLITE_OPEN_EXRESCODE, error_message,
)
from .errors import (
    OpenError, CloseError, StatementsOutstandingError, ProgrammingError, engine_error,
)
from .cache import StatementCache
from .statement import Statement
from .script import run_script
from .transaction import Transaction, TransactionMode, run_in_transaction
from .backup import backup as _run_backup, DEFAULT_BACKUP_PAGES, DEFAULT_BACKUP_SLEEP

logger = logging.getLogger(__name__)

DEFAULT_CACHE_SIZE = 100
DEFAULT_BUSY_TIMEOUT = 1.0

MEMORY_PATH = ":memory:"


class OpenFlags(enum.IntFlag):
    """Flags handed to ``sqlite3_open_v2`` unchanged."""
    READ_ONLY = SQLITE_OPEN_READONLY
    READ_WRITE = SQLITE_OPEN_READWRITE
    CREATE = SQLITE_OPEN_CREATE
    URI = SQLITE_OPEN_URI
    MEMORY = SQLITE_OPEN_MEMORY
    NO_MUTEX = SQLITE_OPEN_NOMUTEX
    FULL_MUTEX = SQLITE_OPEN_FULLMUTEX
    SHARED_CACHE = SQLITE_OPEN_SHAREDCACHE
    PRIVATE_CACHE = SQLITE_OPEN_PRIVATECACHE
    NO_FOLLOW = SQLITE_OPEN_NOFOLLOW
    EXTENDED_RESULT_CODES = SQLITE_OPEN_EXRESCODE
    DEFAULT = SQLITE_OPEN_READWRITE | SQLITE_OPEN_CREATE


class Connection:
    """An open SQLite database handle plus its statement cache.

    Not thread safe: a connection, the statements it hands out and any
    transaction running on it must only be used from one thread at a time.
    Callers that share a connection across threads must serialize access
    themselves.
    """

    _db = None

    def __init__(self, path=MEMORY_PATH, flags=OpenFlags.DEFAULT,
                 cache_size=DEFAULT_CACHE_SIZE, busy_timeout=DEFAULT_BUSY_TIMEOUT):
        self._lib = load_library()
        if not path:
            path = MEMORY_PATH
        self.path = os.fspath(path)
        self.flags = OpenFlags(flags)
        self._statements = StatementCache(cache_size)

        # Statistics for testing
        self._stats = collections.Counter()

        db = ctypes.c_void_p()
        rc = self._lib.sqlite3_open_v2(os.fsencode(self.path), ctypes.byref(db), int(self.flags), None)
        if rc != SQLITE_OK:
            msg = error_message(db.value, rc)
            if db.value:
                self._lib.sqlite3_close(db.value)
            raise OpenError(rc, f"{msg}: {self.path}")

        self._db = db.value
        self.set_busy_timeout(busy_timeout)
        logger.debug("opened %s (flags=%#x)", self.path, int(self.flags))

    def __repr__(self):
        state = "open" if self.is_open else "closed"
        return f"<Connection {self.path!r} ({state})>"

    @property
    def is_open(self):
        return self._db is not None

    def _check_open(self):
        if self._db is None:
            raise ProgrammingError("Connection closed")

    # Statements

    def _get_statement(self, sql):
        stmt = self._statements.get(sql)
        if stmt is not None:
            self._stats["cache_hit"] += 1
            # Stale values from the previous run must not leak into this one.
            stmt.clear_bindings()
            return stmt

        self._stats["cache_miss"] += 1
        stmt = Statement(self, sql)
        self._stats["cache_evict"] += self._statements.put(sql, stmt)
        return stmt

    def _forget_statement(self, stmt):
        self._statements.discard(stmt)

    def prepare(self, sql, cached=True):
        """Compile ``sql`` without running it.

        Cached statements are shared by every caller using the same SQL text
        and are finalized when evicted. With ``cached=False`` the caller owns
        the statement and must close it.
        """
        self._check_open()
        if not cached:
            return Statement(self, sql)
        return self._get_statement(sql)

    def execute(self, sql, parameters=()):
        self._check_open()
        stmt = self._get_statement(sql)
        return stmt.execute(parameters)

    def execute_script(self, sql):
        self._check_open()
        return run_script(self, sql)

    # Transactions

    def transaction(self, mode=TransactionMode.DEFERRED):
        return Transaction(self, mode)

    def run_in_transaction(self, work, mode=TransactionMode.DEFERRED):
        return run_in_transaction(self, work, mode)

    @property
    def in_transaction(self):
        self._check_open()
        return self._lib.sqlite3_get_autocommit(self._db) == 0

    # Backup

    def backup(self, target, progress=None, pages=DEFAULT_BACKUP_PAGES,
               sleep=DEFAULT_BACKUP_SLEEP):
        return _run_backup(self, target, progress=progress, pages=pages, sleep=sleep)

    # Counters and settings

    @property
    def changes(self):
        self._check_open()
        if hasattr(self._lib, "sqlite3_changes64"):
            return self._lib.sqlite3_changes64(self._db)
        return self._lib.sqlite3_changes(self._db)

    @property
    def total_changes(self):
        self._check_open()
        if hasattr(self._lib, "sqlite3_total_changes64"):
            return self._lib.sqlite3_total_changes64(self._db)
        return self._lib.sqlite3_total_changes(self._db)

    @property
    def last_insert_rowid(self):
        self._check_open()
        return self._lib.sqlite3_last_insert_rowid(self._db)

    @property
    def page_size(self):
        with self.prepare("PRAGMA page_size", cached=False) as stmt:
            return stmt.execute().one().as_int(0)

    def set_busy_timeout(self, seconds):
        self._check_open()
        self._lib.sqlite3_busy_timeout(self._db, int(seconds * 1000.0))

    # Lifetime

    def close(self):
        if self._db is None:
            return
        pending = self._statements.pending()
        if pending:
            # Nothing is finalized, so the caller can finish reading and retry.
            sqls = ", ".join(repr(stmt.sql) for stmt in pending)
            raise StatementsOutstandingError(
                SQLITE_BUSY, f"unable to close due to unfinished statements: {sqls}",
            )
        # Finalize all cached statements
        self._statements.clear()

        rc = self._lib.sqlite3_close(self._db)
        if rc == SQLITE_OK:
            logger.debug("closed %s", self.path)
            self._db = None
            return
        if primary_code(rc) == SQLITE_BUSY:
            # The handle stays open so the caller can finalize and retry.
            raise engine_error(StatementsOutstandingError, self._db, rc)
        raise engine_error(CloseError, self._db, rc)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        # Leaving the block ends any cursor still mid-read.
        for stmt in self._statements.pending():
            stmt.reset()
        self.close()

    def __del__(self):
        if self._db:
            self._statements.clear()
            # close_v2 defers the close until outstanding statements are finalized.
            self._lib.sqlite3_close_v2(self._db)
            self._db = None


def connect(path=MEMORY_PATH, flags=OpenFlags.DEFAULT, **kwargs):
    return Connection(path, flags, **kwargs)

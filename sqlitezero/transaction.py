"""Nested transactions built on SAVEPOINT.

Whether a frame is the outermost one is decided by asking the engine if a
transaction is open (``sqlite3_get_autocommit``); no depth is tracked here.
Two unrelated call sites sharing one connection therefore see the same
nesting, so transactions on a connection must be serialized by the caller.
"""
import enum
import logging
import uuid

from .errors import Error, PrepareError, StepError, TransactionError
from .script import run_script

logger = logging.getLogger(__name__)


class TransactionMode(str, enum.Enum):
    DEFERRED = "DEFERRED"
    IMMEDIATE = "IMMEDIATE"
    EXCLUSIVE = "EXCLUSIVE"


def _savepoint_name():
    return f"sz_{uuid.uuid4().hex}"


class Transaction:
    """Context manager giving all-or-nothing semantics at any nesting depth.

    The outermost frame issues BEGIN/COMMIT/ROLLBACK. Inner frames issue
    SAVEPOINT/RELEASE and, on failure, ROLLBACK TO the savepoint so only the
    inner work is undone. The exception raised by the wrapped block always
    propagates unchanged.
    """

    def __init__(self, connection, mode=TransactionMode.DEFERRED):
        self._connection = connection
        if isinstance(mode, str):
            mode = mode.upper()
        self.mode = TransactionMode(mode)
        self.savepoint = None

    @property
    def nested(self):
        return self.savepoint is not None

    def __enter__(self):
        if self._connection.in_transaction:
            self.savepoint = _savepoint_name()
            logger.debug("entering savepoint %s", self.savepoint)
            self._control(f"SAVEPOINT {self.savepoint}")
        else:
            self.savepoint = None
            self._control(f"BEGIN {self.mode.value}")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is None:
            self._commit()
        else:
            self._rollback(exc_val)
        return False

    def _commit(self):
        try:
            if self.nested:
                self._control(f"RELEASE {self.savepoint}")
            else:
                self._control("COMMIT")
        except TransactionError as e:
            self._rollback(e)
            raise

    def _rollback(self, cause):
        # Best effort: a failure here must not replace ``cause``.
        try:
            if not self._connection.in_transaction:
                # The engine already rolled everything back.
                logger.debug("transaction already ended before rollback")
            elif self.nested:
                self._control(f"ROLLBACK TO {self.savepoint}")
                self._control(f"RELEASE {self.savepoint}")
            else:
                self._control("ROLLBACK")
        except Error as e:
            logger.warning("rollback failed after %r: %s", cause, e)

    def _control(self, sql):
        try:
            run_script(self._connection, sql)
        except (PrepareError, StepError) as e:
            raise TransactionError(e.code, e.message, sql=sql) from e


def run_in_transaction(connection, work, mode=TransactionMode.DEFERRED):
    """Call ``work()`` inside a (possibly nested) transaction and return its result."""
    with Transaction(connection, mode):
        return work()

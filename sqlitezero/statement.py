import collections.abc
import ctypes
import logging

from .native import (
    load_library, SQLITE_OK, SQLITE_ROW, SQLITE_DONE, SQLITE_MISUSE, SQLITE_RANGE,
    SQLITE_INTEGER, SQLITE_FLOAT, SQLITE_TEXT, SQLITE_BLOB, SQLITE_TRANSIENT,
)
from .errors import (
    ProgrammingError, PrepareError, BindError, StepError, ExactlyOneError,
    engine_error, format_params_for_error,
)
from .value import Value, StorageClass
from .row import Row

logger = logging.getLogger(__name__)

# Prefixes SQLite accepts for named parameters, tried in this order after the bare name.
PARAMETER_PREFIXES = (":", "$", "@")


def strip_leading_comments(sql):
    """Drop leading whitespace, ``--`` line comments and ``/* */`` block comments."""
    index = 0
    while index < len(sql):
        char = sql[index]
        index += 1
        if char in " \t\f\n\r\v":
            continue
        elif char == "-":
            # skip line comment
            if index < len(sql) and sql[index] == "-":
                while index < len(sql):
                    char = sql[index]
                    index += 1
                    if char == "\n":
                        break
                continue
        elif char == "/":
            # skip C-style comment
            if index < len(sql) and sql[index] == "*":
                index += 1
                while index < len(sql):
                    char = sql[index]
                    index += 1
                    if char == "*" and index < len(sql) and sql[index] == "/":
                        index += 1
                        break
                continue
        return sql[index - 1:]
    return ""


class Statement:
    """One compiled SQL statement and the cursor it owns.

    Execution is look-ahead-by-one: after :meth:`execute` or :meth:`next_row`
    the next row has already been stepped to, so :attr:`has_row` tells whether
    another row is pending.

    A statement belongs to the connection that compiled it and, like the
    connection, must only be used from one thread at a time.
    """

    _handle = None

    def __init__(self, connection, sql):
        self._connection = connection
        self._lib = load_library()
        self.sql = sql
        self.tail = None
        self.has_row = False
        self.columns = []
        self.changes = 0
        self.error = None

        connection._check_open()
        if "\0" in sql:
            raise PrepareError(SQLITE_MISUSE, "the query contains a null character", sql=sql)

        encoded = sql.encode("utf-8")
        buf = ctypes.create_string_buffer(encoded)
        handle = ctypes.c_void_p()
        tail = ctypes.c_void_p()
        connection._stats["prepare_count"] += 1
        rc = self._lib.sqlite3_prepare_v2(
            connection._db,
            buf,
            len(encoded) + 1,
            ctypes.byref(handle),
            ctypes.byref(tail),
        )
        if rc != SQLITE_OK:
            raise engine_error(PrepareError, connection._db, rc, sql=sql)
        if not handle.value:
            raise PrepareError(SQLITE_MISUSE, "No SQL statement to prepare", sql=sql)
        self._handle = handle.value

        # The tail pointer points into buf; turn it back into a byte offset.
        offset = tail.value - ctypes.addressof(buf) if tail.value else len(encoded)
        rest = encoded[offset:].decode("utf-8")
        if strip_leading_comments(rest):
            self.tail = rest

    def __repr__(self):
        state = "closed" if self.closed else ("row pending" if self.has_row else "idle")
        return f"<Statement {self.sql!r} ({state})>"

    @property
    def connection(self):
        return self._connection

    @property
    def closed(self):
        return self._handle is None

    @property
    def readonly(self):
        self._check()
        return bool(self._lib.sqlite3_stmt_readonly(self._handle))

    @property
    def parameter_count(self):
        self._check()
        return self._lib.sqlite3_bind_parameter_count(self._handle)

    def _check(self):
        if not self._connection.is_open:
            raise ProgrammingError("Cannot operate on a closed connection", sql=self.sql)
        if self._handle is None:
            raise ProgrammingError("Statement is finalized", sql=self.sql)

    # Binding

    def bind(self, parameters=()):
        self._check()
        if parameters is None:
            return self
        if isinstance(parameters, collections.abc.Mapping):
            for name, obj in parameters.items():
                self._bind_value(self._parameter_index(name, parameters), obj, parameters)
        elif isinstance(parameters, (str, bytes, bytearray)):
            raise BindError(
                SQLITE_MISUSE,
                f"Parameters must be a sequence or a mapping, not {type(parameters).__name__}",
                sql=self.sql,
            )
        else:
            for i, obj in enumerate(parameters):
                self._bind_value(i + 1, obj, parameters)
        return self

    def _parameter_index(self, name, parameters):
        candidates = [name] + [prefix + name for prefix in PARAMETER_PREFIXES]
        for candidate in candidates:
            idx = self._lib.sqlite3_bind_parameter_index(self._handle, candidate.encode("utf-8"))
            if idx:
                return idx
        raise BindError(
            SQLITE_RANGE,
            f"Invalid bind parameter name: {name}",
            sql=self.sql,
            params=format_params_for_error(parameters),
        )

    def _bind_value(self, idx, obj, parameters):
        value = Value.from_python(obj)
        handle = self._handle
        kind = value.storage_class
        if kind is StorageClass.NULL:
            rc = self._lib.sqlite3_bind_null(handle, idx)
        elif kind is StorageClass.INTEGER:
            rc = self._lib.sqlite3_bind_int64(handle, idx, value.data)
        elif kind is StorageClass.REAL:
            rc = self._lib.sqlite3_bind_double(handle, idx, value.data)
        elif kind is StorageClass.TEXT:
            b = value.data.encode("utf-8")
            rc = self._lib.sqlite3_bind_text(handle, idx, b, len(b), SQLITE_TRANSIENT)
        else:
            b = value.data
            rc = self._lib.sqlite3_bind_blob(handle, idx, b, len(b), SQLITE_TRANSIENT)

        if rc != SQLITE_OK:
            raise engine_error(BindError, self._connection._db, rc, sql=self.sql, params=parameters)

    def clear_bindings(self):
        self._check()
        rc = self._lib.sqlite3_clear_bindings(self._handle)
        if rc != SQLITE_OK:
            raise engine_error(BindError, self._connection._db, rc, sql=self.sql)
        return self

    # Execution

    def reset(self):
        """Rewind the cursor without running it again."""
        self._check()
        # The return code repeats the last step failure, which was already raised.
        self._lib.sqlite3_reset(self._handle)
        self.has_row = False
        return self

    def execute(self, parameters=()):
        self.reset()
        self.changes = 0
        self.columns = []
        self.error = None

        self.bind(parameters)
        # sqlite3_changes keeps the last DML count across DDL, so only trust it
        # when this run moved the running total.
        before = None
        if not self._lib.sqlite3_stmt_readonly(self._handle):
            before = self._connection.total_changes
        self._step(parameters)

        # Refreshed every run: some statements (e.g. pragmas) only know their
        # output shape once stepped.
        self.columns = self._read_columns()
        if before is not None and self._connection.total_changes != before:
            self.changes = self._connection.changes
        return self

    def _step(self, parameters=None):
        rc = self._lib.sqlite3_step(self._handle)
        if rc == SQLITE_ROW:
            self.has_row = True
            return
        self.has_row = False
        if rc == SQLITE_DONE:
            return
        exc = engine_error(StepError, self._connection._db, rc, sql=self.sql, params=parameters)
        self.error = exc
        raise exc

    def _run_to_completion(self):
        while self.has_row:
            self._step()

    def _read_columns(self):
        count = self._lib.sqlite3_column_count(self._handle)
        names = []
        for i in range(count):
            name = self._lib.sqlite3_column_name(self._handle, i)
            names.append(name.decode("utf-8", errors="replace") if name else "")
        return names

    def _read_row(self):
        lib = self._lib
        handle = self._handle
        count = lib.sqlite3_column_count(handle)
        values = []
        for i in range(count):
            kind = lib.sqlite3_column_type(handle, i)
            if kind == SQLITE_INTEGER:
                values.append(Value.integer(lib.sqlite3_column_int64(handle, i)))
            elif kind == SQLITE_FLOAT:
                values.append(Value.real(lib.sqlite3_column_double(handle, i)))
            elif kind == SQLITE_TEXT:
                # Fetch the pointer before the length, as SQLite requires.
                ptr = lib.sqlite3_column_text(handle, i)
                length = lib.sqlite3_column_bytes(handle, i)
                raw = ctypes.string_at(ptr, length) if ptr else b""
                values.append(Value.text(raw.decode("utf-8", errors="replace")))
            elif kind == SQLITE_BLOB:
                ptr = lib.sqlite3_column_blob(handle, i)
                length = lib.sqlite3_column_bytes(handle, i)
                values.append(Value.blob(ctypes.string_at(ptr, length) if ptr else b""))
            else:
                values.append(Value.null())

        columns = self.columns
        if len(columns) != count:
            columns = self._read_columns()
        return Row(values, columns)

    def next_row(self):
        """Return the pending row, or None when exhausted, and step to the next one."""
        self._check()
        if not self.has_row:
            return None
        row = self._read_row()
        self._step()
        return row

    def one(self):
        row = self.next_row()
        if row is None:
            raise ExactlyOneError("Expected exactly one row, got none", sql=self.sql)
        if self.has_row:
            raise ExactlyOneError("Expected exactly one row, got more than one", sql=self.sql)
        return row

    def all(self):
        rows = []
        while True:
            row = self.next_row()
            if row is None:
                break
            rows.append(row)
        return rows

    def __iter__(self):
        return self

    def __next__(self):
        # A step failure propagates from here and stays in self.error;
        # has_row is then False so iteration ends.
        row = self.next_row()
        if row is None:
            raise StopIteration
        return row

    # Lifetime

    def close(self):
        if self._handle is None:
            return
        self._connection._forget_statement(self)
        self._finalize()

    finalize = close

    def _finalize(self):
        handle, self._handle = self._handle, None
        self.has_row = False
        if not handle:
            return
        rc = self._lib.sqlite3_finalize(handle)
        if rc != SQLITE_OK:
            # Finalize repeats the last step failure; the cursor is released regardless.
            logger.debug("finalize of %r returned %d", self.sql, rc)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def __del__(self):
        if self._handle:
            self._lib.sqlite3_finalize(self._handle)
            self._handle = None

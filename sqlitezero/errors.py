import collections.abc
import json

from .native import (
    SQLITE_ERROR, SQLITE_BUSY, SQLITE_LOCKED, SQLITE_MISUSE,
    error_message, primary_code,
)


class Error(Exception):
    """Base class for every failure reported by sqlitezero.

    Carries the SQLite status ``code`` and a human-readable ``message``.
    When the failure happened while running SQL, ``sql`` and a truncated
    copy of the bound ``params`` are kept for diagnostics.
    """

    def __init__(self, code, message, *, sql=None, params=None):
        self.code = int(code)
        self.message = message
        self.sql = sql
        self.params = params
        super().__init__(self.__str__())

    def __str__(self):
        text = f"[{self.code}] {self.message}"
        if self.sql is not None:
            ctx = {
                "native_code": self.code,
                "sql": self.sql,
                "params": self.params,
            }
            text = text + "\nContext: " + json.dumps(ctx, ensure_ascii=False)
        return text

    @property
    def is_busy(self):
        return primary_code(self.code) in (SQLITE_BUSY, SQLITE_LOCKED)


class ProgrammingError(Error):
    """The API was used against its contract (closed connection, finalized statement)."""

    def __init__(self, message, **kwargs):
        super().__init__(SQLITE_MISUSE, message, **kwargs)


class OpenError(Error):
    pass


class PrepareError(Error):
    pass


class BindError(Error):
    pass


class StepError(Error):
    pass


class ExactlyOneError(Error):
    def __init__(self, message, **kwargs):
        super().__init__(SQLITE_ERROR, message, **kwargs)


class TransactionError(Error):
    pass


class CloseError(Error):
    pass


class StatementsOutstandingError(CloseError):
    """Close refused because statements created on the connection are still live.

    The connection stays open; finalize the statements and close again.
    """


class BackupError(Error):
    pass


def _format_value_for_error(v, *, max_str=200, max_bytes=64):
    if v is None:
        return None
    if isinstance(v, (bool, int, float)):
        return v
    if isinstance(v, (bytes, bytearray, memoryview)):
        b = bytes(v)
        if len(b) <= max_bytes:
            return {"_type": "bytes", "hex": b.hex(), "len": len(b)}
        head = b[:max_bytes]
        return {"_type": "bytes", "hex_prefix": head.hex(), "len": len(b)}
    if isinstance(v, str):
        if len(v) <= max_str:
            return v
        return v[:max_str] + "…"
    # Fall back to capped repr
    s = repr(v)
    if len(s) <= max_str:
        return s
    return s[:max_str] + "…"


def format_params_for_error(params, *, max_items=50):
    if params is None:
        return None
    if isinstance(params, collections.abc.Mapping):
        out = {}
        for i, (k, v) in enumerate(params.items()):
            if i >= max_items:
                out["_truncated"] = True
                break
            out[str(k)] = _format_value_for_error(v)
        return out
    # Sequence-like
    try:
        seq = list(params)
    except TypeError:
        return _format_value_for_error(params)
    if len(seq) > max_items:
        seq = seq[:max_items] + ["<truncated>"]
    return [_format_value_for_error(v) for v in seq]


def engine_error(cls, db, code, *, sql=None, params=None):
    """Build ``cls`` from the engine's error state on ``db``."""
    return cls(
        code,
        error_message(db, code),
        sql=sql,
        params=format_params_for_error(params),
    )

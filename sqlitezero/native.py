import ctypes
import ctypes.util
import os
import logging
from ctypes import c_int, c_int64, c_double, c_char_p, c_void_p, POINTER

logger = logging.getLogger(__name__)

# Primary result codes (must match sqlite3.h).
SQLITE_OK = 0
SQLITE_ERROR = 1
SQLITE_INTERNAL = 2
SQLITE_PERM = 3
SQLITE_ABORT = 4
SQLITE_BUSY = 5
SQLITE_LOCKED = 6
SQLITE_NOMEM = 7
SQLITE_READONLY = 8
SQLITE_INTERRUPT = 9
SQLITE_IOERR = 10
SQLITE_CORRUPT = 11
SQLITE_NOTFOUND = 12
SQLITE_FULL = 13
SQLITE_CANTOPEN = 14
SQLITE_PROTOCOL = 15
SQLITE_EMPTY = 16
SQLITE_SCHEMA = 17
SQLITE_TOOBIG = 18
SQLITE_CONSTRAINT = 19
SQLITE_MISMATCH = 20
SQLITE_MISUSE = 21
SQLITE_NOLFS = 22
SQLITE_AUTH = 23
SQLITE_FORMAT = 24
SQLITE_RANGE = 25
SQLITE_NOTADB = 26
SQLITE_ROW = 100
SQLITE_DONE = 101

# Column storage classes (sqlite3_column_type)
SQLITE_INTEGER = 1
SQLITE_FLOAT = 2
SQLITE_TEXT = 3
SQLITE_BLOB = 4
SQLITE_NULL = 5

# sqlite3_open_v2 flags
SQLITE_OPEN_READONLY = 0x00000001
SQLITE_OPEN_READWRITE = 0x00000002
SQLITE_OPEN_CREATE = 0x00000004
SQLITE_OPEN_URI = 0x00000040
SQLITE_OPEN_MEMORY = 0x00000080
SQLITE_OPEN_NOMUTEX = 0x00008000
SQLITE_OPEN_FULLMUTEX = 0x00010000
SQLITE_OPEN_SHAREDCACHE = 0x00020000
SQLITE_OPEN_PRIVATECACHE = 0x00040000
SQLITE_OPEN_NOFOLLOW = 0x01000000
SQLITE_OPEN_EXRESCODE = 0x02000000

# Destructor sentinel telling SQLite to copy bound text/blob buffers.
SQLITE_TRANSIENT = c_void_p(-1)

_lib = None

_LIB_NAMES = [
    "libsqlite3.so.0",
    "libsqlite3.so",
    "libsqlite3.dylib",
    "sqlite3.dll",
]


def primary_code(code):
    """Strip the extended bits from a result code."""
    return code & 0xFF


def load_library():
    global _lib
    if _lib is not None:
        return _lib

    candidates = []
    lib_path = os.environ.get("SQLITEZERO_NATIVE_LIB")
    if lib_path:
        candidates.append(lib_path)
    else:
        found = ctypes.util.find_library("sqlite3")
        if found:
            candidates.append(found)
        candidates.extend(_LIB_NAMES)

    errors = []
    for candidate in candidates:
        try:
            lib = ctypes.CDLL(candidate)
        except OSError as e:
            errors.append(f"{candidate}: {e}")
            continue
        logger.debug("loaded sqlite library from %s", candidate)
        break
    else:
        detail = "; ".join(errors) if errors else "no candidates"
        raise RuntimeError(
            f"Could not load the sqlite3 native library ({detail}). "
            "Set SQLITEZERO_NATIVE_LIB env var."
        )

    _define_signatures(lib)
    _lib = lib
    return _lib


def _define_signatures(lib):
    # Library info
    lib.sqlite3_libversion.argtypes = []
    lib.sqlite3_libversion.restype = c_char_p

    lib.sqlite3_libversion_number.argtypes = []
    lib.sqlite3_libversion_number.restype = c_int

    # Open / close
    lib.sqlite3_open_v2.argtypes = [c_char_p, POINTER(c_void_p), c_int, c_char_p]
    lib.sqlite3_open_v2.restype = c_int

    lib.sqlite3_close.argtypes = [c_void_p]
    lib.sqlite3_close.restype = c_int

    lib.sqlite3_close_v2.argtypes = [c_void_p]
    lib.sqlite3_close_v2.restype = c_int

    lib.sqlite3_busy_timeout.argtypes = [c_void_p, c_int]
    lib.sqlite3_busy_timeout.restype = c_int

    lib.sqlite3_get_autocommit.argtypes = [c_void_p]
    lib.sqlite3_get_autocommit.restype = c_int

    lib.sqlite3_last_insert_rowid.argtypes = [c_void_p]
    lib.sqlite3_last_insert_rowid.restype = c_int64

    lib.sqlite3_changes.argtypes = [c_void_p]
    lib.sqlite3_changes.restype = c_int

    lib.sqlite3_total_changes.argtypes = [c_void_p]
    lib.sqlite3_total_changes.restype = c_int

    # 64-bit counters (3.37+)
    if hasattr(lib, "sqlite3_changes64"):
        lib.sqlite3_changes64.argtypes = [c_void_p]
        lib.sqlite3_changes64.restype = c_int64

    if hasattr(lib, "sqlite3_total_changes64"):
        lib.sqlite3_total_changes64.argtypes = [c_void_p]
        lib.sqlite3_total_changes64.restype = c_int64

    # Errors
    lib.sqlite3_errcode.argtypes = [c_void_p]
    lib.sqlite3_errcode.restype = c_int

    lib.sqlite3_extended_errcode.argtypes = [c_void_p]
    lib.sqlite3_extended_errcode.restype = c_int

    lib.sqlite3_errmsg.argtypes = [c_void_p]
    lib.sqlite3_errmsg.restype = c_char_p

    if hasattr(lib, "sqlite3_errstr"):
        lib.sqlite3_errstr.argtypes = [c_int]
        lib.sqlite3_errstr.restype = c_char_p

    # Statements. The SQL is passed as a raw buffer so the tail pointer can
    # be turned back into a byte offset.
    lib.sqlite3_prepare_v2.argtypes = [c_void_p, c_void_p, c_int, POINTER(c_void_p), POINTER(c_void_p)]
    lib.sqlite3_prepare_v2.restype = c_int

    lib.sqlite3_finalize.argtypes = [c_void_p]
    lib.sqlite3_finalize.restype = c_int

    lib.sqlite3_reset.argtypes = [c_void_p]
    lib.sqlite3_reset.restype = c_int

    lib.sqlite3_clear_bindings.argtypes = [c_void_p]
    lib.sqlite3_clear_bindings.restype = c_int

    lib.sqlite3_step.argtypes = [c_void_p]
    lib.sqlite3_step.restype = c_int

    lib.sqlite3_stmt_readonly.argtypes = [c_void_p]
    lib.sqlite3_stmt_readonly.restype = c_int

    # Bindings
    lib.sqlite3_bind_parameter_count.argtypes = [c_void_p]
    lib.sqlite3_bind_parameter_count.restype = c_int

    lib.sqlite3_bind_parameter_index.argtypes = [c_void_p, c_char_p]
    lib.sqlite3_bind_parameter_index.restype = c_int

    lib.sqlite3_bind_parameter_name.argtypes = [c_void_p, c_int]
    lib.sqlite3_bind_parameter_name.restype = c_char_p

    lib.sqlite3_bind_null.argtypes = [c_void_p, c_int]
    lib.sqlite3_bind_null.restype = c_int

    lib.sqlite3_bind_int64.argtypes = [c_void_p, c_int, c_int64]
    lib.sqlite3_bind_int64.restype = c_int

    lib.sqlite3_bind_double.argtypes = [c_void_p, c_int, c_double]
    lib.sqlite3_bind_double.restype = c_int

    lib.sqlite3_bind_text.argtypes = [c_void_p, c_int, c_char_p, c_int, c_void_p]
    lib.sqlite3_bind_text.restype = c_int

    lib.sqlite3_bind_blob.argtypes = [c_void_p, c_int, c_char_p, c_int, c_void_p]
    lib.sqlite3_bind_blob.restype = c_int

    # Columns
    lib.sqlite3_column_count.argtypes = [c_void_p]
    lib.sqlite3_column_count.restype = c_int

    lib.sqlite3_column_name.argtypes = [c_void_p, c_int]
    lib.sqlite3_column_name.restype = c_char_p

    lib.sqlite3_column_type.argtypes = [c_void_p, c_int]
    lib.sqlite3_column_type.restype = c_int

    lib.sqlite3_column_int64.argtypes = [c_void_p, c_int]
    lib.sqlite3_column_int64.restype = c_int64

    lib.sqlite3_column_double.argtypes = [c_void_p, c_int]
    lib.sqlite3_column_double.restype = c_double

    lib.sqlite3_column_text.argtypes = [c_void_p, c_int]
    lib.sqlite3_column_text.restype = c_void_p

    lib.sqlite3_column_blob.argtypes = [c_void_p, c_int]
    lib.sqlite3_column_blob.restype = c_void_p

    lib.sqlite3_column_bytes.argtypes = [c_void_p, c_int]
    lib.sqlite3_column_bytes.restype = c_int

    # Online backup
    lib.sqlite3_backup_init.argtypes = [c_void_p, c_char_p, c_void_p, c_char_p]
    lib.sqlite3_backup_init.restype = c_void_p

    lib.sqlite3_backup_step.argtypes = [c_void_p, c_int]
    lib.sqlite3_backup_step.restype = c_int

    lib.sqlite3_backup_finish.argtypes = [c_void_p]
    lib.sqlite3_backup_finish.restype = c_int

    lib.sqlite3_backup_remaining.argtypes = [c_void_p]
    lib.sqlite3_backup_remaining.restype = c_int

    lib.sqlite3_backup_pagecount.argtypes = [c_void_p]
    lib.sqlite3_backup_pagecount.restype = c_int

    lib.sqlite3_sleep.argtypes = [c_int]
    lib.sqlite3_sleep.restype = c_int


def sqlite_version():
    return load_library().sqlite3_libversion().decode("ascii")


def error_message(db, code):
    """Best available message for ``code``, preferring the handle's own."""
    lib = load_library()
    msg = None
    if db:
        msg = lib.sqlite3_errmsg(db)
    if not msg and hasattr(lib, "sqlite3_errstr"):
        msg = lib.sqlite3_errstr(code)
    if not msg:
        return f"{code} - Unknown error"
    # Native messages should be UTF-8, but don't crash if not.
    return msg.decode("utf-8", errors="replace")

"""Storage-class values and the conversions allowed between them.

A :class:`Value` is always one of SQLite's five storage classes. Values are
converted only when read, via :func:`convert`, and a conversion that cannot
be done exactly yields ``None`` instead of raising.
"""
import dataclasses
import enum
import math
import re
import uuid

from .native import SQLITE_INTEGER, SQLITE_FLOAT, SQLITE_TEXT, SQLITE_BLOB, SQLITE_NULL, SQLITE_RANGE
from .errors import BindError

INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1
UINT64_MAX = 2 ** 64 - 1

_INT_LITERAL = re.compile(r"[+-]?[0-9]+\Z")


class StorageClass(enum.IntEnum):
    INTEGER = SQLITE_INTEGER
    REAL = SQLITE_FLOAT
    TEXT = SQLITE_TEXT
    BLOB = SQLITE_BLOB
    NULL = SQLITE_NULL


@dataclasses.dataclass(frozen=True)
class IntegerType:
    """Integer conversion target of a fixed width."""
    name: str
    bits: int
    signed: bool = True

    @property
    def min(self):
        return -(2 ** (self.bits - 1)) if self.signed else 0

    @property
    def max(self):
        return 2 ** (self.bits - 1) - 1 if self.signed else 2 ** self.bits - 1

    def fits(self, n):
        return self.min <= n <= self.max


INT32 = IntegerType("int32", 32)
INT64 = IntegerType("int64", 64)
UINT64 = IntegerType("uint64", 64, signed=False)


@dataclasses.dataclass(frozen=True)
class Value:
    storage_class: StorageClass
    data: object = None

    @classmethod
    def null(cls):
        return cls(StorageClass.NULL, None)

    @classmethod
    def integer(cls, n):
        return cls(StorageClass.INTEGER, int(n))

    @classmethod
    def real(cls, f):
        return cls(StorageClass.REAL, float(f))

    @classmethod
    def text(cls, s):
        return cls(StorageClass.TEXT, str(s))

    @classmethod
    def blob(cls, b):
        return cls(StorageClass.BLOB, bytes(b))

    @classmethod
    def from_python(cls, obj):
        """Widen an arbitrary Python object to one of the five storage classes."""
        if obj is None:
            return cls.null()
        if isinstance(obj, Value):
            return obj
        # bool before int: bool is an int subclass
        if isinstance(obj, bool):
            return cls.integer(1 if obj else 0)
        if isinstance(obj, int):
            if INT64_MIN <= obj <= INT64_MAX:
                return cls.integer(obj)
            if INT64_MAX < obj <= UINT64_MAX:
                # Too big for a signed 64-bit integer; keep every digit as text.
                return cls.text(str(obj))
            raise BindError(SQLITE_RANGE, f"Integer {obj} is out of range for a 64-bit column")
        if isinstance(obj, float):
            return cls.real(obj)
        if isinstance(obj, str):
            return cls.text(obj)
        if isinstance(obj, (bytes, bytearray, memoryview)):
            return cls.blob(obj)
        if isinstance(obj, uuid.UUID):
            return cls.blob(obj.bytes)
        # Try string conversion for unknown types (e.g. Date)
        return cls.text(str(obj))

    @property
    def is_null(self):
        return self.storage_class is StorageClass.NULL

    def convert(self, target):
        return convert(self, target)


def _integer_target(target):
    if target is int:
        return INT64
    if isinstance(target, IntegerType):
        return target
    return None


def _float_is_exact_int(n):
    f = float(n)
    return int(f) == n


def _from_integer(n, target):
    width = _integer_target(target)
    if width is not None:
        return n if width.fits(n) else None
    if target is bool:
        return n != 0
    if target is float:
        return float(n) if _float_is_exact_int(n) else None
    if target is str:
        return str(n)
    return None


def _from_real(f, target):
    width = _integer_target(target)
    if width is not None:
        if math.isnan(f) or math.isinf(f) or not f.is_integer():
            return None
        n = int(f)
        return n if width.fits(n) else None
    if target is float:
        return f
    if target is bool:
        return f != 0.0
    if target is str:
        return repr(f)
    return None


def _parse_float(s):
    if not s or s != s.strip() or "_" in s:
        return None
    try:
        return float(s)
    except ValueError:
        return None


def _from_text(s, target):
    if target is str:
        return s
    if target is bytes:
        return s.encode("utf-8")
    width = _integer_target(target)
    if width is not None:
        if not _INT_LITERAL.match(s):
            return None
        n = int(s)
        return n if width.fits(n) else None
    if target is float:
        return _parse_float(s)
    if target is bool:
        lowered = s.lower()
        if lowered == "true":
            return True
        if lowered == "false":
            return False
        return None
    return None


def _from_blob(b, target):
    if target is bytes:
        return b
    if target is str:
        try:
            return b.decode("utf-8")
        except UnicodeDecodeError:
            return None
    return None


_CONVERTERS = {
    StorageClass.INTEGER: _from_integer,
    StorageClass.REAL: _from_real,
    StorageClass.TEXT: _from_text,
    StorageClass.BLOB: _from_blob,
}

_TARGETS = (int, float, bool, str, bytes)


def convert(value, target):
    """Convert ``value`` to ``target``, or return None when there is no exact result.

    ``target`` is one of ``int``, ``float``, ``bool``, ``str``, ``bytes`` or an
    :class:`IntegerType` such as :data:`INT32` or :data:`UINT64`.
    """
    if target not in _TARGETS and not isinstance(target, IntegerType):
        raise TypeError(f"Unsupported conversion target: {target!r}")
    if value is None or value.storage_class is StorageClass.NULL:
        return None
    return _CONVERTERS[value.storage_class](value.data, target)

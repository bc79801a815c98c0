from .value import Value, convert


class Row:
    """Immutable snapshot of one result row.

    Positional access past the end raises ``IndexError``. Name access returns
    ``None`` for an unknown column so optional columns can be probed; when a
    name appears more than once the first column wins.
    """

    __slots__ = ("_values", "_columns")

    def __init__(self, values, columns):
        values = tuple(values)
        columns = tuple(columns)
        if len(values) != len(columns):
            raise ValueError(f"Row has {len(values)} values but {len(columns)} column names")
        self._values = values
        self._columns = columns

    @property
    def columns(self):
        return self._columns

    @property
    def values(self):
        return self._values

    def index(self, name):
        for i, col in enumerate(self._columns):
            if col == name:
                return i
        return None

    def has_column(self, name):
        return self.index(name) is not None

    def value(self, key):
        """The :class:`Value` at ``key`` (position or column name)."""
        if isinstance(key, str):
            i = self.index(key)
            if i is None:
                return None
            return self._values[i]
        return self._values[key]

    def get(self, key, target=None, default=None):
        v = self.value(key)
        if v is None:
            return default
        if target is None:
            result = v.data
        else:
            result = convert(v, target)
        return default if result is None else result

    def as_int(self, key, default=None):
        return self.get(key, int, default)

    def as_float(self, key, default=None):
        return self.get(key, float, default)

    def as_bool(self, key, default=None):
        return self.get(key, bool, default)

    def as_str(self, key, default=None):
        return self.get(key, str, default)

    def as_bytes(self, key, default=None):
        return self.get(key, bytes, default)

    def keys(self):
        return list(self._columns)

    def items(self):
        return [(col, v.data) for col, v in zip(self._columns, self._values)]

    def as_dict(self):
        out = {}
        for col, v in zip(self._columns, self._values):
            # First match wins, as with name lookup.
            out.setdefault(col, v.data)
        return out

    def __getitem__(self, key):
        if isinstance(key, slice):
            return tuple(v.data for v in self._values[key])
        v = self.value(key)
        return None if v is None else v.data

    def __len__(self):
        return len(self._values)

    def __iter__(self):
        return (v.data for v in self._values)

    def __eq__(self, other):
        if isinstance(other, Row):
            return self._columns == other._columns and self._values == other._values
        if isinstance(other, tuple):
            return tuple(self) == other
        return NotImplemented

    def __hash__(self):
        # Equal to a tuple of the same payloads, so hash like one.
        return hash(tuple(self))

    def __repr__(self):
        inner = ", ".join(f"{col}={v.data!r}" for col, v in zip(self._columns, self._values))
        return f"Row({inner})"


def row_from_python(values, columns):
    """Build a Row from plain Python payloads (mainly for callers and tests)."""
    return Row([Value.from_python(v) for v in values], columns)

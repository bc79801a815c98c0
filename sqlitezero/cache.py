import collections
import logging

logger = logging.getLogger(__name__)


class StatementCache:
    """Bounded map from literal SQL text to its compiled Statement.

    Keys are not normalized, so only byte-identical SQL hits. Once more than
    ``max_count`` entries are held, the least recently used one is finalized
    and dropped.
    """

    def __init__(self, max_count):
        self.max_count = max(int(max_count), 1)
        self._store = collections.OrderedDict()

    def get(self, sql):
        stmt = self._store.get(sql)
        if stmt is not None:
            # Move to end (LRU)
            self._store.move_to_end(sql)
        return stmt

    def put(self, sql, stmt):
        """Insert ``stmt`` and return how many entries were evicted."""
        old = self._store.pop(sql, None)
        if old is not None and old is not stmt:
            old._finalize()
        self._store[sql] = stmt

        evicted = 0
        while len(self._store) > self.max_count:
            old_sql, old_stmt = self._store.popitem(last=False)
            # Release the cursor before the entry goes away.
            old_stmt._finalize()
            evicted += 1
            logger.debug("evicted cached statement %r", old_sql)
        return evicted

    def discard(self, stmt):
        if self._store.get(stmt.sql) is stmt:
            del self._store[stmt.sql]

    def pending(self):
        """Statements that were executed and still have rows left to read."""
        return [stmt for stmt in self._store.values() if stmt.has_row]

    def clear(self):
        while self._store:
            _, stmt = self._store.popitem(last=False)
            stmt._finalize()

    def __len__(self):
        return len(self._store)

    def __contains__(self, sql):
        return sql in self._store

    def __iter__(self):
        return iter(list(self._store))

import logging

from .statement import Statement, strip_leading_comments

logger = logging.getLogger(__name__)


def run_script(connection, sql):
    """Run every ``;``-separated statement in ``sql`` in order.

    Each statement is compiled outside the statement cache, run to completion
    with any rows discarded, and finalized before the next one is compiled.
    The first compile or execution error propagates and stops the script.
    Returns the number of statements run.
    """
    count = 0
    remaining = strip_leading_comments(sql)
    while remaining:
        if remaining[0] == ";":
            # empty statement
            remaining = strip_leading_comments(remaining[1:])
            continue

        stmt = Statement(connection, remaining)
        try:
            stmt.execute()
            stmt._run_to_completion()
        finally:
            stmt.close()
        count += 1
        remaining = strip_leading_comments(stmt.tail or "")

    logger.debug("script ran %d statement(s)", count)
    return count

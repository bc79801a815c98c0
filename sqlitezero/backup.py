import logging

from .native import (
    load_library, primary_code, error_message,
    SQLITE_OK, SQLITE_DONE, SQLITE_BUSY, SQLITE_LOCKED,
)
from .errors import BackupError, ProgrammingError, engine_error

logger = logging.getLogger(__name__)

# Pages copied per step.
DEFAULT_BACKUP_PAGES = 100
# Seconds to wait before retrying a busy or locked step.
DEFAULT_BACKUP_SLEEP = 0.25


def backup(source, target, progress=None, pages=DEFAULT_BACKUP_PAGES, sleep=DEFAULT_BACKUP_SLEEP):
    """Copy the main database of ``source`` into ``target``, ``pages`` pages at a time.

    ``progress(bytes_remaining, total_bytes, retries)`` is called after every
    step. Both byte counts are ``None`` while the source is still locked and
    nothing has been read yet; after that they are the last known values.
    ``retries`` counts consecutive busy/locked steps, which are retried
    for as long as the callback lets the loop continue. Returning ``False``
    from the callback stops the copy early without an error; returning
    ``None`` continues.

    Returns True when the whole database was copied, False when cancelled.
    """
    if source is target:
        raise ProgrammingError("Backup source and target must be different connections")
    source._check_open()
    target._check_open()
    if progress is not None and not callable(progress):
        raise TypeError("progress argument must be a callable")
    if pages == 0:
        pages = -1

    lib = load_library()
    page_size = source.page_size

    handle = lib.sqlite3_backup_init(target._db, b"main", source._db, b"main")
    if not handle:
        raise engine_error(BackupError, target._db, lib.sqlite3_extended_errcode(target._db))

    try:
        completed = _copy(lib, handle, page_size, progress, pages, sleep)
    except BaseException:
        lib.sqlite3_backup_finish(handle)
        raise

    rc = lib.sqlite3_backup_finish(handle)
    if rc != SQLITE_OK:
        raise engine_error(BackupError, target._db, rc)
    return completed


def _copy(lib, handle, page_size, progress, pages, sleep):
    retries = 0
    # Unknown until a step has read the source.
    remaining = total = None
    while True:
        rc = lib.sqlite3_backup_step(handle, pages)
        pagecount = lib.sqlite3_backup_pagecount(handle)
        if pagecount:
            total = pagecount * page_size
            remaining = lib.sqlite3_backup_remaining(handle) * page_size

        if rc == SQLITE_DONE:
            total = total or 0
            logger.debug("backup complete: %d bytes", total)
            if progress is not None:
                progress(0, total, retries)
            return True

        if rc == SQLITE_OK:
            retries = 0
        elif primary_code(rc) in (SQLITE_BUSY, SQLITE_LOCKED):
            retries += 1
            logger.debug("backup step busy, retry %d", retries)
            lib.sqlite3_sleep(int(sleep * 1000))
        else:
            raise BackupError(rc, error_message(None, rc))

        if progress is not None:
            keep_going = progress(remaining, total, retries)
            if keep_going is not None and not keep_going:
                logger.debug("backup cancelled with %s of %s bytes remaining", remaining, total)
                return False

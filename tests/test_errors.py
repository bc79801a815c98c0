import os

import pytest
import sqlitezero
from sqlitezero.errors import format_params_for_error


def test_close_with_outstanding_statement(db_path):
    conn = sqlitezero.connect(db_path)
    stmt = conn.prepare("select 1", cached=False)

    with pytest.raises(sqlitezero.StatementsOutstandingError) as excinfo:
        conn.close()
    assert isinstance(excinfo.value, sqlitezero.CloseError)
    assert excinfo.value.is_busy
    assert conn.is_open

    stmt.close()
    conn.close()
    assert not conn.is_open


def test_close_while_reading_cached_statement(db_path):
    conn = sqlitezero.connect(db_path)
    stmt = conn.execute("select * from (values (1), (2), (3))")
    assert stmt.next_row()[0] == 1

    with pytest.raises(sqlitezero.StatementsOutstandingError) as excinfo:
        conn.close()
    assert excinfo.value.is_busy
    assert "values (1), (2), (3)" in excinfo.value.message
    assert conn.is_open
    assert not stmt.closed

    # The remaining rows are still there.
    assert [r[0] for r in stmt] == [2, 3]
    conn.close()
    assert not conn.is_open
    assert stmt.closed


def test_close_after_reset(db_path):
    conn = sqlitezero.connect(db_path)
    stmt = conn.execute("select * from (values (1), (2))")
    stmt.reset()
    conn.close()
    assert stmt.closed


def test_close_twice(db_path):
    conn = sqlitezero.connect(db_path)
    conn.close()
    conn.close()


def test_use_after_close(db_path):
    conn = sqlitezero.connect(db_path)
    stmt = conn.execute("select 1")
    stmt.one()
    conn.close()

    with pytest.raises(sqlitezero.ProgrammingError):
        stmt.next_row()
    with pytest.raises(sqlitezero.ProgrammingError):
        stmt.execute()
    with pytest.raises(sqlitezero.ProgrammingError):
        conn.execute("select 1")
    with pytest.raises(sqlitezero.ProgrammingError):
        conn.in_transaction


def test_context_manager_closes(db_path):
    with sqlitezero.connect(db_path) as conn:
        conn.execute("create table foo (id integer)")
    assert not conn.is_open

    with sqlitezero.connect(db_path) as conn:
        with conn.prepare("select count(*) from foo", cached=False) as stmt:
            assert stmt.execute().one()[0] == 0
        assert stmt.closed


def test_open_missing_directory(tmp_path):
    path = os.path.join(str(tmp_path), "missing", "test.db")
    with pytest.raises(sqlitezero.OpenError) as excinfo:
        sqlitezero.connect(path)
    assert path in excinfo.value.message


def test_open_read_only_missing_file(tmp_path):
    path = str(tmp_path / "absent.db")
    with pytest.raises(sqlitezero.OpenError):
        sqlitezero.connect(path, flags=sqlitezero.OpenFlags.READ_ONLY)
    assert not os.path.exists(path)


def test_read_only_rejects_writes(db_path):
    with sqlitezero.connect(db_path) as conn:
        conn.execute("create table foo (id integer)")

    with sqlitezero.connect(db_path, flags=sqlitezero.OpenFlags.READ_ONLY) as conn:
        with pytest.raises(sqlitezero.StepError) as excinfo:
            conn.execute("insert into foo values (1)")
        assert "readonly" in excinfo.value.message


def test_step_error_context(db):
    db.execute("create table u (id integer primary key)")
    db.execute("insert into u values (?)", (1,))
    with pytest.raises(sqlitezero.StepError) as excinfo:
        db.execute("insert into u values (?)", (1,))

    err = excinfo.value
    assert err.sql == "insert into u values (?)"
    assert err.params == [1]
    assert "UNIQUE" in str(err)
    assert str(err).startswith(f"[{err.code}]")
    assert not err.is_busy


def test_error_codes():
    assert sqlitezero.Error(5, "database is locked").is_busy
    assert sqlitezero.Error(6, "table is locked").is_busy
    # SQLITE_BUSY_SNAPSHOT is an extended busy code.
    assert sqlitezero.Error(5 | (2 << 8), "busy snapshot").is_busy
    assert not sqlitezero.Error(1, "error").is_busy
    assert str(sqlitezero.Error(1, "boom")) == "[1] boom"
    assert sqlitezero.ProgrammingError("misuse").code == 21


def test_format_params_for_error():
    assert format_params_for_error(None) is None
    assert format_params_for_error((1, "a", None)) == [1, "a", None]
    assert format_params_for_error({"a": b"\x00\x01"}) == {
        "a": {"_type": "bytes", "hex": "0001", "len": 2},
    }
    long_text = format_params_for_error(["x" * 500])[0]
    assert len(long_text) == 201
    assert format_params_for_error(list(range(60)))[-1] == "<truncated>"


def test_nul_in_sql(db):
    with pytest.raises(sqlitezero.PrepareError):
        db.execute("select 1\0")


def test_busy_timeout_zero(db_path):
    a = sqlitezero.connect(db_path)
    b = sqlitezero.connect(db_path, busy_timeout=0)
    a.execute("create table x (id integer)")

    a.execute_script("begin exclusive")
    with pytest.raises(sqlitezero.Error) as excinfo:
        b.execute("select * from x")
    assert excinfo.value.is_busy
    a.execute_script("rollback")

    assert b.execute("select count(*) from x").one()[0] == 0
    a.close()
    b.close()


def test_context_manager_ends_pending_cursors(db_path):
    with sqlitezero.connect(db_path) as conn:
        stmt = conn.execute("select * from (values (1), (2))")
        assert stmt.has_row
    assert not conn.is_open
    assert stmt.closed

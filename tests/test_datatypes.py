import datetime
import uuid

import pytest
import sqlitezero


def test_type_conversion(db):
    row = db.execute("""
        SELECT
            1 as int,
            -1 as nint,
            1.1 as double,
            '1' as text,
            cast('abc' as blob) as blob,
            null as nl,
            'true' as sbool
    """).one()

    assert row.get("int", bool) is True
    assert row.get("sbool", bool) is True
    assert row.get("double", float) == 1.1
    assert row.get("text", int) == 1
    assert row.get("int", int) == 1
    assert row.get("nint", int) == -1
    assert row.get("nint", sqlitezero.UINT64) is None
    assert row.get("int", float) == 1.0
    assert row.get("text", float) == 1.0
    assert row.get("int", str) == "1"
    assert row.get("double", str) == "1.1"
    assert row.get("blob", str) == "abc"
    assert row.get("nl", int) is None


def test_storage_class_matches_engine(db):
    row = db.execute(
        "select 1, 1.5, 'x', x'00', null, typeof(1), typeof(1.5), typeof('x'), typeof(x'00'), typeof(null)"
    ).one()
    classes = [row.value(i).storage_class for i in range(5)]
    assert classes == [
        sqlitezero.StorageClass.INTEGER,
        sqlitezero.StorageClass.REAL,
        sqlitezero.StorageClass.TEXT,
        sqlitezero.StorageClass.BLOB,
        sqlitezero.StorageClass.NULL,
    ]
    assert row[5:] == ("integer", "real", "text", "blob", "null")


def test_positional_bindings(table_db):
    table_db.execute("insert into t(id, name, balance) values(99, ?, ?)", ("noa", 99.66))
    row = table_db.execute("select name, balance from t where id = 99").one()
    assert row == ("noa", 99.66)


def test_named_bindings(table_db):
    # Prefix given, prefix omitted
    table_db.execute(
        "insert into t(id, name, balance) values (99, :name, :balance)",
        {":name": "noa", "balance": 99.66},
    )
    table_db.execute(
        "insert into t(id, name, balance) values (100, $name, @balance)",
        {"name": "eli", "balance": 1.0},
    )
    rows = table_db.execute("select id, name from t where id >= 99 order by id").all()
    assert rows == [(99, "noa"), (100, "eli")]


def test_named_binding_unknown_name(db):
    with pytest.raises(sqlitezero.BindError) as excinfo:
        db.execute("select :a", {"b": 1})
    assert "b" in excinfo.value.message


def test_too_many_positional_bindings(db):
    with pytest.raises(sqlitezero.BindError):
        db.execute("select ?", (1, 2))


def test_bind_string_as_parameters(db):
    with pytest.raises(sqlitezero.BindError):
        db.execute("select ?", "a")


def test_bool(db):
    db.execute("CREATE TABLE t_bool (b BOOL)")
    db.execute("INSERT INTO t_bool VALUES (?)", (True,))
    db.execute("INSERT INTO t_bool VALUES (?)", (False,))

    rows = db.execute("SELECT b FROM t_bool").all()
    assert [r[0] for r in rows] == [1, 0]
    assert [r.as_bool(0) for r in rows] == [True, False]


def test_uuid(db):
    db.execute("CREATE TABLE t_uuid (u BLOB)")
    u1 = uuid.uuid4()
    db.execute("INSERT INTO t_uuid VALUES (?)", (u1,))

    r1 = db.execute("SELECT u FROM t_uuid").one()[0]
    assert isinstance(r1, bytes)
    assert len(r1) == 16
    assert r1 == u1.bytes


def test_blob(db):
    db.execute("CREATE TABLE t_blob (id INTEGER, data BLOB)")

    blobs = [
        b'',
        b'\x00',
        b'\xDE\xAD\xBE\xEF',
        bytes(range(256)),
    ]

    for i, b in enumerate(blobs):
        db.execute("INSERT INTO t_blob VALUES (?, ?)", (i, b))

    rows = db.execute("SELECT data, typeof(data) FROM t_blob ORDER BY id").all()
    assert len(rows) == len(blobs)

    for i, expected in enumerate(blobs):
        assert rows[i][0] == expected, f"blob[{i}] mismatch"
        assert rows[i][1] == "blob"


def test_float64(db):
    db.execute("CREATE TABLE t_float (id INTEGER, v REAL)")

    values = [0.0, 1.0, -1.0, 3.141592653589793, 1.7976931348623157e+308, 5e-324]
    for i, v in enumerate(values):
        db.execute("INSERT INTO t_float VALUES (?, ?)", (i, v))

    rows = db.execute("SELECT v FROM t_float ORDER BY id").all()
    assert len(rows) == len(values)

    for i, expected in enumerate(values):
        assert rows[i][0] == expected, f"float[{i}]: expected {expected}, got {rows[i][0]}"


def test_text_round_trip(db):
    text = "héllo wörld ✓ \x00 inside"
    assert db.execute("select ?", (text,)).one()[0] == text


def test_null(db):
    db.execute("CREATE TABLE t_null (id INTEGER, i INTEGER, t TEXT, f REAL)")
    db.execute("INSERT INTO t_null VALUES (?, ?, ?, ?)", (1, None, None, None))

    row = db.execute("SELECT i, t, f FROM t_null WHERE id = 1").one()
    assert row[0] is None
    assert row[1] is None
    assert row[2] is None


def test_int64_limits(db):
    row = db.execute("select ?, ?", (2 ** 63 - 1, -2 ** 63)).one()
    assert row == (2 ** 63 - 1, -2 ** 63)


def test_unsigned_overflow_binds_as_text(db):
    big = 2 ** 64 - 1
    row = db.execute("select ?1, typeof(?1)", (big,)).one()
    assert row == ("18446744073709551615", "text")
    assert row.get(0, sqlitezero.UINT64) == big


def test_unrepresentable_integer(db):
    with pytest.raises(sqlitezero.BindError):
        db.execute("select ?", (2 ** 64,))
    with pytest.raises(sqlitezero.BindError):
        db.execute("select ?", (-2 ** 63 - 1,))


def test_other_objects_bind_as_text(db):
    day = datetime.date(2024, 2, 29)
    assert db.execute("select ?", (day,)).one()[0] == "2024-02-29"

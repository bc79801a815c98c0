import pytest
import sqlitezero


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "test.db")


@pytest.fixture
def db():
    conn = sqlitezero.connect(":memory:")
    yield conn
    conn.close()


def create_test_table(conn):
    conn.execute("""
        create table t(
            id integer primary key,
            name text not null,
            balance real not null,
            member integer not null default 0,
            comment text
        )
    """)
    conn.execute("""
        insert into t(id, name, balance, member, comment) values
        (1, 'max', 123.456, 1, 'best'),
        (2, 'ada', 1024.1024, 1, 'nice'),
        (3, 'ari', 0.01, 0, null)
    """)


@pytest.fixture
def table_db(db):
    create_test_table(db)
    return db

"""Example: basic sqlitezero usage.

Uses the system SQLite library. To point at a specific build:
    SQLITEZERO_NATIVE_LIB=/path/to/libsqlite3.so python example.py
"""

import os
import tempfile
import sqlitezero


def main():
    # Create a temporary database file for this example.
    db_path = os.path.join(tempfile.gettempdir(), "sqlitezero_example.db")

    conn = sqlitezero.connect(db_path)

    # Create a table.
    conn.execute_script("""
        DROP TABLE IF EXISTS users;
        CREATE TABLE users (
            id    INTEGER PRIMARY KEY,
            name  TEXT NOT NULL,
            email TEXT UNIQUE
        );
    """)

    # Insert rows using positional parameters; the statement is compiled once.
    users = [
        ("Alice", "alice@example.com"),
        ("Bob", "bob@example.com"),
        ("Carol", "carol@example.com"),
    ]
    with conn.transaction():
        for user in users:
            conn.execute("INSERT INTO users (name, email) VALUES (?, ?)", user)

    # Query all users.
    print("All users:")
    for row in conn.execute("SELECT id, name, email FROM users ORDER BY id"):
        print(f"  id={row['id']}  name={row['name']}  email={row['email']}")

    # Named parameter lookup.
    row = conn.execute("SELECT name FROM users WHERE email = :email", {"email": "bob@example.com"}).one()
    print(f"\nLookup by email: {row[0]}")

    # A failing nested block only undoes its own work.
    with conn.transaction():
        conn.execute("INSERT INTO users (name, email) VALUES (?, ?)", ("Dave", "dave@example.com"))
        try:
            with conn.transaction():
                conn.execute("INSERT INTO users (name, email) VALUES (?, ?)", ("Eve", "alice@example.com"))
        except sqlitezero.StepError as e:
            print(f"\nNested insert rolled back: {e.message}")

    count = conn.execute("SELECT count(*) FROM users").one().as_int(0)
    print(f"\nTotal users after transaction: {count}")

    # Copy the database into memory.
    copy = sqlitezero.connect()
    conn.backup(copy, progress=lambda remaining, total, retries: print(f"  backup: {remaining}/{total} bytes left"))
    print(f"Users in the in-memory copy: {copy.execute('SELECT count(*) FROM users').one()[0]}")

    copy.close()
    conn.close()

    # Clean up.
    for suffix in ("", "-journal"):
        try:
            os.unlink(db_path + suffix)
        except FileNotFoundError:
            pass

    print("\nDone.")


if __name__ == "__main__":
    main()

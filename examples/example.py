"""Example: Basic RDS Data API usage with the Python DB-API 2.0 interface.

Point it at an Aurora MySQL cluster with the Data API enabled:
    DATA_API_RESOURCE_ARN=arn:aws:rds:... \
    DATA_API_SECRET_ARN=arn:aws:secretsmanager:... \
    DATA_API_REGION=eu-west-1 \
    python example.py
"""

import logging
import os

import rdsdataapi


def main():
    logging.basicConfig(level=os.environ.get("DATA_API_LOG_LEVEL", "WARNING"))

    config = rdsdataapi.ConnectionConfig.from_env(
        database=os.environ.get("DATA_API_DATABASE", "mysql"))

    with rdsdataapi.connect(config) as conn:
        cursor = conn.cursor()

        # Create a table.
        cursor.execute("CREATE DATABASE IF NOT EXISTS example")
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS example.users (
                id    SERIAL PRIMARY KEY,
                name  VARCHAR(255) NOT NULL,
                email VARCHAR(255) UNIQUE
            )
        """)

        # Insert rows in a single batch call, using named parameters.
        users = [
            {"name": "Alice", "email": "alice@example.com"},
            {"name": "Bob", "email": "bob@example.com"},
            {"name": "Carol", "email": "carol@example.com"},
        ]
        cursor.executemany(
            "INSERT INTO example.users (name, email) VALUES (:name, :email)",
            users,
        )

        # Query all users.
        cursor.execute("SELECT id, name, email FROM example.users ORDER BY id")
        print("All users:")
        for row in cursor.fetchall():
            print(f"  id={row[0]}  name={row[1]}  email={row[2]}")

        # Parameterised lookup.
        cursor.execute("SELECT name FROM example.users WHERE email = :email",
                       {"email": "bob@example.com"})
        row = cursor.fetchone()
        print(f"\nLookup by email: {row[0]}")

        # Transaction with a prepared statement; ids are known once it is closed.
        conn.begin()
        with conn.prepare("INSERT INTO example.users (name, email) VALUES (:name, :email)") as stmt:
            dave = stmt.execute({"name": "Dave", "email": "dave@example.com"})
            erin = stmt.execute({"name": "Erin", "email": "erin@example.com"})
        conn.commit()
        print(f"\nInserted ids: {dave.last_insert_id()}, {erin.last_insert_id()}")

        cursor.execute("SELECT count(*) FROM example.users")
        count = cursor.fetchone()[0]
        print(f"\nTotal users after transaction: {count}")

        # Clean up.
        cursor.execute("DROP DATABASE example")
        cursor.close()


if __name__ == "__main__":
    main()

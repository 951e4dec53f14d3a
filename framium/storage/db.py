"""
Database connection management.

Provides SQLite connections and schema creation for data persistence.
"""

import sqlite3
from pathlib import Path

DEFAULT_DB_PATH = "framium.db"


def get_connection(db_path: str = DEFAULT_DB_PATH) -> sqlite3.Connection:
    """Create and return a SQLite database connection with foreign keys enabled.

    Args:
        db_path: Path to SQLite database file

    Returns:
        SQLite connection with foreign key constraints enabled
    """
    path = Path(db_path)
    conn = sqlite3.connect(str(path))
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def initialize_schema(db_path: str = DEFAULT_DB_PATH) -> None:
    """Create the users and token_usage tables if they don't exist.

    token_usage is an append-only ledger. No UPDATE or DELETE is ever
    issued against it; monthly totals are always derived by aggregation.

    Args:
        db_path: Path to SQLite database file
    """
    conn = get_connection(db_path)
    try:
        conn.executescript("""
            CREATE TABLE IF NOT EXISTS users (
                id TEXT PRIMARY KEY,
                email TEXT NOT NULL UNIQUE,
                name TEXT NOT NULL,
                plan TEXT NOT NULL DEFAULT 'BASIC',
                stripe_customer_id TEXT,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS token_usage (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id TEXT NOT NULL REFERENCES users(id),
                model TEXT NOT NULL,
                tokens_used INTEGER NOT NULL CHECK (tokens_used >= 0),
                cost_usd REAL NOT NULL DEFAULT 0 CHECK (cost_usd >= 0),
                request_type TEXT NOT NULL DEFAULT 'chat',
                created_at TEXT NOT NULL
            );

            CREATE INDEX IF NOT EXISTS idx_token_usage_user_id ON token_usage(user_id);
            CREATE INDEX IF NOT EXISTS idx_token_usage_created_at ON token_usage(created_at);
            CREATE INDEX IF NOT EXISTS idx_token_usage_model ON token_usage(model);
        """)
        conn.commit()
    finally:
        conn.close()


def ping(db_path: str = DEFAULT_DB_PATH) -> None:
    """Run a trivial query, raising sqlite3.Error if the database is unusable."""
    conn = get_connection(db_path)
    try:
        conn.execute("SELECT 1").fetchone()
    finally:
        conn.close()

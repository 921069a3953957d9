from __future__ import annotations

import os
import sqlite3
from pathlib import Path
from typing import Iterator


_DB_FILE = "bikebench.db"


def _get_storage_directory() -> Path:
    base = Path(os.getenv("LOCALAPPDATA", Path.home()))
    target = base / "BikeBench"
    target.mkdir(parents=True, exist_ok=True)
    return target


def get_database_path() -> Path:
    return _get_storage_directory() / _DB_FILE


def get_storage_root() -> Path:
    """Return the application data directory used for the database and log file."""
    return _get_storage_directory()


def create_connection() -> sqlite3.Connection:
    connection = sqlite3.connect(get_database_path())
    connection.row_factory = sqlite3.Row
    _apply_pragmas(connection)
    return connection


def _apply_pragmas(connection: sqlite3.Connection) -> None:
    cursor = connection.cursor()
    cursor.execute("PRAGMA foreign_keys = ON;")
    cursor.execute("PRAGMA journal_mode = WAL;")
    cursor.close()


def initialize() -> None:
    with create_connection() as connection:
        cursor = connection.cursor()
        cursor.executescript(
            """
            CREATE TABLE IF NOT EXISTS settings (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS tickets (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                customer_name TEXT NOT NULL,
                customer_phone TEXT NOT NULL,
                work_kind TEXT NOT NULL DEFAULT 'tasks',
                work_description TEXT NOT NULL DEFAULT '',
                created_at TEXT NOT NULL,
                state TEXT NOT NULL DEFAULT 'in_progress',
                finished_at TEXT,
                billing_total TEXT,
                billing_breakdown TEXT
            );

            CREATE INDEX IF NOT EXISTS idx_tickets_created_at
            ON tickets(created_at);

            CREATE TABLE IF NOT EXISTS customers (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL,
                phone TEXT NOT NULL,
                normalized_phone TEXT NOT NULL
            );

            CREATE UNIQUE INDEX IF NOT EXISTS idx_customers_normalized_phone
            ON customers(normalized_phone);
            """
        )

        _ensure_column(connection, "tickets", "work_kind", "TEXT NOT NULL DEFAULT 'tasks'")
        _ensure_column(connection, "tickets", "billing_breakdown", "TEXT")

        cursor.close()
        connection.commit()


def iter_rows(sql: str, *params: object) -> Iterator[sqlite3.Row]:
    with create_connection() as connection:
        cursor = connection.execute(sql, params)
        try:
            for row in cursor:
                yield row
        finally:
            cursor.close()


def _ensure_column(connection: sqlite3.Connection, table: str, column: str, definition: str) -> None:
    info = connection.execute(f"PRAGMA table_info({table});").fetchall()
    if not any(row[1] == column for row in info):
        connection.execute(f"ALTER TABLE {table} ADD COLUMN {column} {definition};")

from __future__ import annotations

import sqlite3
from typing import List, Optional

from ..errors import StoreError
from ..logger import logger
from ..models.ticket_models import CustomerRecord
from .database import create_connection, iter_rows


def fetch_customers() -> List[CustomerRecord]:
    try:
        return [
            CustomerRecord(id=int(row["id"]), name=row["name"], phone=row["phone"])
            for row in iter_rows("SELECT id, name, phone FROM customers ORDER BY id")
        ]
    except sqlite3.Error as exc:
        logger.error("Failed to load customers: %s", exc)
        raise StoreError(f"Could not load the customer directory: {exc}") from exc


def find_customer(normalized_phone: str) -> Optional[CustomerRecord]:
    try:
        with create_connection() as connection:
            row = connection.execute(
                "SELECT id, name, phone FROM customers WHERE normalized_phone = ? ORDER BY id LIMIT 1",
                (normalized_phone,),
            ).fetchone()
    except sqlite3.Error as exc:
        logger.error("Failed to look up customer %s: %s", normalized_phone, exc)
        raise StoreError(f"Could not search the customer directory: {exc}") from exc

    if row is None:
        return None
    return CustomerRecord(id=int(row["id"]), name=row["name"], phone=row["phone"])


def insert_customer(record: CustomerRecord, normalized_phone: str) -> bool:
    """Add a directory entry; False when the normalized phone is already known."""
    try:
        with create_connection() as connection:
            cursor = connection.execute(
                """
                INSERT INTO customers (name, phone, normalized_phone)
                VALUES (?, ?, ?)
                ON CONFLICT(normalized_phone) DO NOTHING
                """,
                (record.name.strip(), record.phone.strip(), normalized_phone),
            )
            inserted = cursor.rowcount == 1
            connection.commit()
            cursor.close()
    except sqlite3.Error as exc:
        logger.error("Failed to insert customer %s: %s", record.name, exc)
        raise StoreError(f"Could not update the customer directory: {exc}") from exc

    return inserted

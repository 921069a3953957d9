from __future__ import annotations

import json
import sqlite3
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import List, Optional

from ..errors import StoreError
from ..logger import logger
from ..models.ticket_models import (
    Billing,
    BillingLine,
    FreeText,
    TaskItem,
    TaskList,
    Ticket,
    TicketState,
    WorkDescription,
)
from .database import create_connection


_TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S"

_SELECT_COLUMNS = """
    id,
    customer_name,
    customer_phone,
    work_kind,
    work_description,
    created_at,
    state,
    finished_at,
    billing_total,
    billing_breakdown
"""


def insert_ticket(ticket: Ticket) -> int:
    work_kind, work_payload = _serialize_work(ticket.work)
    try:
        with create_connection() as connection:
            cursor = connection.cursor()
            try:
                cursor.execute(
                    """
                    INSERT INTO tickets (
                        customer_name,
                        customer_phone,
                        work_kind,
                        work_description,
                        created_at,
                        state
                    ) VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    (
                        ticket.customer_name.strip(),
                        ticket.customer_phone.strip(),
                        work_kind,
                        work_payload,
                        ticket.created_at.strftime(_TIMESTAMP_FORMAT),
                        ticket.state.value,
                    ),
                )
                ticket_id = cursor.lastrowid
                connection.commit()
                return int(ticket_id)
            finally:
                cursor.close()
    except sqlite3.Error as exc:
        logger.error("Failed to insert ticket for %s: %s", ticket.customer_name, exc)
        raise StoreError(f"Could not save the ticket: {exc}") from exc


def mark_finished(ticket_id: int, finished_at: datetime, billing: Billing) -> bool:
    """Store the finish transition; False when the ticket was no longer in progress."""
    breakdown_payload: Optional[str] = None
    if billing.breakdown is not None:
        breakdown_payload = json.dumps(
            [{"label": line.label, "amount": str(line.amount)} for line in billing.breakdown],
            ensure_ascii=False,
        )

    try:
        with create_connection() as connection:
            cursor = connection.execute(
                """
                UPDATE tickets
                SET
                    state = ?,
                    finished_at = ?,
                    billing_total = ?,
                    billing_breakdown = ?
                WHERE id = ? AND state = ?
                """,
                (
                    TicketState.FINISHED.value,
                    finished_at.strftime(_TIMESTAMP_FORMAT),
                    str(billing.total),
                    breakdown_payload,
                    int(ticket_id),
                    TicketState.IN_PROGRESS.value,
                ),
            )
            updated = cursor.rowcount
            connection.commit()
            cursor.close()
    except sqlite3.Error as exc:
        logger.error("Failed to finish ticket %s: %s", ticket_id, exc)
        raise StoreError(f"Could not update the ticket: {exc}") from exc

    return updated == 1


def delete_ticket(ticket_id: int) -> None:
    try:
        with create_connection() as connection:
            connection.execute("DELETE FROM tickets WHERE id = ?", (int(ticket_id),))
            connection.commit()
    except sqlite3.Error as exc:
        logger.error("Failed to delete ticket %s: %s", ticket_id, exc)
        raise StoreError(f"Could not delete the ticket: {exc}") from exc


def fetch_tickets(newest_first: bool = True) -> List[Ticket]:
    direction = "DESC" if newest_first else "ASC"
    try:
        with create_connection() as connection:
            rows = connection.execute(
                f"""
                SELECT {_SELECT_COLUMNS}
                FROM tickets
                ORDER BY created_at {direction}, id {direction}
                """
            ).fetchall()
    except sqlite3.Error as exc:
        logger.error("Failed to load tickets: %s", exc)
        raise StoreError(f"Could not load tickets: {exc}") from exc

    return [_row_to_ticket(row) for row in rows]


def fetch_ticket(ticket_id: int) -> Optional[Ticket]:
    try:
        with create_connection() as connection:
            row = connection.execute(
                f"SELECT {_SELECT_COLUMNS} FROM tickets WHERE id = ?",
                (int(ticket_id),),
            ).fetchone()
    except sqlite3.Error as exc:
        logger.error("Failed to load ticket %s: %s", ticket_id, exc)
        raise StoreError(f"Could not load the ticket: {exc}") from exc

    if row is None:
        return None
    return _row_to_ticket(row)


def _row_to_ticket(row: sqlite3.Row) -> Ticket:
    state = _parse_state(row["state"])
    finished_at = _parse_timestamp(row["finished_at"]) if row["finished_at"] else None
    billing = _parse_billing(row["billing_total"], row["billing_breakdown"])
    if state != TicketState.FINISHED:
        finished_at = None
        billing = None

    return Ticket(
        id=int(row["id"]),
        customer_name=row["customer_name"],
        customer_phone=row["customer_phone"],
        work=_parse_work(row["work_kind"], row["work_description"] or ""),
        created_at=_parse_timestamp(row["created_at"]),
        state=state,
        finished_at=finished_at,
        billing=billing,
    )


def _serialize_work(work: WorkDescription) -> tuple[str, str]:
    if isinstance(work, TaskList):
        payload = [{"text": task.text, "done": bool(task.done)} for task in work.tasks]
        return "tasks", json.dumps(payload, ensure_ascii=False)
    return "text", work.text.strip()


def _parse_work(kind: str, payload: str) -> WorkDescription:
    if (kind or "").strip().lower() != "tasks":
        return FreeText(payload)

    try:
        raw_tasks = json.loads(payload) if payload else []
    except json.JSONDecodeError:
        return FreeText(payload)

    tasks: List[TaskItem] = []
    for entry in raw_tasks if isinstance(raw_tasks, list) else []:
        if not isinstance(entry, dict):
            continue
        # Rows written by the web panel used Spanish keys.
        text = str(entry.get("text", entry.get("tarea", ""))).strip()
        done = bool(entry.get("done", entry.get("hecho", False)))
        if text:
            tasks.append(TaskItem(text=text, done=done))
    return TaskList(tasks)


def _parse_billing(total_raw: Optional[str], breakdown_raw: Optional[str]) -> Optional[Billing]:
    total = _parse_decimal(total_raw)
    if total is None:
        return None

    breakdown: Optional[List[BillingLine]] = None
    if breakdown_raw:
        try:
            entries = json.loads(breakdown_raw)
        except json.JSONDecodeError:
            entries = []
        breakdown = []
        for entry in entries if isinstance(entries, list) else []:
            amount = _parse_decimal(entry.get("amount")) if isinstance(entry, dict) else None
            if amount is None:
                continue
            breakdown.append(BillingLine(label=str(entry.get("label", "")), amount=amount))

    return Billing(total=total, breakdown=breakdown)


def _parse_decimal(value: object) -> Optional[Decimal]:
    if value is None:
        return None
    try:
        return Decimal(str(value))
    except InvalidOperation:
        return None


def _parse_state(value: str) -> TicketState:
    candidate = (value or "").strip().lower()
    if candidate in {TicketState.FINISHED.value, "finalizada"}:
        return TicketState.FINISHED
    return TicketState.IN_PROGRESS


def _parse_timestamp(value: str) -> datetime:
    return datetime.strptime(value[:19], _TIMESTAMP_FORMAT)

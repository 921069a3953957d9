import sqlite3
from datetime import datetime
from decimal import Decimal

import pytest

from bikebench.data import customer_repository, database, settings_repository, ticket_repository
from bikebench.errors import StoreError
from bikebench.models.ticket_models import Billing, CustomerRecord, TaskItem, TaskList, Ticket


def _broken_connection():
    raise sqlite3.OperationalError("unable to open database file")


# every repository sees the same unreachable database file
@pytest.fixture
def broken_store(monkeypatch):
    for module in (database, ticket_repository, customer_repository, settings_repository):
        monkeypatch.setattr(module, "create_connection", _broken_connection)


def _ticket():
    return Ticket(
        customer_name="Ana",
        customer_phone="600111222",
        work=TaskList([TaskItem("Brakes")]),
        created_at=datetime(2025, 1, 1, 10, 0, 0),
    )


@pytest.mark.parametrize(
    "operation",
    [
        lambda: ticket_repository.insert_ticket(_ticket()),
        lambda: ticket_repository.mark_finished(1, datetime(2025, 1, 2), Billing(total=Decimal("10.00"))),
        lambda: ticket_repository.delete_ticket(1),
        lambda: ticket_repository.fetch_tickets(),
        lambda: ticket_repository.fetch_ticket(1),
        lambda: customer_repository.fetch_customers(),
        lambda: customer_repository.find_customer("600111222"),
        lambda: customer_repository.insert_customer(CustomerRecord(name="Ana", phone="600111222"), "600111222"),
        lambda: settings_repository.get_setting("shop_name"),
        lambda: settings_repository.set_setting("shop_name", "Taller Sur"),
    ],
    ids=[
        "insert_ticket",
        "mark_finished",
        "delete_ticket",
        "fetch_tickets",
        "fetch_ticket",
        "fetch_customers",
        "find_customer",
        "insert_customer",
        "get_setting",
        "set_setting",
    ],
)
def test_sqlite_errors_surface_as_store_error(broken_store, operation):
    with pytest.raises(StoreError) as excinfo:
        operation()

    assert isinstance(excinfo.value.__cause__, sqlite3.Error)


# a failed write leaves what was already stored untouched
def test_failed_delete_keeps_ticket(monkeypatch):
    ticket_id = ticket_repository.insert_ticket(_ticket())
    with monkeypatch.context() as patch:
        patch.setattr(ticket_repository, "create_connection", _broken_connection)
        with pytest.raises(StoreError):
            ticket_repository.delete_ticket(ticket_id)

    assert ticket_repository.fetch_ticket(ticket_id) is not None

from datetime import datetime
from decimal import Decimal

import pytest

from bikebench.data import customer_repository, ticket_repository
from bikebench.data.database import create_connection
from bikebench.errors import InvalidTransitionError, StoreError, ValidationError
from bikebench.models.ticket_models import (
    BillingDraft,
    BillingMode,
    FreeText,
    LineItemDraft,
    TaskItem,
    TaskList,
    Ticket,
    TicketDraft,
    TicketState,
    WorkMode,
)
from bikebench.services import customer_directory, ticket_service


def _tasks(*texts):
    return TaskList([TaskItem(text) for text in texts])


def _itemized(*pairs):
    return BillingDraft(mode=BillingMode.ITEMIZED, items=[LineItemDraft(label, amount) for label, amount in pairs])


# invalid input never reaches the store
@pytest.mark.parametrize(
    "name, phone, work",
    [
        ("", "600111222", _tasks("Brakes")),
        ("  ", "600111222", _tasks("Brakes")),
        ("Ana", "", _tasks("Brakes")),
        ("Ana", "600111222", TaskList([])),
        ("Ana", "600111222", FreeText("   ")),
        ("Ana", "600111222", None),
    ],
)
def test_create_with_missing_fields_does_not_touch_store(monkeypatch, name, phone, work):
    calls = []
    monkeypatch.setattr(ticket_repository, "insert_ticket", lambda ticket: calls.append(ticket))
    monkeypatch.setattr(customer_repository, "insert_customer", lambda *args: calls.append(args))

    with pytest.raises(ValidationError):
        ticket_service.create_ticket(name, phone, work)
    assert calls == []


def test_create_persists_in_progress_ticket():
    ticket = ticket_service.create_ticket(" Ana ", "600 111 222", _tasks("Brakes", "Chain"))

    assert ticket.id is not None
    stored = ticket_service.get_ticket(ticket.id)
    assert stored.customer_name == "Ana"
    assert stored.customer_phone == "600 111 222"
    assert stored.state == TicketState.IN_PROGRESS
    assert stored.finished_at is None
    assert stored.billing is None
    assert [task.text for task in stored.work.tasks] == ["Brakes", "Chain"]
    assert stored.created_at == ticket.created_at


def test_create_free_text_ticket():
    ticket = ticket_service.create_ticket("Pedro", "611222333", FreeText("Full service"))
    stored = ticket_service.get_ticket(ticket.id)
    assert isinstance(stored.work, FreeText)
    assert stored.work.text == "Full service"


# two tickets with equivalent phones leave one directory entry
def test_create_twice_keeps_single_directory_entry():
    ticket_service.create_ticket("Ana", "600111222", _tasks("Brakes"))
    ticket_service.create_ticket("Ana Lopez", "+34 600-111-222", _tasks("Tires"))

    customers = customer_directory.list_customers()
    assert len(customers) == 1
    assert customers[0].name == "Ana"
    assert len(ticket_service.list_tickets()) == 2


# the directory is a cache, so failing to update it does not undo the ticket
def test_create_survives_directory_failure(monkeypatch):
    def broken_insert(record, normalized_phone):
        raise StoreError("directory is read-only")

    monkeypatch.setattr(customer_repository, "insert_customer", broken_insert)

    ticket = ticket_service.create_ticket("Ana", "600111222", _tasks("Brakes"))

    assert ticket.id is not None
    assert [t.id for t in ticket_service.list_tickets()] == [ticket.id]
    assert customer_repository.fetch_customers() == []


def test_create_from_draft_uses_work_mode():
    draft = TicketDraft(customer_name="Ana", customer_phone="600111222", description="Wheel truing")
    draft = ticket_service.add_task(draft, "Brakes")

    from_tasks = ticket_service.create_ticket_from_draft(draft, WorkMode.TASKS)
    from_text = ticket_service.create_ticket_from_draft(draft, WorkMode.TEXT)

    assert isinstance(ticket_service.get_ticket(from_tasks.id).work, TaskList)
    assert ticket_service.get_ticket(from_text.id).work == FreeText("Wheel truing")


def test_draft_task_operations_are_pure():
    empty = TicketDraft()
    draft = ticket_service.add_task(empty, "  Brakes ")
    draft = ticket_service.add_task(draft, "   ")
    draft = ticket_service.add_task(draft, "Tires")
    assert empty.tasks == []
    assert [task.text for task in draft.tasks] == ["Brakes", "Tires"]

    toggled = ticket_service.toggle_task(draft, 1)
    assert toggled.tasks[1].done is True
    assert draft.tasks[1].done is False
    assert ticket_service.toggle_task(toggled, 1).tasks[1].done is False

    removed = ticket_service.remove_task(toggled, 0)
    assert [task.text for task in removed.tasks] == ["Tires"]
    assert ticket_service.remove_task(removed, 5) == removed


def test_set_customer_name_marks_manual_edit():
    draft = ticket_service.set_customer_name(TicketDraft(), "Ana")
    assert draft.name_edited is True
    assert ticket_service.set_customer_name(draft, "").name_edited is False


def test_finish_sets_state_billing_and_message():
    ticket = ticket_service.create_ticket("Ana", "600 111 222", _tasks("Brakes"))

    finished, message = ticket_service.finish_ticket(
        ticket.id,
        _itemized(("Brakes", "10"), ("", ""), ("Tires", "15.5")),
    )

    assert finished.state == TicketState.FINISHED
    assert finished.finished_at is not None
    assert finished.billing.total == Decimal("25.50")
    assert "25.5€" in message.text
    assert message.deep_link.startswith("https://wa.me/34600111222?text=")

    stored = ticket_service.get_ticket(ticket.id)
    assert stored.state == TicketState.FINISHED
    assert stored.finished_at == finished.finished_at
    assert stored.billing.total == Decimal("25.50")
    assert [(line.label, line.amount) for line in stored.billing.breakdown] == [
        ("Brakes", Decimal("10")),
        ("Tires", Decimal("15.5")),
    ]
    assert stored.customer_phone == "600 111 222"


def test_finish_flat_price_has_no_breakdown():
    ticket = ticket_service.create_ticket("Ana", "600111222", _tasks("Brakes"))
    finished, message = ticket_service.finish_ticket(ticket.id, BillingDraft(mode=BillingMode.FLAT, price_text="40"))

    stored = ticket_service.get_ticket(ticket.id)
    assert stored.billing.total == Decimal("40.00")
    assert stored.billing.breakdown is None
    assert "Total: 40€" in message.text


# a second finish is rejected instead of repeating the transition
def test_finish_twice_is_rejected():
    ticket = ticket_service.create_ticket("Ana", "600111222", _tasks("Brakes"))
    ticket_service.finish_ticket(ticket.id, _itemized(("Brakes", "10")))
    first = ticket_service.get_ticket(ticket.id)

    with pytest.raises(InvalidTransitionError):
        ticket_service.finish_ticket(ticket.id, _itemized(("Brakes", "99")))

    again = ticket_service.get_ticket(ticket.id)
    assert again.billing.total == Decimal("10.00")
    assert again.finished_at == first.finished_at


def test_finish_rejects_stale_finished_snapshot(monkeypatch):
    ticket = ticket_service.create_ticket("Ana", "600111222", _tasks("Brakes"))
    snapshot = Ticket(
        id=ticket.id,
        customer_name="Ana",
        customer_phone="600111222",
        work=_tasks("Brakes"),
        created_at=ticket.created_at,
        state=TicketState.FINISHED,
    )
    monkeypatch.setattr(ticket_repository, "mark_finished", lambda *args: pytest.fail("store written"))

    with pytest.raises(InvalidTransitionError):
        ticket_service.finish_ticket(ticket.id, _itemized(("Brakes", "10")), snapshot=snapshot)


# the conditional update catches a finish that happened after the read
def test_finish_rejected_when_store_changed_underneath(monkeypatch):
    ticket = ticket_service.create_ticket("Ana", "600111222", _tasks("Brakes"))
    monkeypatch.setattr(ticket_repository, "mark_finished", lambda *args: False)

    with pytest.raises(InvalidTransitionError):
        ticket_service.finish_ticket(ticket.id, _itemized(("Brakes", "10")))


def test_finish_without_valid_billing_leaves_ticket_in_progress():
    ticket = ticket_service.create_ticket("Ana", "600111222", _tasks("Brakes"))

    with pytest.raises(ValidationError):
        ticket_service.finish_ticket(ticket.id, _itemized(("", ""), ("Brakes", "")))

    stored = ticket_service.get_ticket(ticket.id)
    assert stored.state == TicketState.IN_PROGRESS
    assert stored.billing is None
    assert stored.finished_at is None


def test_finish_with_oversized_price_is_a_validation_error():
    ticket = ticket_service.create_ticket("Ana", "600111222", _tasks("Brakes"))

    with pytest.raises(ValidationError):
        ticket_service.finish_ticket(ticket.id, BillingDraft(mode=BillingMode.FLAT, price_text="1e30"))

    assert ticket_service.get_ticket(ticket.id).state == TicketState.IN_PROGRESS


def test_finish_missing_ticket_is_rejected():
    with pytest.raises(InvalidTransitionError):
        ticket_service.finish_ticket(4242, _itemized(("Brakes", "10")))


def test_delete_removes_ticket_but_keeps_directory():
    kept = ticket_service.create_ticket("Pedro", "611222333", _tasks("Chain"))
    doomed = ticket_service.create_ticket("Ana", "600111222", _tasks("Brakes"))
    ticket_service.finish_ticket(doomed.id, _itemized(("Brakes", "10")))

    assert ticket_service.delete_ticket(doomed.id, confirm=lambda: True) is True

    remaining = ticket_service.list_tickets()
    assert [ticket.id for ticket in remaining] == [kept.id]
    assert sorted(customer.name for customer in customer_directory.list_customers()) == ["Ana", "Pedro"]


# declining the confirmation aborts quietly
def test_delete_declined_keeps_ticket():
    ticket = ticket_service.create_ticket("Ana", "600111222", _tasks("Brakes"))
    assert ticket_service.delete_ticket(ticket.id, confirm=lambda: False) is False
    assert ticket_service.get_ticket(ticket.id) is not None


def test_list_tickets_orders_by_creation_time():
    for name, created in (("Old", datetime(2025, 1, 1, 9, 0)), ("New", datetime(2025, 2, 1, 9, 0))):
        ticket_repository.insert_ticket(
            Ticket(customer_name=name, customer_phone="600111222", work=_tasks("x"), created_at=created)
        )

    assert [t.customer_name for t in ticket_service.list_tickets()] == ["New", "Old"]
    assert [t.customer_name for t in ticket_service.list_tickets(newest_first=False)] == ["Old", "New"]


def _ticket(name, phone, state=TicketState.IN_PROGRESS):
    return Ticket(
        customer_name=name,
        customer_phone=phone,
        work=_tasks("x"),
        created_at=datetime(2025, 1, 1),
        state=state,
    )


def test_filter_matches_name_case_insensitively_within_state():
    tickets = [
        _ticket("Ana", "600111222"),
        _ticket("Pedro", "611222333"),
        _ticket("Juana", "622333444", TicketState.FINISHED),
    ]

    in_progress = ticket_service.filter_tickets(tickets, TicketState.IN_PROGRESS, "an")
    assert [t.customer_name for t in in_progress] == ["Ana"]

    finished = ticket_service.filter_tickets(tickets, TicketState.FINISHED, "AN")
    assert [t.customer_name for t in finished] == ["Juana"]


def test_filter_matches_raw_phone_substring():
    tickets = [_ticket("Ana", "600 111 222"), _ticket("Pedro", "611222333")]

    assert [t.customer_name for t in ticket_service.filter_tickets(tickets, TicketState.IN_PROGRESS, "111 2")] == ["Ana"]
    assert [t.customer_name for t in ticket_service.filter_tickets(tickets, TicketState.IN_PROGRESS, "1222")] == ["Pedro"]
    assert len(ticket_service.filter_tickets(tickets, TicketState.IN_PROGRESS, "")) == 2


# the search term is matched as typed, surrounding spaces included
def test_filter_does_not_trim_search_term():
    tickets = [_ticket("Ana", "600 111 222"), _ticket("Pedro", "611222333")]

    assert [t.customer_name for t in ticket_service.filter_tickets(tickets, TicketState.IN_PROGRESS, " 111 ")] == ["Ana"]
    assert ticket_service.filter_tickets(tickets, TicketState.IN_PROGRESS, " Ana") == []


def test_count_in_progress():
    tickets = [_ticket("Ana", "1"), _ticket("Pedro", "2"), _ticket("Juana", "3", TicketState.FINISHED)]
    assert ticket_service.count_in_progress(tickets) == 2


# rows saved by the old web panel used Spanish keys and state names
def test_reads_legacy_rows():
    with create_connection() as connection:
        connection.execute(
            """
            INSERT INTO tickets (customer_name, customer_phone, work_kind, work_description, created_at, state)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            ("Ana", "600111222", "tasks", '[{"tarea": "Frenos", "hecho": true}]', "2025-01-01T10:00:00.000Z", "curso"),
        )
        connection.commit()

    (ticket,) = ticket_service.list_tickets()
    assert ticket.state == TicketState.IN_PROGRESS
    assert ticket.work == TaskList([TaskItem("Frenos", True)])
    assert ticket.created_at == datetime(2025, 1, 1, 10, 0, 0)

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Callable, Iterable, List, Optional, Tuple

from ..data import settings_repository, ticket_repository
from ..errors import InvalidTransitionError, StoreError, ValidationError
from ..logger import logger
from ..models.ticket_models import (
    BillingDraft,
    FreeText,
    OutboundMessage,
    ShopSettings,
    TaskItem,
    TaskList,
    Ticket,
    TicketDraft,
    TicketState,
    WorkDescription,
    WorkMode,
)
from . import billing_service, customer_directory, notification_service


def list_tickets(newest_first: bool = True) -> List[Ticket]:
    return ticket_repository.fetch_tickets(newest_first)


def get_ticket(ticket_id: int) -> Optional[Ticket]:
    return ticket_repository.fetch_ticket(ticket_id)


def get_shop_settings() -> ShopSettings:
    return settings_repository.get_shop_settings()


def update_shop_settings(settings: ShopSettings) -> ShopSettings:
    return settings_repository.update_shop_settings(settings)


def create_ticket(name: str, phone: str, work: WorkDescription) -> Ticket:
    name_clean = (name or "").strip()
    phone_clean = (phone or "").strip()
    if not name_clean or not phone_clean:
        raise ValidationError("Customer name and phone are required.")
    if work is None:
        raise ValidationError("Describe the work to be done.")
    if isinstance(work, TaskList):
        if work.is_empty:
            raise ValidationError("Add at least one task before saving.")
    elif work.is_empty:
        raise ValidationError("Describe the work to be done.")

    ticket = Ticket(
        customer_name=name_clean,
        customer_phone=phone_clean,
        work=_copy_work(work),
        created_at=datetime.now().replace(microsecond=0),
    )
    ticket_id = ticket_repository.insert_ticket(ticket)
    saved = replace(ticket, id=ticket_id)
    logger.info("Ticket %s created for %s", ticket_id, name_clean)

    try:
        customer_directory.remember_customer(name_clean, phone_clean)
    except StoreError:
        logger.exception("Could not add %s to the customer directory", name_clean)
    return saved


def create_ticket_from_draft(draft: TicketDraft, work_mode: WorkMode = WorkMode.TASKS) -> Ticket:
    work: WorkDescription
    if work_mode == WorkMode.TEXT:
        work = FreeText(draft.description)
    else:
        work = TaskList(list(draft.tasks))
    return create_ticket(draft.customer_name, draft.customer_phone, work)


def set_customer_name(draft: TicketDraft, name: str) -> TicketDraft:
    return replace(draft, customer_name=name, name_edited=bool(name.strip()))


def add_task(draft: TicketDraft, text: str) -> TicketDraft:
    cleaned = (text or "").strip()
    if not cleaned:
        return draft
    return replace(draft, tasks=[*_copy_tasks(draft.tasks), TaskItem(text=cleaned)])


def remove_task(draft: TicketDraft, index: int) -> TicketDraft:
    if not 0 <= index < len(draft.tasks):
        return draft
    tasks = _copy_tasks(draft.tasks)
    del tasks[index]
    return replace(draft, tasks=tasks)


def toggle_task(draft: TicketDraft, index: int) -> TicketDraft:
    if not 0 <= index < len(draft.tasks):
        return draft
    tasks = _copy_tasks(draft.tasks)
    tasks[index] = replace(tasks[index], done=not tasks[index].done)
    return replace(draft, tasks=tasks)


def finish_ticket(
    ticket_id: int,
    billing_draft: BillingDraft,
    *,
    snapshot: Optional[Ticket] = None,
    settings: Optional[ShopSettings] = None,
) -> Tuple[Ticket, OutboundMessage]:
    """Mark a ticket finished and compose the message announcing it.

    Opening the returned deep-link is left to the caller; the transition is
    already committed by then.
    """
    if snapshot is not None and snapshot.state != TicketState.IN_PROGRESS:
        raise InvalidTransitionError("This bike is already marked as finished.")

    current = ticket_repository.fetch_ticket(ticket_id)
    if current is None:
        raise InvalidTransitionError("The ticket no longer exists.")
    if current.state != TicketState.IN_PROGRESS:
        logger.warning("Rejected finish for ticket %s: already %s", ticket_id, current.state.value)
        raise InvalidTransitionError("This bike is already marked as finished.")

    billing = billing_service.compose_billing(billing_draft)
    finished_at = datetime.now().replace(microsecond=0)
    if not ticket_repository.mark_finished(ticket_id, finished_at, billing):
        logger.warning("Rejected finish for ticket %s: state changed in the store", ticket_id)
        raise InvalidTransitionError("This bike is already marked as finished.")

    finished = replace(
        current,
        state=TicketState.FINISHED,
        finished_at=finished_at,
        billing=billing,
    )
    logger.info("Ticket %s finished, total %s", ticket_id, billing.total)

    message = notification_service.compose_message(finished, settings or get_shop_settings())
    return finished, message


def delete_ticket(ticket_id: int, *, confirm: Optional[Callable[[], bool]] = None) -> bool:
    if confirm is not None and not confirm():
        return False
    ticket_repository.delete_ticket(ticket_id)
    logger.info("Ticket %s deleted", ticket_id)
    return True


def filter_tickets(tickets: Iterable[Ticket], state: TicketState, search: str = "") -> List[Ticket]:
    term = search or ""
    term_lower = term.lower()
    results: List[Ticket] = []
    for ticket in tickets:
        if ticket.state != state:
            continue
        if term and term_lower not in ticket.customer_name.lower() and term not in ticket.customer_phone:
            continue
        results.append(ticket)
    return results


def count_in_progress(tickets: Iterable[Ticket]) -> int:
    return sum(1 for ticket in tickets if ticket.state == TicketState.IN_PROGRESS)


def _copy_tasks(tasks: Iterable[TaskItem]) -> List[TaskItem]:
    return [TaskItem(text=task.text, done=task.done) for task in tasks]


def _copy_work(work: WorkDescription) -> WorkDescription:
    if isinstance(work, TaskList):
        return TaskList(_copy_tasks(work.tasks))
    return FreeText(work.text.strip())

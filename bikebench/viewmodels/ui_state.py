from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union

from ..models.ticket_models import BillingDraft, TicketDraft


@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class Creating:
    draft: TicketDraft = field(default_factory=TicketDraft)


@dataclass(frozen=True)
class Finishing:
    ticket_id: int
    billing_draft: BillingDraft = field(default_factory=BillingDraft)


@dataclass(frozen=True)
class ConfirmingDelete:
    ticket_id: int


UiState = Union[Idle, Creating, Finishing, ConfirmingDelete]


def start_creating(state: UiState) -> UiState:
    if not isinstance(state, Idle):
        return state
    return Creating()


def start_finishing(state: UiState, ticket_id: int, billing_draft: BillingDraft) -> UiState:
    if not isinstance(state, Idle):
        return state
    return Finishing(ticket_id=ticket_id, billing_draft=billing_draft)


def start_deleting(state: UiState, ticket_id: int) -> UiState:
    if not isinstance(state, Idle):
        return state
    return ConfirmingDelete(ticket_id=ticket_id)


def close(_state: UiState) -> UiState:
    return Idle()


def is_busy(state: UiState) -> bool:
    return not isinstance(state, Idle)

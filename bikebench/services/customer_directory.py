from __future__ import annotations

from dataclasses import replace
from typing import Iterable, List, Optional

from ..config import PHONE_LOOKUP_MIN_LENGTH
from ..data import customer_repository
from ..logger import logger
from ..models.ticket_models import CustomerRecord, TicketDraft
from .phone_normalizer import normalize_phone


def list_customers() -> List[CustomerRecord]:
    return customer_repository.fetch_customers()


def find_by_phone(directory: Iterable[CustomerRecord], raw_phone: str) -> Optional[CustomerRecord]:
    target = normalize_phone(raw_phone)
    if not target:
        return None
    for entry in directory:
        if normalize_phone(entry.phone) == target:
            return entry
    return None


def autofill_name(
    draft: TicketDraft,
    previous_phone: str,
    new_phone: str,
    directory: Iterable[CustomerRecord],
) -> TicketDraft:
    """Apply a phone edit to the draft, prefilling the name of a known customer.

    The lookup runs only when the typed number crosses the minimum length, and
    a name the operator typed by hand is never replaced.
    """
    updated = replace(draft, customer_phone=new_phone)
    crossed = len(previous_phone or "") < PHONE_LOOKUP_MIN_LENGTH <= len(new_phone or "")
    if not crossed or draft.name_edited:
        return updated

    match = find_by_phone(directory, new_phone)
    if match is None:
        return updated
    logger.debug("Prefilled customer name for %s", normalize_phone(new_phone))
    return replace(updated, customer_name=match.name)


def remember_customer(name: str, phone: str) -> bool:
    normalized = normalize_phone(phone)
    if not normalized:
        return False
    if customer_repository.find_customer(normalized) is not None:
        return False
    inserted = customer_repository.insert_customer(CustomerRecord(name=name, phone=phone), normalized)
    if inserted:
        logger.info("Added %s to the customer directory", name.strip())
    return inserted

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Iterable, List, Optional

from ..errors import ValidationError
from ..models.ticket_models import Billing, BillingDraft, BillingLine, BillingMode, LineItemDraft

_CENTS = Decimal("0.01")
_MAX_AMOUNT = Decimal("1000000000")


def parse_amount(text: object) -> Optional[Decimal]:
    """Parse an operator-typed amount; None when it is blank, malformed, negative or too large to bill."""
    value = str(text if text is not None else "").strip()
    if not value:
        return None
    value = value.replace("€", "").replace(" ", "").replace(",", ".")
    try:
        amount = Decimal(value)
    except InvalidOperation:
        return None
    if not amount.is_finite() or amount < 0 or amount >= _MAX_AMOUNT:
        return None
    return amount


def format_amount(value: Decimal) -> str:
    normalized = value.normalize()
    return f"{normalized:f}"


def valid_lines(items: Iterable[LineItemDraft]) -> List[BillingLine]:
    lines: List[BillingLine] = []
    for item in items:
        label = (item.label or "").strip()
        amount = parse_amount(item.amount_text)
        if not label or amount is None:
            continue
        lines.append(BillingLine(label=label, amount=amount))
    return lines


def running_total(items: Iterable[LineItemDraft]) -> Decimal:
    total = sum((line.amount for line in valid_lines(items)), Decimal("0"))
    return total.quantize(_CENTS, rounding=ROUND_HALF_UP)


def compose_flat(price_text: str) -> Billing:
    price = parse_amount(price_text)
    if price is None:
        raise ValidationError("Enter the final price.")
    return Billing(total=price.quantize(_CENTS, rounding=ROUND_HALF_UP), breakdown=None)


def compose_itemized(items: Iterable[LineItemDraft]) -> Billing:
    item_list = list(items)
    lines = valid_lines(item_list)
    if not lines:
        raise ValidationError("Add at least one charge with a label and an amount.")
    return Billing(total=running_total(item_list), breakdown=lines)


def compose_billing(draft: BillingDraft) -> Billing:
    if draft.mode == BillingMode.FLAT:
        return compose_flat(draft.price_text)
    return compose_itemized(draft.items)


def breakdown_lines(billing: Billing) -> List[str]:
    return [f"{line.label}: {format_amount(line.amount)}€" for line in billing.breakdown or []]

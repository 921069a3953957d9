from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional, Union


class TicketState(str, Enum):
    IN_PROGRESS = "in_progress"
    FINISHED = "finished"


class BillingMode(str, Enum):
    FLAT = "flat"
    ITEMIZED = "itemized"


class WorkMode(str, Enum):
    TASKS = "tasks"
    TEXT = "text"


@dataclass
class TaskItem:
    text: str
    done: bool = False


@dataclass
class FreeText:
    text: str

    @property
    def is_empty(self) -> bool:
        return not self.text.strip()

    @property
    def summary(self) -> str:
        return self.text.strip()


@dataclass
class TaskList:
    tasks: List[TaskItem] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.tasks

    @property
    def completed_count(self) -> int:
        return sum(1 for task in self.tasks if task.done)

    @property
    def summary(self) -> str:
        return "; ".join(("[x] " if task.done else "[ ] ") + task.text for task in self.tasks)


WorkDescription = Union[FreeText, TaskList]


@dataclass
class BillingLine:
    label: str
    amount: Decimal


@dataclass
class Billing:
    total: Decimal
    breakdown: Optional[List[BillingLine]] = None

    @property
    def is_itemized(self) -> bool:
        return self.breakdown is not None


@dataclass
class Ticket:
    customer_name: str
    customer_phone: str
    work: WorkDescription
    created_at: datetime
    state: TicketState = TicketState.IN_PROGRESS
    finished_at: Optional[datetime] = None
    billing: Optional[Billing] = None
    id: Optional[int] = None

    @property
    def total_display(self) -> str:
        if self.billing is None:
            return ""
        return f"{self.billing.total:.2f}€"


@dataclass
class CustomerRecord:
    name: str
    phone: str
    id: Optional[int] = None


@dataclass
class TicketDraft:
    customer_name: str = ""
    customer_phone: str = ""
    tasks: List[TaskItem] = field(default_factory=list)
    description: str = ""
    name_edited: bool = False


@dataclass
class LineItemDraft:
    label: str = ""
    amount_text: str = ""


@dataclass
class BillingDraft:
    mode: BillingMode = BillingMode.ITEMIZED
    price_text: str = ""
    items: List[LineItemDraft] = field(default_factory=list)


@dataclass
class OutboundMessage:
    text: str
    deep_link: str


@dataclass
class ShopSettings:
    shop_name: str
    callback_phone: str
    country_code: str = "34"
    work_mode: WorkMode = WorkMode.TASKS
    billing_mode: BillingMode = BillingMode.ITEMIZED
    deep_link_scheme: str = "direct"

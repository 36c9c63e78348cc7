"""
Closed status enumerations and allowed transitions per entity kind.

Each status-bearing kind (lead, quote, work order, invoice) has:
- An Enum whose values are the labels the backend stores
- An initial status the backend assigns on creation
- A transition table of statuses reachable with a single change call

Weight maps in GenerationConfig are keyed by these labels, so an unknown
label is rejected when the config is built rather than when the backend
refuses it mid-run.
"""

from enum import Enum
from typing import Literal

from .errors import StatusTransitionError

StatusKind = Literal["lead", "quote", "work_order", "invoice"]


class LeadStatus(Enum):
    """Lead qualification stages."""

    NEW = "New"
    CONTACTED = "Contacted"
    QUALIFIED = "Qualified"
    UNQUALIFIED = "Unqualified"
    CONVERTED = "Converted"


class QuoteStatus(Enum):
    """Quote lifecycle. Accepted and Declined are terminal."""

    DRAFT = "Draft"
    PRESENTED = "Presented"
    ACCEPTED = "Accepted"
    DECLINED = "Declined"


class WorkOrderStatus(Enum):
    """Work order lifecycle. Completed and Cancelled are terminal."""

    PENDING = "Pending"
    SCHEDULED = "Scheduled"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


class InvoiceStatus(Enum):
    """Invoice lifecycle. Paid and Void are terminal."""

    DRAFT = "Draft"
    SENT = "Sent"
    PAID = "Paid"
    VOID = "Void"


STATUS_ENUMS: dict[str, type[Enum]] = {
    "lead": LeadStatus,
    "quote": QuoteStatus,
    "work_order": WorkOrderStatus,
    "invoice": InvoiceStatus,
}

INITIAL_STATUS: dict[str, Enum] = {
    "lead": LeadStatus.NEW,
    "quote": QuoteStatus.DRAFT,
    "work_order": WorkOrderStatus.PENDING,
    "invoice": InvoiceStatus.DRAFT,
}

# Single-call transitions. A batch backfills historical records, so any
# non-terminal status may jump straight to a later one.
TRANSITIONS: dict[Enum, frozenset[Enum]] = {
    # Leads
    LeadStatus.NEW: frozenset(
        {
            LeadStatus.CONTACTED,
            LeadStatus.QUALIFIED,
            LeadStatus.UNQUALIFIED,
            LeadStatus.CONVERTED,
        }
    ),
    LeadStatus.CONTACTED: frozenset(
        {LeadStatus.QUALIFIED, LeadStatus.UNQUALIFIED, LeadStatus.CONVERTED}
    ),
    LeadStatus.QUALIFIED: frozenset({LeadStatus.UNQUALIFIED, LeadStatus.CONVERTED}),
    LeadStatus.UNQUALIFIED: frozenset({LeadStatus.CONTACTED}),
    LeadStatus.CONVERTED: frozenset(),
    # Quotes
    QuoteStatus.DRAFT: frozenset(
        {QuoteStatus.PRESENTED, QuoteStatus.ACCEPTED, QuoteStatus.DECLINED}
    ),
    QuoteStatus.PRESENTED: frozenset({QuoteStatus.ACCEPTED, QuoteStatus.DECLINED}),
    QuoteStatus.ACCEPTED: frozenset(),
    QuoteStatus.DECLINED: frozenset(),
    # Work orders
    WorkOrderStatus.PENDING: frozenset(
        {
            WorkOrderStatus.SCHEDULED,
            WorkOrderStatus.IN_PROGRESS,
            WorkOrderStatus.COMPLETED,
            WorkOrderStatus.CANCELLED,
        }
    ),
    WorkOrderStatus.SCHEDULED: frozenset(
        {
            WorkOrderStatus.IN_PROGRESS,
            WorkOrderStatus.COMPLETED,
            WorkOrderStatus.CANCELLED,
        }
    ),
    WorkOrderStatus.IN_PROGRESS: frozenset(
        {WorkOrderStatus.COMPLETED, WorkOrderStatus.CANCELLED}
    ),
    WorkOrderStatus.COMPLETED: frozenset(),
    WorkOrderStatus.CANCELLED: frozenset(),
    # Invoices
    InvoiceStatus.DRAFT: frozenset(
        {InvoiceStatus.SENT, InvoiceStatus.PAID, InvoiceStatus.VOID}
    ),
    InvoiceStatus.SENT: frozenset({InvoiceStatus.PAID, InvoiceStatus.VOID}),
    InvoiceStatus.PAID: frozenset(),
    InvoiceStatus.VOID: frozenset(),
}


def parse_status(kind: str, label: str | Enum) -> Enum:
    """
    Resolve a status label to the kind's enum member.

    Args:
        kind: Entity kind ("lead", "quote", "work_order", "invoice")
        label: Backend label (e.g. "In Progress") or an enum member

    Returns:
        Enum member for the label

    Raises:
        ValueError: If the kind is unknown or the label is not one of its statuses
    """
    if kind not in STATUS_ENUMS:
        raise ValueError(f"Unknown status-bearing kind: {kind!r}")
    enum_cls = STATUS_ENUMS[kind]
    if isinstance(label, enum_cls):
        return label
    if isinstance(label, Enum):
        raise ValueError(f"{label!r} is not a {kind} status")
    try:
        return enum_cls(label)
    except ValueError:
        valid = ", ".join(repr(s.value) for s in enum_cls)
        raise ValueError(f"Invalid {kind} status {label!r} (expected one of {valid})")


def can_transition(current: Enum, target: Enum) -> bool:
    """True if target is reachable from current with one change call."""
    return target in TRANSITIONS.get(current, frozenset())


def check_transition(kind: str, current: Enum, target: Enum) -> None:
    """
    Validate a single status change.

    Raises:
        StatusTransitionError: If the change is not in the transition table
    """
    if not can_transition(current, target):
        raise StatusTransitionError(kind, current.value, target.value)

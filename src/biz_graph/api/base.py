"""
Data API contract consumed by the generator.

The backend owns every business entity; the generator only sees this
interface. Payloads are TypedDicts with snake_case keys and datetime
values. Concrete clients translate them to their own wire format.

Every method either returns its documented value or raises DataAPIError.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, NotRequired, TypedDict

# Backend document identifier (opaque string)
EntityId = str


# === PAYLOAD TYPED DICTS ===


class LineItem(TypedDict):
    """One quote / invoice line."""

    description: str
    quantity: int
    unit_price: float


class AccountPayload(TypedDict):
    """Arguments for accounts.create."""

    name: str
    type: str
    address: str
    city: NotRequired[str]
    state: NotRequired[str]
    zip: NotRequired[str]
    notes: NotRequired[str]


class ContactAccountLink(TypedDict):
    """Arguments for accounts.linkContactToAccount."""

    contact_id: EntityId
    account_id: EntityId
    relationship: NotRequired[str]
    is_primary: bool


class ContactPayload(TypedDict):
    """Arguments for contacts.create. Only the names are required."""

    first_name: str
    last_name: str
    email: NotRequired[str]
    phone: NotRequired[str]
    address: NotRequired[str]
    city: NotRequired[str]
    state: NotRequired[str]
    zip: NotRequired[str]
    notes: NotRequired[str]


class LeadPayload(TypedDict):
    """Arguments for leads.create."""

    name: str
    status: str
    email: NotRequired[str]
    phone: NotRequired[str]
    source: NotRequired[str]
    notes: NotRequired[str]


class LeadUpdate(TypedDict, total=False):
    """Fields accepted by leads.update."""

    name: str
    email: str
    phone: str
    source: str
    status: str
    notes: str


class QuotePayload(TypedDict):
    """Arguments for quotes.create."""

    contact_id: EntityId
    issue_date: datetime
    line_items: list[LineItem]
    account_id: NotRequired[EntityId]
    expiry_date: NotRequired[datetime]
    notes: NotRequired[str]


class WorkOrderPayload(TypedDict):
    """Arguments for workOrders.create."""

    contact_id: EntityId
    work_order_number: NotRequired[str]
    account_id: NotRequired[EntityId]
    quote_id: NotRequired[EntityId]
    description: NotRequired[str]
    scheduled_date: NotRequired[datetime]
    notes: NotRequired[str]


class InvoicePayload(TypedDict):
    """Arguments for invoices.create."""

    contact_id: EntityId
    issue_date: datetime
    due_date: datetime
    line_items: list[LineItem]
    invoice_number: NotRequired[str]
    account_id: NotRequired[EntityId]
    work_order_id: NotRequired[EntityId]
    paid_date: NotRequired[datetime]
    notes: NotRequired[str]


class InvoiceFromWorkOrderPayload(TypedDict):
    """Arguments for invoices.createFromWorkOrder."""

    work_order_id: EntityId
    issue_date: datetime
    due_date: datetime
    notes: NotRequired[str]


# === CONTRACT ===


class DataAPI(ABC):
    """
    Remote procedures the generator calls, grouped by entity kind.

    Status arguments are the backend labels (e.g. "In Progress"), not enum
    members; callers convert with `.value`.
    """

    # Accounts
    @abstractmethod
    def create_account(self, payload: AccountPayload) -> EntityId:
        """Create an account and return its id."""

    @abstractmethod
    def link_contact_to_account(self, link: ContactAccountLink) -> None:
        """Link a contact to an account (demotes other primaries if is_primary)."""

    # Contacts
    @abstractmethod
    def create_contact(self, payload: ContactPayload) -> EntityId:
        """Create a contact and return its id."""

    # Leads
    @abstractmethod
    def create_lead(self, payload: LeadPayload) -> EntityId:
        """Create a lead with an explicit status and return its id."""

    @abstractmethod
    def update_lead(self, lead_id: EntityId, fields: LeadUpdate) -> None:
        """Patch a lead."""

    # Quotes
    @abstractmethod
    def create_quote(self, payload: QuotePayload) -> EntityId:
        """Create a quote in Draft status and return its id."""

    @abstractmethod
    def change_quote_status(self, quote_id: EntityId, status: str) -> None:
        """Set a quote's status."""

    # Work orders
    @abstractmethod
    def create_work_order(self, payload: WorkOrderPayload) -> EntityId:
        """Create a work order in Pending status and return its id."""

    @abstractmethod
    def change_work_order_status(
        self,
        work_order_id: EntityId,
        status: str,
        completed_date: datetime | None = None,
    ) -> None:
        """Set a work order's status (completed_date applies to Completed)."""

    @abstractmethod
    def get_work_order(self, work_order_id: EntityId) -> dict[str, Any] | None:
        """Fetch a work order document, or None if it does not exist."""

    # Invoices
    @abstractmethod
    def create_invoice(self, payload: InvoicePayload) -> EntityId:
        """Create an invoice in Draft status and return its id."""

    @abstractmethod
    def create_invoice_from_work_order(
        self, payload: InvoiceFromWorkOrderPayload
    ) -> EntityId:
        """Create an invoice from a Completed work order and return its id."""

    @abstractmethod
    def change_invoice_status(self, invoice_id: EntityId, status: str) -> None:
        """Set an invoice's status."""

    @abstractmethod
    def get_invoice(self, invoice_id: EntityId) -> dict[str, Any] | None:
        """Fetch an invoice document, or None if it does not exist."""

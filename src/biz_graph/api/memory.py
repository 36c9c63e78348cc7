"""
In-process Data API with the backend's validation rules.

Used for dry runs and tests. Documents live in per-table dicts keyed by
generated ids. Validation follows the deployed functions:
- referenced contacts / accounts / quotes / work orders must exist
- status labels must be in the backend's valid set (any valid label is
  accepted; transition rules are the caller's concern)
- a quote-linked work order needs an Accepted quote
- invoicing a work order needs it Completed
- a contact can be linked to an account only once

Failures can be injected per operation with inject_failure().
"""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from itertools import count
from typing import Any

from ..errors import DataAPIError
from ..statuses import InvoiceStatus, QuoteStatus, WorkOrderStatus
from .base import (
    AccountPayload,
    ContactAccountLink,
    ContactPayload,
    DataAPI,
    EntityId,
    InvoiceFromWorkOrderPayload,
    InvoicePayload,
    LeadPayload,
    LeadUpdate,
    LineItem,
    QuotePayload,
    WorkOrderPayload,
)

TAX_RATE = 0.1

TABLES = (
    "accounts",
    "contacts",
    "contact_accounts",
    "leads",
    "quotes",
    "work_orders",
    "invoices",
)


@dataclass
class _InjectedFailure:
    message: str
    remaining: int | None  # None = every matching call
    when: Callable[[dict[str, Any]], bool] | None


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _totals(line_items: list[LineItem]) -> dict[str, Any]:
    items = []
    subtotal = 0.0
    for order, item in enumerate(line_items, start=1):
        total = item["quantity"] * item["unit_price"]
        subtotal += total
        items.append({**item, "total": total, "sort_order": order})
    tax = subtotal * TAX_RATE
    return {"line_items": items, "subtotal": subtotal, "tax": tax, "total": subtotal + tax}


class InMemoryDataAPI(DataAPI):
    """
    DataAPI backed by Python dicts.

    Attributes:
        tables: Table name -> {id: document}
        calls: Ordered (operation, args) log of every call, including failed ones
    """

    def __init__(self) -> None:
        self.tables: dict[str, dict[EntityId, dict[str, Any]]] = {t: {} for t in TABLES}
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self._ids = count(1)
        self._numbers: dict[str, count] = {}
        self._failures: dict[str, list[_InjectedFailure]] = {}

    # =========================================================================
    # Failure injection
    # =========================================================================

    def inject_failure(
        self,
        operation: str,
        message: str = "Injected failure",
        times: int | None = None,
        when: Callable[[dict[str, Any]], bool] | None = None,
    ) -> None:
        """
        Make calls to an operation raise DataAPIError.

        Args:
            operation: Method name (e.g. "create_contact")
            message: Error message to raise
            times: Number of matching calls to fail (None = all of them)
            when: Optional predicate over the call args; only matching calls fail
        """
        self._failures.setdefault(operation, []).append(
            _InjectedFailure(message=message, remaining=times, when=when)
        )

    def clear_failures(self) -> None:
        self._failures.clear()

    def _record(self, operation: str, args: dict[str, Any]) -> None:
        self.calls.append((operation, dict(args)))
        for failure in self._failures.get(operation, []):
            if failure.remaining == 0:
                continue
            if failure.when is not None and not failure.when(args):
                continue
            if failure.remaining is not None:
                failure.remaining -= 1
            raise DataAPIError(operation, failure.message)

    # =========================================================================
    # Storage helpers
    # =========================================================================

    def _insert(self, table: str, doc: dict[str, Any]) -> EntityId:
        entity_id = f"{table}:{next(self._ids)}"
        now = _now()
        self.tables[table][entity_id] = {
            "_id": entity_id,
            **doc,
            "created_at": now,
            "updated_at": now,
        }
        return entity_id

    def _get(self, table: str, entity_id: EntityId | None, label: str) -> dict[str, Any]:
        doc = self.tables[table].get(entity_id) if entity_id else None
        if doc is None:
            raise DataAPIError(table, f"{label} not found")
        return doc

    def _patch(self, doc: dict[str, Any], **fields: Any) -> None:
        doc.update(fields)
        doc["updated_at"] = _now()

    def _next_number(self, prefix: str) -> str:
        seq = self._numbers.setdefault(prefix, count(1))
        return f"{prefix}-{_now():%Y%m%d}-{next(seq):04d}"

    @staticmethod
    def _check_status(table: str, status: str, enum_cls: type) -> None:
        if status not in {s.value for s in enum_cls}:
            raise DataAPIError(table, f"Invalid status: {status}")

    def _check_parties(self, table: str, payload: dict[str, Any]) -> None:
        self._get("contacts", payload.get("contact_id"), "Contact")
        if payload.get("account_id") is not None:
            self._get("accounts", payload["account_id"], "Account")

    def get(self, table: str, entity_id: EntityId) -> dict[str, Any] | None:
        """Raw document lookup for inspection."""
        return self.tables[table].get(entity_id)

    def operations(self, operation: str) -> list[dict[str, Any]]:
        """Args of every recorded call to one operation."""
        return [args for op, args in self.calls if op == operation]

    # =========================================================================
    # Accounts / contacts / leads
    # =========================================================================

    def create_account(self, payload: AccountPayload) -> EntityId:
        self._record("create_account", payload)
        for required in ("name", "type", "address"):
            if not payload.get(required):
                raise DataAPIError("accounts", f"Missing required field: {required}")
        return self._insert("accounts", dict(payload))

    def link_contact_to_account(self, link: ContactAccountLink) -> None:
        self._record("link_contact_to_account", link)
        contact_id, account_id = link["contact_id"], link["account_id"]
        self._get("contacts", contact_id, "Contact")
        self._get("accounts", account_id, "Account")

        links = self.tables["contact_accounts"]
        for existing in links.values():
            if existing["contact_id"] == contact_id and existing["account_id"] == account_id:
                raise DataAPIError("contact_accounts", "Contact is already linked to this account")

        if link["is_primary"]:
            for existing in links.values():
                if existing["account_id"] == account_id and existing["is_primary"]:
                    existing["is_primary"] = False

        self._insert("contact_accounts", dict(link))

    def create_contact(self, payload: ContactPayload) -> EntityId:
        self._record("create_contact", payload)
        if not payload.get("first_name") or not payload.get("last_name"):
            raise DataAPIError("contacts", "first_name and last_name are required")
        return self._insert("contacts", dict(payload))

    def create_lead(self, payload: LeadPayload) -> EntityId:
        self._record("create_lead", payload)
        if not payload.get("name") or not payload.get("status"):
            raise DataAPIError("leads", "name and status are required")
        return self._insert("leads", dict(payload))

    def update_lead(self, lead_id: EntityId, fields: LeadUpdate) -> None:
        self._record("update_lead", {"id": lead_id, **fields})
        lead = self._get("leads", lead_id, "Lead")
        self._patch(lead, **fields)

    # =========================================================================
    # Quotes
    # =========================================================================

    def create_quote(self, payload: QuotePayload) -> EntityId:
        self._record("create_quote", payload)
        self._check_parties("quotes", payload)
        doc = {
            k: v for k, v in payload.items() if k != "line_items"
        }
        doc.update(_totals(payload["line_items"]))
        doc["quote_number"] = self._next_number("Q")
        doc["status"] = QuoteStatus.DRAFT.value
        return self._insert("quotes", doc)

    def change_quote_status(self, quote_id: EntityId, status: str) -> None:
        self._record("change_quote_status", {"id": quote_id, "status": status})
        quote = self._get("quotes", quote_id, "Quote")
        self._check_status("quotes", status, QuoteStatus)
        self._patch(quote, status=status)

    # =========================================================================
    # Work orders
    # =========================================================================

    def create_work_order(self, payload: WorkOrderPayload) -> EntityId:
        self._record("create_work_order", payload)
        self._check_parties("work_orders", payload)
        if payload.get("quote_id") is not None:
            quote = self._get("quotes", payload["quote_id"], "Quote")
            if quote["status"] != QuoteStatus.ACCEPTED.value:
                raise DataAPIError(
                    "work_orders",
                    "Cannot create work order from a quote that is not accepted",
                )
        doc = dict(payload)
        doc.setdefault("work_order_number", self._next_number("WO"))
        doc["status"] = WorkOrderStatus.PENDING.value
        return self._insert("work_orders", doc)

    def change_work_order_status(
        self,
        work_order_id: EntityId,
        status: str,
        completed_date: datetime | None = None,
    ) -> None:
        self._record(
            "change_work_order_status",
            {"id": work_order_id, "status": status, "completed_date": completed_date},
        )
        work_order = self._get("work_orders", work_order_id, "Work order")
        self._check_status("work_orders", status, WorkOrderStatus)
        updates: dict[str, Any] = {"status": status}
        if status == WorkOrderStatus.COMPLETED.value:
            updates["completed_date"] = completed_date or _now()
        self._patch(work_order, **updates)

    def get_work_order(self, work_order_id: EntityId) -> dict[str, Any] | None:
        self._record("get_work_order", {"id": work_order_id})
        doc = self.tables["work_orders"].get(work_order_id)
        return dict(doc) if doc else None

    # =========================================================================
    # Invoices
    # =========================================================================

    def create_invoice(self, payload: InvoicePayload) -> EntityId:
        self._record("create_invoice", payload)
        self._check_parties("invoices", payload)
        if payload.get("work_order_id") is not None:
            self._get("work_orders", payload["work_order_id"], "Work order")
        doc = {k: v for k, v in payload.items() if k != "line_items"}
        doc.update(_totals(payload["line_items"]))
        doc.setdefault("invoice_number", self._next_number("INV"))
        doc["status"] = InvoiceStatus.DRAFT.value
        return self._insert("invoices", doc)

    def create_invoice_from_work_order(
        self, payload: InvoiceFromWorkOrderPayload
    ) -> EntityId:
        self._record("create_invoice_from_work_order", payload)
        work_order = self._get("work_orders", payload["work_order_id"], "Work order")
        if work_order["status"] != WorkOrderStatus.COMPLETED.value:
            raise DataAPIError(
                "invoices",
                "Cannot create invoice from a work order that is not completed",
            )

        line_items: list[LineItem] = []
        quote_id = work_order.get("quote_id")
        if quote_id is not None and quote_id in self.tables["quotes"]:
            line_items = [
                {
                    "description": item["description"],
                    "quantity": item["quantity"],
                    "unit_price": item["unit_price"],
                }
                for item in self.tables["quotes"][quote_id]["line_items"]
            ]

        doc: dict[str, Any] = {
            "contact_id": work_order["contact_id"],
            "account_id": work_order.get("account_id"),
            "work_order_id": payload["work_order_id"],
            "quote_id": quote_id,
            "issue_date": payload["issue_date"],
            "due_date": payload["due_date"],
            "notes": payload.get("notes"),
            "invoice_number": self._next_number("INV"),
            "status": InvoiceStatus.DRAFT.value,
        }
        doc.update(_totals(line_items))
        return self._insert("invoices", doc)

    def change_invoice_status(self, invoice_id: EntityId, status: str) -> None:
        self._record("change_invoice_status", {"id": invoice_id, "status": status})
        self._check_status("invoices", status, InvoiceStatus)
        invoice = self._get("invoices", invoice_id, "Invoice")
        self._patch(invoice, status=status)

    def get_invoice(self, invoice_id: EntityId) -> dict[str, Any] | None:
        self._record("get_invoice", {"id": invoice_id})
        doc = self.tables["invoices"].get(invoice_id)
        return dict(doc) if doc else None

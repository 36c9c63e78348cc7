"""
Data API client for a Convex deployment over its HTTP API.

Each contract method becomes one POST to `{url}/api/mutation` or
`{url}/api/query` with body `{"path": "module:function", "args": {...},
"format": "json"}`. Payload keys are converted to camelCase, datetimes to
epoch milliseconds, and None values are omitted (Convex optional
arguments reject null).
"""

import logging
import os
import re
from datetime import datetime, timezone
from typing import Any

import requests

from ..errors import DataAPIError
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
    QuotePayload,
    WorkOrderPayload,
)

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SEC = 30

# Contract arguments the deployed functions do not declare. Convex rejects
# undeclared arguments, so they are stripped before sending.
DEFAULT_UNDECLARED_ARGS: dict[str, frozenset[str]] = {
    "workOrders:createWorkOrder": frozenset({"workOrderNumber", "description"}),
    "invoices:createInvoice": frozenset({"invoiceNumber", "paidDate"}),
}

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def to_camel(name: str) -> str:
    """snake_case -> camelCase."""
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def to_snake(name: str) -> str:
    """camelCase -> snake_case. Leading-underscore system fields are kept."""
    if name.startswith("_"):
        return name
    return _CAMEL_BOUNDARY.sub("_", name).lower()


def to_millis(value: datetime) -> int:
    """Datetime -> epoch milliseconds (naive values are treated as UTC)."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return int(value.timestamp() * 1000)


def encode_args(value: Any) -> Any:
    """Recursively convert a payload to Convex JSON arguments."""
    if isinstance(value, dict):
        return {
            to_camel(k): encode_args(v) for k, v in value.items() if v is not None
        }
    if isinstance(value, (list, tuple)):
        return [encode_args(v) for v in value]
    if isinstance(value, datetime):
        return to_millis(value)
    return value


def decode_document(value: Any) -> Any:
    """Recursively convert a Convex document's keys to snake_case."""
    if isinstance(value, dict):
        return {to_snake(k): decode_document(v) for k, v in value.items()}
    if isinstance(value, list):
        return [decode_document(v) for v in value]
    return value


class ConvexDataAPI(DataAPI):
    """
    DataAPI over a Convex deployment's HTTP endpoints.

    Usage:
        api = ConvexDataAPI("https://happy-otter-123.convex.cloud")
        account_id = api.create_account({"name": "Acme", "type": "Commercial",
                                         "address": "1 Main St"})
    """

    def __init__(
        self,
        url: str,
        auth_token: str | None = None,
        timeout: float = DEFAULT_TIMEOUT_SEC,
        session: requests.Session | None = None,
        undeclared_args: dict[str, frozenset[str]] | None = None,
    ):
        """
        Initialize client.

        Args:
            url: Deployment URL (e.g. https://happy-otter-123.convex.cloud)
            auth_token: Optional identity token sent as a Bearer header
            timeout: Per-request timeout in seconds
            session: Optional requests session (a new one is created if None)
            undeclared_args: Per-function argument names to strip before sending
        """
        if not url:
            raise ValueError("Convex deployment URL is required")
        self.url = url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.undeclared_args = (
            DEFAULT_UNDECLARED_ARGS if undeclared_args is None else undeclared_args
        )
        if auth_token:
            self.session.headers["Authorization"] = f"Bearer {auth_token}"

    @classmethod
    def from_env(cls, url: str | None = None, **kwargs: Any) -> "ConvexDataAPI":
        """
        Build a client from CONVEX_URL / CONVEX_AUTH_TOKEN.

        Raises:
            ValueError: If no URL is given and CONVEX_URL is unset
        """
        resolved = url or os.environ.get("CONVEX_URL")
        if not resolved:
            raise ValueError("Set CONVEX_URL or pass --url")
        kwargs.setdefault("auth_token", os.environ.get("CONVEX_AUTH_TOKEN"))
        return cls(resolved, **kwargs)

    # =========================================================================
    # Transport
    # =========================================================================

    def _call(self, kind: str, path: str, args: dict[str, Any]) -> Any:
        """
        POST one function call and unwrap the Convex response envelope.

        Args:
            kind: "mutation" or "query"
            path: Function path ("module:function")
            args: snake_case payload

        Returns:
            Function return value

        Raises:
            DataAPIError: On transport failure, HTTP error, or error status
        """
        wire_args = encode_args(args)
        for name in self.undeclared_args.get(path, ()):
            wire_args.pop(name, None)

        logger.debug(f"Convex {kind} {path} args={wire_args}")
        try:
            response = self.session.post(
                f"{self.url}/api/{kind}",
                json={"path": path, "args": wire_args, "format": "json"},
                timeout=self.timeout,
            )
        except requests.Timeout:
            raise DataAPIError(path, f"request timed out after {self.timeout}s")
        except requests.RequestException as e:
            raise DataAPIError(path, f"request failed: {e}")

        try:
            body = response.json()
        except ValueError:
            body = None

        if isinstance(body, dict) and body.get("status") == "error":
            raise DataAPIError(path, body.get("errorMessage") or "unknown error")
        if not response.ok:
            raise DataAPIError(path, f"HTTP {response.status_code}: {response.text[:200]}")
        if not isinstance(body, dict) or body.get("status") != "success":
            raise DataAPIError(path, f"unexpected response: {response.text[:200]}")
        return body.get("value")

    def _mutation(self, path: str, args: dict[str, Any]) -> Any:
        return self._call("mutation", path, args)

    def _query(self, path: str, args: dict[str, Any]) -> Any:
        return self._call("query", path, args)

    def _create(self, path: str, args: dict[str, Any]) -> EntityId:
        entity_id = self._mutation(path, args)
        if not entity_id:
            raise DataAPIError(path, "create returned no id")
        return entity_id

    # =========================================================================
    # Contract
    # =========================================================================

    def create_account(self, payload: AccountPayload) -> EntityId:
        return self._create("accounts:createAccount", dict(payload))

    def link_contact_to_account(self, link: ContactAccountLink) -> None:
        self._mutation("accounts:linkContactToAccount", dict(link))

    def create_contact(self, payload: ContactPayload) -> EntityId:
        return self._create("contacts:createContact", dict(payload))

    def create_lead(self, payload: LeadPayload) -> EntityId:
        return self._create("leads:createLead", dict(payload))

    def update_lead(self, lead_id: EntityId, fields: LeadUpdate) -> None:
        self._mutation("leads:updateLead", {"id": lead_id, **fields})

    def create_quote(self, payload: QuotePayload) -> EntityId:
        return self._create("quotes:createQuote", dict(payload))

    def change_quote_status(self, quote_id: EntityId, status: str) -> None:
        self._mutation("quotes:changeQuoteStatus", {"id": quote_id, "status": status})

    def create_work_order(self, payload: WorkOrderPayload) -> EntityId:
        return self._create("workOrders:createWorkOrder", dict(payload))

    def change_work_order_status(
        self,
        work_order_id: EntityId,
        status: str,
        completed_date: datetime | None = None,
    ) -> None:
        self._mutation(
            "workOrders:changeWorkOrderStatus",
            {"id": work_order_id, "status": status, "completed_date": completed_date},
        )

    def get_work_order(self, work_order_id: EntityId) -> dict[str, Any] | None:
        doc = self._query("workOrders:getWorkOrder", {"id": work_order_id})
        return decode_document(doc) if doc else None

    def create_invoice(self, payload: InvoicePayload) -> EntityId:
        return self._create("invoices:createInvoice", dict(payload))

    def create_invoice_from_work_order(
        self, payload: InvoiceFromWorkOrderPayload
    ) -> EntityId:
        return self._create("invoices:createInvoiceFromWorkOrder", dict(payload))

    def change_invoice_status(self, invoice_id: EntityId, status: str) -> None:
        self._mutation(
            "invoices:changeInvoiceStatus", {"id": invoice_id, "status": status}
        )

    def get_invoice(self, invoice_id: EntityId) -> dict[str, Any] | None:
        doc = self._query("invoices:getInvoice", {"id": invoice_id})
        return decode_document(doc) if doc else None

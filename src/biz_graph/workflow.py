"""
Linear lead-to-invoice workflow runner.

Drives one customer through the whole lifecycle:

    Lead(New) -> Contact + Account (+ primary link) -> Lead(Converted)
      -> Quote(Draft) -> Presented -> Accepted
      -> WorkOrder(Pending, from quote) -> In Progress -> Completed
      -> Invoice(from work order) -> Sent -> Paid

Each stage needs ids produced by the one before it, so calls are strictly
sequential. A failing stage records a stage-prefixed error and aborts the
rest of the chain. Entities already created are left in place and
returned as partial results.
"""

import logging
import uuid
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

import numpy as np

from .api.base import (
    AccountPayload,
    ContactPayload,
    DataAPI,
    LeadPayload,
    LineItem,
    QuotePayload,
    WorkOrderPayload,
)
from .context import GenerationResult, WorkflowState
from .errors import DataAPIError, WorkflowAborted
from .factory import QUOTE_VALIDITY, EntityFactory
from .sampling.fields import FieldSynthesizer
from .statuses import (
    InvoiceStatus,
    LeadStatus,
    QuoteStatus,
    WorkOrderStatus,
)

logger = logging.getLogger(__name__)

SCHEDULE_LEAD_TIME = timedelta(days=7)
INVOICE_DUE = timedelta(days=14)

WORKFLOW_LINE_ITEMS: list[LineItem] = [
    {"description": "Service Package A", "quantity": 1, "unit_price": 299.99},
    {"description": "Additional Service", "quantity": 2, "unit_price": 49.99},
]


class WorkflowRunner:
    """
    Runs the lead-to-invoice chain against a Data API.

    Every call to run_complete_workflow() starts from a fresh
    WorkflowState with its own run token, so repeated runs build
    independent chains.

    Usage:
        runner = WorkflowRunner(api)
        result = runner.run_complete_workflow()
        invoice_id = result["results"]["invoice"]["id"]
    """

    def __init__(
        self,
        api: DataAPI,
        clock: Callable[[], datetime] | None = None,
        token_factory: Callable[[], str] | None = None,
    ):
        """
        Initialize runner.

        Args:
            api: Data API client
            clock: Returns "now" (defaults to UTC wall clock)
            token_factory: Returns a unique token per run (used in the lead email)
        """
        self.api = api
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.token_factory = token_factory or (lambda: uuid.uuid4().hex[:12])
        self.factory = EntityFactory(
            api,
            FieldSynthesizer(rng=np.random.default_rng()),
            notes="Created for workflow testing",
            clock=self.clock,
        )

    def run_complete_workflow(self) -> GenerationResult:
        """
        Run the full chain once.

        Returns:
            GenerationResult whose results map stage name -> record dict
            (only stages that completed, or partially completed, appear)
        """
        state = WorkflowState(run_token=self.token_factory())
        stages: list[tuple[str, str, Callable[[WorkflowState], None]]] = [
            ("lead", "Error creating test lead", self.create_test_lead),
            ("convert", "Error converting lead", self.convert_lead_to_contact_and_account),
            ("quote", "Error creating quote", self.create_quote),
            ("work_order", "Error converting quote to work order", self.convert_quote_to_work_order),
            ("complete", "Error completing work order", self.complete_work_order),
            ("invoice", "Error converting work order to invoice", self.convert_work_order_to_invoice),
            ("payment", "Error processing invoice", self.process_invoice),
        ]
        try:
            for name, prefix, stage in stages:
                self._run_stage(state, name, prefix, stage)
        except WorkflowAborted as e:
            logger.error(f"{e}; {len(state.ids())} entities left in place")
        except Exception as e:
            message = f"Unexpected error: {str(e) or e.__class__.__name__}"
            logger.exception(message)
            state.errors.append(message)
        return state.to_result()

    def _run_stage(
        self,
        state: WorkflowState,
        name: str,
        prefix: str,
        stage: Callable[[WorkflowState], None],
    ) -> None:
        try:
            stage(state)
        except Exception as e:
            message = f"{prefix}: {str(e) or e.__class__.__name__}"
            logger.error(message)
            state.errors.append(message)
            raise WorkflowAborted(name) from e

    # =========================================================================
    # Stages
    # =========================================================================

    def create_test_lead(self, state: WorkflowState) -> None:
        """Stage 1: New lead with a run-unique email."""
        logger.info("Creating test lead...")
        first_name, last_name = "Test", "Customer"
        payload: LeadPayload = {
            "name": f"{first_name} {last_name}",
            "email": f"test.{state.run_token}@example.com",
            "phone": "555-123-4567",
            "source": "Test",
            "status": LeadStatus.NEW.value,
            "notes": "This is a test lead created for workflow testing.",
        }
        lead_id = self.api.create_lead(payload)
        if not lead_id:
            raise DataAPIError("leads:createLead", "Failed to create lead")
        state.lead = {
            "id": lead_id,
            **payload,
            "first_name": first_name,
            "last_name": last_name,
        }
        logger.info(f"Test lead created: {lead_id}")

    def convert_lead_to_contact_and_account(self, state: WorkflowState) -> None:
        """
        Stage 2: Contact and account from the lead, linked as primary owner.

        The contact falls back to a names-only payload if the full one is
        rejected. The link is best-effort. The lead ends up Converted.
        """
        logger.info("Converting lead to contact and account...")
        lead = state.require("lead")

        contact_payload: ContactPayload = {
            "first_name": lead["first_name"],
            "last_name": lead["last_name"],
            "email": lead["email"],
            "phone": lead["phone"],
            "notes": "Contact created from test lead conversion. Source: Lead Conversion",
        }
        outcome = self.factory.create_contact(contact_payload)
        contact_id = outcome.unwrap("contacts:createContact")
        sent = contact_payload if outcome.tier == "full" else {
            k: contact_payload[k] for k in ("first_name", "last_name")
        }
        state.contact = {"id": contact_id, **sent}

        account_payload: AccountPayload = {
            "name": f"{lead['first_name']} {lead['last_name']} Property",
            "type": "Residential",
            "address": "123 Test Street",
            "city": "Test City",
            "state": "TS",
            "zip": "12345",
            "notes": "Account created from test lead conversion.",
        }
        account_id = self.api.create_account(account_payload)
        if not account_id:
            raise DataAPIError("accounts:createAccount", "Failed to create account")
        state.account = {"id": account_id, **account_payload}

        warning = self.factory.link_contact(
            contact_id, account_id, is_primary=True, relationship="Owner"
        )
        if warning is not None:
            state.warnings.append(warning)

        lead["status"] = self.factory.change_status(
            "lead", lead["id"], LeadStatus.NEW, LeadStatus.CONVERTED
        ).value
        logger.info(f"Lead converted: contact={contact_id} account={account_id}")

    def create_quote(self, state: WorkflowState) -> None:
        """Stage 3: Draft quote, presented, then accepted."""
        logger.info("Creating quote...")
        contact = state.require("contact")
        account = state.require("account")

        now = self.clock()
        payload: QuotePayload = {
            "contact_id": contact["id"],
            "account_id": account["id"],
            "issue_date": now,
            "expiry_date": now + QUOTE_VALIDITY,
            "line_items": [dict(item) for item in WORKFLOW_LINE_ITEMS],
            "notes": "Test quote created for workflow testing.",
        }
        quote_id = self.api.create_quote(payload)
        if not quote_id:
            raise DataAPIError("quotes:createQuote", "Failed to create quote")
        state.quote = {"id": quote_id, **payload, "status": QuoteStatus.DRAFT.value}

        status = QuoteStatus.DRAFT
        for target in (QuoteStatus.PRESENTED, QuoteStatus.ACCEPTED):
            status = self.factory.change_status("quote", quote_id, status, target)
            state.quote["status"] = status.value
        logger.info(f"Quote created and accepted: {quote_id}")

    def convert_quote_to_work_order(self, state: WorkflowState) -> None:
        """Stage 4: Pending work order linked to the accepted quote, read back."""
        logger.info("Converting quote to work order...")
        contact = state.require("contact")
        account = state.require("account")
        quote = state.require("quote")

        payload: WorkOrderPayload = {
            "contact_id": contact["id"],
            "account_id": account["id"],
            "quote_id": quote["id"],
            "scheduled_date": self.clock() + SCHEDULE_LEAD_TIME,
            "notes": "Work order created from test quote.",
        }
        work_order_id = self.api.create_work_order(payload)
        if not work_order_id:
            raise DataAPIError("workOrders:createWorkOrder", "Failed to create work order")
        state.work_order = {"id": work_order_id, **payload}

        work_order = self.api.get_work_order(work_order_id)
        if not work_order:
            raise DataAPIError("workOrders:getWorkOrder", "Failed to retrieve work order")
        state.work_order = {**work_order, "id": work_order_id}
        logger.info(f"Work order created: {work_order_id}")

    def complete_work_order(self, state: WorkflowState) -> None:
        """Stage 5: Work order to In Progress, then Completed as of now."""
        logger.info("Completing work order...")
        work_order = state.require("work_order")

        status = WorkOrderStatus(work_order.get("status", WorkOrderStatus.PENDING.value))
        status = self.factory.change_status(
            "work_order", work_order["id"], status, WorkOrderStatus.IN_PROGRESS
        )
        work_order["status"] = status.value

        completed_date = self.clock()
        status = self.factory.change_status(
            "work_order",
            work_order["id"],
            status,
            WorkOrderStatus.COMPLETED,
            completed_date=completed_date,
        )
        work_order["status"] = status.value
        work_order["completed_date"] = completed_date
        logger.info("Work order completed")

    def convert_work_order_to_invoice(self, state: WorkflowState) -> None:
        """Stage 6: Invoice generated from the completed work order, read back."""
        logger.info("Converting work order to invoice...")
        work_order = state.require("work_order")

        now = self.clock()
        invoice_id = self.api.create_invoice_from_work_order(
            {
                "work_order_id": work_order["id"],
                "issue_date": now,
                "due_date": now + INVOICE_DUE,
                "notes": "Invoice created from test work order.",
            }
        )
        if not invoice_id:
            raise DataAPIError("invoices:createInvoiceFromWorkOrder", "Failed to create invoice")
        state.invoice = {"id": invoice_id, "work_order_id": work_order["id"]}

        invoice = self.api.get_invoice(invoice_id)
        if not invoice:
            raise DataAPIError("invoices:getInvoice", "Failed to retrieve invoice")
        state.invoice = {**invoice, "id": invoice_id}
        logger.info(f"Invoice created: {invoice_id}")

    def process_invoice(self, state: WorkflowState) -> None:
        """Stage 7: Invoice Sent, then Paid."""
        logger.info("Processing invoice...")
        invoice = state.require("invoice")

        status = InvoiceStatus(invoice.get("status", InvoiceStatus.DRAFT.value))
        for target in (InvoiceStatus.SENT, InvoiceStatus.PAID):
            status = self.factory.change_status("invoice", invoice["id"], status, target)
            invoice["status"] = status.value
        logger.info("Invoice processed")

"""
Entity factory: synthesized fields -> persisted entities.

Two layers:
- Primitives shared with the workflow runner: two-tier contact creation
  and table-checked status changes.
- make_* builders used by the batch generator: synthesize one entity's
  fields, create it, apply the sampled status with at most one change
  call, and record failures on the GenerationRun before re-raising.

Contact-to-account links are best-effort: a failed link is logged and
recorded as a warning, never as an error.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from enum import Enum
from typing import Literal, TypeVar

from .api.base import (
    AccountPayload,
    ContactPayload,
    DataAPI,
    EntityId,
    InvoicePayload,
    LeadPayload,
    QuotePayload,
    WorkOrderPayload,
)
from .context import GenerationRun
from .errors import BizGraphError, DataAPIError
from .sampling.fields import FieldSynthesizer
from .statuses import (
    INITIAL_STATUS,
    InvoiceStatus,
    LeadStatus,
    QuoteStatus,
    WorkOrderStatus,
    check_transition,
)

logger = logging.getLogger(__name__)

P = TypeVar("P")

QUOTE_VALIDITY = timedelta(days=30)
INVOICE_TERMS = timedelta(days=30)
REQUIRED_CONTACT_FIELDS = ("first_name", "last_name")


def _describe(error: Exception) -> str:
    return str(error) or error.__class__.__name__


def _utc(day: date) -> datetime:
    return datetime(day.year, day.month, day.day, tzinfo=timezone.utc)


# =============================================================================
# Typed create outcome (two-tier payloads)
# =============================================================================


@dataclass(frozen=True)
class CreateOutcome:
    """
    Result of one create attempt.

    Attributes:
        tier: "full" for the complete payload, "required" for the fallback
        entity_id: New id on success, None on failure
        error: Failure description, None on success
        previous: The failed attempt this one fell back from, if any
    """

    tier: Literal["full", "required"]
    entity_id: EntityId | None = None
    error: str | None = None
    previous: "CreateOutcome | None" = None

    @property
    def ok(self) -> bool:
        return self.entity_id is not None

    def unwrap(self, path: str) -> EntityId:
        """
        Return the id or raise.

        Raises:
            DataAPIError: Listing every failed tier
        """
        if self.entity_id is not None:
            return self.entity_id
        messages = []
        outcome: CreateOutcome | None = self
        while outcome is not None:
            messages.append(f"{outcome.tier} payload: {outcome.error}")
            outcome = outcome.previous
        raise DataAPIError(path, "; ".join(reversed(messages)))


def required_contact_fields(payload: ContactPayload) -> ContactPayload:
    """Fallback payload with only the fields the backend requires."""
    return {"first_name": payload["first_name"], "last_name": payload["last_name"]}


class EntityFactory:
    """
    Creates entities through a DataAPI.

    Usage:
        factory = EntityFactory(api, FieldSynthesizer(rng=rng))
        quote_id = factory.make_quote(run, 0, contact_id, account_id, QuoteStatus.ACCEPTED)
    """

    def __init__(
        self,
        api: DataAPI,
        fields: FieldSynthesizer,
        notes: str = "Created for chart testing",
        start_date: date = date(2023, 1, 1),
        primary_link_probability: float = 0.3,
        clock: Callable[[], datetime] | None = None,
    ):
        """
        Initialize factory.

        Args:
            api: Data API client
            fields: Field synthesizer (owns the random generator)
            notes: Notes stamped on created entities
            start_date: Earliest issue / scheduled date
            primary_link_probability: Chance a linked contact is primary
            clock: Returns "now" (defaults to UTC wall clock)
        """
        self.api = api
        self.fields = fields
        self.notes = notes
        self.start_date = start_date
        self.primary_link_probability = primary_link_probability
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    # =========================================================================
    # Primitives
    # =========================================================================

    def _attempt(
        self,
        create: Callable[[P], EntityId],
        payload: P,
        tier: Literal["full", "required"],
        previous: CreateOutcome | None = None,
    ) -> CreateOutcome:
        try:
            return CreateOutcome(tier=tier, entity_id=create(payload), previous=previous)
        except DataAPIError as e:
            return CreateOutcome(tier=tier, error=_describe(e), previous=previous)

    def create_contact(self, payload: ContactPayload) -> CreateOutcome:
        """
        Create a contact, falling back to required fields only.

        The full payload is tried first. If it is rejected and carries
        optional fields, one more attempt is made with just the names.

        Returns:
            CreateOutcome of the last attempt (check .ok or call .unwrap())
        """
        full = self._attempt(self.api.create_contact, payload, "full")
        if full.ok:
            return full

        minimal = required_contact_fields(payload)
        if minimal == payload:
            return full

        logger.warning(
            f"Contact create failed ({full.error}); retrying with required fields only"
        )
        return self._attempt(self.api.create_contact, minimal, "required", previous=full)

    def change_status(
        self,
        kind: str,
        entity_id: EntityId,
        current: Enum,
        target: Enum,
        completed_date: datetime | None = None,
    ) -> Enum:
        """
        Move an entity to target with one change call.

        No call is made when target equals current.

        Args:
            kind: "lead", "quote", "work_order" or "invoice"
            entity_id: Entity to change
            current: Status the entity has now
            target: Desired status
            completed_date: Work orders only, stamped when target is Completed

        Returns:
            The entity's status after the call

        Raises:
            StatusTransitionError: If the transition table forbids the move
            DataAPIError: If the backend rejects the change
        """
        if target == current:
            return current
        check_transition(kind, current, target)

        if kind == "lead":
            self.api.update_lead(entity_id, {"status": target.value})
        elif kind == "quote":
            self.api.change_quote_status(entity_id, target.value)
        elif kind == "work_order":
            self.api.change_work_order_status(entity_id, target.value, completed_date)
        elif kind == "invoice":
            self.api.change_invoice_status(entity_id, target.value)
        else:
            raise ValueError(f"Unknown status-bearing kind: {kind!r}")
        return target

    def link_contact(
        self,
        contact_id: EntityId,
        account_id: EntityId,
        is_primary: bool,
        relationship: str = "Customer",
    ) -> str | None:
        """
        Best-effort contact-to-account link.

        Returns:
            None if linked, otherwise the warning message (already logged)
        """
        try:
            self.api.link_contact_to_account(
                {
                    "contact_id": contact_id,
                    "account_id": account_id,
                    "relationship": relationship,
                    "is_primary": is_primary,
                }
            )
        except DataAPIError as e:
            message = f"Could not link contact {contact_id} to account {account_id}: {_describe(e)}"
            logger.warning(message)
            return message
        return None

    # =========================================================================
    # Batch builders
    # =========================================================================

    def _fail(self, run: GenerationRun, kind: str, index: int, error: Exception) -> None:
        label = kind[:-1].replace("_", " ")
        message = f"Error creating {label} {index + 1}: {_describe(error)}"
        logger.error(message)
        run.record_error(message)

    def make_account(self, run: GenerationRun, index: int) -> EntityId:
        """Create the index-th batch account."""
        payload: AccountPayload = {
            "name": self.fields.company_for(index),
            "type": "Commercial",
            "address": f"{100 + index} Business St",
            "city": "Businessville",
            "state": "CA",
            "zip": "90210",
            "notes": self.notes,
        }
        try:
            account_id = self.api.create_account(payload)
        except BizGraphError as e:
            self._fail(run, "accounts", index, e)
            raise
        run.record_created("accounts", account_id)
        return account_id

    def make_contact(self, run: GenerationRun, index: int) -> EntityId:
        """
        Create the index-th batch contact.

        If accounts exist, the contact is linked to a random one (primary
        with primary_link_probability). Link failures only warn.
        """
        first, last = self.fields.name_for(index)
        payload: ContactPayload = {
            "first_name": first,
            "last_name": last,
            "email": self.fields.email_for(first, last, index),
            "phone": self.fields.phone_for(index, prefix=200),
            "address": f"{200 + index} Main St",
            "city": "Springfield",
            "state": "IL",
            "zip": "62701",
            "notes": self.notes,
        }
        try:
            contact_id = self.create_contact(payload).unwrap("contacts:createContact")
        except BizGraphError as e:
            self._fail(run, "contacts", index, e)
            raise
        run.record_created("contacts", contact_id)

        account_ids = run.ids("accounts")
        if account_ids:
            account_id = self.fields.pick(account_ids)
            warning = self.link_contact(
                contact_id,
                account_id,
                is_primary=self.fields.chance(self.primary_link_probability),
            )
            if warning is None:
                run.contact_accounts[contact_id] = account_id
            else:
                run.record_warning(warning)
        return contact_id

    def make_lead(self, run: GenerationRun, index: int, status: LeadStatus) -> EntityId:
        """Create the index-th batch lead directly in the sampled status."""
        first = self.fields.pick(self.fields.pool.first_names)
        last = self.fields.pick(self.fields.pool.last_names)
        payload: LeadPayload = {
            "name": f"{first} {last}",
            "email": self.fields.email_for(first, last, index),
            "phone": self.fields.phone_for(index, prefix=300),
            "source": self.fields.pick(self.fields.pool.lead_sources),
            "status": status.value,
            "notes": self.notes,
        }
        try:
            lead_id = self.api.create_lead(payload)
        except BizGraphError as e:
            self._fail(run, "leads", index, e)
            raise
        run.record_created("leads", lead_id)
        return lead_id

    def make_quote(
        self,
        run: GenerationRun,
        index: int,
        contact_id: EntityId,
        account_id: EntityId | None,
        status: QuoteStatus,
    ) -> EntityId:
        """Create a Draft quote dated in the window, then move it to status."""
        issue_date = self.fields.random_date(_utc(self.start_date), self.clock())
        payload: QuotePayload = {
            "contact_id": contact_id,
            "issue_date": issue_date,
            "expiry_date": issue_date + QUOTE_VALIDITY,
            "line_items": self.fields.line_items(),
            "notes": self.notes,
        }
        if account_id is not None:
            payload["account_id"] = account_id
        try:
            quote_id = self.api.create_quote(payload)
            self.change_status("quote", quote_id, INITIAL_STATUS["quote"], status)
        except BizGraphError as e:
            self._fail(run, "quotes", index, e)
            raise
        run.record_created("quotes", quote_id)
        return quote_id

    def make_work_order(
        self,
        run: GenerationRun,
        index: int,
        contact_id: EntityId,
        account_id: EntityId | None,
        status: WorkOrderStatus,
    ) -> EntityId:
        """
        Create a Pending work order scheduled in the start year, then move it to status.

        Completed work orders are scheduled no later than now, and completed
        0-14 days after the scheduled date (capped at now).
        """
        year = self.start_date.year
        window_start, window_end = _utc(date(year, 1, 1)), _utc(date(year, 12, 31))
        now = self.clock()
        if status == WorkOrderStatus.COMPLETED:
            window_end = min(window_end, now)
            window_start = min(window_start, window_end)
        scheduled = self.fields.random_date(window_start, window_end)
        payload: WorkOrderPayload = {
            "work_order_number": f"WO-{20000 + index}",
            "contact_id": contact_id,
            "description": f"{self.fields.pick(self.fields.pool.services)} service",
            "scheduled_date": scheduled,
            "notes": self.notes,
        }
        if account_id is not None:
            payload["account_id"] = account_id

        completed_date = None
        if status == WorkOrderStatus.COMPLETED:
            completed_date = min(
                scheduled + timedelta(days=self.fields.random_amount(0, 14)),
                now,
            )
        try:
            work_order_id = self.api.create_work_order(payload)
            self.change_status(
                "work_order",
                work_order_id,
                INITIAL_STATUS["work_order"],
                status,
                completed_date=completed_date,
            )
        except BizGraphError as e:
            self._fail(run, "work_orders", index, e)
            raise
        run.record_created("work_orders", work_order_id)
        return work_order_id

    def make_invoice(
        self,
        run: GenerationRun,
        index: int,
        contact_id: EntityId,
        account_id: EntityId | None,
        status: InvoiceStatus,
    ) -> EntityId:
        """
        Create a Draft invoice, then move it to status.

        Paid invoices carry a paid_date 1-30 days after the issue date.
        """
        issue_date = self.fields.random_date(_utc(self.start_date), self.clock())
        payload: InvoicePayload = {
            "invoice_number": f"INV-{30000 + index}",
            "contact_id": contact_id,
            "issue_date": issue_date,
            "due_date": issue_date + INVOICE_TERMS,
            "line_items": self.fields.line_items(),
            "notes": self.notes,
        }
        if account_id is not None:
            payload["account_id"] = account_id
        if status == InvoiceStatus.PAID:
            payload["paid_date"] = issue_date + timedelta(
                days=self.fields.random_amount(1, 30)
            )
        try:
            invoice_id = self.api.create_invoice(payload)
            self.change_status("invoice", invoice_id, INITIAL_STATUS["invoice"], status)
        except BizGraphError as e:
            self._fail(run, "invoices", index, e)
            raise
        run.record_created("invoices", invoice_id)
        return invoice_id

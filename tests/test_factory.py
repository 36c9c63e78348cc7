"""
Tests for EntityFactory primitives and batch builders.
"""

from datetime import date, datetime, timedelta, timezone

import pytest

from biz_graph.errors import DataAPIError, StatusTransitionError
from biz_graph.factory import CreateOutcome, EntityFactory, required_contact_fields
from biz_graph.statuses import (
    InvoiceStatus,
    LeadStatus,
    QuoteStatus,
    WorkOrderStatus,
)

FIXED_NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)

FULL_CONTACT = {
    "first_name": "Jane",
    "last_name": "Smith",
    "email": "jane@example.com",
    "phone": "555-200-0001",
}


class TestCreateContact:
    """Two-tier contact creation."""

    def test_full_payload_first(self, factory, api):
        """Full payload is tried first."""
        outcome = factory.create_contact(FULL_CONTACT)
        assert outcome.ok
        assert outcome.tier == "full"
        assert api.get("contacts", outcome.entity_id)["email"] == "jane@example.com"

    def test_falls_back_to_required_fields(self, factory, api):
        """Rejected full payload falls back to names only."""
        api.inject_failure("create_contact", message="email rejected", when=lambda a: "email" in a)
        outcome = factory.create_contact(FULL_CONTACT)
        assert outcome.ok
        assert outcome.tier == "required"
        assert outcome.previous.error == "create_contact: email rejected"
        assert api.operations("create_contact")[-1] == {"first_name": "Jane", "last_name": "Smith"}

    def test_no_retry_when_payload_already_minimal(self, factory, api):
        """A names-only payload is not retried."""
        api.inject_failure("create_contact")
        outcome = factory.create_contact({"first_name": "A", "last_name": "B"})
        assert not outcome.ok
        assert len(api.operations("create_contact")) == 1

    def test_unwrap_reports_both_tiers(self, factory, api):
        """unwrap lists both failed tiers."""
        api.inject_failure("create_contact", message="down")
        outcome = factory.create_contact(FULL_CONTACT)
        with pytest.raises(DataAPIError) as exc:
            outcome.unwrap("contacts:createContact")
        assert "full payload: create_contact: down" in str(exc.value)
        assert "required payload: create_contact: down" in str(exc.value)

    def test_unwrap_success(self):
        """unwrap returns the id on success."""
        assert CreateOutcome(tier="full", entity_id="c1").unwrap("x") == "c1"

    def test_required_contact_fields(self):
        """Fallback payload keeps only the names."""
        assert required_contact_fields(FULL_CONTACT) == {"first_name": "Jane", "last_name": "Smith"}


class TestChangeStatus:
    """Table-checked status changes."""

    def test_same_status_makes_no_call(self, factory, api):
        """No call when target equals current."""
        calls = len(api.calls)
        assert factory.change_status("quote", "quotes:1", QuoteStatus.DRAFT, QuoteStatus.DRAFT) is QuoteStatus.DRAFT
        assert len(api.calls) == calls

    def test_lead_uses_update(self, factory, api):
        """Lead status goes through update_lead."""
        lead_id = api.create_lead({"name": "A B", "status": "New"})
        factory.change_status("lead", lead_id, LeadStatus.NEW, LeadStatus.CONVERTED)
        assert api.get("leads", lead_id)["status"] == "Converted"
        assert api.operations("update_lead") == [{"id": lead_id, "status": "Converted"}]

    def test_forbidden_transition_makes_no_call(self, factory, api):
        """Illegal transitions raise before any call."""
        with pytest.raises(StatusTransitionError):
            factory.change_status("invoice", "invoices:1", InvoiceStatus.PAID, InvoiceStatus.SENT)
        assert api.calls == []

    def test_work_order_completed_date_forwarded(self, factory, api):
        """completed_date reaches the backend."""
        contact_id = api.create_contact({"first_name": "A", "last_name": "B"})
        work_order_id = api.create_work_order({"contact_id": contact_id})
        factory.change_status(
            "work_order",
            work_order_id,
            WorkOrderStatus.PENDING,
            WorkOrderStatus.COMPLETED,
            completed_date=FIXED_NOW,
        )
        assert api.get("work_orders", work_order_id)["completed_date"] == FIXED_NOW


class TestLinkContact:
    """Best-effort linking."""

    def test_link_success(self, factory, api):
        """Successful link returns None."""
        contact_id = api.create_contact({"first_name": "A", "last_name": "B"})
        account_id = api.create_account({"name": "Acme", "type": "Commercial", "address": "1 St"})
        assert factory.link_contact(contact_id, account_id, is_primary=True) is None
        assert len(api.tables["contact_accounts"]) == 1

    def test_link_failure_returns_warning(self, factory, api):
        """Failed link returns the warning text."""
        api.inject_failure("link_contact_to_account", message="nope")
        warning = factory.link_contact("contacts:1", "accounts:2", is_primary=False)
        assert "contacts:1" in warning
        assert "nope" in warning


class TestBuilders:
    """make_* builders."""

    def _contact(self, factory, run):
        return factory.make_contact(run, 0)

    def test_make_account_records_id(self, factory, run, api):
        """Accounts are recorded on the run."""
        account_id = factory.make_account(run, 0)
        assert run.ids("accounts") == [account_id]
        assert api.get("accounts", account_id)["notes"] == "Created for chart testing"

    def test_make_account_failure_recorded_and_raised(self, factory, run, api):
        """Account failures are recorded then re-raised."""
        api.inject_failure("create_account", message="boom")
        with pytest.raises(DataAPIError):
            factory.make_account(run, 2)
        assert run.errors == ["Error creating account 3: create_account: boom"]

    def test_make_contact_links_to_account(self, factory, run, api):
        """Contacts are linked to an account of the run."""
        account_id = factory.make_account(run, 0)
        contact_id = factory.make_contact(run, 0)
        assert run.contact_accounts[contact_id] == account_id

    def test_make_contact_link_failure_is_warning(self, factory, run, api):
        """Contact link failure is a warning."""
        factory.make_account(run, 0)
        api.inject_failure("link_contact_to_account")
        contact_id = factory.make_contact(run, 0)
        assert run.ids("contacts") == [contact_id]
        assert run.errors == []
        assert len(run.warnings) == 1
        assert contact_id not in run.contact_accounts

    def test_make_lead_in_sampled_status(self, factory, run, api):
        """Leads are created directly in the sampled status."""
        lead_id = factory.make_lead(run, 0, LeadStatus.QUALIFIED)
        assert api.get("leads", lead_id)["status"] == "Qualified"
        assert api.operations("update_lead") == []

    def test_make_quote_expiry_and_status(self, factory, run, api):
        """Quotes get expiry and the sampled status with one call."""
        contact_id = self._contact(factory, run)
        quote_id = factory.make_quote(run, 0, contact_id, None, QuoteStatus.ACCEPTED)
        quote = api.get("quotes", quote_id)
        assert quote["status"] == "Accepted"
        assert quote["expiry_date"] - quote["issue_date"] == timedelta(days=30)
        assert quote["issue_date"] <= FIXED_NOW
        assert len(api.operations("change_quote_status")) == 1

    def test_make_quote_draft_needs_no_change(self, factory, run, api):
        """Draft quotes need no change call."""
        contact_id = self._contact(factory, run)
        factory.make_quote(run, 0, contact_id, None, QuoteStatus.DRAFT)
        assert api.operations("change_quote_status") == []

    def test_make_work_order_completed(self, factory, run, api):
        """Completed work orders get number and completed date."""
        contact_id = self._contact(factory, run)
        work_order_id = factory.make_work_order(run, 4, contact_id, None, WorkOrderStatus.COMPLETED)
        work_order = api.get("work_orders", work_order_id)
        assert work_order["work_order_number"] == "WO-20004"
        assert work_order["status"] == "Completed"
        assert work_order["scheduled_date"] <= work_order["completed_date"] <= FIXED_NOW

    def test_make_invoice_paid_date_after_issue(self, factory, run, api):
        """Paid invoices get a paid date after issue."""
        contact_id = self._contact(factory, run)
        invoice_id = factory.make_invoice(run, 1, contact_id, None, InvoiceStatus.PAID)
        invoice = api.get("invoices", invoice_id)
        assert invoice["invoice_number"] == "INV-30001"
        assert invoice["status"] == "Paid"
        assert invoice["paid_date"] > invoice["issue_date"]
        assert invoice["due_date"] - invoice["issue_date"] == timedelta(days=30)

    def test_make_invoice_unpaid_has_no_paid_date(self, factory, run, api):
        """Unpaid invoices carry no paid date."""
        contact_id = self._contact(factory, run)
        invoice_id = factory.make_invoice(run, 0, contact_id, None, InvoiceStatus.SENT)
        assert "paid_date" not in api.get("invoices", invoice_id)

    def test_status_change_failure_counts_entity_as_failed(self, factory, run, api):
        """A failed status change fails the entity."""
        contact_id = self._contact(factory, run)
        api.inject_failure("change_quote_status")
        with pytest.raises(DataAPIError):
            factory.make_quote(run, 0, contact_id, None, QuoteStatus.DECLINED)
        assert run.ids("quotes") == []
        assert run.errors == ["Error creating quote 1: change_quote_status: Injected failure"]

    def test_completed_work_order_never_before_scheduled(self, api, fields, clock, run):
        """Completed dates stay after the schedule when the start year is the current year."""
        factory = EntityFactory(api, fields, start_date=date(2024, 1, 1), clock=clock)
        contact_id = self._contact(factory, run)
        for i in range(50):
            work_order_id = factory.make_work_order(
                run, i, contact_id, None, WorkOrderStatus.COMPLETED
            )
            work_order = api.get("work_orders", work_order_id)
            assert work_order["scheduled_date"] <= work_order["completed_date"] <= FIXED_NOW

    def test_open_work_orders_scheduled_across_start_year(self, api, fields, clock, run):
        """Work orders that are not completed may be scheduled after now."""
        factory = EntityFactory(api, fields, start_date=date(2024, 1, 1), clock=clock)
        contact_id = self._contact(factory, run)
        for i in range(20):
            work_order_id = factory.make_work_order(
                run, i, contact_id, None, WorkOrderStatus.SCHEDULED
            )
            scheduled = api.get("work_orders", work_order_id)["scheduled_date"]
            assert scheduled.year == 2024

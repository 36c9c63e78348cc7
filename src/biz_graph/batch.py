"""
Batch generator for dashboard chart test data.

Creates the configured number of entities per kind in dependency order:

    accounts -> contacts (linked to a random account) -> leads
             -> quotes -> work orders -> invoices

Quotes, work orders and invoices each reference a random contact created
earlier in the same run, reusing that contact's linked account when it has
one. Every call completes before the next is issued.

Failure policy:
- One entity failing is recorded and skipped; its loop continues.
- A dependent kind with no contacts to reference raises
  PrerequisiteMissingError, recorded once; that kind's loop is abandoned
  and generation moves on to the next kind.
- generate_chart_data() itself never raises.
"""

import logging
from collections.abc import Callable
from datetime import datetime

import numpy as np

from .api.base import DataAPI, EntityId
from .config import GenerationConfig
from .context import GenerationResult, GenerationRun
from .errors import BizGraphError, PrerequisiteMissingError
from .factory import EntityFactory
from .sampling.fields import FieldSynthesizer, FixturePool
from .sampling.weighted import WeightedStatusSampler

logger = logging.getLogger(__name__)

KIND_LABELS = {
    "accounts": "accounts",
    "contacts": "contacts",
    "leads": "leads",
    "quotes": "quotes",
    "work_orders": "work orders",
    "invoices": "invoices",
}


class BatchGenerator:
    """
    Populates a Data API with a status-distributed entity batch.

    Samplers are built at construction, so an invalid weight map fails
    before any call is made.

    Usage:
        generator = BatchGenerator(api, GenerationConfig(seed=42))
        result = generator.generate_chart_data()
        if not result["success"]:
            print(result["errors"])
    """

    def __init__(
        self,
        api: DataAPI,
        config: GenerationConfig | None = None,
        pool: FixturePool | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        """
        Initialize generator.

        Args:
            api: Data API client
            config: Counts and weights (defaults to GenerationConfig())
            pool: Fixture pool for names, companies, services
            clock: Returns "now" (for deterministic date windows in tests)
        """
        self.api = api
        self.config = config or GenerationConfig()
        self.rng = np.random.default_rng(self.config.seed)
        self.fields = FieldSynthesizer(pool, self.rng)
        self.factory = EntityFactory(
            api,
            self.fields,
            notes=self.config.notes,
            start_date=self.config.start_date,
            primary_link_probability=self.config.primary_link_probability,
            clock=clock,
        )
        self.samplers = {
            kind: WeightedStatusSampler(self.config.weights_for(kind), self.rng)
            for kind in ("lead", "quote", "work_order", "invoice")
        }

    def generate_chart_data(self) -> GenerationResult:
        """
        Run one batch.

        Returns:
            GenerationResult with ids per kind, errors and link warnings
        """
        run = GenerationRun()
        stages: list[tuple[str, Callable[[GenerationRun], None]]] = [
            ("accounts", self._create_accounts),
            ("contacts", self._create_contacts),
            ("leads", self._create_leads),
            ("quotes", self._create_quotes),
            ("work_orders", self._create_work_orders),
            ("invoices", self._create_invoices),
        ]
        try:
            for kind, stage in stages:
                if self.config.counts[kind] == 0:
                    continue
                label = KIND_LABELS[kind]
                logger.info(f"Creating test {label}...")
                try:
                    stage(run)
                except PrerequisiteMissingError as e:
                    logger.error(str(e))
                    run.record_error(f"Error creating test {label}: {e}")
                    continue
                logger.info(f"Created {len(run.ids(kind))} test {label}")
        except Exception as e:
            message = f"Unexpected error: {str(e) or e.__class__.__name__}"
            logger.exception(message)
            run.record_error(message)
        return run.to_result()

    # =========================================================================
    # Stages
    # =========================================================================

    def _each(self, run: GenerationRun, kind: str, make: Callable[[int], EntityId]) -> None:
        """Call make(i) for every index; per-entity failures are already recorded."""
        for i in range(self.config.counts[kind]):
            try:
                make(i)
            except BizGraphError:
                continue

    def _pick_parties(self, run: GenerationRun) -> tuple[EntityId, EntityId | None]:
        """Random created contact plus its linked account (or any account)."""
        contact_id = self.fields.pick(run.ids("contacts"))
        account_id = run.contact_accounts.get(contact_id)
        if account_id is None and run.ids("accounts"):
            account_id = self.fields.pick(run.ids("accounts"))
        return contact_id, account_id

    def _require_contacts(self, run: GenerationRun, label: str) -> None:
        if not run.ids("contacts"):
            raise PrerequisiteMissingError(f"No contacts available for creating {label}")

    def _create_accounts(self, run: GenerationRun) -> None:
        self._each(run, "accounts", lambda i: self.factory.make_account(run, i))

    def _create_contacts(self, run: GenerationRun) -> None:
        self._each(run, "contacts", lambda i: self.factory.make_contact(run, i))

    def _create_leads(self, run: GenerationRun) -> None:
        sampler = self.samplers["lead"]
        self._each(run, "leads", lambda i: self.factory.make_lead(run, i, sampler.draw()))

    def _create_quotes(self, run: GenerationRun) -> None:
        self._require_contacts(run, "quotes")
        sampler = self.samplers["quote"]

        def make(i: int) -> EntityId:
            contact_id, account_id = self._pick_parties(run)
            return self.factory.make_quote(run, i, contact_id, account_id, sampler.draw())

        self._each(run, "quotes", make)

    def _create_work_orders(self, run: GenerationRun) -> None:
        self._require_contacts(run, "work orders")
        sampler = self.samplers["work_order"]

        def make(i: int) -> EntityId:
            contact_id, account_id = self._pick_parties(run)
            return self.factory.make_work_order(
                run, i, contact_id, account_id, sampler.draw()
            )

        self._each(run, "work_orders", make)

    def _create_invoices(self, run: GenerationRun) -> None:
        self._require_contacts(run, "invoices")
        sampler = self.samplers["invoice"]

        def make(i: int) -> EntityId:
            contact_id, account_id = self._pick_parties(run)
            return self.factory.make_invoice(run, i, contact_id, account_id, sampler.draw())

        self._each(run, "invoices", make)

"""
Run context passed through every generation stage.

- GenerationRun: Per-run accumulator of created ids, errors and warnings
- WorkflowState: Records of the single entity chain built by a workflow run
- GenerationResult: What the top-level entry points return

Stage functions receive the run explicitly and mutate it in place; nothing
is kept on the generator objects between runs.
"""

from dataclasses import dataclass, field
from typing import Any, TypedDict

from .api.base import EntityId
from .config import ENTITY_KINDS


class GenerationResult(TypedDict):
    """Result type for generate_chart_data() and run_complete_workflow()."""

    success: bool
    """True if no errors were recorded."""

    results: dict[str, Any]
    """Batch: kind -> list of ids. Workflow: stage -> record dict."""

    errors: list[str]
    """Stage-tagged error messages, in the order they occurred."""

    warnings: list[str]
    """Best-effort failures (contact linking) that did not count as errors."""


@dataclass
class GenerationRun:
    """
    Accumulator for one batch run.

    Attributes:
        results: Entity kind -> ordered list of created ids
        errors: Ordered error messages
        warnings: Ordered warning messages (best-effort steps)
        contact_accounts: Contact id -> account id it was linked to
    """

    results: dict[str, list[EntityId]] = field(
        default_factory=lambda: {kind: [] for kind in ENTITY_KINDS}
    )
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    contact_accounts: dict[EntityId, EntityId] = field(default_factory=dict)

    def record_created(self, kind: str, entity_id: EntityId) -> None:
        self.results[kind].append(entity_id)

    def record_error(self, message: str) -> None:
        self.errors.append(message)

    def record_warning(self, message: str) -> None:
        self.warnings.append(message)

    def ids(self, kind: str) -> list[EntityId]:
        return self.results[kind]

    @property
    def success(self) -> bool:
        return not self.errors

    def to_result(self) -> GenerationResult:
        return GenerationResult(
            success=self.success,
            results={kind: list(ids) for kind, ids in self.results.items()},
            errors=list(self.errors),
            warnings=list(self.warnings),
        )


@dataclass
class WorkflowState:
    """
    Entity chain of one lead-to-invoice workflow run.

    Each stage record holds the entity id plus the last-known fields sent
    to or read back from the Data API. Stages fill in left to right; a
    None record means that stage was never reached.
    """

    run_token: str
    lead: dict[str, Any] | None = None
    contact: dict[str, Any] | None = None
    account: dict[str, Any] | None = None
    quote: dict[str, Any] | None = None
    work_order: dict[str, Any] | None = None
    invoice: dict[str, Any] | None = None
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    STAGES = ("lead", "contact", "account", "quote", "work_order", "invoice")

    def require(self, stage: str) -> dict[str, Any]:
        """
        Record for a completed stage.

        Raises:
            RuntimeError: If the stage has not produced a record yet
        """
        record = getattr(self, stage)
        if not record or not record.get("id"):
            raise RuntimeError(f"No {stage.replace('_', ' ')} ID available")
        return record

    def ids(self) -> set[EntityId]:
        """Every entity id created so far."""
        return {
            record["id"]
            for stage in self.STAGES
            if (record := getattr(self, stage)) and record.get("id")
        }

    def to_result(self) -> GenerationResult:
        results = {
            stage: dict(record)
            for stage in self.STAGES
            if (record := getattr(self, stage)) is not None
        }
        return GenerationResult(
            success=not self.errors,
            results=results,
            errors=list(self.errors),
            warnings=list(self.warnings),
        )

"""
Exception hierarchy for business graph generation.

- BizGraphError: Base class for everything raised by this package
- ConfigError: Invalid GenerationConfig (collects every problem found)
- DataAPIError: A Data API call was rejected or could not be delivered
- PrerequisiteMissingError: A dependent kind has no entities to reference
- StatusTransitionError: Requested status change is not in the transition table
- WorkflowAborted: A workflow stage failed and the remaining stages were skipped
"""


class BizGraphError(Exception):
    """Base class for business graph generation errors."""

    pass


class ConfigError(BizGraphError):
    """Raised when a generation config fails validation."""

    def __init__(self, problems: list[str]) -> None:
        self.problems = problems
        message = f"Generation config invalid with {len(problems)} problem(s):\n"
        message += "\n".join(f"  - {p}" for p in problems)
        super().__init__(message)


class DataAPIError(BizGraphError):
    """Raised when a Data API call fails."""

    def __init__(self, path: str, message: str) -> None:
        self.path = path
        self.message = message
        super().__init__(f"{path}: {message}")


class PrerequisiteMissingError(BizGraphError):
    """Raised when a dependent entity kind has nothing to reference."""

    pass


class StatusTransitionError(BizGraphError):
    """Raised when a status change is not allowed for the entity kind."""

    def __init__(self, kind: str, current: str, target: str) -> None:
        self.kind = kind
        self.current = current
        self.target = target
        super().__init__(
            f"Illegal {kind} status transition: {current!r} -> {target!r}"
        )


class WorkflowAborted(BizGraphError):
    """Raised when a workflow stage fails; the stage error is already recorded."""

    def __init__(self, stage: str) -> None:
        self.stage = stage
        super().__init__(f"Workflow aborted at stage {stage!r}")

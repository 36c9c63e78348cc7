"""
Business Graph - Synthetic CRM test data over a live Data API.

This package populates a CRM / field-service backend with referentially
consistent, status-distributed test entities (accounts, contacts, leads,
quotes, work orders, invoices). It runs either as a batch for dashboard
chart data or as a single lead-to-invoice workflow.
"""

__version__ = "0.1.0"

from .batch import BatchGenerator
from .config import GenerationConfig
from .context import GenerationResult, GenerationRun, WorkflowState
from .factory import EntityFactory
from .workflow import WorkflowRunner

__all__ = [
    "BatchGenerator",
    "EntityFactory",
    "GenerationConfig",
    "GenerationResult",
    "GenerationRun",
    "WorkflowRunner",
    "WorkflowState",
]

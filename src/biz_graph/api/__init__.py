"""
Data API clients.

This package provides:
- base: The DataAPI contract and payload TypedDicts
- convex: ConvexDataAPI over a deployment's HTTP API
- memory: InMemoryDataAPI for dry runs and tests
"""

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
from .convex import ConvexDataAPI
from .memory import InMemoryDataAPI

__all__ = [
    # Contract
    "DataAPI",
    "EntityId",
    # Payloads
    "AccountPayload",
    "ContactAccountLink",
    "ContactPayload",
    "LeadPayload",
    "LeadUpdate",
    "LineItem",
    "QuotePayload",
    "WorkOrderPayload",
    "InvoicePayload",
    "InvoiceFromWorkOrderPayload",
    # Clients
    "ConvexDataAPI",
    "InMemoryDataAPI",
]

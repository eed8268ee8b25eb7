"""
Pure domain layer.

Value objects and decision functions with NO dependencies on the ORM,
the database, or I/O.  All domain objects are immutable.
"""

from procurement_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from procurement_kernel.domain.documents import (
    DOCUMENT_KINDS,
    Actor,
    Currency,
    Document,
    DocumentHeader,
    DocumentKind,
    DocumentStatus,
    DocumentType,
    LineItem,
    LineItemSpec,
    StatusFilter,
    kind_of,
)
from procurement_kernel.domain.headers import apply_header_patch, validate_header
from procurement_kernel.domain.lifecycle import DOCUMENT_WORKFLOW, plan_transition
from procurement_kernel.domain.line_items import validate_line_items
from procurement_kernel.domain.numbering import format_document_number
from procurement_kernel.domain.policy import DEFAULT_POLICIES, DocumentTypePolicy
from procurement_kernel.domain.price_history import PriceHistoryEntry, supersede
from procurement_kernel.domain.totals import LineTotals, document_totals, line_totals

__all__ = [
    "DOCUMENT_KINDS",
    "DEFAULT_POLICIES",
    "DOCUMENT_WORKFLOW",
    "Actor",
    "Clock",
    "Currency",
    "DeterministicClock",
    "Document",
    "DocumentHeader",
    "DocumentKind",
    "DocumentStatus",
    "DocumentType",
    "DocumentTypePolicy",
    "LineItem",
    "LineItemSpec",
    "LineTotals",
    "PriceHistoryEntry",
    "StatusFilter",
    "SystemClock",
    "apply_header_patch",
    "document_totals",
    "format_document_number",
    "kind_of",
    "line_totals",
    "plan_transition",
    "supersede",
    "validate_header",
    "validate_line_items",
]

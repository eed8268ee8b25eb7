"""Services for the procurement kernel (write side)."""

from procurement_kernel.services.audit import (
    AuditEvent,
    AuditSink,
    LoggingAuditSink,
    RecordingAuditSink,
)
from procurement_kernel.services.document_repository import DocumentRepository
from procurement_kernel.services.price_history import (
    PriceHistoryLedger,
    PriceHistoryReconciler,
)
from procurement_kernel.services.sequence_allocator import SequenceAllocator
from procurement_kernel.services.status_lifecycle import StatusLifecycle

__all__ = [
    "AuditEvent",
    "AuditSink",
    "DocumentRepository",
    "LoggingAuditSink",
    "PriceHistoryLedger",
    "PriceHistoryReconciler",
    "RecordingAuditSink",
    "SequenceAllocator",
    "StatusLifecycle",
]

"""
Audit events and sinks.

The kernel emits one ``AuditEvent`` per create, update, delete, status
change and sequence reset.  Persisting the audit log belongs to an
external collaborator behind the ``AuditSink`` interface; the sinks here
log events or keep them in memory.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import UUID

from procurement_kernel.domain.documents import DocumentType, kind_of
from procurement_kernel.logging_config import get_logger

logger = get_logger("services.audit")

RESET_SEQUENCE = "RESET_SEQUENCE"


@dataclass(frozen=True)
class AuditEvent:
    """One fire-and-forget audit record."""
    action: str
    table: str
    record_id: str | None
    actor_id: UUID
    timestamp: datetime
    details: dict[str, Any] = field(default_factory=dict)


def action_name(verb: str, document_type: DocumentType, suffix: str = "") -> str:
    """
    >>> action_name("UPDATE", DocumentType.PURCHASE_ORDER, "STATUS")
    'UPDATE_PURCHASE_ORDER_STATUS'
    """
    name = f"{verb}_{kind_of(document_type).audit_name}"
    return f"{name}_{suffix}" if suffix else name


class AuditSink(ABC):
    """Receives audit events after the emitting transaction committed."""

    @abstractmethod
    def emit(self, event: AuditEvent) -> None:
        ...


class LoggingAuditSink(AuditSink):
    """Writes each event to the structured log."""

    def emit(self, event: AuditEvent) -> None:
        logger.info(
            "audit_event",
            extra={
                "action": event.action,
                "table": event.table,
                "record_id": event.record_id,
                "audit_actor_id": str(event.actor_id),
                "timestamp": event.timestamp,
                "details": event.details,
            },
        )


class RecordingAuditSink(AuditSink):
    """Keeps events in memory, in emission order."""

    def __init__(self) -> None:
        self.events: list[AuditEvent] = []

    def emit(self, event: AuditEvent) -> None:
        self.events.append(event)

    def actions(self) -> list[str]:
        return [e.action for e in self.events]

"""
Procurement services -- the public API surface over the procurement kernel.

Each public method of ``ProcurementDocumentService`` owns its transaction,
maps storage failures to ``StorageUnavailableError``, and emits audit
events after commit.
"""

from procurement_services.document_service import (
    BULK_ARCHIVE_STATUSES,
    ProcurementDocumentService,
)

__all__ = [
    "BULK_ARCHIVE_STATUSES",
    "ProcurementDocumentService",
]

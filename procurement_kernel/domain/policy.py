"""
Per-document-type policy: number prefix, padding, and the Active status set.

Built from configuration by ``procurement_config`` and handed to the
repository; ``DEFAULT_POLICIES`` mirrors the shipped default configuration.
"""

from dataclasses import dataclass
from datetime import datetime

from procurement_kernel.domain.documents import DocumentStatus, DocumentType
from procurement_kernel.domain.numbering import DEFAULT_PADDING, format_document_number

DEFAULT_ACTIVE_STATUSES: frozenset[DocumentStatus] = frozenset({
    DocumentStatus.DRAFT,
    DocumentStatus.SENT,
})


@dataclass(frozen=True)
class DocumentTypePolicy:
    prefix: str
    number_padding: int = DEFAULT_PADDING
    active_statuses: frozenset[DocumentStatus] = DEFAULT_ACTIVE_STATUSES

    def __post_init__(self) -> None:
        if DocumentStatus.ARCHIVED in self.active_statuses:
            raise ValueError("Archived cannot be an active status")

    def document_number(self, sequence_number: int, created_at: datetime) -> str:
        return format_document_number(
            self.prefix, sequence_number, created_at, self.number_padding
        )


DEFAULT_POLICIES: dict[DocumentType, DocumentTypePolicy] = {
    DocumentType.QUOTE_REQUEST: DocumentTypePolicy(prefix="SC"),
    DocumentType.PURCHASE_ORDER: DocumentTypePolicy(prefix="OC"),
    DocumentType.SERVICE_ORDER: DocumentTypePolicy(prefix="OS"),
}

"""
Bridges from configuration to kernel inputs.

The kernel never imports ``procurement_config``; these functions translate
settings into the kernel's own value objects.
"""

from __future__ import annotations

from procurement_config.schema import ProcurementSettings
from procurement_kernel.domain.documents import DocumentStatus, DocumentType
from procurement_kernel.domain.policy import DocumentTypePolicy


def build_document_policies(
    settings: ProcurementSettings,
) -> dict[DocumentType, DocumentTypePolicy]:
    return {
        DocumentType(name): DocumentTypePolicy(
            prefix=doc.prefix,
            number_padding=doc.number_padding,
            active_statuses=frozenset(DocumentStatus(s) for s in doc.active_statuses),
        )
        for name, doc in settings.document_types.items()
    }

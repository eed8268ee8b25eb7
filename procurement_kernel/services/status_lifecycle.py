"""
StatusLifecycle -- applies document status transitions.

Responsibility:
    Loads the document, asks ``domain.lifecycle.plan_transition`` whether
    the requested change is legal, and persists the resulting status pair
    through DocumentRepository.  Items are never touched.

Architecture position:
    Kernel > Services.  Depends on DocumentRepository for persistence.

Invariants enforced:
    - Only transitions declared in DOCUMENT_WORKFLOW are applied.
    - Archiving stores the status held immediately before; unarchiving
      restores exactly that status and clears it.  A document with no
      stored pre-archive status cannot be unarchived.
"""

from uuid import UUID

from procurement_kernel.domain.documents import Document, DocumentStatus, DocumentType
from procurement_kernel.domain.lifecycle import plan_transition
from procurement_kernel.exceptions import InvalidTransitionError
from procurement_kernel.logging_config import get_logger
from procurement_kernel.services.document_repository import DocumentRepository

logger = get_logger("services.status_lifecycle")


class StatusLifecycle:
    """
    Status transitions for all document types.

    Non-goals:
        - Does NOT commit; flushes through the repository's session.
    """

    def __init__(self, repository: DocumentRepository):
        self._repository = repository

    def transition(
        self,
        document_type: DocumentType,
        document_id: UUID,
        target: DocumentStatus,
    ) -> Document:
        """
        Move a document to ``target``.

        Raises:
            DocumentNotFoundError: Unknown id.
            InvalidTransitionError: ``target`` not reachable from the
                current status.
            ValidationError: Leaving Draft without line items.
        """
        document = self._repository.get(document_type, document_id)
        plan = plan_transition(
            document_type.value,
            str(document_id),
            document.status,
            document.previous_status,
            target,
            len(document.items),
        )
        updated = self._repository.set_status(
            document_type, document_id, plan.status, plan.previous_status
        )
        logger.info(
            "document_status_changed",
            extra={
                "document_type": document_type.value,
                "document_id": str(document_id),
                "action": plan.action,
                "from_status": document.status.value,
                "to_status": plan.status.value,
            },
        )
        return updated

    def archive(self, document_type: DocumentType, document_id: UUID) -> Document:
        """Archive from Sent, Approved or Rejected, remembering that status."""
        return self.transition(document_type, document_id, DocumentStatus.ARCHIVED)

    def unarchive(self, document_type: DocumentType, document_id: UUID) -> Document:
        """
        Restore an archived document to its pre-archive status.

        Raises:
            InvalidTransitionError: Document not archived, or archived with
                no recorded pre-archive status.
        """
        document = self._repository.get(document_type, document_id)
        if document.status is not DocumentStatus.ARCHIVED:
            raise InvalidTransitionError(
                document_type.value,
                str(document_id),
                document.status.value,
                "<previous status>",
                reason="document is not archived",
            )
        if document.previous_status is None:
            raise InvalidTransitionError(
                document_type.value,
                str(document_id),
                document.status.value,
                "<previous status>",
                reason="no pre-archive status recorded",
            )
        return self.transition(document_type, document_id, document.previous_status)

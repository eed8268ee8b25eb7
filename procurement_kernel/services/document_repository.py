"""
DocumentRepository -- transactional CRUD over (header, line items).

Responsibility:
    The only component that mutates document header and line-item rows.
    Creates documents with a freshly allocated sequence number, replaces
    item sets wholesale on update, deletes documents with their items, and
    reads documents back as frozen ``Document`` records.

Architecture position:
    Kernel > Services.  Depends on SequenceAllocator (numbers), the pure
    line-item and header validators, and the document ORM models.
    Flush-only: the caller owns the transaction.

Invariants enforced:
    - Validation happens before any write; an invalid header or item set
      writes nothing and allocates no number.
    - A document is written as header then items.  A failure while writing
      items is reported as PartialWriteError naming the failing stage so
      the caller can roll back or issue a compensating ``delete``.
    - Updates replace the item set (delete then insert).  Line-item ids are
      not stable across updates.
    - Status and provenance are never changed through ``update``.

Failure modes:
    - HeaderValidationError / LineItemValidationError before any write.
    - DuplicateSequenceNumberError when the header insert hits an existing
      sequence number (only reachable after a backward reset).
    - PartialWriteError(stage="items_insert" | "items_delete").
    - DocumentNotFoundError for unknown ids.

Concurrency:
    No cross-call locking.  Two concurrent updates of the same document are
    last-writer-wins on the header and on the item set.
"""

from collections.abc import Iterable, Mapping, Sequence
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from procurement_kernel.domain.clock import Clock
from procurement_kernel.domain.documents import (
    HISTORY_STATUSES,
    Actor,
    Document,
    DocumentHeader,
    DocumentStatus,
    DocumentType,
    LineItemSpec,
    StatusFilter,
)
from procurement_kernel.domain.headers import apply_header_patch, validate_header
from procurement_kernel.domain.line_items import DEFAULT_TAX_RATE, validate_line_items
from procurement_kernel.domain.policy import DEFAULT_POLICIES, DocumentTypePolicy
from procurement_kernel.exceptions import (
    DocumentNotFoundError,
    DuplicateSequenceNumberError,
    PartialWriteError,
)
from procurement_kernel.logging_config import get_logger
from procurement_kernel.models.documents import (
    DocumentHeaderModel,
    PurchaseOrderModel,
    header_model_for,
)
from procurement_kernel.services.base import BaseService
from procurement_kernel.services.sequence_allocator import SequenceAllocator

logger = get_logger("services.document_repository")

StatusSelection = StatusFilter | DocumentStatus | None


class DocumentRepository(BaseService):
    """
    Generic repository for quote requests, purchase orders and service orders.

    Contract:
        Every method takes the ``DocumentType`` it operates on and returns
        frozen ``Document`` records, never ORM rows.

    Non-goals:
        - Does NOT decide status transitions (StatusLifecycle does).
        - Does NOT record price history (the service facade does).
    """

    def __init__(
        self,
        session: Session,
        allocator: SequenceAllocator,
        clock: Clock | None = None,
        policies: Mapping[DocumentType, DocumentTypePolicy] | None = None,
        default_tax_rate: Decimal = DEFAULT_TAX_RATE,
    ):
        super().__init__(session, clock)
        self._allocator = allocator
        self._policies = dict(DEFAULT_POLICIES)
        if policies:
            self._policies.update(policies)
        self._default_tax_rate = default_tax_rate

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _to_dto(self, row: DocumentHeaderModel) -> Document:
        policy = self._policies[row.document_type]
        return row.to_dto(policy.document_number(row.sequence_number, row.created_at))

    def _load(self, document_type: DocumentType, document_id: UUID) -> DocumentHeaderModel:
        row = self._session.get(header_model_for(document_type), document_id)
        if row is None:
            raise DocumentNotFoundError(document_type.value, str(document_id))
        return row

    def _write_items(self, row: DocumentHeaderModel, items: Sequence[LineItemSpec]) -> None:
        row.items.extend(
            row.item_model.from_spec(spec, line_number)
            for line_number, spec in enumerate(items, start=1)
        )
        self._session.flush()

    def _delete_items(self, row: DocumentHeaderModel) -> None:
        row.items.clear()
        self._session.flush()

    def _statuses_for(
        self, document_type: DocumentType, selection: StatusSelection,
    ) -> frozenset[DocumentStatus] | None:
        if selection is None:
            return None
        if selection is StatusFilter.ACTIVE:
            return self._policies[document_type].active_statuses
        if selection is StatusFilter.HISTORY:
            return HISTORY_STATUSES
        return frozenset({selection})

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create(
        self,
        document_type: DocumentType,
        header: DocumentHeader,
        items: Sequence[LineItemSpec],
        actor: Actor,
    ) -> Document:
        """
        Validate, allocate a sequence number, then write header and items.

        The document starts in Draft.  Provenance comes from ``actor`` and
        the injected clock.

        Raises:
            HeaderValidationError, LineItemValidationError: Nothing written.
            DuplicateSequenceNumberError: Header insert collided.
            PartialWriteError: The header insert failed after the number
                was allocated (stage ``header``, no document id), or the
                header was flushed and the items failed (stage
                ``items_insert``).  After ``items_insert`` the header belongs
                to the caller's transaction and must be rolled back or deleted.
        """
        header = validate_header(document_type, header)
        specs = validate_line_items(document_type, items, self._default_tax_rate)

        sequence_number = self._allocator.next(document_type)
        row = header_model_for(document_type)(
            sequence_number=sequence_number,
            status=DocumentStatus.DRAFT.value,
            created_by=actor.email,
            user_id=actor.actor_id,
            created_at=self._clock.now(),
        )
        row.apply_header(header)
        self._session.add(row)

        try:
            self._session.flush()
        except IntegrityError as exc:
            if "sequence_number" in str(exc.orig):
                logger.error(
                    "duplicate_sequence_number",
                    extra={
                        "document_type": document_type.value,
                        "sequence_number": sequence_number,
                    },
                )
                raise DuplicateSequenceNumberError(
                    document_type.value, sequence_number
                ) from exc
            logger.error(
                "document_partial_write",
                extra={
                    "document_type": document_type.value,
                    "sequence_number": sequence_number,
                    "stage": "header",
                },
            )
            raise PartialWriteError(
                document_type.value, None, "header", str(exc.orig)
            ) from exc

        try:
            self._write_items(row, specs)
        except SQLAlchemyError as exc:
            logger.error(
                "document_partial_write",
                extra={
                    "document_type": document_type.value,
                    "document_id": str(row.id),
                    "stage": "items_insert",
                },
            )
            raise PartialWriteError(
                document_type.value, str(row.id), "items_insert", str(exc)
            ) from exc

        logger.info(
            "document_created",
            extra={
                "document_type": document_type.value,
                "document_id": str(row.id),
                "sequence_number": sequence_number,
                "item_count": len(specs),
            },
        )
        return self._to_dto(row)

    def update(
        self,
        document_type: DocumentType,
        document_id: UUID,
        header_patch: Mapping[str, Any] | None = None,
        items: Sequence[LineItemSpec] | None = None,
    ) -> Document:
        """
        Patch the header and, when ``items`` is given, replace the item set.

        ``items=None`` leaves the items untouched.  A given item list
        (validated first, so never empty) replaces every existing item.

        Raises:
            DocumentNotFoundError: Unknown id.
            HeaderValidationError, LineItemValidationError: Nothing written.
            PartialWriteError: Item replacement failed at ``items_delete``
                or ``items_insert``.  After ``items_insert`` the document may
                hold zero items until the transaction rolls back.
        """
        row = self._load(document_type, document_id)
        header = apply_header_patch(document_type, row.to_header(), header_patch or {})
        specs = (
            validate_line_items(document_type, items, self._default_tax_rate)
            if items is not None
            else None
        )

        row.apply_header(header)
        self._session.flush()

        if specs is not None:
            for stage, write in (
                ("items_delete", lambda: self._delete_items(row)),
                ("items_insert", lambda: self._write_items(row, specs)),
            ):
                try:
                    write()
                except SQLAlchemyError as exc:
                    logger.error(
                        "document_partial_write",
                        extra={
                            "document_type": document_type.value,
                            "document_id": str(document_id),
                            "stage": stage,
                        },
                    )
                    raise PartialWriteError(
                        document_type.value, str(document_id), stage, str(exc)
                    ) from exc

        logger.info(
            "document_updated",
            extra={
                "document_type": document_type.value,
                "document_id": str(document_id),
                "fields": sorted(header_patch or {}),
                "items_replaced": specs is not None,
            },
        )
        return self._to_dto(row)

    def set_status(
        self,
        document_type: DocumentType,
        document_id: UUID,
        status: DocumentStatus,
        previous_status: DocumentStatus | None,
    ) -> Document:
        """Persist a status pair decided by the lifecycle; items untouched."""
        row = self._load(document_type, document_id)
        row.status = status.value
        row.previous_status = previous_status.value if previous_status else None
        self._session.flush()
        return self._to_dto(row)

    def delete(self, document_type: DocumentType, document_id: UUID) -> None:
        """
        Remove the header and all its items.

        Also the compensating action after a PartialWriteError.

        Raises:
            DocumentNotFoundError: Unknown id.
        """
        row = self._load(document_type, document_id)
        self._session.delete(row)
        self._session.flush()
        logger.info(
            "document_deleted",
            extra={"document_type": document_type.value, "document_id": str(document_id)},
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, document_type: DocumentType, document_id: UUID) -> Document:
        """Header joined with its items, items in insertion order."""
        return self._to_dto(self._load(document_type, document_id))

    def get_all(
        self,
        document_type: DocumentType,
        status_filter: StatusSelection = None,
        supplier_id: UUID | None = None,
    ) -> list[Document]:
        """Documents of one type, newest first."""
        model = header_model_for(document_type)
        stmt = select(model).order_by(model.created_at.desc(), model.sequence_number.desc())

        statuses = self._statuses_for(document_type, status_filter)
        if statuses is not None:
            stmt = stmt.where(model.status.in_(sorted(s.value for s in statuses)))
        if supplier_id is not None:
            stmt = stmt.where(model.supplier_id == supplier_id)

        return [self._to_dto(row) for row in self._session.execute(stmt).scalars()]

    def linked_service_orders(self, purchase_order_ids: Iterable[UUID]) -> set[UUID]:
        """Service order ids of the given purchase orders that were generated from one."""
        ids = list(purchase_order_ids)
        if not ids:
            return set()
        stmt = (
            select(PurchaseOrderModel.service_order_id)
            .where(PurchaseOrderModel.id.in_(ids))
            .where(PurchaseOrderModel.service_order_id.is_not(None))
        )
        return set(self._session.execute(stmt).scalars())

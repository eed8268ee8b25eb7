"""
ProcurementDocumentService -- the synchronous API surface of the core.

Responsibility
--------------
One method per public operation.  Each method opens its own transaction,
composes the kernel services (repository, lifecycle, ledger, reconciler)
on that session, commits on success and rolls back on any exception.

Invariants enforced
-------------------
* Each public method owns the transaction boundary; kernel services only
  flush.  Sequence allocation is the exception: it commits on its own.
* Provenance comes only from the explicit ``Actor`` argument.
* Purchase and service order writes record their realized prices in the
  same transaction as the document write.
* Audit events are emitted after commit.  A failing sink is logged at
  ERROR and does not undo the committed operation.

Failure modes
-------------
* Validation and transition errors propagate unchanged; never retried.
* ``sqlalchemy.exc.OperationalError`` -> ``StorageUnavailableError``
  naming the operation.
* PartialWriteError propagates after the rollback of the whole unit.

Usage::

    service = ProcurementDocumentService.from_settings(get_active_config())
    po_id = service.create_document(
        DocumentType.PURCHASE_ORDER, header, items, actor,
    )
    service.transition_status(
        DocumentType.PURCHASE_ORDER, po_id, DocumentStatus.SENT, actor,
    )
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping, Sequence
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, sessionmaker

from procurement_config import ProcurementSettings, build_document_policies
from procurement_kernel.db.engine import build_engine, session_scope
from procurement_kernel.db.immutability import register_immutability_listeners
from procurement_kernel.domain.clock import Clock, SystemClock
from procurement_kernel.domain.documents import (
    Actor,
    Document,
    DocumentHeader,
    DocumentStatus,
    DocumentType,
    LineItemSpec,
    StatusFilter,
)
from procurement_kernel.domain.line_items import DEFAULT_TAX_RATE
from procurement_kernel.domain.policy import DocumentTypePolicy
from procurement_kernel.domain.price_history import PriceHistoryEntry
from procurement_kernel.domain.totals import LineTotals, document_totals
from procurement_kernel.exceptions import StorageUnavailableError, ValidationError
from procurement_kernel.logging_config import LogContext, configure_logging, get_logger
from procurement_kernel.models.documents import header_model_for
from procurement_kernel.selectors.purchase_history_selector import (
    PurchaseHistoryRow,
    PurchaseHistorySelector,
)
from procurement_kernel.services.audit import (
    RESET_SEQUENCE,
    AuditEvent,
    AuditSink,
    LoggingAuditSink,
    action_name,
)
from procurement_kernel.services.document_repository import DocumentRepository
from procurement_kernel.services.price_history import (
    PriceHistoryLedger,
    PriceHistoryReconciler,
)
from procurement_kernel.services.sequence_allocator import SequenceAllocator
from procurement_kernel.services.status_lifecycle import StatusLifecycle

logger = get_logger("services.procurement")

# Purchase orders a supplier-wide archive sweeps up
BULK_ARCHIVE_STATUSES = (DocumentStatus.SENT, DocumentStatus.REJECTED)

_ARCHIVABLE = frozenset({
    DocumentStatus.SENT,
    DocumentStatus.APPROVED,
    DocumentStatus.REJECTED,
})


@dataclass
class _UnitOfWork:
    """Kernel services bound to one transaction, plus its pending audit events."""
    session: Session
    repository: DocumentRepository
    lifecycle: StatusLifecycle
    ledger: PriceHistoryLedger
    reconciler: PriceHistoryReconciler
    events: list[AuditEvent] = field(default_factory=list)


class ProcurementDocumentService:
    """
    Public entry point for procurement document operations.

    Transaction boundary: every public method commits on success and rolls
    back on any exception.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        clock: Clock | None = None,
        audit_sink: AuditSink | None = None,
        policies: Mapping[DocumentType, DocumentTypePolicy] | None = None,
        default_tax_rate: Decimal = DEFAULT_TAX_RATE,
        reset_secret: str | None = None,
        allocator: SequenceAllocator | None = None,
    ):
        self._session_factory = session_factory
        self._clock = clock or SystemClock()
        self._audit_sink = audit_sink or LoggingAuditSink()
        self._policies = policies
        self._default_tax_rate = default_tax_rate
        self._allocator = allocator or SequenceAllocator(session_factory, reset_secret)
        register_immutability_listeners()

    @classmethod
    def from_settings(
        cls,
        settings: ProcurementSettings,
        clock: Clock | None = None,
        audit_sink: AuditSink | None = None,
    ) -> ProcurementDocumentService:
        """Build the service, its engine and its session factory from configuration."""
        configure_logging(level=settings.log_level)
        db = settings.database
        engine = build_engine(
            db.url,
            echo=db.echo,
            pool_size=db.pool_size,
            max_overflow=db.max_overflow,
            pool_timeout=db.pool_timeout,
            sqlite_busy_timeout=db.sqlite_busy_timeout,
        )
        logger.info(
            "procurement_service_configured",
            extra={"config_id": settings.config_id, "dialect": engine.dialect.name},
        )
        return cls(
            sessionmaker(bind=engine, expire_on_commit=False),
            clock=clock,
            audit_sink=audit_sink,
            policies=build_document_policies(settings),
            default_tax_rate=settings.default_tax_rate,
            reset_secret=settings.sequence.reset_secret,
        )

    # ------------------------------------------------------------------
    # Transaction and audit plumbing
    # ------------------------------------------------------------------

    @contextmanager
    def _unit_of_work(self, operation: str, actor: Actor | None = None) -> Iterator[_UnitOfWork]:
        uow: _UnitOfWork | None = None
        with LogContext.bind(
            operation=operation,
            actor_id=str(actor.actor_id) if actor else None,
        ):
            try:
                with session_scope(self._session_factory) as session:
                    repository = DocumentRepository(
                        session,
                        self._allocator,
                        clock=self._clock,
                        policies=self._policies,
                        default_tax_rate=self._default_tax_rate,
                    )
                    uow = _UnitOfWork(
                        session=session,
                        repository=repository,
                        lifecycle=StatusLifecycle(repository),
                        ledger=PriceHistoryLedger(session, self._clock),
                        reconciler=PriceHistoryReconciler(repository),
                    )
                    yield uow
            except OperationalError as exc:
                raise StorageUnavailableError(operation, str(exc.orig or exc)) from exc

            self._emit(uow.events)

    def _record(
        self,
        uow: _UnitOfWork,
        action: str,
        table: str,
        record_id: str | None,
        actor: Actor,
        **details: Any,
    ) -> None:
        uow.events.append(AuditEvent(
            action=action,
            table=table,
            record_id=record_id,
            actor_id=actor.actor_id,
            timestamp=self._clock.now(),
            details=details,
        ))

    def _emit(self, events: Sequence[AuditEvent]) -> None:
        for event in events:
            try:
                self._audit_sink.emit(event)
            except Exception:
                logger.error(
                    "audit_sink_failed",
                    extra={"action": event.action, "record_id": event.record_id},
                    exc_info=True,
                )

    @staticmethod
    def _table(document_type: DocumentType) -> str:
        return header_model_for(document_type).__tablename__

    # ------------------------------------------------------------------
    # Sequences
    # ------------------------------------------------------------------

    def allocate_sequence(self, document_type: DocumentType) -> int:
        """Allocate and burn the next sequence number of ``document_type``."""
        try:
            return self._allocator.next(document_type)
        except OperationalError as exc:
            raise StorageUnavailableError("allocate_sequence", str(exc.orig or exc)) from exc

    def reset_sequence(
        self,
        document_type: DocumentType,
        start_number: int,
        auth_token: str | None,
        actor: Actor,
    ) -> None:
        """
        Make the next allocation for ``document_type`` return ``start_number``.

        Raises:
            SequenceResetNotAuthorizedError: Wrong or missing secret.
            ValidationError: ``start_number`` < 1.
        """
        with LogContext.bind(operation="reset_sequence", actor_id=str(actor.actor_id)):
            try:
                previous = self._allocator.reset(document_type, start_number, auth_token)
            except OperationalError as exc:
                raise StorageUnavailableError("reset_sequence", str(exc.orig or exc)) from exc

        self._emit([AuditEvent(
            action=RESET_SEQUENCE,
            table="sequence_counters",
            record_id=document_type.value,
            actor_id=actor.actor_id,
            timestamp=self._clock.now(),
            details={"start_number": start_number, "previous_value": previous},
        )])

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    def _create(
        self,
        uow: _UnitOfWork,
        document_type: DocumentType,
        header: DocumentHeader,
        items: Sequence[LineItemSpec],
        actor: Actor,
        **audit_details: Any,
    ) -> Document:
        document = uow.repository.create(document_type, header, items, actor)
        prices = uow.ledger.append_for_document(document)
        self._record(
            uow,
            action_name("CREATE", document_type),
            self._table(document_type),
            str(document.id),
            actor,
            sequence_number=document.sequence_number,
            document_number=document.document_number,
            item_count=len(document.items),
            price_entries=len(prices),
            **audit_details,
        )
        return document

    def create_document(
        self,
        document_type: DocumentType,
        header: DocumentHeader,
        items: Sequence[LineItemSpec],
        actor: Actor,
    ) -> UUID:
        """Create a Draft document with its items; returns the new id."""
        with self._unit_of_work("create_document", actor) as uow:
            document = self._create(uow, document_type, header, items, actor)
        return document.id

    def update_document(
        self,
        document_type: DocumentType,
        document_id: UUID,
        header_patch: Mapping[str, Any] | None,
        items: Sequence[LineItemSpec] | None,
        actor: Actor,
    ) -> None:
        """
        Patch the header and, when ``items`` is given, replace all items.

        Replaced items of priced documents are recorded as new price-history
        entries; earlier entries stay.
        """
        with self._unit_of_work("update_document", actor) as uow:
            document = uow.repository.update(document_type, document_id, header_patch, items)
            prices = uow.ledger.append_for_document(document) if items is not None else []
            self._record(
                uow,
                action_name("UPDATE", document_type),
                self._table(document_type),
                str(document_id),
                actor,
                fields=sorted(header_patch or {}),
                items_replaced=items is not None,
                price_entries=len(prices),
            )

    def get_document(self, document_type: DocumentType, document_id: UUID) -> Document:
        with self._unit_of_work("get_document") as uow:
            return uow.repository.get(document_type, document_id)

    def list_documents(
        self,
        document_type: DocumentType,
        status_filter: StatusFilter | DocumentStatus | str | None = None,
    ) -> list[Document]:
        """
        Documents of one type, newest first.

        ``status_filter`` is ``Active``, ``History``, a single status, or
        None for all; strings are accepted by value.

        Raises:
            ValidationError: A string that names no filter or status.
        """
        if isinstance(status_filter, str):
            try:
                status_filter = StatusFilter(status_filter)
            except ValueError:
                try:
                    status_filter = DocumentStatus(status_filter)
                except ValueError:
                    raise ValidationError(
                        f"Unknown status filter: {status_filter!r}"
                    ) from None
        with self._unit_of_work("list_documents") as uow:
            return uow.repository.get_all(document_type, status_filter)

    def delete_document(
        self, document_type: DocumentType, document_id: UUID, actor: Actor,
    ) -> None:
        """Delete a document and its items.  Its price history stays."""
        with self._unit_of_work("delete_document", actor) as uow:
            uow.repository.delete(document_type, document_id)
            self._record(
                uow,
                action_name("DELETE", document_type),
                self._table(document_type),
                str(document_id),
                actor,
            )

    def document_totals(self, document_type: DocumentType, document_id: UUID) -> LineTotals:
        """Summed line totals (value, discount, net, sales, tax, total)."""
        return document_totals(self.get_document(document_type, document_id).items)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def _record_status_change(
        self, uow: _UnitOfWork, before: Document, after: Document, actor: Actor,
    ) -> None:
        self._record(
            uow,
            action_name("UPDATE", after.document_type, "STATUS"),
            self._table(after.document_type),
            str(after.id),
            actor,
            from_status=before.status.value,
            to_status=after.status.value,
        )

    def transition_status(
        self,
        document_type: DocumentType,
        document_id: UUID,
        target: DocumentStatus,
        actor: Actor,
    ) -> None:
        with self._unit_of_work("transition_status", actor) as uow:
            before = uow.repository.get(document_type, document_id)
            after = uow.lifecycle.transition(document_type, document_id, target)
            self._record_status_change(uow, before, after, actor)

    def archive_document(
        self, document_type: DocumentType, document_id: UUID, actor: Actor,
    ) -> None:
        with self._unit_of_work("archive_document", actor) as uow:
            before = uow.repository.get(document_type, document_id)
            after = uow.lifecycle.archive(document_type, document_id)
            self._record_status_change(uow, before, after, actor)

    def unarchive_document(
        self, document_type: DocumentType, document_id: UUID, actor: Actor,
    ) -> None:
        with self._unit_of_work("unarchive_document", actor) as uow:
            before = uow.repository.get(document_type, document_id)
            after = uow.lifecycle.unarchive(document_type, document_id)
            self._record_status_change(uow, before, after, actor)

    def bulk_archive_by_supplier(self, supplier_id: UUID, actor: Actor) -> int:
        """
        Archive every Sent or Rejected purchase order of ``supplier_id``.

        Returns:
            Number of orders archived.
        """
        with self._unit_of_work("bulk_archive_by_supplier", actor) as uow:
            count = 0
            for status in BULK_ARCHIVE_STATUSES:
                for before in uow.repository.get_all(
                    DocumentType.PURCHASE_ORDER, status, supplier_id=supplier_id,
                ):
                    after = uow.lifecycle.archive(DocumentType.PURCHASE_ORDER, before.id)
                    self._record_status_change(uow, before, after, actor)
                    count += 1

        logger.info(
            "purchase_orders_bulk_archived",
            extra={"supplier_id": str(supplier_id), "count": count},
        )
        return count

    # ------------------------------------------------------------------
    # Purchase order generation
    # ------------------------------------------------------------------

    def generate_purchase_order_from_service_order(
        self, service_order_id: UUID, actor: Actor,
    ) -> UUID:
        """
        Create a Draft purchase order from a service order's priced materials.

        The new order links back through ``service_order_id``; from then on
        the service order's price-history entries are superseded by the
        purchase order's.
        """
        with self._unit_of_work("generate_purchase_order_from_service_order", actor) as uow:
            source = uow.repository.get(DocumentType.SERVICE_ORDER, service_order_id)
            header = DocumentHeader(
                company_id=source.header.company_id,
                supplier_id=source.header.supplier_id,
                currency=source.header.currency,
                exchange_rate=source.header.exchange_rate,
                observations=f"Generated from Service Order {source.document_number}",
                service_order_id=source.id,
            )
            items = [
                item.to_spec() for item in source.items if item.material_id is not None
            ]
            document = self._create(
                uow,
                DocumentType.PURCHASE_ORDER,
                header,
                items,
                actor,
                service_order_id=str(source.id),
            )
        return document.id

    def generate_purchase_order_from_quote_request(
        self,
        quote_request_id: UUID,
        unit_prices: Mapping[int, Decimal],
        actor: Actor,
        header_overrides: Mapping[str, Any] | None = None,
    ) -> UUID:
        """
        Create a Draft purchase order from a quote request's items.

        ``unit_prices`` maps quote line numbers to the quoted price; lines
        without a price get zero.  ``header_overrides`` may set purchase
        order header fields (delivery date, payment terms, ...).  The quote
        request is archived in the same transaction when it is Sent,
        Approved or Rejected.
        """
        with self._unit_of_work("generate_purchase_order_from_quote_request", actor) as uow:
            source = uow.repository.get(DocumentType.QUOTE_REQUEST, quote_request_id)
            values: dict[str, Any] = {
                "company_id": source.header.company_id,
                "supplier_id": source.header.supplier_id,
                "currency": source.header.currency,
                "exchange_rate": source.header.exchange_rate,
                "observations": source.header.observations,
            }
            values.update(header_overrides or {})
            values["quote_request_id"] = source.id
            items = [
                LineItemSpec(
                    quantity=item.quantity,
                    unit=item.unit,
                    material_id=item.material_id,
                    material_name=item.material_name,
                    description=item.description,
                    unit_price=unit_prices.get(item.line_number, Decimal("0")),
                )
                for item in source.items
            ]
            document = self._create(
                uow,
                DocumentType.PURCHASE_ORDER,
                DocumentHeader(**values),
                items,
                actor,
                quote_request_id=str(source.id),
            )

            if source.status in _ARCHIVABLE:
                archived = uow.lifecycle.archive(DocumentType.QUOTE_REQUEST, source.id)
                self._record_status_change(uow, source, archived, actor)
        return document.id

    # ------------------------------------------------------------------
    # Price history
    # ------------------------------------------------------------------

    def append_price_history(
        self, entry: PriceHistoryEntry, actor: Actor | None = None,
    ) -> PriceHistoryEntry:
        """Record one price manually (or on behalf of an integration)."""
        with self._unit_of_work("append_price_history", actor) as uow:
            return uow.ledger.append(entry)

    def get_price_history(self, material_id: UUID) -> list[PriceHistoryEntry]:
        """Entries for a material, newest first, with superseded entries hidden."""
        with self._unit_of_work("get_price_history") as uow:
            return uow.reconciler.reconcile(uow.ledger.query_by_material(material_id))

    # ------------------------------------------------------------------
    # Reports
    # ------------------------------------------------------------------

    def purchase_history_report(
        self,
        supplier_id: UUID | None = None,
        material_id: UUID | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
        status: DocumentStatus | None = None,
    ) -> list[PurchaseHistoryRow]:
        with self._unit_of_work("purchase_history_report") as uow:
            return PurchaseHistorySelector(uow.session).report(
                supplier_id=supplier_id,
                material_id=material_id,
                start_date=start_date,
                end_date=end_date,
                status=status.value if status else None,
            )

"""
PriceHistoryLedger and PriceHistoryReconciler.

Responsibility:
    The ledger appends realized supplier prices and reads them back per
    material.  The reconciler hides service order entries that were
    superseded by a purchase order generated from the same service order.

Architecture position:
    Kernel > Services.  The ledger owns the ``price_history`` table; the
    reconciler depends on DocumentRepository for the purchase order to
    service order linkage.

Invariants enforced:
    - Append-only: the ledger never updates or deletes (also enforced by
      ORM listeners).
    - An entry references a purchase order or a service order, never both.

Failure modes:
    - PriceHistoryEntryError on append of an entry referencing both.
    - The reconciler fails open: if the linkage lookup raises a storage
      error it logs ``price_history_reconciliation_degraded`` and returns
      the unfiltered entries.
"""

from collections.abc import Sequence
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from procurement_kernel.domain.clock import Clock
from procurement_kernel.domain.documents import Document, DocumentType
from procurement_kernel.domain.price_history import (
    PriceHistoryEntry,
    referenced_purchase_orders,
    supersede,
    validate_entry,
)
from procurement_kernel.logging_config import get_logger
from procurement_kernel.models.price_history import PriceHistoryEntryModel
from procurement_kernel.services.base import BaseService
from procurement_kernel.services.document_repository import DocumentRepository

logger = get_logger("services.price_history")


class PriceHistoryLedger(BaseService):
    """Append-only record of realized supplier prices."""

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session, clock)

    def append(self, entry: PriceHistoryEntry) -> PriceHistoryEntry:
        """
        Insert one entry; ``recorded_at`` defaults to the clock's now.

        Raises:
            PriceHistoryEntryError: Both a purchase and a service order set.
        """
        validate_entry(entry)
        row = PriceHistoryEntryModel.from_dto(entry, recorded_at=self._clock.now())
        self._session.add(row)
        self._session.flush()

        logger.info(
            "price_history_appended",
            extra={
                "entry_id": str(row.id),
                "material_id": str(entry.material_id),
                "supplier_id": str(entry.supplier_id),
                "unit_price": entry.unit_price,
                "currency": entry.currency.value,
            },
        )
        return row.to_dto()

    def append_for_document(self, document: Document) -> list[PriceHistoryEntry]:
        """
        Record the realized prices of a purchase or service order.

        One entry per item that references a material and carries a
        positive unit price.  Quote requests record nothing.
        """
        if document.document_type is DocumentType.QUOTE_REQUEST:
            return []

        source = (
            {"purchase_order_id": document.id}
            if document.document_type is DocumentType.PURCHASE_ORDER
            else {"service_order_id": document.id}
        )
        header = document.header
        appended = []
        for item in document.items:
            if item.material_id is None or (item.unit_price or Decimal("0")) <= 0:
                continue
            appended.append(self.append(PriceHistoryEntry(
                material_id=item.material_id,
                supplier_id=header.supplier_id,
                unit_price=item.unit_price,
                currency=header.currency,
                exchange_rate=header.exchange_rate,
                user_id=document.user_id,
                **source,
            )))
        return appended

    def query_by_material(self, material_id: UUID) -> list[PriceHistoryEntry]:
        """All entries for a material, newest first; ties by entry id."""
        stmt = (
            select(PriceHistoryEntryModel)
            .where(PriceHistoryEntryModel.material_id == material_id)
            .order_by(
                PriceHistoryEntryModel.recorded_at.desc(),
                PriceHistoryEntryModel.id,
            )
        )
        return [row.to_dto() for row in self._session.execute(stmt).scalars()]


class PriceHistoryReconciler:
    """
    Read-time supersession of service order entries by purchase order entries.

    Contract:
        Given the raw entries of one material, drop every entry whose
        ``service_order_id`` belongs to a service order that a referenced
        purchase order was generated from.  Everything else is kept, in order.
    """

    def __init__(self, repository: DocumentRepository):
        self._repository = repository

    def reconcile(self, entries: Sequence[PriceHistoryEntry]) -> list[PriceHistoryEntry]:
        purchase_order_ids = referenced_purchase_orders(entries)
        if not purchase_order_ids:
            return list(entries)

        try:
            linked = self._repository.linked_service_orders(purchase_order_ids)
        except SQLAlchemyError:
            logger.warning(
                "price_history_reconciliation_degraded",
                extra={
                    "entry_count": len(entries),
                    "purchase_order_count": len(purchase_order_ids),
                },
                exc_info=True,
            )
            return list(entries)

        result = supersede(entries, linked)
        if len(result) != len(entries):
            logger.debug(
                "price_history_superseded",
                extra={
                    "hidden": len(entries) - len(result),
                    "linked_service_orders": len(linked),
                },
            )
        return result

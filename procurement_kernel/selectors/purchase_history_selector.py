"""
Module: procurement_kernel.selectors.purchase_history_selector
Responsibility: Purchase history report -- purchase order items joined to
    their headers, filtered by supplier, material, creation date range and
    status.  A thin read projection; no aggregation.

Failure modes:
    - Returns an empty list when nothing matches (never raises on absence).
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select

from procurement_kernel.models.documents import PurchaseOrderItemModel, PurchaseOrderModel
from procurement_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class PurchaseHistoryRow:
    purchase_order_id: UUID
    sequence_number: int
    status: str
    company_id: UUID
    supplier_id: UUID
    currency: str
    exchange_rate: Decimal | None
    created_at: datetime
    line_number: int
    material_id: UUID | None
    material_name: str | None
    description: str | None
    quantity: Decimal
    unit: str
    unit_price: Decimal

    @property
    def subtotal(self) -> Decimal:
        return self.quantity * self.unit_price


class PurchaseHistorySelector(BaseSelector):
    """Read-only access to purchase order lines across orders."""

    def report(
        self,
        supplier_id: UUID | None = None,
        material_id: UUID | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
        status: str | None = None,
    ) -> list[PurchaseHistoryRow]:
        """
        Purchase order lines, newest order first.

        ``end_date`` is inclusive: orders created at any time on that day
        are included.
        """
        po = PurchaseOrderModel
        item = PurchaseOrderItemModel
        stmt = (
            select(po, item)
            .join(item, item.document_id == po.id)
            .order_by(po.created_at.desc(), po.sequence_number.desc(), item.line_number)
        )

        if supplier_id is not None:
            stmt = stmt.where(po.supplier_id == supplier_id)
        if material_id is not None:
            stmt = stmt.where(item.material_id == material_id)
        if start_date is not None:
            stmt = stmt.where(
                po.created_at >= datetime.combine(start_date, time.min, tzinfo=timezone.utc)
            )
        if end_date is not None:
            next_day = datetime.combine(end_date + timedelta(days=1), time.min, tzinfo=timezone.utc)
            stmt = stmt.where(po.created_at < next_day)
        if status is not None:
            stmt = stmt.where(po.status == status)

        return [
            PurchaseHistoryRow(
                purchase_order_id=header.id,
                sequence_number=header.sequence_number,
                status=header.status,
                company_id=header.company_id,
                supplier_id=header.supplier_id,
                currency=header.currency,
                exchange_rate=header.exchange_rate,
                created_at=header.created_at,
                line_number=line.line_number,
                material_id=line.material_id,
                material_name=line.material_name,
                description=line.description,
                quantity=line.quantity,
                unit=line.unit,
                unit_price=line.unit_price,
            )
            for header, line in self.session.execute(stmt).all()
        ]

"""
SQLAlchemy ORM model for the price-history ledger.

Append-only: rows are inserted by ``PriceHistoryLedger`` and never updated
or deleted (enforced by listeners in ``db/immutability.py``).  Document ids
are back-references for lookup, not foreign keys; deleting a document
leaves its realized prices in place.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import CheckConstraint, DateTime, Index, String, func
from sqlalchemy.orm import Mapped, mapped_column

from procurement_kernel.db.base import Base
from procurement_kernel.domain.documents import Currency
from procurement_kernel.domain.price_history import PriceHistoryEntry


class PriceHistoryEntryModel(Base):
    """One realized supplier price for a material."""

    __tablename__ = "price_history"

    __table_args__ = (
        CheckConstraint(
            "purchase_order_id IS NULL OR service_order_id IS NULL",
            name="ck_price_history_single_source",
        ),
        Index("idx_price_history_material", "material_id"),
        Index("idx_price_history_supplier", "supplier_id"),
        Index("idx_price_history_purchase_order", "purchase_order_id"),
        Index("idx_price_history_service_order", "service_order_id"),
    )

    material_id: Mapped[UUID] = mapped_column(nullable=False)
    supplier_id: Mapped[UUID] = mapped_column(nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="USD")
    exchange_rate: Mapped[Decimal | None]
    purchase_order_id: Mapped[UUID | None]
    service_order_id: Mapped[UUID | None]
    user_id: Mapped[UUID | None]
    recorded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    def to_dto(self) -> PriceHistoryEntry:
        return PriceHistoryEntry(
            id=self.id,
            material_id=self.material_id,
            supplier_id=self.supplier_id,
            unit_price=self.unit_price,
            currency=Currency(self.currency),
            exchange_rate=self.exchange_rate,
            purchase_order_id=self.purchase_order_id,
            service_order_id=self.service_order_id,
            user_id=self.user_id,
            recorded_at=self.recorded_at,
        )

    @classmethod
    def from_dto(cls, dto: PriceHistoryEntry, recorded_at: datetime) -> "PriceHistoryEntryModel":
        row = cls(
            material_id=dto.material_id,
            supplier_id=dto.supplier_id,
            unit_price=dto.unit_price,
            currency=dto.currency.value,
            exchange_rate=dto.exchange_rate,
            purchase_order_id=dto.purchase_order_id,
            service_order_id=dto.service_order_id,
            user_id=dto.user_id,
            recorded_at=dto.recorded_at or recorded_at,
        )
        if dto.id is not None:
            row.id = dto.id
        return row

    def __repr__(self) -> str:
        return f"<PriceHistoryEntryModel {self.material_id} {self.unit_price} {self.currency}>"

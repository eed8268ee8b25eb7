"""
SQLAlchemy ORM models for procurement documents and their line items.

Responsibility
--------------
One header table and one item table per document type:

    quote_requests   / quote_request_items     (quantity-only items)
    purchase_orders  / purchase_order_items    (priced items)
    service_orders   / service_order_items     (priced items)

Architecture position
---------------------
**Kernel > Models** -- persistence only.  Inherits from ``ProvenanceBase``
(kernel db layer).  Converted to the frozen records in
``procurement_kernel.domain.documents`` via ``to_dto``.

Invariants enforced
-------------------
* ``sequence_number`` is unique per header table.  The constraint name
  contains ``sequence_number`` so that duplicate-key errors can be told
  apart from other integrity failures.
* A line item belongs to exactly one header and is destroyed with it
  (ORM ``delete-orphan`` cascade plus ``ON DELETE CASCADE``).
* Prices, quantities and rates are ``Numeric(38, 9)`` -- never float.
* Enum fields are stored as their string values.
"""

from datetime import date
from decimal import Decimal
from typing import ClassVar
from uuid import UUID

from sqlalchemy import Boolean, Date, ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from procurement_kernel.db.base import Base, ProvenanceBase
from procurement_kernel.domain.documents import (
    Currency,
    Document,
    DocumentHeader,
    DocumentStatus,
    DocumentType,
    LineItem,
    LineItemSpec,
    kind_of,
)

# ---------------------------------------------------------------------------
# Headers
# ---------------------------------------------------------------------------


class DocumentHeaderModel(ProvenanceBase):
    """
    Columns shared by every document header.

    Subclasses add their type-specific columns, the ``items`` relationship,
    and the ``document_type`` / ``item_model`` class attributes.
    """

    __abstract__ = True

    document_type: ClassVar[DocumentType]
    item_model: ClassVar[type["LineItemModelBase"]]

    sequence_number: Mapped[int] = mapped_column(nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=DocumentStatus.DRAFT.value,
    )
    previous_status: Mapped[str | None] = mapped_column(String(20), nullable=True)
    company_id: Mapped[UUID] = mapped_column(nullable=False)
    supplier_id: Mapped[UUID] = mapped_column(nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="USD")
    exchange_rate: Mapped[Decimal | None]
    observations: Mapped[str | None] = mapped_column(Text, nullable=True)

    def to_header(self) -> DocumentHeader:
        values = {
            name: getattr(self, name)
            for name in kind_of(self.document_type).header_fields
        }
        values["currency"] = Currency(self.currency)
        return DocumentHeader(**values)

    def apply_header(self, header: DocumentHeader) -> None:
        """Copy every field this type carries from ``header`` onto the row."""
        for name in kind_of(self.document_type).header_fields:
            value = getattr(header, name)
            if name == "currency":
                value = value.value
            setattr(self, name, value)

    def to_dto(self, document_number: str) -> Document:
        return Document(
            id=self.id,
            document_type=self.document_type,
            sequence_number=self.sequence_number,
            document_number=document_number,
            status=DocumentStatus(self.status),
            previous_status=(
                DocumentStatus(self.previous_status) if self.previous_status else None
            ),
            header=self.to_header(),
            created_by=self.created_by,
            user_id=self.user_id,
            created_at=self.created_at,
            items=tuple(item.to_dto() for item in self.items),
        )

    def __repr__(self) -> str:
        return (
            f"<{type(self).__name__} #{self.sequence_number} [{self.status}]>"
        )


# ---------------------------------------------------------------------------
# Line items
# ---------------------------------------------------------------------------


class LineItemModelBase(Base):
    """Columns shared by every line-item table."""

    __abstract__ = True

    line_number: Mapped[int] = mapped_column(nullable=False)
    material_id: Mapped[UUID | None]
    material_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    quantity: Mapped[Decimal] = mapped_column(nullable=False)
    unit: Mapped[str] = mapped_column(String(20), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    def _common_fields(self) -> dict:
        return {
            "id": self.id,
            "document_id": self.document_id,
            "line_number": self.line_number,
            "quantity": self.quantity,
            "unit": self.unit,
            "material_id": self.material_id,
            "material_name": self.material_name,
            "description": self.description,
        }

    def to_dto(self) -> LineItem:
        return LineItem(**self._common_fields())

    @classmethod
    def from_spec(cls, spec: LineItemSpec, line_number: int) -> "LineItemModelBase":
        return cls(
            line_number=line_number,
            material_id=spec.material_id,
            material_name=spec.material_name,
            quantity=spec.quantity,
            unit=spec.unit,
            description=spec.description,
        )


class PricedLineItemMixin:
    """Pricing columns carried by purchase and service order items."""

    unit_price: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    tax_rate: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0.16"))
    is_exempt: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    sales_percentage: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    discount_percentage: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))

    def to_dto(self) -> LineItem:
        return LineItem(
            **self._common_fields(),
            unit_price=self.unit_price,
            tax_rate=self.tax_rate,
            is_exempt=self.is_exempt,
            sales_percentage=self.sales_percentage,
            discount_percentage=self.discount_percentage,
        )

    @classmethod
    def from_spec(cls, spec: LineItemSpec, line_number: int):
        row = super().from_spec(spec, line_number)
        row.unit_price = spec.unit_price
        row.tax_rate = spec.tax_rate
        row.is_exempt = bool(spec.is_exempt)
        row.sales_percentage = spec.sales_percentage
        row.discount_percentage = spec.discount_percentage
        return row


class QuoteRequestItemModel(LineItemModelBase):
    __tablename__ = "quote_request_items"

    __table_args__ = (
        Index("idx_quote_request_item_document", "document_id"),
        Index("idx_quote_request_item_material", "material_id"),
    )

    document_id: Mapped[UUID] = mapped_column(
        ForeignKey("quote_requests.id", ondelete="CASCADE"), nullable=False,
    )


class PurchaseOrderItemModel(PricedLineItemMixin, LineItemModelBase):
    __tablename__ = "purchase_order_items"

    __table_args__ = (
        Index("idx_purchase_order_item_document", "document_id"),
        Index("idx_purchase_order_item_material", "material_id"),
    )

    document_id: Mapped[UUID] = mapped_column(
        ForeignKey("purchase_orders.id", ondelete="CASCADE"), nullable=False,
    )


class ServiceOrderItemModel(PricedLineItemMixin, LineItemModelBase):
    __tablename__ = "service_order_items"

    __table_args__ = (
        Index("idx_service_order_item_document", "document_id"),
        Index("idx_service_order_item_material", "material_id"),
    )

    document_id: Mapped[UUID] = mapped_column(
        ForeignKey("service_orders.id", ondelete="CASCADE"), nullable=False,
    )


# ---------------------------------------------------------------------------
# Concrete headers
# ---------------------------------------------------------------------------


class QuoteRequestModel(DocumentHeaderModel):
    """A request for quotation sent to a supplier."""

    __tablename__ = "quote_requests"

    __table_args__ = (
        UniqueConstraint("sequence_number", name="uq_quote_requests_sequence_number"),
        Index("idx_quote_request_status", "status"),
        Index("idx_quote_request_supplier", "supplier_id"),
        Index("idx_quote_request_created", "created_at"),
    )

    document_type = DocumentType.QUOTE_REQUEST
    item_model = QuoteRequestItemModel

    issue_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    deadline_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    items: Mapped[list[QuoteRequestItemModel]] = relationship(
        QuoteRequestItemModel,
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by=QuoteRequestItemModel.line_number,
        lazy="selectin",
    )


class PurchaseOrderModel(DocumentHeaderModel):
    """
    A purchase order.

    ``service_order_id`` is set only when the order was generated from a
    service order; that link drives price-history supersession.
    """

    __tablename__ = "purchase_orders"

    __table_args__ = (
        UniqueConstraint("sequence_number", name="uq_purchase_orders_sequence_number"),
        Index("idx_purchase_order_status", "status"),
        Index("idx_purchase_order_supplier", "supplier_id"),
        Index("idx_purchase_order_created", "created_at"),
        Index("idx_purchase_order_service_order", "service_order_id"),
    )

    document_type = DocumentType.PURCHASE_ORDER
    item_model = PurchaseOrderItemModel

    delivery_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    payment_terms: Mapped[str | None] = mapped_column(String(50), nullable=True)
    custom_payment_terms: Mapped[str | None] = mapped_column(Text, nullable=True)
    credit_days: Mapped[int | None]
    quote_request_id: Mapped[UUID | None]
    service_order_id: Mapped[UUID | None]

    items: Mapped[list[PurchaseOrderItemModel]] = relationship(
        PurchaseOrderItemModel,
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by=PurchaseOrderItemModel.line_number,
        lazy="selectin",
    )


class ServiceOrderModel(DocumentHeaderModel):
    """A service order for work performed by a supplier."""

    __tablename__ = "service_orders"

    __table_args__ = (
        UniqueConstraint("sequence_number", name="uq_service_orders_sequence_number"),
        Index("idx_service_order_status", "status"),
        Index("idx_service_order_supplier", "supplier_id"),
        Index("idx_service_order_created", "created_at"),
    )

    document_type = DocumentType.SERVICE_ORDER
    item_model = ServiceOrderItemModel

    issue_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    service_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    equipment_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    service_type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    detailed_service_description: Mapped[str | None] = mapped_column(Text, nullable=True)
    destination_address: Mapped[str | None] = mapped_column(Text, nullable=True)

    items: Mapped[list[ServiceOrderItemModel]] = relationship(
        ServiceOrderItemModel,
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by=ServiceOrderItemModel.line_number,
        lazy="selectin",
    )


HEADER_MODELS: dict[DocumentType, type[DocumentHeaderModel]] = {
    DocumentType.QUOTE_REQUEST: QuoteRequestModel,
    DocumentType.PURCHASE_ORDER: PurchaseOrderModel,
    DocumentType.SERVICE_ORDER: ServiceOrderModel,
}


def header_model_for(document_type: DocumentType) -> type[DocumentHeaderModel]:
    return HEADER_MODELS[document_type]

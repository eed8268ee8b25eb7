"""
Procurement document value objects.

The nouns shared by quote requests, purchase orders and service orders:
document types, statuses, the header and line-item inputs a caller builds,
and the immutable records returned by the repository.

Architecture position: Kernel > Domain -- pure, zero I/O.  Everything here
is a frozen dataclass or an Enum.
"""

from dataclasses import dataclass, field, fields
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID


class DocumentType(Enum):
    """The three procurement document types."""
    QUOTE_REQUEST = "quote_request"
    PURCHASE_ORDER = "purchase_order"
    SERVICE_ORDER = "service_order"


class DocumentStatus(Enum):
    """Lifecycle states shared by every document type."""
    DRAFT = "Draft"
    SENT = "Sent"
    APPROVED = "Approved"
    REJECTED = "Rejected"
    ARCHIVED = "Archived"


class Currency(Enum):
    USD = "USD"
    VES = "VES"


class StatusFilter(Enum):
    """Named status groups accepted by ``list_documents``."""
    ACTIVE = "Active"
    HISTORY = "History"


HISTORY_STATUSES: frozenset[DocumentStatus] = frozenset({
    DocumentStatus.APPROVED,
    DocumentStatus.REJECTED,
    DocumentStatus.ARCHIVED,
})


@dataclass(frozen=True)
class Actor:
    """The identity on whose behalf a call is made."""
    actor_id: UUID
    email: str


@dataclass(frozen=True)
class DocumentHeader:
    """
    Header fields supplied by the caller.

    The first five fields apply to every document type.  The remaining
    fields are type-specific; ``DocumentKind.extra_fields`` lists which
    ones a given type accepts, and the rest must stay None.
    """
    company_id: UUID | None = None
    supplier_id: UUID | None = None
    currency: Currency = Currency.USD
    exchange_rate: Decimal | None = None
    observations: str | None = None

    # Quote request / service order
    issue_date: date | None = None
    # Quote request
    deadline_date: date | None = None
    # Purchase order
    delivery_date: date | None = None
    payment_terms: str | None = None
    custom_payment_terms: str | None = None
    credit_days: int | None = None
    quote_request_id: UUID | None = None
    service_order_id: UUID | None = None
    # Service order
    service_date: date | None = None
    equipment_name: str | None = None
    service_type: str | None = None
    detailed_service_description: str | None = None
    destination_address: str | None = None


COMMON_HEADER_FIELDS: frozenset[str] = frozenset({
    "company_id",
    "supplier_id",
    "currency",
    "exchange_rate",
    "observations",
})

HEADER_FIELDS: tuple[str, ...] = tuple(f.name for f in fields(DocumentHeader))


@dataclass(frozen=True)
class DocumentKind:
    """Static description of one document type."""
    document_type: DocumentType
    label: str
    audit_name: str
    extra_fields: frozenset[str]
    carries_pricing: bool

    @property
    def header_fields(self) -> frozenset[str]:
        return COMMON_HEADER_FIELDS | self.extra_fields


DOCUMENT_KINDS: dict[DocumentType, DocumentKind] = {
    DocumentType.QUOTE_REQUEST: DocumentKind(
        document_type=DocumentType.QUOTE_REQUEST,
        label="Quote Request",
        audit_name="QUOTE_REQUEST",
        extra_fields=frozenset({"issue_date", "deadline_date"}),
        carries_pricing=False,
    ),
    DocumentType.PURCHASE_ORDER: DocumentKind(
        document_type=DocumentType.PURCHASE_ORDER,
        label="Purchase Order",
        audit_name="PURCHASE_ORDER",
        extra_fields=frozenset({
            "delivery_date",
            "payment_terms",
            "custom_payment_terms",
            "credit_days",
            "quote_request_id",
            "service_order_id",
        }),
        carries_pricing=True,
    ),
    DocumentType.SERVICE_ORDER: DocumentKind(
        document_type=DocumentType.SERVICE_ORDER,
        label="Service Order",
        audit_name="SERVICE_ORDER",
        extra_fields=frozenset({
            "issue_date",
            "service_date",
            "equipment_name",
            "service_type",
            "detailed_service_description",
            "destination_address",
        }),
        carries_pricing=True,
    ),
}


def kind_of(document_type: DocumentType) -> DocumentKind:
    return DOCUMENT_KINDS[document_type]


PRICING_FIELDS: tuple[str, ...] = (
    "unit_price",
    "tax_rate",
    "is_exempt",
    "sales_percentage",
    "discount_percentage",
)


@dataclass(frozen=True)
class LineItemSpec:
    """
    A candidate line item as supplied by the caller.

    Pricing fields are only meaningful on purchase and service orders;
    validation fills their defaults there and rejects them on quote requests.
    """
    quantity: Decimal
    unit: str
    material_id: UUID | None = None
    material_name: str | None = None
    description: str | None = None
    unit_price: Decimal | None = None
    tax_rate: Decimal | None = None
    is_exempt: bool | None = None
    sales_percentage: Decimal | None = None
    discount_percentage: Decimal | None = None


@dataclass(frozen=True)
class LineItem:
    """A persisted line item belonging to exactly one document."""
    id: UUID
    document_id: UUID
    line_number: int
    quantity: Decimal
    unit: str
    material_id: UUID | None = None
    material_name: str | None = None
    description: str | None = None
    unit_price: Decimal | None = None
    tax_rate: Decimal | None = None
    is_exempt: bool | None = None
    sales_percentage: Decimal | None = None
    discount_percentage: Decimal | None = None

    def to_spec(self) -> LineItemSpec:
        """Strip storage identity, leaving the caller-visible content."""
        return LineItemSpec(
            quantity=self.quantity,
            unit=self.unit,
            material_id=self.material_id,
            material_name=self.material_name,
            description=self.description,
            unit_price=self.unit_price,
            tax_rate=self.tax_rate,
            is_exempt=self.is_exempt,
            sales_percentage=self.sales_percentage,
            discount_percentage=self.discount_percentage,
        )


@dataclass(frozen=True)
class Document:
    """A document header joined with its current line items."""
    id: UUID
    document_type: DocumentType
    sequence_number: int
    document_number: str
    status: DocumentStatus
    header: DocumentHeader
    created_by: str
    user_id: UUID
    created_at: datetime
    previous_status: DocumentStatus | None = None
    items: tuple[LineItem, ...] = field(default_factory=tuple)

    @property
    def kind(self) -> DocumentKind:
        return DOCUMENT_KINDS[self.document_type]

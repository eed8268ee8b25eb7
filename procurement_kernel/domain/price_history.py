"""
Price-history entries and the supersession filter.

When a purchase order is generated from a service order, the same commercial
event can appear twice in the ledger: once when the service order was priced
and again for the purchase order.  The purchase order entry is authoritative;
``supersede`` hides the service order entries it replaces.

Pure functions, zero I/O.  The linkage lookup (which purchase orders carry a
``service_order_id``) lives in ``services/price_history.py``.
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from procurement_kernel.domain.documents import Currency
from procurement_kernel.exceptions import PriceHistoryEntryError


@dataclass(frozen=True)
class PriceHistoryEntry:
    """
    One realized supplier price for a material.

    At most one of ``purchase_order_id`` / ``service_order_id`` is set;
    neither means a manually recorded entry.  ``id`` and ``recorded_at`` are
    assigned by the ledger on append when left empty.
    """
    material_id: UUID
    supplier_id: UUID
    unit_price: Decimal
    currency: Currency = Currency.USD
    exchange_rate: Decimal | None = None
    purchase_order_id: UUID | None = None
    service_order_id: UUID | None = None
    user_id: UUID | None = None
    id: UUID | None = None
    recorded_at: datetime | None = None


def validate_entry(entry: PriceHistoryEntry) -> PriceHistoryEntry:
    """
    Raises:
        PriceHistoryEntryError: If both a purchase and a service order are referenced.
    """
    if entry.purchase_order_id is not None and entry.service_order_id is not None:
        raise PriceHistoryEntryError(
            "an entry references either a purchase order or a service order, not both"
        )
    return entry


def referenced_purchase_orders(entries: Iterable[PriceHistoryEntry]) -> set[UUID]:
    """Distinct purchase order ids referenced by ``entries``."""
    return {e.purchase_order_id for e in entries if e.purchase_order_id is not None}


def supersede(
    entries: Sequence[PriceHistoryEntry],
    linked_service_order_ids: Iterable[UUID],
) -> list[PriceHistoryEntry]:
    """
    Drop every entry whose service order was converted into a purchase order.

    Direct entries and purchase order entries are kept unchanged, in order.
    """
    linked = set(linked_service_order_ids)
    if not linked:
        return list(entries)
    return [e for e in entries if e.service_order_id not in linked]

"""
Line and document totals for priced documents.

Per line, in order: discount on the gross value, then the sales
percentage on the net, then tax on the net unless the line is exempt.
Quote request lines carry no pricing and total zero.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal

from procurement_kernel.domain.documents import LineItem, LineItemSpec

_ZERO = Decimal("0")
_HUNDRED = Decimal("100")


@dataclass(frozen=True)
class LineTotals:
    value: Decimal = _ZERO
    discount: Decimal = _ZERO
    net: Decimal = _ZERO
    sales: Decimal = _ZERO
    tax: Decimal = _ZERO
    total: Decimal = _ZERO

    def __add__(self, other: "LineTotals") -> "LineTotals":
        return LineTotals(
            value=self.value + other.value,
            discount=self.discount + other.discount,
            net=self.net + other.net,
            sales=self.sales + other.sales,
            tax=self.tax + other.tax,
            total=self.total + other.total,
        )


def line_totals(item: LineItem | LineItemSpec) -> LineTotals:
    """Compute the totals of one line item."""
    if item.unit_price is None:
        return LineTotals()

    value = Decimal(item.quantity) * item.unit_price
    discount = value * (item.discount_percentage or _ZERO) / _HUNDRED
    net = value - discount
    sales = net * (item.sales_percentage or _ZERO) / _HUNDRED
    tax = _ZERO if item.is_exempt else net * (item.tax_rate or _ZERO)
    return LineTotals(
        value=value,
        discount=discount,
        net=net,
        sales=sales,
        tax=tax,
        total=net + sales + tax,
    )


def document_totals(items: Iterable[LineItem | LineItemSpec]) -> LineTotals:
    """Sum the line totals of every item."""
    result = LineTotals()
    for item in items:
        result = result + line_totals(item)
    return result

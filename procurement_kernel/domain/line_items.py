"""
LineItemSet -- batch validation of a document's line items.

Pure function, no side effects, no I/O.  A candidate list is accepted or
rejected as a whole: every problem found is reported in one
``LineItemValidationError`` and nothing is written.

Rules:
    - the list must not be empty
    - ``quantity`` > 0 and ``unit`` non-blank on every item
    - an item that references a material must carry its display name
    - quote request items carry no pricing fields
    - on priced types: ``unit_price`` >= 0, ``tax_rate`` in [0, 1],
      ``sales_percentage`` and ``discount_percentage`` in [0, 100]

Accepted items come back normalized: quantities and prices as Decimal,
blank strings stripped, and pricing defaults filled for priced types.
"""

from collections.abc import Sequence
from dataclasses import replace
from decimal import Decimal, InvalidOperation

from procurement_kernel.domain.documents import (
    PRICING_FIELDS,
    DocumentType,
    LineItemSpec,
    kind_of,
)
from procurement_kernel.exceptions import LineItemValidationError

DEFAULT_TAX_RATE = Decimal("0.16")

_HUNDRED = Decimal("100")


def as_decimal(value) -> Decimal | None:
    """Finite Decimal for ``value``, or None when it is missing or not a number."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return value if value.is_finite() else None
    if isinstance(value, float):
        value = str(value)
    try:
        result = Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        return None
    return result if result.is_finite() else None


def _blank(value: str | None) -> bool:
    return value is None or not str(value).strip()


def _check_range(
    errors: list[dict],
    index: int,
    name: str,
    raw,
    low: Decimal,
    high: Decimal | None,
) -> Decimal | None:
    value = as_decimal(raw)
    if value is None:
        errors.append({"index": index, "field": name, "reason": "must be a number"})
        return None
    if value < low or (high is not None and value > high):
        bound = f"between {low} and {high}" if high is not None else f">= {low}"
        errors.append({"index": index, "field": name, "reason": f"must be {bound}"})
        return None
    return value


def validate_line_items(
    document_type: DocumentType,
    items: Sequence[LineItemSpec],
    default_tax_rate: Decimal = DEFAULT_TAX_RATE,
) -> tuple[LineItemSpec, ...]:
    """
    Validate and normalize a candidate line-item set.

    Returns:
        The normalized items, in input order.

    Raises:
        LineItemValidationError: If the set is empty or any item is invalid.
    """
    if not items:
        raise LineItemValidationError([
            {"index": None, "field": "items", "reason": "at least one line item is required"}
        ])

    priced = kind_of(document_type).carries_pricing
    errors: list[dict] = []
    normalized: list[LineItemSpec] = []

    for index, item in enumerate(items):
        start = len(errors)

        quantity = as_decimal(item.quantity)
        if quantity is None or quantity <= 0:
            errors.append({"index": index, "field": "quantity", "reason": "must be greater than zero"})

        if _blank(item.unit):
            errors.append({"index": index, "field": "unit", "reason": "is required"})

        if item.material_id is not None and _blank(item.material_name):
            errors.append({
                "index": index,
                "field": "material_name",
                "reason": "is required when material_id is set",
            })

        pricing: dict = {}
        if not priced:
            for name in PRICING_FIELDS:
                if getattr(item, name) is not None:
                    errors.append({
                        "index": index,
                        "field": name,
                        "reason": f"not allowed on {document_type.value} items",
                    })
        else:
            raw_price = Decimal("0") if item.unit_price is None else item.unit_price
            raw_tax = default_tax_rate if item.tax_rate is None else item.tax_rate
            raw_sales = Decimal("0") if item.sales_percentage is None else item.sales_percentage
            raw_discount = (
                Decimal("0") if item.discount_percentage is None else item.discount_percentage
            )
            pricing = {
                "unit_price": _check_range(errors, index, "unit_price", raw_price, Decimal("0"), None),
                "tax_rate": _check_range(errors, index, "tax_rate", raw_tax, Decimal("0"), Decimal("1")),
                "sales_percentage": _check_range(
                    errors, index, "sales_percentage", raw_sales, Decimal("0"), _HUNDRED
                ),
                "discount_percentage": _check_range(
                    errors, index, "discount_percentage", raw_discount, Decimal("0"), _HUNDRED
                ),
                "is_exempt": bool(item.is_exempt),
            }

        if len(errors) == start:
            normalized.append(replace(
                item,
                quantity=quantity,
                unit=item.unit.strip(),
                material_name=None if _blank(item.material_name) else item.material_name.strip(),
                **pricing,
            ))

    if errors:
        raise LineItemValidationError(errors)

    return tuple(normalized)

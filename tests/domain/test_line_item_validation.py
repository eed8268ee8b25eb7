"""
Line-item set validation.

A candidate set is accepted or rejected as a whole, every problem is
reported at once, and accepted items come back normalized.
"""

from decimal import Decimal
from uuid import uuid4

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from procurement_kernel.domain.documents import DocumentType, LineItemSpec
from procurement_kernel.domain.line_items import DEFAULT_TAX_RATE, validate_line_items
from procurement_kernel.exceptions import LineItemValidationError, ValidationError


def _fields(exc_info) -> list[tuple]:
    return [(e["index"], e["field"]) for e in exc_info.value.item_errors]


class TestRejection:

    def test_empty_set_rejected(self):
        with pytest.raises(LineItemValidationError) as exc_info:
            validate_line_items(DocumentType.PURCHASE_ORDER, [])
        assert _fields(exc_info) == [(None, "items")]

    def test_is_a_validation_error(self):
        with pytest.raises(ValidationError):
            validate_line_items(DocumentType.QUOTE_REQUEST, [])

    @pytest.mark.parametrize("quantity", [Decimal("0"), Decimal("-1"), None, "abc"])
    def test_non_positive_quantity_rejected(self, quantity):
        item = LineItemSpec(quantity=quantity, unit="UND")
        with pytest.raises(LineItemValidationError) as exc_info:
            validate_line_items(DocumentType.QUOTE_REQUEST, [item])
        assert (0, "quantity") in _fields(exc_info)

    @pytest.mark.parametrize("unit", ["", "   ", None])
    def test_blank_unit_rejected(self, unit):
        item = LineItemSpec(quantity=Decimal("1"), unit=unit)
        with pytest.raises(LineItemValidationError) as exc_info:
            validate_line_items(DocumentType.SERVICE_ORDER, [item])
        assert (0, "unit") in _fields(exc_info)

    def test_material_without_name_rejected(self):
        item = LineItemSpec(quantity=Decimal("1"), unit="UND", material_id=uuid4())
        with pytest.raises(LineItemValidationError) as exc_info:
            validate_line_items(DocumentType.PURCHASE_ORDER, [item])
        assert (0, "material_name") in _fields(exc_info)

    def test_pricing_on_quote_request_rejected(self):
        item = LineItemSpec(
            quantity=Decimal("1"), unit="UND", unit_price=Decimal("5"), is_exempt=True,
        )
        with pytest.raises(LineItemValidationError) as exc_info:
            validate_line_items(DocumentType.QUOTE_REQUEST, [item])
        assert (0, "unit_price") in _fields(exc_info)
        assert (0, "is_exempt") in _fields(exc_info)

    @pytest.mark.parametrize(
        "field_name, value",
        [
            ("unit_price", Decimal("-0.01")),
            ("tax_rate", Decimal("1.5")),
            ("tax_rate", Decimal("-0.1")),
            ("sales_percentage", Decimal("101")),
            ("discount_percentage", Decimal("-5")),
        ],
    )
    def test_pricing_out_of_range_rejected(self, field_name, value):
        item = LineItemSpec(quantity=Decimal("1"), unit="UND", **{field_name: value})
        with pytest.raises(LineItemValidationError) as exc_info:
            validate_line_items(DocumentType.PURCHASE_ORDER, [item])
        assert (0, field_name) in _fields(exc_info)

    def test_all_errors_reported_together(self):
        items = [
            LineItemSpec(quantity=Decimal("1"), unit="UND"),
            LineItemSpec(quantity=Decimal("0"), unit="UND"),
            LineItemSpec(quantity=Decimal("2"), unit=""),
        ]
        with pytest.raises(LineItemValidationError) as exc_info:
            validate_line_items(DocumentType.QUOTE_REQUEST, items)
        assert _fields(exc_info) == [(1, "quantity"), (2, "unit")]
        assert len(exc_info.value.errors) == 2


class TestNormalization:

    def test_priced_defaults_filled(self):
        (item,) = validate_line_items(
            DocumentType.PURCHASE_ORDER,
            [LineItemSpec(quantity=Decimal("3"), unit=" KG ")],
        )
        assert item.unit == "KG"
        assert item.unit_price == Decimal("0")
        assert item.tax_rate == DEFAULT_TAX_RATE
        assert item.sales_percentage == Decimal("0")
        assert item.discount_percentage == Decimal("0")
        assert item.is_exempt is False

    def test_configured_tax_rate_used(self):
        (item,) = validate_line_items(
            DocumentType.SERVICE_ORDER,
            [LineItemSpec(quantity=Decimal("1"), unit="H")],
            default_tax_rate=Decimal("0.08"),
        )
        assert item.tax_rate == Decimal("0.08")

    def test_explicit_zero_tax_kept(self):
        (item,) = validate_line_items(
            DocumentType.PURCHASE_ORDER,
            [LineItemSpec(quantity=Decimal("1"), unit="UND", tax_rate=Decimal("0"))],
        )
        assert item.tax_rate == Decimal("0")

    def test_quote_request_items_stay_unpriced(self):
        (item,) = validate_line_items(
            DocumentType.QUOTE_REQUEST,
            [LineItemSpec(quantity="2.5", unit="M", description="cable")],
        )
        assert item.quantity == Decimal("2.5")
        assert item.unit_price is None
        assert item.tax_rate is None

    def test_order_preserved(self):
        items = [LineItemSpec(quantity=Decimal(n), unit=f"U{n}") for n in range(1, 6)]
        result = validate_line_items(DocumentType.QUOTE_REQUEST, items)
        assert [i.unit for i in result] == ["U1", "U2", "U3", "U4", "U5"]

    def test_material_name_stripped(self):
        (item,) = validate_line_items(
            DocumentType.PURCHASE_ORDER,
            [LineItemSpec(
                quantity=Decimal("1"), unit="UND",
                material_id=uuid4(), material_name="  Bolt M8 ",
            )],
        )
        assert item.material_name == "Bolt M8"


positive_quantities = st.decimals(
    min_value=Decimal("0.001"), max_value=Decimal("1000000"), places=3,
    allow_nan=False, allow_infinity=False,
)


class TestProperties:

    @given(quantities=st.lists(positive_quantities, min_size=1, max_size=20))
    @settings(max_examples=50)
    def test_valid_sets_accepted_in_full(self, quantities):
        items = [LineItemSpec(quantity=q, unit="UND") for q in quantities]
        result = validate_line_items(DocumentType.PURCHASE_ORDER, items)
        assert len(result) == len(items)
        assert [i.quantity for i in result] == quantities

    @given(
        quantities=st.lists(positive_quantities, min_size=1, max_size=10),
        bad_index=st.integers(min_value=0, max_value=9),
    )
    @settings(max_examples=50)
    def test_one_bad_item_rejects_the_set(self, quantities, bad_index):
        bad_index %= len(quantities)
        items = [LineItemSpec(quantity=q, unit="UND") for q in quantities]
        items[bad_index] = LineItemSpec(quantity=Decimal("0"), unit="UND")
        with pytest.raises(LineItemValidationError) as exc_info:
            validate_line_items(DocumentType.SERVICE_ORDER, items)
        assert _fields(exc_info) == [(bad_index, "quantity")]

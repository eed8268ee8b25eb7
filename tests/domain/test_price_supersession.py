"""
Price-history entries and the supersession filter.

A service order entry disappears once a purchase order generated from that
service order is present; everything else is kept in order.
"""

from decimal import Decimal
from uuid import uuid4

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from procurement_kernel.domain.price_history import (
    PriceHistoryEntry,
    referenced_purchase_orders,
    supersede,
    validate_entry,
)
from procurement_kernel.exceptions import PriceHistoryEntryError

MATERIAL = uuid4()
SUPPLIER = uuid4()


def _entry(price="10", purchase_order_id=None, service_order_id=None):
    return PriceHistoryEntry(
        material_id=MATERIAL,
        supplier_id=SUPPLIER,
        unit_price=Decimal(price),
        purchase_order_id=purchase_order_id,
        service_order_id=service_order_id,
    )


class TestValidateEntry:

    def test_both_references_rejected(self):
        with pytest.raises(PriceHistoryEntryError):
            validate_entry(_entry(purchase_order_id=uuid4(), service_order_id=uuid4()))

    @pytest.mark.parametrize("source", ["purchase_order_id", "service_order_id", None])
    def test_single_or_no_reference_accepted(self, source):
        entry = _entry(**({source: uuid4()} if source else {}))
        assert validate_entry(entry) is entry


class TestSupersede:

    def test_linked_service_order_entry_hidden(self):
        so_id, po_id = uuid4(), uuid4()
        so_entry = _entry("10", service_order_id=so_id)
        po_entry = _entry("12", purchase_order_id=po_id)

        result = supersede([po_entry, so_entry], {so_id})

        assert result == [po_entry]

    def test_unlinked_service_order_entry_kept(self):
        so_entry = _entry("10", service_order_id=uuid4())
        po_entry = _entry("12", purchase_order_id=uuid4())

        assert supersede([po_entry, so_entry], set()) == [po_entry, so_entry]

    def test_manual_entries_never_hidden(self):
        manual = _entry("9")
        so_id = uuid4()
        assert supersede([manual, _entry(service_order_id=so_id)], [so_id]) == [manual]

    def test_referenced_purchase_orders(self):
        po_a, po_b = uuid4(), uuid4()
        entries = [
            _entry(purchase_order_id=po_a),
            _entry(purchase_order_id=po_a),
            _entry(purchase_order_id=po_b),
            _entry(service_order_id=uuid4()),
            _entry(),
        ]
        assert referenced_purchase_orders(entries) == {po_a, po_b}

    @given(
        kinds=st.lists(st.sampled_from(["manual", "po", "so_linked", "so_free"]), max_size=30)
    )
    @settings(max_examples=75)
    def test_only_linked_service_order_entries_removed(self, kinds):
        linked_so = uuid4()
        entries = []
        for kind in kinds:
            if kind == "po":
                entries.append(_entry(purchase_order_id=uuid4()))
            elif kind == "so_linked":
                entries.append(_entry(service_order_id=linked_so))
            elif kind == "so_free":
                entries.append(_entry(service_order_id=uuid4()))
            else:
                entries.append(_entry())

        result = supersede(entries, {linked_so})

        assert all(e.service_order_id != linked_so for e in result)
        assert len(result) == len(entries) - kinds.count("so_linked")
        # survivors keep their relative order
        assert result == [e for e in entries if e.service_order_id != linked_so]

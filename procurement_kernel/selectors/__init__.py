"""Selectors for the procurement kernel (read side)."""

from procurement_kernel.selectors.purchase_history_selector import (
    PurchaseHistoryRow,
    PurchaseHistorySelector,
)

__all__ = [
    "PurchaseHistoryRow",
    "PurchaseHistorySelector",
]

"""ORM models for the procurement kernel."""

from procurement_kernel.models.documents import (
    HEADER_MODELS,
    DocumentHeaderModel,
    LineItemModelBase,
    PurchaseOrderItemModel,
    PurchaseOrderModel,
    QuoteRequestItemModel,
    QuoteRequestModel,
    ServiceOrderItemModel,
    ServiceOrderModel,
    header_model_for,
)
from procurement_kernel.models.price_history import PriceHistoryEntryModel
from procurement_kernel.models.sequence_counter import SequenceCounterModel

__all__ = [
    "HEADER_MODELS",
    "DocumentHeaderModel",
    "LineItemModelBase",
    "PriceHistoryEntryModel",
    "PurchaseOrderItemModel",
    "PurchaseOrderModel",
    "QuoteRequestItemModel",
    "QuoteRequestModel",
    "SequenceCounterModel",
    "ServiceOrderItemModel",
    "ServiceOrderModel",
    "header_model_for",
]

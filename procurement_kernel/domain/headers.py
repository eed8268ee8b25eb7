"""
Header validation and patching for procurement documents.

Pure functions.  ``validate_header`` checks a complete header for one
document type; ``apply_header_patch`` merges a partial update into an
existing header and re-validates the result.
"""

from collections.abc import Mapping
from dataclasses import replace
from typing import Any

from procurement_kernel.domain.documents import (
    HEADER_FIELDS,
    Currency,
    DocumentHeader,
    DocumentType,
    kind_of,
)
from procurement_kernel.domain.line_items import as_decimal
from procurement_kernel.exceptions import HeaderValidationError

# Fields owned by the lifecycle or by creation; never accepted in a patch.
MANAGED_FIELDS: frozenset[str] = frozenset({
    "id",
    "sequence_number",
    "status",
    "previous_status",
    "created_by",
    "user_id",
    "created_at",
})


def validate_header(document_type: DocumentType, header: DocumentHeader) -> DocumentHeader:
    """
    Validate a header for ``document_type``.

    Raises:
        HeaderValidationError: On the first offending field.
    """
    kind = kind_of(document_type)

    if header.company_id is None:
        raise HeaderValidationError("company_id", "is required")
    if header.supplier_id is None:
        raise HeaderValidationError("supplier_id", "is required")
    if not isinstance(header.currency, Currency):
        raise HeaderValidationError("currency", "must be USD or VES")

    if header.currency is Currency.VES:
        if header.exchange_rate is None:
            raise HeaderValidationError("exchange_rate", "is required when currency is VES")
        rate = as_decimal(header.exchange_rate)
        if rate is None or rate <= 0:
            raise HeaderValidationError("exchange_rate", "must be a positive number")
    elif header.exchange_rate is not None:
        raise HeaderValidationError("exchange_rate", "must be empty when currency is USD")

    for name in HEADER_FIELDS:
        if name in kind.header_fields:
            continue
        if getattr(header, name) is not None:
            raise HeaderValidationError(name, f"not allowed on {kind.label}")

    if header.credit_days is not None and header.credit_days < 0:
        raise HeaderValidationError("credit_days", "must not be negative")

    return header


def apply_header_patch(
    document_type: DocumentType,
    current: DocumentHeader,
    patch: Mapping[str, Any],
) -> DocumentHeader:
    """
    Merge ``patch`` into ``current`` and validate the merged header.

    Status and provenance are not header fields and are rejected here;
    status changes go through the lifecycle.
    """
    for name in patch:
        if name in MANAGED_FIELDS:
            raise HeaderValidationError(name, "cannot be changed through an update")
        if name not in HEADER_FIELDS:
            raise HeaderValidationError(name, "unknown header field")

    merged = replace(current, **dict(patch))
    return validate_header(document_type, merged)

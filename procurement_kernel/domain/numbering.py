"""
Human-facing document numbers.

A number reads ``<PREFIX>-<YYYY>-<MM>-<NNN>``: the type prefix, the year and
month of creation, and the sequence number zero-padded to a fixed width
(wider numbers are printed in full).
"""

from datetime import datetime

DEFAULT_PADDING = 3


def format_document_number(
    prefix: str,
    sequence_number: int,
    created_at: datetime,
    padding: int = DEFAULT_PADDING,
) -> str:
    """
    >>> format_document_number("OC", 7, datetime(2024, 1, 15))
    'OC-2024-01-007'
    """
    if sequence_number < 1:
        raise ValueError(f"sequence_number must be positive, got {sequence_number}")
    return f"{prefix}-{created_at:%Y}-{created_at:%m}-{sequence_number:0{padding}d}"

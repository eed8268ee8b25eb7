"""
Sequence counter table.

One row per document type holding the last allocated sequence number.
The row is the sole source of truth for the next number; it is only ever
changed by an atomic ``UPDATE ... RETURNING`` in ``SequenceAllocator``.
"""

from sqlalchemy import BigInteger, String
from sqlalchemy.orm import Mapped, mapped_column

from procurement_kernel.db.base import Base


class SequenceCounterModel(Base):
    __tablename__ = "sequence_counters"

    # Counter name: the document type value (e.g. "purchase_order")
    name: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        unique=True,
    )

    # Last allocated value; 0 means nothing allocated yet
    current_value: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        default=0,
    )

    def __repr__(self) -> str:
        return f"<SequenceCounterModel {self.name}={self.current_value}>"

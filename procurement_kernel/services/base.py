"""
BaseService -- base for kernel write-side services.

Responsibility:
    Common constructor and session-handling contract.  Concrete services
    receive a SQLAlchemy ``Session`` and persist via ``session.flush()``;
    the caller owns ``commit()`` / ``rollback()``.

Architecture position:
    Kernel > Services.  ``SequenceAllocator`` is the one write-side
    component that does not extend this class: it commits its own
    short transactions.
"""

from abc import ABC

from sqlalchemy.orm import Session

from procurement_kernel.domain.clock import Clock, SystemClock


class BaseService(ABC):
    """
    Abstract base class for flush-only kernel services.

    Guarantees:
        - The service never calls ``session.commit()`` or
          ``session.rollback()``.

    Non-goals:
        - Does NOT provide query-only read models -- those belong in
          ``procurement_kernel/selectors/``.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        self._session = session
        self._clock = clock or SystemClock()

    @property
    def session(self) -> Session:
        return self._session

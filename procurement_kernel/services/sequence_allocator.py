"""
SequenceAllocator -- per-document-type sequence numbers via atomic counters.

Responsibility:
    Issues the ``sequence_number`` of every new document.  Each document
    type has one row in ``sequence_counters``; allocation is a single
    ``UPDATE ... SET current_value = current_value + 1 RETURNING
    current_value`` so that no two callers can observe the same value.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.
    Called by DocumentRepository.create and by the service facade.

Invariants enforced:
    - Uniqueness: the SQL aggregate-max-plus-one pattern is never used.
      The counter row is the sole source of truth for the next value and
      the increment is a single atomic statement.
    - Never reused: each allocation commits in its own short transaction,
      independent of the caller's transaction.  A creation that later
      rolls back burns its number (gaps are acceptable, duplicates are not).
    - Reset is privileged: the caller must present the configured secret.

Failure modes:
    - IntegrityError: two first-use allocations racing to create the same
      counter row.  The loser rolls back and retries the increment.
    - OperationalError: store unreachable.  Propagates to the caller.
    - SequenceResetNotAuthorizedError: reset with a missing or wrong secret.

Audit relevance:
    Allocation is logged at DEBUG with the counter name and value; resets
    are logged at WARNING with the old and new next value.
"""

import hmac
from collections.abc import Iterable

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from procurement_kernel.domain.documents import DocumentType
from procurement_kernel.exceptions import (
    ConcurrencyConflictError,
    SequenceResetNotAuthorizedError,
    ValidationError,
)
from procurement_kernel.logging_config import get_logger
from procurement_kernel.models.sequence_counter import SequenceCounterModel

logger = get_logger("services.sequence")

_MAX_CREATE_ATTEMPTS = 3


class SequenceAllocator:
    """
    Autonomous allocator of document sequence numbers.

    Contract:
        ``next(document_type)`` returns an integer strictly greater than
        every value previously allocated for that type (since the last
        reset), across any number of concurrent callers.

    Guarantees:
        - Each call commits on its own session drawn from
          ``session_factory``; it never joins the caller's transaction.
        - ``reset(document_type, start, token)`` makes the next allocation
          return exactly ``start``, whether ``start`` is above or below the
          natural next value.

    Non-goals:
        - Does NOT guarantee gap-free numbering when creations fail.
        - Does NOT detect duplicates caused by a backward reset; the unique
          constraint on the header table does (DuplicateSequenceNumberError).
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        reset_secret: str | None = None,
    ):
        self._session_factory = session_factory
        self._reset_secret = reset_secret

    @staticmethod
    def _counter_name(document_type: DocumentType) -> str:
        return document_type.value

    def next(self, document_type: DocumentType) -> int:
        """
        Allocate the next sequence number for ``document_type``.

        Postconditions:
            - Returns an integer > 0.
            - The counter increment is committed before this returns.
        """
        name = self._counter_name(document_type)
        increment = (
            update(SequenceCounterModel)
            .where(SequenceCounterModel.name == name)
            .values(current_value=SequenceCounterModel.current_value + 1)
            .returning(SequenceCounterModel.current_value)
            .execution_options(synchronize_session=False)
        )

        for attempt in range(_MAX_CREATE_ATTEMPTS):
            with self._session_factory() as session:
                value = session.execute(increment).scalar_one_or_none()
                if value is None:
                    # First use of this counter
                    session.add(SequenceCounterModel(name=name, current_value=1))
                    try:
                        session.commit()
                    except IntegrityError:
                        session.rollback()
                        logger.debug(
                            "sequence_counter_race_retry",
                            extra={"sequence_name": name, "attempt": attempt + 1},
                        )
                        continue
                    value = 1
                else:
                    session.commit()

            logger.debug(
                "sequence_allocated",
                extra={"sequence_name": name, "value": value},
            )
            return value

        raise ConcurrencyConflictError(
            f"Could not create sequence counter {name} "
            f"after {_MAX_CREATE_ATTEMPTS} attempts"
        )

    def current_value(self, document_type: DocumentType) -> int | None:
        """
        Last allocated value for ``document_type`` without incrementing.

        Returns:
            Current value, or None if the counter does not exist yet.
        """
        with self._session_factory() as session:
            return session.execute(
                select(SequenceCounterModel.current_value)
                .where(SequenceCounterModel.name == self._counter_name(document_type))
            ).scalar_one_or_none()

    def authorize_reset(self, document_type: DocumentType, auth_token: str | None) -> None:
        """
        Raises:
            SequenceResetNotAuthorizedError: No secret configured, or the
                token does not match it.
        """
        if not self._reset_secret or auth_token is None:
            raise SequenceResetNotAuthorizedError(document_type.value)
        if not hmac.compare_digest(
            str(auth_token).encode("utf-8"), self._reset_secret.encode("utf-8")
        ):
            logger.warning(
                "sequence_reset_denied",
                extra={"sequence_name": self._counter_name(document_type)},
            )
            raise SequenceResetNotAuthorizedError(document_type.value)

    def reset(
        self,
        document_type: DocumentType,
        start_number: int,
        auth_token: str | None,
    ) -> int:
        """
        Force the next allocation for ``document_type`` to ``start_number``.

        Preconditions:
            - ``auth_token`` matches the configured reset secret.
            - ``start_number`` >= 1.

        Postconditions:
            - The following ``next(document_type)`` returns ``start_number``.

        Returns:
            The counter value held before the reset (0 if none existed).
        """
        self.authorize_reset(document_type, auth_token)
        if isinstance(start_number, bool) or not isinstance(start_number, int):
            raise ValidationError(f"start_number must be an integer, got {start_number!r}")
        if start_number < 1:
            raise ValidationError(f"start_number must be >= 1, got {start_number}")

        name = self._counter_name(document_type)
        with self._session_factory() as session:
            counter = session.execute(
                select(SequenceCounterModel)
                .where(SequenceCounterModel.name == name)
                .with_for_update()
            ).scalar_one_or_none()

            if counter is None:
                previous = 0
                session.add(SequenceCounterModel(name=name, current_value=start_number - 1))
            else:
                previous = counter.current_value
                counter.current_value = start_number - 1
            session.commit()

        logger.warning(
            "sequence_reset",
            extra={
                "sequence_name": name,
                "previous_value": previous,
                "next_value": start_number,
                "backward": start_number <= previous,
            },
        )
        return previous

    def initialize_sequences(
        self, document_types: Iterable[DocumentType] = tuple(DocumentType),
    ) -> None:
        """
        Create missing counters at zero.

        Called during database setup so that first allocations take the
        plain increment path.
        """
        with self._session_factory() as session:
            existing = set(session.execute(select(SequenceCounterModel.name)).scalars())
            for document_type in document_types:
                name = self._counter_name(document_type)
                if name not in existing:
                    session.add(SequenceCounterModel(name=name, current_value=0))
            session.commit()

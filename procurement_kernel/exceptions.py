"""
Typed exception hierarchy for the procurement kernel.

Every error raised by the kernel is a subclass of ``ProcurementKernelError``
and carries:
  1. A ``code`` class attribute (machine-readable, API-safe).
  2. Structured attributes describing the failure (never parse messages).

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    ProcurementKernelError (base)
    |
    +-- ValidationError
    |   +-- LineItemValidationError
    |   +-- HeaderValidationError
    |   +-- PriceHistoryEntryError
    |
    +-- NotFoundError
    |   +-- DocumentNotFoundError
    |
    +-- InvalidTransitionError
    |
    +-- PartialWriteError
    |
    +-- ConcurrencyConflictError
    |   +-- DuplicateSequenceNumberError
    |
    +-- StorageUnavailableError
    |
    +-- AuthorizationError
    |   +-- SequenceResetNotAuthorizedError
    |
    +-- ImmutabilityViolationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category      | Code                          | When Raised
--------------|-------------------------------|---------------------------------------
Validation    | VALIDATION_ERROR              | Bad input shape, caught before any write
              | LINE_ITEM_VALIDATION_ERROR    | Empty item set or an invalid item
              | HEADER_VALIDATION_ERROR       | Currency/exchange-rate pairing, bad field
              | PRICE_HISTORY_ENTRY_INVALID   | Entry references both a PO and an SO
--------------|-------------------------------|---------------------------------------
Lookup        | DOCUMENT_NOT_FOUND            | Operation targets a nonexistent id
--------------|-------------------------------|---------------------------------------
Lifecycle     | INVALID_TRANSITION            | Status change not permitted
--------------|-------------------------------|---------------------------------------
Persistence   | PARTIAL_WRITE                 | Header and items diverged mid-write
              | DUPLICATE_SEQUENCE_NUMBER     | Header insert hit an existing number
              | STORAGE_UNAVAILABLE           | Underlying store cannot be reached
              | IMMUTABILITY_VIOLATION        | Write to an append-only / write-once field
--------------|-------------------------------|---------------------------------------
Security      | SEQUENCE_RESET_NOT_AUTHORIZED | Reset attempted with a wrong secret

===============================================================================
HANDLING PATTERNS
===============================================================================

1. Validation and transition errors are surfaced synchronously and are
   never retried internally:

    try:
        service.transition_status(DocumentType.PURCHASE_ORDER, po_id,
                                  DocumentStatus.ARCHIVED, actor)
    except InvalidTransitionError as e:
        return {"error": e.code, "from": e.from_status, "to": e.to_status}

2. Partial writes name the failing stage so the caller can clean up:

    except PartialWriteError as e:
        if e.document_id is not None:
            service.delete_document(e.document_type, e.document_id, actor)

3. A duplicate sequence number burns the allocated value; retrying the
   create draws the next number:

    except DuplicateSequenceNumberError:
        document_id = service.create_document(...)
"""


class ProcurementKernelError(Exception):
    """
    Base exception for all procurement kernel errors.

    All subclasses must have a ``code`` class attribute for
    machine-readable error identification.
    """

    code: str = "PROCUREMENT_KERNEL_ERROR"


# Validation exceptions


class ValidationError(ProcurementKernelError):
    """Input failed validation before any write was attempted."""

    code: str = "VALIDATION_ERROR"

    def __init__(self, message: str, errors: tuple[str, ...] = ()):
        self.errors = errors or (message,)
        super().__init__(message)


class LineItemValidationError(ValidationError):
    """
    A candidate line-item set was rejected as a whole.

    ``item_errors`` is a list of ``{"index", "field", "reason"}`` dicts.
    An empty set produces a single error with ``index`` None.
    """

    code: str = "LINE_ITEM_VALIDATION_ERROR"

    def __init__(self, item_errors: list[dict]):
        self.item_errors = item_errors
        super().__init__(
            f"Line item validation failed: {len(item_errors)} error(s)",
            errors=tuple(
                f"item[{e['index']}].{e['field']}: {e['reason']}"
                if e["index"] is not None
                else f"{e['field']}: {e['reason']}"
                for e in item_errors
            ),
        )


class HeaderValidationError(ValidationError):
    """A document header field is missing, malformed, or not allowed."""

    code: str = "HEADER_VALIDATION_ERROR"

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid header field {field}: {reason}")


class PriceHistoryEntryError(ValidationError):
    """A price-history entry violates the PO/SO reference invariant."""

    code: str = "PRICE_HISTORY_ENTRY_INVALID"

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Invalid price history entry: {reason}")


# Lookup exceptions


class NotFoundError(ProcurementKernelError):
    """Base exception for lookups of nonexistent records."""

    code: str = "NOT_FOUND"


class DocumentNotFoundError(NotFoundError):
    """Document with given ID was not found."""

    code: str = "DOCUMENT_NOT_FOUND"

    def __init__(self, document_type: str, document_id: str):
        self.document_type = document_type
        self.document_id = document_id
        super().__init__(f"{document_type} not found: {document_id}")


# Lifecycle exceptions


class InvalidTransitionError(ProcurementKernelError):
    """Status change is not permitted by the document lifecycle."""

    code: str = "INVALID_TRANSITION"

    def __init__(
        self,
        document_type: str,
        document_id: str,
        from_status: str,
        to_status: str,
        reason: str | None = None,
    ):
        self.document_type = document_type
        self.document_id = document_id
        self.from_status = from_status
        self.to_status = to_status
        self.reason = reason
        message = (
            f"Invalid transition for {document_type} {document_id}: "
            f"{from_status} -> {to_status}"
        )
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


# Persistence exceptions


class PartialWriteError(ProcurementKernelError):
    """
    Header and line items were not written as one unit.

    ``stage`` names the sub-operation that failed: ``"header"`` on create,
    ``"items_insert"`` on create or update, ``"items_delete"`` on update.  When the caller's
    transaction did not roll back, ``document_id`` identifies the header
    that must be cleaned up with a compensating delete.
    """

    code: str = "PARTIAL_WRITE"

    def __init__(
        self,
        document_type: str,
        document_id: str | None,
        stage: str,
        cause: str,
    ):
        self.document_type = document_type
        self.document_id = document_id
        self.stage = stage
        self.cause = cause
        super().__init__(
            f"Partial write of {document_type} {document_id} "
            f"failed at stage {stage}: {cause}"
        )


class ConcurrencyConflictError(ProcurementKernelError):
    """Base exception for concurrency-related conflicts."""

    code: str = "CONCURRENCY_CONFLICT"


class DuplicateSequenceNumberError(ConcurrencyConflictError):
    """
    Header insert collided with an existing sequence number.

    Only reachable after a backward sequence reset; the allocated number is
    burned and a retry draws the next value.
    """

    code: str = "DUPLICATE_SEQUENCE_NUMBER"

    def __init__(self, document_type: str, sequence_number: int):
        self.document_type = document_type
        self.sequence_number = sequence_number
        super().__init__(
            f"Sequence number {sequence_number} already used for {document_type}"
        )


class StorageUnavailableError(ProcurementKernelError):
    """The underlying store could not be reached."""

    code: str = "STORAGE_UNAVAILABLE"

    def __init__(self, operation: str, reason: str):
        self.operation = operation
        self.reason = reason
        super().__init__(f"Storage unavailable during {operation}: {reason}")


class ImmutabilityViolationError(ProcurementKernelError):
    """
    Attempted to modify or delete an immutable record or field.

    Price-history entries are append-only; document provenance fields and
    sequence numbers are write-once.
    """

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Cannot modify immutable {entity_type} {entity_id}: {reason}"
        )


# Security exceptions


class AuthorizationError(ProcurementKernelError):
    """Base exception for privileged operations attempted without authority."""

    code: str = "AUTHORIZATION_ERROR"


class SequenceResetNotAuthorizedError(AuthorizationError):
    """Sequence reset attempted with a missing or wrong secret."""

    code: str = "SEQUENCE_RESET_NOT_AUTHORIZED"

    def __init__(self, document_type: str):
        self.document_type = document_type
        super().__init__(f"Sequence reset for {document_type} not authorized")

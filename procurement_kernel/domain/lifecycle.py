"""
Document lifecycle -- the status state machine shared by all document types.

    Draft -> Sent -> Approved | Rejected
    Approved | Rejected -> Sent            (re-send)
    Sent | Approved | Rejected -> Archived (previous status remembered)
    Archived -> <previous status>          (unarchive)

There is no terminal state.  ``plan_transition`` is the pure decision
function; ``services/status_lifecycle.py`` applies its result.
"""

from dataclasses import dataclass

from procurement_kernel.domain.documents import DocumentStatus
from procurement_kernel.domain.workflow import Guard, Transition, Workflow
from procurement_kernel.exceptions import InvalidTransitionError, ValidationError
from procurement_kernel.logging_config import get_logger

logger = get_logger("domain.lifecycle")

_D = DocumentStatus.DRAFT.value
_S = DocumentStatus.SENT.value
_AP = DocumentStatus.APPROVED.value
_RJ = DocumentStatus.REJECTED.value
_AR = DocumentStatus.ARCHIVED.value

HAS_LINE_ITEMS = Guard(
    name="has_line_items",
    description="Document carries at least one valid line item",
)
MATCHES_PREVIOUS_STATUS = Guard(
    name="matches_previous_status",
    description="Target equals the status held immediately before archiving",
)

DOCUMENT_WORKFLOW = Workflow(
    name="procurement_document",
    description="Lifecycle shared by quote requests, purchase orders and service orders",
    initial_state=_D,
    states=(_D, _S, _AP, _RJ, _AR),
    transitions=(
        Transition(_D, _S, action="send", guard=HAS_LINE_ITEMS),
        Transition(_S, _AP, action="approve"),
        Transition(_S, _RJ, action="reject"),
        Transition(_AP, _S, action="resend"),
        Transition(_RJ, _S, action="resend"),
        Transition(_S, _AR, action="archive"),
        Transition(_AP, _AR, action="archive"),
        Transition(_RJ, _AR, action="archive"),
        Transition(_AR, _S, action="unarchive", guard=MATCHES_PREVIOUS_STATUS),
        Transition(_AR, _AP, action="unarchive", guard=MATCHES_PREVIOUS_STATUS),
        Transition(_AR, _RJ, action="unarchive", guard=MATCHES_PREVIOUS_STATUS),
    ),
)

logger.info(
    "workflow_registered",
    extra={
        "workflow": DOCUMENT_WORKFLOW.name,
        "states": len(DOCUMENT_WORKFLOW.states),
        "transitions": len(DOCUMENT_WORKFLOW.transitions),
    },
)


@dataclass(frozen=True)
class TransitionPlan:
    """Outcome of a permitted transition: the new status pair to persist."""
    action: str
    status: DocumentStatus
    previous_status: DocumentStatus | None


def plan_transition(
    document_type: str,
    document_id: str,
    current: DocumentStatus,
    previous_status: DocumentStatus | None,
    target: DocumentStatus,
    item_count: int,
) -> TransitionPlan:
    """
    Decide whether ``current -> target`` is legal and what to store.

    Raises:
        InvalidTransitionError: Transition not declared, or an unarchive
            whose target is not the recorded pre-archive status.
        ValidationError: Leaving Draft with no line items.
    """
    transition = DOCUMENT_WORKFLOW.find_transition(current.value, target.value)
    if transition is None:
        raise InvalidTransitionError(
            document_type, document_id, current.value, target.value
        )

    if transition.guard is HAS_LINE_ITEMS and item_count < 1:
        raise ValidationError(
            f"{document_type} {document_id} needs at least one line item "
            f"to leave {current.value}"
        )

    if transition.guard is MATCHES_PREVIOUS_STATUS:
        if previous_status is None:
            raise InvalidTransitionError(
                document_type,
                document_id,
                current.value,
                target.value,
                reason="no pre-archive status recorded",
            )
        if previous_status is not target:
            raise InvalidTransitionError(
                document_type,
                document_id,
                current.value,
                target.value,
                reason=f"document was archived from {previous_status.value}",
            )

    if target is DocumentStatus.ARCHIVED:
        return TransitionPlan(transition.action, target, current)
    return TransitionPlan(transition.action, target, None)

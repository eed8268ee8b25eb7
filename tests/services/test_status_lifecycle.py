"""StatusLifecycle applied to stored documents."""

from uuid import uuid4

import pytest

from procurement_kernel.domain.documents import DocumentStatus, DocumentType
from procurement_kernel.exceptions import (
    DocumentNotFoundError,
    InvalidTransitionError,
)
from procurement_kernel.services.status_lifecycle import StatusLifecycle

PO = DocumentType.PURCHASE_ORDER


@pytest.fixture
def lifecycle(repository) -> StatusLifecycle:
    return StatusLifecycle(repository)


@pytest.fixture
def draft(repository, session, make_header, actor, priced_item):
    document = repository.create(PO, make_header(), [priced_item(), priced_item()], actor)
    session.commit()
    return document


class TestTransition:

    def test_send_approve(self, lifecycle, draft):
        sent = lifecycle.transition(PO, draft.id, DocumentStatus.SENT)
        approved = lifecycle.transition(PO, draft.id, DocumentStatus.APPROVED)
        assert sent.status is DocumentStatus.SENT
        assert approved.status is DocumentStatus.APPROVED

    def test_items_untouched(self, lifecycle, draft):
        sent = lifecycle.transition(PO, draft.id, DocumentStatus.SENT)
        assert [i.id for i in sent.items] == [i.id for i in draft.items]

    def test_draft_to_archived_rejected(self, lifecycle, draft, repository):
        with pytest.raises(InvalidTransitionError):
            lifecycle.archive(PO, draft.id)
        assert repository.get(PO, draft.id).status is DocumentStatus.DRAFT

    def test_unknown_document(self, lifecycle):
        with pytest.raises(DocumentNotFoundError):
            lifecycle.transition(PO, uuid4(), DocumentStatus.SENT)

    def test_transition_logged(self, lifecycle, draft, captured_logs):
        lifecycle.transition(PO, draft.id, DocumentStatus.SENT)
        (record,) = [r for r in captured_logs() if r["message"] == "document_status_changed"]
        assert record["action"] == "send"
        assert record["from_status"] == "Draft"
        assert record["to_status"] == "Sent"


class TestArchive:

    @pytest.mark.parametrize(
        "path",
        [
            [DocumentStatus.SENT],
            [DocumentStatus.SENT, DocumentStatus.APPROVED],
            [DocumentStatus.SENT, DocumentStatus.REJECTED],
        ],
    )
    def test_archive_unarchive_round_trip(self, lifecycle, draft, path):
        for status in path:
            lifecycle.transition(PO, draft.id, status)

        archived = lifecycle.archive(PO, draft.id)
        assert archived.status is DocumentStatus.ARCHIVED
        assert archived.previous_status is path[-1]

        restored = lifecycle.unarchive(PO, draft.id)
        assert restored.status is path[-1]
        assert restored.previous_status is None

    def test_unarchive_requires_archived(self, lifecycle, draft):
        lifecycle.transition(PO, draft.id, DocumentStatus.SENT)
        with pytest.raises(InvalidTransitionError) as exc_info:
            lifecycle.unarchive(PO, draft.id)
        assert exc_info.value.reason == "document is not archived"

    def test_unarchive_without_previous_status(self, lifecycle, draft, repository):
        repository.set_status(PO, draft.id, DocumentStatus.ARCHIVED, None)
        with pytest.raises(InvalidTransitionError) as exc_info:
            lifecycle.unarchive(PO, draft.id)
        assert exc_info.value.reason == "no pre-archive status recorded"

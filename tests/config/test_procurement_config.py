"""
Configuration loading and the config-to-kernel bridges.

Covers the shipped default configuration, environment indirections,
rejection of invalid sets, the config trace log, and a service built
entirely from configuration.
"""

from __future__ import annotations

from decimal import Decimal
from pathlib import Path

import pytest
import yaml

from procurement_config import (
    DEFAULT_CONFIG_PATH,
    build_document_policies,
    get_active_config,
)
from procurement_config.loader import compute_checksum, load_yaml_file
from procurement_kernel.db.engine import build_engine, create_tables
from procurement_kernel.domain.clock import DeterministicClock
from procurement_kernel.domain.documents import (
    DocumentStatus,
    DocumentType,
    StatusFilter,
)
from procurement_kernel.exceptions import SequenceResetNotAuthorizedError
from procurement_kernel.services.audit import RecordingAuditSink
from procurement_services import ProcurementDocumentService


@pytest.fixture
def default_data() -> dict:
    return load_yaml_file(DEFAULT_CONFIG_PATH)


@pytest.fixture
def write_config(tmp_path):
    def _write(data: dict) -> Path:
        path = tmp_path / "procurement.yaml"
        path.write_text(yaml.safe_dump(data))
        return path

    return _write


class TestDefaultConfig:

    def test_loads(self):
        settings = get_active_config(environ={})
        assert settings.config_id == "procurement-default"
        assert settings.default_tax_rate == Decimal("0.16")
        assert settings.database.url == "sqlite:///procurement.db"
        assert settings.sequence.reset_secret is None
        assert set(settings.document_types) == {t.value for t in DocumentType}

    def test_prefixes(self):
        policies = build_document_policies(get_active_config(environ={}))
        assert policies[DocumentType.QUOTE_REQUEST].prefix == "SC"
        assert policies[DocumentType.PURCHASE_ORDER].prefix == "OC"
        assert policies[DocumentType.SERVICE_ORDER].prefix == "OS"
        assert policies[DocumentType.PURCHASE_ORDER].active_statuses == {
            DocumentStatus.DRAFT,
            DocumentStatus.SENT,
        }

    def test_environment_overrides(self):
        settings = get_active_config(environ={
            "PROCUREMENT_DATABASE_URL": "postgresql://u:p@db/procurement",
            "PROCUREMENT_SEQUENCE_RESET_SECRET": "s3cret",
        })
        assert settings.database.url == "postgresql://u:p@db/procurement"
        assert settings.sequence.reset_secret == "s3cret"

    def test_secret_not_in_repr(self):
        settings = get_active_config(environ={"PROCUREMENT_SEQUENCE_RESET_SECRET": "s3cret"})
        assert "s3cret" not in repr(settings)

    def test_checksum_deterministic(self, default_data):
        assert compute_checksum(default_data) == compute_checksum(dict(default_data))
        assert get_active_config(environ={}).checksum == compute_checksum(default_data)

    def test_trace_logged(self, captured_logs):
        settings = get_active_config(environ={})
        (record,) = [r for r in captured_logs() if r["message"] == "PROCUREMENT_CONFIG_TRACE"]
        assert record["checksum"] == settings.checksum
        assert record["config_id"] == "procurement-default"
        assert record["sequence_reset_enabled"] is False


class TestInvalidConfig:

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_active_config(tmp_path / "absent.yaml", environ={})

    def test_unknown_document_type(self, default_data, write_config):
        default_data["document_types"]["invoice"] = {"prefix": "FA"}
        with pytest.raises(ValueError):
            get_active_config(write_config(default_data), environ={})

    def test_missing_document_type(self, default_data, write_config):
        del default_data["document_types"]["service_order"]
        with pytest.raises(KeyError):
            get_active_config(write_config(default_data), environ={})

    @pytest.mark.parametrize("statuses", [["Draft", "Pending"], ["Sent", "Archived"]])
    def test_invalid_active_statuses(self, default_data, write_config, statuses):
        default_data["document_types"]["purchase_order"]["active_statuses"] = statuses
        with pytest.raises(ValueError):
            get_active_config(write_config(default_data), environ={})

    def test_invalid_padding(self, default_data, write_config):
        default_data["document_types"]["quote_request"]["number_padding"] = 0
        with pytest.raises(ValueError):
            get_active_config(write_config(default_data), environ={})

    @pytest.mark.parametrize("rate", ["1.5", "-0.1", "sixteen"])
    def test_invalid_tax_rate(self, default_data, write_config, rate):
        default_data["pricing"]["default_tax_rate"] = rate
        with pytest.raises(ValueError):
            get_active_config(write_config(default_data), environ={})


class TestServiceFromSettings:

    @pytest.fixture
    def settings(self, default_data, write_config, tmp_path):
        default_data["document_types"]["purchase_order"].update(
            prefix="PO", number_padding=5, active_statuses=["Draft"],
        )
        default_data["pricing"]["default_tax_rate"] = "0.08"
        url = f"sqlite:///{tmp_path / 'configured.db'}"
        create_tables(build_engine(url))
        return get_active_config(
            write_config(default_data),
            environ={
                "PROCUREMENT_DATABASE_URL": url,
                "PROCUREMENT_SEQUENCE_RESET_SECRET": "s3cret",
            },
        )

    @pytest.fixture
    def configured_service(self, settings) -> ProcurementDocumentService:
        return ProcurementDocumentService.from_settings(
            settings, clock=DeterministicClock(), audit_sink=RecordingAuditSink(),
        )

    def test_configured_numbering_and_tax(
        self, configured_service, make_header, actor, priced_item,
    ):
        document_id = configured_service.create_document(
            DocumentType.PURCHASE_ORDER,
            make_header(),
            [priced_item(tax_rate=None)],
            actor,
        )
        document = configured_service.get_document(DocumentType.PURCHASE_ORDER, document_id)
        assert document.document_number == "PO-2024-01-00001"
        assert document.items[0].tax_rate == Decimal("0.08")

    def test_configured_active_statuses(self, configured_service, make_header, actor, priced_item):
        draft = configured_service.create_document(
            DocumentType.PURCHASE_ORDER, make_header(), [priced_item()], actor,
        )
        sent = configured_service.create_document(
            DocumentType.PURCHASE_ORDER, make_header(), [priced_item()], actor,
        )
        configured_service.transition_status(
            DocumentType.PURCHASE_ORDER, sent, DocumentStatus.SENT, actor,
        )
        active = configured_service.list_documents(DocumentType.PURCHASE_ORDER, StatusFilter.ACTIVE)
        assert [d.id for d in active] == [draft]

    def test_configured_reset_secret(self, configured_service, actor):
        with pytest.raises(SequenceResetNotAuthorizedError):
            configured_service.reset_sequence(DocumentType.SERVICE_ORDER, 5, "guess", actor)
        configured_service.reset_sequence(DocumentType.SERVICE_ORDER, 5, "s3cret", actor)
        assert configured_service.allocate_sequence(DocumentType.SERVICE_ORDER) == 5


"""
Configuration loader (``procurement_config.loader``).

Responsibility
--------------
Loads the YAML configuration file and parses it into the frozen
dataclasses of ``procurement_config.schema``.  The single public entry
point for runtime configuration is ``procurement_config.get_active_config()``.

Invariants enforced
-------------------
* Parse errors raise ``ValueError`` or ``KeyError`` with descriptive
  messages; required keys have no silent defaults.
* ``compute_checksum`` produces a deterministic SHA-256 hash of the parsed
  YAML for configuration identity.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError``.
* Unknown document type or status, bad numbers  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from collections.abc import Mapping
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from procurement_config.schema import (
    DatabaseSettings,
    DocumentTypeSettings,
    ProcurementSettings,
    SequenceSettings,
)
from procurement_kernel.domain.documents import DocumentStatus, DocumentType


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_database(data: dict[str, Any], environ: Mapping[str, str]) -> DatabaseSettings:
    """Parse DatabaseSettings; ``url_env`` in the environment overrides ``url``."""
    url = data["url"]
    url_env = data.get("url_env")
    if url_env and environ.get(url_env):
        url = environ[url_env]
    return DatabaseSettings(
        url=url,
        echo=bool(data.get("echo", False)),
        pool_size=int(data.get("pool_size", 20)),
        max_overflow=int(data.get("max_overflow", 10)),
        pool_timeout=int(data.get("pool_timeout", 30)),
        sqlite_busy_timeout=float(data.get("sqlite_busy_timeout", 30.0)),
    )


def parse_sequence(data: dict[str, Any], environ: Mapping[str, str]) -> SequenceSettings:
    """Parse SequenceSettings, resolving the reset secret from the environment."""
    secret_env = data.get("reset_secret_env")
    secret = environ.get(secret_env) if secret_env else None
    return SequenceSettings(
        reset_secret_env=secret_env,
        reset_secret=secret or None,
    )


def parse_document_type(name: str, data: dict[str, Any]) -> DocumentTypeSettings:
    """
    Parse DocumentTypeSettings for one document type.

    Raises:
        KeyError: ``prefix`` missing.
        ValueError: Unknown status, Archived listed as active, or a
            non-positive padding.
    """
    statuses = tuple(data.get("active_statuses", ("Draft", "Sent")))
    known = {s.value for s in DocumentStatus}
    for status in statuses:
        if status not in known:
            raise ValueError(
                f"document_types.{name}.active_statuses: unknown status {status!r}"
            )
        if status == DocumentStatus.ARCHIVED.value:
            raise ValueError(
                f"document_types.{name}.active_statuses: Archived cannot be active"
            )

    padding = int(data.get("number_padding", 3))
    if padding < 1:
        raise ValueError(f"document_types.{name}.number_padding must be >= 1")

    return DocumentTypeSettings(
        prefix=data["prefix"],
        number_padding=padding,
        active_statuses=statuses,
    )


def parse_tax_rate(value: Any) -> Decimal:
    try:
        rate = Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"pricing.default_tax_rate: cannot parse {value!r}") from None
    if not Decimal("0") <= rate <= Decimal("1"):
        raise ValueError(f"pricing.default_tax_rate must be within [0, 1], got {rate}")
    return rate


def parse_settings(
    data: dict[str, Any], environ: Mapping[str, str], checksum: str = "",
) -> ProcurementSettings:
    """
    Parse the complete configuration.

    Raises:
        KeyError: Required section or key missing.
        ValueError: Invalid values or unknown document types.
    """
    type_data = data["document_types"]
    valid_types = {t.value for t in DocumentType}
    unknown = set(type_data) - valid_types
    if unknown:
        raise ValueError(f"document_types: unknown document type(s) {sorted(unknown)}")
    missing = valid_types - set(type_data)
    if missing:
        raise KeyError(f"document_types: missing {sorted(missing)}")

    pricing = data.get("pricing", {})
    return ProcurementSettings(
        config_id=data["config_id"],
        version=int(data.get("version", 1)),
        database=parse_database(data["database"], environ),
        sequence=parse_sequence(data.get("sequence", {}), environ),
        document_types={
            name: parse_document_type(name, type_data[name]) for name in sorted(type_data)
        },
        default_tax_rate=parse_tax_rate(pricing.get("default_tax_rate", "0.16")),
        log_level=str(data.get("logging", {}).get("level", "INFO")).upper(),
        checksum=checksum,
    )


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()

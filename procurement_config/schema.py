"""
Configuration schema (``procurement_config.schema``).

Frozen dataclasses produced by ``loader.py`` from YAML.  Nothing here reads
files or the environment.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal


@dataclass(frozen=True)
class DatabaseSettings:
    url: str
    echo: bool = False
    pool_size: int = 20
    max_overflow: int = 10
    pool_timeout: int = 30
    sqlite_busy_timeout: float = 30.0


@dataclass(frozen=True)
class SequenceSettings:
    """
    ``reset_secret`` is resolved from the environment variable named by
    ``reset_secret_env``; None disables sequence resets.
    """
    reset_secret_env: str | None = None
    reset_secret: str | None = field(default=None, repr=False)


@dataclass(frozen=True)
class DocumentTypeSettings:
    prefix: str
    number_padding: int = 3
    active_statuses: tuple[str, ...] = ("Draft", "Sent")


@dataclass(frozen=True)
class ProcurementSettings:
    """The complete runtime configuration."""
    config_id: str
    version: int
    database: DatabaseSettings
    sequence: SequenceSettings
    document_types: dict[str, DocumentTypeSettings]
    default_tax_rate: Decimal = Decimal("0.16")
    log_level: str = "INFO"
    checksum: str = ""

"""
procurement_config -- single public entrypoint for procurement configuration.

Responsibility:
    ``get_active_config()`` is the only way to obtain configuration at
    runtime.  No other component reads configuration files or environment
    variables directly.

Architecture position:
    Sits above ``procurement_kernel`` and below ``procurement_services``.
    The kernel never imports from this package; ``bridges.py`` translates
    settings into kernel value objects.

Audit relevance:
    Every successful call emits a ``PROCUREMENT_CONFIG_TRACE`` log entry
    with the config id, version and checksum.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path

from procurement_config.bridges import build_document_policies
from procurement_config.loader import compute_checksum, load_yaml_file, parse_settings
from procurement_config.schema import (
    DatabaseSettings,
    DocumentTypeSettings,
    ProcurementSettings,
    SequenceSettings,
)
from procurement_kernel.logging_config import get_logger

_logger = get_logger("config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "sets" / "default.yaml"


def get_active_config(
    config_path: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> ProcurementSettings:
    """
    The ONLY public configuration entrypoint.

    Args:
        config_path: YAML file to load.  Defaults to the shipped
            ``sets/default.yaml``.
        environ: Environment used to resolve ``*_env`` indirections.
            Defaults to ``os.environ``.

    Raises:
        FileNotFoundError: ``config_path`` does not exist.
        KeyError, ValueError: The configuration is invalid.
    """
    path = config_path or DEFAULT_CONFIG_PATH
    env = os.environ if environ is None else environ

    data = load_yaml_file(path)
    settings = parse_settings(data, env, checksum=compute_checksum(data))

    _logger.info(
        "PROCUREMENT_CONFIG_TRACE",
        extra={
            "trace_type": "PROCUREMENT_CONFIG_TRACE",
            "config_id": settings.config_id,
            "config_version": settings.version,
            "checksum": settings.checksum,
            "config_path": str(path),
            "document_type_count": len(settings.document_types),
            "sequence_reset_enabled": settings.sequence.reset_secret is not None,
        },
    )
    return settings


__all__ = [
    "DEFAULT_CONFIG_PATH",
    "DatabaseSettings",
    "DocumentTypeSettings",
    "ProcurementSettings",
    "SequenceSettings",
    "build_document_policies",
    "get_active_config",
]

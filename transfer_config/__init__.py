"""
transfer_config -- single public entrypoint for engine configuration.

Responsibility:
    Provides the only way to obtain configuration at runtime through
    ``get_active_config()``.  No other component reads configuration files
    or environment variables directly.  Returns a frozen ``EngineConfig``;
    bridges in ``transfer_config.bridges`` translate it into kernel inputs.

Architecture position:
    Configuration -- sits above ``transfer_kernel`` and below
    ``transfer_services`` / ``transfer_api``.  The kernel must never import
    from ``transfer_config``.

Resolution order:
    1. ``defaults.yaml`` shipped with this package.
    2. The overlay file named by ``config_path``, else by the
       ``TRANSFER_ENGINE_CONFIG`` environment variable.
    3. ``DATABASE_URL`` overrides ``database.url``.

Failure modes:
    - ``FileNotFoundError`` -- the overlay file does not exist.
    - ``ConfigurationError`` (a ``ValueError``) -- invalid values.

Audit relevance:
    Every successful call logs ``config_loaded`` with the checksum of the
    merged document, tying engine behaviour to an exact configuration.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from transfer_config.loader import load_yaml_file, merge_documents, parse_engine_config
from transfer_config.schema import ConfigurationError, EngineConfig

_logger = logging.getLogger("transfer_kernel.config")

_DEFAULTS_FILE = Path(__file__).parent / "defaults.yaml"

CONFIG_PATH_ENV = "TRANSFER_ENGINE_CONFIG"
DATABASE_URL_ENV = "DATABASE_URL"


def get_active_config(config_path: Path | str | None = None) -> EngineConfig:
    """The only public configuration entrypoint.

    Args:
        config_path: Optional YAML overlay.  Defaults to the file named by
            ``TRANSFER_ENGINE_CONFIG``, if set.

    Returns:
        EngineConfig -- frozen, validated, with a checksum of its source.

    Raises:
        FileNotFoundError: If the overlay file does not exist.
        ConfigurationError: If any value fails validation.
    """
    data = load_yaml_file(_DEFAULTS_FILE)

    overlay_path = config_path or os.environ.get(CONFIG_PATH_ENV)
    if overlay_path:
        data = merge_documents(data, load_yaml_file(Path(overlay_path)))

    database_url = os.environ.get(DATABASE_URL_ENV)
    if database_url:
        data = merge_documents(data, {"database": {"url": database_url}})

    config = parse_engine_config(data)

    _logger.info(
        "config_loaded",
        extra={
            "checksum": config.checksum,
            "overlay": str(overlay_path) if overlay_path else None,
            "role_count": len(config.onboarding.roles),
            "rule_count": len(config.onboarding.rules),
            "scheduler_enabled": config.scheduler.enabled,
        },
    )
    return config


__all__ = [
    "CONFIG_PATH_ENV",
    "ConfigurationError",
    "DATABASE_URL_ENV",
    "EngineConfig",
    "get_active_config",
]

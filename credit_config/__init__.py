"""
credit_config -- single public entrypoint for engine configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  Services receive the returned
    ``EngineConfig`` by constructor injection and never read files or
    environment variables themselves.

Architecture position:
    Configuration -- sits above ``credit_kernel`` and beside
    ``credit_modules``.  The kernel MUST NEVER import from
    ``credit_config``.

Failure modes:
    - ``FileNotFoundError`` -- the requested configuration file is missing.
    - ``ValueError`` -- unknown keys or invalid values.
"""

from __future__ import annotations

import logging
from pathlib import Path

from credit_config.loader import load_yaml_file, parse_engine_config
from credit_config.schema import EngineConfig

_logger = logging.getLogger("credit_kernel.config")

# Default configuration set
_DEFAULT_CONFIG_FILE = Path(__file__).parent / "sets" / "default.yaml"


def get_active_config(path: Path | str | None = None) -> EngineConfig:
    """
    Load and validate the engine configuration.

    Args:
        path: Override path to a YAML configuration file.
            Defaults to credit_config/sets/default.yaml.

    Returns:
        EngineConfig -- frozen, validated.
    """
    config_file = Path(path) if path is not None else _DEFAULT_CONFIG_FILE
    config = parse_engine_config(load_yaml_file(config_file))

    _logger.info(
        "CREDIT_CONFIG_TRACE",
        extra={
            "trace_type": "CREDIT_CONFIG_TRACE",
            "config_file": str(config_file),
            "checksum": config.checksum,
            "currency": config.currency,
        },
    )
    return config


__all__ = ["EngineConfig", "get_active_config"]

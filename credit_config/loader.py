"""
Configuration Loader (``credit_config.loader``).

Responsibility
--------------
Loads a YAML configuration file and parses it into an ``EngineConfig``.
The single public entry point for runtime config is
``credit_config.get_active_config()``.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Unknown keys or bad values  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from credit_config.schema import EngineConfig


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the document is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Configuration file {path} must contain a mapping")
    return data


def parse_engine_config(data: dict[str, Any]) -> EngineConfig:
    """Parse the ``engine`` section of a configuration document."""
    section = data.get("engine", {})
    if not isinstance(section, dict):
        raise ValueError("'engine' section must be a mapping")
    unknown_sections = sorted(set(data) - {"engine"})
    if unknown_sections:
        raise ValueError(f"Unknown configuration sections: {', '.join(unknown_sections)}")
    return EngineConfig.from_dict({**section, "checksum": compute_checksum(data)})


def compute_checksum(data: dict[str, Any]) -> str:
    """
    SHA-256 checksum of the canonical JSON serialization.

    Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()

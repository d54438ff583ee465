"""Configuration loading and precedence resolution.

Settings are collected into a :class:`~specgate.models.ValidatorConfig` from,
highest precedence first:

1. Explicit arguments (the ``--spec`` CLI flag, ``spec_location=`` keyword).
2. Environment variables (``SPECGATE_SPEC``).
3. Project config (``./specgate.json``), which may set any field.
4. Defaults (``openapi.yml``, routing keys ``controller``/``action``).
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from specgate.exceptions import ConfigError
from specgate.models import ValidatorConfig

logger = logging.getLogger(__name__)

_PROJECT_CONFIG_FILENAME = "specgate.json"
_ENV_SPEC = "SPECGATE_SPEC"


def load_project_config(directory: Optional[Path] = None) -> Optional[dict[str, Any]]:
    """Load project-local configuration from ``specgate.json``.

    Args:
        directory: Directory to look in. Defaults to the current directory.

    Returns:
        The parsed JSON object, or ``None`` if the file does not exist.

    Raises:
        ConfigError: If the file exists but is not a valid JSON object.
    """
    path = (directory or Path.cwd()) / _PROJECT_CONFIG_FILENAME
    if not path.is_file():
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError) as exc:
        raise ConfigError(f"Invalid project config at {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid project config at {path}: expected a JSON object")
    return data


def resolve_config(
    spec_location: Optional[str] = None,
    directory: Optional[Path] = None,
) -> ValidatorConfig:
    """Resolve the effective configuration through the precedence chain.

    Args:
        spec_location: Explicit document location (highest precedence).
        directory: Where to look for ``specgate.json``.

    Returns:
        The merged :class:`~specgate.models.ValidatorConfig`.

    Raises:
        ConfigError: If the project file is invalid.
    """
    data: dict[str, Any] = {}

    project = load_project_config(directory)
    if project is not None:
        data.update(project)

    env_spec = os.environ.get(_ENV_SPEC)
    if env_spec:
        data["spec_location"] = env_spec

    if spec_location is not None:
        data["spec_location"] = spec_location

    try:
        config = ValidatorConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc

    logger.debug("Resolved spec location: %s", config.spec_location)
    return config

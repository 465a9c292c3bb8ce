"""YAML configuration loading.

Used by
[BaseService.from_yaml()][lilrelay.core.base_service.BaseService.from_yaml]
to read a service configuration file. Parsing goes through
``yaml.safe_load`` so configuration files cannot instantiate Python objects.

Examples:
    ```python
    from lilrelay.core.yaml import load_yaml

    config = load_yaml("config/relay.yaml")
    ```
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from .exceptions import ConfigurationError


def load_yaml(config_path: str | Path) -> dict[str, Any]:
    """Load and parse a YAML configuration file.

    Args:
        config_path: Path to the YAML file (absolute or relative).

    Returns:
        Parsed configuration as a dictionary. An empty file yields ``{}``.

    Raises:
        FileNotFoundError: If the file does not exist.
        ConfigurationError: If the file is not valid YAML or its top level
            is not a mapping.

    Warning:
        The result is not schema-checked here; callers hand it to a
        Pydantic model such as
        [RelayConfig][lilrelay.services.relay.configs.RelayConfig].
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with path.open(encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"invalid YAML in {config_path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(
            f"top level of {config_path} must be a mapping, got {type(data).__name__}"
        )
    return data

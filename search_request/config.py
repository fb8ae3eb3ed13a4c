"""Configuration management for search-request."""

from __future__ import annotations

import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import tomli_w

from search_request.exceptions import (
    ConfigParseError,
    ConfigValidationError,
)

RESULT_TYPES = ("entry", "polymer_entity", "assembly", "non_polymer_entity", "mol_definition")


def get_default_config_path() -> Path:
    """Get the default configuration file path."""
    return Path.home() / ".config" / "search-request" / "config.toml"


@dataclass
class Config:
    """Application configuration.

    Attributes:
        registry_path: JSON attribute metadata document for the in-process
            registry. Used when no attribute_data_url is set.
        attribute_data_url: Site root serving ``/search/attribute-data``.
            When set, attribute metadata is fetched from there.
        request_timeout: Timeout in seconds for attribute data requests.
        max_retries: Attempts per attribute data request.
        cache_size: Maximum cached attributes (0 = unbounded).
        strict_values: Reject malformed numeric and date refinement values.
        result_type: Default result type for ``apply``.
        colored_output: Whether to use colored terminal output.
        config_path: Path where config was loaded from (None if defaults).
    """

    registry_path: Path | None = None
    attribute_data_url: str | None = None
    request_timeout: float = 30.0
    max_retries: int = 3
    cache_size: int = 0
    strict_values: bool = False
    result_type: str = "entry"
    colored_output: bool = True
    config_path: Path | None = None

    def validate(self) -> list[str]:
        """Validate configuration values.

        Returns:
            List of warning messages for non-fatal issues.

        Raises:
            ConfigValidationError: If a critical validation fails.
        """
        warnings: list[str] = []

        if self.registry_path is not None:
            self.registry_path = self.registry_path.expanduser().resolve()
            if not self.registry_path.exists():
                warnings.append(f"Attribute metadata registry not found: {self.registry_path}")

        if self.attribute_data_url is not None and not self.attribute_data_url.startswith(
            ("http://", "https://")
        ):
            raise ConfigValidationError(
                "metadata.attribute_data_url", self.attribute_data_url, "must be an http(s) URL"
            )

        if self.request_timeout <= 0:
            raise ConfigValidationError(
                "metadata.request_timeout", self.request_timeout, "must be positive"
            )

        if self.max_retries < 1:
            raise ConfigValidationError("metadata.max_retries", self.max_retries, "must be >= 1")

        if self.cache_size < 0:
            raise ConfigValidationError("metadata.cache_size", self.cache_size, "must be >= 0")

        if self.result_type not in RESULT_TYPES:
            warnings.append(
                f"refinements.result_type={self.result_type!r} is not a known result type; "
                f"it will be searched as a structure result type"
            )

        return warnings


def load_config(config_path: Path | None = None) -> tuple[Config, list[str]]:
    """Load configuration from file or use defaults.

    Args:
        config_path: Explicit config file path. If None, uses default location.

    Returns:
        Tuple of (Config object, list of warning messages).

    Raises:
        ConfigParseError: If config file exists but has invalid syntax.
        ConfigValidationError: If config values are invalid.
    """
    warnings: list[str] = []

    if config_path is None:
        config_path = get_default_config_path()

    config_path = config_path.expanduser().resolve()

    if not config_path.exists():
        config = Config()
        warnings.append(
            f"No config file found at {config_path}. Using defaults. "
            f"Create config with: search-request init-config"
        )
        config_warnings = config.validate()
        return config, warnings + config_warnings

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigParseError(config_path, str(e)) from e

    config = _parse_config_dict(data, config_path)
    config_warnings = config.validate()

    return config, warnings + config_warnings


def _parse_config_dict(data: dict[str, Any], config_path: Path) -> Config:
    """Parse configuration dictionary into Config object."""
    config = Config(config_path=config_path)

    # Parse [metadata] section
    metadata = data.get("metadata", {})
    if "registry" in metadata:
        value = metadata["registry"]
        if not isinstance(value, str):
            raise ConfigValidationError("metadata.registry", value, "must be a string path")
        path = Path(value).expanduser()
        if not path.is_absolute():
            path = config_path.parent / path
        config.registry_path = path

    if "attribute_data_url" in metadata:
        value = metadata["attribute_data_url"]
        if value is not None and not isinstance(value, str):
            raise ConfigValidationError(
                "metadata.attribute_data_url", value, "must be a string or null"
            )
        config.attribute_data_url = value or None

    if "request_timeout" in metadata:
        value = metadata["request_timeout"]
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ConfigValidationError("metadata.request_timeout", value, "must be a number")
        config.request_timeout = float(value)

    if "max_retries" in metadata:
        value = metadata["max_retries"]
        if isinstance(value, bool) or not isinstance(value, int):
            raise ConfigValidationError("metadata.max_retries", value, "must be an integer")
        config.max_retries = value

    if "cache_size" in metadata:
        value = metadata["cache_size"]
        if isinstance(value, bool) or not isinstance(value, int):
            raise ConfigValidationError("metadata.cache_size", value, "must be an integer")
        config.cache_size = value

    # Parse [refinements] section
    refinements = data.get("refinements", {})
    if "strict_values" in refinements:
        value = refinements["strict_values"]
        if not isinstance(value, bool):
            raise ConfigValidationError("refinements.strict_values", value, "must be a boolean")
        config.strict_values = value

    if "result_type" in refinements:
        value = refinements["result_type"]
        if not isinstance(value, str):
            raise ConfigValidationError("refinements.result_type", value, "must be a string")
        config.result_type = value

    # Parse [display] section
    display = data.get("display", {})
    if "colored_output" in display:
        value = display["colored_output"]
        if not isinstance(value, bool):
            raise ConfigValidationError("display.colored_output", value, "must be a boolean")
        config.colored_output = value

    return config


def save_config(config: Config, config_path: Path | None = None) -> None:
    """Save configuration to file.

    Args:
        config: Configuration to save.
        config_path: Path to save to. If None, uses config.config_path or default.
    """
    if config_path is None:
        config_path = config.config_path or get_default_config_path()

    config_path = config_path.expanduser().resolve()
    config_path.parent.mkdir(parents=True, exist_ok=True)

    data: dict[str, Any] = {
        "metadata": {
            "request_timeout": config.request_timeout,
            "max_retries": config.max_retries,
            "cache_size": config.cache_size,
        },
        "refinements": {
            "strict_values": config.strict_values,
            "result_type": config.result_type,
        },
        "display": {
            "colored_output": config.colored_output,
        },
    }

    if config.registry_path is not None:
        data["metadata"]["registry"] = str(config.registry_path)

    if config.attribute_data_url is not None:
        data["metadata"]["attribute_data_url"] = config.attribute_data_url

    with open(config_path, "wb") as f:
        tomli_w.dump(data, f)

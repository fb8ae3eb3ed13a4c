"""Exception hierarchy for search-request."""

from pathlib import Path


class SearchRequestError(Exception):
    """Base exception for all search-request errors.

    All exceptions in this package inherit from this class,
    allowing callers to catch all search-request errors with
    a single except clause.
    """

    pass


# Configuration Errors
class ConfigError(SearchRequestError):
    """Configuration-related errors."""

    pass


class ConfigParseError(ConfigError):
    """Configuration file has invalid syntax."""

    def __init__(self, path: Path, detail: str) -> None:
        self.path = path
        self.detail = detail
        super().__init__(f"Invalid config at {path}: {detail}")


class ConfigValidationError(ConfigError):
    """Configuration value is invalid."""

    def __init__(self, key: str, value: object, reason: str) -> None:
        self.key = key
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid config value for '{key}': {reason}")


# Query Tree Errors
class NodeShapeError(SearchRequestError):
    """A query node does not have the shape the operation requires."""

    def __init__(self, detail: str, node: object = None) -> None:
        self.detail = detail
        self.node = node
        super().__init__(f"Malformed query node: {detail}")


class InvalidRefinementValueError(SearchRequestError):
    """A raw refinement value cannot be converted for its attribute."""

    def __init__(self, attribute: str, value: object, reason: str) -> None:
        self.attribute = attribute
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid value {value!r} for {attribute}: {reason}")


# Attribute Metadata Errors
class MetadataError(SearchRequestError):
    """Attribute metadata errors."""

    pass


class MetadataLoadError(MetadataError):
    """Metadata registry document could not be read."""

    def __init__(self, path: Path, detail: str) -> None:
        self.path = path
        self.detail = detail
        super().__init__(f"Cannot load attribute metadata from {path}: {detail}")


class MetadataLookupError(MetadataError):
    """Attribute metadata service returned an error."""

    pass


class MetadataConnectionError(MetadataLookupError):
    """Failed to reach the attribute metadata service."""

    pass

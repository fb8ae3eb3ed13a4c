"""Attribute metadata: registry, lookups and cache."""

from search_request.metadata.lookup import (
    AttributeCache,
    AttributeLookup,
    RegistryAttributeLookup,
    RemoteAttributeLookup,
)
from search_request.metadata.registry import (
    AttributeMetadata,
    MetadataRegistry,
    get_default_registry,
    set_default_registry,
)

__all__ = [
    "AttributeCache",
    "AttributeLookup",
    "AttributeMetadata",
    "MetadataRegistry",
    "RegistryAttributeLookup",
    "RemoteAttributeLookup",
    "get_default_registry",
    "set_default_registry",
]

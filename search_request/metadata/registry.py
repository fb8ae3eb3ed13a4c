"""In-process registry of attribute metadata.

The registry mirrors the metadata document served alongside the search UI::

    {
        "structure": {
            "uiAttrMap": {
                "<attribute>": {"nestedAttribute": {"attribute": "<nested>"}}
            },
            "facetFilters": {
                "<attribute>": {<terminal node>}
            }
        },
        "chemical": {...}
    }

Only the parts refinements need are decoded: the nested attribute of each
attribute and its facet filter template.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from search_request.exceptions import MetadataLoadError, NodeShapeError
from search_request.query.nodes import Node, Terminal, node_from_dict

logger = logging.getLogger(__name__)


@dataclass
class AttributeMetadata:
    """What the refinement operations need to know about one attribute.

    Attributes:
        nested_attribute: Attribute that must accompany this one as a
            linked pair, if any.
        facet_filter: Template node attached next to every value of this
            attribute. Shared by every user of this metadata, so callers
            must copy it before putting it into a tree.
    """

    nested_attribute: str | None = None
    facet_filter: Node | None = None

    def has_nested_attribute(self, attribute: str | None) -> bool:
        """Return whether ``attribute`` is the registered nested attribute."""
        return self.nested_attribute is not None and self.nested_attribute == attribute

    @property
    def facet_filter_attribute(self) -> str | None:
        if isinstance(self.facet_filter, Terminal):
            return self.facet_filter.parameters.attribute
        return None

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> AttributeMetadata:
        """Decode ``{"attrObj": {...}, "facetFilter": {...}}``."""
        if not data:
            return cls()
        return cls.from_parts(data.get("attrObj"), data.get("facetFilter"))

    @classmethod
    def from_parts(
        cls, attr_obj: dict[str, Any] | None, facet_filter: dict[str, Any] | None
    ) -> AttributeMetadata:
        nested_attribute = None
        nested = (attr_obj or {}).get("nestedAttribute")
        if isinstance(nested, dict):
            nested_attribute = nested.get("attribute")

        return cls(
            nested_attribute=nested_attribute,
            facet_filter=node_from_dict(facet_filter) if facet_filter else None,
        )


@dataclass
class MetadataRegistry:
    """Attribute metadata keyed by schema, then attribute."""

    schemas: dict[str, dict[str, AttributeMetadata]] = field(default_factory=dict)

    def register(self, schema: str, attribute: str, metadata: AttributeMetadata) -> None:
        self.schemas.setdefault(schema, {})[attribute] = metadata

    def get(self, schema: str, attribute: str) -> AttributeMetadata | None:
        return self.schemas.get(schema, {}).get(attribute)

    def __contains__(self, key: tuple[str, str]) -> bool:
        schema, attribute = key
        return attribute in self.schemas.get(schema, {})

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MetadataRegistry:
        """Build a registry from a metadata document."""
        registry = cls()
        for schema, schema_data in data.items():
            ui_attr_map = schema_data.get("uiAttrMap", {}) or {}
            facet_filters = schema_data.get("facetFilters", {}) or {}

            for attribute in sorted(set(ui_attr_map) | set(facet_filters)):
                registry.register(
                    schema,
                    attribute,
                    AttributeMetadata.from_parts(
                        ui_attr_map.get(attribute), facet_filters.get(attribute)
                    ),
                )
        return registry

    @classmethod
    def load(cls, path: Path) -> MetadataRegistry:
        """Load a registry from a JSON metadata document.

        Raises:
            MetadataLoadError: If the file is missing or not a valid document.
        """
        path = path.expanduser()
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except OSError as e:
            raise MetadataLoadError(path, e.strerror or str(e)) from e
        except json.JSONDecodeError as e:
            raise MetadataLoadError(path, str(e)) from e

        if not isinstance(data, dict):
            raise MetadataLoadError(path, "top level must be an object keyed by schema")

        try:
            registry = cls.from_dict(data)
        except (AttributeError, NodeShapeError) as e:
            raise MetadataLoadError(path, str(e)) from e

        logger.debug(
            "Loaded attribute metadata for %d schema(s) from %s", len(registry.schemas), path
        )
        return registry


_default_registry = MetadataRegistry()


def get_default_registry() -> MetadataRegistry:
    """Return the process-wide registry used when none is passed explicitly."""
    return _default_registry


def set_default_registry(registry: MetadataRegistry) -> None:
    global _default_registry
    _default_registry = registry

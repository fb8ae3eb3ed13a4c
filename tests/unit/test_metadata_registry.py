"""Unit tests for the attribute metadata registry."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from conftest import ANNOTATION_ID, ANNOTATION_TYPE, LINEAGE_ID, ORGANISM

from search_request.exceptions import MetadataLoadError
from search_request.metadata.registry import AttributeMetadata, MetadataRegistry
from search_request.query.nodes import Terminal


class TestAttributeMetadata:
    def test_from_dict_empty(self) -> None:
        assert AttributeMetadata.from_dict(None) == AttributeMetadata()
        assert AttributeMetadata.from_dict({}) == AttributeMetadata()

    def test_from_dict_nested_and_filter(self) -> None:
        metadata = AttributeMetadata.from_dict(
            {
                "attrObj": {"nestedAttribute": {"attribute": ANNOTATION_TYPE}},
                "facetFilter": {
                    "type": "terminal",
                    "service": "text",
                    "parameters": {
                        "attribute": ANNOTATION_TYPE,
                        "operator": "exact_match",
                        "value": "CATH",
                    },
                },
            }
        )
        assert metadata.nested_attribute == ANNOTATION_TYPE
        assert isinstance(metadata.facet_filter, Terminal)
        assert metadata.facet_filter_attribute == ANNOTATION_TYPE

    def test_has_nested_attribute(self) -> None:
        metadata = AttributeMetadata(nested_attribute=ANNOTATION_TYPE)
        assert metadata.has_nested_attribute(ANNOTATION_TYPE)
        assert not metadata.has_nested_attribute("other")
        assert not AttributeMetadata().has_nested_attribute(None)

    def test_nested_attribute_without_name_ignored(self) -> None:
        metadata = AttributeMetadata.from_parts({"nestedAttribute": "flat"}, None)
        assert metadata.nested_attribute is None


class TestMetadataRegistry:
    def test_from_dict(self, registry: MetadataRegistry) -> None:
        assert registry.get("structure", LINEAGE_ID).nested_attribute == ANNOTATION_TYPE
        assert registry.get("structure", ORGANISM) == AttributeMetadata()
        assert registry.get("structure", ANNOTATION_ID).facet_filter is not None
        assert ("chemical", "chem_comp.type") in registry

    def test_unknown_lookups(self, registry: MetadataRegistry) -> None:
        assert registry.get("structure", "nope") is None
        assert registry.get("nope", LINEAGE_ID) is None
        assert ("nope", LINEAGE_ID) not in registry

    def test_facet_filter_only_attribute_registered(self) -> None:
        registry = MetadataRegistry.from_dict(
            {
                "structure": {
                    "facetFilters": {
                        "a": {"type": "terminal", "service": "text", "parameters": {"value": 1}},
                    }
                }
            }
        )
        assert registry.get("structure", "a").facet_filter is not None

    def test_load(self, registry_file: Path) -> None:
        registry = MetadataRegistry.load(registry_file)
        assert registry.get("structure", LINEAGE_ID).nested_attribute == ANNOTATION_TYPE

    def test_load_missing_file(self, temp_dir: Path) -> None:
        with pytest.raises(MetadataLoadError) as exc_info:
            MetadataRegistry.load(temp_dir / "missing.json")
        assert exc_info.value.path == temp_dir / "missing.json"

    def test_load_invalid_json(self, temp_dir: Path) -> None:
        path = temp_dir / "bad.json"
        path.write_text("{not json")
        with pytest.raises(MetadataLoadError):
            MetadataRegistry.load(path)

    def test_load_wrong_top_level(self, temp_dir: Path) -> None:
        path = temp_dir / "list.json"
        path.write_text(json.dumps([1, 2]))
        with pytest.raises(MetadataLoadError):
            MetadataRegistry.load(path)

    def test_load_bad_facet_filter(self, temp_dir: Path) -> None:
        path = temp_dir / "bad_filter.json"
        path.write_text(json.dumps({"structure": {"facetFilters": {"a": {"type": "bogus"}}}}))
        with pytest.raises(MetadataLoadError):
            MetadataRegistry.load(path)

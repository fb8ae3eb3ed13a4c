"""Shared pytest fixtures."""

from __future__ import annotations

import json
import shutil
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING, Any

import pytest

from search_request.metadata.registry import MetadataRegistry, set_default_registry
from search_request.query.refinements import reset_default_translator
from search_request.utils.output import set_verbosity

if TYPE_CHECKING:
    from collections.abc import Generator


RESOLUTION = "rcsb_entry_info.resolution_combined"
ORGANISM = "rcsb_entity_source_organism.ncbi_scientific_name"
LINEAGE_ID = "rcsb_polymer_instance_annotation.annotation_lineage.id"
ANNOTATION_TYPE = "rcsb_polymer_instance_annotation.type"
ANNOTATION_ID = "rcsb_polymer_instance_annotation.annotation_id"

METADATA_DOCUMENT: dict[str, Any] = {
    "structure": {
        "uiAttrMap": {
            LINEAGE_ID: {"nestedAttribute": {"attribute": ANNOTATION_TYPE}},
            ANNOTATION_ID: {"nestedAttribute": {"attribute": ANNOTATION_TYPE}},
            ORGANISM: {},
        },
        "facetFilters": {
            ANNOTATION_ID: {
                "type": "terminal",
                "service": "text",
                "parameters": {
                    "attribute": ANNOTATION_TYPE,
                    "operator": "exact_match",
                    "value": "CATH",
                },
            },
        },
    },
    "chemical": {
        "uiAttrMap": {"chem_comp.type": {}},
        "facetFilters": {},
    },
}


@pytest.fixture(autouse=True)
def _reset_defaults() -> Generator[None, None, None]:
    """Isolate tests from the process-wide registry, translator and verbosity."""
    set_default_registry(MetadataRegistry())
    reset_default_translator()
    yield
    set_default_registry(MetadataRegistry())
    reset_default_translator()
    set_verbosity()


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    path = Path(tempfile.mkdtemp())
    try:
        yield path
    finally:
        shutil.rmtree(path, ignore_errors=True)


@pytest.fixture
def metadata_document() -> dict[str, Any]:
    """A fresh copy of the sample metadata document."""
    return json.loads(json.dumps(METADATA_DOCUMENT))


@pytest.fixture
def registry(metadata_document: dict[str, Any]) -> MetadataRegistry:
    """Registry built from the sample metadata document."""
    return MetadataRegistry.from_dict(metadata_document)


@pytest.fixture
def registry_file(temp_dir: Path, metadata_document: dict[str, Any]) -> Path:
    """Sample metadata document written to disk."""
    path = temp_dir / "metadata.json"
    path.write_text(json.dumps(metadata_document))
    return path


@pytest.fixture
def sample_config(temp_dir: Path, registry_file: Path) -> Path:
    """Create a sample config file pointing at the sample registry."""
    config_path = temp_dir / "config.toml"
    config_path.write_text(f"""[metadata]
registry = "{registry_file.name}"
request_timeout = 5
max_retries = 2

[refinements]
strict_values = false
result_type = "entry"

[display]
colored_output = false
""")
    return config_path


def terminal_dict(attribute: str, value: Any, operator: str = "exact_match", service: str = "text"):
    """Wire JSON for a terminal node."""
    return {
        "type": "terminal",
        "service": service,
        "parameters": {"attribute": attribute, "operator": operator, "value": value},
    }


@pytest.fixture
def group_request_dict() -> dict[str, Any]:
    """A request whose query already has a text service group."""
    return {
        "query": {
            "type": "group",
            "logical_operator": "and",
            "nodes": [
                {
                    "type": "group",
                    "logical_operator": "and",
                    "label": "text",
                    "nodes": [
                        {
                            "type": "group",
                            "logical_operator": "and",
                            "nodes": [terminal_dict("exptl.method", "X-RAY DIFFRACTION")],
                        }
                    ],
                },
                {
                    "type": "terminal",
                    "service": "full_text",
                    "parameters": {"value": "kinase"},
                },
            ],
        },
        "return_type": "entry",
        "request_options": {"paginate": {"start": 0, "rows": 25}},
    }


@pytest.fixture
def terminal_request_dict() -> dict[str, Any]:
    """A request whose query is a bare terminal."""
    return {
        "query": terminal_dict("exptl.method", "ELECTRON MICROSCOPY"),
        "return_type": "entry",
    }

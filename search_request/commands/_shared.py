"""Helpers shared by the request commands."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import IO, Any

import click

from search_request.config import Config
from search_request.exceptions import NodeShapeError
from search_request.metadata.lookup import (
    AttributeCache,
    RegistryAttributeLookup,
    RemoteAttributeLookup,
)
from search_request.metadata.registry import MetadataRegistry
from search_request.query.nodes import SearchRequest
from search_request.query.refinements import RefinementTranslator
from search_request.utils.output import dump_json

logger = logging.getLogger(__name__)


def read_json(stream: IO[str], what: str) -> Any:
    """Read a JSON document, raising ``click.BadParameter`` when it is invalid."""
    try:
        return json.load(stream)
    except json.JSONDecodeError as e:
        raise click.BadParameter(f"{what} is not valid JSON: {e}") from e


def read_request(stream: IO[str]) -> SearchRequest:
    """Decode a search request from ``stream``.

    Raises:
        NodeShapeError: If the document is not a search request.
    """
    return SearchRequest.from_dict(read_json(stream, "request"))


def write_request(request: SearchRequest, output: Path | None) -> None:
    """Write ``request`` as JSON to ``output``, or stdout when None."""
    text = dump_json(request.to_dict())
    if output is None:
        click.echo(text)
        return
    output.write_text(text + "\n", encoding="utf-8")
    logger.info("Wrote request to %s", output)


def build_registry(config: Config | None) -> MetadataRegistry:
    """Load the configured metadata registry, or an empty one."""
    if config is None or config.registry_path is None:
        return MetadataRegistry()
    return MetadataRegistry.load(config.registry_path)


def build_translator(config: Config | None, registry: MetadataRegistry) -> RefinementTranslator:
    """Create a translator backed by the remote service or ``registry``."""
    config = config or Config()
    if config.attribute_data_url:
        lookup = RemoteAttributeLookup(
            config.attribute_data_url,
            timeout=config.request_timeout,
            max_retries=config.max_retries,
        )
    else:
        lookup = RegistryAttributeLookup(registry)

    return RefinementTranslator(
        lookup,
        AttributeCache(max_size=config.cache_size or None),
        strict_values=config.strict_values,
    )


def parse_refinement_option(value: str) -> tuple[str, list[str]]:
    """Split ``ATTRIBUTE=V1,V2`` into the attribute and its values.

    Raises:
        NodeShapeError: If there is no ``=`` or no attribute.
    """
    attribute, sep, raw_values = value.partition("=")
    attribute = attribute.strip()
    if not sep or not attribute:
        raise NodeShapeError(f"expected ATTRIBUTE=VALUE[,VALUE...], got {value!r}")
    return attribute, [v.strip() for v in raw_values.split(",") if v.strip()]

"""Translate refinement panel selections into query nodes.

Refinements arrive as attribute/values descriptors::

    [
        {"attribute": "rcsb_entity_source_organism.ncbi_scientific_name",
         "values": ["Homo sapiens", "Human immunodeficiency virus"]},
        {"attribute": "rcsb_entry_info.resolution_combined",
         "values": ["*-0.5", "0.5-1.0"]},
    ]

Each call to ``add_refinements`` appends a new, unlabeled ``and`` group to
the service group of the request, holding one ``or`` group per attribute.
Earlier refinement groups are left as they are.
"""

from __future__ import annotations

import copy
import inspect
import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from search_request.exceptions import NodeShapeError
from search_request.metadata.lookup import (
    AttributeCache,
    AttributeLookup,
    RegistryAttributeLookup,
)
from search_request.metadata.registry import AttributeMetadata, get_default_registry
from search_request.query.navigator import (
    find_or_create_group,
    find_or_create_service_group,
    make_group,
)
from search_request.query.nodes import (
    LABEL_NESTED_ATTRIBUTE,
    Group,
    LogicalOperator,
    Operator,
    SearchRequest,
    terminal,
)
from search_request.query.values import normalize_value, validate_raw_value

logger = logging.getLogger(__name__)

RESULT_TYPE_MOL_DEFINITION = "mol_definition"


@dataclass
class Refinement:
    """An attribute and the raw values selected for it."""

    attribute: str
    values: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Refinement:
        """Decode ``{"attribute": ..., "values": [...]}``.

        A single string stands for a one-item list. Numbers are kept in their
        decimal text form (``2`` becomes ``"2"``); any other item is rejected.
        """
        try:
            attribute = data["attribute"]
            values = data.get("values", [])
        except (KeyError, TypeError, AttributeError) as e:
            raise NodeShapeError("refinement requires 'attribute' and 'values'", data) from e
        if not isinstance(attribute, str):
            raise NodeShapeError("refinement 'attribute' must be a string", data)
        if isinstance(values, str):
            values = [values]
        if not isinstance(values, list):
            raise NodeShapeError("refinement 'values' must be a list", data)
        for value in values:
            if isinstance(value, bool) or not isinstance(value, (str, int, float)):
                raise NodeShapeError(f"refinement value {value!r} is not a string or number", data)
        return cls(attribute=attribute, values=[str(v) for v in values])


def resolve_result_type(result_type: str) -> tuple[str, str]:
    """Return the ``(schema, service)`` pair searched for ``result_type``."""
    if result_type == RESULT_TYPE_MOL_DEFINITION:
        return "chemical", "text_chem"
    return "structure", "text"


def _coerce(refinement: Refinement | Mapping[str, Any]) -> Refinement:
    return refinement if isinstance(refinement, Refinement) else Refinement.from_dict(refinement)


def add_value_nodes(
    service: str, attribute_group: Group, refinement: Refinement, *, strict: bool = False
) -> None:
    """Append one terminal per value, converted for the attribute."""
    for raw in refinement.values:
        operator, value = normalize_value(refinement.attribute, raw, strict=strict)
        attribute_group.nodes.append(terminal(service, refinement.attribute, operator, value))


def add_facet_filter_nodes(
    service: str, attribute_group: Group, refinement: Refinement, metadata: AttributeMetadata
) -> None:
    """Append one ``and`` pair per value: the value and a copy of the facet filter.

    The pair is labeled ``nested-attribute`` when the facet filter searches
    the attribute's registered nested attribute.
    """
    label = (
        LABEL_NESTED_ATTRIBUTE
        if metadata.has_nested_attribute(metadata.facet_filter_attribute)
        else None
    )

    for raw in refinement.values:
        pair = make_group(label, LogicalOperator.AND)
        pair.nodes.append(terminal(service, refinement.attribute, Operator.EXACT_MATCH, raw))
        # every occurrence owns its filter; the template stays untouched
        pair.nodes.append(copy.deepcopy(metadata.facet_filter))
        attribute_group.nodes.append(pair)


class RefinementTranslator:
    """Adds refinement panel selections to requests.

    Owns the attribute metadata cache: each attribute is looked up at most
    once per schema for as long as the translator (or its cache) lives.

    Args:
        lookup: Callable ``(attributes, schema)`` returning attribute
            metadata, directly or as an awaitable.
        cache: Attribute cache to use; a new unbounded one by default.
        strict_values: Reject malformed numeric and date values instead of
            producing ``nan``.
    """

    def __init__(
        self,
        lookup: AttributeLookup,
        cache: AttributeCache | None = None,
        *,
        strict_values: bool = False,
    ) -> None:
        self.lookup = lookup
        self.cache = cache if cache is not None else AttributeCache()
        self.strict_values = strict_values

    async def resolve(
        self, attributes: Iterable[str], schema: str
    ) -> dict[str, AttributeMetadata]:
        """Return metadata for ``attributes``, fetching the uncached ones."""
        attributes = list(attributes)
        resolved: dict[str, AttributeMetadata] = {}
        missing = self.cache.missing(schema, attributes)

        for attribute in attributes:
            cached = self.cache.get(schema, attribute)
            if cached is not None:
                resolved[attribute] = cached

        if not missing:
            logger.debug("All %d attribute(s) cached for %s", len(resolved), schema)
            return resolved

        logger.debug("Looking up %d attribute(s) for %s", len(missing), schema)
        fetched = self.lookup(missing, schema)
        if inspect.isawaitable(fetched):
            fetched = await fetched

        for attribute in missing:
            metadata = fetched.get(attribute)
            if metadata is None:
                logger.debug("No metadata for %s in %s", attribute, schema)
                metadata = AttributeMetadata()
            self.cache.put(schema, attribute, metadata)
            resolved[attribute] = metadata
        return resolved

    async def add_refinements(
        self,
        request: SearchRequest,
        refinements: Iterable[Refinement | Mapping[str, Any]],
        result_type: str = "entry",
    ) -> None:
        """Append a new refinements group built from ``refinements`` to ``request``.

        Metadata for every attribute is resolved, and in strict mode every
        value validated, before the tree is touched; a failed lookup or a
        rejected value leaves ``request`` unchanged.

        Raises:
            MetadataLookupError: If attribute metadata cannot be fetched.
            InvalidRefinementValueError: In strict mode, for malformed values.
        """
        refinements = [_coerce(r) for r in refinements]
        schema, service = resolve_result_type(result_type)

        resolved = await self.resolve((r.attribute for r in refinements), schema)
        if self.strict_values:
            for refinement in refinements:
                if resolved[refinement.attribute].facet_filter is None:
                    for raw in refinement.values:
                        validate_raw_value(refinement.attribute, raw)

        service_group = find_or_create_service_group(request, service)
        refinements_group = make_group(None, LogicalOperator.AND)
        service_group.nodes.append(refinements_group)

        for refinement in refinements:
            attribute_group = find_or_create_group(
                refinements_group, refinement.attribute, LogicalOperator.OR
            )
            metadata = resolved[refinement.attribute]
            if metadata.facet_filter is not None:
                add_facet_filter_nodes(service, attribute_group, refinement, metadata)
            else:
                add_value_nodes(service, attribute_group, refinement, strict=self.strict_values)

        logger.debug(
            "Added %d refinement(s) to the %s service group", len(refinements), service
        )


_default_translator: RefinementTranslator | None = None


def get_default_translator() -> RefinementTranslator:
    """Return the process-wide translator, backed by the default registry."""
    global _default_translator
    if _default_translator is None:
        _default_translator = RefinementTranslator(RegistryAttributeLookup(get_default_registry()))
    return _default_translator


def set_default_translator(translator: RefinementTranslator | None) -> None:
    global _default_translator
    _default_translator = translator


def reset_default_translator() -> None:
    """Drop the default translator and with it its attribute cache."""
    set_default_translator(None)


async def add_refinements(
    request: SearchRequest,
    refinements: Iterable[Refinement | Mapping[str, Any]],
    result_type: str = "entry",
    *,
    translator: RefinementTranslator | None = None,
) -> None:
    """Append refinement panel selections to ``request`` in place.

    ``result_type`` ``mol_definition`` searches the ``chemical`` schema with
    the ``text_chem`` service; anything else the ``structure`` schema with
    the ``text`` service.
    """
    if translator is None:
        translator = get_default_translator()
    await translator.add_refinements(request, refinements, result_type)

"""Merge a single refinement node into a search request.

All refinements added here end up in one canonical place::

    query (and)
    └── <service> (and)
        └── groups-refinements (and)
            └── <attribute> (or)
                └── refinement nodes

A refinement node is either a terminal, or a group pairing a terminal for
the attribute with a terminal for its nested attribute::

    {
        "type": "group",
        "logical_operator": "and",
        "nodes": [
            {"type": "terminal", "service": "text",
             "parameters": {"attribute": "rcsb_polymer_instance_annotation.annotation_lineage.id",
                            "operator": "exact_match", "value": "2"}},
            {"type": "terminal", "service": "text",
             "parameters": {"attribute": "rcsb_polymer_instance_annotation.type",
                            "operator": "exact_match", "value": "CATH"}}
        ]
    }
"""

from __future__ import annotations

import logging

from search_request.exceptions import NodeShapeError
from search_request.metadata.registry import MetadataRegistry, get_default_registry
from search_request.query.navigator import find_or_create_group, find_or_create_service_group
from search_request.query.nodes import (
    LABEL_GROUPS_REFINEMENTS,
    LABEL_NESTED_ATTRIBUTE,
    Group,
    LogicalOperator,
    Node,
    SearchRequest,
    Terminal,
)

logger = logging.getLogger(__name__)


def _pair_parts(node: Group) -> tuple[Terminal, Terminal]:
    if len(node.nodes) != 2 or not all(isinstance(child, Terminal) for child in node.nodes):
        raise NodeShapeError("refinement group must hold exactly two terminal nodes", node)
    return node.nodes[0], node.nodes[1]


def _contains_value(attribute_group: Group, value: object) -> bool:
    for child in attribute_group.nodes:
        if isinstance(child, Group):
            child = child.nodes[0] if child.nodes else None
        if isinstance(child, Terminal) and child.parameters.value == value:
            return True
    return False


def add_refinement(
    request: SearchRequest,
    node: Node,
    schema: str = "structure",
    service: str = "text",
    *,
    registry: MetadataRegistry | None = None,
) -> None:
    """Add a refinement node to ``request`` in place.

    The node goes into the ``groups-refinements`` group of the ``service``
    group, under an ``or`` group labeled with its attribute; all of these
    are created when missing. A terminal query is first wrapped so the
    request has that structure. Nothing is added when the attribute group
    already holds the same value.

    A group node is labeled ``nested-attribute`` when its second terminal is
    the nested attribute registered for the first terminal's attribute in
    ``schema``.

    Args:
        request: Request to modify.
        node: Terminal, or group of two terminals (attribute, nested attribute).
        schema: Metadata schema the attribute belongs to.
        service: Search service the refinement targets.
        registry: Attribute metadata; defaults to the process-wide registry.

    Raises:
        NodeShapeError: If ``node`` is a group that is not a terminal pair.
    """
    service_group = find_or_create_service_group(request, service)
    refinements_group = find_or_create_group(
        service_group, LABEL_GROUPS_REFINEMENTS, LogicalOperator.AND
    )

    if isinstance(node, Terminal):
        attribute, value = node.parameters.attribute, node.parameters.value
        attribute_group = find_or_create_group(refinements_group, attribute, LogicalOperator.OR)

        if _contains_value(attribute_group, value):
            logger.debug("Refinement %s=%r already present, skipping", attribute, value)
            return
        attribute_group.nodes.append(node)
        return

    if not isinstance(node, Group):
        raise NodeShapeError(f"unsupported refinement node {type(node).__name__}", node)

    primary, nested = _pair_parts(node)
    attribute, value = primary.parameters.attribute, primary.parameters.value
    attribute_group = find_or_create_group(refinements_group, attribute, LogicalOperator.OR)

    if _contains_value(attribute_group, value):
        logger.debug("Refinement %s=%r already present, skipping", attribute, value)
        return

    if registry is None:
        registry = get_default_registry()
    metadata = registry.get(schema, attribute)
    if metadata is not None and metadata.has_nested_attribute(nested.parameters.attribute):
        node.label = LABEL_NESTED_ATTRIBUTE
        logger.debug(
            "Refinement %s paired with nested attribute %s", attribute, metadata.nested_attribute
        )

    attribute_group.nodes.append(node)

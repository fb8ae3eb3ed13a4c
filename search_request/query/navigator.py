"""Locate and create labeled groups inside a query tree."""

from __future__ import annotations

import logging

from search_request.query.nodes import Group, LogicalOperator, Node, SearchRequest, Terminal

logger = logging.getLogger(__name__)


def make_group(label: str | None = None, logical_operator: str = LogicalOperator.AND) -> Group:
    """Return an empty group, labeled only when ``label`` is given."""
    return Group(logical_operator=logical_operator, nodes=[], label=label or None)


def find_or_create_group(
    parent: Node, label: str, operator: str = LogicalOperator.AND
) -> Group | None:
    """Return the child group of ``parent`` labeled ``label``.

    The first child carrying the label wins; labels are unique among
    siblings. When there is no such child, an empty group with that label
    and ``operator`` is appended to ``parent.nodes`` and returned.

    Returns ``None`` when ``parent`` is not a group.
    """
    if not isinstance(parent, Group):
        return None

    for child in parent.nodes:
        if isinstance(child, Group) and child.label == label:
            return child

    group = make_group(label, operator)
    parent.nodes.append(group)
    return group


def find_or_create_service_group(request: SearchRequest, service: str) -> Group:
    """Return the ``service`` group at the top of ``request.query``.

    A request whose query is a bare terminal is re-rooted first: the query
    becomes an ``and`` group holding the service group, and the original
    terminal moves into an unlabeled ``and`` group inside it.
    """
    if isinstance(request.query, Terminal):
        original = request.query
        request.query = make_group(None, LogicalOperator.AND)
        service_group = find_or_create_group(request.query, service, LogicalOperator.AND)

        inner = make_group(None, LogicalOperator.AND)
        inner.nodes.append(original)
        service_group.nodes.append(inner)
        logger.debug("Wrapped terminal query under the %s service group", service)
        return service_group

    return find_or_create_group(request.query, service, LogicalOperator.AND)

"""Query tree model, navigation and value normalisation."""

from search_request.query.navigator import find_or_create_group, make_group
from search_request.query.nodes import (
    LABEL_GROUPS_REFINEMENTS,
    LABEL_NESTED_ATTRIBUTE,
    Group,
    LogicalOperator,
    Node,
    Operator,
    RangeValue,
    SearchRequest,
    Terminal,
    TerminalParameters,
    node_from_dict,
    terminal,
)
from search_request.query.values import normalize_value, validate_raw_value

__all__ = [
    "LABEL_GROUPS_REFINEMENTS",
    "LABEL_NESTED_ATTRIBUTE",
    "Group",
    "LogicalOperator",
    "Node",
    "Operator",
    "RangeValue",
    "SearchRequest",
    "Terminal",
    "TerminalParameters",
    "find_or_create_group",
    "make_group",
    "node_from_dict",
    "normalize_value",
    "terminal",
    "validate_raw_value",
]

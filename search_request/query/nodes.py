"""Data classes for search API query trees.

A query tree is made of two node variants:

- ``Terminal``: a single criterion (attribute/operator/value) sent to one
  search service.
- ``Group``: an ``and``/``or`` combination of child nodes, optionally carrying
  a label used to find it again among its siblings.

Wire JSON is decoded into these classes once, by ``node_from_dict`` and
``SearchRequest.from_dict``, and encoded back with ``to_dict``. The field
names and string values produced by ``to_dict`` are what the search service
expects and must not change.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Union

from search_request.exceptions import NodeShapeError

TERMINAL = "terminal"
GROUP = "group"

LABEL_GROUPS_REFINEMENTS = "groups-refinements"
LABEL_NESTED_ATTRIBUTE = "nested-attribute"

_RANGE_KEYS = ("from", "to", "include_lower", "include_upper")
_PARAMETER_KEYS = ("attribute", "operator", "value")
_TERMINAL_KEYS = ("type", "service", "parameters")
_GROUP_KEYS = ("type", "nodes", "logical_operator", "label")


class LogicalOperator(str, enum.Enum):
    """How a group combines its children."""

    AND = "and"
    OR = "or"


class Operator(str, enum.Enum):
    """Comparison operators produced by refinements."""

    EXACT_MATCH = "exact_match"
    LESS = "less"
    GREATER_OR_EQUAL = "greater_or_equal"
    RANGE = "range"


@dataclass
class RangeValue:
    """A ``range`` operator value.

    ``from`` is a keyword in Python, so the lower bound is stored as
    ``from_`` and serialised as ``from``. A flag decoded as ``None`` was
    absent on the wire and is not written back.
    """

    from_: Any
    to: Any
    include_lower: bool | None = True
    include_upper: bool | None = False
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"from": self.from_, "to": self.to}
        if self.include_lower is not None:
            data["include_lower"] = self.include_lower
        if self.include_upper is not None:
            data["include_upper"] = self.include_upper
        data.update(self.extra)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RangeValue:
        return cls(
            from_=data.get("from"),
            to=data.get("to"),
            include_lower=data.get("include_lower"),
            include_upper=data.get("include_upper"),
            extra={k: v for k, v in data.items() if k not in _RANGE_KEYS},
        )


Value = Union[str, int, float, RangeValue, list, dict, None]


@dataclass
class TerminalParameters:
    """Parameters of a terminal node.

    ``attribute`` and ``operator`` are absent for services that do not
    search a specific attribute (e.g. full text). Keys this class does not
    know about are kept in ``extra`` and written back unchanged.
    """

    attribute: str | None = None
    operator: str | None = None
    value: Value = None
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        if self.attribute is not None:
            data["attribute"] = self.attribute
        if self.operator is not None:
            data["operator"] = _enum_value(self.operator)
        if isinstance(self.value, RangeValue):
            data["value"] = self.value.to_dict()
        elif self.value is not None:
            data["value"] = self.value
        data.update(self.extra)
        return data


@dataclass
class Terminal:
    """A leaf criterion against one search service.

    Node keys this class does not know about (``node_id``, ...) are kept in
    ``extra`` and written back unchanged.
    """

    service: str
    parameters: TerminalParameters = field(default_factory=TerminalParameters)
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def attribute(self) -> str | None:
        return self.parameters.attribute

    @property
    def value(self) -> Value:
        return self.parameters.value

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": TERMINAL,
            "service": self.service,
            "parameters": self.parameters.to_dict(),
            **self.extra,
        }


@dataclass
class Group:
    """An internal node combining its children with ``and`` or ``or``."""

    logical_operator: str = LogicalOperator.AND
    nodes: list[Node] = field(default_factory=list)
    label: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "type": GROUP,
            "nodes": [node.to_dict() for node in self.nodes],
            "logical_operator": _enum_value(self.logical_operator),
        }
        if self.label is not None:
            data["label"] = self.label
        data.update(self.extra)
        return data


Node = Union[Terminal, Group]


def terminal(service: str, attribute: str, operator: str, value: Value) -> Terminal:
    """Build a terminal node for an attribute criterion."""
    return Terminal(
        service=service,
        parameters=TerminalParameters(attribute=attribute, operator=operator, value=value),
    )


def node_from_dict(data: Any) -> Node:
    """Decode a wire JSON node into a ``Terminal`` or ``Group``.

    Raises:
        NodeShapeError: If ``data`` is not a terminal or group node.
    """
    if not isinstance(data, dict):
        raise NodeShapeError(f"expected an object, got {type(data).__name__}", data)

    node_type = data.get("type")
    if node_type == TERMINAL:
        return _terminal_from_dict(data)
    if node_type == GROUP:
        return _group_from_dict(data)
    raise NodeShapeError(f"unknown node type {node_type!r}", data)


def _terminal_from_dict(data: dict[str, Any]) -> Terminal:
    service = data.get("service")
    if not isinstance(service, str):
        raise NodeShapeError("terminal node requires a 'service' string", data)

    raw_parameters = data.get("parameters", {})
    if not isinstance(raw_parameters, dict):
        raise NodeShapeError("terminal 'parameters' must be an object", data)

    extra = {k: v for k, v in raw_parameters.items() if k not in _PARAMETER_KEYS}
    value = raw_parameters.get("value")
    if isinstance(value, dict) and "from" in value and "to" in value:
        value = RangeValue.from_dict(value)

    operator = raw_parameters.get("operator")
    parameters = TerminalParameters(
        attribute=raw_parameters.get("attribute"),
        operator=_coerce_enum(Operator, operator),
        value=value,
        extra=extra,
    )
    return Terminal(
        service=service,
        parameters=parameters,
        extra={k: v for k, v in data.items() if k not in _TERMINAL_KEYS},
    )


def _group_from_dict(data: dict[str, Any]) -> Group:
    nodes = data.get("nodes")
    if not isinstance(nodes, list):
        raise NodeShapeError("group node requires a 'nodes' list", data)

    logical_operator = data.get("logical_operator")
    if logical_operator not in (LogicalOperator.AND.value, LogicalOperator.OR.value):
        raise NodeShapeError(f"invalid logical_operator {logical_operator!r}", data)

    return Group(
        logical_operator=LogicalOperator(logical_operator),
        nodes=[node_from_dict(child) for child in nodes],
        label=data.get("label"),
        extra={k: v for k, v in data.items() if k not in _GROUP_KEYS},
    )


def _coerce_enum(enum_cls: type[enum.Enum], value: Any) -> Any:
    """Return the enum member for ``value`` or ``value`` itself if unknown."""
    try:
        return enum_cls(value)
    except ValueError:
        return value


def _enum_value(value: Any) -> Any:
    return value.value if isinstance(value, enum.Enum) else value


@dataclass
class SearchRequest:
    """A search API request.

    Attributes:
        query: Root node of the query tree.
        options: All other top-level request keys (``return_type``,
            ``request_options``, ...), passed through untouched.
    """

    query: Node
    options: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SearchRequest:
        if not isinstance(data, dict) or "query" not in data:
            raise NodeShapeError("request requires a 'query' node", data)
        options = {k: v for k, v in data.items() if k != "query"}
        return cls(query=node_from_dict(data["query"]), options=options)

    def to_dict(self) -> dict[str, Any]:
        return {"query": self.query.to_dict(), **self.options}

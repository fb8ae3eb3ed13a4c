"""Convert raw refinement strings into operator/value pairs.

Refinement panels send every selected value as a string. The attribute
decides how it is read:

- numeric range attributes take ``*-N`` (less than N), ``N-*`` (N or more)
  or ``N-M`` (N inclusive to M exclusive);
- date range attributes take a year and expand it to a five year window;
- everything else is an exact match on the raw string.

Numbers are read the lenient way the refinement panel has always relied
on: the longest numeric prefix of a token, or ``nan`` when there is none.
Pass ``strict=True`` (or call ``validate_raw_value`` first) to reject such
input instead.
"""

from __future__ import annotations

import math
import re

from search_request.exceptions import InvalidRefinementValueError
from search_request.query.nodes import Operator, RangeValue, Value

NUMERIC_RANGE_ATTRIBUTES: frozenset[str] = frozenset(
    {
        "rcsb_entry_info.resolution_combined",
        "chem_comp.formula_weight",
        "rcsb_chem_comp_info.atom_count_heavy",
    }
)

DATE_RANGE_ATTRIBUTES: frozenset[str] = frozenset(
    {
        "rcsb_accession_info.initial_release_date",
        "rcsb_chem_comp_info.initial_release_date",
    }
)

DATE_WINDOW_YEARS = 5

_FLOAT_PREFIX_RE = re.compile(
    r"\s*([+-]?(?:Infinity|\d+\.?\d*(?:[eE][+-]?\d+)?|\.\d+(?:[eE][+-]?\d+)?))"
)
_INT_PREFIX_RE = re.compile(r"\s*([+-]?\d+)")

_NUMBER = r"\d+(?:\.\d+)?"
_NUMERIC_RANGE_RE = re.compile(rf"^(?:\*-{_NUMBER}|{_NUMBER}-\*|{_NUMBER}-{_NUMBER})$")
_YEAR_RE = re.compile(r"^\d{4}$")


def _parse_float(token: str | None) -> float:
    if token is None:
        return math.nan
    match = _FLOAT_PREFIX_RE.match(token)
    if match is None:
        return math.nan
    return float(match.group(1).replace("Infinity", "inf"))


def _parse_int(token: str) -> int | None:
    match = _INT_PREFIX_RE.match(token)
    return int(match.group(1)) if match else None


def validate_raw_value(attribute: str, raw: str) -> None:
    """Check that ``raw`` can be converted for ``attribute``.

    Raises:
        InvalidRefinementValueError: If a numeric range value is not of the
            form ``*-N``, ``N-*`` or ``N-M``, or a date range value is not a
            four digit year.
    """
    if attribute in NUMERIC_RANGE_ATTRIBUTES:
        if not _NUMERIC_RANGE_RE.match(raw):
            raise InvalidRefinementValueError(attribute, raw, "expected '*-N', 'N-*' or 'N-M'")
    elif attribute in DATE_RANGE_ATTRIBUTES:
        if not _YEAR_RE.match(raw):
            raise InvalidRefinementValueError(attribute, raw, "expected a four digit year")


def _numeric_range(raw: str) -> tuple[Operator, Value]:
    tokens = raw.split("-")
    first = tokens[0]
    second = tokens[1] if len(tokens) > 1 else None

    if raw.startswith("*"):
        return Operator.LESS, _parse_float(second)
    if "-*" in raw:
        return Operator.GREATER_OR_EQUAL, _parse_float(first)
    return Operator.RANGE, RangeValue(
        from_=_parse_float(first),
        to=_parse_float(second),
        include_lower=True,
        include_upper=False,
    )


def _date_range(raw: str) -> tuple[Operator, Value]:
    year = _parse_int(raw)
    last_year = "NaN" if year is None else str(year + DATE_WINDOW_YEARS - 1)
    return Operator.RANGE, RangeValue(
        from_=f"{raw}-01-01",
        to=f"{last_year}-12-31",
        include_lower=True,
        include_upper=True,
    )


def normalize_value(attribute: str, raw: str, *, strict: bool = False) -> tuple[Operator, Value]:
    """Return the ``(operator, value)`` pair for a raw refinement value.

    Args:
        attribute: Attribute the value was selected for.
        raw: Value as sent by the refinement panel.
        strict: Validate ``raw`` first instead of producing ``nan``.

    Raises:
        InvalidRefinementValueError: In strict mode, if ``raw`` is malformed.
    """
    if strict:
        validate_raw_value(attribute, raw)

    if attribute in NUMERIC_RANGE_ATTRIBUTES:
        return _numeric_range(raw)
    if attribute in DATE_RANGE_ATTRIBUTES:
        return _date_range(raw)
    return Operator.EXACT_MATCH, raw

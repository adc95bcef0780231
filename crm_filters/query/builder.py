from __future__ import annotations
from datetime import datetime, timedelta
from functools import reduce
from typing import Any, Callable, Dict, List, Optional, Sequence

from ..errors import MalformedRange, UnsupportedOperator, ValidationError
from ..filters import MAX_FILTER_DEPTH, FilterCondition, FilterGroup, FilterOperator, LogicalOperator
from .dates import parse_date_value, resolve_relative_date, start_of_day

Predicate = Dict[str, Any]
ApplyField = Callable[[Sequence[str], Predicate], Predicate]

_INSENSITIVE = "insensitive"


def build_nested_field(path: Sequence[str], leaf: Predicate) -> Predicate:
    """
    Wrap a leaf predicate once per path segment, innermost first:
    ['company', 'industry'] -> {'company': {'industry': leaf}}
    """
    if not path:
        raise ValueError("Field path must have at least one segment")
    return reduce(lambda inner, seg: {seg: inner}, reversed(list(path)), leaf)


def _range_pair(op: str, value: Any) -> List[Any]:
    if not isinstance(value, (list, tuple)) or len(value) != 2:
        raise MalformedRange(op, value)
    return list(value)


def _set_values(c: FilterCondition) -> List[Any]:
    if c.values is not None:
        return list(c.values)
    if isinstance(c.value, (list, tuple)):
        return list(c.value)
    return [c.value]


def _date_equals(value: Any) -> Predicate:
    start = start_of_day(parse_date_value(value))
    return {"gte": start, "lt": start + timedelta(days=1)}


def _leaf(c: FilterCondition, now: Optional[datetime]) -> Predicate:
    op = str(c.operator)
    v = c.value

    # Scalar compares
    if op == FilterOperator.EQUALS.value:                 return {"equals": v}
    if op == FilterOperator.NOT_EQUALS.value:             return {"not": v}
    if op == FilterOperator.GREATER_THAN.value:           return {"gt": v}
    if op == FilterOperator.GREATER_THAN_OR_EQUAL.value:  return {"gte": v}
    if op == FilterOperator.LESS_THAN.value:              return {"lt": v}
    if op == FilterOperator.LESS_THAN_OR_EQUAL.value:     return {"lte": v}

    # Substring family, case-insensitive
    if op == FilterOperator.CONTAINS.value:
        return {"contains": v, "mode": _INSENSITIVE}
    if op == FilterOperator.NOT_CONTAINS.value:
        return {"not": {"contains": v, "mode": _INSENSITIVE}}
    if op == FilterOperator.STARTS_WITH.value:
        return {"startsWith": v, "mode": _INSENSITIVE}
    if op == FilterOperator.ENDS_WITH.value:
        return {"endsWith": v, "mode": _INSENSITIVE}

    if op == FilterOperator.BETWEEN.value:
        low, high = _range_pair(op, v)
        return {"gte": low, "lte": high}

    if op == FilterOperator.IN.value:      return {"in": _set_values(c)}
    if op == FilterOperator.NOT_IN.value:  return {"notIn": _set_values(c)}

    # Only null counts as empty; blank strings do not.
    if op == FilterOperator.IS_EMPTY.value:      return {"equals": None}
    if op == FilterOperator.IS_NOT_EMPTY.value:  return {"not": None}

    if op == FilterOperator.DATE_EQUALS.value:  return _date_equals(v)
    if op == FilterOperator.DATE_BEFORE.value:  return {"lt": parse_date_value(v)}
    if op == FilterOperator.DATE_AFTER.value:   return {"gt": parse_date_value(v)}
    if op == FilterOperator.DATE_BETWEEN.value:
        low, high = _range_pair(op, v)
        return {"gte": parse_date_value(low), "lte": parse_date_value(high)}
    if op == FilterOperator.DATE_RELATIVE.value:
        rng = resolve_relative_date(v, now)
        return {"gte": rng.start, "lt": rng.end}

    raise UnsupportedOperator(op)


def compile_condition(
    c: FilterCondition,
    *,
    now: Optional[datetime] = None,
    apply_field: ApplyField = build_nested_field,
) -> Predicate:
    """
    Compile one condition into a predicate fragment. `apply_field(path, leaf)`
    places the leaf under the field path; the default nests one mapping per
    segment.
    """
    return apply_field(c.field.split("."), _leaf(c, now))


def combine(parts: List[Predicate], logical: str) -> Predicate:
    if not parts:
        return {"OR": []} if logical == LogicalOperator.OR.value else {}
    if len(parts) == 1:
        return parts[0]
    return {logical: parts}


def compile_group(
    root: FilterGroup,
    *,
    now: Optional[datetime] = None,
    apply_field: ApplyField = build_nested_field,
    max_depth: int = MAX_FILTER_DEPTH,
) -> Predicate:
    """
    Compile a group tree into a single predicate. Conditions come first,
    then nested groups, each in input order.
    """

    def walk(node: FilterGroup, depth: int) -> Predicate:
        if depth > max_depth:
            raise ValidationError(
                "Invalid filter query",
                [f"Filter groups are nested deeper than {max_depth} levels"],
            )
        logical = str(node.operator)
        if logical not in (LogicalOperator.AND.value, LogicalOperator.OR.value):
            raise ValidationError("Invalid filter query", ["Invalid group operator"])
        parts: List[Predicate] = [
            compile_condition(c, now=now, apply_field=apply_field) for c in node.conditions
        ]
        parts.extend(walk(g, depth + 1) for g in node.groups)
        return combine(parts, logical)

    return walk(root, 1)


__all__ = [
    "MAX_FILTER_DEPTH",
    "Predicate",
    "ApplyField",
    "build_nested_field",
    "compile_condition",
    "compile_group",
    "combine",
]

from __future__ import annotations
from typing import Any, List, Optional, Mapping

from .models import FilterCondition, FilterGroup, NULL_OPERATORS

NO_FILTERS = "No filters applied"


def _format_value(value: Any) -> str:
    if isinstance(value, (list, tuple)):
        return " and ".join(str(v) for v in value)
    return f'"{value}"'


def describe_condition(c: FilterCondition, labels: Optional[Mapping[str, str]] = None) -> str:
    label = (labels or {}).get(c.field, c.field)
    desc = f"{label} {c.operator.replace('_', ' ')}"
    if c.operator in NULL_OPERATORS:
        return desc
    value = c.values if c.values is not None else c.value
    if value is None or value == "" or value == ():
        return desc
    return f"{desc} {_format_value(value)}"


def describe_filter_group(group: FilterGroup, labels: Optional[Mapping[str, str]] = None) -> str:
    """
    Render a filter group as readable text, e.g.
    ``status equals "ACTIVE" AND (city equals "Austin" OR city equals "Dallas")``.
    `labels` maps field paths to display names.
    """

    def walk(node: FilterGroup, nested: bool) -> str:
        parts: List[str] = [describe_condition(c, labels) for c in node.conditions]
        for g in node.groups:
            child = walk(g, True)
            if child:
                parts.append(child)
        if not parts:
            return ""
        text = f" {node.operator} ".join(parts)
        return f"({text})" if nested and len(parts) > 1 else text

    return walk(group, False) or NO_FILTERS

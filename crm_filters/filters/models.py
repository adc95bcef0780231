# filters/models.py
from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union
import json
import os

from jsonschema import Draft202012Validator

from ..errors import ValidationError

MAX_FILTER_DEPTH = int(os.getenv("FILTER_MAX_DEPTH", "10"))

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class FilterOperator(str, Enum):
    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    CONTAINS = "contains"
    NOT_CONTAINS = "not_contains"
    STARTS_WITH = "starts_with"
    ENDS_WITH = "ends_with"
    GREATER_THAN = "greater_than"
    GREATER_THAN_OR_EQUAL = "greater_than_or_equal"
    LESS_THAN = "less_than"
    LESS_THAN_OR_EQUAL = "less_than_or_equal"
    BETWEEN = "between"
    IN = "in"
    NOT_IN = "not_in"
    IS_EMPTY = "is_empty"
    IS_NOT_EMPTY = "is_not_empty"
    DATE_EQUALS = "date_equals"
    DATE_BEFORE = "date_before"
    DATE_AFTER = "date_after"
    DATE_BETWEEN = "date_between"
    DATE_RELATIVE = "date_relative"


class LogicalOperator(str, Enum):
    AND = "AND"
    OR = "OR"


class RelativeDateToken(str, Enum):
    TODAY = "today"
    YESTERDAY = "yesterday"
    THIS_WEEK = "this_week"
    LAST_WEEK = "last_week"
    THIS_MONTH = "this_month"
    LAST_MONTH = "last_month"
    LAST_7_DAYS = "last_7_days"
    LAST_30_DAYS = "last_30_days"
    LAST_90_DAYS = "last_90_days"


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


# Plain-string views of the enums; membership tests against wire values use these.
OPERATOR_VALUES = frozenset(op.value for op in FilterOperator)
LOGICAL_VALUES = frozenset(op.value for op in LogicalOperator)
RELATIVE_DATE_OPTIONS = [t.value for t in RelativeDateToken]

RANGE_OPERATORS = frozenset({FilterOperator.BETWEEN.value, FilterOperator.DATE_BETWEEN.value})
SET_OPERATORS = frozenset({FilterOperator.IN.value, FilterOperator.NOT_IN.value})
NULL_OPERATORS = frozenset({FilterOperator.IS_EMPTY.value, FilterOperator.IS_NOT_EMPTY.value})
DATE_OPERATORS = frozenset({
    FilterOperator.DATE_EQUALS.value,
    FilterOperator.DATE_BEFORE.value,
    FilterOperator.DATE_AFTER.value,
    FilterOperator.DATE_BETWEEN.value,
})

# What a filter-builder UI offers per field type.
OPERATORS_BY_TYPE: Dict[str, List[str]] = {
    "text": ["equals", "not_equals", "contains", "not_contains", "starts_with", "ends_with", "is_empty", "is_not_empty"],
    "number": ["equals", "not_equals", "greater_than", "greater_than_or_equal", "less_than", "less_than_or_equal", "between", "is_empty", "is_not_empty"],
    "date": ["date_equals", "date_before", "date_after", "date_between", "date_relative", "is_empty", "is_not_empty"],
    "enum": ["equals", "not_equals", "in", "not_in"],
    "boolean": ["equals"],
}


# ---------------------------------------------------------------------------
# Core filter models
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class FilterCondition:
    """
    A single field / operator / value test. `field` may be a dotted path
    through to-one relations, e.g. ``company.industry``.

    The operator is kept as the wire string so an unknown operator can be
    reported by validation rather than failing here.
    """
    field: str
    operator: str
    value: Any = None
    values: Optional[Any] = None

    @property
    def path(self) -> List[str]:
        return self.field.split(".")

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "field": self.field,
            "operator": self.operator,
            "value": self.value,
        }
        if self.values is not None:
            out["values"] = list(self.values) if isinstance(self.values, tuple) else self.values
        return out

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FilterCondition":
        values = data.get("values")
        if isinstance(values, list):
            values = tuple(values)
        return cls(
            field=str(data.get("field", "")),
            operator=str(data.get("operator", "")),
            value=data.get("value"),
            values=values,
        )


@dataclass(frozen=True)
class FilterGroup:
    """
    Recursive AND/OR group of conditions and nested groups.
    """
    operator: str = LogicalOperator.AND.value
    conditions: Tuple[FilterCondition, ...] = ()
    groups: Tuple["FilterGroup", ...] = ()

    def __post_init__(self):
        # accept lists from callers, store tuples
        object.__setattr__(self, "conditions", tuple(self.conditions or ()))
        object.__setattr__(self, "groups", tuple(self.groups or ()))

    @property
    def is_empty(self) -> bool:
        return not self.conditions and not self.groups

    def to_dict(self) -> Dict[str, Any]:
        return {
            "operator": self.operator,
            "conditions": [c.to_dict() for c in self.conditions],
            "groups": [g.to_dict() for g in self.groups],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FilterGroup":
        return cls(
            operator=str(data.get("operator", LogicalOperator.AND.value)),
            conditions=tuple(FilterCondition.from_dict(c) for c in data.get("conditions") or []),
            groups=tuple(cls.from_dict(g) for g in data.get("groups") or []),
        )


@dataclass
class SortSpec:
    field: str
    direction: str = SortDirection.ASC.value

    def to_dict(self) -> Dict[str, Any]:
        return {"field": self.field, "direction": self.direction}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SortSpec":
        return cls(
            field=str(data.get("field", "")),
            direction=str(data.get("direction", SortDirection.ASC.value)),
        )


@dataclass
class Pagination:
    page: int = 1
    limit: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {"page": self.page, "limit": self.limit}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Pagination":
        return cls(
            page=int(data.get("page", 1) or 1),
            limit=int(data.get("limit", 0) or 0),
        )


@dataclass
class AdvancedFilterQuery:
    """
    Request envelope for an advanced filter search.
    """
    entity: str = ""
    filters: FilterGroup = field(default_factory=FilterGroup)
    search: Optional[str] = None
    sort: Optional[SortSpec] = None
    pagination: Optional[Pagination] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "entity": self.entity,
            "filters": self.filters.to_dict(),
        }
        if self.search is not None:
            out["search"] = self.search
        if self.sort is not None:
            out["sort"] = self.sort.to_dict()
        if self.pagination is not None:
            out["pagination"] = self.pagination.to_dict()
        return out

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AdvancedFilterQuery":
        sort = data.get("sort")
        pagination = data.get("pagination")
        return cls(
            entity=str(data.get("entity", "")),
            filters=FilterGroup.from_dict(data.get("filters") or {}),
            search=data.get("search"),
            sort=SortSpec.from_dict(sort) if sort else None,
            pagination=Pagination.from_dict(pagination) if pagination else None,
        )


# ---------------------------------------------------------------------------
# JSON Schema
# ---------------------------------------------------------------------------

FILTER_QUERY_SCHEMA: Dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "$id": "https://crm-filters.local/filter-query.schema.json",
    "title": "Advanced Filter Query",
    "$defs": {
        "FilterCondition": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "field": {"type": "string", "minLength": 1},
                "operator": {"type": "string", "enum": sorted(OPERATOR_VALUES)},
                "value": {},
                "values": {"type": "array"},
            },
            "required": ["field", "operator"],
        },
        "FilterGroup": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "operator": {"type": "string", "enum": sorted(LOGICAL_VALUES)},
                "conditions": {"type": "array", "items": {"$ref": "#/$defs/FilterCondition"}},
                "groups": {"type": "array", "items": {"$ref": "#/$defs/FilterGroup"}},
            },
            "required": ["operator"],
        },
    },
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "entity": {"type": "string", "minLength": 1},
        "filters": {"$ref": "#/$defs/FilterGroup"},
        "search": {"type": ["string", "null"]},
        "sort": {
            "type": ["object", "null"],
            "additionalProperties": False,
            "properties": {
                "field": {"type": "string", "minLength": 1},
                "direction": {"type": "string", "enum": [d.value for d in SortDirection]},
            },
            "required": ["field"],
        },
        "pagination": {
            "type": ["object", "null"],
            "additionalProperties": False,
            "properties": {
                "page": {"type": "integer", "minimum": 1},
                "limit": {"type": "integer", "minimum": 1},
            },
        },
    },
    "required": ["entity", "filters"],
}

FILTER_GROUP_SCHEMA: Dict[str, Any] = {
    "$schema": FILTER_QUERY_SCHEMA["$schema"],
    "$defs": FILTER_QUERY_SCHEMA["$defs"],
    "$ref": "#/$defs/FilterGroup",
}

_QUERY_VALIDATOR = Draft202012Validator(FILTER_QUERY_SCHEMA)
_GROUP_VALIDATOR = Draft202012Validator(FILTER_GROUP_SCHEMA)


def _schema_errors(validator: Draft202012Validator, instance: Any) -> List[str]:
    errors = sorted(validator.iter_errors(instance), key=lambda e: e.json_path)
    return [f"{e.json_path}: {e.message}" for e in errors]


def _depth_errors(group: Any, max_depth: int = MAX_FILTER_DEPTH) -> List[str]:
    """
    Measure group nesting on the raw payload with an explicit stack, so an
    oversized tree is refused before anything walks it recursively.
    """
    stack = [(group, 1)]
    while stack:
        node, depth = stack.pop()
        if depth > max_depth:
            return [f"Filter groups are nested deeper than {max_depth} levels"]
        children = node.get("groups") if isinstance(node, dict) else None
        if isinstance(children, list):
            stack.extend((g, depth + 1) for g in children)
    return []


def _load(payload: Union[str, bytes, Dict[str, Any]]) -> Any:
    if isinstance(payload, (str, bytes)):
        try:
            return json.loads(payload)
        except json.JSONDecodeError as e:
            raise ValidationError("Malformed JSON body", [str(e)]) from e
    return payload


def parse_filter_group_json(
    payload: Union[str, bytes, Dict[str, Any]],
    *,
    validate: bool = True,
) -> FilterGroup:
    """
    Accept a JSON string or dict and return a FilterGroup.
    """
    data = _load(payload)
    too_deep = _depth_errors(data)
    if too_deep:
        raise ValidationError("Malformed filter group", too_deep)
    if validate:
        problems = _schema_errors(_GROUP_VALIDATOR, data)
        if problems:
            raise ValidationError("Malformed filter group", problems)
    return FilterGroup.from_dict(data)


def parse_filter_query_json(
    payload: Union[str, bytes, Dict[str, Any]],
    *,
    validate: bool = True,
) -> AdvancedFilterQuery:
    """
    Accept the request body (JSON string or dict) and return an
    AdvancedFilterQuery. Schema problems are reported all at once.
    """
    data = _load(payload)
    too_deep = _depth_errors(data.get("filters") if isinstance(data, dict) else None)
    if too_deep:
        raise ValidationError("Malformed filter query", too_deep)
    if validate:
        problems = _schema_errors(_QUERY_VALIDATOR, data)
        if problems:
            raise ValidationError("Malformed filter query", problems)
    return AdvancedFilterQuery.from_dict(data)


# ---------------------------------------------------------------------------
# Public exports
# ---------------------------------------------------------------------------

__all__ = [
    "MAX_FILTER_DEPTH",
    "FilterOperator",
    "LogicalOperator",
    "RelativeDateToken",
    "SortDirection",
    "OPERATOR_VALUES",
    "LOGICAL_VALUES",
    "RELATIVE_DATE_OPTIONS",
    "RANGE_OPERATORS",
    "SET_OPERATORS",
    "NULL_OPERATORS",
    "DATE_OPERATORS",
    "OPERATORS_BY_TYPE",
    "FilterCondition",
    "FilterGroup",
    "SortSpec",
    "Pagination",
    "AdvancedFilterQuery",
    "FILTER_QUERY_SCHEMA",
    "FILTER_GROUP_SCHEMA",
    "parse_filter_group_json",
    "parse_filter_query_json",
]

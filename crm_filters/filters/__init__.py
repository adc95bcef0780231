"""
Filter models for the advanced filter service.

This module provides the filter expression tree, request envelope, parsing
and human-readable descriptions.
"""

from .models import (
    MAX_FILTER_DEPTH,
    FilterOperator,
    LogicalOperator,
    RelativeDateToken,
    SortDirection,
    OPERATOR_VALUES,
    LOGICAL_VALUES,
    RELATIVE_DATE_OPTIONS,
    RANGE_OPERATORS,
    SET_OPERATORS,
    NULL_OPERATORS,
    DATE_OPERATORS,
    OPERATORS_BY_TYPE,
    FilterCondition,
    FilterGroup,
    SortSpec,
    Pagination,
    AdvancedFilterQuery,
    FILTER_QUERY_SCHEMA,
    FILTER_GROUP_SCHEMA,
    parse_filter_group_json,
    parse_filter_query_json,
)
from .describe import describe_condition, describe_filter_group

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
    "describe_condition",
    "describe_filter_group",
]

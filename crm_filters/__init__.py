"""
Advanced filter compiler for CRM entities.

Validates nested AND/OR filter trees against a per-entity capability matrix
and compiles them into nested where-predicates.
"""

from .errors import (
    FilterError,
    ValidationError,
    UnsupportedOperator,
    UnsupportedToken,
    MalformedRange,
)
from .filters import FilterCondition, FilterGroup, AdvancedFilterQuery, parse_filter_query_json
from .query import compile_condition, compile_group, resolve_relative_date
from .registry import CapabilityMatrix, get_capability_matrix
from .validation import ValidationResult, validate_filter_group
from .orchestrator import FilterQueryResult, build_query, build_query_from_request

__version__ = "1.0.0"

__all__ = [
    "FilterError",
    "ValidationError",
    "UnsupportedOperator",
    "UnsupportedToken",
    "MalformedRange",
    "FilterCondition",
    "FilterGroup",
    "AdvancedFilterQuery",
    "parse_filter_query_json",
    "compile_condition",
    "compile_group",
    "resolve_relative_date",
    "CapabilityMatrix",
    "get_capability_matrix",
    "ValidationResult",
    "validate_filter_group",
    "FilterQueryResult",
    "build_query",
    "build_query_from_request",
]

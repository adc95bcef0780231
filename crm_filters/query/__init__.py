"""
Query building module for the advanced filter service.

This module compiles filter trees into nested where-predicates and resolves
relative date tokens.
"""

from .dates import (
    DateRange,
    current_time,
    parse_date_value,
    resolve_relative_date,
)
from .builder import (
    MAX_FILTER_DEPTH,
    build_nested_field,
    compile_condition,
    compile_group,
)

__all__ = [
    "DateRange",
    "current_time",
    "parse_date_value",
    "resolve_relative_date",
    "MAX_FILTER_DEPTH",
    "build_nested_field",
    "compile_condition",
    "compile_group",
]

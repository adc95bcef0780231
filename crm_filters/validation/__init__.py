"""
Validation module for the advanced filter service.

This module checks filter trees and sort options against the capability matrix.
"""

from .rules import (
    ValidationResult,
    validate_filter_group,
    validate_filter_query,
)

__all__ = [
    "ValidationResult",
    "validate_filter_group",
    "validate_filter_query",
]

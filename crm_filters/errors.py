from __future__ import annotations
from typing import List, Optional


class FilterError(ValueError):
    """Base error for filter parsing, validation and compilation."""
    pass


class ValidationError(FilterError):
    """
    Raised when a filter query breaks one or more rules. Carries every
    violation so the caller can report them together.
    """

    def __init__(self, message: str = "Invalid filter query", details: Optional[List[str]] = None):
        super().__init__(message)
        self.message = message
        self.details: List[str] = list(details or [])

    def to_dict(self) -> dict:
        return {"message": self.message, "errors": list(self.details)}


class UnsupportedOperator(FilterError):
    def __init__(self, operator: object):
        super().__init__(f"Unsupported filter operator: {operator!r}")
        self.operator = operator


class UnsupportedToken(FilterError):
    def __init__(self, token: object):
        super().__init__(f"Unsupported relative date value: {token!r}")
        self.token = token


class MalformedRange(FilterError):
    def __init__(self, operator: str, value: object):
        super().__init__(f"Operator '{operator}' requires an array of exactly 2 values, got {value!r}")
        self.operator = operator
        self.value = value


__all__ = [
    "FilterError",
    "ValidationError",
    "UnsupportedOperator",
    "UnsupportedToken",
    "MalformedRange",
]

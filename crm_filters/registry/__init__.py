"""
Capability registry for the advanced filter service.

This module loads the per-entity whitelist of filterable fields and operators.
"""

from .capabilities import (
    CapabilityMatrix,
    load_capability_matrix,
    get_capability_matrix,
)

__all__ = [
    "CapabilityMatrix",
    "load_capability_matrix",
    "get_capability_matrix",
]

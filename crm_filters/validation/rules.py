import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional

from ..filters import (
    AdvancedFilterQuery,
    FilterCondition,
    FilterGroup,
    MAX_FILTER_DEPTH,
    FilterOperator,
    SortDirection,
    DATE_OPERATORS,
    LOGICAL_VALUES,
    NULL_OPERATORS,
    OPERATOR_VALUES,
    RANGE_OPERATORS,
    RELATIVE_DATE_OPTIONS,
    SET_OPERATORS,
)
from ..query.dates import is_date_value
from ..registry import CapabilityMatrix, get_capability_matrix

log = logging.getLogger("filters.validation")


@dataclass
class ValidationResult:
    errors: List[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict:
        return {"isValid": self.is_valid, "errors": list(self.errors)}


def _condition_errors(entity: str, c: FilterCondition, matrix: CapabilityMatrix) -> List[str]:
    errors: List[str] = []
    op = str(c.operator)

    allowed = matrix.fields_for(entity).get(c.field)
    if allowed is None:
        errors.append(f"Field '{c.field}' is not supported for entity '{entity}'")
        return errors

    if op not in OPERATOR_VALUES:
        errors.append(f"Unknown operator '{op}' for field '{c.field}'")
        return errors
    if op not in allowed:
        errors.append(f"Operator '{op}' is not supported for field '{c.field}'")

    if op in RANGE_OPERATORS:
        if not isinstance(c.value, (list, tuple)) or len(c.value) != 2:
            errors.append(f"Operator '{op}' requires an array of exactly 2 values")
        elif op in DATE_OPERATORS and not all(is_date_value(v) for v in c.value):
            errors.append(f"Operator '{op}' requires ISO dates for field '{c.field}'")
        return errors

    if op in SET_OPERATORS:
        if c.values is not None:
            if not isinstance(c.values, (list, tuple)):
                errors.append(f"Operator '{op}' requires 'values' to be an array")
        elif not isinstance(c.value, (list, tuple)):
            errors.append(f"Operator '{op}' requires either 'values' array or 'value' as array")
        return errors

    if op in NULL_OPERATORS:
        return errors

    if op == FilterOperator.DATE_RELATIVE.value:
        if c.value not in RELATIVE_DATE_OPTIONS:
            errors.append(
                f"Unsupported relative date value '{c.value}' for field '{c.field}'"
            )
        return errors

    if c.value is None:
        errors.append(f"Operator '{op}' requires a value for field '{c.field}'")
    elif op in DATE_OPERATORS and not is_date_value(c.value):
        errors.append(f"Operator '{op}' requires an ISO date for field '{c.field}'")
    return errors


def validate_filter_group(
    entity: str,
    group: FilterGroup,
    *,
    matrix: Optional[CapabilityMatrix] = None,
    max_depth: int = MAX_FILTER_DEPTH,
) -> ValidationResult:
    """
    Check a filter tree against the capability matrix for `entity`.
    Never raises; every violation is collected.
    """
    matrix = matrix or get_capability_matrix()
    result = ValidationResult()

    if not matrix.has_entity(entity):
        result.errors.append(f"Invalid entity type '{entity}'")
        return result

    def walk(node: Any, depth: int) -> None:
        if not isinstance(node, FilterGroup):
            result.errors.append("Filter group must be an object")
            return
        if depth > max_depth:
            result.errors.append(f"Filter groups are nested deeper than {max_depth} levels")
            return
        if str(node.operator) not in LOGICAL_VALUES:
            result.errors.append(f"Invalid group operator '{node.operator}'")
        for c in node.conditions:
            if not isinstance(c, FilterCondition):
                result.errors.append("Filter condition must be an object")
                continue
            result.errors.extend(_condition_errors(entity, c, matrix))
        for g in node.groups:
            walk(g, depth + 1)

    walk(group, 1)
    if result.errors:
        log.warning("Rejected filter for %s: %d problem(s)", entity, len(result.errors))
    return result


def validate_filter_query(
    query: AdvancedFilterQuery,
    *,
    matrix: Optional[CapabilityMatrix] = None,
    max_depth: int = MAX_FILTER_DEPTH,
) -> ValidationResult:
    """Validate the whole request envelope: filters plus sort."""
    matrix = matrix or get_capability_matrix()
    result = validate_filter_group(query.entity, query.filters, matrix=matrix, max_depth=max_depth)
    if query.sort is not None and matrix.has_entity(query.entity):
        result.errors.extend(_sort_errors(query.entity, query.sort.field, query.sort.direction, matrix))
    return result


def _sort_errors(entity: str, field_name: str, direction: str, matrix: CapabilityMatrix) -> List[str]:
    errors: List[str] = []
    sortable = set(matrix.fields_for(entity)) | set(matrix.search_fields(entity))
    if field_name not in sortable:
        errors.append(f"Sort field not allowed for {entity}: {field_name}")
    if direction not in {d.value for d in SortDirection}:
        errors.append(f"Sort direction must be 'asc' or 'desc', got '{direction}'")
    return errors

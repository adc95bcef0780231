from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
import logging
import os
from typing import Any, Dict, List, Optional

from .errors import ValidationError
from .filters import AdvancedFilterQuery, FilterGroup, Pagination, SortSpec
from .query import build_nested_field, compile_group
from .registry import CapabilityMatrix, get_capability_matrix
from .validation import validate_filter_query

log = logging.getLogger("filters")

GLOBAL_MAX_PAGE_SIZE = int(os.getenv("GLOBAL_MAX_PAGE_SIZE", "1000"))
DEFAULT_PAGE_SIZE = int(os.getenv("DEFAULT_PAGE_SIZE", "100"))


@dataclass
class FilterQueryResult:
    entity: str
    where: Dict[str, Any]
    order_by: Optional[Dict[str, Any]] = None
    skip: Optional[int] = None
    take: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "entity": self.entity,
            "where": self.where,
            "orderBy": self.order_by,
            "skip": self.skip,
            "take": self.take,
        }


def build_search_predicate(entity: str, search: Optional[str], matrix: CapabilityMatrix) -> Optional[Dict[str, Any]]:
    """OR of case-insensitive substring matches over the entity's search fields."""
    term = (search or "").strip()
    fields = matrix.search_fields(entity)
    if not term or not fields:
        return None
    return {
        "OR": [
            build_nested_field(f.split("."), {"contains": term, "mode": "insensitive"})
            for f in fields
        ]
    }


def build_order_by(sort: Optional[SortSpec]) -> Optional[Dict[str, Any]]:
    if sort is None or not sort.field:
        return None
    return build_nested_field(sort.field.split("."), sort.direction)


def cap_page_size(limit: int) -> int:
    if limit <= 0:
        return min(DEFAULT_PAGE_SIZE, GLOBAL_MAX_PAGE_SIZE)
    return min(limit, GLOBAL_MAX_PAGE_SIZE)


def build_pagination(pagination: Optional[Pagination]) -> tuple[Optional[int], Optional[int]]:
    """Returns (skip, take); (None, None) when no pagination was requested."""
    if pagination is None:
        return None, None
    take = cap_page_size(pagination.limit)
    page = max(1, pagination.page)
    return (page - 1) * take, take


def build_query(
    entity: str,
    group: FilterGroup,
    search: Optional[str] = None,
    *,
    sort: Optional[SortSpec] = None,
    pagination: Optional[Pagination] = None,
    now: Optional[datetime] = None,
    matrix: Optional[CapabilityMatrix] = None,
) -> FilterQueryResult:
    """
    Validate and compile a filter for `entity`, then AND it with the
    not-soft-deleted predicate and the free-text search group. Raises
    ValidationError carrying every problem; nothing is compiled in that case.
    """
    matrix = matrix or get_capability_matrix()
    validation = validate_filter_query(
        AdvancedFilterQuery(entity=entity, filters=group, search=search, sort=sort),
        matrix=matrix,
    )
    if not validation.is_valid:
        raise ValidationError("Invalid filter query", validation.errors)

    compiled = compile_group(group, now=now)

    parts: List[Dict[str, Any]] = [{matrix.soft_delete_field: False}]
    if compiled:
        parts.append(compiled)
    search_predicate = build_search_predicate(entity, search, matrix)
    if search_predicate is not None:
        parts.append(search_predicate)

    where = parts[0] if len(parts) == 1 else {"AND": parts}
    skip, take = build_pagination(pagination)
    log.debug("Built %s filter with %d top-level part(s)", entity, len(parts))
    return FilterQueryResult(
        entity=entity,
        where=where,
        order_by=build_order_by(sort),
        skip=skip,
        take=take,
    )


def build_query_from_request(
    query: AdvancedFilterQuery,
    *,
    now: Optional[datetime] = None,
    matrix: Optional[CapabilityMatrix] = None,
) -> FilterQueryResult:
    return build_query(
        query.entity,
        query.filters,
        query.search,
        sort=query.sort,
        pagination=query.pagination,
        now=now,
        matrix=matrix,
    )


__all__ = [
    "GLOBAL_MAX_PAGE_SIZE",
    "DEFAULT_PAGE_SIZE",
    "FilterQueryResult",
    "build_search_predicate",
    "build_order_by",
    "cap_page_size",
    "build_pagination",
    "build_query",
    "build_query_from_request",
]

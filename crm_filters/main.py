from __future__ import annotations
from dotenv import load_dotenv

load_dotenv()

import os, logging

from typing import Any, Dict, Optional
from fastapi import FastAPI, Body, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from .errors import FilterError, ValidationError
from .filters import (
    OPERATORS_BY_TYPE,
    RELATIVE_DATE_OPTIONS,
    describe_filter_group,
    parse_filter_query_json,
)
from .orchestrator import GLOBAL_MAX_PAGE_SIZE, build_query_from_request
from .registry import get_capability_matrix

log = logging.getLogger("filters.api")

app = FastAPI(title="CRM Advanced Filter Service", version="1.0.0")

origins_raw = os.getenv("CORS_ALLOW_ORIGINS", "")
origins = [o.strip() for o in origins_raw.split(",") if o.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_methods=["*"],
    allow_headers=["*"],
    allow_credentials=True,
)


class FilterQueryResponse(BaseModel):
    entity: str
    where: Dict[str, Any]
    orderBy: Optional[Dict[str, Any]] = None
    skip: Optional[int] = None
    take: Optional[int] = None
    description: str


@app.on_event("startup")
def _startup():
    # fail at boot rather than on the first request if the field file is bad
    get_capability_matrix()


@app.get("/healthz")
def health():
    return {"ok": True, "entities": get_capability_matrix().entities}


@app.post("/filter", response_model=FilterQueryResponse)
def filter_query(payload: Dict[str, Any] = Body(..., description="AdvancedFilterQuery JSON")):
    """
    Validate and compile an advanced filter. Returns the where-predicate,
    ordering and paging for the storage layer to execute.
    """
    try:
        query = parse_filter_query_json(payload, validate=True)
        res = build_query_from_request(query)
        return FilterQueryResponse(
            entity=res.entity,
            where=res.where,
            orderBy=res.order_by,
            skip=res.skip,
            take=res.take,
            description=describe_filter_group(query.filters),
        )
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=e.to_dict())
    except FilterError as e:
        # validation should have caught this; the compiler and validator disagree
        log.exception("Filter compilation failed after validation: %s", e)
        raise HTTPException(status_code=500, detail="Filter compilation failed")


@app.get("/filter/config")
def filter_config(entity: Optional[str] = Query(None)):
    """
    Fields, operators and fixed option values the filter builder may offer,
    per entity.
    """
    matrix = get_capability_matrix()
    if entity is not None and not matrix.has_entity(entity):
        raise HTTPException(
            status_code=400,
            detail={"message": "Invalid entity type", "errors": [f"Unknown entity: {entity}"]},
        )
    names = [entity] if entity else matrix.entities
    return {
        "config": matrix.to_dict(entity),
        "metadata": {e: {k: list(v) for k, v in matrix.metadata_for(e).items()} for e in names},
        "searchFields": {e: list(matrix.search_fields(e)) for e in names},
        "operators": OPERATORS_BY_TYPE,
        "relativeDateOptions": RELATIVE_DATE_OPTIONS,
        "maxPageSize": GLOBAL_MAX_PAGE_SIZE,
    }

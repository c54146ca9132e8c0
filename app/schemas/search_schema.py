"""Pydantic schemas for /api/v1/properties/normalize and /api/v1/properties/search"""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from app.schemas.filter_schema import FilterSpec
from app.schemas.property_schema import CanonicalProperty


class NormalizeRequest(BaseModel):
    """Raw property records as received from the marketplace API."""

    properties: List[Dict[str, Any]] = Field(default_factory=list)
    language: Optional[str] = Field(
        None,
        description="UI language used for localized fields; defaults to the request language",
    )


class SearchRequest(NormalizeRequest):
    """Raw records plus the filter/sort specification to apply to them."""

    filters: FilterSpec = Field(default_factory=FilterSpec)


class SearchResponse(BaseModel):
    """One page of filtered, sorted canonical properties."""

    items: List[CanonicalProperty]
    total: int
    page: int
    per_page: int
    pages: int

"""Properties API router: normalization and search over raw marketplace records.
/api/v1/properties"""
import time
from typing import List

from fastapi import APIRouter, Depends, Request

from app.api.deps import get_property_api, get_request_language
from app.api.responses import ok
from app.config import settings
from app.core.locale import pick_language
from app.core.logging import get_logger
from app.schemas.base_schema import ApiResponse
from app.schemas.filter_schema import FilterSpec
from app.schemas.property_schema import CanonicalProperty
from app.schemas.search_schema import NormalizeRequest, SearchRequest, SearchResponse
from app.services.normalizer_service import normalize_many
from app.services.property_api_service import PropertyApiClient
from app.services.query_service import filter_spec_from_params, filter_spec_to_params
from app.services.search_service import SearchSession, page_count

logger = get_logger(__name__)

router = APIRouter()


def _per_page(spec: FilterSpec) -> int:
    return min(spec.per_page or settings.default_per_page, settings.max_per_page)


def _search_response(session: SearchSession, spec: FilterSpec) -> SearchResponse:
    per_page = _per_page(spec)
    items, total = session.page(spec, per_page)
    return SearchResponse(
        items=items,
        total=total,
        page=spec.page,
        per_page=per_page,
        pages=page_count(total, per_page),
    )


@router.post("/normalize", response_model=ApiResponse[List[CanonicalProperty]])
async def normalize_properties(
    payload: NormalizeRequest,
    request: Request,
    request_language: str = Depends(get_request_language),
):
    """Normalize raw records into canonical properties."""
    language = pick_language(payload.language, request_language)
    properties = normalize_many(payload.properties, language)
    return ok(
        properties,
        "Properties normalized successfully",
        request,
        meta={"total": len(properties), "language": language},
    )


@router.post("/search", response_model=ApiResponse[SearchResponse])
async def search_posted_properties(
    payload: SearchRequest,
    request: Request,
    request_language: str = Depends(get_request_language),
):
    """Normalize the posted records, then filter, sort and page them."""
    language = pick_language(payload.language, request_language)
    session = SearchSession.from_raw(payload.properties, language)
    result = _search_response(session, payload.filters)
    return ok(
        result,
        "Properties searched successfully",
        request,
        meta={"page": result.page, "per_page": result.per_page, "total": result.total, "language": language},
    )


@router.get("/search", response_model=ApiResponse[SearchResponse])
async def search_properties(
    request: Request,
    language: str = Depends(get_request_language),
    api: PropertyApiClient = Depends(get_property_api),
):
    """Search marketplace listings using the web client's URL search parameters.

    Accepts q, listingType, propertyType, priceType, currency, city, state,
    location, minPrice, maxPrice, bedrooms, bathrooms, minSquareFootage,
    maxSquareFootage, features, sort (e.g. price-asc), page and perPage, plus
    the floor/balcony/building ranges. Every upstream page is fetched, then
    the result is filtered, sorted and paged here.
    """
    spec = filter_spec_from_params(request.query_params)
    started = time.monotonic()

    raw = await api.afetch_all_properties(filter_spec_to_params(spec))
    session = SearchSession.from_raw(raw, language)
    result = _search_response(session, spec)

    logger.info(
        "Search matched %d of %d properties",
        result.total,
        len(session),
        extra={"page": result.page, "total": result.total, "duration": round(time.monotonic() - started, 3)},
    )
    return ok(
        result,
        "Properties searched successfully",
        request,
        meta={"page": result.page, "per_page": result.per_page, "total": result.total, "language": language},
    )

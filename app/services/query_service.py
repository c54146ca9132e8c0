"""Search query codec: URL search parameters ↔ FilterSpec.

URLs use the web client's camelCase keys (minPrice, propertyType, ...),
"q" for the text query, comma-separated features and a combined
"sort=<key>-<order>" parameter such as "price-asc" or "date-desc".
"""
import math
from typing import Any, Dict, Mapping, Optional

from pydantic import ValidationError as PydanticValidationError

from app.core.exceptions import ValidationError
from app.core.logging import get_logger
from app.schemas.filter_schema import FilterSpec

logger = get_logger(__name__)

NUMERIC_PARAMS = (
    "minPrice",
    "maxPrice",
    "bedrooms",
    "bathrooms",
    "minSquareFootage",
    "maxSquareFootage",
    "minFloorNumber",
    "maxFloorNumber",
    "minTotalFloors",
    "maxTotalFloors",
    "minBalconyCount",
    "maxBalconyCount",
    "minBuildingAge",
    "maxBuildingAge",
    "minMaintenanceFee",
    "maxMaintenanceFee",
    "minDepositAmount",
    "maxDepositAmount",
    "minAnnualTax",
    "maxAnnualTax",
)

# Integer-typed FilterSpec fields; URL values like "2.0" are truncated.
_INT_PARAMS = {
    "bedrooms",
    "bathrooms",
    "minFloorNumber",
    "maxFloorNumber",
    "minTotalFloors",
    "maxTotalFloors",
    "minBalconyCount",
    "maxBalconyCount",
    "minBuildingAge",
    "maxBuildingAge",
}

STRING_PARAMS = (
    "propertyType",
    "listingType",
    "priceType",
    "currency",
    "city",
    "state",
    "location",
    "orientation",
    "viewType",
    "buildingType",
    "floorType",
    "windowType",
)

# URL sort key → FilterSpec.sort_by
SORT_ALIASES = {
    "price": "price",
    "date": "created_at",
    "created_at": "created_at",
    "sqft": "squareFootage",
    "squareFootage": "squareFootage",
}

# FilterSpec.sort_by → URL sort key
_SORT_PARAM_NAMES = {"created_at": "date", "date": "date", "price": "price", "squareFootage": "squareFootage"}


def _parse_float(value: Any) -> Optional[float]:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _parse_page(value: Any) -> Optional[int]:
    number = _parse_float(value)
    if number is None or number < 1:
        return None
    return int(number)


def parse_sort(value: Optional[str]) -> Dict[str, str]:
    """'price-asc' → {'sortBy': 'price', 'sortOrder': 'asc'}; 'relevance' → {}."""
    if not value:
        return {}
    key, _, order = value.partition("-")
    sort_by = SORT_ALIASES.get(key)
    if sort_by is None:
        return {}
    result = {"sortBy": sort_by}
    if order in ("asc", "desc"):
        result["sortOrder"] = order
    return result


def filter_spec_from_params(params: Mapping[str, Any]) -> FilterSpec:
    """Build a FilterSpec from URL search parameters.

    Unparseable numeric values are dropped rather than rejected. Raises
    ValidationError only when a remaining value is out of range (e.g. an
    unknown listingType).
    """
    data: Dict[str, Any] = {}

    for key, value in params.items():
        if value is None or value == "":
            continue
        if key in ("q", "search", "searchQuery"):
            data["search"] = str(value)
        elif key in NUMERIC_PARAMS:
            number = _parse_float(value)
            if number is None:
                logger.debug("Ignoring non-numeric search param %s=%r", key, value)
                continue
            data[key] = int(number) if key in _INT_PARAMS else number
        elif key == "features":
            data["features"] = [f.strip() for f in str(value).split(",") if f.strip()]
        elif key in STRING_PARAMS:
            data[key] = str(value)
        elif key == "sort":
            data.update(parse_sort(str(value)))
        elif key in ("sortBy", "sortOrder"):
            data[key] = SORT_ALIASES.get(str(value), str(value)) if key == "sortBy" else str(value)
        elif key == "page":
            page = _parse_page(value)
            if page:
                data["page"] = page
        elif key == "perPage":
            per_page = _parse_page(value)
            if per_page:
                data["perPage"] = per_page

    try:
        return FilterSpec.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationError("Invalid search parameters", detail=e.errors(include_url=False, include_context=False)) from e


def filter_spec_to_params(spec: FilterSpec) -> Dict[str, str]:
    """Serialize a FilterSpec back into URL search parameters (empty values dropped)."""
    data = spec.model_dump(by_alias=True, exclude={"sort_by", "sort_order", "page", "per_page"})
    params: Dict[str, str] = {}

    for key, value in data.items():
        if value is None or value == "" or value == []:
            continue
        if key == "search":
            params["q"] = str(value)
        elif isinstance(value, list):
            params[key] = ",".join(str(v) for v in value)
        elif isinstance(value, float) and value.is_integer():
            params[key] = str(int(value))
        else:
            params[key] = str(value)

    if spec.sort_by:
        params["sort"] = f"{_SORT_PARAM_NAMES[spec.sort_by]}-{spec.sort_order}"
    if spec.page > 1:
        params["page"] = str(spec.page)
    if spec.per_page:
        params["perPage"] = str(spec.per_page)
    return params

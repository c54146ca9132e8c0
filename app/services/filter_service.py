"""Filter/sort engine over canonical properties.

Every predicate present in the FilterSpec must hold (logical AND); absent
spec fields impose no constraint. Range filters are inclusive and permissive:
a property that lacks the compared value passes that range. The engine never
raises and never mutates its input; it returns a new list.
"""
from datetime import datetime, timezone
from typing import Callable, List, Optional, Sequence

from app.core.logging import get_logger
from app.schemas.filter_schema import FilterSpec
from app.schemas.property_schema import CanonicalProperty

logger = get_logger(__name__)

Predicate = Callable[[CanonicalProperty], bool]

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

# (spec min field, spec max field, property attribute)
RANGE_FILTERS = (
    ("min_price", "max_price", "price"),
    ("min_square_footage", "max_square_footage", "square_footage"),
    ("min_floor_number", "max_floor_number", "floor_number"),
    ("min_total_floors", "max_total_floors", "total_floors"),
    ("min_balcony_count", "max_balcony_count", "balcony_count"),
    ("min_building_age", "max_building_age", "building_age"),
    ("min_maintenance_fee", "max_maintenance_fee", "maintenance_fee"),
    ("min_deposit_amount", "max_deposit_amount", "deposit_amount"),
    ("min_annual_tax", "max_annual_tax", "annual_tax"),
)

# (spec field, property attribute)
EXACT_FILTERS = (
    ("property_type", "property_type"),
    ("listing_type", "listing_type"),
    ("price_type", "price_type"),
    ("currency", "currency"),
    ("city", "city"),
    ("state", "state"),
    ("orientation", "orientation"),
    ("view_type", "view_type"),
    ("building_type", "building_type"),
    ("floor_type", "floor_type"),
    ("window_type", "window_type"),
)

# Values the normalizer uses when the API sent nothing.
_ABSENT = {"square_footage": 0}


def _fold(value: Optional[str]) -> str:
    return (value or "").strip().casefold()


def _has_value(prop: CanonicalProperty, attr: str) -> bool:
    value = getattr(prop, attr)
    return value is not None and value != _ABSENT.get(attr, None)


def _range_predicate(attr: str, low: Optional[float], high: Optional[float]) -> Predicate:
    def check(prop: CanonicalProperty) -> bool:
        if not _has_value(prop, attr):
            return True
        value = getattr(prop, attr)
        if low is not None and value < low:
            return False
        if high is not None and value > high:
            return False
        return True
    return check


def _exact_predicate(attr: str, expected: str) -> Predicate:
    wanted = _fold(expected)
    return lambda prop: _fold(getattr(prop, attr)) == wanted


def _minimum_predicate(attr: str, minimum: int) -> Predicate:
    return lambda prop: getattr(prop, attr) >= minimum


def _text_predicate(query: str) -> Predicate:
    needle = _fold(query)

    def check(prop: CanonicalProperty) -> bool:
        haystack = " ".join(
            (prop.title, prop.description, prop.address, prop.city, prop.state, prop.neighborhood)
        ).casefold()
        return needle in haystack
    return check


def _location_predicate(location: str) -> Predicate:
    needle = _fold(location)
    return lambda prop: any(
        needle in field.casefold() for field in (prop.address, prop.title, prop.city, prop.state)
    )


def _features_predicate(features: Sequence[str]) -> Predicate:
    wanted = {_fold(f) for f in features if _fold(f)}
    return lambda prop: wanted.issubset({_fold(f) for f in prop.features})


def build_predicates(spec: FilterSpec) -> List[Predicate]:
    """One predicate per constraint present in the spec."""
    predicates: List[Predicate] = []

    if spec.search and spec.search.strip():
        predicates.append(_text_predicate(spec.search))
    if spec.location and spec.location.strip():
        predicates.append(_location_predicate(spec.location))

    for field, attr in EXACT_FILTERS:
        expected = getattr(spec, field)
        if expected and _fold(expected) not in ("", "all", "any"):
            predicates.append(_exact_predicate(attr, expected))

    for low_field, high_field, attr in RANGE_FILTERS:
        low, high = getattr(spec, low_field), getattr(spec, high_field)
        if low is not None or high is not None:
            predicates.append(_range_predicate(attr, low, high))

    if spec.bedrooms is not None:
        predicates.append(_minimum_predicate("bedrooms", spec.bedrooms))
    if spec.bathrooms is not None:
        predicates.append(_minimum_predicate("bathrooms", spec.bathrooms))

    if spec.features:
        predicates.append(_features_predicate(spec.features))

    return predicates


def _parse_timestamp(value: str) -> datetime:
    if not value:
        return _EPOCH
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        return _EPOCH
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


SORT_KEYS = {
    "price": lambda prop: prop.price or 0,
    "squareFootage": lambda prop: prop.square_footage or 0,
    "date": lambda prop: _parse_timestamp(prop.created_at),
    "created_at": lambda prop: _parse_timestamp(prop.created_at),
}


def sort_properties(
    properties: Sequence[CanonicalProperty],
    sort_by: Optional[str],
    sort_order: str = "desc",
) -> List[CanonicalProperty]:
    """Stable sort; unknown or missing sort keys keep the input order."""
    key = SORT_KEYS.get(sort_by or "")
    if key is None:
        return list(properties)
    return sorted(properties, key=key, reverse=sort_order == "desc")


def apply(properties: Sequence[CanonicalProperty], spec: Optional[FilterSpec] = None) -> List[CanonicalProperty]:
    """Filter and sort properties according to spec. Pagination is left to the caller."""
    spec = spec or FilterSpec()
    predicates = build_predicates(spec)
    matched = [prop for prop in properties if all(check(prop) for check in predicates)]
    logger.debug(
        "Applied %d predicates: %d of %d properties matched",
        len(predicates),
        len(matched),
        len(properties),
    )
    return sort_properties(matched, spec.sort_by, spec.sort_order)

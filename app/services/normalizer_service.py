"""Normalizer service: converts raw API property records into CanonicalProperty.

Handles:
- Price parsing: 1500 / "1500" / "1,500 $" / {"amount": 1500} / '{"amount": 1500}' → 1500.0
- "Price on request": missing, zero or unparseable prices → None
- Localized names: {"name_ar": ..., "name_en": ..., "name_ku": ...} → display string
- Listing type: listing_type / listingType → "rent" | "sale" (default "sale")
- Numeric details: top-level or nested under "details", snake_case or camelCase
- Images: see image_service.resolve_images

Every field has its own resolver with an explicit, ordered list of source
keys. Malformed input never raises; each resolver falls back to its default.
A record that is already canonical (carries the ``normalized`` marker) is
returned unchanged, so normalization is idempotent.
"""
import json
import math
import re
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from pydantic import ValidationError as PydanticValidationError

from app.core.locale import get_language, resolve_localized
from app.core.logging import get_logger
from app.schemas.property_schema import CanonicalProperty, Contact
from app.services.image_service import resolve_images

logger = get_logger(__name__)

RawRecord = Dict[str, Any]
PriceInput = Union[None, int, float, str, Dict[str, Any]]

_NUMBER_PATTERN = re.compile(r"-?[\d\s.,]*\d")

_PRICE_OBJECT_KEYS = ("amount", "price", "value", "formatted")

_LISTING_TYPE_ALIASES = {
    "rent": "rent",
    "rental": "rent",
    "for_rent": "rent",
    "sale": "sale",
    "sell": "sale",
    "for_sale": "sale",
}

DEFAULT_PROPERTY_TYPE = "apartment"


def parse_number(raw: Any) -> Optional[float]:
    """Parse a finite number from an int, float or numeric string.

    Strings may carry thousand separators and currency text:
    "1,500" → 1500.0, "250.000,50 €" → 250000.5, "$ 1 200" → 1200.0.
    """
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        value = float(raw)
        return value if math.isfinite(value) else None
    if not isinstance(raw, str):
        return None

    match = _NUMBER_PATTERN.search(raw)
    if not match:
        return None

    num_str = match.group().replace(" ", "")

    if "," in num_str and "." in num_str:
        if num_str.rfind(",") > num_str.rfind("."):
            num_str = num_str.replace(".", "").replace(",", ".")
        else:
            num_str = num_str.replace(",", "")
    elif "," in num_str:
        parts = num_str.split(",")
        if len(parts) == 2 and len(parts[-1]) != 3:
            num_str = num_str.replace(",", ".")
        else:
            num_str = num_str.replace(",", "")
    elif num_str.count(".") > 1:
        num_str = num_str.replace(".", "")

    try:
        value = float(num_str)
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def parse_int(raw: Any) -> Optional[int]:
    value = parse_number(raw)
    if value is None:
        return None
    return int(value)


def parse_bool(raw: Any) -> Optional[bool]:
    """Map "true"/"1"/"yes" to True and "false"/"0"/"no" to False; None otherwise."""
    if raw is None:
        return None
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, (int, float)):
        return raw != 0
    if not isinstance(raw, str):
        return None
    raw_lower = raw.strip().lower()
    if raw_lower in ("true", "1", "yes", "on"):
        return True
    if raw_lower in ("false", "0", "no", "off"):
        return False
    return None


def _first(*values: Any) -> Any:
    """First value that is not None / empty string."""
    for value in values:
        if value is not None and value != "":
            return value
    return None


def _details(raw: RawRecord) -> Dict[str, Any]:
    details = raw.get("details")
    return details if isinstance(details, dict) else {}


def _location(raw: RawRecord) -> Dict[str, Any]:
    location = raw.get("location")
    return location if isinstance(location, dict) else {}


def _lookup(raw: RawRecord, *keys: str) -> Any:
    """Look keys up at the top level first, then under "details"."""
    details = _details(raw)
    return _first(*(raw.get(k) for k in keys), *(details.get(k) for k in keys))


def _price_from_object(obj: Dict[str, Any]) -> Optional[float]:
    for key in _PRICE_OBJECT_KEYS:
        if key not in obj:
            continue
        value = obj[key]
        amount = _price_from_object(value) if isinstance(value, dict) else parse_number(value)
        if amount:
            return amount
    return None


def resolve_price(raw_price: PriceInput) -> Optional[float]:
    """Resolve any known price shape to a positive amount, or None (price on request)."""
    amount: Optional[float] = None

    if isinstance(raw_price, dict):
        amount = _price_from_object(raw_price)
    elif isinstance(raw_price, str):
        text = raw_price.strip()
        decoded: Any = None
        if text.startswith(("{", "[", '"')):
            try:
                decoded = json.loads(text)
            except json.JSONDecodeError:
                logger.debug("Price string is not valid JSON: '%s'", text)
        if isinstance(decoded, dict):
            amount = _price_from_object(decoded)
        elif isinstance(decoded, (int, float, str)):
            amount = parse_number(decoded)
        else:
            amount = parse_number(text)
    else:
        amount = parse_number(raw_price)

    if amount is None or amount <= 0:
        return None
    return amount


def _decode_price_object(raw_price: PriceInput) -> Dict[str, Any]:
    if isinstance(raw_price, dict):
        return raw_price
    if isinstance(raw_price, str) and raw_price.strip().startswith("{"):
        try:
            decoded = json.loads(raw_price)
        except json.JSONDecodeError:
            return {}
        return decoded if isinstance(decoded, dict) else {}
    return {}


def resolve_price_meta(raw: RawRecord) -> Tuple[Optional[str], Optional[str]]:
    """(currency, price_type) from the price object or top-level fields."""
    price_obj = _decode_price_object(raw.get("price"))

    currency = _first(price_obj.get("currency"), raw.get("currency"))
    if isinstance(currency, dict):
        currency = currency.get("code") or resolve_localized(currency)

    price_type = _first(price_obj.get("type"), raw.get("price_type"), raw.get("priceType"))
    if isinstance(price_type, dict):
        price_type = price_type.get("key") or resolve_localized(price_type)

    return (str(currency) if currency else None, str(price_type) if price_type else None)


def resolve_listing_type(raw: RawRecord) -> str:
    value = _first(raw.get("listing_type"), raw.get("listingType"))
    if isinstance(value, str):
        return _LISTING_TYPE_ALIASES.get(value.strip().lower(), "sale")
    return "sale"


def resolve_property_type(raw: RawRecord) -> str:
    value = _first(raw.get("property_type"), raw.get("propertyType"))
    if isinstance(value, dict):
        value = value.get("slug") or value.get("key") or resolve_localized(value, "en")
    if isinstance(value, str) and value.strip():
        return value.strip()
    return DEFAULT_PROPERTY_TYPE


def resolve_count(raw: RawRecord, *keys: str, default: int = 0) -> int:
    value = parse_int(_lookup(raw, *keys))
    return value if value is not None and value >= 0 else default


def resolve_optional_int(raw: RawRecord, *keys: str) -> Optional[int]:
    return parse_int(_lookup(raw, *keys))


def resolve_optional_float(raw: RawRecord, *keys: str) -> Optional[float]:
    return parse_number(_lookup(raw, *keys))


def resolve_square_footage(raw: RawRecord) -> float:
    value = parse_number(
        _lookup(raw, "square_feet", "squareFootage", "square_footage", "sqft")
    )
    return value if value and value > 0 else 0


def resolve_year_built(raw: RawRecord) -> int:
    value = parse_int(_lookup(raw, "year_built", "yearBuilt"))
    if value and value > 0:
        return value
    return datetime.now(timezone.utc).year


def resolve_text(raw: RawRecord, *keys: str, language: Optional[str] = None) -> str:
    return resolve_localized(_lookup(raw, *keys), language)


def resolve_optional_text(raw: RawRecord, *keys: str, language: Optional[str] = None) -> Optional[str]:
    return resolve_text(raw, *keys, language=language) or None


def resolve_location(raw: RawRecord, language: str) -> Dict[str, Any]:
    """City, state, neighborhood, address and coordinates from flat or nested shapes."""
    location = _location(raw)
    coordinates = location.get("coordinates") if isinstance(location.get("coordinates"), dict) else {}

    city = resolve_localized(_first(raw.get("city"), location.get("city")), language)
    state = resolve_localized(
        _first(raw.get("state"), raw.get("governorate"), location.get("state")), language
    )
    neighborhood = resolve_localized(
        _first(raw.get("neighborhood"), location.get("neighborhood")), language
    )
    address = resolve_localized(
        _first(
            raw.get("address"),
            raw.get("full_address"),
            location.get("full_address"),
            location.get("street_address"),
        ),
        language,
    ) or f"{city} {state}".strip()

    return {
        "city": city,
        "state": state,
        "neighborhood": neighborhood,
        "address": address,
        "latitude": parse_number(_first(raw.get("latitude"), coordinates.get("latitude"))),
        "longitude": parse_number(_first(raw.get("longitude"), coordinates.get("longitude"))),
    }


def resolve_features(raw: RawRecord, language: str) -> List[str]:
    value = _first(raw.get("features"), raw.get("amenities"))
    if not isinstance(value, list):
        return []
    names = [resolve_localized(item, language) for item in value]
    return [name for name in names if name]


def resolve_contact(raw: RawRecord) -> Contact:
    contact = raw.get("contact")
    if not isinstance(contact, dict):
        contact = {}
    return Contact(
        name=str(_first(contact.get("name"), raw.get("contact_name")) or "Agent"),
        phone=str(_first(contact.get("phone"), raw.get("contact_phone")) or ""),
        email=str(_first(contact.get("email"), raw.get("contact_email")) or ""),
    )


def _as_timestamp(value: Any) -> str:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, str):
        return value.strip()
    return ""


def _already_normalized(raw: Any) -> Optional[CanonicalProperty]:
    if isinstance(raw, CanonicalProperty):
        return raw
    if isinstance(raw, dict) and raw.get("normalized") is True:
        try:
            return CanonicalProperty.model_validate(raw)
        except PydanticValidationError as e:
            logger.warning(
                "Record %s carries the normalized marker but is not canonical (%d errors); re-normalizing",
                raw.get("id"),
                e.error_count(),
            )
    return None


def normalize(raw: Union[RawRecord, CanonicalProperty], language: Optional[str] = None) -> CanonicalProperty:
    """Normalize one raw API record into a CanonicalProperty.

    ``language`` overrides the active UI language for localized fields.
    """
    existing = _already_normalized(raw)
    if existing is not None:
        return existing
    if not isinstance(raw, dict):
        raw = {}

    lang = language or get_language()
    main_image, images = resolve_images(raw)
    currency, price_type = resolve_price_meta(raw)
    raw_id = raw.get("id")
    property_id = "" if raw_id is None else str(raw_id)

    return CanonicalProperty(
        id=property_id,
        slug=str(raw.get("slug") or (f"property-{property_id}" if property_id else "")),
        title=resolve_localized(raw.get("title"), lang),
        description=resolve_localized(raw.get("description"), lang),
        price=resolve_price(raw.get("price")),
        currency=currency,
        price_type=price_type,
        listing_type=resolve_listing_type(raw),
        property_type=resolve_property_type(raw),
        status=str(raw.get("status") or "active"),
        is_featured=parse_bool(_first(raw.get("is_featured"), raw.get("featured"))) is True,
        bedrooms=resolve_count(raw, "bedrooms"),
        bathrooms=resolve_count(raw, "bathrooms"),
        square_footage=resolve_square_footage(raw),
        year_built=resolve_year_built(raw),
        main_image=main_image,
        images=images,
        floor_number=resolve_optional_int(raw, "floor_number", "floorNumber"),
        total_floors=resolve_optional_int(raw, "total_floors", "totalFloors"),
        balcony_count=resolve_optional_int(raw, "balcony_count", "balconyCount"),
        orientation=resolve_optional_text(raw, "orientation", "direction", language=lang),
        view_type=resolve_optional_text(raw, "view_type", "viewType", language=lang),
        building_age=resolve_optional_int(raw, "building_age", "buildingAge"),
        building_type=resolve_optional_text(raw, "building_type", "buildingType", language=lang),
        floor_type=resolve_optional_text(raw, "floor_type", "floorType", language=lang),
        window_type=resolve_optional_text(raw, "window_type", "windowType", language=lang),
        maintenance_fee=resolve_optional_float(raw, "maintenance_fee", "maintenanceFee"),
        deposit_amount=resolve_optional_float(raw, "deposit_amount", "depositAmount"),
        annual_tax=resolve_optional_float(raw, "annual_tax", "annualTax"),
        features=resolve_features(raw, lang),
        contact=resolve_contact(raw),
        created_at=_as_timestamp(_first(raw.get("created_at"), raw.get("createdAt"), raw.get("published_at"))),
        updated_at=_as_timestamp(_first(raw.get("updated_at"), raw.get("updatedAt"))),
        **resolve_location(raw, lang),
    )


def normalize_many(records: Iterable[Any], language: Optional[str] = None) -> List[CanonicalProperty]:
    """Normalize a list of records, skipping entries that are not mappings."""
    lang = language or get_language()
    result: List[CanonicalProperty] = []
    skipped = 0
    for record in records or []:
        if not isinstance(record, (dict, CanonicalProperty)):
            skipped += 1
            continue
        result.append(normalize(record, lang))
    if skipped:
        logger.debug("Skipped %d non-mapping records during normalization", skipped)
    return result

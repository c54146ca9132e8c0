"""Tests for normalizer service: price, locale, numeric fields, idempotence."""
from datetime import datetime, timezone

import pytest

from app.core.locale import set_language
from app.schemas.property_schema import CanonicalProperty
from app.services.normalizer_service import (
    normalize,
    normalize_many,
    parse_bool,
    parse_number,
    resolve_listing_type,
    resolve_price,
    resolve_price_meta,
)
from tests.conftest import make_legacy_property, make_raw_property


class TestParseNumber:
    def test_int_and_float(self):
        assert parse_number(3) == 3.0
        assert parse_number(2.5) == 2.5

    def test_plain_string(self):
        assert parse_number("1500") == 1500.0

    def test_thousand_separators(self):
        assert parse_number("1,500") == 1500.0
        assert parse_number("1.250.000") == 1250000.0

    def test_european_decimals(self):
        assert parse_number("250.000,50 €") == 250000.5

    def test_currency_text(self):
        assert parse_number("$ 1 200") == 1200.0

    def test_garbage(self):
        assert parse_number("call us") is None
        assert parse_number(None) is None
        assert parse_number(True) is None
        assert parse_number(float("nan")) is None
        assert parse_number(float("inf")) is None


class TestParseBool:
    @pytest.mark.parametrize("raw", [True, 1, "1", "true", " Yes "])
    def test_truthy(self, raw):
        assert parse_bool(raw) is True

    @pytest.mark.parametrize("raw", [False, 0, "0", "false", "No"])
    def test_falsy(self, raw):
        assert parse_bool(raw) is False

    def test_unknown(self):
        assert parse_bool(None) is None
        assert parse_bool("maybe") is None
        assert parse_bool(["yes"]) is None


class TestResolvePrice:
    def test_numeric_string(self):
        assert resolve_price("1500") == 1500

    def test_amount_object(self):
        assert resolve_price({"amount": 2000}) == 2000

    def test_number(self):
        assert resolve_price(750) == 750

    def test_json_encoded_object(self):
        assert resolve_price('{"amount": "3200", "currency": "USD"}') == 3200

    def test_formatted_only(self):
        assert resolve_price({"formatted": "$4,500"}) == 4500

    def test_price_key(self):
        assert resolve_price({"price": 99}) == 99

    def test_none_is_price_on_request(self):
        assert resolve_price(None) is None

    def test_empty_object_is_price_on_request(self):
        assert resolve_price({}) is None

    @pytest.mark.parametrize("raw", [0, "0", {"amount": 0}, "abc", "{not json", float("nan"), -10])
    def test_unusable_values_are_price_on_request(self, raw):
        assert resolve_price(raw) is None


class TestResolvePriceMeta:
    def test_from_price_object(self):
        assert resolve_price_meta({"price": {"amount": 1, "currency": "USD", "type": "monthly"}}) == ("USD", "monthly")

    def test_localized_price_type(self):
        raw = {"price": 100, "priceType": {"key": "negotiable", "name_en": "Negotiable"}}
        assert resolve_price_meta(raw) == (None, "negotiable")


class TestResolveListingType:
    def test_snake_and_camel(self):
        assert resolve_listing_type({"listing_type": "rent"}) == "rent"
        assert resolve_listing_type({"listingType": "SALE"}) == "sale"

    def test_unknown_defaults_to_sale(self):
        assert resolve_listing_type({"listing_type": "lease-to-own"}) == "sale"
        assert resolve_listing_type({}) == "sale"


class TestLocationResolution:
    def test_english_active(self):
        prop = normalize({"city": {"name_ar": "دمشق", "name_en": "Damascus"}}, language="en")
        assert prop.city == "Damascus"

    def test_kurdish_falls_back_to_english_before_arabic(self):
        prop = normalize({"city": {"name_ar": "دمشق", "name_en": "Damascus"}}, language="ku")
        assert prop.city == "Damascus"

    def test_arabic_active(self):
        prop = normalize({"city": {"name_ar": "دمشق", "name_en": "Damascus"}}, language="ar")
        assert prop.city == "دمشق"

    def test_active_language_from_context(self):
        set_language("ku")
        prop = normalize(make_raw_property())
        assert prop.city == "Efrîn"
        assert prop.state == "Aleppo"

    def test_nested_location_object(self):
        raw = {
            "location": {
                "city": "Homs",
                "state": "Homs Governorate",
                "full_address": "12 Main St, Homs",
                "coordinates": {"latitude": "34.73", "longitude": 36.71},
            }
        }
        prop = normalize(raw, language="en")
        assert prop.city == "Homs"
        assert prop.address == "12 Main St, Homs"
        assert prop.latitude == 34.73
        assert prop.longitude == 36.71

    def test_address_built_from_city_and_state(self):
        prop = normalize({"city": "Afrin", "state": "Aleppo"}, language="en")
        assert prop.address == "Afrin Aleppo"


class TestNormalize:
    def test_full_normalization(self):
        prop = normalize(make_raw_property(), language="en")
        assert prop.id == "1"
        assert prop.slug == "property-1"
        assert prop.price == 85000
        assert prop.currency == "USD"
        assert prop.price_type == "total"
        assert prop.listing_type == "sale"
        assert prop.property_type == "apartment"
        assert prop.bedrooms == 2
        assert prop.bathrooms == 1
        assert prop.square_footage == 120
        assert prop.year_built == 2015
        assert prop.city == "Afrin"
        assert prop.main_image == "https://cdn.example.com/1/main.jpg"
        assert prop.images == [
            "https://cdn.example.com/1/main.jpg",
            "https://cdn.example.com/1/kitchen.jpg",
        ]
        assert prop.features == ["Balcony", "Parking"]
        assert prop.created_at == "2025-03-01T10:00:00Z"
        assert prop.normalized is True

    def test_legacy_shape(self):
        prop = normalize(make_legacy_property(), language="en")
        assert prop.id == "legacy-7"
        assert prop.listing_type == "rent"
        assert prop.property_type == "house"
        assert prop.price == 450
        assert prop.bedrooms == 3
        assert prop.square_footage == 200
        assert prop.main_image.endswith("/storage/media/7/front.jpg")
        assert len(prop.images) == 2

    def test_malformed_record_never_raises(self):
        raw = {
            "id": None,
            "price": {"amount": "n/a"},
            "bedrooms": "many",
            "bathrooms": -1,
            "square_feet": "unknown",
            "year_built": "old",
            "city": ["not", "a", "string"],
            "media": "nope",
            "features": "pool",
        }
        prop = normalize(raw)
        assert prop.id == ""
        assert prop.price is None
        assert prop.price_on_request is True
        assert prop.bedrooms == 0
        assert prop.bathrooms == 0
        assert prop.square_footage == 0
        assert prop.year_built == datetime.now(timezone.utc).year
        assert prop.city == ""
        assert prop.features == []

    def test_non_mapping_input(self):
        prop = normalize("not a record")
        assert prop.id == ""
        assert prop.listing_type == "sale"

    def test_detail_fields(self):
        raw = make_raw_property(
            floor_number="3",
            totalFloors=8,
            balcony_count=2,
            orientation={"name_en": "North", "name_ar": "شمال"},
            details={"bedrooms": 2, "view_type": "sea", "maintenance_fee": "25.5"},
        )
        prop = normalize(raw, language="en")
        assert prop.floor_number == 3
        assert prop.total_floors == 8
        assert prop.balcony_count == 2
        assert prop.orientation == "North"
        assert prop.view_type == "sea"
        assert prop.maintenance_fee == 25.5
        assert prop.building_age is None

    @pytest.mark.parametrize("flag, expected", [("false", False), ("0", False), (0, False), ("true", True), (1, True)])
    def test_featured_flag_strings(self, flag, expected):
        assert normalize(make_raw_property(is_featured=flag)).is_featured is expected
        assert normalize(make_legacy_property(featured=flag)).is_featured is expected

    def test_source_record_not_mutated(self):
        raw = make_raw_property()
        snapshot = repr(raw)
        normalize(raw)
        assert repr(raw) == snapshot


class TestIdempotence:
    @pytest.mark.parametrize(
        "raw",
        [
            make_raw_property(),
            make_legacy_property(),
            {},
            {"price": None, "city": {"name_ar": "دمشق"}},
        ],
    )
    def test_normalize_twice_equals_once(self, raw):
        once = normalize(raw, language="en")
        assert normalize(once) == once
        assert normalize(once, language="ar") == once

    def test_dumped_canonical_dict_is_returned_unchanged(self):
        once = normalize(make_raw_property(), language="en")
        again = normalize(once.model_dump(), language="ku")
        assert again == once
        assert isinstance(again, CanonicalProperty)

    def test_marker_on_non_canonical_dict_is_renormalized(self):
        prop = normalize({"normalized": True, "id": 5, "price": "900", "year_built": "n/a"})
        assert prop.id == "5"
        assert prop.price == 900


class TestNormalizeMany:
    def test_skips_non_mappings(self):
        result = normalize_many([make_raw_property(), None, "x", make_legacy_property()], language="en")
        assert [p.id for p in result] == ["1", "legacy-7"]

    def test_none_input(self):
        assert normalize_many(None) == []

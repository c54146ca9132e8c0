"""Tests for locale resolution and active-language handling."""
from app.config import settings
from app.core.locale import (
    get_language,
    language_chain,
    pick_language,
    resolve_localized,
    set_language,
)

DAMASCUS = {"name_ar": "دمشق", "name_en": "Damascus"}


class TestResolveLocalized:
    def test_plain_string(self):
        assert resolve_localized("  Afrin ") == "Afrin"

    def test_active_language_first(self):
        assert resolve_localized(DAMASCUS, "ar") == "دمشق"
        assert resolve_localized(DAMASCUS, "en") == "Damascus"

    def test_english_before_arabic(self):
        assert resolve_localized(DAMASCUS, "ku") == "Damascus"

    def test_arabic_before_kurdish(self):
        assert resolve_localized({"name_ku": "Şam", "name_ar": "دمشق"}, "en") == "دمشق"

    def test_bare_language_keys(self):
        assert resolve_localized({"ar": "حلب", "en": "Aleppo"}, "en") == "Aleppo"

    def test_first_truthy_field(self):
        assert resolve_localized({"id": 3, "name": "", "label": "Old City"}, "en") == "Old City"

    def test_empty_values_skipped(self):
        assert resolve_localized({"name_en": "  ", "name_ar": "دمشق"}, "en") == "دمشق"

    def test_unresolvable(self):
        assert resolve_localized(None) == ""
        assert resolve_localized({}) == ""
        assert resolve_localized(["Afrin"]) == ""
        assert resolve_localized(True) == ""


class TestLanguageSelection:
    def test_default_when_unset(self):
        assert get_language() == settings.default_language

    def test_set_language(self):
        assert set_language("AR") == "ar"
        assert get_language() == "ar"

    def test_unsupported_falls_back_to_default(self):
        assert set_language("fr") == settings.default_language

    def test_accept_language_header(self):
        assert pick_language(None, "fr-FR,ku;q=0.9,en;q=0.8") == "ku"
        assert pick_language("ar-SY") == "ar"

    def test_chain_order(self):
        assert language_chain("ku") == ["ku", "en", "ar"]
        assert language_chain("ar") == ["ar", "en", "ku"]

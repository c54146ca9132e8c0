"""Active UI language and locale-priority resolution of multi-language fields.

The active language lives in a context variable so each request (or search
session) resolves localized bundles in its own language without threading a
parameter through every helper.
"""
from contextvars import ContextVar
from typing import Any, Iterable, Optional

from app.config import settings

language_var: ContextVar[str] = ContextVar("language", default="")

FALLBACK_LANGUAGES = ("en", "ar", "ku")


def set_language(language: Optional[str]) -> str:
    """Set the active language for the current context. Returns the effective value."""
    lang = pick_language(language)
    language_var.set(lang)
    return lang


def get_language() -> str:
    """Return the active language, or the configured default when unset."""
    return language_var.get("") or settings.default_language


def pick_language(*candidates: Optional[str]) -> str:
    """Return the first supported language among the candidates.

    Candidates may be bare codes ("ar") or Accept-Language style values
    ("ar-SY,ar;q=0.9,en;q=0.8"); only the primary subtag is compared.
    """
    for candidate in candidates:
        for code in _language_codes(candidate):
            if code in settings.supported_languages:
                return code
    return settings.default_language


def _language_codes(value: Optional[str]) -> Iterable[str]:
    if not value:
        return []
    codes = []
    for part in value.split(","):
        tag = part.split(";")[0].strip().lower()
        if tag:
            codes.append(tag.split("-")[0].split("_")[0])
    return codes


def language_chain(language: Optional[str] = None) -> list[str]:
    """Priority order used for localized lookups: active, English, Arabic, Kurdish."""
    first = (language or get_language()).lower()
    chain = [first]
    for lang in FALLBACK_LANGUAGES:
        if lang not in chain:
            chain.append(lang)
    return chain


def resolve_localized(value: Any, language: Optional[str] = None) -> str:
    """Resolve a string or localized bundle to a display string.

    Bundles look like {"name_ar": ..., "name_en": ..., "name_ku": ...}; bare
    language keys ({"en": ...}) are accepted too. Lookup order is the active
    language, then English, Arabic, Kurdish, then the first non-empty string
    on the object. Anything unresolvable becomes "".
    """
    if value is None or isinstance(value, bool):
        return ""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, (int, float)):
        return str(value)
    if not isinstance(value, dict):
        return ""

    for lang in language_chain(language):
        for key in (f"name_{lang}", lang):
            text = value.get(key)
            if isinstance(text, str) and text.strip():
                return text.strip()

    for text in value.values():
        if isinstance(text, str) and text.strip():
            return text.strip()
    return ""

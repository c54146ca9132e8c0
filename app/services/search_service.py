"""Search session: the in-memory list of canonical properties behind one search.

Records are normalized once when the session is built and re-filtered on
every FilterSpec change. The session is passed around explicitly; there is no
module-level cache, and applying a spec never changes the stored list.
"""
import math
from typing import Any, Iterable, List, Optional, Sequence, Tuple

from app.core.logging import get_logger
from app.schemas.filter_schema import FilterSpec
from app.schemas.property_schema import CanonicalProperty
from app.services import filter_service
from app.services.normalizer_service import normalize_many

logger = get_logger(__name__)


class SearchSession:
    """Normalized properties for one search session."""

    def __init__(self, properties: Sequence[CanonicalProperty] = ()):
        self._properties: Tuple[CanonicalProperty, ...] = tuple(properties)

    @classmethod
    def from_raw(cls, records: Iterable[Any], language: Optional[str] = None) -> "SearchSession":
        return cls(normalize_many(records, language))

    @property
    def properties(self) -> Tuple[CanonicalProperty, ...]:
        return self._properties

    def __len__(self) -> int:
        return len(self._properties)

    def apply(self, spec: Optional[FilterSpec] = None) -> List[CanonicalProperty]:
        return filter_service.apply(self._properties, spec)

    def page(self, spec: FilterSpec, per_page: int) -> Tuple[List[CanonicalProperty], int]:
        """(items on spec.page, total matches)."""
        matched = self.apply(spec)
        start = (spec.page - 1) * per_page
        return matched[start:start + per_page], len(matched)


def page_count(total: int, per_page: int) -> int:
    return math.ceil(total / per_page) if total > 0 else 0

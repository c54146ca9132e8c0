"""Test fixtures: async test client, fake marketplace API, raw record factories."""
import math
from typing import Any, AsyncGenerator, Dict, List, Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from app.api.deps import get_property_api
from app.core.exceptions import UpstreamError
from app.core.locale import language_var
from app.main import app
from app.services.property_api_service import PropertyApiClient


class FakePropertyApi(PropertyApiClient):
    """PropertyApiClient serving in-memory records in marketplace-style pages.

    Only the HTTP call is replaced; paging and envelope handling run as usual.
    Every query sent upstream is recorded in ``calls``.
    """

    def __init__(self, records: Optional[List[Dict[str, Any]]] = None, error: Optional[str] = None):
        super().__init__("http://marketplace.test/api/v1/properties", max_retries=0)
        self.records = records or []
        self.error = error
        self.calls: List[Dict[str, Any]] = []

    def _get_json(self, query: Dict[str, Any]) -> Any:
        self.calls.append(dict(query))
        if self.error:
            raise UpstreamError(self.error, status_code=503)
        page = int(query.get("page", 1))
        per_page = int(query.get("per_page", 12))
        start = (page - 1) * per_page
        return {
            "data": self.records[start:start + per_page],
            "meta": {
                "total": len(self.records),
                "per_page": per_page,
                "current_page": page,
                "total_pages": max(1, math.ceil(len(self.records) / per_page)),
            },
        }


@pytest.fixture(autouse=True)
def reset_language():
    """Each test starts without an active UI language."""
    token = language_var.set("")
    yield
    language_var.reset(token)


@pytest.fixture
def fake_api():
    api = FakePropertyApi()
    yield api
    api.close()


@pytest_asyncio.fixture(scope="function")
async def client(fake_api: FakePropertyApi) -> AsyncGenerator[AsyncClient, None]:
    """Yield an HTTP test client with the marketplace API replaced by a fake."""
    app.dependency_overrides[get_property_api] = lambda: fake_api

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


def make_raw_property(**overrides) -> dict:
    """Create a raw record in the current marketplace API shape."""
    defaults = {
        "id": 1,
        "title": "Sunny apartment near the old market",
        "description": "Two bedrooms, renovated kitchen, balcony facing the river.",
        "property_type": "apartment",
        "listing_type": "sale",
        "price": {"amount": 85000, "formatted": "$85,000", "currency": "USD", "type": "total"},
        "city": {"name_ar": "عفرين", "name_en": "Afrin", "name_ku": "Efrîn"},
        "state": {"name_ar": "حلب", "name_en": "Aleppo"},
        "details": {"bedrooms": 2, "bathrooms": 1, "square_feet": 120, "year_built": 2015},
        "media": [
            {"url": "https://cdn.example.com/1/main.jpg", "mime_type": "image/jpeg", "collection_name": "main_image"},
            {"url": "https://cdn.example.com/1/kitchen.jpg", "mime_type": "image/jpeg", "collection_name": "images"},
        ],
        "features": [{"name_en": "Balcony", "name_ar": "شرفة"}, "Parking"],
        "created_at": "2025-03-01T10:00:00Z",
    }
    defaults.update(overrides)
    return defaults


def make_legacy_property(**overrides) -> dict:
    """Create a raw record in the legacy flat shape."""
    defaults = {
        "id": "legacy-7",
        "title": "Stone house with garden",
        "description": "Old stone house, large garden.",
        "propertyType": "house",
        "listingType": "rent",
        "price": "450",
        "city": "Damascus",
        "state": "Rif Dimashq",
        "bedrooms": "3",
        "bathrooms": "2",
        "squareFootage": "200",
        "images": ["/storage/media/7/front.jpg", "/storage/media/7/garden.jpg"],
        "created_at": "2024-11-20T08:30:00Z",
    }
    defaults.update(overrides)
    return defaults

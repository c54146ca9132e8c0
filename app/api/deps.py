"""API dependencies: request language, upstream client, and API key authentication.

API key:
  When API_KEY is set in the environment, every /api/v1 route requires the
  X-API-Key header. Without it the routes are open (a warning is logged at
  startup); /health and /docs are always public.
"""
import secrets
from typing import Annotated, Generator

from fastapi import Depends, HTTPException, Security, status
from fastapi.security import APIKeyHeader

from app.config import settings
from app.core.locale import get_language
from app.services.property_api_service import PropertyApiClient, build_property_api_client


async def get_request_language() -> str:
    """Language resolved for this request by the locale middleware."""
    return get_language()


def get_property_api(
    language: Annotated[str, Depends(get_request_language)],
) -> Generator[PropertyApiClient, None, None]:
    """Yield a marketplace API client for request scope."""
    client = build_property_api_client(language)
    try:
        yield client
    finally:
        client.close()


_api_key_header = APIKeyHeader(
    name="X-API-Key",
    auto_error=False,
    description="API key. Configured via API_KEY in .env",
)


async def verify_api_key(
    api_key: Annotated[str | None, Security(_api_key_header)],
) -> str | None:
    """Validate the X-API-Key header when an API key is configured.

    Raises:
        HTTPException 401: if the key is missing or wrong.
    """
    if not settings.api_key:
        return None

    if not api_key or not secrets.compare_digest(api_key, settings.api_key):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing API key. Use the X-API-Key header.",
            headers={"WWW-Authenticate": "ApiKey"},
        )

    return api_key


RequireApiKey = Depends(verify_api_key)

"""Image service: resolves the main image and gallery of a raw property record.

Handles:
- Explicit main-image fields: main_image, mainImage, main_image_url, images.main
- Media library items: {url | original_url, mime_type, collection_name}
- Legacy arrays: images[], images.gallery[], gallery_urls, gallery, image_urls, photos
- Backend-relative URLs: "/storage/..." → "<media_base_url>/storage/..."
- Placeholder fallback when no real image exists
"""
from typing import Any, Dict, List, Optional, Tuple

from app.config import settings
from app.core.logging import get_logger

logger = get_logger(__name__)

_ABSOLUTE_PREFIXES = ("http://", "https://", "data:", "/images/")

_MAIN_IMAGE_FIELDS = (
    "main_image",
    "mainImage",
    "main_image_url",
    "featured_image",
    "cover_image",
    "thumbnail",
    "image",
)

_MAIN_COLLECTIONS = ("main_image", "main")

_GALLERY_FIELDS = ("gallery_urls", "gallery", "image_urls", "photos")


def fix_image_url(url: Any) -> str:
    """Return a usable URL; backend-relative paths get the media base URL."""
    if not url or not isinstance(url, str):
        return ""
    url = url.strip()
    if url.startswith(_ABSOLUTE_PREFIXES):
        return url
    if url.startswith("/"):
        return f"{settings.media_base_url.rstrip('/')}{url}"
    return url


def _item_url(item: Any) -> str:
    """URL of a gallery entry that is either a string or a media object."""
    if isinstance(item, str):
        return fix_image_url(item)
    if isinstance(item, dict):
        for key in ("original_url", "url", "src", "image"):
            if item.get(key):
                return fix_image_url(item[key])
    return ""


def _is_image(item: Any) -> bool:
    if not isinstance(item, dict):
        return True
    mime_type = item.get("mime_type") or item.get("type")
    if not mime_type or not isinstance(mime_type, str):
        return True
    if "/" not in mime_type:
        return mime_type in ("image", "photo")
    return mime_type.startswith("image/")


def _explicit_main_image(raw: Dict[str, Any]) -> str:
    images = raw.get("images")
    candidates: List[Any] = [raw.get(field) for field in _MAIN_IMAGE_FIELDS]
    if isinstance(images, dict):
        candidates[1:1] = [images.get("main"), images.get("main_image")]
    for candidate in candidates:
        url = _item_url(candidate)
        if url:
            return url
    return ""


def _media_images(raw: Dict[str, Any]) -> Tuple[str, List[str]]:
    """(main image flagged in the media library, remaining media image URLs)."""
    media = raw.get("media")
    if not isinstance(media, list):
        return "", []

    flagged = ""
    urls: List[str] = []
    for item in media:
        if not _is_image(item):
            continue
        url = _item_url(item)
        if not url:
            continue
        is_main = isinstance(item, dict) and item.get("collection_name") in _MAIN_COLLECTIONS
        if is_main and not flagged:
            flagged = url
        else:
            urls.append(url)
    return flagged, urls


def _legacy_gallery(raw: Dict[str, Any]) -> List[str]:
    images = raw.get("images")
    urls: List[str] = []
    if isinstance(images, list):
        urls.extend(_item_url(item) for item in images)
    elif isinstance(images, dict):
        for key in ("gallery", "images"):
            if isinstance(images.get(key), list):
                urls.extend(_item_url(item) for item in images[key])

    for field in _GALLERY_FIELDS:
        value = raw.get(field)
        if isinstance(value, list):
            urls.extend(_item_url(item) for item in value)
    return [url for url in urls if url]


def _dedupe(urls: List[str]) -> List[str]:
    seen = set()
    result = []
    for url in urls:
        if url and url not in seen:
            seen.add(url)
            result.append(url)
    return result


def resolve_images(raw: Dict[str, Any], placeholder: Optional[str] = None) -> Tuple[str, List[str]]:
    """Resolve (main_image, images) for a raw record.

    Main image priority: explicit main-image field, media item in the main
    collection, first media/gallery entry, placeholder. The images list starts
    with the main image followed by the deduplicated gallery; it stays empty
    when only the placeholder is available.
    """
    flagged, media_urls = _media_images(raw)
    gallery = _dedupe(media_urls + _legacy_gallery(raw))

    main_image = _explicit_main_image(raw) or flagged or (gallery[0] if gallery else "")
    if not main_image:
        logger.debug("No image found for property %s, using placeholder", raw.get("id"))
        return placeholder or settings.placeholder_image, []

    return main_image, _dedupe([main_image] + gallery)

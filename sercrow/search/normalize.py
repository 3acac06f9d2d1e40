"""
Purpose:
- Map raw Custom Search items into the canonical SearchResult shape.
- Derive favicon + tags from the result's host; never fail the batch on a bad URL.
"""

from __future__ import annotations
import time
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse
from .schema import SearchFilter, SearchResult

UNKNOWN_DOMAIN = "unknown"
FAVICON_SERVICE = "https://www.google.com/s2/favicons?domain={domain}&sz=32"
ELLIPSIS = "..."

VIDEO_HOST_MARKERS = ("youtube.com", "vimeo.com")
NEWS_HOST_MARKERS = ("news.", "bbc.com", "cnn.com")

def extract_domain(url: str) -> str:
    """Hostname of url, or "unknown" when it has none or cannot be parsed."""
    try:
        host = urlparse(url or "").hostname
    except ValueError:
        return UNKNOWN_DOMAIN
    return host.lower() if host else UNKNOWN_DOMAIN

def truncate_description(text: str, limit: int = 200) -> str:
    if len(text) <= limit:
        return text
    return text[: limit - len(ELLIPSIS)] + ELLIPSIS

def _thumbnail_of(item: Dict[str, Any]) -> Optional[str]:
    pagemap = item.get("pagemap")
    if not isinstance(pagemap, dict):
        return None
    thumbs = pagemap.get("cse_thumbnail")
    if isinstance(thumbs, list) and thumbs and isinstance(thumbs[0], dict):
        return thumbs[0].get("src") or None
    return None

def _tags_for(link: str, domain: str, search_filter: SearchFilter) -> List[str]:
    # order: filter, domain, then media tags
    tags: List[str] = []
    if search_filter != SearchFilter.ALL:
        tags.append(search_filter.value)
    if domain:
        tags.append(domain)
    lowered = link.lower()
    if search_filter == SearchFilter.IMAGES:
        tags.append("image")
    if search_filter == SearchFilter.VIDEOS or any(m in lowered for m in VIDEO_HOST_MARKERS):
        tags.append("video")
    if search_filter == SearchFilter.NEWS or any(m in lowered for m in NEWS_HOST_MARKERS):
        tags.append("news")
    return list(dict.fromkeys(tags))

def normalize_item(item: Dict[str, Any], index: int, search_filter: SearchFilter,
                   now_ms: int, description_limit: int = 200) -> SearchResult:
    link = item.get("link") or ""
    domain = extract_domain(link)
    description = truncate_description(item.get("snippet") or "No description available", description_limit)
    tags = _tags_for(link, domain, search_filter)

    image_url = None
    if search_filter == SearchFilter.IMAGES:
        # image search: link is the image itself, thumbnail preferred when present
        image_url = _thumbnail_of(item) or link or None

    video_url = link if "video" in tags and link else None

    return SearchResult(
        id=f"google-{index}-{now_ms}",
        title=item.get("title") or "Untitled",
        url=link,
        description=description,
        favicon=FAVICON_SERVICE.format(domain=domain),
        tags=tags,
        image_url=image_url,
        video_url=video_url,
    )

def normalize(provider_response: Optional[Dict[str, Any]], search_filter: SearchFilter,
              now_ms: Optional[int] = None, description_limit: int = 200) -> List[SearchResult]:
    """
    Convert a provider payload into SearchResults.
    ids embed now_ms, so they are unique per response but not stable across fetches.
    """
    items = (provider_response or {}).get("items")
    if not isinstance(items, list):
        return []
    stamp = now_ms if now_ms is not None else int(time.time() * 1000)
    return [
        normalize_item(it, i, search_filter, stamp, description_limit)
        for i, it in enumerate(items)
        if isinstance(it, dict)
    ]

def total_results_of(provider_response: Optional[Dict[str, Any]], default: int) -> int:
    """Provider-reported total (sent as a string), or default when absent/garbled."""
    info = (provider_response or {}).get("searchInformation")
    if not isinstance(info, dict):
        return default
    try:
        total = int(info.get("totalResults"))
    except (TypeError, ValueError):
        return default
    return total if total >= 0 else default

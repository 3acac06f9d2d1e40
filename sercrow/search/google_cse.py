"""
Purpose:
- Query Google Custom Search JSON API for web/image results.
- News and video searches have no native CSE mode, so the query text is rewritten
  with site: clauses instead.
- Fetch autocomplete suggestions from the public suggest endpoint.

Notes:
- Requires: settings.google_search_api_key, settings.google_search_engine_id (from .env or env)
- Any failure returns None (search) or [] (suggest): callers fall back, they never retry.
"""

from __future__ import annotations
import logging
from typing import Any, Dict, List, Optional
import httpx
from .schema import SearchFilter, Suggestion

logger = logging.getLogger(__name__)

GOOGLE_ENDPOINT = "https://www.googleapis.com/customsearch/v1"
SUGGEST_ENDPOINT = "https://suggestqueries.google.com/complete/search"
USER_AGENT = "SerCrow-Search-Engine/1.0"

# CSE caps a single request at 10 items
MAX_PER_REQUEST = 10

NEWS_SITES = "site:news.google.com OR site:bbc.com OR site:cnn.com OR site:reuters.com"
VIDEO_SITES = "site:youtube.com OR site:vimeo.com"

RESPONSE_FIELDS = (
    "items(title,link,snippet,pagemap/cse_thumbnail,pagemap/cse_image),"
    "searchInformation(totalResults,searchTime)"
)

def _api_params(query: str, api_key: str, cx: str, search_filter: SearchFilter,
                start: int, num: int) -> Dict[str, str]:
    params = {
        "key": api_key,
        "cx": cx,
        "q": query,
        "start": str(max(1, start)),
        "num": str(min(max(1, num), MAX_PER_REQUEST)),
        "safe": "active",
        "fields": RESPONSE_FIELDS,
    }
    if search_filter == SearchFilter.IMAGES:
        params["searchType"] = "image"
        params["imgSize"] = "medium"
        params["imgType"] = "photo"
    elif search_filter == SearchFilter.NEWS:
        params["q"] = f"{query} {NEWS_SITES}"
        params["dateRestrict"] = "m1"  # last month
    elif search_filter == SearchFilter.VIDEOS:
        params["q"] = f"{query} {VIDEO_SITES}"
    return params

class GoogleSearchClient:
    """Thin async client around the Custom Search endpoint. No caching, no retries."""

    def __init__(self, api_key: Optional[str], engine_id: Optional[str],
                 timeout: float = 10.0, http: Optional[httpx.AsyncClient] = None):
        self.api_key = api_key
        self.engine_id = engine_id
        self.timeout = timeout
        self._http = http or httpx.AsyncClient(
            timeout=timeout, headers={"Accept": "application/json", "User-Agent": USER_AGENT}
        )

    @property
    def configured(self) -> bool:
        return bool(self.api_key and self.engine_id)

    async def search(self, query: str, search_filter: SearchFilter = SearchFilter.ALL,
                     start: int = 1, count: int = 10) -> Optional[Dict[str, Any]]:
        """
        Return the provider payload, or None when the provider cannot be used
        (missing credentials, timeout, non-2xx, unreadable body).
        """
        if not self.configured:
            logger.warning("GOOGLE_SEARCH_API_KEY or GOOGLE_SEARCH_ENGINE_ID is not configured - using fallback search")
            return None

        params = _api_params(query, self.api_key, self.engine_id, search_filter, start, count)
        logger.info(f"Google Custom Search request: {query} (filter: {search_filter.value})")
        try:
            r = await self._http.get(GOOGLE_ENDPOINT, params=params, timeout=self.timeout)
        except httpx.TimeoutException:
            logger.warning(f"Google Search API timed out after {self.timeout}s")
            return None
        except httpx.HTTPError as e:
            logger.warning(f"Google Search API request failed: {e}")
            return None

        if r.status_code < 200 or r.status_code >= 300:
            logger.warning(f"Google Search API error: {r.status_code} {r.text[:200]}")
            return None

        try:
            data = r.json()
        except ValueError:
            logger.warning("Google Search API returned a non-JSON body")
            return None
        if not isinstance(data, dict):
            logger.warning("Google Search API returned an unexpected payload")
            return None

        items = data.get("items")
        if items:
            logger.info(f"Google Search returned {len(items)} results")
        else:
            logger.info("Google Search returned no items")
        return data

    async def aclose(self) -> None:
        await self._http.aclose()

class GoogleSuggestClient:
    """Autocomplete lookups; the endpoint answers `[query, [suggestions...]]`."""

    def __init__(self, timeout: float = 5.0, max_suggestions: int = 8,
                 http: Optional[httpx.AsyncClient] = None):
        self.timeout = timeout
        self.max_suggestions = max_suggestions
        self._http = http or httpx.AsyncClient(timeout=timeout, headers={"User-Agent": USER_AGENT})

    async def suggest(self, query: str) -> List[Suggestion]:
        if len(query) < 2:
            return []
        try:
            r = await self._http.get(
                SUGGEST_ENDPOINT, params={"client": "firefox", "q": query}, timeout=self.timeout
            )
            r.raise_for_status()
            data = r.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Suggestions request failed: {e}")
            return []

        if not (isinstance(data, list) and len(data) > 1 and isinstance(data[1], list)):
            return []
        texts = [t for t in data[1] if isinstance(t, str)][: self.max_suggestions]
        return [Suggestion(text=t, count=max(1000 - i * 100, 50)) for i, t in enumerate(texts)]

    async def aclose(self) -> None:
        await self._http.aclose()

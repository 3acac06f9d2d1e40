"""
Purpose:
- Deterministic placeholder results when the provider gives us nothing.
- Templated suggestions when the suggest endpoint is unavailable.
"""

from __future__ import annotations
from typing import List
from urllib.parse import quote
from .schema import SearchFilter, SearchResult, Suggestion

def fallback_results(query: str, search_filter: SearchFilter) -> List[SearchResult]:
    """Always exactly two results: a web search link and a Wikipedia search link."""
    encoded = quote(query, safe="")
    return [
        SearchResult(
            id="fallback-1",
            title=f'Search results for "{query}"',
            url=f"https://www.google.com/search?q={encoded}",
            description=(
                "Google Search API is currently unavailable. This is a fallback result "
                "that would normally show real web search results."
            ),
            favicon="https://www.google.com/favicon.ico",
            tags=["fallback", search_filter.value],
        ),
        SearchResult(
            id="fallback-2",
            title=f"{query} - Wikipedia",
            url=f"https://en.wikipedia.org/wiki/Special:Search?search={encoded}",
            description=(
                f"Wikipedia search results for {query}. This would normally be replaced "
                "with real search results from the Google Search API."
            ),
            favicon="https://en.wikipedia.org/favicon.ico",
            tags=["wikipedia", search_filter.value],
        ),
    ]

def filter_fallback_results(results: List[SearchResult], search_filter: SearchFilter) -> List[SearchResult]:
    """
    Manual facet filter, only ever applied to fallback results
    (provider results were already filtered upstream).
    """
    if search_filter == SearchFilter.ALL:
        return results
    needle = search_filter.value
    return [
        r for r in results
        if any(needle in t.lower() for t in r.tags)
        or needle in r.title.lower()
        or needle in r.description.lower()
    ]

SUGGESTION_TEMPLATES = [
    ("{q} tutorial", 500),
    ("{q} guide", 400),
    ("{q} examples", 300),
    ("what is {q}", 200),
    ("{q} tips", 100),
]

def fallback_suggestions(query: str, max_len: int = 50) -> List[Suggestion]:
    out = [Suggestion(text=t.format(q=query), count=c) for t, c in SUGGESTION_TEMPLATES]
    return [s for s in out if len(s.text) <= max_len]

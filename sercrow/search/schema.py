"""
Purpose:
- Pydantic models for search in/out so the API is self-documenting and stable.
- JSON uses camelCase (what the SPA reads); Python code uses snake_case.
"""

from __future__ import annotations
from datetime import datetime, timezone
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import List, Optional

class SearchFilter(str, Enum):
    ALL = "all"
    IMAGES = "images"
    NEWS = "news"
    VIDEOS = "videos"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["SearchFilter"]:
        """Return the matching filter, or None for unknown values."""
        try:
            return cls((value or "all").strip().lower())
        except ValueError:
            return None

class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

class SearchResult(CamelModel):
    id: str
    title: str
    url: str
    description: str = ""
    favicon: Optional[str] = None
    last_modified: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    image_url: Optional[str] = None
    video_url: Optional[str] = None

class SearchResponse(CamelModel):
    results: List[SearchResult] = Field(default_factory=list)
    total_results: int = 0
    search_time: int = Field(0, description="Elapsed milliseconds")
    current_page: int = 1
    total_pages: int = 0
    query: str
    filter: SearchFilter = SearchFilter.ALL
    search_id: str

class Suggestion(CamelModel):
    text: str
    count: Optional[int] = None

class SuggestionsResponse(CamelModel):
    suggestions: List[Suggestion] = Field(default_factory=list)

class SearchEntry(CamelModel):
    """One row of the recent/popular views."""
    id: str
    query: str

class SearchEntriesResponse(CamelModel):
    searches: List[SearchEntry] = Field(default_factory=list)

class QueryLogEntry(CamelModel):
    search_id: str
    query: str
    filter: str = "all"
    results_count: int = 0
    search_time: int = 0
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

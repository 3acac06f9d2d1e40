"""
Purpose:
- Expose /api/search, /api/suggestions and the recent/popular views.
- Translate search-layer errors to HTTP; everything else degrades to a 200.
"""

import logging
from typing import Optional
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query
from ..context import AppContext, get_context
from ..search.errors import EmptyQueryError, SearchFailed
from ..search.fallback import fallback_suggestions
from ..search.schema import SearchEntriesResponse, SearchResponse, SuggestionsResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["search"])

@router.get("/search", response_model=SearchResponse, response_model_exclude_none=True)
async def search(
    background: BackgroundTasks,
    q: Optional[str] = Query(None, description="Search text"),
    filter: str = Query("all", description="all | images | news | videos"),
    page: int = Query(1),
    limit: Optional[int] = Query(None, description="Results per page (SEARCH_DEFAULT_LIMIT when omitted)"),
    ctx: AppContext = Depends(get_context),
):
    try:
        return await ctx.orchestrator.search(q, filter, page, limit, background=background)
    except EmptyQueryError as e:
        raise HTTPException(status_code=400, detail=e.message)
    except SearchFailed as e:
        raise HTTPException(status_code=500, detail=str(e))

@router.get("/suggestions", response_model=SuggestionsResponse, response_model_exclude_none=True)
async def suggestions(q: Optional[str] = Query(None), ctx: AppContext = Depends(get_context)):
    query = (q or "").strip()
    if len(query) < 2:
        return SuggestionsResponse(suggestions=[])

    found = await ctx.suggest_client.suggest(query)
    if found:
        return SuggestionsResponse(suggestions=found)
    logger.info(f"Using fallback suggestions for: {query!r}")
    return SuggestionsResponse(suggestions=fallback_suggestions(query))

@router.get("/popular-searches", response_model=SearchEntriesResponse)
async def popular_searches(ctx: AppContext = Depends(get_context)):
    entries = await ctx.telemetry.popular_searches(ctx.settings.telemetry_view_limit)
    return SearchEntriesResponse(searches=entries)

@router.get("/recent-searches", response_model=SearchEntriesResponse)
async def recent_searches(ctx: AppContext = Depends(get_context)):
    entries = await ctx.telemetry.recent_searches(ctx.settings.telemetry_view_limit)
    return SearchEntriesResponse(searches=entries)

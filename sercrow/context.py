"""
Purpose:
- One explicitly constructed object owning every process-wide handle
  (cache, provider clients, stores), injected into routers via app.state.
- Tests build their own with fakes instead of patching globals.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Optional
from fastapi import Request
from .core.settings import Settings
from .search.cache import ResultCache
from .search.google_cse import GoogleSearchClient, GoogleSuggestClient
from .search.schema import SearchResponse
from .search.service import SearchOrchestrator
from .telemetry.accelerator import QueryAccelerator, build_accelerator
from .telemetry.durable import DurableQueryLog
from .telemetry.store import QueryTelemetryStore
from .wingman.status import WingmanStatus

logger = logging.getLogger(__name__)

@dataclass
class AppContext:
    settings: Settings
    cache: ResultCache[SearchResponse]
    search_client: GoogleSearchClient
    suggest_client: GoogleSuggestClient
    durable: DurableQueryLog
    accelerator: QueryAccelerator
    telemetry: QueryTelemetryStore
    orchestrator: SearchOrchestrator
    wingman: WingmanStatus

    async def startup(self) -> None:
        await self.durable.create_schema()
        await self.wingman.check()

    async def close(self) -> None:
        await self.orchestrator.drain()
        await self.search_client.aclose()
        await self.suggest_client.aclose()
        await self.wingman.aclose()
        await self.accelerator.close()
        await self.durable.dispose()

def assemble_context(cfg: Settings, search_client: GoogleSearchClient,
                     suggest_client: GoogleSuggestClient, durable: DurableQueryLog,
                     accelerator: QueryAccelerator,
                     wingman: Optional[WingmanStatus] = None) -> AppContext:
    """Wire the pieces together; shared by production and tests."""
    cache: ResultCache[SearchResponse] = ResultCache(
        max_entries=cfg.search_cache_max_entries, ttl_seconds=cfg.search_cache_ttl_seconds
    )
    telemetry = QueryTelemetryStore(durable, accelerator)
    orchestrator = SearchOrchestrator(
        search_client, cache, telemetry,
        default_limit=cfg.search_default_limit,
        max_limit=cfg.search_max_limit,
        description_limit=cfg.description_char_limit,
    )
    if wingman is None:
        wingman = WingmanStatus(cfg.openrouter_api_key, cfg.openrouter_model, cfg.openrouter_base_url)
    return AppContext(
        settings=cfg,
        cache=cache,
        search_client=search_client,
        suggest_client=suggest_client,
        durable=durable,
        accelerator=accelerator,
        telemetry=telemetry,
        orchestrator=orchestrator,
        wingman=wingman,
    )

def build_context(cfg: Settings) -> AppContext:
    """Production wiring. The durable log is mandatory; everything else degrades."""
    db_url = cfg.async_database_url()
    if not db_url:
        raise RuntimeError("DATABASE_URL must be set. Did you forget to provision a database?")
    return assemble_context(
        cfg,
        search_client=GoogleSearchClient(
            cfg.google_search_api_key, cfg.google_search_engine_id, timeout=cfg.search_timeout_seconds
        ),
        suggest_client=GoogleSuggestClient(timeout=cfg.suggest_timeout_seconds),
        durable=DurableQueryLog.from_url(db_url),
        accelerator=build_accelerator(cfg),
    )

def get_context(request: Request) -> AppContext:
    return request.app.state.context

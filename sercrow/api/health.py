# Liveness + capability probe: which collaborators are configured and actually answering.

from fastapi import APIRouter, Depends
from ..context import AppContext, get_context
from ..search.schema import SearchFilter

router = APIRouter(tags=["health"])

@router.get("/healthz")
def healthz():
    return {"status": "ok"}

@router.get("/api/status")
async def api_status(ctx: AppContext = Depends(get_context)):
    configured = ctx.search_client.configured
    working = False
    if configured:
        # one-result probe straight to the provider; bypasses cache and telemetry
        data = await ctx.search_client.search("test", SearchFilter.ALL, start=1, count=1)
        working = data is not None

    return {
        "googleApiConfigured": configured,
        "googleApiWorking": working,
        "databaseConnected": await ctx.durable.ping(),
        "redisConfigured": ctx.accelerator.configured,
        "wingman": ctx.wingman.as_dict(),
        "version": ctx.settings.app_version,
    }

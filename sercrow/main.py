"""
Purpose:
- FastAPI application factory and router mounts.
- Builds the AppContext at startup (unless one was injected) and tears it down on exit.
- Uvicorn will serve this on settings.host:settings.port.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from .core.settings import settings
from .context import AppContext, build_context
from .api.health import router as health_router
from .api.search import router as search_router

logging.basicConfig(
    level=settings.log_level.upper(),
    format='%(asctime)s - %(levelname)s: %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)
logger = logging.getLogger(__name__)

def create_app(context: Optional[AppContext] = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        ctx = context
        if ctx is None:
            # raises when DATABASE_URL is missing: the durable log is mandatory
            ctx = build_context(settings)
            await ctx.startup()
        app.state.context = ctx
        logger.info("SerCrow API ready")
        try:
            yield
        finally:
            await ctx.close()

    app = FastAPI(title="SerCrow Search API", version=settings.app_version, lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    if context is not None:
        app.state.context = context
    app.include_router(health_router)
    app.include_router(search_router)
    return app

app = create_app()

def run():
    import uvicorn
    uvicorn.run("sercrow.main:app", host=settings.host, port=settings.port)

if __name__ == "__main__":
    run()

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from cowork_ledger.core.config import settings
from cowork_ledger.routers import stats
from cowork_ledger.services.stats_cache import JsonFileStatsCache

OPENAPI_TAGS = [
    {"name": "Stats", "description": "Presence, usage, income and attendance per period."},
]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    cache = JsonFileStatsCache(settings.STATS_CACHE_PATH)
    app.state.stats_cache = cache
    try:
        yield
    finally:
        await cache.close()


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.version,
    description=(
        "Statistics over a coworking space's ledgers: attendance, tickets, "
        "subscriptions, memberships and operating costs."
    ),
    openapi_tags=OPENAPI_TAGS,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()],
    allow_credentials=True,
    allow_methods=["GET"],
    allow_headers=["*"],
)

app.include_router(stats.router, prefix="/stats", tags=["Stats"])


@app.get("/")
async def root() -> dict[str, str]:
    return {
        "app": settings.APP_NAME,
        "version": settings.version,
        "status": "running",
    }
